"""Shape-contract validation for capability input and output.

Input is checked in two passes: required keys must be present and non-empty
(``None`` and ``""`` count as missing), then the whole value is checked
against the descriptor's JSON schema with a Draft 7 validator. Output is only
checked against the schema.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft7Validator

from capability_router.registry.introspection import required_inputs
from capability_router.registry.types import JsonSchema, OperationCard


@dataclass(frozen=True)
class SchemaCheck:
    ok: bool
    message: str = ""
    details: Optional[Dict[str, Any]] = None


_PASSED = SchemaCheck(ok=True)


@lru_cache(maxsize=256)
def _validator_for(schema_json: str) -> Draft7Validator:
    schema = json.loads(schema_json)
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def _schema_errors(schema: JsonSchema, value: Any) -> List[str]:
    validator = _validator_for(json.dumps(schema, sort_keys=True))
    messages: List[str] = []
    for error in sorted(validator.iter_errors(value), key=lambda e: list(e.path)):
        path = ".".join(str(p) for p in error.path) if error.path else "root"
        messages.append(f"{path}: {error.message}")
    return messages


def missing_required_params(card: OperationCard, params: Mapping[str, Any]) -> List[str]:
    return [key for key in required_inputs(card.input_schema) if params.get(key) in (None, "")]


def validate_input(card: OperationCard, params: Mapping[str, Any]) -> SchemaCheck:
    missing = missing_required_params(card, params)
    if missing:
        return SchemaCheck(
            ok=False,
            message=f"Missing required params: {', '.join(missing)}",
            details={"missing": missing},
        )
    errors = _schema_errors(card.input_schema, dict(params))
    if errors:
        return SchemaCheck(ok=False, message=f"Input validation failed: {errors[0]}", details={"errors": errors})
    return _PASSED


def validate_output(card: OperationCard, data: Any) -> SchemaCheck:
    errors = _schema_errors(card.output_schema, data)
    if errors:
        return SchemaCheck(ok=False, message=f"Output validation failed: {errors[0]}", details={"errors": errors})
    return _PASSED
