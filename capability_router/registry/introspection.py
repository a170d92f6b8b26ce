"""Read-only views over the descriptor catalog for agents and tooling."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from capability_router.schemas.base import WireSchema
from capability_router.schemas.envelope import RouteSource

from .registry import OperationRegistry
from .types import JsonSchema, OperationCard


class CapabilityExplanation(WireSchema):
    capability_id: str
    purpose: str
    required_inputs: List[str]
    optional_inputs: List[str]
    preferred_route: RouteSource
    fallback_routes: List[RouteSource]
    output_fields: List[str]


def required_inputs(input_schema: JsonSchema) -> List[str]:
    required = input_schema.get("required")
    if not isinstance(required, list):
        return []
    return [item for item in required if isinstance(item, str)]


def _property_names(schema: JsonSchema) -> List[str]:
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return []
    return list(properties.keys())


def explain(card: OperationCard) -> CapabilityExplanation:
    required = required_inputs(card.input_schema)
    return CapabilityExplanation(
        capability_id=card.capability_id,
        purpose=card.description,
        required_inputs=required,
        optional_inputs=[name for name in _property_names(card.input_schema) if name not in required],
        preferred_route=card.routing.preferred,
        fallback_routes=list(card.routing.fallbacks),
        output_fields=_property_names(card.output_schema),
    )


def explain_capability(registry: OperationRegistry, capability_id: str) -> CapabilityExplanation:
    """Describe one capability.

    Raises:
        CardNotFoundError: If ``capability_id`` is not registered.
    """
    return explain(registry.get(capability_id))


def list_capabilities(registry: OperationRegistry, domain: Optional[str] = None) -> List[Dict[str, Any]]:
    """List capability summaries sorted by id, optionally restricted to ``<domain>.*`` ids."""
    prefix = f"{domain}." if domain else None
    out: List[Dict[str, Any]] = []
    for capability_id in registry.ids():
        if prefix and not capability_id.startswith(prefix):
            continue
        out.append(explain(registry.get(capability_id)).to_dict())
    return out
