"""Pydantic base schema utilities for capability router models.

Provides a common `BaseSchema` that enforces aliasing and extra-field policy
for descriptors, envelopes and chain results under `capability_router`.
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


def _to_camel(s: str) -> str:
    """Convert snake_case to camelCase for JSON aliasing."""
    parts = s.split("_")
    return parts[0] + "".join(p.capitalize() or "_" for p in parts[1:])


class BaseSchema(BaseModel):
    """Shared base for all Pydantic models in capability_router.

    - Sets strict handling for extra fields
    - Enables populate_by_name for using either snake_case or camelCase
    - Uses a snake->camel alias generator for JSON interop
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=_to_camel,  # snake_case -> camelCase aliases
    )


class WireSchema(BaseSchema):
    """Base for models whose wire keys are snake_case (envelopes, chain results).

    Instances are frozen; use ``model_copy(update=...)`` to derive a new value.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=None,
        frozen=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Dump to plain JSON-compatible data, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)
