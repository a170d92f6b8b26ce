from .base import BaseSchema, WireSchema
from .envelope import (
    AttemptRecord,
    ChainMeta,
    ChainResult,
    ChainStepResult,
    EnvelopeError,
    EnvelopeMeta,
    ResultEnvelope,
    RouteReasonCode,
    RouteSource,
    TaskRequest,
)

__all__ = [
    "AttemptRecord",
    "BaseSchema",
    "ChainMeta",
    "ChainResult",
    "ChainStepResult",
    "EnvelopeError",
    "EnvelopeMeta",
    "ResultEnvelope",
    "RouteReasonCode",
    "RouteSource",
    "TaskRequest",
    "WireSchema",
]
