"""Result envelope and chain result models.

Every engine call produces exactly one `ResultEnvelope` (single request) or
one `ChainResult` (ordered chain). Both are frozen once constructed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator

from capability_router.errors.codes import ErrorCode

from .base import WireSchema


class RouteSource(str, Enum):
    GRAPHQL = "graphql"
    CLI = "cli"
    REST = "rest"


class RouteReasonCode(str, Enum):
    """Fixed vocabulary of routing-decision reasons reported in envelope metadata."""

    CARD_PREFERRED = "CARD_PREFERRED"
    CARD_FALLBACK = "CARD_FALLBACK"
    PREFLIGHT_FAILED = "PREFLIGHT_FAILED"
    ENV_CONSTRAINT = "ENV_CONSTRAINT"
    CAPABILITY_LIMIT = "CAPABILITY_LIMIT"
    DEFAULT_POLICY = "DEFAULT_POLICY"
    INPUT_VALIDATION = "INPUT_VALIDATION"
    OUTPUT_VALIDATION = "OUTPUT_VALIDATION"


class AttemptRecord(WireSchema):
    route: RouteSource
    status: Literal["success", "error", "skipped"]
    error_code: Optional[ErrorCode] = None


class EnvelopeError(WireSchema):
    code: ErrorCode = Field(..., description="Stable canonical error code.")
    message: str = Field(..., description="Human-readable failure description.")
    retryable: bool = Field(False, description="Whether retrying the same call may succeed.")
    details: Optional[Dict[str, Any]] = Field(None, description="Optional structured diagnostics.")


class EnvelopeMeta(WireSchema):
    capability_id: str = Field(..., description="Capability the envelope answers for.")
    route_used: Optional[RouteSource] = Field(None, description="Transport that produced the outcome.")
    reason: Optional[RouteReasonCode] = Field(None, description="Why that transport was used.")
    attempts: Optional[List[AttemptRecord]] = Field(
        None,
        description="Ordered attempt log; only present when tracing is enabled.",
    )


class ResultEnvelope(WireSchema):
    """Canonical success/error wrapper returned by every engine call.

    Exactly one of ``data`` (when ``ok``) and ``error`` (when not ``ok``) is
    meaningful; ``error`` must be present iff ``ok`` is False.
    """

    ok: bool
    data: Optional[Any] = None
    error: Optional[EnvelopeError] = None
    meta: EnvelopeMeta

    @model_validator(mode="after")
    def _check_ok_error_exclusive(self) -> "ResultEnvelope":
        if self.ok and self.error is not None:
            raise ValueError("successful envelope must not carry an error")
        if not self.ok and self.error is None:
            raise ValueError("failed envelope must carry an error")
        if not self.ok and self.data is not None:
            raise ValueError("failed envelope must not carry data")
        return self

    def with_attempts(self, attempts: List[AttemptRecord]) -> "ResultEnvelope":
        """Return a copy whose metadata carries ``attempts``."""
        meta = self.meta.model_copy(update={"attempts": list(attempts)})
        return self.model_copy(update={"meta": meta})


class TaskRequest(WireSchema):
    task: str = Field(..., min_length=1, description="Capability id to execute.")
    input: Dict[str, Any] = Field(default_factory=dict, description="Caller-supplied input.")


class ChainStepResult(WireSchema):
    task: str
    ok: bool
    data: Optional[Any] = None
    error: Optional[EnvelopeError] = None
    meta: Optional[EnvelopeMeta] = None

    @model_validator(mode="after")
    def _check_ok_error_exclusive(self) -> "ChainStepResult":
        if self.ok == (self.error is not None):
            raise ValueError("chain step must carry an error iff it failed")
        return self

    @classmethod
    def from_envelope(cls, task: str, envelope: ResultEnvelope) -> "ChainStepResult":
        return cls(
            task=task,
            ok=envelope.ok,
            data=envelope.data if envelope.ok else None,
            error=envelope.error,
            meta=envelope.meta,
        )


ChainStatus = Literal["success", "partial", "failed"]


class ChainMeta(WireSchema):
    route_used: str = Field(..., description="Transport shared by every step, or 'mixed'.")
    total: int = Field(..., ge=0)
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class ChainResult(WireSchema):
    status: ChainStatus
    results: List[ChainStepResult]
    meta: ChainMeta

    @staticmethod
    def status_for(results: List[ChainStepResult]) -> ChainStatus:
        succeeded = sum(1 for r in results if r.ok)
        if results and succeeded == len(results):
            return "success"
        if succeeded == 0:
            return "failed"
        return "partial"
