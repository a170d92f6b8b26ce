"""Envelope Normalizer: wraps outcomes into `ResultEnvelope` instances."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from capability_router.errors.codes import ErrorCode
from capability_router.errors.map_error import ClassifiedError, classify_error
from capability_router.errors.retryability import is_retryable_error_code
from capability_router.schemas.envelope import (
    EnvelopeError,
    EnvelopeMeta,
    ResultEnvelope,
    RouteReasonCode,
    RouteSource,
)

ErrorLike = Union[ClassifiedError, EnvelopeError, BaseException, Any]


def _meta(capability_id: str, route: Optional[RouteSource], reason: Optional[RouteReasonCode]) -> EnvelopeMeta:
    return EnvelopeMeta(capability_id=capability_id, route_used=route, reason=reason)


def envelope_error(code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None) -> EnvelopeError:
    return EnvelopeError(code=code, message=message, retryable=is_retryable_error_code(code), details=details)


def to_envelope_error(error: ErrorLike, *, details: Optional[Dict[str, Any]] = None) -> EnvelopeError:
    """Convert any error-like value into an `EnvelopeError`.

    Already-normalized errors pass through (with ``details`` merged in);
    everything else goes through the Error Classifier.
    """
    if isinstance(error, EnvelopeError):
        if not details:
            return error
        return error.model_copy(update={"details": {**(error.details or {}), **details}})
    if isinstance(error, ClassifiedError):
        classified = error
        merged = {**(error.details or {}), **(details or {})} or None
    else:
        classified = classify_error(error, details=details)
        merged = classified.details
    return EnvelopeError(
        code=classified.code,
        message=classified.message,
        retryable=classified.retryable,
        details=merged,
    )


def normalize_result(
    data: Any,
    route: Optional[RouteSource],
    *,
    capability_id: str,
    reason: Optional[RouteReasonCode] = RouteReasonCode.CARD_PREFERRED,
) -> ResultEnvelope:
    return ResultEnvelope(ok=True, data=data, meta=_meta(capability_id, route, reason))


def normalize_error(
    error: ErrorLike,
    route: Optional[RouteSource],
    *,
    capability_id: str,
    reason: Optional[RouteReasonCode] = RouteReasonCode.CARD_PREFERRED,
    details: Optional[Dict[str, Any]] = None,
) -> ResultEnvelope:
    return ResultEnvelope(
        ok=False,
        error=to_envelope_error(error, details=details),
        meta=_meta(capability_id, route, reason),
    )
