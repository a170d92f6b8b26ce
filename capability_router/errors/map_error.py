"""Error Classifier.

Maps heterogeneous raw failures into the canonical ``(code, message,
retryable, details)`` quadruple used by every error envelope.

Raw failures are a closed set of tagged variants:

- `CliFailure`: a subprocess exited non-zero (exit code + stderr).
- `TransportFailure`: an exception raised at a transport boundary.
- `GraphqlErrors`: a protocol-level ``errors`` list from a structured query.
- `MessageFailure`: an opaque message with no further structure.

Structured variants are classified from their shape (HTTP status codes,
exception classes, protocol ``type`` fields). Only when the shape carries no
usable signal does classification fall through to `classify_message`, the
best-effort text heuristics kept for legacy and opaque failures.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .codes import ErrorCode
from .exceptions import (
    BatchBuildError,
    CliOutputLimitError,
    CliSpawnError,
    CliTimeoutError,
    DocumentNotFoundError,
    GraphqlResponseError,
    ResolutionError,
    TransportError,
)
from .redaction import sanitize_cli_error_message
from .retryability import is_retryable_error_code


@dataclass(frozen=True)
class CliFailure:
    exit_code: int
    stderr: str
    binary: str = "gh"


@dataclass(frozen=True)
class TransportFailure:
    exception: BaseException


@dataclass(frozen=True)
class GraphqlErrors:
    errors: Tuple[Mapping[str, Any], ...]

    @classmethod
    def of(cls, errors: Sequence[Mapping[str, Any]]) -> "GraphqlErrors":
        return cls(errors=tuple(errors))


@dataclass(frozen=True)
class MessageFailure:
    message: str


RawFailure = Union[CliFailure, TransportFailure, GraphqlErrors, MessageFailure]


@dataclass(frozen=True)
class ClassifiedError:
    code: ErrorCode
    message: str
    retryable: bool
    details: Optional[Dict[str, Any]] = field(default=None)


_GRAPHQL_TYPE_CODES: Dict[str, ErrorCode] = {
    "FORBIDDEN": ErrorCode.AUTH,
    "UNAUTHORIZED": ErrorCode.AUTH,
    "UNAUTHENTICATED": ErrorCode.AUTH,
    "INSUFFICIENT_SCOPES": ErrorCode.AUTH,
    "RATE_LIMITED": ErrorCode.RATE_LIMIT,
    "NOT_FOUND": ErrorCode.NOT_FOUND,
    "BAD_USER_INPUT": ErrorCode.VALIDATION,
    "ARGUMENT_ERROR": ErrorCode.VALIDATION,
    "UNPROCESSABLE": ErrorCode.VALIDATION,
    "INTERNAL": ErrorCode.SERVER,
    "SERVICE_UNAVAILABLE": ErrorCode.SERVER,
}

# Best-effort heuristics, checked in order. Rate limiting comes before auth
# because GitHub reports secondary rate limits with HTTP 403.
_MESSAGE_RULES: Tuple[Tuple[re.Pattern, ErrorCode], ...] = (
    (re.compile(r"rate limit|\b429\b|abuse detection"), ErrorCode.RATE_LIMIT),
    (
        re.compile(
            r"unauthori[sz]ed|forbidden|bad credentials|authentication|not logged in"
            r"|auth login|token expired|\b401\b|\b403\b"
        ),
        ErrorCode.AUTH,
    ),
    (
        re.compile(
            r"econnreset|econnrefused|etimedout|enotfound|eai_again|network|timed out|timeout"
            r"|connection (?:reset|refused|aborted)|socket hang up"
        ),
        ErrorCode.NETWORK,
    ),
    (re.compile(r"\b5\d\d\b|server error|internal error|bad gateway|service unavailable"), ErrorCode.SERVER),
    (re.compile(r"not found|could not resolve|\b404\b|no such"), ErrorCode.NOT_FOUND),
    (re.compile(r"invalid|validation|missing required|unprocessable|\b422\b|malformed"), ErrorCode.VALIDATION),
)


def classify_message(message: str) -> ErrorCode:
    """Best-effort classification of opaque failure text."""
    text = (message or "").lower()
    for pattern, code in _MESSAGE_RULES:
        if pattern.search(text):
            return code
    return ErrorCode.UNKNOWN


def _code_for_status(status_code: int, body: str = "") -> ErrorCode:
    if status_code == 401:
        return ErrorCode.AUTH
    if status_code == 403:
        return ErrorCode.RATE_LIMIT if "rate limit" in body.lower() else ErrorCode.AUTH
    if status_code == 404:
        return ErrorCode.NOT_FOUND
    if status_code == 429:
        return ErrorCode.RATE_LIMIT
    if status_code in (400, 409, 422):
        return ErrorCode.VALIDATION
    if status_code >= 500:
        return ErrorCode.SERVER
    return classify_message(body)


def _code_for_graphql_errors(errors: Sequence[Mapping[str, Any]]) -> ErrorCode:
    for err in errors:
        typ = err.get("type") if isinstance(err, Mapping) else None
        if isinstance(typ, str) and typ.upper() in _GRAPHQL_TYPE_CODES:
            return _GRAPHQL_TYPE_CODES[typ.upper()]
    return classify_message(_graphql_message(errors))


def _graphql_message(errors: Sequence[Mapping[str, Any]]) -> str:
    messages = [str(e.get("message")) for e in errors if isinstance(e, Mapping) and e.get("message")]
    return "; ".join(messages) or "GraphQL request returned errors"


def _code_for_exception(exc: BaseException) -> ErrorCode:
    if isinstance(exc, GraphqlResponseError):
        return _code_for_graphql_errors(exc.errors)
    if isinstance(exc, TransportError) and exc.status_code is not None:
        return _code_for_status(exc.status_code, f"{exc} {exc.details or ''}")
    if isinstance(exc, httpx.HTTPStatusError):
        return _code_for_status(exc.response.status_code, exc.response.text)
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.TransportError)):
        return ErrorCode.NETWORK
    if isinstance(exc, (CliTimeoutError, asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorCode.NETWORK
    if isinstance(exc, CliSpawnError):
        return ErrorCode.ADAPTER_UNSUPPORTED
    if isinstance(exc, CliOutputLimitError):
        return ErrorCode.UNKNOWN
    if isinstance(exc, (ResolutionError, BatchBuildError, DocumentNotFoundError)):
        return ErrorCode.VALIDATION
    return classify_message(str(exc))


def to_raw_failure(raw: Any) -> RawFailure:
    """Wrap an arbitrary raised value into one of the raw failure variants."""
    if isinstance(raw, (CliFailure, TransportFailure, GraphqlErrors, MessageFailure)):
        return raw
    if isinstance(raw, BaseException):
        return TransportFailure(raw)
    return MessageFailure(str(raw))


def map_error_to_code(raw: Any) -> ErrorCode:
    failure = to_raw_failure(raw)
    if isinstance(failure, CliFailure):
        if failure.exit_code == 4:
            # gh reserves exit code 4 for "authentication required"
            return ErrorCode.AUTH
        return classify_message(failure.stderr)
    if isinstance(failure, TransportFailure):
        return _code_for_exception(failure.exception)
    if isinstance(failure, GraphqlErrors):
        return _code_for_graphql_errors(failure.errors)
    return classify_message(failure.message)


def error_message(raw: Any) -> str:
    failure = to_raw_failure(raw)
    if isinstance(failure, CliFailure):
        return sanitize_cli_error_message(failure.stderr, failure.exit_code, binary=failure.binary)
    if isinstance(failure, TransportFailure):
        return str(failure.exception) or type(failure.exception).__name__
    if isinstance(failure, GraphqlErrors):
        return _graphql_message(failure.errors)
    return failure.message


def classify_error(raw: Any, *, details: Optional[Dict[str, Any]] = None) -> ClassifiedError:
    """Classify ``raw`` into a canonical error.

    Args:
        raw: A raw failure variant, an exception, or an opaque message.
        details: Extra diagnostics merged over the ones derived from ``raw``.

    Returns:
        A `ClassifiedError` whose ``retryable`` flag follows the code.
    """
    failure = to_raw_failure(raw)
    code = map_error_to_code(failure)
    derived: Dict[str, Any] = {}
    if isinstance(failure, CliFailure):
        derived["exit_code"] = failure.exit_code
    elif isinstance(failure, GraphqlErrors):
        derived["errors"] = [dict(e) for e in failure.errors]
    elif isinstance(failure, TransportFailure):
        status = getattr(failure.exception, "status_code", None)
        if status is None and isinstance(failure.exception, httpx.HTTPStatusError):
            status = failure.exception.response.status_code
        if status is not None:
            derived["status_code"] = status
    if details:
        derived.update(details)
    return ClassifiedError(
        code=code,
        message=error_message(failure),
        retryable=is_retryable_error_code(code),
        details=derived or None,
    )
