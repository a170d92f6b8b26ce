from __future__ import annotations

from typing import FrozenSet, Union

from .codes import ErrorCode

RETRYABLE_ERROR_CODES: FrozenSet[ErrorCode] = frozenset(
    {
        ErrorCode.NETWORK,
        ErrorCode.RATE_LIMIT,
        ErrorCode.SERVER,
    }
)


def is_retryable_error_code(code: Union[ErrorCode, str]) -> bool:
    """Return True when failures with ``code`` are transient and worth retrying."""
    try:
        return ErrorCode(code) in RETRYABLE_ERROR_CODES
    except ValueError:
        return False
