from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Closed set of canonical error codes carried by every error envelope."""

    AUTH = "AUTH"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    NETWORK = "NETWORK"
    RATE_LIMIT = "RATE_LIMIT"
    SERVER = "SERVER"
    ADAPTER_UNSUPPORTED = "ADAPTER_UNSUPPORTED"
    UNKNOWN = "UNKNOWN"
