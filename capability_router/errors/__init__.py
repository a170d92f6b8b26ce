from .codes import ErrorCode
from .exceptions import (
    BatchBuildError,
    CapabilityRouterError,
    CardNotFoundError,
    CliCommandError,
    CliOutputLimitError,
    CliSpawnError,
    CliTimeoutError,
    DocumentNotFoundError,
    GraphqlResponseError,
    GraphqlTransportError,
    ResolutionError,
    RestApiError,
    TransportError,
)
from .map_error import (
    ClassifiedError,
    CliFailure,
    GraphqlErrors,
    MessageFailure,
    RawFailure,
    TransportFailure,
    classify_error,
    classify_message,
    map_error_to_code,
)
from .redaction import contains_sensitive_text, sanitize_cli_error_message
from .retryability import RETRYABLE_ERROR_CODES, is_retryable_error_code

__all__ = [
    "BatchBuildError",
    "CapabilityRouterError",
    "CardNotFoundError",
    "ClassifiedError",
    "CliCommandError",
    "CliFailure",
    "CliOutputLimitError",
    "CliSpawnError",
    "CliTimeoutError",
    "DocumentNotFoundError",
    "ErrorCode",
    "GraphqlErrors",
    "GraphqlResponseError",
    "GraphqlTransportError",
    "MessageFailure",
    "RETRYABLE_ERROR_CODES",
    "RawFailure",
    "ResolutionError",
    "RestApiError",
    "TransportError",
    "TransportFailure",
    "classify_error",
    "classify_message",
    "contains_sensitive_text",
    "is_retryable_error_code",
    "map_error_to_code",
    "sanitize_cli_error_message",
]
