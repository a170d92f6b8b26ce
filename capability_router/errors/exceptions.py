"""Exception hierarchy raised at the transport and resolution boundaries.

Purpose:
- Give transport adapters typed failures that the Error Classifier can map
  without sniffing message text.
- Carry HTTP/subprocess context (status code, exit code, error body) for
  diagnosis.

Usage:
- Catch `TransportError` for any backend failure; inspect `status_code` or
  `details` where present.
- `ResolutionError` and `BatchBuildError` are raised by the chain helpers and
  are reported as per-step errors by the orchestrator.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class CapabilityRouterError(Exception):
    pass


class TransportError(CapabilityRouterError):
    """Base error for transport-boundary failures.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
        details: Optional structured payload from the server (e.g., JSON body).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class GraphqlTransportError(TransportError):
    pass


class GraphqlResponseError(TransportError):
    """Raised when a structured-query response carries a protocol error list.

    Args:
        errors: The raw ``errors`` entries of the response.
        data: The (possibly partial) ``data`` payload that came with them.
    """

    def __init__(self, errors: Sequence[Dict[str, Any]], *, data: Optional[Any] = None) -> None:
        self.errors: List[Dict[str, Any]] = [dict(e) for e in errors]
        first = self.errors[0].get("message") if self.errors else None
        super().__init__(str(first or "GraphQL request returned errors"), details={"errors": self.errors})
        self.data = data


class RestApiError(TransportError):
    pass


class CliCommandError(CapabilityRouterError):
    pass


class CliTimeoutError(CliCommandError):
    def __init__(self, command: str, timeout: float) -> None:
        super().__init__(f"Command '{command}' timed out after {timeout}s")
        self.command = command
        self.timeout = timeout


class CliOutputLimitError(CliCommandError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"Command output exceeded {limit} bytes")
        self.limit = limit


class CliSpawnError(CliCommandError):
    def __init__(self, command: str, cause: BaseException) -> None:
        super().__init__(f"Failed to start command '{command}': {cause}")
        self.command = command


class BatchBuildError(ValueError):
    pass


class ResolutionError(CapabilityRouterError):
    pass


class DocumentNotFoundError(KeyError):
    def __init__(self, operation_name: str) -> None:
        super().__init__(operation_name)
        self.operation_name = operation_name

    def __str__(self) -> str:
        return f"GraphQL document not found for operation '{self.operation_name}'"


class CardNotFoundError(KeyError):
    def __init__(self, capability_id: str) -> None:
        super().__init__(capability_id)
        self.capability_id = capability_id

    def __str__(self) -> str:
        return f"Unknown capability: {self.capability_id}"
