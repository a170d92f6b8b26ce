"""
Capability router.

Routes capability requests across GraphQL, CLI and REST transports with
preflight checks, retries and fallback, and executes ordered chains with
batched GraphQL lookups and mutations.
"""

from capability_router.registry import OperationCard, OperationRegistry, explain_capability, list_capabilities
from capability_router.routing import ExecutionDeps, execute_task, execute_tasks
from capability_router.schemas import ChainResult, ResultEnvelope, TaskRequest

__all__ = [
    "ChainResult",
    "ExecutionDeps",
    "OperationCard",
    "OperationRegistry",
    "ResultEnvelope",
    "TaskRequest",
    "execute_task",
    "execute_tasks",
    "explain_capability",
    "list_capabilities",
]
