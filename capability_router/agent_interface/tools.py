"""Agent-facing tool facade.

Thin objects an agent runtime can expose as tools: one executes a capability,
the other explains what a capability needs and returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from capability_router.registry.introspection import explain_capability
from capability_router.registry.registry import OperationRegistry
from capability_router.schemas.envelope import ResultEnvelope, TaskRequest

ExecuteTaskFn = Callable[[TaskRequest], Awaitable[ResultEnvelope]]


@dataclass(frozen=True)
class ExecuteTool:
    execute_task: ExecuteTaskFn

    async def execute(self, capability_id: str, params: Optional[Mapping[str, Any]] = None) -> ResultEnvelope:
        return await self.execute_task(TaskRequest(task=capability_id, input=dict(params or {})))


@dataclass(frozen=True)
class ExplainTool:
    registry: OperationRegistry

    def explain(self, capability_id: str) -> Dict[str, Any]:
        return explain_capability(self.registry, capability_id).to_dict()


def create_execute_tool(execute_task: ExecuteTaskFn) -> ExecuteTool:
    """Wrap an ``execute_task(request)`` coroutine, e.g. ``functools.partial(execute_task, deps=deps)``."""
    return ExecuteTool(execute_task=execute_task)


def create_explain_tool(registry: OperationRegistry) -> ExplainTool:
    return ExplainTool(registry=registry)
