from .chain import ChainPhase, ChainState, ChainStep, build_chain_result, execute_tasks, prepare_chain
from .engine import ExecutionDeps, build_routes, execute_task
from .policy import ROUTE_PREFERENCE_ORDER, choose_route

__all__ = [
    "ChainPhase",
    "ChainState",
    "ChainStep",
    "ExecutionDeps",
    "ROUTE_PREFERENCE_ORDER",
    "build_chain_result",
    "build_routes",
    "choose_route",
    "execute_task",
    "execute_tasks",
    "prepare_chain",
]
