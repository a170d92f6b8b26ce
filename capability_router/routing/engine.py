"""Entry point for single capability requests.

`execute_task` looks the capability up in the registry, wires preflight and
per-route adapters from `ExecutionDeps`, and hands over to the Execution
Engine. Registered handlers win over default adapters; a default adapter is
only used when the descriptor carries that transport's parameters and the
transport client has that transport.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from capability_router.core.config import RouterSettings, settings
from capability_router.core.monitoring import trace_span
from capability_router.errors.codes import ErrorCode
from capability_router.execution.adapters import (
    AdapterRegistry,
    run_cli_adapter,
    run_graphql_adapter,
    run_rest_adapter,
)
from capability_router.execution.execute import Adapter, RetryPolicy, execute, route_plan
from capability_router.execution.normalizer import envelope_error, normalize_error
from capability_router.execution.preflight import PreflightProber, PreflightResult
from capability_router.gql.document_registry import DocumentRegistry
from capability_router.gql.resolution_cache import ResolutionCache
from capability_router.registry.registry import OperationRegistry
from capability_router.registry.types import OperationCard
from capability_router.schemas.envelope import (
    EnvelopeError,
    ResultEnvelope,
    RouteReasonCode,
    RouteSource,
    TaskRequest,
)
from capability_router.transport.client import TransportClient

from .policy import DEFAULT_REASON, choose_route

logger = logging.getLogger(__name__)

TaskLike = Union[TaskRequest, Mapping[str, Any]]


@dataclass
class ExecutionDeps:
    """
    Collaborators for one or many engine calls.

    Every mutable resource here (the preflight prober and the resolution
    cache) is owned by the caller; share an instance across calls to share
    its state.
    """

    registry: OperationRegistry
    client: TransportClient = field(default_factory=TransportClient)
    documents: DocumentRegistry = field(default_factory=DocumentRegistry)
    adapters: AdapterRegistry = field(default_factory=AdapterRegistry)
    token: Optional[str] = None
    cli_available: Optional[bool] = None
    cli_authenticated: Optional[bool] = None
    resolution_cache: Optional[ResolutionCache] = None
    prober: Optional[PreflightProber] = None
    trace: bool = False
    reason: Optional[RouteReasonCode] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_settings(
        cls,
        registry: OperationRegistry,
        config: Optional[RouterSettings] = None,
        **overrides: Any,
    ) -> "ExecutionDeps":
        cfg = config or settings
        client = overrides.pop("client", None) or TransportClient.from_settings(cfg)
        prober = overrides.pop("prober", None) or PreflightProber(
            runner=client.cli,
            cli_binary=client.cli_binary,
            ttl_seconds=cfg.preflight_ttl_seconds,
            probe_timeout=cfg.cli_probe_timeout_seconds,
        )
        overrides.setdefault("token", cfg.github_token)
        overrides.setdefault("retry", RetryPolicy.from_settings(cfg))
        return cls(registry=registry, client=client, prober=prober, **overrides)

    async def preflight(self, route: RouteSource) -> PreflightResult:
        if self.prober is None:
            self.prober = PreflightProber(runner=self.client.cli, cli_binary=self.client.cli_binary)
        return await self.prober.check(
            route,
            token=self.token,
            cli_available=self.cli_available,
            cli_authenticated=self.cli_authenticated,
        )

    def reason_for(self, card: OperationCard, route: RouteSource) -> RouteReasonCode:
        if self.reason is not None:
            return self.reason
        return RouteReasonCode.CARD_PREFERRED if route == card.routing.preferred else RouteReasonCode.CARD_FALLBACK


def to_task_request(request: TaskLike) -> TaskRequest:
    if isinstance(request, TaskRequest):
        return request
    return TaskRequest.model_validate(dict(request))


def unsupported_task_error(task: str) -> EnvelopeError:
    return envelope_error(ErrorCode.VALIDATION, f"Invalid task: {task} (unsupported capability)", {"task": task})


def unsupported_task_envelope(task: str, deps: ExecutionDeps) -> ResultEnvelope:
    return normalize_error(
        unsupported_task_error(task),
        choose_route(),
        capability_id=task,
        reason=deps.reason or DEFAULT_REASON,
    )


def build_routes(card: OperationCard, deps: ExecutionDeps) -> Dict[RouteSource, Adapter]:
    """One adapter per planned route that has either a handler or a usable default adapter."""
    routes: Dict[RouteSource, Adapter] = {}
    for route in route_plan(card):
        handler = deps.adapters.get(route, card.capability_id)
        if handler is not None:
            routes[route] = functools.partial(_call_handler, handler, deps.client, card)
            continue
        if card.route_config(route) is None:
            continue
        reason = deps.reason_for(card, route)
        if route is RouteSource.GRAPHQL and deps.client.graphql is not None:
            routes[route] = functools.partial(
                _call_default,
                run_graphql_adapter,
                deps.client,
                card,
                documents=deps.documents,
                reason=reason,
                resolution_cache=deps.resolution_cache,
            )
        elif route is RouteSource.CLI and deps.client.cli is not None:
            routes[route] = functools.partial(_call_default, run_cli_adapter, deps.client, card, reason=reason)
        elif route is RouteSource.REST and deps.client.rest is not None:
            routes[route] = functools.partial(_call_default, run_rest_adapter, deps.client, card, reason=reason)
    return routes


async def _call_handler(
    handler: Any, client: TransportClient, card: OperationCard, params: Dict[str, Any]
) -> ResultEnvelope:
    return await handler(client, params, card)


async def _call_default(
    adapter: Any, client: TransportClient, card: OperationCard, params: Dict[str, Any], **kwargs: Any
) -> ResultEnvelope:
    return await adapter(client, params, card, **kwargs)


async def execute_task(request: TaskLike, deps: ExecutionDeps) -> ResultEnvelope:
    """
    Execute one capability request.

    Args:
        request: ``{task, input}`` as a `TaskRequest` or a plain mapping.
        deps: Collaborators and caller-owned state.

    Returns:
        Exactly one envelope. An unknown capability yields a ``VALIDATION``
        envelope without any transport being attempted.
    """
    task = to_task_request(request)
    with trace_span("capability_router.execute_task", capability_id=task.task):
        card = deps.registry.find(task.task)
        if card is None:
            logger.debug("execute_task: unknown capability %s", task.task)
            return unsupported_task_envelope(task.task, deps)
        envelope = await execute(
            card,
            task.input,
            preflight=deps.preflight,
            routes=build_routes(card, deps),
            retry=deps.retry,
            trace=deps.trace,
        )
        logger.debug(
            "execute_task(%s): ok=%s route=%s",
            task.task,
            envelope.ok,
            envelope.meta.route_used.value if envelope.meta.route_used else None,
        )
        return envelope
