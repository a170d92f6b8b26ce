"""Chain Orchestrator.

Executes an ordered list of capability requests and returns one
`ChainResult` whose ``results`` mirror the request order.

GraphQL-preferred steps with a batchable document run as a two-phase
pipeline tracked by a `ChainState`:

- RESOLUTION: lookups needed by resolution specs are served from the
  `ResolutionCache` where possible; the remaining distinct lookups are merged
  into one query and executed once, and their results are cached.
- MUTATION: every remaining batched step gets its variables (caller input
  merged with injected values) and all steps are merged into one mutation
  document (and one query document for query-typed steps).

Protocol errors are attributed to a step when ``path[0]`` names its alias;
any other error (no path, non-string leading segment, unknown alias, or a
response without data) fails every step of that batch. Steps on other
transports are dispatched concurrently through `execute_task`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from capability_router.core.monitoring import trace_span
from capability_router.errors.codes import ErrorCode
from capability_router.errors.exceptions import (
    BatchBuildError,
    DocumentNotFoundError,
    GraphqlTransportError,
    ResolutionError,
)
from capability_router.errors.map_error import GraphqlErrors
from capability_router.execution.normalizer import envelope_error, to_envelope_error
from capability_router.gql.batch import (
    BatchDocument,
    BatchStep,
    build_batch_mutation,
    build_batch_query,
    extract_root_field_name,
    parse_operation,
)
from capability_router.gql.resolution_cache import build_cache_key
from capability_router.gql.resolve import apply_inject, build_mutation_vars, lookup_variables
from capability_router.registry.types import OperationCard, ResolutionConfig
from capability_router.schemas.envelope import (
    AttemptRecord,
    ChainMeta,
    ChainResult,
    ChainStepResult,
    EnvelopeError,
    EnvelopeMeta,
    RouteReasonCode,
    RouteSource,
    TaskRequest,
)
from capability_router.transport.graphql import GraphqlResponse, HttpxGraphqlTransport
from capability_router.validation.schema_validator import validate_input, validate_output

from .engine import ExecutionDeps, TaskLike, execute_task, to_task_request, unsupported_task_error
from .policy import DEFAULT_REASON, choose_route

logger = logging.getLogger(__name__)

MIXED_ROUTE = "mixed"
PREFLIGHT_SIBLING_MESSAGE = "Chain pre-flight failed: another step was rejected"
PHASE1_FAILURE_PREFIX = "Phase 1 (resolution) failed"

Rejection = Tuple[EnvelopeError, RouteReasonCode]


class ChainPhase(str, Enum):
    RESOLUTION = "resolution"
    MUTATION = "mutation"
    DONE = "done"


@dataclass
class ChainStep:
    index: int
    request: TaskRequest
    card: Optional[OperationCard] = None
    batched: bool = False
    document: str = ""
    kind: str = ""
    root_field: str = ""
    lookup_document: str = ""
    lookup_root_field: str = ""
    lookup_vars: Dict[str, Any] = field(default_factory=dict)
    lookup_key: Optional[str] = None
    lookup_result: Optional[Any] = None
    resolved: Dict[str, Any] = field(default_factory=dict)
    outcome: Optional[ChainStepResult] = None

    @property
    def alias(self) -> str:
        return f"step{self.index}"

    @property
    def resolution(self) -> Optional[ResolutionConfig]:
        if self.card is None or self.card.graphql is None:
            return None
        return self.card.graphql.resolution

    @property
    def capability_id(self) -> str:
        return self.card.capability_id if self.card is not None else self.request.task


@dataclass
class ChainState:
    """Per-chain state machine; each step's outcome is written at most once."""

    steps: List[ChainStep]
    trace: bool = False
    reason: Optional[RouteReasonCode] = None
    phase: ChainPhase = ChainPhase.RESOLUTION
    rejected: bool = False

    def advance(self, phase: ChainPhase) -> None:
        logger.debug("ChainState: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def pending(self) -> List[ChainStep]:
        return [s for s in self.steps if s.batched and s.outcome is None]

    def _meta(
        self,
        step: ChainStep,
        route: RouteSource,
        reason: Optional[RouteReasonCode],
        attempt: Optional[AttemptRecord],
    ) -> EnvelopeMeta:
        return EnvelopeMeta(
            capability_id=step.capability_id,
            route_used=route,
            reason=reason or self.reason or RouteReasonCode.CARD_PREFERRED,
            attempts=[attempt] if self.trace and attempt is not None else None,
        )

    def fail(
        self,
        step: ChainStep,
        error: EnvelopeError,
        *,
        route: RouteSource = RouteSource.GRAPHQL,
        reason: Optional[RouteReasonCode] = None,
        attempted: bool = True,
    ) -> None:
        if step.outcome is not None:
            return
        attempt = AttemptRecord(route=route, status="error", error_code=error.code) if attempted else None
        step.outcome = ChainStepResult(
            task=step.request.task,
            ok=False,
            error=error,
            meta=self._meta(step, route, reason, attempt),
        )

    def succeed(self, step: ChainStep, data: Any) -> None:
        if step.outcome is not None:
            return
        attempt = AttemptRecord(route=RouteSource.GRAPHQL, status="success")
        step.outcome = ChainStepResult(
            task=step.request.task,
            ok=True,
            data=data,
            meta=self._meta(step, RouteSource.GRAPHQL, None, attempt),
        )

    def results(self) -> List[ChainStepResult]:
        out: List[ChainStepResult] = []
        for step in self.steps:
            if step.outcome is None:
                raise RuntimeError(f"Chain step {step.index} ({step.request.task}) has no outcome")
            out.append(step.outcome)
        return out


def chain_route_used(results: Sequence[ChainStepResult]) -> str:
    """The transport every step used, or ``"mixed"``."""
    routes = {r.meta.route_used if r.meta else None for r in results}
    if len(routes) == 1:
        only = next(iter(routes))
        if only is not None:
            return only.value
    return MIXED_ROUTE


def build_chain_result(results: List[ChainStepResult]) -> ChainResult:
    succeeded = sum(1 for r in results if r.ok)
    return ChainResult(
        status=ChainResult.status_for(results),
        results=results,
        meta=ChainMeta(
            route_used=chain_route_used(results),
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
        ),
    )


def _check_step(step: ChainStep, card: OperationCard, deps: ExecutionDeps) -> Optional[Rejection]:
    """Reject ``step`` or, when it can take part in batching, record its documents on it."""
    routing = card.routing
    graphql = card.graphql
    if routing.preferred == RouteSource.GRAPHQL and graphql is None and not routing.fallbacks:
        message = f"Capability {card.capability_id} has no graphql configuration and no fallback route"
        return envelope_error(ErrorCode.VALIDATION, message), RouteReasonCode.CAPABILITY_LIMIT
    if (
        graphql is None
        or routing.preferred != RouteSource.GRAPHQL
        or deps.client.graphql is None
        or deps.adapters.has(RouteSource.GRAPHQL, card.capability_id)
    ):
        return None

    checked = validate_input(card, step.request.input)
    if not checked.ok:
        return envelope_error(ErrorCode.VALIDATION, checked.message, checked.details), RouteReasonCode.INPUT_VALIDATION
    try:
        document = deps.documents.resolve(graphql)
        kind = parse_operation(document).kind
        lookup_document = deps.documents.resolve(graphql.resolution.lookup) if graphql.resolution else ""
    except (DocumentNotFoundError, BatchBuildError) as e:
        return envelope_error(ErrorCode.VALIDATION, str(e)), RouteReasonCode.CAPABILITY_LIMIT

    root_field = extract_root_field_name(document)
    if root_field is None or kind not in ("query", "mutation"):
        # dispatched on its own through execute_task
        return None
    if graphql.resolution is not None:
        lookup = graphql.resolution.lookup
        lookup_root = extract_root_field_name(lookup_document)
        if lookup_root is None:
            message = f"Lookup {lookup.operation_name} must select exactly one root field"
            return envelope_error(ErrorCode.VALIDATION, message), RouteReasonCode.CAPABILITY_LIMIT
        step.lookup_document = lookup_document
        step.lookup_root_field = lookup_root
        step.lookup_vars = lookup_variables(lookup, step.request.input)
        step.lookup_key = build_cache_key(lookup.operation_name, step.lookup_vars)

    step.batched = True
    step.document = document
    step.kind = kind
    step.root_field = root_field
    return None


def prepare_chain(requests: Sequence[TaskRequest], deps: ExecutionDeps) -> ChainState:
    """Pre-flight pass: look every step up and reject the chain before any network work.

    A rejected step keeps its own error; every other step is failed with
    `PREFLIGHT_SIBLING_MESSAGE`.
    """
    state = ChainState(
        steps=[ChainStep(index=i, request=r) for i, r in enumerate(requests)],
        trace=deps.trace,
        reason=deps.reason,
    )
    rejected: Dict[int, Tuple[EnvelopeError, RouteReasonCode, RouteSource]] = {}
    for step in state.steps:
        step.card = deps.registry.find(step.request.task)
        if step.card is None:
            rejected[step.index] = (
                unsupported_task_error(step.request.task),
                deps.reason or DEFAULT_REASON,
                choose_route(),
            )
            continue
        rejection = _check_step(step, step.card, deps)
        if rejection is not None:
            rejected[step.index] = (rejection[0], rejection[1], step.card.routing.preferred)

    if not rejected:
        return state

    state.rejected = True
    for step in state.steps:
        if step.index in rejected:
            error, reason, route = rejected[step.index]
            state.fail(step, error, route=route, reason=reason, attempted=False)
        else:
            route = step.card.routing.preferred if step.card is not None else choose_route()
            sibling = envelope_error(ErrorCode.VALIDATION, PREFLIGHT_SIBLING_MESSAGE)
            state.fail(step, sibling, route=route, attempted=False)
    logger.debug("prepare_chain: rejected steps %s", sorted(rejected))
    return state


def _attribute_errors(
    response: GraphqlResponse, aliases: Sequence[str]
) -> Tuple[Dict[str, List[Mapping[str, Any]]], List[Mapping[str, Any]]]:
    by_alias: Dict[str, List[Mapping[str, Any]]] = {}
    unattributed: List[Mapping[str, Any]] = []
    for err in response.errors:
        path = err.get("path")
        head = path[0] if isinstance(path, list) and path else None
        if isinstance(head, str) and head in aliases:
            by_alias.setdefault(head, []).append(err)
        else:
            unattributed.append(err)
    return by_alias, unattributed


def _batch_failure(response: GraphqlResponse, unattributed: List[Mapping[str, Any]]) -> EnvelopeError:
    if unattributed:
        return to_envelope_error(GraphqlErrors.of(unattributed))
    if response.errors:
        return to_envelope_error(GraphqlErrors.of(response.errors))
    return envelope_error(ErrorCode.SERVER, "GraphQL response carried no data")


def _phase1_error(error: EnvelopeError) -> EnvelopeError:
    return error.model_copy(update={"message": f"{PHASE1_FAILURE_PREFIX}: {error.message}"})


async def _fetch_lookups(
    state: ChainState,
    deps: ExecutionDeps,
    transport: HttpxGraphqlTransport,
    misses: Dict[str, List[ChainStep]],
) -> None:
    """Run every uncached lookup in one batched query and cache what comes back."""
    aliases = {key: f"lookup{i}" for i, key in enumerate(misses)}
    waiting = [s for steps in misses.values() for s in steps]
    try:
        batch = build_batch_query(
            [
                BatchStep(alias=aliases[key], document=steps[0].lookup_document, variables=steps[0].lookup_vars)
                for key, steps in misses.items()
            ]
        )
    except BatchBuildError as e:
        for step in waiting:
            state.fail(step, _phase1_error(envelope_error(ErrorCode.VALIDATION, str(e))))
        return

    with trace_span("capability_router.chain.resolution", lookups=len(misses)):
        try:
            response = await transport.execute(batch.document, batch.variables)
        except Exception as e:
            error = _phase1_error(to_envelope_error(e))
            logger.warning("Phase 1 batch failed: %s", error.message)
            for step in waiting:
                state.fail(step, error)
            return

    by_alias, unattributed = _attribute_errors(response, list(aliases.values()))
    if unattributed or response.data is None:
        error = _phase1_error(_batch_failure(response, unattributed))
        logger.warning("Phase 1 batch failed: %s", error.message)
        for step in waiting:
            state.fail(step, error)
        return

    cache = deps.resolution_cache
    for key, steps in misses.items():
        alias = aliases[key]
        if alias in by_alias:
            error = _phase1_error(to_envelope_error(GraphqlErrors.of(by_alias[alias])))
        elif alias not in response.data:
            error = envelope_error(ErrorCode.UNKNOWN, f"{PHASE1_FAILURE_PREFIX}: missing lookup result")
        else:
            value = response.data[alias]
            result = {steps[0].lookup_root_field: value}
            if cache is not None and value is not None:
                cache.set(key, result)
            for step in steps:
                step.lookup_result = result
            continue
        for step in steps:
            state.fail(step, error)


async def _run_resolution_phase(state: ChainState, deps: ExecutionDeps, transport: HttpxGraphqlTransport) -> None:
    needing = [s for s in state.pending() if s.lookup_key is not None]
    cache = deps.resolution_cache
    misses: Dict[str, List[ChainStep]] = {}
    for step in needing:
        key = step.lookup_key or ""
        cached = cache.get(key) if cache is not None else None
        if cached is not None:
            step.lookup_result = cached
        else:
            misses.setdefault(key, []).append(step)
    logger.debug("Phase 1: %d lookups needed, %d cache misses", len(needing), len(misses))
    if misses:
        await _fetch_lookups(state, deps, transport, misses)

    for step in needing:
        resolution = step.resolution
        if step.outcome is not None or resolution is None:
            continue
        try:
            step.resolved = apply_inject(step.lookup_result, step.request.input, resolution.inject)
        except ResolutionError as e:
            state.fail(step, envelope_error(ErrorCode.VALIDATION, str(e)))


async def _run_phase2_batch(
    state: ChainState,
    transport: HttpxGraphqlTransport,
    steps: List[ChainStep],
    builder: Callable[[Sequence[BatchStep]], BatchDocument],
) -> None:
    try:
        batch = builder(
            [
                BatchStep(
                    alias=s.alias,
                    document=s.document,
                    variables=build_mutation_vars(s.document, s.request.input, s.resolved),
                )
                for s in steps
            ]
        )
    except BatchBuildError as e:
        for step in steps:
            state.fail(step, envelope_error(ErrorCode.VALIDATION, str(e)))
        return

    with trace_span("capability_router.chain.mutation", steps=len(steps)):
        try:
            response = await transport.execute(batch.document, batch.variables)
        except Exception as e:
            error = to_envelope_error(e)
            logger.warning("Phase 2 batch failed: %s", error.message)
            for step in steps:
                state.fail(step, error)
            return

    by_alias, unattributed = _attribute_errors(response, [s.alias for s in steps])
    if unattributed or response.data is None:
        error = _batch_failure(response, unattributed)
        logger.warning("Phase 2 batch failed for all %d steps: %s", len(steps), error.message)
        for step in steps:
            state.fail(step, error)
        return

    for step in steps:
        if step.alias in by_alias:
            state.fail(step, to_envelope_error(GraphqlErrors.of(by_alias[step.alias])))
            continue
        if step.alias not in response.data:
            state.fail(step, envelope_error(ErrorCode.UNKNOWN, f"missing mutation result for {step.alias}"))
            continue
        data = {step.root_field: response.data[step.alias]}
        output = validate_output(step.card, data) if step.card is not None else None
        if output is not None and not output.ok:
            server_error = envelope_error(ErrorCode.SERVER, output.message, output.details)
            state.fail(step, server_error, reason=RouteReasonCode.OUTPUT_VALIDATION)
        else:
            state.succeed(step, data)


async def _dispatch(steps: Sequence[ChainStep], deps: ExecutionDeps) -> None:
    envelopes = await asyncio.gather(*(execute_task(s.request, deps) for s in steps))
    for step, envelope in zip(steps, envelopes):
        step.outcome = ChainStepResult.from_envelope(step.request.task, envelope)


async def _run_batched(state: ChainState, deps: ExecutionDeps) -> None:
    if not state.pending():
        state.advance(ChainPhase.DONE)
        return

    check = await deps.preflight(RouteSource.GRAPHQL)
    if not check.ok:
        logger.debug("Batched steps dispatched one by one: %s", check.message)
        await _dispatch(state.pending(), deps)
        state.advance(ChainPhase.DONE)
        return

    transport = deps.client.graphql
    if transport is None:
        raise GraphqlTransportError("Batched chain steps require a GraphQL transport")

    await _run_resolution_phase(state, deps, transport)
    state.advance(ChainPhase.MUTATION)

    remaining = state.pending()
    mutations = [s for s in remaining if s.kind == "mutation"]
    queries = [s for s in remaining if s.kind == "query"]
    logger.debug("Phase 2: %d mutations, %d queries", len(mutations), len(queries))
    if mutations:
        await _run_phase2_batch(state, transport, mutations, build_batch_mutation)
    if queries:
        await _run_phase2_batch(state, transport, queries, build_batch_query)
    state.advance(ChainPhase.DONE)


async def execute_tasks(requests: Sequence[TaskLike], deps: ExecutionDeps) -> ChainResult:
    """
    Execute an ordered chain of capability requests.

    Args:
        requests: Ordered ``{task, input}`` requests.
        deps: Collaborators and caller-owned state.

    Returns:
        A `ChainResult` with exactly one entry per request, in request order.

    Raises:
        ValueError: If ``requests`` is empty.
    """
    tasks = [to_task_request(r) for r in requests]
    if not tasks:
        raise ValueError("execute_tasks requires at least one request")

    with trace_span("capability_router.execute_tasks", steps=len(tasks)):
        if len(tasks) == 1:
            envelope = await execute_task(tasks[0], deps)
            return build_chain_result([ChainStepResult.from_envelope(tasks[0].task, envelope)])

        state = prepare_chain(tasks, deps)
        if state.rejected:
            state.advance(ChainPhase.DONE)
            return build_chain_result(state.results())

        independent = [s for s in state.steps if not s.batched]
        logger.debug(
            "execute_tasks: %d batched, %d independent", len(state.steps) - len(independent), len(independent)
        )
        dispatched = asyncio.create_task(_dispatch(independent, deps))
        try:
            await _run_batched(state, deps)
        except BaseException:
            dispatched.cancel()
            await asyncio.gather(dispatched, return_exceptions=True)
            raise
        await dispatched

        result = build_chain_result(state.results())
        logger.debug("execute_tasks: status=%s route=%s", result.status, result.meta.route_used)
        return result
