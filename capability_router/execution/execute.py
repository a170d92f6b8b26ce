"""Execution Engine: runs one capability request end-to-end.

Flow: validate input, plan routes, then for each planned route run the
preflight check and invoke the route's adapter up to the policy's attempt
limit. Success is checked against the output contract before it is returned.
Every adapter outcome (including raised exceptions) becomes an envelope; only
preflight exceptions propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from capability_router.core.config import RouterSettings
from capability_router.errors.codes import ErrorCode
from capability_router.registry.types import OperationCard
from capability_router.schemas.envelope import (
    AttemptRecord,
    EnvelopeError,
    ResultEnvelope,
    RouteReasonCode,
    RouteSource,
)
from capability_router.validation.schema_validator import validate_input, validate_output

from .normalizer import envelope_error, normalize_error
from .preflight import Preflight

logger = logging.getLogger(__name__)

Adapter = Callable[[Dict[str, Any]], Awaitable[ResultEnvelope]]

NO_ROUTE_MESSAGE = "No route produced a result"


@dataclass(frozen=True)
class RetryPolicy:
    """How often a route is retried on retryable failures, and how long to wait between tries."""

    max_attempts_per_route: int = 2
    backoff_initial: float = 0.0
    backoff_factor: float = 2.0
    backoff_max: float = 8.0

    @classmethod
    def from_settings(cls, config: RouterSettings) -> "RetryPolicy":
        return cls(
            max_attempts_per_route=config.max_attempts_per_route,
            backoff_initial=config.retry_backoff_seconds,
            backoff_factor=config.retry_backoff_factor,
        )

    def delay_for(self, retry_index: int) -> float:
        if self.backoff_initial <= 0:
            return 0.0
        return min(self.backoff_initial * (self.backoff_factor**retry_index), self.backoff_max)


def route_plan(card: OperationCard) -> List[RouteSource]:
    """``[preferred, *fallbacks]`` with duplicates removed, order preserved."""
    planned: List[RouteSource] = []
    for route in [card.routing.preferred, *card.routing.fallbacks]:
        if route not in planned:
            planned.append(route)
    return planned


def _finish(envelope: ResultEnvelope, attempts: List[AttemptRecord], trace: bool) -> ResultEnvelope:
    return envelope.with_attempts(attempts) if trace else envelope


async def execute(
    card: OperationCard,
    params: Mapping[str, Any],
    *,
    preflight: Preflight,
    routes: Mapping[RouteSource, Adapter],
    retry: Optional[RetryPolicy] = None,
    trace: bool = False,
) -> ResultEnvelope:
    """
    Execute ``card`` with ``params`` across its planned routes.

    Args:
        card: The capability's operation descriptor.
        params: Caller input.
        preflight: Availability check per route.
        routes: Adapter per route; a route may be absent.
        retry: Retry policy; defaults to two attempts per route without sleeping.
        trace: Attach the ordered attempt log to the returned envelope.

    Returns:
        Exactly one envelope.
    """
    policy = retry or RetryPolicy()
    capability_id = card.capability_id
    input_params = dict(params)

    checked = validate_input(card, input_params)
    if not checked.ok:
        logger.debug("execute(%s): input rejected: %s", capability_id, checked.message)
        return normalize_error(
            envelope_error(ErrorCode.VALIDATION, checked.message, checked.details),
            card.routing.preferred,
            capability_id=capability_id,
            reason=RouteReasonCode.INPUT_VALIDATION,
        )

    attempts: List[AttemptRecord] = []
    first_error: Optional[EnvelopeError] = None
    last_error: Optional[EnvelopeError] = None
    max_attempts = max(1, policy.max_attempts_per_route)

    for route in route_plan(card):
        check = await preflight(route)
        adapter = routes.get(route)
        if check.ok and adapter is None:
            check_error = envelope_error(
                ErrorCode.ADAPTER_UNSUPPORTED,
                f"Route '{route.value}' is not implemented for task '{capability_id}'",
                {"route": route.value, "task": capability_id},
            )
        elif not check.ok:
            check_error = EnvelopeError(
                code=check.code or ErrorCode.UNKNOWN,
                message=check.message,
                retryable=check.retryable,
                details=check.details,
            )
        else:
            check_error = None

        if check_error is not None:
            logger.debug("execute(%s): skipping route %s: %s", capability_id, route.value, check_error.message)
            attempts.append(AttemptRecord(route=route, status="skipped", error_code=check_error.code))
            last_error = check_error
            first_error = first_error or check_error
            continue

        for attempt in range(max_attempts):
            try:
                result = await adapter(input_params)
            except Exception as e:
                logger.debug("execute(%s): %s adapter raised %r", capability_id, route.value, e)
                result = normalize_error(e, route, capability_id=capability_id)
            attempts.append(
                AttemptRecord(
                    route=route,
                    status="success" if result.ok else "error",
                    error_code=result.error.code if result.error else None,
                )
            )

            if result.ok:
                output = validate_output(card, result.data)
                if not output.ok:
                    logger.debug("execute(%s): output rejected: %s", capability_id, output.message)
                    failed = normalize_error(
                        envelope_error(ErrorCode.SERVER, output.message, output.details),
                        route,
                        capability_id=capability_id,
                        reason=RouteReasonCode.OUTPUT_VALIDATION,
                    )
                    return _finish(failed, attempts, trace)
                return _finish(result, attempts, trace)

            error = result.error
            last_error = error
            first_error = first_error or error
            if error is None or not error.retryable:
                if error is not None and error.code is ErrorCode.ADAPTER_UNSUPPORTED:
                    break
                return _finish(result, attempts, trace)
            if attempt + 1 < max_attempts:
                delay = policy.delay_for(attempt)
                logger.debug(
                    "execute(%s): retrying %s after %s (attempt %d/%d, sleep %.2fs)",
                    capability_id,
                    route.value,
                    error.code.value,
                    attempt + 1,
                    max_attempts,
                    delay,
                )
                if delay > 0:
                    await asyncio.sleep(delay)

    final_error = last_error or first_error or envelope_error(ErrorCode.UNKNOWN, NO_ROUTE_MESSAGE)
    logger.debug("execute(%s): all routes exhausted: %s", capability_id, final_error.code.value)
    envelope = normalize_error(
        final_error,
        card.routing.preferred,
        capability_id=capability_id,
        reason=RouteReasonCode.CARD_FALLBACK,
    )
    return _finish(envelope, attempts, trace)
