from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import quote

from capability_router.errors.codes import ErrorCode
from capability_router.execution.normalizer import envelope_error, normalize_error, normalize_result
from capability_router.registry.types import OperationCard
from capability_router.schemas.envelope import ResultEnvelope, RouteReasonCode, RouteSource
from capability_router.transport.client import TransportClient

from ._template import MissingTemplateValue, fill, placeholders

logger = logging.getLogger(__name__)

_BODYLESS_METHODS = frozenset({"GET", "DELETE", "HEAD"})


async def run_rest_adapter(
    client: TransportClient,
    params: Dict[str, Any],
    card: OperationCard,
    *,
    reason: RouteReasonCode = RouteReasonCode.CARD_PREFERRED,
) -> ResultEnvelope:
    """Call the descriptor's first REST endpoint.

    Path placeholders are filled from input; the remaining input goes into
    the query string for body-less methods and into a JSON body otherwise.
    """
    route = RouteSource.REST
    capability_id = card.capability_id
    if client.rest is None or card.rest is None:
        return normalize_error(
            envelope_error(
                ErrorCode.ADAPTER_UNSUPPORTED,
                f"Route 'rest' is not implemented for task '{capability_id}'",
                {"route": route.value, "task": capability_id},
            ),
            route,
            capability_id=capability_id,
            reason=reason,
        )
    endpoint = card.rest.endpoints[0]
    method = endpoint.method.upper()
    try:
        path = fill(endpoint.path, params, encode=lambda v: quote(str(v), safe=""))
    except MissingTemplateValue as e:
        return normalize_error(
            envelope_error(ErrorCode.VALIDATION, f"Missing value for '{e.field}' in endpoint path"),
            route,
            capability_id=capability_id,
            reason=reason,
        )
    used = placeholders(endpoint.path)
    remaining = {k: v for k, v in params.items() if k not in used and v is not None}

    logger.debug("run_rest_adapter(%s): %s %s", capability_id, method, path)
    try:
        if method in _BODYLESS_METHODS:
            data = await client.rest.request(method, path, params=remaining or None)
        else:
            data = await client.rest.request(method, path, json=remaining or None)
    except Exception as e:
        return normalize_error(e, route, capability_id=capability_id, reason=reason)
    return normalize_result(data, route, capability_id=capability_id, reason=reason)
