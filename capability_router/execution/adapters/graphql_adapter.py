from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from capability_router.errors.codes import ErrorCode
from capability_router.execution.normalizer import envelope_error, normalize_error, normalize_result
from capability_router.gql.batch import extract_root_field_name, parse_operation
from capability_router.gql.document_registry import DocumentRegistry
from capability_router.gql.resolution_cache import ResolutionCache, build_cache_key
from capability_router.gql.resolve import apply_inject, build_mutation_vars, lookup_variables
from capability_router.registry.types import OperationCard, ResolutionConfig
from capability_router.schemas.envelope import ResultEnvelope, RouteReasonCode, RouteSource
from capability_router.transport.client import TransportClient
from capability_router.transport.graphql import HttpxGraphqlTransport

logger = logging.getLogger(__name__)


async def _resolve_variables(
    transport: HttpxGraphqlTransport,
    capability_id: str,
    resolution: ResolutionConfig,
    document: str,
    params: Dict[str, Any],
    documents: DocumentRegistry,
    cache: Optional[ResolutionCache],
) -> Dict[str, Any]:
    lookup = resolution.lookup
    variables = lookup_variables(lookup, params)
    key = build_cache_key(lookup.operation_name, variables)
    result = cache.get(key) if cache is not None else None
    if result is None:
        logger.debug("run_graphql_adapter(%s): lookup %s", capability_id, lookup.operation_name)
        lookup_document = documents.resolve(lookup)
        result = await transport.query(lookup_document, variables)
        root = extract_root_field_name(lookup_document)
        if cache is not None and root is not None and result.get(root) is not None:
            cache.set(key, result)
    resolved = apply_inject(result, params, resolution.inject)
    return build_mutation_vars(document, params, resolved)


async def run_graphql_adapter(
    client: TransportClient,
    params: Dict[str, Any],
    card: OperationCard,
    *,
    documents: DocumentRegistry,
    reason: RouteReasonCode = RouteReasonCode.CARD_PREFERRED,
    resolution_cache: Optional[ResolutionCache] = None,
) -> ResultEnvelope:
    """Run the descriptor's GraphQL document with the input restricted to its declared variables.

    When the descriptor carries a resolution spec, its lookup runs first
    (through ``resolution_cache`` when given) and the injected values are
    merged into the variables.
    """
    route = RouteSource.GRAPHQL
    capability_id = card.capability_id
    if client.graphql is None or card.graphql is None:
        return normalize_error(
            envelope_error(
                ErrorCode.ADAPTER_UNSUPPORTED,
                f"Route 'graphql' is not implemented for task '{capability_id}'",
                {"route": route.value, "task": capability_id},
            ),
            route,
            capability_id=capability_id,
            reason=reason,
        )
    try:
        document = documents.resolve(card.graphql)
        if card.graphql.resolution is not None:
            variables = await _resolve_variables(
                client.graphql, capability_id, card.graphql.resolution, document, params, documents, resolution_cache
            )
        else:
            declared = parse_operation(document).variable_names
            variables = {name: params[name] for name in declared if name in params}
        logger.debug("run_graphql_adapter(%s): %s", capability_id, card.graphql.operation_name)
        data = await client.graphql.query(document, variables)
    except Exception as e:
        return normalize_error(e, route, capability_id=capability_id, reason=reason)
    return normalize_result(data, route, capability_id=capability_id, reason=reason)
