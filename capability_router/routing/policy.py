from __future__ import annotations

from typing import Tuple

from capability_router.schemas.envelope import RouteReasonCode, RouteSource

ROUTE_PREFERENCE_ORDER: Tuple[RouteSource, ...] = (RouteSource.GRAPHQL, RouteSource.CLI, RouteSource.REST)

DEFAULT_REASON = RouteReasonCode.DEFAULT_POLICY


def choose_route() -> RouteSource:
    """Route reported for requests that never reach route planning."""
    return ROUTE_PREFERENCE_ORDER[0]
