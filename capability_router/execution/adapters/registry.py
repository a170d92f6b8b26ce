from __future__ import annotations

"""Handler registry.

Capability-specific handler code registers one coroutine per
``(transport, capability_id)`` pair. The routing layer prefers a registered
handler over the default adapter for that transport.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Tuple

from capability_router.registry.types import OperationCard
from capability_router.schemas.envelope import ResultEnvelope, RouteSource

if TYPE_CHECKING:
    from capability_router.transport.client import TransportClient

Handler = Callable[["TransportClient", Dict[str, Any], OperationCard], Awaitable[ResultEnvelope]]


class AdapterRegistry:
    """
    In-memory mapping of ``(route, capability_id)`` to handler coroutines.

    Notes:
        - ``register`` refuses to overwrite an existing mapping unless ``replace`` is set.
        - ``get`` returns None when nothing is registered.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Tuple[RouteSource, str], Handler] = {}

    def register(self, route: RouteSource, capability_id: str, handler: Handler, *, replace: bool = False) -> None:
        """
        Register a handler.

        Args:
            route: Transport the handler implements.
            capability_id: Capability the handler serves.
            handler: ``async handler(client, params, card) -> ResultEnvelope``.
            replace: Overwrite an existing registration instead of raising.

        Raises:
            ValueError: If a handler is already registered and ``replace`` is False.
        """
        key = (RouteSource(route), capability_id)
        if key in self._handlers and not replace:
            raise ValueError(f"Handler already registered for {key[0].value}:{capability_id}")
        self._handlers[key] = handler

    def handler(self, route: RouteSource, capability_id: str) -> Callable[[Handler], Handler]:
        """Decorator form of `register`."""

        def _decorator(fn: Handler) -> Handler:
            self.register(route, capability_id, fn)
            return fn

        return _decorator

    def get(self, route: RouteSource, capability_id: str) -> Optional[Handler]:
        return self._handlers.get((RouteSource(route), capability_id))

    def has(self, route: RouteSource, capability_id: str) -> bool:
        return (RouteSource(route), capability_id) in self._handlers
