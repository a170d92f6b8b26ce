"""Preflight Prober: decides whether a transport is usable right now.

Structured-query and REST transports need a non-empty credential. The CLI
transport trusts caller-supplied availability/authentication flags; without
them it runs a cheap ``<binary> --version`` probe whose outcome is cached for
a short TTL. Concurrent callers share one in-flight probe per transport.

A prober instance is owned by the caller and may be shared across engine
calls; nothing here is module-level state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, Tuple

from capability_router.errors.codes import ErrorCode
from capability_router.errors.exceptions import CliCommandError
from capability_router.errors.retryability import is_retryable_error_code
from capability_router.schemas.envelope import RouteSource
from capability_router.transport.cli_runner import CliRunResult

Clock = Callable[[], float]


class CliRunner(Protocol):
    async def run(self, binary: str, args: Sequence[str], timeout: Optional[float] = None) -> CliRunResult: ...


@dataclass(frozen=True)
class PreflightResult:
    ok: bool
    code: Optional[ErrorCode] = None
    message: str = ""
    retryable: bool = False
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def passed(cls) -> "PreflightResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None) -> "PreflightResult":
        return cls(ok=False, code=code, message=message, retryable=is_retryable_error_code(code), details=details)


Preflight = Callable[[RouteSource], Awaitable[PreflightResult]]


class PreflightProber:
    """
    Per-transport availability checks with TTL caching and probe de-duplication.

    Args:
        runner: Subprocess runner used for the CLI probe; without one the CLI
            transport is reported unsupported.
        cli_binary: Executable probed with ``--version``.
        ttl_seconds: Lifetime of a cached probe outcome (ok or failed).
        probe_timeout: Timeout in seconds for one probe invocation.
        clock: Monotonic clock; injectable for tests.
    """

    def __init__(
        self,
        *,
        runner: Optional[CliRunner] = None,
        cli_binary: str = "gh",
        ttl_seconds: float = 30.0,
        probe_timeout: float = 1.5,
        clock: Clock = time.monotonic,
    ) -> None:
        self._runner = runner
        self._binary = cli_binary
        self._ttl = ttl_seconds
        self._probe_timeout = probe_timeout
        self._clock = clock
        self._cache: Dict[RouteSource, Tuple[PreflightResult, float]] = {}
        self._in_flight: Dict[RouteSource, "asyncio.Future[PreflightResult]"] = {}
        self._logger = logging.getLogger(__name__)

    async def check(
        self,
        route: RouteSource,
        *,
        token: Optional[str] = None,
        cli_available: Optional[bool] = None,
        cli_authenticated: Optional[bool] = None,
    ) -> PreflightResult:
        if route in (RouteSource.GRAPHQL, RouteSource.REST):
            if not (token or "").strip():
                return PreflightResult.failed(
                    ErrorCode.AUTH,
                    f"GitHub token is required for the {route.value} route",
                    {"route": route.value},
                )
            return PreflightResult.passed()

        if cli_available is False:
            return PreflightResult.failed(
                ErrorCode.ADAPTER_UNSUPPORTED,
                f"{self._binary} CLI is not available",
                {"route": route.value},
            )
        if cli_authenticated is False:
            return PreflightResult.failed(
                ErrorCode.AUTH,
                f"{self._binary} CLI is not authenticated",
                {"route": route.value},
            )
        if cli_available is True and cli_authenticated is True:
            return PreflightResult.passed()
        return await self.probe_cli()

    async def probe_cli(self) -> PreflightResult:
        """Return the cached CLI probe outcome, probing at most once concurrently.

        Raises:
            Exception: Whatever the probe itself raised outside of the expected
                subprocess failures; the in-flight marker is cleared and any
                previously cached outcome is left untouched.
        """
        route = RouteSource.CLI
        cached = self._cache.get(route)
        if cached is not None and cached[1] > self._clock():
            self._logger.debug("PreflightProber.probe_cli: cache hit ok=%s", cached[0].ok)
            return cached[0]

        pending = self._in_flight.get(route)
        if pending is None:
            pending = asyncio.ensure_future(self._run_cli_probe())
            self._in_flight[route] = pending

            def _clear(fut: "asyncio.Future[PreflightResult]") -> None:
                if self._in_flight.get(route) is fut:
                    del self._in_flight[route]

            pending.add_done_callback(_clear)
        else:
            self._logger.debug("PreflightProber.probe_cli: joining in-flight probe")
        return await asyncio.shield(pending)

    async def _run_cli_probe(self) -> PreflightResult:
        if self._runner is None:
            return PreflightResult.failed(ErrorCode.ADAPTER_UNSUPPORTED, "No CLI runner configured", {"route": "cli"})
        try:
            run = await self._runner.run(self._binary, ["--version"], self._probe_timeout)
        except CliCommandError as e:
            outcome = PreflightResult.failed(ErrorCode.ADAPTER_UNSUPPORTED, str(e), {"route": "cli"})
        else:
            if run.exit_code == 0:
                outcome = PreflightResult.passed()
            else:
                outcome = PreflightResult.failed(
                    ErrorCode.ADAPTER_UNSUPPORTED,
                    f"{self._binary} --version exited with code {run.exit_code}",
                    {"route": "cli", "exit_code": run.exit_code},
                )
        expires = self._clock() + self._ttl
        self._cache[RouteSource.CLI] = (outcome, expires)
        self._logger.debug("PreflightProber: cli probe ok=%s", outcome.ok)
        return outcome

    def invalidate(self, route: Optional[RouteSource] = None) -> None:
        if route is None:
            self._cache.clear()
        else:
            self._cache.pop(route, None)
