from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from capability_router.core.config import RouterSettings

from .cli_runner import SafeCliRunner
from .graphql import HttpxGraphqlTransport
from .rest import HttpxRestTransport


@dataclass
class TransportClient:
    """Bundle of the three backend transports; any member may be absent."""

    graphql: Optional[HttpxGraphqlTransport] = None
    cli: Optional[SafeCliRunner] = None
    rest: Optional[HttpxRestTransport] = None
    cli_binary: str = "gh"

    @classmethod
    def from_settings(cls, config: RouterSettings) -> "TransportClient":
        return cls(
            graphql=HttpxGraphqlTransport(
                config.graphql_url, token=config.github_token, timeout=config.request_timeout_seconds
            ),
            cli=SafeCliRunner(timeout=config.cli_timeout_seconds, max_output_bytes=config.cli_max_output_bytes),
            rest=HttpxRestTransport(
                config.rest_base_url, token=config.github_token, timeout=config.request_timeout_seconds
            ),
            cli_binary=config.cli_binary,
        )

    async def aclose(self) -> None:
        if self.graphql is not None:
            await self.graphql.aclose()
        if self.rest is not None:
            await self.rest.aclose()
