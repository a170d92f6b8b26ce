from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx

from capability_router.errors.exceptions import GraphqlResponseError, GraphqlTransportError


@dataclass(frozen=True)
class GraphqlResponse:
    data: Optional[Dict[str, Any]] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)


class HttpxGraphqlTransport:
    """
    Async HTTP client for a GraphQL endpoint.

    Responsibilities:
    - execute: POST a document and return the raw ``{data, errors}`` payload
    - query: same, but raise `GraphqlResponseError` when errors are present

    Batched execution uses `execute` so that partial data and per-alias
    errors can be attributed back to the individual steps.
    """

    def __init__(
        self,
        url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.token = token
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def execute(self, document: str, variables: Optional[Mapping[str, Any]] = None) -> GraphqlResponse:
        self._logger.debug(
            "HttpxGraphqlTransport.execute: POST %s vars_keys=%s", self.url, sorted((variables or {}).keys())
        )
        try:
            r = await self._client.post(
                self.url,
                headers=self._headers(),
                json={"query": document, "variables": dict(variables or {})},
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GraphqlTransportError(
                f"GraphQL request failed: {e.response.status_code}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        payload = r.json()
        if not isinstance(payload, dict):
            raise GraphqlTransportError(
                "Unexpected response shape from GraphQL endpoint", status_code=r.status_code, details=payload
            )
        data = payload.get("data")
        errors = payload.get("errors") or []
        response = GraphqlResponse(
            data=data if isinstance(data, dict) else None,
            errors=[e for e in errors if isinstance(e, dict)],
        )
        self._logger.debug(
            "HttpxGraphqlTransport.execute: data=%s errors=%d", response.data is not None, len(response.errors)
        )
        return response

    async def query(self, document: str, variables: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        response = await self.execute(document, variables)
        if response.errors:
            raise GraphqlResponseError(response.errors, data=response.data)
        return response.data or {}

    async def aclose(self) -> None:
        await self._client.aclose()
