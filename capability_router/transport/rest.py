from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from capability_router.errors.exceptions import RestApiError


class HttpxRestTransport:
    """
    Thin async client for a hypertext REST API.

    Returns decoded JSON bodies; an empty body decodes to ``None``. Non-2xx
    responses raise `RestApiError` carrying the status code and body text.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        self._logger.debug("HttpxRestTransport.request: %s %s", method.upper(), url)
        try:
            r = await self._client.request(
                method.upper(),
                url,
                headers=self._headers(),
                params={k: str(v) for k, v in (params or {}).items()} or None,
                json=json,
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RestApiError(
                f"REST {method.upper()} {path} failed: {e.response.status_code}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        if not r.content:
            return None
        return r.json()

    async def aclose(self) -> None:
        await self._client.aclose()
