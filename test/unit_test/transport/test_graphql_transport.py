from __future__ import annotations

import httpx
import pytest

from capability_router.errors import GraphqlResponseError, GraphqlTransportError
from capability_router.transport import HttpxGraphqlTransport

URL = "https://mock.api/graphql"


def _transport(handler) -> HttpxGraphqlTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxGraphqlTransport(URL, token="t0ken", client=client)


@pytest.mark.asyncio
async def test_execute_posts_query_and_variables(graphql_recorder) -> None:
    recorder = graphql_recorder([{"data": {"viewer": {"login": "octo"}}}])
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return recorder.handler(request)

    gql = _transport(handler)
    response = await gql.execute("query Viewer { viewer { login } }", {"a": 1})
    assert response.data == {"viewer": {"login": "octo"}}
    assert response.errors == []
    assert recorder.requests == [{"query": "query Viewer { viewer { login } }", "variables": {"a": 1}}]
    assert seen["auth"] == "Bearer t0ken"
    await gql.aclose()


@pytest.mark.asyncio
async def test_execute_keeps_partial_data_and_errors(graphql_recorder) -> None:
    payload = {"data": {"step0": {"id": 1}, "step1": None}, "errors": [{"message": "nope", "path": ["step1"]}]}
    gql = _transport(graphql_recorder([payload]).handler)
    response = await gql.execute("query Q { a }")
    assert response.data == {"step0": {"id": 1}, "step1": None}
    assert response.errors == [{"message": "nope", "path": ["step1"]}]


@pytest.mark.asyncio
async def test_query_raises_on_protocol_errors(graphql_recorder) -> None:
    gql = _transport(graphql_recorder([{"data": None, "errors": [{"message": "Bad credentials"}]}]).handler)
    with pytest.raises(GraphqlResponseError) as ei:
        await gql.query("query Q { a }")
    assert str(ei.value) == "Bad credentials"
    assert ei.value.errors == [{"message": "Bad credentials"}]
    assert ei.value.data is None


@pytest.mark.asyncio
async def test_query_returns_empty_dict_without_data(graphql_recorder) -> None:
    gql = _transport(graphql_recorder([{}]).handler)
    assert await gql.query("query Q { a }") == {}


@pytest.mark.asyncio
async def test_http_status_errors_become_transport_errors(graphql_recorder) -> None:
    gql = _transport(graphql_recorder([(502, {"message": "bad gateway"})]).handler)
    with pytest.raises(GraphqlTransportError) as ei:
        await gql.execute("query Q { a }")
    assert ei.value.status_code == 502
    assert "bad gateway" in ei.value.details


@pytest.mark.asyncio
async def test_non_object_payload_is_rejected() -> None:
    gql = _transport(lambda request: httpx.Response(200, json=[1, 2]))
    with pytest.raises(GraphqlTransportError, match="Unexpected response shape"):
        await gql.execute("query Q { a }")


@pytest.mark.asyncio
async def test_network_errors_propagate(graphql_recorder) -> None:
    gql = _transport(graphql_recorder([httpx.ConnectError("connection refused")]).handler)
    with pytest.raises(httpx.ConnectError):
        await gql.execute("query Q { a }")


def test_no_authorization_header_without_token() -> None:
    gql = HttpxGraphqlTransport(URL)
    assert "Authorization" not in gql._headers()
