from __future__ import annotations

import copy
import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import pytest

from capability_router.gql.document_registry import DocumentRegistry
from capability_router.registry.registry import OperationRegistry
from capability_router.registry.types import OperationCard

ISSUE_VIEW_DOC = """query IssueView($owner: String!, $name: String!, $issueNumber: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $issueNumber) { id title state }
  }
}"""

ISSUE_CLOSE_DOC = """mutation IssueClose($issueId: ID!) {
  closeIssue(input: {issueId: $issueId}) {
    issue { id state }
  }
}"""

ISSUE_LABELS_LOOKUP_DOC = """query IssueLabelsLookup($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    labels(first: 100) { nodes { id name } }
  }
}"""

ISSUE_LABELS_UPDATE_DOC = """mutation IssueLabelsUpdate($issueId: ID!, $labelIds: [ID!]!) {
  updateIssue(input: {id: $issueId, labelIds: $labelIds}) {
    issue { id }
  }
}"""

CATALOG: List[Dict[str, Any]] = [
    {
        "capability_id": "issue.view",
        "version": "1.0.0",
        "description": "Fetch one issue.",
        "input_schema": {
            "type": "object",
            "required": ["owner", "name", "issueNumber"],
            "properties": {
                "owner": {"type": "string"},
                "name": {"type": "string"},
                "issueNumber": {"type": "integer"},
            },
        },
        "output_schema": {"type": "object", "properties": {"repository": {"type": ["object", "null"]}}},
        "routing": {"preferred": "graphql", "fallbacks": ["cli"]},
        "graphql": {"operationName": "IssueView", "documentPath": "operations/issue-view.graphql"},
        "cli": {"command": "issue view {issueNumber} --repo {owner}/{name}", "json_fields": ["id", "title", "state"]},
    },
    {
        "capability_id": "issue.close",
        "version": "1.0.0",
        "description": "Close an issue.",
        "input_schema": {
            "type": "object",
            "required": ["issueId"],
            "properties": {"issueId": {"type": "string"}},
        },
        "output_schema": {"type": "object"},
        "routing": {"preferred": "graphql", "fallbacks": []},
        "graphql": {"operationName": "IssueClose", "documentPath": "operations/issue-close.graphql"},
    },
    {
        "capability_id": "issue.labels.update",
        "version": "1.0.0",
        "description": "Replace the labels of an issue.",
        "input_schema": {
            "type": "object",
            "required": ["issueId", "owner", "name", "labels"],
            "properties": {
                "issueId": {"type": "string"},
                "owner": {"type": "string"},
                "name": {"type": "string"},
                "labels": {"type": "array", "items": {"type": "string"}},
            },
        },
        "output_schema": {"type": "object"},
        "routing": {"preferred": "graphql", "fallbacks": []},
        "graphql": {
            "operationName": "IssueLabelsUpdate",
            "documentPath": "operations/issue-labels-update.graphql",
            "resolution": {
                "lookup": {
                    "operation_name": "IssueLabelsLookup",
                    "document_path": "operations/issue-labels-lookup.graphql",
                    "vars": {"owner": "owner", "name": "name"},
                },
                "inject": [
                    {
                        "target": "labelIds",
                        "source": "map_array",
                        "from_input": "labels",
                        "nodes_path": "repository.labels.nodes",
                        "match_field": "name",
                        "extract_field": "id",
                    }
                ],
            },
        },
    },
    {
        "capability_id": "repo.view",
        "version": "1.0.0",
        "description": "Fetch repository metadata.",
        "input_schema": {
            "type": "object",
            "required": ["owner", "name"],
            "properties": {"owner": {"type": "string"}, "name": {"type": "string"}},
        },
        "output_schema": {"type": "object"},
        "routing": {"preferred": "cli", "fallbacks": ["rest"]},
        "cli": {"command": "repo view {owner}/{name}", "json_fields": ["name", "description"]},
        "rest": {"endpoints": [{"method": "GET", "path": "/repos/{owner}/{name}"}]},
    },
]


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
    yield


@pytest.fixture
def card_data() -> Callable[[str], Dict[str, Any]]:
    """Return a deep-ish copy of a catalog entry so tests can tweak it."""

    def _get(capability_id: str) -> Dict[str, Any]:
        for entry in CATALOG:
            if entry["capability_id"] == capability_id:
                return copy.deepcopy(entry)
        raise KeyError(capability_id)

    return _get


@pytest.fixture
def make_card(card_data) -> Callable[..., OperationCard]:
    def _make(capability_id: str, **overrides: Any) -> OperationCard:
        data = card_data(capability_id)
        data.update(overrides)
        return OperationCard.model_validate(data)

    return _make


@pytest.fixture
def registry() -> OperationRegistry:
    return OperationRegistry(OperationCard.model_validate(entry) for entry in CATALOG)


@pytest.fixture
def documents() -> DocumentRegistry:
    docs = DocumentRegistry()
    docs.register_document(ISSUE_VIEW_DOC, path="operations/issue-view.graphql")
    docs.register_document(ISSUE_CLOSE_DOC, path="operations/issue-close.graphql")
    docs.register_document(ISSUE_LABELS_LOOKUP_DOC, path="operations/issue-labels-lookup.graphql")
    docs.register_document(ISSUE_LABELS_UPDATE_DOC, path="operations/issue-labels-update.graphql")
    return docs


class GraphqlRecorder:
    """Scripted GraphQL endpoint: pops one JSON payload (or status/payload pair) per request."""

    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content.decode("utf-8")))
        if not self.responses:
            return httpx.Response(500, json={"message": "no scripted response"})
        item = self.responses.pop(0)
        if isinstance(item, tuple):
            status, payload = item
            return httpx.Response(status, json=payload)
        if isinstance(item, Exception):
            raise item
        return httpx.Response(200, json=item)


@pytest.fixture
def graphql_recorder() -> Callable[[List[Any]], GraphqlRecorder]:
    def _make(responses: Optional[List[Any]] = None) -> GraphqlRecorder:
        return GraphqlRecorder(responses or [])

    return _make


@pytest.fixture
def catalog() -> List[Dict[str, Any]]:
    return copy.deepcopy(CATALOG)
