from __future__ import annotations

import pytest

from capability_router.errors import CardNotFoundError
from capability_router.registry import OperationRegistry, explain_capability, list_capabilities
from capability_router.registry.introspection import required_inputs
from capability_router.schemas import RouteSource


def test_explain_capability(registry: OperationRegistry) -> None:
    explanation = explain_capability(registry, "issue.view")
    assert explanation.capability_id == "issue.view"
    assert explanation.purpose == "Fetch one issue."
    assert explanation.required_inputs == ["owner", "name", "issueNumber"]
    assert explanation.optional_inputs == []
    assert explanation.preferred_route is RouteSource.GRAPHQL
    assert explanation.fallback_routes == [RouteSource.CLI]
    assert explanation.output_fields == ["repository"]


def test_explain_unknown_capability(registry: OperationRegistry) -> None:
    with pytest.raises(CardNotFoundError):
        explain_capability(registry, "nope")


def test_list_capabilities_filters_by_domain(registry: OperationRegistry) -> None:
    issue = list_capabilities(registry, "issue")
    assert [c["capability_id"] for c in issue] == ["issue.close", "issue.labels.update", "issue.view"]
    everything = list_capabilities(registry)
    assert [c["capability_id"] for c in everything][-1] == "repo.view"
    assert everything[-1]["preferred_route"] == "cli"
    assert everything[-1]["fallback_routes"] == ["rest"]


def test_required_inputs_ignores_malformed_lists() -> None:
    assert required_inputs({"required": "owner"}) == []
    assert required_inputs({"required": ["owner", 3]}) == ["owner"]
    assert required_inputs({}) == []
