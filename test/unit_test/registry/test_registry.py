from __future__ import annotations

import json
from pathlib import Path

import pytest

from capability_router.errors import CardNotFoundError
from capability_router.registry import OperationCard, OperationRegistry
from capability_router.schemas import RouteSource


def test_register_and_lookup(registry: OperationRegistry, catalog) -> None:
    card = registry.get("issue.view")
    assert card.routing.preferred is RouteSource.GRAPHQL
    assert card.graphql.operation_name == "IssueView"
    assert registry.has("issue.close")
    assert registry.find("nope") is None
    assert registry.ids() == sorted(entry["capability_id"] for entry in catalog)
    assert len(registry) == len(catalog)


def test_duplicate_capability_id_is_rejected(registry: OperationRegistry, make_card) -> None:
    with pytest.raises(ValueError, match="Duplicate capability id: issue.view"):
        registry.register(make_card("issue.view"))


def test_get_missing_raises_card_not_found(registry: OperationRegistry) -> None:
    with pytest.raises(CardNotFoundError) as ei:
        registry.get("issue.reopen")
    assert isinstance(ei.value, KeyError)
    assert str(ei.value) == "Unknown capability: issue.reopen"


def test_cards_accept_camel_case_keys() -> None:
    card = OperationCard.model_validate(
        {
            "capabilityId": "repo.view",
            "version": "1",
            "description": "d",
            "routing": {"preferred": "rest"},
            "rest": {"endpoints": [{"method": "GET", "path": "/repos/{owner}/{name}"}]},
        }
    )
    assert card.capability_id == "repo.view"
    assert card.routing.fallbacks == []
    assert card.route_config(RouteSource.REST) is card.rest
    assert card.route_config(RouteSource.CLI) is None


class TestFromDirectory:
    def test_loads_every_json_file(self, tmp_path: Path, catalog) -> None:
        for entry in catalog:
            (tmp_path / f"{entry['capability_id']}.json").write_text(json.dumps(entry), encoding="utf-8")
        (tmp_path / "README.md").write_text("not a card", encoding="utf-8")

        loaded = OperationRegistry.from_directory(tmp_path)
        assert loaded.ids() == sorted(entry["capability_id"] for entry in catalog)

    def test_invalid_json_names_the_file(self, tmp_path: Path) -> None:
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="broken.json"):
            OperationRegistry.from_directory(tmp_path)

    def test_invalid_card_shape_is_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "bad.json").write_text(json.dumps({"capability_id": "x"}), encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid operation card bad.json"):
            OperationRegistry.from_directory(tmp_path)

    def test_empty_directory_gives_empty_registry(self, tmp_path: Path) -> None:
        assert len(OperationRegistry.from_directory(tmp_path)) == 0
