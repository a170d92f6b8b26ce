from __future__ import annotations

from capability_router.validation import missing_required_params, validate_input, validate_output


def _params(**overrides):
    params = {"owner": "octo", "name": "hello", "issueNumber": 7}
    params.update(overrides)
    return params


def test_valid_input_passes(make_card) -> None:
    check = validate_input(make_card("issue.view"), _params())
    assert check.ok is True
    assert check.message == ""


def test_missing_required_lists_every_key_in_schema_order(make_card) -> None:
    card = make_card("issue.view")
    check = validate_input(card, {"name": "hello"})
    assert check.ok is False
    assert check.message == "Missing required params: owner, issueNumber"
    assert check.details == {"missing": ["owner", "issueNumber"]}


def test_none_and_empty_string_count_as_missing(make_card) -> None:
    card = make_card("issue.view")
    assert missing_required_params(card, _params(owner="", name=None)) == ["owner", "name"]
    assert missing_required_params(card, _params(issueNumber=0)) == []


def test_schema_type_errors_are_reported_with_path(make_card) -> None:
    check = validate_input(make_card("issue.view"), _params(issueNumber="seven"))
    assert check.ok is False
    assert check.message.startswith("Input validation failed: issueNumber: ")
    assert len(check.details["errors"]) == 1


def test_root_level_errors_use_root_path(make_card) -> None:
    card = make_card("repo.view", output_schema={"type": "object", "required": ["name"]})
    check = validate_output(card, {})
    assert check.ok is False
    assert check.message.startswith("Output validation failed: root: ")


def test_output_passes_when_shape_matches(make_card) -> None:
    card = make_card("repo.view", output_schema={"type": "object", "properties": {"name": {"type": "string"}}})
    assert validate_output(card, {"name": "hello"}).ok is True
    assert validate_output(card, {"name": 3}).ok is False
