from __future__ import annotations

import httpx

from capability_router.errors import ClassifiedError, CliFailure, ErrorCode
from capability_router.execution import envelope_error, normalize_error, normalize_result, to_envelope_error
from capability_router.schemas import EnvelopeError, RouteReasonCode, RouteSource


def test_normalize_result_defaults_to_preferred_reason() -> None:
    env = normalize_result({"id": 1}, RouteSource.CLI, capability_id="issue.view")
    assert env.ok is True
    assert env.data == {"id": 1}
    assert env.meta.route_used is RouteSource.CLI
    assert env.meta.reason is RouteReasonCode.CARD_PREFERRED


def test_envelope_error_derives_retryable_from_code() -> None:
    assert envelope_error(ErrorCode.RATE_LIMIT, "slow down").retryable is True
    assert envelope_error(ErrorCode.AUTH, "who are you").retryable is False


def test_envelope_error_passes_through_and_merges_details() -> None:
    err = EnvelopeError(code=ErrorCode.VALIDATION, message="bad", details={"a": 1})
    assert to_envelope_error(err) is err
    merged = to_envelope_error(err, details={"b": 2})
    assert merged.details == {"a": 1, "b": 2}
    assert merged.message == "bad"


def test_classified_error_is_used_as_is() -> None:
    classified = ClassifiedError(code=ErrorCode.SERVER, message="down", retryable=True)
    err = to_envelope_error(classified, details={"route": "rest"})
    assert (err.code, err.message, err.retryable, err.details) == (ErrorCode.SERVER, "down", True, {"route": "rest"})


def test_exceptions_go_through_the_classifier() -> None:
    err = to_envelope_error(httpx.ConnectError("connection refused"))
    assert err.code is ErrorCode.NETWORK
    assert err.retryable is True
    assert err.message == "connection refused"


def test_normalize_error_from_cli_failure() -> None:
    env = normalize_error(
        CliFailure(exit_code=4, stderr="authentication required"),
        RouteSource.CLI,
        capability_id="issue.view",
        reason=RouteReasonCode.CARD_FALLBACK,
    )
    assert env.ok is False
    assert env.data is None
    assert env.error.code is ErrorCode.AUTH
    assert env.error.details == {"exit_code": 4}
    assert env.meta.reason is RouteReasonCode.CARD_FALLBACK


def test_normalize_error_from_plain_message() -> None:
    env = normalize_error("Could not resolve to an Issue", None, capability_id="issue.view", reason=None)
    assert env.error.code is ErrorCode.NOT_FOUND
    assert env.meta.route_used is None
    assert env.to_dict()["meta"] == {"capability_id": "issue.view"}
