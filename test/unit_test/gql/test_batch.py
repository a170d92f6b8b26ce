from __future__ import annotations

import pytest

from capability_router.errors import BatchBuildError
from capability_router.gql import (
    BatchStep,
    build_batch_mutation,
    build_batch_query,
    extract_root_field_name,
    parse_operation,
)

NODE_QUERY = """
# fetch one node
query NodeById($issueId: ID!) {
  node(id: $issueId) { id }
}
"""

CLOSE_MUTATION = """mutation IssueClose($issueId: ID!, $reason: IssueClosedStateReason) {
  closeIssue(input: {issueId: $issueId, stateReason: $reason}) { issue { id } }
}"""

WITH_FRAGMENT = """query Labels($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) { labels(first: 10) { nodes { ...LabelFields } } }
}

fragment LabelFields on Label { id name }"""


class TestParseOperation:
    def test_named_operation(self) -> None:
        parsed = parse_operation(CLOSE_MUTATION)
        assert parsed.kind == "mutation"
        assert parsed.name == "IssueClose"
        assert parsed.variable_defs == (("issueId", "ID!"), ("reason", "IssueClosedStateReason"))
        assert parsed.selection.startswith("closeIssue(")

    def test_anonymous_shorthand_is_a_query(self) -> None:
        parsed = parse_operation("{ viewer { login } }")
        assert (parsed.kind, parsed.name, parsed.variable_defs) == ("query", None, ())

    def test_comments_are_ignored(self) -> None:
        assert parse_operation(NODE_QUERY).name == "NodeById"

    def test_default_values_stay_in_the_type(self) -> None:
        parsed = parse_operation("query Q($first: Int = 10) { viewer { login } }")
        assert parsed.variable_defs == (("first", "Int = 10"),)

    def test_fragments_are_collected(self) -> None:
        parsed = parse_operation(WITH_FRAGMENT)
        assert [name for name, _ in parsed.fragments] == ["LabelFields"]

    def test_missing_selection_raises(self) -> None:
        with pytest.raises(BatchBuildError):
            parse_operation("query Broken($a: Int)")


class TestExtractRootFieldName:
    def test_single_root_field(self) -> None:
        assert extract_root_field_name(NODE_QUERY) == "node"

    def test_aliased_root_field_uses_alias(self) -> None:
        assert extract_root_field_name("query { me: viewer { login } }") == "me"

    def test_multiple_root_fields_return_none(self) -> None:
        assert extract_root_field_name("query { viewer { login } rateLimit { remaining } }") is None

    def test_unparsable_document_returns_none(self) -> None:
        assert extract_root_field_name("not graphql") is None


class TestBuildBatchQuery:
    def test_single_step_renames_variables(self) -> None:
        batch = build_batch_query([BatchStep(alias="step0", document=NODE_QUERY, variables={"issueId": "I_1"})])
        assert batch.document.startswith("query BatchChain($step0_issueId: ID!) {")
        assert "  step0: node(id: $step0_issueId) { id }" in batch.document
        assert batch.variables == {"step0_issueId": "I_1"}

    def test_steps_sharing_variable_names_do_not_collide(self) -> None:
        batch = build_batch_query(
            [
                BatchStep(alias="step0", document=NODE_QUERY, variables={"issueId": "I_1"}),
                BatchStep(alias="step1", document=NODE_QUERY, variables={"issueId": "I_2"}),
            ]
        )
        assert "$step0_issueId: ID!, $step1_issueId: ID!" in batch.document
        assert "step1: node(id: $step1_issueId)" in batch.document
        assert batch.variables == {"step0_issueId": "I_1", "step1_issueId": "I_2"}

    def test_absent_variables_are_declared_but_not_sent(self) -> None:
        batch = build_batch_mutation([BatchStep(alias="step0", document=CLOSE_MUTATION, variables={"issueId": "I"})])
        assert "$step0_reason: IssueClosedStateReason" in batch.document
        assert batch.variables == {"step0_issueId": "I"}

    def test_fragments_are_emitted_once(self) -> None:
        batch = build_batch_query(
            [
                BatchStep(alias="a", document=WITH_FRAGMENT, variables={"owner": "o", "name": "n"}),
                BatchStep(alias="b", document=WITH_FRAGMENT, variables={"owner": "o", "name": "m"}),
            ]
        )
        assert batch.document.count("fragment LabelFields") == 1
        assert batch.document.endswith("fragment LabelFields on Label { id name }")

    def test_variables_less_step(self) -> None:
        batch = build_batch_query([BatchStep(alias="me", document="{ viewer { login } }")])
        assert batch.document == "query BatchChain {\n  me: viewer { login }\n}"
        assert batch.variables == {}


class TestBuildBatchErrors:
    def test_empty_step_list(self) -> None:
        with pytest.raises(BatchBuildError):
            build_batch_query([])

    def test_kind_mismatch(self) -> None:
        with pytest.raises(BatchBuildError, match="expected a query"):
            build_batch_query([BatchStep(alias="step0", document=CLOSE_MUTATION)])

    def test_duplicate_alias(self) -> None:
        step = BatchStep(alias="step0", document=NODE_QUERY)
        with pytest.raises(BatchBuildError, match="Duplicate batch alias"):
            build_batch_query([step, step])

    def test_invalid_alias(self) -> None:
        with pytest.raises(BatchBuildError, match="Invalid batch alias"):
            build_batch_query([BatchStep(alias="0step", document=NODE_QUERY)])

    def test_multiple_root_fields(self) -> None:
        doc = "query { viewer { login } rateLimit { remaining } }"
        with pytest.raises(BatchBuildError, match="exactly one root field"):
            build_batch_query([BatchStep(alias="step0", document=doc)])

    def test_root_fragment_spread(self) -> None:
        doc = "query { ...Viewer }\n\nfragment Viewer on Query { viewer { login } }"
        with pytest.raises(BatchBuildError, match="fragment spreads"):
            build_batch_query([BatchStep(alias="step0", document=doc)])

    def test_fragment_referencing_variables(self) -> None:
        doc = "query Q($n: Int) { viewer { ...F } }\n\nfragment F on User { repositories(first: $n) { totalCount } }"
        with pytest.raises(BatchBuildError, match="references operation variables"):
            build_batch_query([BatchStep(alias="step0", document=doc)])
