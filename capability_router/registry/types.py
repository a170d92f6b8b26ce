"""Operation descriptor models.

An `OperationCard` is the static, immutable description of one capability:
its shape contracts, routing policy and per-transport parameters. Cards are
loaded once at startup (see `OperationRegistry`) and never mutated.

JSON keys follow the catalog format: top-level keys are snake_case, the
``graphql`` block uses camelCase (``operationName``, ``documentPath``).
Either spelling is accepted on input.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from capability_router.schemas.base import BaseSchema
from capability_router.schemas.envelope import RouteSource

JsonSchema = Dict[str, Any]


class CardSchema(BaseSchema):
    model_config = ConfigDict(frozen=True)


class SuitabilityRule(CardSchema):
    when: Literal["always", "env", "params"] = Field(..., description="When the rule applies.")
    predicate: str = Field(..., min_length=1, description="Free-form predicate evaluated by the caller.")
    reason: str = Field(..., min_length=1, description="Why the rule matters.")


class RoutingPolicy(CardSchema):
    preferred: RouteSource = Field(..., description="Transport tried first.")
    fallbacks: List[RouteSource] = Field(default_factory=list, description="Ordered fallback transports.")
    suitability: Optional[List[SuitabilityRule]] = Field(None, description="Applicability rules.")
    notes: Optional[List[str]] = Field(None, description="Human notes about the routing choice.")


class ScalarInject(CardSchema):
    target: str = Field(..., min_length=1, description="Mutation variable receiving the value.")
    source: Literal["scalar"] = "scalar"
    path: str = Field(..., min_length=1, description="Dotted path inside the lookup result.")


class InputPassthroughInject(CardSchema):
    target: str = Field(..., min_length=1)
    source: Literal["input"] = "input"
    from_input: str = Field(..., min_length=1, description="Caller input field copied verbatim.")


class MapArrayInject(CardSchema):
    target: str = Field(..., min_length=1)
    source: Literal["map_array"] = "map_array"
    from_input: str = Field(..., min_length=1, description="Caller input array to map.")
    nodes_path: str = Field(..., min_length=1, description="Dotted path of the lookup array to search.")
    match_field: str = Field(..., min_length=1, description="Field of each lookup element compared to the input.")
    extract_field: str = Field(..., min_length=1, description="Field taken from the matching element.")


InjectSpec = Annotated[
    Union[ScalarInject, InputPassthroughInject, MapArrayInject],
    Field(discriminator="source"),
]


class LookupSpec(CardSchema):
    operation_name: str = Field(..., min_length=1, description="Lookup query operation name.")
    document_path: str = Field(..., min_length=1, description="Reference to the lookup query document.")
    vars: Dict[str, str] = Field(
        default_factory=dict,
        description="Map of caller-input (mutation variable) name to lookup variable name.",
    )


class ResolutionConfig(CardSchema):
    lookup: LookupSpec
    inject: List[InjectSpec] = Field(..., min_length=1)


class GraphqlLimits(CardSchema):
    max_page_size: Optional[int] = None


class GraphqlConfig(CardSchema):
    operation_name: str = Field(..., min_length=1)
    document_path: str = Field(..., min_length=1)
    variables: Optional[Dict[str, str]] = None
    limits: Optional[GraphqlLimits] = None
    resolution: Optional[ResolutionConfig] = None


class CliLimits(CardSchema):
    max_items_per_call: Optional[int] = None


class CliConfig(CardSchema):
    command: str = Field(..., min_length=1, description="Command template, e.g. 'issue view {issueNumber}'.")
    json_fields: Optional[List[str]] = Field(None, description="Fields requested via --json.")
    jq: Optional[str] = None
    limits: Optional[CliLimits] = None


class RestEndpoint(CardSchema):
    method: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1, description="Path template, e.g. '/repos/{owner}/{name}'.")


class RestConfig(CardSchema):
    endpoints: List[RestEndpoint] = Field(..., min_length=1)


class CardExample(CardSchema):
    title: str
    input: Dict[str, Any]


class OperationCard(CardSchema):
    capability_id: str = Field(..., min_length=1, description="Unique capability identifier, e.g. 'issue.view'.")
    version: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    input_schema: JsonSchema = Field(default_factory=lambda: {"type": "object"})
    output_schema: JsonSchema = Field(default_factory=lambda: {"type": "object"})
    routing: RoutingPolicy
    graphql: Optional[GraphqlConfig] = None
    cli: Optional[CliConfig] = None
    rest: Optional[RestConfig] = None
    examples: Optional[List[CardExample]] = None

    def route_config(self, route: RouteSource) -> Optional[Union[GraphqlConfig, CliConfig, RestConfig]]:
        if route is RouteSource.GRAPHQL:
            return self.graphql
        if route is RouteSource.CLI:
            return self.cli
        return self.rest
