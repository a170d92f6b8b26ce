from .introspection import CapabilityExplanation, explain_capability, list_capabilities
from .registry import OperationRegistry
from .types import (
    CliConfig,
    GraphqlConfig,
    InjectSpec,
    InputPassthroughInject,
    LookupSpec,
    MapArrayInject,
    OperationCard,
    ResolutionConfig,
    RestConfig,
    RestEndpoint,
    RoutingPolicy,
    ScalarInject,
    SuitabilityRule,
)

__all__ = [
    "CapabilityExplanation",
    "CliConfig",
    "GraphqlConfig",
    "InjectSpec",
    "InputPassthroughInject",
    "LookupSpec",
    "MapArrayInject",
    "OperationCard",
    "OperationRegistry",
    "ResolutionConfig",
    "RestConfig",
    "RestEndpoint",
    "RoutingPolicy",
    "ScalarInject",
    "SuitabilityRule",
    "explain_capability",
    "list_capabilities",
]
