"""Dependency Resolver: turns a lookup result into extra mutation variables."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from capability_router.errors.exceptions import ResolutionError
from capability_router.registry.types import (
    InjectSpec,
    InputPassthroughInject,
    LookupSpec,
    MapArrayInject,
    ScalarInject,
)

from .batch import parse_operation

_MISSING = object()


def get_at_path(value: Any, path: str) -> Any:
    """Walk a dotted path through mappings and (by numeric segment) lists.

    Raises:
        ResolutionError: If any segment is missing or the final value is null.
    """
    current = value
    for segment in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            current = _MISSING
        if current is _MISSING or current is None:
            raise ResolutionError(f"Resolution path '{path}' not found in lookup result")
    return current


def _map_array(rule: MapArrayInject, lookup_result: Any, caller_input: Mapping[str, Any]) -> List[Any]:
    wanted = caller_input.get(rule.from_input, _MISSING)
    if wanted is _MISSING:
        raise ResolutionError(f"Input field '{rule.from_input}' is required for resolution")
    if not isinstance(wanted, list):
        raise ResolutionError(f"Input field '{rule.from_input}' must be an array")
    nodes = get_at_path(lookup_result, rule.nodes_path)
    if not isinstance(nodes, list):
        raise ResolutionError(f"Resolution path '{rule.nodes_path}' is not an array")
    mapped: List[Any] = []
    for item in wanted:
        match = next(
            (n for n in nodes if isinstance(n, Mapping) and n.get(rule.match_field) == item),
            None,
        )
        if match is None:
            raise ResolutionError(
                f"No match for {rule.from_input} value {item!r} in '{rule.nodes_path}' by '{rule.match_field}'"
            )
        if match.get(rule.extract_field) is None:
            raise ResolutionError(f"Matched element for {item!r} has no '{rule.extract_field}'")
        mapped.append(match[rule.extract_field])
    return mapped


def apply_inject(
    lookup_result: Any,
    caller_input: Mapping[str, Any],
    rules: Sequence[InjectSpec],
) -> Dict[str, Any]:
    """Compute the extra variables described by ``rules``; any failing rule aborts the step."""
    resolved: Dict[str, Any] = {}
    for rule in rules:
        if isinstance(rule, ScalarInject):
            resolved[rule.target] = get_at_path(lookup_result, rule.path)
        elif isinstance(rule, InputPassthroughInject):
            if rule.from_input not in caller_input:
                raise ResolutionError(f"Input field '{rule.from_input}' is required for resolution")
            resolved[rule.target] = caller_input[rule.from_input]
        elif isinstance(rule, MapArrayInject):
            resolved[rule.target] = _map_array(rule, lookup_result, caller_input)
        else:
            raise ResolutionError(f"Unsupported inject rule: {rule!r}")
    return resolved


def build_mutation_vars(
    document: str,
    caller_input: Mapping[str, Any],
    resolved: Mapping[str, Any],
) -> Dict[str, Any]:
    """Variables for ``document``: declared names only, resolved values winning over caller input."""
    variables: Dict[str, Any] = {}
    for name in parse_operation(document).variable_names:
        if name in resolved:
            variables[name] = resolved[name]
        elif name in caller_input:
            variables[name] = caller_input[name]
    return variables


def lookup_variables(lookup: LookupSpec, caller_input: Mapping[str, Any]) -> Dict[str, Any]:
    """Lookup query variables taken from caller input through the ``vars`` mapping."""
    return {
        lookup_var: caller_input[input_field]
        for input_field, lookup_var in lookup.vars.items()
        if input_field in caller_input
    }
