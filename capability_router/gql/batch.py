"""Batch Document Builder.

Merges N independent GraphQL operations into one document. Every step's root
selection is re-emitted under the step's alias and every variable is renamed
``<alias>_<name>`` so documents sharing variable names never collide::

    query BatchChain($step0_issueId: ID!, $step1_issueId: ID!) {
      step0: node(id: $step0_issueId) { id }
      step1: node(id: $step1_issueId) { id }
    }

The response then holds one key per alias whose value is the bare root field
value; `extract_root_field_name` tells callers which key to re-wrap it under.

Only operations selecting exactly one root field can be batched. Fragments
are appended once; fragments that reference operation variables are rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from capability_router.errors.exceptions import BatchBuildError

BATCH_QUERY_NAME = "BatchChain"
BATCH_MUTATION_NAME = "BatchComposite"

_NAME = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")
_OPERATION_HEAD = re.compile(r"\s*(query|mutation|subscription)\b\s*([_A-Za-z][_0-9A-Za-z]*)?\s*")
_VARIABLE_DEF = re.compile(r"\$([_A-Za-z][_0-9A-Za-z]*)\s*:\s*")
_FRAGMENT_HEAD = re.compile(r"\s*fragment\s+([_A-Za-z][_0-9A-Za-z]*)\b")


@dataclass(frozen=True)
class RootField:
    alias: Optional[str]
    name: str
    tail: str

    @property
    def response_key(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class ParsedOperation:
    kind: str
    name: Optional[str]
    variable_defs: Tuple[Tuple[str, str], ...]
    selection: str
    fragments: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def variable_names(self) -> List[str]:
        return [name for name, _ in self.variable_defs]


@dataclass(frozen=True)
class BatchStep:
    alias: str
    document: str
    variables: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchDocument:
    document: str
    variables: Dict[str, Any]


def _strip_comments(text: str) -> str:
    out: List[str] = []
    in_string = False
    i = 0
    while i < len(text):
        c = text[i]
        if in_string:
            out.append(c)
            if c == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
        elif c == '"':
            in_string = True
            out.append(c)
        elif c == "#":
            while i < len(text) and text[i] != "\n":
                i += 1
            continue
        else:
            out.append(c)
        i += 1
    return "".join(out)


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and (text[i].isspace() or text[i] == ","):
        i += 1
    return i


def _skip_balanced(text: str, i: int, open_char: str, close_char: str) -> int:
    """Return the index just past the bracket that closes ``text[i]``."""
    depth = 0
    in_string = False
    while i < len(text):
        c = text[i]
        if in_string:
            if c == "\\":
                i += 2
                continue
            if c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise BatchBuildError(f"Unbalanced '{open_char}' in GraphQL document")


def _parse_variable_defs(text: str) -> Tuple[Tuple[str, str], ...]:
    matches = list(_VARIABLE_DEF.finditer(text))
    defs: List[Tuple[str, str]] = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        type_text = text[match.end() : end].strip().rstrip(",").strip()
        if not type_text:
            raise BatchBuildError(f"Variable ${match.group(1)} has no type")
        defs.append((match.group(1), type_text))
    return tuple(defs)


def parse_operation(document: str) -> ParsedOperation:
    """Split the first operation of ``document`` into kind, name, variables and selection."""
    text = _strip_comments(document)
    head = _OPERATION_HEAD.match(text)
    if head:
        kind, name = head.group(1), head.group(2)
        i = head.end()
    else:
        kind, name = "query", None
        i = _skip_ws(text, 0)
    variable_defs: Tuple[Tuple[str, str], ...] = ()
    if i < len(text) and text[i] == "(":
        end = _skip_balanced(text, i, "(", ")")
        variable_defs = _parse_variable_defs(text[i + 1 : end - 1])
        i = _skip_ws(text, end)
    while i < len(text) and text[i] == "@":
        directive = _NAME.match(text, i + 1)
        if directive is None:
            raise BatchBuildError("Malformed operation directive")
        i = _skip_ws(text, directive.end())
        if i < len(text) and text[i] == "(":
            i = _skip_ws(text, _skip_balanced(text, i, "(", ")"))
    if i >= len(text) or text[i] != "{":
        raise BatchBuildError("GraphQL document has no selection set")
    end = _skip_balanced(text, i, "{", "}")
    selection = text[i + 1 : end - 1].strip()

    fragments: List[Tuple[str, str]] = []
    rest = text[end:]
    for match in _FRAGMENT_HEAD.finditer(rest):
        brace = rest.find("{", match.end())
        if brace < 0:
            raise BatchBuildError(f"Fragment {match.group(1)} has no selection set")
        close = _skip_balanced(rest, brace, "{", "}")
        fragments.append((match.group(1), rest[match.start() : close].strip()))
    return ParsedOperation(
        kind=kind,
        name=name,
        variable_defs=variable_defs,
        selection=selection,
        fragments=tuple(fragments),
    )


def root_fields(selection: str) -> List[RootField]:
    fields: List[RootField] = []
    i = _skip_ws(selection, 0)
    while i < len(selection):
        if selection.startswith("...", i):
            raise BatchBuildError("Root-level fragment spreads cannot be batched")
        first = _NAME.match(selection, i)
        if first is None:
            raise BatchBuildError(f"Unexpected character {selection[i]!r} in selection")
        alias: Optional[str] = None
        name = first.group(0)
        i = _skip_ws(selection, first.end())
        if i < len(selection) and selection[i] == ":":
            second = _NAME.match(selection, _skip_ws(selection, i + 1))
            if second is None:
                raise BatchBuildError(f"Alias '{name}' has no field")
            alias, name = name, second.group(0)
            i = second.end()
        tail_start = i
        i = _skip_ws(selection, i)
        if i < len(selection) and selection[i] == "(":
            i = _skip_ws(selection, _skip_balanced(selection, i, "(", ")"))
        while i < len(selection) and selection[i] == "@":
            directive = _NAME.match(selection, i + 1)
            if directive is None:
                raise BatchBuildError("Malformed field directive")
            i = _skip_ws(selection, directive.end())
            if i < len(selection) and selection[i] == "(":
                i = _skip_ws(selection, _skip_balanced(selection, i, "(", ")"))
        if i < len(selection) and selection[i] == "{":
            i = _skip_balanced(selection, i, "{", "}")
        fields.append(RootField(alias=alias, name=name, tail=selection[tail_start:i].strip()))
        i = _skip_ws(selection, i)
    return fields


def extract_root_field_name(document: str) -> Optional[str]:
    """Response key of the single root field ``document`` selects, or None."""
    try:
        fields = root_fields(parse_operation(document).selection)
    except BatchBuildError:
        return None
    if len(fields) != 1:
        return None
    return fields[0].response_key


def _rename_variables(text: str, names: Sequence[str], alias: str) -> str:
    if not names:
        return text
    pattern = re.compile(r"\$(" + "|".join(re.escape(n) for n in names) + r")\b")
    return pattern.sub(lambda m: f"${alias}_{m.group(1)}", text)


def _build_batch(kind: str, operation_name: str, steps: Sequence[BatchStep]) -> BatchDocument:
    if not steps:
        raise BatchBuildError(f"Cannot build a batch {kind} from an empty step list")

    seen_aliases = set()
    definitions: List[str] = []
    selections: List[str] = []
    fragments: Dict[str, str] = {}
    variables: Dict[str, Any] = {}

    for step in steps:
        if not _NAME.fullmatch(step.alias):
            raise BatchBuildError(f"Invalid batch alias: {step.alias!r}")
        if step.alias in seen_aliases:
            raise BatchBuildError(f"Duplicate batch alias: {step.alias}")
        seen_aliases.add(step.alias)

        parsed = parse_operation(step.document)
        if parsed.kind != kind:
            raise BatchBuildError(f"Step {step.alias} is a {parsed.kind}, expected a {kind}")
        fields = root_fields(parsed.selection)
        if len(fields) != 1:
            raise BatchBuildError(f"Step {step.alias} must select exactly one root field, found {len(fields)}")

        names = parsed.variable_names
        for name, type_text in parsed.variable_defs:
            definitions.append(f"${step.alias}_{name}: {type_text}")
            if name in step.variables:
                variables[f"{step.alias}_{name}"] = step.variables[name]
        root = fields[0]
        tail = _rename_variables(root.tail, names, step.alias)
        separator = "" if not tail or tail.startswith("(") else " "
        selections.append(f"  {step.alias}: {root.name}{separator}{tail}")

        for fragment_name, fragment_text in parsed.fragments:
            if "$" in fragment_text:
                raise BatchBuildError(f"Fragment {fragment_name} references operation variables")
            existing = fragments.get(fragment_name)
            if existing is not None and existing != fragment_text:
                raise BatchBuildError(f"Conflicting definitions for fragment {fragment_name}")
            fragments[fragment_name] = fragment_text

    header = f"{kind} {operation_name}"
    if definitions:
        header += f"({', '.join(definitions)})"
    document = header + " {\n" + "\n".join(selections) + "\n}"
    if fragments:
        document += "\n\n" + "\n\n".join(fragments.values())
    return BatchDocument(document=document, variables=variables)


def build_batch_query(steps: Sequence[BatchStep]) -> BatchDocument:
    return _build_batch("query", BATCH_QUERY_NAME, steps)


def build_batch_mutation(steps: Sequence[BatchStep]) -> BatchDocument:
    return _build_batch("mutation", BATCH_MUTATION_NAME, steps)
