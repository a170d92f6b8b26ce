from __future__ import annotations

import re
from typing import Any, Callable, Mapping, Set

_PLACEHOLDER = re.compile(r"\{([_A-Za-z][_0-9A-Za-z]*)\}")


class MissingTemplateValue(KeyError):
    def __init__(self, field: str) -> None:
        super().__init__(field)
        self.field = field


def placeholders(template: str) -> Set[str]:
    return set(_PLACEHOLDER.findall(template))


def fill(template: str, values: Mapping[str, Any], encode: Callable[[Any], str] = str) -> str:
    """Replace ``{name}`` placeholders from ``values``; a missing or null value raises."""

    def _sub(match: "re.Match[str]") -> str:
        value = values.get(match.group(1))
        if value is None or value == "":
            raise MissingTemplateValue(match.group(1))
        if isinstance(value, bool):
            value = str(value).lower()
        return encode(value)

    return _PLACEHOLDER.sub(_sub, template)
