from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Mapping, Optional


def build_cache_key(operation_name: str, variables: Mapping[str, Any]) -> str:
    """Deterministic key: operation name plus canonical JSON of the variables."""
    return f"{operation_name}:{json.dumps(dict(variables), sort_keys=True, separators=(',', ':'), default=str)}"


class ResolutionCache:
    """
    Memoized lookup results shared across chain executions.

    The instance is owned by the caller, who decides its lifetime (one per
    chain or one per process). There is no eviction policy; `delete` and
    `clear` invalidate entries.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def has(self, key: str) -> bool:
        return key in self._entries

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
