"""In-Process Cache Store — keyed store for derived morphology views.

Invariants:
    - invalidate() removes every named key and returns how many were present
    - Keys are the opaque strings produced by core/cache_invalidation.py
"""

from typing import Any, Iterable


class InMemoryCacheStore:
    """Dict-backed CacheStore for single-process deployments and tests."""

    def __init__(self):
        self._entries: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, keys: Iterable[str]) -> int:
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        return removed

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
