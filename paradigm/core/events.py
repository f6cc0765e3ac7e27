"""Morphology Events — mutation notices for roots, patterns and bindings.

Invariants:
    - data is the post-mutation snapshot (for deletes: the deleted row)
    - timestamp is ISO-8601 UTC; with_timestamp() fills it once, never overwrites

Design Decisions:
    - data may be an ORM object, a frozen input dataclass or a plain dict;
      snapshot_field() reads all three
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from paradigm.core.domain_types import MorphologyAction, MorphologyEntity


@dataclass(frozen=True)
class MorphologyEvent:
    entity: MorphologyEntity
    action: MorphologyAction
    data: Any
    timestamp: str | None = None

    def with_timestamp(self) -> "MorphologyEvent":
        if self.timestamp is not None:
            return self
        return replace(self, timestamp=datetime.now(timezone.utc).isoformat())


def snapshot_field(data: Any, name: str) -> Any:
    """Read a field from a dict or attribute-style snapshot (None if absent)."""
    if isinstance(data, dict):
        return data.get(name)
    return getattr(data, name, None)
