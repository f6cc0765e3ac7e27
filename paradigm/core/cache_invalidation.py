"""Cache Invalidation Matrix — maps a mutation event to the derived views it stales.

Invariants:
    - Total over MorphologyEntity: every entity kind has a key function
    - Pure: no IO, no cache access; keys only NAME views
    - Returned key lists are deduplicated, first-seen order preserved
    - parse_invalidation_scope() is the only bridge from keys to recompute ids

Design Decisions:
    - Keys are plain strings ("morphology:paradigm:root:12") so any keyed store
      (in-process dict, external cache) can consume them unchanged
    - binding:{id} names a single row and carries no root/pattern id; the
      binding's owners arrive through its root-scoped and pattern-scoped keys
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable

from paradigm.core.domain_types import MorphologyEntity, RootId, TemplateId
from paradigm.core.events import MorphologyEvent, snapshot_field

ROOTS_LIST = "morphology:roots:list"
PATTERNS_LIST = "morphology:patterns:list"
BINDINGS_LIST = "morphology:bindings:list"


def root_key(root_id: int) -> str:
    return f"morphology:root:{root_id}"


def pattern_key(pattern_id: int) -> str:
    return f"morphology:pattern:{pattern_id}"


def binding_key(binding_id: int) -> str:
    return f"morphology:binding:{binding_id}"


def bindings_for_root_key(root_id: int) -> str:
    return f"morphology:bindings:root:{root_id}"


def bindings_for_pattern_key(pattern_id: int) -> str:
    return f"morphology:bindings:pattern:{pattern_id}"


def paradigm_for_root_key(root_id: int) -> str:
    return f"morphology:paradigm:root:{root_id}"


def paradigm_for_pattern_key(pattern_id: int) -> str:
    return f"morphology:paradigm:pattern:{pattern_id}"


def _root_keys(root: Any) -> list[str]:
    root_id = snapshot_field(root, "id")
    return [
        ROOTS_LIST,
        root_key(root_id),
        BINDINGS_LIST,
        bindings_for_root_key(root_id),
        paradigm_for_root_key(root_id),
    ]


def _pattern_keys(pattern: Any) -> list[str]:
    pattern_id = snapshot_field(pattern, "id")
    return [
        PATTERNS_LIST,
        pattern_key(pattern_id),
        BINDINGS_LIST,
        bindings_for_pattern_key(pattern_id),
        paradigm_for_pattern_key(pattern_id),
    ]


def _binding_keys(binding: Any) -> list[str]:
    root_id = snapshot_field(binding, "root_id")
    pattern_id = snapshot_field(binding, "pattern_id")
    return [
        BINDINGS_LIST,
        binding_key(snapshot_field(binding, "id")),
        bindings_for_root_key(root_id),
        bindings_for_pattern_key(pattern_id),
        paradigm_for_root_key(root_id),
        paradigm_for_pattern_key(pattern_id),
        root_key(root_id),
        pattern_key(pattern_id),
    ]


INVALIDATION_MATRIX: MappingProxyType[MorphologyEntity, Callable[[Any], list[str]]] = (
    MappingProxyType({
        MorphologyEntity.ROOT: _root_keys,
        MorphologyEntity.PATTERN: _pattern_keys,
        MorphologyEntity.BINDING: _binding_keys,
    })
)


def _dedupe(keys: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(keys))


def invalidation_keys(event: MorphologyEvent) -> list[str]:
    """Keys staled by a single event."""
    compute = INVALIDATION_MATRIX[MorphologyEntity(event.entity)]
    return _dedupe(compute(event.data))


def collect_invalidations(events: Iterable[MorphologyEvent]) -> list[str]:
    """Union of keys across a batch of events, deduplicated."""
    return _dedupe(key for event in events for key in invalidation_keys(event))


# ─── Keys → recompute scope ──────────────────────────────────────

_SCOPED_KEY = re.compile(
    r"^morphology:(?:bindings:|paradigm:)?(root|pattern):(\d+)$",
)


@dataclass(frozen=True)
class InvalidationScope:
    root_ids: list[RootId] = field(default_factory=list)
    template_ids: list[TemplateId] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.root_ids and not self.template_ids


def parse_invalidation_scope(keys: Iterable[str]) -> InvalidationScope:
    """Extract the root and template ids named by root/pattern-scoped keys.

    List keys and binding:{id} keys name no recompute scope and are ignored.
    """
    root_ids: set[int] = set()
    template_ids: set[int] = set()
    for key in keys:
        match = _SCOPED_KEY.match(key)
        if not match:
            continue
        kind, raw_id = match.groups()
        if kind == "root":
            root_ids.add(int(raw_id))
        else:
            template_ids.add(int(raw_id))
    return InvalidationScope(
        root_ids=[RootId(i) for i in sorted(root_ids)],
        template_ids=[TemplateId(i) for i in sorted(template_ids)],
    )
