"""Domain Types — rich types that replace bare primitives across the engine.

Invariants:
    - RootId and TemplateId wrap ints; never use bare int ids in domain logic
    - BindingRow is the only shape the persistence layer writes
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: values double as log fields and config strings
    - Frozen dataclasses for inputs: generator callers share them across workers
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

RootId = NewType("RootId", int)
TemplateId = NewType("TemplateId", int)


# ─── Generator Constants ─────────────────────────────────────────

DEFAULT_SEGMENT = "a"
MAX_SLOT_INDEX = 99  # explicit slot digits above this still resolve via fallback


# ─── Enums ───────────────────────────────────────────────────────

class MorphologyEntity(str, Enum):
    """Entity kinds that emit mutation events. PATTERN is the template entity."""
    ROOT = "root"
    PATTERN = "pattern"
    BINDING = "binding"


class MorphologyAction(str, Enum):
    """Mutation kinds carried by a MorphologyEvent."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class WriteStrategy(str, Enum):
    """Bulk write strategies; every one independently selectable."""
    ROW = "row"              # one ORM insert per row
    MULTI_ROW = "multi_row"  # one INSERT ... VALUES (...), (...) statement
    UNNEST = "unnest"        # parallel arrays expanded server-side
    COPY = "copy"            # CSV streamed through COPY FROM STDIN


class RecomputePhase(str, Enum):
    """Coordinator lifecycle: IDLE → FETCHING → COMPUTING → PERSISTING → IDLE."""
    IDLE = "idle"
    FETCHING = "fetching"
    COMPUTING = "computing"
    PERSISTING = "persisting"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class RootInput:
    id: RootId
    representation: str
    gloss: str | None = None


@dataclass(frozen=True)
class TemplateInput:
    id: TemplateId
    skeleton: str
    slot_count: int | None = None
    name: str | None = None


@dataclass(frozen=True)
class SlotDefinition:
    """Position of a slot token among slot tokens, and the token text itself."""
    slot_index: int
    placeholder: str


@dataclass(frozen=True)
class GeneratedBinding:
    """Generator output for one (root, template) pair."""
    root_id: RootId
    pattern_id: TemplateId
    surface_form: str
    segments: list[str] = field(default_factory=list)
    slot_definitions: list[SlotDefinition] = field(default_factory=list)


@dataclass(frozen=True)
class BindingRow:
    """One materialized row of root_pattern_bindings, minus id/created_at."""
    root_id: RootId
    pattern_id: TemplateId
    generated_form: str
