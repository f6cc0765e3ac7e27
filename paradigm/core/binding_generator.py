"""Binding Generator — derives a surface form from a root and a template skeleton.

Invariants:
    - Pure and deterministic: same (root, template, formatter) → identical output
    - Never raises on malformed or out-of-range slots (last segment / DEFAULT_SEGMENT fallback)
    - Empty skeleton → empty segments and empty surface form

Design Decisions:
    - Slot tokens are an uppercase letter plus optional digits ("C", "C2");
      every other non-separator character is a literal token
    - Unnumbered slots consume root segments left to right; numbered slots
      address a segment directly (1-based)
    - MAX_SLOT_INDEX caps explicit digits only; unnumbered slots reach any
      segment the root has
"""

import re
from typing import Callable, Protocol

from paradigm.core.domain_types import (
    DEFAULT_SEGMENT, MAX_SLOT_INDEX, GeneratedBinding, SlotDefinition,
)

StemFormatter = Callable[[list[str]], str]

_SLOT_TOKEN = re.compile(r"^([A-Z])(\d+)?$")
_NON_LETTER = re.compile(r"[^A-Za-z]")


class RootLike(Protocol):
    id: int
    representation: str


class TemplateLike(Protocol):
    id: int
    skeleton: str


def tokenize_skeleton(skeleton: str) -> list[str]:
    """Split a skeleton into slot and literal tokens, skipping '-' and whitespace."""
    tokens: list[str] = []
    i = 0
    while i < len(skeleton):
        char = skeleton[i]
        if char == "-" or char.isspace():
            i += 1
            continue
        if "A" <= char <= "Z":
            j = i + 1
            while j < len(skeleton) and "0" <= skeleton[j] <= "9":
                j += 1
            tokens.append(skeleton[i:j])
            i = j
        else:
            tokens.append(char)
            i += 1
    return tokens


def is_slot_token(token: str) -> bool:
    return _SLOT_TOKEN.match(token) is not None


def count_slots(skeleton: str) -> int:
    return sum(1 for t in tokenize_skeleton(skeleton or "") if is_slot_token(t))


def normalize_root(representation: str) -> list[str]:
    """Strip non-letters, lowercase, one segment per letter."""
    return list(_NON_LETTER.sub("", representation or "").lower())


def resolve_slot(token: str, root_segments: list[str], slot_index: int) -> str:
    """Root segment for one slot token; falls back instead of raising."""
    match = _SLOT_TOKEN.match(token)
    if not match:
        return token
    digits = match.group(2)
    if digits is None:
        index = slot_index
    else:
        index = max(int(digits) - 1, 0)
        if index > MAX_SLOT_INDEX:
            index = len(root_segments)
    if index < len(root_segments):
        return root_segments[index]
    return root_segments[-1] if root_segments else DEFAULT_SEGMENT


def generate(
    root: RootLike,
    template: TemplateLike,
    stem_formatter: StemFormatter | None = None,
) -> GeneratedBinding:
    """Apply one template to one root."""
    root_segments = normalize_root(root.representation)
    segments: list[str] = []
    definitions: list[SlotDefinition] = []

    slot_index = 0
    for token in tokenize_skeleton(template.skeleton or ""):
        if is_slot_token(token):
            segments.append(resolve_slot(token, root_segments, slot_index))
            definitions.append(SlotDefinition(slot_index, token))
            slot_index += 1
        else:
            segments.append(token)

    surface_form = stem_formatter(segments) if stem_formatter else "".join(segments)
    return GeneratedBinding(
        root_id=root.id,
        pattern_id=template.id,
        surface_form=surface_form,
        segments=segments,
        slot_definitions=definitions,
    )
