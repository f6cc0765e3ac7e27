"""Recompute Planning — scope resolution, cross product and batching.

Invariants:
    - compute_rows() emits exactly len(roots) × len(templates) rows, root-major
    - partition_batches() yields disjoint, order-preserving slices
    - No (root_id, pattern_id) pair appears twice when roots and templates have unique ids

Design Decisions:
    - Scope resolution takes the full id-ordered lists already fetched by the
      coordinator; filtering happens here so it stays testable without a DB
"""

from typing import Iterable, Sequence, TypeVar

from paradigm.core.binding_generator import (
    RootLike, StemFormatter, TemplateLike, generate,
)
from paradigm.core.domain_types import BindingRow

R = TypeVar("R", bound=RootLike)
T = TypeVar("T", bound=TemplateLike)


def resolve_scope(
    root_ids: Iterable[int],
    template_ids: Iterable[int],
    all_roots: Sequence[R],
    all_templates: Sequence[T],
) -> tuple[list[R], list[T]]:
    """Roots and templates whose bindings must be recomputed.

    Only roots given → those roots × all templates.
    Only templates given → all roots × those templates.
    Both given → exactly that cross product. Neither → nothing.
    Ids that no longer exist (deleted rows) simply drop out.
    """
    wanted_roots = set(root_ids)
    wanted_templates = set(template_ids)
    if not wanted_roots and not wanted_templates:
        return [], []
    roots = (
        [r for r in all_roots if r.id in wanted_roots]
        if wanted_roots else list(all_roots)
    )
    templates = (
        [t for t in all_templates if t.id in wanted_templates]
        if wanted_templates else list(all_templates)
    )
    return roots, templates


def compute_rows(
    roots: Sequence[RootLike],
    templates: Sequence[TemplateLike],
    stem_formatter: StemFormatter | None = None,
) -> list[BindingRow]:
    """Generate one BindingRow per (root, template) pair."""
    rows: list[BindingRow] = []
    for root in roots:
        for template in templates:
            binding = generate(root, template, stem_formatter)
            rows.append(BindingRow(root.id, template.id, binding.surface_form))
    return rows


def partition_batches(rows: Sequence[BindingRow], batch_size: int) -> list[list[BindingRow]]:
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(rows[i:i + batch_size]) for i in range(0, len(rows), batch_size)]
