"""RootPatternBinding ORM — materialized result of one template applied to one root.

Invariants:
    - Written only by a recompute cycle (delete-then-insert per scope)
    - At most one row per (root_id, pattern_id) once a cycle for that scope completes

Design Decisions:
    - No unique constraint on (root_id, pattern_id): overlapping concurrent
      recomputes must be serialized by the caller
    - created_at has a server default so UNNEST/COPY writers omit the column
    - Cascade delete from roots and patterns: removing either drops its bindings
"""

from sqlalchemy import Integer, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from paradigm.db.base import Base, CreatedAtMixin


class RootPatternBinding(CreatedAtMixin, Base):
    """Derived binding row."""
    __tablename__ = "root_pattern_bindings"
    __table_args__ = (
        Index("ix_root_pattern_bindings_root_pattern", "root_id", "pattern_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    root_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("roots.id", ondelete="CASCADE"), nullable=False,
    )
    pattern_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patterns.id", ondelete="CASCADE"), nullable=False,
    )
    generated_form: Mapped[str] = mapped_column(Text, nullable=False)
