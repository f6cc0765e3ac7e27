"""Pattern ORM — morphological template (skeleton of literals and slots).

Invariants:
    - Owned by the CRUD layer; the recompute engine only reads it
    - slot_count is declared, not derived; pattern legality checks it against the skeleton

Design Decisions:
    - Table named "patterns": pattern is the stored name of a template
"""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from paradigm.db.base import Base, CreatedAtMixin


class Pattern(CreatedAtMixin, Base):
    """Template such as name "Form I", skeleton "C-a-C-a-C", slot_count 3."""
    __tablename__ = "patterns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    skeleton: Mapped[str] = mapped_column(Text, nullable=False)
    slot_count: Mapped[int] = mapped_column(Integer, nullable=False)
