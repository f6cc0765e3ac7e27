"""Root ORM — abstract lexical base (consonant/segment skeleton).

Invariants:
    - Owned by the CRUD layer; the recompute engine only reads it
    - representation letters are the segment skeleton (non-letters ignored)
"""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from paradigm.db.base import Base, CreatedAtMixin


class Root(CreatedAtMixin, Base):
    """Lexical root, e.g. representation "k-t-b", gloss "write"."""
    __tablename__ = "roots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    representation: Mapped[str] = mapped_column(Text, nullable=False)
    gloss: Mapped[str | None] = mapped_column(Text, nullable=True)
