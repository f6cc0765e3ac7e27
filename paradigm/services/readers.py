"""Root & Template Readers — read-only SQLAlchemy access for the recompute engine.

Invariants:
    - list_all() is ordered by id (stable batch contents across runs)
    - Readers never write; roots and patterns belong to the CRUD layer
"""

from typing import Sequence

from sqlalchemy import select

from paradigm.infrastructure.database import DatabaseSessionManager
from paradigm.models.pattern import Pattern
from paradigm.models.root import Root


class SqlRootReader:
    """RootReader over the roots table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def list_all(self) -> Sequence[Root]:
        async with self._db.session() as session:
            result = await session.execute(select(Root).order_by(Root.id))
            return result.scalars().all()


class SqlTemplateReader:
    """TemplateReader over the patterns table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def list_all(self) -> Sequence[Pattern]:
        async with self._db.session() as session:
            result = await session.execute(select(Pattern).order_by(Pattern.id))
            return result.scalars().all()
