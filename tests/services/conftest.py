"""Service test fixtures — file-backed async SQLite database + seeding helpers.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - db wraps the test engine in DatabaseSessionManager (same error mapping as production)
    - ROW and MULTI_ROW are the strategies exercised against SQLite; UNNEST and COPY
      are PostgreSQL-only and tested at the driver seam

Design Decisions:
    - File DB, not :memory:: each worker session needs its own connection to
      the same database
"""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from paradigm.core.domain_types import WriteStrategy
from paradigm.db.base import Base
from paradigm.infrastructure.database import DatabaseSessionManager
from paradigm.infrastructure.metrics import MetricsRegistry
from paradigm.models import Pattern, Root, RootPatternBinding
from paradigm.services.bulk_writers import BulkPersistence
from paradigm.services.readers import SqlRootReader, SqlTemplateReader
from paradigm.services.recompute_coordinator import RecomputeCoordinator


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'paradigm.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db(test_engine):
    return DatabaseSessionManager(test_engine)


@pytest.fixture
def metrics():
    return MetricsRegistry()


@pytest.fixture
def persistence(db):
    return BulkPersistence(db, default_strategy=WriteStrategy.ROW)


@pytest.fixture
def coordinator(db, persistence, metrics):
    return RecomputeCoordinator(
        persistence,
        SqlRootReader(db),
        SqlTemplateReader(db),
        metrics=metrics,
        batch_size=2,
        concurrency=2,
    )


@pytest.fixture
def seed(db):
    """Insert roots and patterns; returns the stored rows (ids assigned)."""

    async def _seed(roots=(), patterns=()):
        async with db.session() as session:
            root_rows = [
                Root(representation=r[0], gloss=r[1] if len(r) > 1 else None)
                for r in roots
            ]
            pattern_rows = [
                Pattern(name=name, skeleton=skeleton, slot_count=slots)
                for name, skeleton, slots in patterns
            ]
            session.add_all(root_rows + pattern_rows)
            await session.commit()
            return root_rows, pattern_rows

    return _seed


@pytest.fixture
def fetch_bindings(db):
    """All binding rows as sorted (root_id, pattern_id, generated_form) tuples."""

    async def _fetch():
        async with db.session() as session:
            result = await session.execute(select(
                RootPatternBinding.root_id,
                RootPatternBinding.pattern_id,
                RootPatternBinding.generated_form,
            ))
            return sorted(tuple(row) for row in result.all())

    return _fetch
