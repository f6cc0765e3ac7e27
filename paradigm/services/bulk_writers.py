"""Bulk Persistence — interchangeable binding writers and the batch/delete entry points.

Invariants:
    - Every WriteStrategy has exactly one writer; each is selectable on its own
    - Writers never commit; persist_batch() commits once per batch
    - Any store failure leaves persist_batch()/delete_* as PersistenceError
    - Strategy choice is choose_write_strategy(): override flag, then row count vs threshold

Design Decisions:
    - ROW goes through the ORM unit of work and works on every dialect
    - MULTI_ROW is one INSERT ... VALUES statement per batch, split only when the
      bind-parameter ceiling would be exceeded
    - UNNEST and COPY are PostgreSQL-only (asyncpg); tests cover them at the driver seam
    - Writers are injected explicitly; a missing default writer falls back to ROW
"""

import csv
import io
import logging
from typing import AsyncIterator, Iterable, Sequence

import asyncpg
from sqlalchemy import Integer, Text, bindparam, delete, insert, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.ext.asyncio import AsyncSession

from paradigm.core.domain_types import BindingRow, WriteStrategy
from paradigm.core.errors import PersistenceError, UnknownStrategyError
from paradigm.core.strategy_selection import DEFAULT_COPY_THRESHOLD, choose_write_strategy
from paradigm.infrastructure.database import DatabaseSessionManager
from paradigm.models.root_pattern_binding import RootPatternBinding

logger = logging.getLogger(__name__)

BINDING_TABLE = RootPatternBinding.__tablename__
BINDING_COLUMNS = ("root_id", "pattern_id", "generated_form")

# PostgreSQL caps a statement at 32767 bind parameters
MAX_BIND_PARAMS = 32767


class OrmRowWriter:
    """One ORM insert per row."""
    strategy = WriteStrategy.ROW

    async def write(self, session: AsyncSession, rows: Sequence[BindingRow]) -> int:
        session.add_all([
            RootPatternBinding(
                root_id=row.root_id,
                pattern_id=row.pattern_id,
                generated_form=row.generated_form,
            )
            for row in rows
        ])
        await session.flush()
        return len(rows)


class MultiRowInsertWriter:
    """INSERT ... VALUES (..), (..), .. carrying the whole batch inline."""
    strategy = WriteStrategy.MULTI_ROW

    def __init__(self, max_rows_per_statement: int = MAX_BIND_PARAMS // len(BINDING_COLUMNS)):
        self.max_rows_per_statement = max_rows_per_statement

    async def write(self, session: AsyncSession, rows: Sequence[BindingRow]) -> int:
        table = RootPatternBinding.__table__
        step = self.max_rows_per_statement
        for start in range(0, len(rows), step):
            chunk = rows[start:start + step]
            stmt = insert(table).values([
                {
                    "root_id": row.root_id,
                    "pattern_id": row.pattern_id,
                    "generated_form": row.generated_form,
                }
                for row in chunk
            ])
            await session.execute(stmt)
        return len(rows)


UNNEST_INSERT = text(
    f"INSERT INTO {BINDING_TABLE} (root_id, pattern_id, generated_form) "
    "SELECT * FROM UNNEST("
    "CAST(:root_ids AS INTEGER[]), "
    "CAST(:pattern_ids AS INTEGER[]), "
    "CAST(:forms AS TEXT[]))"
).bindparams(
    bindparam("root_ids", type_=ARRAY(Integer)),
    bindparam("pattern_ids", type_=ARRAY(Integer)),
    bindparam("forms", type_=ARRAY(Text)),
)


def columnar_params(rows: Sequence[BindingRow]) -> dict[str, list]:
    """Parallel arrays for the UNNEST statement."""
    return {
        "root_ids": [row.root_id for row in rows],
        "pattern_ids": [row.pattern_id for row in rows],
        "forms": [row.generated_form for row in rows],
    }


class UnnestWriter:
    """Parallel arrays expanded into rows server-side, one round trip."""
    strategy = WriteStrategy.UNNEST

    async def write(self, session: AsyncSession, rows: Sequence[BindingRow]) -> int:
        await session.execute(UNNEST_INSERT, columnar_params(rows))
        return len(rows)


def serialize_csv(rows: Iterable[BindingRow]) -> str:
    """CSV for COPY: ids bare, forms quoted with embedded quotes doubled."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        writer.writerow((int(row.root_id), int(row.pattern_id), row.generated_form))
    return buffer.getvalue()


async def iter_csv_chunks(
    rows: Sequence[BindingRow], chunk_rows: int = 1000,
) -> AsyncIterator[bytes]:
    for start in range(0, len(rows), chunk_rows):
        yield serialize_csv(rows[start:start + chunk_rows]).encode("utf-8")


class CopyWriter:
    """CSV streamed through COPY ... FROM STDIN on the session's own connection."""
    strategy = WriteStrategy.COPY

    def __init__(self, chunk_rows: int = 1000):
        self.chunk_rows = chunk_rows

    async def write(self, session: AsyncSession, rows: Sequence[BindingRow]) -> int:
        connection = await session.connection()
        raw = await connection.get_raw_connection()
        driver = raw.driver_connection
        try:
            await driver.copy_to_table(
                BINDING_TABLE,
                source=iter_csv_chunks(rows, self.chunk_rows),
                columns=list(BINDING_COLUMNS),
                format="csv",
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise PersistenceError(str(e), "copy") from e
        return len(rows)


def default_writers() -> list:
    return [OrmRowWriter(), MultiRowInsertWriter(), UnnestWriter(), CopyWriter()]


class BulkPersistence:
    """Executes batches and scope deletes against root_pattern_bindings."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        writers: Iterable | None = None,
        copy_threshold: int = DEFAULT_COPY_THRESHOLD,
        default_strategy: WriteStrategy = WriteStrategy.UNNEST,
    ):
        self._db = db
        self._writers = {
            w.strategy: w for w in (default_writers() if writers is None else writers)
        }
        self.copy_threshold = copy_threshold
        self.default_strategy = WriteStrategy(default_strategy)

    @property
    def strategies(self) -> list[WriteStrategy]:
        return list(self._writers)

    def select_writer(self, row_count: int, override: WriteStrategy | str | None = None):
        try:
            chosen = choose_write_strategy(
                row_count, override, self.copy_threshold, self.default_strategy,
            )
        except ValueError:
            raise UnknownStrategyError(str(override)) from None
        writer = self._writers.get(chosen)
        if writer is not None:
            return writer
        if override is None and WriteStrategy.ROW in self._writers:
            logger.warning(
                f"No writer for {chosen.value}, falling back to row inserts",
                extra={"strategy": chosen.value, "rows": row_count},
            )
            return self._writers[WriteStrategy.ROW]
        raise UnknownStrategyError(chosen.value)

    async def persist_batch(
        self,
        rows: Sequence[BindingRow],
        strategy: WriteStrategy | str | None = None,
        batch_index: int | None = None,
    ) -> int:
        """Insert one batch and commit. Safe to repeat after the scope delete."""
        if not rows:
            return 0
        writer = self.select_writer(len(rows), strategy)
        try:
            async with self._db.session() as session:
                written = await writer.write(session, rows)
                await session.commit()
        except PersistenceError as e:
            e.context.strategy = writer.strategy.value
            e.context.batch_index = batch_index
            raise
        logger.debug(
            "Batch persisted",
            extra={
                "strategy": writer.strategy.value,
                "rows": written,
                "batch_index": batch_index,
            },
        )
        return written

    async def delete_scope(
        self, root_ids: Sequence[int], template_ids: Sequence[int],
    ) -> int:
        """Set-based delete: root_id IN root_ids AND pattern_id IN template_ids."""
        if not root_ids or not template_ids:
            return 0
        stmt = delete(RootPatternBinding).where(
            RootPatternBinding.root_id.in_(list(root_ids)),
            RootPatternBinding.pattern_id.in_(list(template_ids)),
        )
        try:
            async with self._db.session() as session:
                result = await session.execute(stmt)
                await session.commit()
        except PersistenceError as e:
            e.context.root_ids = list(root_ids)
            e.context.template_ids = list(template_ids)
            raise
        return result.rowcount or 0

    async def delete_pairs(
        self, pairs: Iterable[tuple[int, int]],
    ) -> tuple[int, list[tuple[int, int]]]:
        """Per-pair fallback delete. Returns (rows deleted, pairs that failed)."""
        deleted = 0
        failed: list[tuple[int, int]] = []
        for root_id, pattern_id in pairs:
            stmt = delete(RootPatternBinding).where(
                RootPatternBinding.root_id == root_id,
                RootPatternBinding.pattern_id == pattern_id,
            )
            try:
                async with self._db.session() as session:
                    result = await session.execute(stmt)
                    await session.commit()
                deleted += result.rowcount or 0
            except PersistenceError as e:
                logger.error(
                    f"Pair delete failed for root {root_id} pattern {pattern_id}: {e}",
                    extra={"root_ids": [root_id], "template_ids": [pattern_id]},
                )
                failed.append((root_id, pattern_id))
        return deleted, failed

