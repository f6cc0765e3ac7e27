"""Database Session Manager — async engine, per-unit-of-work sessions, error mapping.

Invariants:
    - Every session rolls back on exception; nothing half-written is committed
    - SQLAlchemy exceptions leave a session as PersistenceError (core/errors.py),
      chained to the driver error
    - Recompute workers each hold one session; pool capacity bounds their concurrency

Design Decisions:
    - Created by the host process via init_db (no global import side effects)
    - expire_on_commit=False: readers return ORM rows used after the session closes
    - Error mapping is a table walked in order, most specific class first
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from paradigm.core.errors import PersistenceError

logger = logging.getLogger(__name__)

# (exception class, failed operation, description)
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "commit", "integrity constraint violated"),
    (OperationalError, "execute", "connection or operational error"),
    (DBAPIError, "query", "database driver error"),
    (SQLAlchemyError, "unknown", "database operation failed"),
)


def to_persistence_error(error: SQLAlchemyError) -> PersistenceError:
    """Classify a SQLAlchemy error; the driver's own message is kept."""
    cause = getattr(error, "orig", None) or error
    for error_type, operation, description in _ERROR_MAP:
        if isinstance(error, error_type):
            return PersistenceError(f"{description} ({cause})", operation)
    return PersistenceError(str(error), "unknown")


class DatabaseSessionManager:
    """Hands out AsyncSessions bound to one engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ) -> "DatabaseSessionManager":
        return cls(create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        ))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One unit of work; the caller commits."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = to_persistence_error(e)
            logger.error(error.message, extra={"error_code": error.code})
            raise error from e
        except PersistenceError:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips; checked before a recompute starts."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except (PersistenceError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    """Create the manager at startup; the caller owns it and disposes it."""
    return DatabaseSessionManager.from_url(database_url, **kwargs)
