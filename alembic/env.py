"""Alembic environment — async migrations for roots, patterns and bindings.

Design Decisions:
    - The URL comes from Settings (env / .env, postgresql:// rewritten for asyncpg);
      alembic.ini's sqlalchemy.url is the local fallback when DATABASE_URL is unset
    - paradigm.models is imported for its side effect: every table is on Base.metadata
    - NullPool: a migration run opens one connection and exits
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

import paradigm.models  # noqa: F401
from paradigm.config import Settings
from paradigm.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def migration_url() -> str:
    if os.environ.get("DATABASE_URL"):
        return Settings().database_url
    return config.get_main_option("sqlalchemy.url")


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_offline() -> None:
    """Emit SQL to stdout without connecting."""
    _configure(
        url=migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_online() -> None:
    engine = create_async_engine(migration_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())
