"""Engine Lifespan — startup/shutdown wiring for a host process embedding the engine.

Invariants:
    - Logging and the database are initialized once, from settings
    - An unreachable database fails startup before any subscriber is registered
    - On exit: subscriptions removed, scheduled recomputes drained, pool disposed

Design Decisions:
    - Async context manager (lifespan pattern), so a web app, a worker or a
      script can embed the engine without the engine owning an entry point
    - The coordinator and the cache sync are plain bus subscribers; the host
      emits MorphologyEvents on runtime.bus after each committed mutation
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from paradigm.config import Settings, get_settings
from paradigm.core.errors import PersistenceError
from paradigm.infrastructure.cache_store import InMemoryCacheStore
from paradigm.infrastructure.database import DatabaseSessionManager, init_db
from paradigm.infrastructure.metrics import MetricsRegistry
from paradigm.infrastructure.observability import setup_logging
from paradigm.services.cache_sync import subscribe_cache_invalidation
from paradigm.services.event_bus import EventBus
from paradigm.services.recompute_coordinator import RecomputeCoordinator

logger = logging.getLogger(__name__)


@dataclass
class EngineRuntime:
    settings: Settings
    db: DatabaseSessionManager
    bus: EventBus
    coordinator: RecomputeCoordinator
    cache: InMemoryCacheStore
    metrics: MetricsRegistry


@asynccontextmanager
async def engine_lifespan(settings: Settings | None = None) -> AsyncIterator[EngineRuntime]:
    """Start the engine; yields the wired runtime and tears it down on exit."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if not await db.health_check():
        await db.dispose()
        raise PersistenceError("database unreachable at startup", "connect")

    metrics = MetricsRegistry()
    bus = EventBus()
    cache = InMemoryCacheStore()
    coordinator = RecomputeCoordinator.from_settings(settings, db, metrics)
    # Cache entries drop before the recompute is scheduled for the same event
    unsubscribers = [
        subscribe_cache_invalidation(bus, cache),
        coordinator.subscribe_and_process(bus),
    ]
    logger.info("Paradigm engine started")
    try:
        yield EngineRuntime(settings, db, bus, coordinator, cache, metrics)
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()
        await bus.drain()
        await db.dispose()
        logger.info("Paradigm engine stopped")
