"""Cache Sync — drops cached morphology views named by each emitted event."""

import logging
from typing import Callable

from paradigm.core.cache_invalidation import invalidation_keys
from paradigm.core.events import MorphologyEvent
from paradigm.core.repository_protocols import CacheStore
from paradigm.services.event_bus import EventBus

logger = logging.getLogger(__name__)


def subscribe_cache_invalidation(bus: EventBus, store: CacheStore) -> Callable[[], None]:
    """Invalidate the matrix keys of every event on `store`; returns unsubscribe."""

    def handle(event: MorphologyEvent) -> None:
        keys = invalidation_keys(event)
        removed = store.invalidate(keys)
        logger.debug(f"Invalidated {removed}/{len(keys)} cached views")

    return bus.subscribe(handle)
