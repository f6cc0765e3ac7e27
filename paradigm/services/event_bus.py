"""Event Bus — in-process publish/subscribe for morphology mutation events.

Invariants:
    - emit() calls handlers synchronously, in registration order
    - A failing handler is logged and never prevents later handlers from running
    - Handlers registered during an emit take effect from the next emit
    - Awaitables returned by handlers are scheduled as tracked tasks on the running loop

Design Decisions:
    - The bus knows nothing about storage or recompute; the coordinator and
      the cache sync are just subscribers
    - drain() lets tests and shutdown wait for scheduled async handlers
"""

import asyncio
import inspect
import logging
from typing import Any, Callable

from paradigm.core.events import MorphologyEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[MorphologyEvent], Any]


class EventBus:
    """Synchronous fan-out of MorphologyEvents."""

    def __init__(self):
        self._subscribers: list[EventHandler] = []
        self._pending: set[asyncio.Future] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register handler; returns an idempotent unsubscribe callable."""
        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def clear(self) -> None:
        self._subscribers.clear()

    def emit(self, event: MorphologyEvent) -> MorphologyEvent:
        """Timestamp the event and deliver it to every current subscriber."""
        stamped = event.with_timestamp()
        entity = getattr(stamped.entity, "value", stamped.entity)
        action = getattr(stamped.action, "value", stamped.action)
        logger.info(
            f"morphology event {entity}.{action}",
            extra={"entity": entity, "action": action},
        )
        for handler in list(self._subscribers):
            try:
                result = handler(stamped)
            except Exception as e:
                logger.error(
                    f"Morphology event handler {_name(handler)} failed: {e}",
                    extra={"entity": entity, "action": action},
                    exc_info=True,
                )
                continue
            if inspect.isawaitable(result):
                self._schedule(result, handler)
        return stamped

    async def drain(self) -> None:
        """Wait until every scheduled async handler has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, awaitable, handler: EventHandler) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.error(
                f"Async handler {_name(handler)} skipped: no running event loop",
            )
            return
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(self._on_done(handler))

    def _on_done(self, handler: EventHandler) -> Callable[[asyncio.Future], None]:
        def callback(task: asyncio.Future) -> None:
            self._pending.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                logger.error(
                    f"Async morphology event handler {_name(handler)} failed: {error}",
                    exc_info=error,
                )
        return callback


def _name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
