"""Bounded Worker Pool — fixed number of asyncio workers draining a batch queue.

Invariants:
    - At most `concurrency` batches are in flight at any moment
    - A failure never cancels sibling workers; their current batch runs to completion
    - After the first failure no new batch is taken from the queue
    - raise_for_errors() surfaces the first failure only once every worker has returned

Design Decisions:
    - asyncio.Queue + N long-lived workers instead of one task per batch:
      task count stays constant however many batches a recompute produces
    - asyncio.gather over workers that catch their own exceptions: a TaskGroup
      would cancel in-flight siblings on the first error
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from paradigm.core.errors import ErrorContext, PartialBatchFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PoolReport:
    """Outcome of one pool run. results[i] is None for failed or skipped batches."""
    total: int = 0
    succeeded: int = 0
    results: list[Any] = field(default_factory=list)
    errors: list[tuple[int, BaseException]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def skipped(self) -> int:
        return self.total - self.succeeded - self.failed

    def raise_for_errors(self, context: ErrorContext | None = None) -> None:
        """Re-raise the first failure; wrap it when sibling batches committed."""
        if not self.errors:
            return
        first = self.errors[0][1]
        if self.succeeded == 0:
            raise first
        raise PartialBatchFailure(
            first, self.succeeded, self.failed, self.skipped, context,
        ) from first


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[int, T], Awaitable[Any]],
    concurrency: int,
) -> PoolReport:
    """Run worker(index, item) for every item with at most `concurrency` in flight."""
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    report = PoolReport(total=len(items), results=[None] * len(items))
    if not items:
        return report

    queue: asyncio.Queue[tuple[int, T]] = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))
    halted = asyncio.Event()

    async def drain(worker_id: int) -> None:
        while not halted.is_set():
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                report.results[index] = await worker(index, item)
                report.succeeded += 1
            except Exception as e:
                halted.set()
                report.errors.append((index, e))
                logger.error(
                    f"Worker {worker_id} failed on batch {index}: {e}",
                    extra={"batch_index": index},
                )

    await asyncio.gather(*(drain(w) for w in range(min(concurrency, len(items)))))
    return report
