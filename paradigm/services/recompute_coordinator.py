"""Recompute Coordinator — keeps root_pattern_bindings consistent with roots × patterns.

Invariants:
    - Bindings are written only here, always delete-then-insert per scope
    - state walks IDLE → FETCHING → COMPUTING → PERSISTING → IDLE; any failure
      returns it to IDLE and propagates to the caller
    - No internal retry and no rollback: re-running the same scope converges
    - Batches are disjoint in (root_id, pattern_id), so completion order is irrelevant
    - The Generator runs inline; only persistence I/O is spread over the worker pool

Design Decisions:
    - Both cycles replace their scope: a full recompute deletes every fetched
      root × pattern pair before inserting, so re-running it never duplicates
    - Set-based delete first; per-pair deletes only when that statement fails.
      If any pair delete still fails the insert is skipped: inserting would
      duplicate the rows that were not removed
    - Overlapping concurrent recomputes are not coordinated; callers serialize per scope.
      state reports the phase most recently entered by any running cycle and
      returns to IDLE only once none is running
"""

import inspect
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from itertools import product
from typing import Any, Callable, Iterator, Sequence

from paradigm.config import Settings
from paradigm.core.binding_generator import StemFormatter
from paradigm.core.cache_invalidation import invalidation_keys, parse_invalidation_scope
from paradigm.core.domain_types import BindingRow, RecomputePhase, WriteStrategy
from paradigm.core.errors import ErrorContext, PersistenceError
from paradigm.core.events import MorphologyEvent
from paradigm.core.recompute_plan import compute_rows, partition_batches, resolve_scope
from paradigm.core.repository_protocols import MetricsSink, RootReader, TemplateReader
from paradigm.infrastructure.database import DatabaseSessionManager
from paradigm.infrastructure.metrics import MetricsRegistry, PhaseTimer, time_phase
from paradigm.infrastructure.observability import log_context
from paradigm.services.bulk_writers import BulkPersistence
from paradigm.services.event_bus import EventBus
from paradigm.services.readers import SqlRootReader, SqlTemplateReader
from paradigm.services.worker_pool import run_bounded

logger = logging.getLogger(__name__)

PHASE_HISTOGRAMS = {
    RecomputePhase.FETCHING: "paradigm.fetch",
    RecomputePhase.COMPUTING: "paradigm.compute",
    RecomputePhase.PERSISTING: "paradigm.persist",
}


@dataclass
class RecomputeResult:
    """counts: roots, patterns, bindings. timings: fetch_ms, compute_ms, persist_ms."""
    counts: dict[str, int] = field(default_factory=dict)
    timings: dict[str, float] = field(default_factory=dict)


class RecomputeCoordinator:
    """Full and incremental paradigm recompute over a BulkPersistence."""

    def __init__(
        self,
        persistence: BulkPersistence,
        root_reader: RootReader,
        template_reader: TemplateReader,
        metrics: MetricsSink | None = None,
        batch_size: int = 500,
        concurrency: int = 4,
        strategy: WriteStrategy | str | None = None,
        stem_formatter: StemFormatter | None = None,
    ):
        self.persistence = persistence
        self.roots = root_reader
        self.templates = template_reader
        self.metrics = metrics or MetricsRegistry()
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.strategy = strategy
        self.stem_formatter = stem_formatter
        self._state = RecomputePhase.IDLE
        self._active = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        db: DatabaseSessionManager,
        metrics: MetricsSink | None = None,
    ) -> "RecomputeCoordinator":
        persistence = BulkPersistence(
            db,
            copy_threshold=settings.recompute_copy_threshold,
            default_strategy=settings.recompute_default_strategy,
        )
        return cls(
            persistence,
            SqlRootReader(db),
            SqlTemplateReader(db),
            metrics=metrics,
            batch_size=settings.recompute_batch_size,
            concurrency=settings.recompute_concurrency,
        )

    @property
    def state(self) -> RecomputePhase:
        return self._state

    # ─── Full recompute ──────────────────────────────────────────

    async def run_full_recompute(
        self,
        batch_size: int | None = None,
        strategy: WriteStrategy | str | None = None,
        concurrency: int | None = None,
    ) -> RecomputeResult:
        """Rebuild every root × pattern binding."""
        self.metrics.counter("paradigm.recompute.full").inc()
        self._active += 1
        try:
            with self._phase(RecomputePhase.FETCHING, "full") as fetch:
                roots = await self._fetch_roots()
                templates = await self._fetch_templates()

            with self._phase(RecomputePhase.COMPUTING, "full") as compute:
                rows = compute_rows(roots, templates, self.stem_formatter)

            with self._phase(RecomputePhase.PERSISTING, "full") as persist:
                await self._replace_scope(
                    rows, [r.id for r in roots], [t.id for t in templates],
                    batch_size, strategy, concurrency,
                )
        except Exception:
            self.metrics.counter("paradigm.recompute.failed").inc()
            raise
        finally:
            self._end_cycle()

        logger.info(
            f"Full recompute wrote {len(rows)} bindings",
            extra={
                "cycle": "full",
                "rows": len(rows),
                "duration_ms": round(persist.elapsed_ms, 2),
            },
        )
        return RecomputeResult(
            counts={"roots": len(roots), "patterns": len(templates), "bindings": len(rows)},
            timings={
                "fetch_ms": fetch.elapsed_ms,
                "compute_ms": compute.elapsed_ms,
                "persist_ms": persist.elapsed_ms,
            },
        )

    # ─── Incremental recompute ───────────────────────────────────

    async def process_invalidation(
        self,
        root_ids: Sequence[int] = (),
        template_ids: Sequence[int] = (),
        strategy: WriteStrategy | str | None = None,
        batch_size: int | None = None,
        concurrency: int | None = None,
    ) -> RecomputeResult:
        """Recompute the bindings of the given roots and/or templates.

        Only root_ids → those roots × all templates. Only template_ids →
        all roots × those templates. Both → exactly that cross product.
        """
        root_ids = sorted(set(root_ids))
        template_ids = sorted(set(template_ids))
        if not root_ids and not template_ids:
            return RecomputeResult(counts={"roots": 0, "patterns": 0, "bindings": 0})

        self.metrics.counter("paradigm.recompute.incremental").inc()
        self._active += 1
        try:
            with self._phase(RecomputePhase.FETCHING, "incremental") as fetch:
                all_roots = await self._fetch_roots()
                all_templates = await self._fetch_templates()
                roots, templates = resolve_scope(
                    root_ids, template_ids, all_roots, all_templates,
                )

            with self._phase(RecomputePhase.COMPUTING, "incremental") as compute:
                rows = compute_rows(roots, templates, self.stem_formatter)

            # Deleted entities no longer appear in the fetch but their rows
            # (if any survived the FK cascade) are still in scope.
            delete_roots = root_ids or [r.id for r in roots]
            delete_templates = template_ids or [t.id for t in templates]

            with self._phase(RecomputePhase.PERSISTING, "incremental") as persist:
                await self._replace_scope(
                    rows, delete_roots, delete_templates,
                    batch_size, strategy, concurrency,
                )
        except Exception:
            self.metrics.counter("paradigm.recompute.failed").inc()
            raise
        finally:
            self._end_cycle()

        logger.info(
            f"Incremental recompute wrote {len(rows)} bindings",
            extra={
                "cycle": "incremental",
                "rows": len(rows),
                "root_ids": root_ids,
                "template_ids": template_ids,
                "duration_ms": round(persist.elapsed_ms, 2),
            },
        )
        return RecomputeResult(
            counts={"roots": len(roots), "patterns": len(templates), "bindings": len(rows)},
            timings={
                "fetch_ms": fetch.elapsed_ms,
                "compute_ms": compute.elapsed_ms,
                "persist_ms": persist.elapsed_ms,
            },
        )

    # ─── Event subscription ──────────────────────────────────────

    def subscribe_and_process(
        self,
        bus: EventBus,
        on_event: Callable[[MorphologyEvent], Any] | None = None,
    ) -> Callable[[], None]:
        """Recompute the scope of every emitted event; returns unsubscribe."""

        async def handle(event: MorphologyEvent) -> None:
            scope = parse_invalidation_scope(invalidation_keys(event))
            if not scope.is_empty:
                await self.process_invalidation(scope.root_ids, scope.template_ids)
            if on_event is not None:
                result = on_event(event)
                if inspect.isawaitable(result):
                    await result

        return bus.subscribe(handle)

    # ─── Internals ───────────────────────────────────────────────

    @contextmanager
    def _phase(self, phase: RecomputePhase, cycle: str) -> Iterator[PhaseTimer]:
        """Enter phase: state, log context and its duration histogram."""
        self._state = phase
        with log_context(cycle=cycle, phase=phase.value), \
                time_phase(self.metrics, PHASE_HISTOGRAMS[phase]) as timer:
            yield timer

    def _end_cycle(self) -> None:
        self._active -= 1
        if not self._active:
            self._state = RecomputePhase.IDLE

    async def _fetch_roots(self) -> list:
        return sorted(await self.roots.list_all(), key=lambda r: r.id)

    async def _fetch_templates(self) -> list:
        return sorted(await self.templates.list_all(), key=lambda t: t.id)

    async def _delete_scope(
        self, root_ids: Sequence[int], template_ids: Sequence[int],
    ) -> None:
        if not root_ids or not template_ids:
            return
        try:
            await self.persistence.delete_scope(root_ids, template_ids)
            return
        except PersistenceError as e:
            self.metrics.counter("paradigm.delete.fallback").inc()
            logger.error(
                f"Set-based delete failed, falling back to per-pair deletes: {e}",
                extra={"root_ids": list(root_ids), "template_ids": list(template_ids)},
            )
        _, failed = await self.persistence.delete_pairs(product(root_ids, template_ids))
        if failed:
            raise PersistenceError(
                f"{len(failed)} pair delete(s) failed; stale bindings left in place",
                "delete",
                ErrorContext(
                    root_ids=sorted({r for r, _ in failed}),
                    template_ids=sorted({t for _, t in failed}),
                ),
            )

    async def _replace_scope(
        self,
        rows: list[BindingRow],
        root_ids: Sequence[int],
        template_ids: Sequence[int],
        batch_size: int | None,
        strategy: WriteStrategy | str | None,
        concurrency: int | None,
    ) -> None:
        await self._delete_scope(root_ids, template_ids)
        try:
            await self._persist_rows(rows, batch_size, strategy, concurrency)
        except Exception:
            logger.error(
                "Insert failed after scope delete; bindings missing until "
                "this scope is recomputed again",
                extra={"root_ids": list(root_ids), "template_ids": list(template_ids)},
            )
            raise

    async def _persist_rows(
        self,
        rows: list[BindingRow],
        batch_size: int | None,
        strategy: WriteStrategy | str | None,
        concurrency: int | None,
    ) -> None:
        batches = partition_batches(rows, batch_size or self.batch_size)
        override = strategy if strategy is not None else self.strategy

        async def write(index: int, batch: list[BindingRow]) -> int:
            return await self.persistence.persist_batch(batch, override, index)

        report = await run_bounded(batches, write, concurrency or self.concurrency)
        written = sum(r for r in report.results if r)
        self.metrics.counter("paradigm.bindings.written").inc(written)
        report.raise_for_errors(ErrorContext(
            strategy=getattr(override, "value", override),
            root_ids=sorted({row.root_id for row in rows}),
            template_ids=sorted({row.pattern_id for row in rows}),
        ))
