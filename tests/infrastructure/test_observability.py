"""Structured logging and in-process metrics."""

import asyncio
import json
import logging
import sys

import pytest

from paradigm.infrastructure.metrics import MetricsRegistry, time_phase
from paradigm.infrastructure.observability import (
    JSONFormatter, RecomputeContextFilter, log_context, setup_logging,
)


def _record(**extra):
    record = logging.LogRecord(
        "paradigm.services.bulk_writers", logging.INFO, __file__, 1,
        "Batch persisted", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_surfaces_recompute_extras():
    line = JSONFormatter().format(_record(strategy="unnest", rows=500, batch_index=3))
    payload = json.loads(line)
    assert payload["message"] == "Batch persisted"
    assert payload["level"] == "INFO"
    assert payload["strategy"] == "unnest"
    assert payload["rows"] == 500
    assert payload["batch_index"] == 3
    assert "phase" not in payload


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("copy aborted")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()
    payload = json.loads(JSONFormatter().format(record))
    assert "copy aborted" in payload["exception"]


def test_registry_returns_same_instrument_per_name():
    metrics = MetricsRegistry()
    metrics.counter("paradigm.recompute.full").inc()
    metrics.counter("paradigm.recompute.full").inc(2)
    assert metrics.snapshot()["counters"] == {"paradigm.recompute.full": 3}


def test_time_phase_observes_even_on_failure():
    metrics = MetricsRegistry()
    with pytest.raises(ValueError):
        with time_phase(metrics, "paradigm.persist"):
            raise ValueError("boom")
    with time_phase(metrics, "paradigm.persist") as timer:
        pass
    histogram = metrics.snapshot()["histograms"]["paradigm.persist"]
    assert histogram["count"] == 2
    assert timer.elapsed_ms >= 0


def test_exposition_uses_prometheus_names():
    metrics = MetricsRegistry()
    metrics.counter("paradigm.bindings.written").inc(6)
    metrics.histogram("paradigm.fetch").observe(12.5)
    text = metrics.exposition().decode()
    assert "paradigm_bindings_written_total 6.0" in text
    assert 'paradigm_fetch_bucket{le="25.0"} 1.0' in text


def test_registries_are_isolated():
    first, second = MetricsRegistry(), MetricsRegistry()
    first.counter("paradigm.recompute.full").inc()
    assert second.snapshot()["counters"] == {}


def test_log_context_binds_fields_until_block_exits():
    context_filter = RecomputeContextFilter()
    with log_context(cycle="incremental", phase="persisting"):
        inside = _record()
        explicit = _record(phase="fetching")
        context_filter.filter(inside)
        context_filter.filter(explicit)
    outside = _record()
    context_filter.filter(outside)

    payload = json.loads(JSONFormatter().format(inside))
    assert (payload["cycle"], payload["phase"]) == ("incremental", "persisting")
    assert explicit.phase == "fetching"
    assert "cycle" not in json.loads(JSONFormatter().format(outside))


async def test_log_context_reaches_worker_tasks():
    records = []

    class Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = Collect()
    handler.addFilter(RecomputeContextFilter())
    worker_logger = logging.getLogger("paradigm.services.worker_pool")
    worker_logger.addHandler(handler)
    worker_logger.setLevel(logging.INFO)

    async def worker(index):
        await asyncio.sleep(0)
        worker_logger.info(f"batch {index}", extra={"batch_index": index})

    try:
        with log_context(cycle="full", phase="persisting"):
            await asyncio.gather(worker(0), worker(1))
    finally:
        worker_logger.removeHandler(handler)
        worker_logger.setLevel(logging.NOTSET)

    assert sorted(r.batch_index for r in records) == [0, 1]
    assert {(r.cycle, r.phase) for r in records} == {("full", "persisting")}


def test_setup_logging_replaces_its_own_handler():
    first = setup_logging("DEBUG", "json")
    second = setup_logging("INFO", "text")
    assert first not in logging.root.handlers
    assert second in logging.root.handlers
    assert logging.root.level == logging.INFO
