"""Bounded worker pool tests — concurrency ceiling, halt-on-failure, error surfacing."""

import asyncio

import pytest

from paradigm.core.errors import ErrorContext, PartialBatchFailure
from paradigm.services.worker_pool import PoolReport, run_bounded


async def test_all_items_processed_in_index_order():
    async def worker(index, item):
        await asyncio.sleep(0)
        return item * 10

    report = await run_bounded([1, 2, 3, 4, 5], worker, concurrency=2)

    assert report.results == [10, 20, 30, 40, 50]
    assert (report.total, report.succeeded, report.failed, report.skipped) == (5, 5, 0, 0)
    report.raise_for_errors()


async def test_in_flight_never_exceeds_concurrency():
    in_flight = 0
    peak = 0

    async def worker(index, item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1

    await run_bounded(list(range(10)), worker, concurrency=3)

    assert peak == 3


async def test_empty_input_spawns_nothing():
    async def worker(index, item):
        raise AssertionError("never called")

    report = await run_bounded([], worker, concurrency=4)
    assert report.total == 0
    report.raise_for_errors()


async def test_rejects_non_positive_concurrency():
    async def worker(index, item):
        return item

    with pytest.raises(ValueError):
        await run_bounded([1], worker, concurrency=0)


async def test_failure_halts_queue_but_lets_siblings_finish():
    finished = []
    release = asyncio.Event()

    async def worker(index, item):
        if index == 0:
            await asyncio.sleep(0)
            raise RuntimeError("batch 0 broke")
        await release.wait()
        finished.append(index)

    async def release_later():
        await asyncio.sleep(0.01)
        release.set()

    report, _ = await asyncio.gather(
        run_bounded(list(range(6)), worker, concurrency=2), release_later(),
    )

    # batch 1 was already running when batch 0 failed; nothing else starts
    assert finished == [1]
    assert (report.succeeded, report.failed, report.skipped) == (1, 1, 4)
    assert report.results[0] is None


async def test_first_error_reraised_when_nothing_committed():
    async def worker(index, item):
        raise KeyError(index)

    report = await run_bounded([1, 2], worker, concurrency=1)

    with pytest.raises(KeyError):
        report.raise_for_errors()


async def test_partial_failure_wraps_first_error():
    async def worker(index, item):
        if index == 1:
            raise RuntimeError("boom")
        return item

    report = await run_bounded([1, 2, 3], worker, concurrency=1)

    with pytest.raises(PartialBatchFailure) as exc:
        report.raise_for_errors(ErrorContext(strategy="row"))
    error = exc.value
    assert (error.succeeded, error.failed, error.skipped) == (1, 1, 1)
    assert isinstance(error.__cause__, RuntimeError)
    assert error.first_error is error.__cause__
    assert error.to_dict()["error"]["context"]["strategy"] == "row"


def test_report_without_errors_does_not_raise():
    PoolReport(total=2, succeeded=2, results=[1, 2]).raise_for_errors()
