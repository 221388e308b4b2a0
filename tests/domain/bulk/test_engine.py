from __future__ import annotations

import asyncio

import pytest

from esenricher.domain.bulk import (
    BulkMutationEngine,
    EngineOptions,
    FlushPolicy,
    JobState,
    QueueClosedError,
    SummaryNotReadyError,
)
from esenricher.domain.types import JobSummary
from tests.support.store import InMemoryDocumentStore, make_operations, make_refs


def _options(
    *,
    workers: int = 4,
    batch_size: int = 10,
    flush_interval: float = 3600,
    queue_size: int | None = None,
) -> EngineOptions:
    return EngineOptions(
        workers=workers,
        policy=FlushPolicy(max_batch_size=batch_size, flush_interval=flush_interval),
        queue_size=queue_size,
    )


def _run(store: InMemoryDocumentStore, count: int, options: EngineOptions) -> JobSummary:
    async def scenario() -> JobSummary:
        engine = BulkMutationEngine(store, options)
        engine.start()
        for operation in make_operations(count):
            await engine.submit(operation)
        return await engine.shutdown()

    return asyncio.run(scenario())


def test_every_queued_operation_is_dispatched_once() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(250))

    summary = _run(store, 250, _options(workers=4, batch_size=10))

    assert summary.total_selected == 250
    assert summary.total_succeeded == 250
    assert summary.total_failed == 0
    assert sorted(ref.identifier for ref in store.dispatched) == sorted(
        ref.identifier for ref in make_refs(250)
    )
    assert all(len(batch) <= 10 for batch in store.bulk_calls)
    assert all(source["enriched"] is True for source in store.documents.values())


@pytest.mark.parametrize("workers", [1, 5, 50])
def test_totals_do_not_depend_on_worker_count(workers: int) -> None:
    refs = make_refs(1000)
    rejections = {ref.identifier: (409, "version_conflict_engine_exception") for ref in refs[::7]}
    store = InMemoryDocumentStore.with_documents(refs, rejections=rejections, latency=0.001)

    summary = _run(store, 1000, _options(workers=workers, batch_size=25))

    assert summary.total_selected == 1000
    assert summary.total_succeeded == 1000 - len(rejections)
    assert summary.total_failed == len(rejections)
    assert {result.target.identifier for result in summary.failures} == set(rejections)
    assert store.max_in_flight <= workers


def test_last_partial_batch_is_flushed_exactly_once_on_shutdown() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(3))

    summary = _run(store, 3, _options(workers=4, batch_size=10, flush_interval=3600))

    assert len(store.bulk_calls) == 1
    assert [op.target for op in store.bulk_calls[0]] == make_refs(3)
    assert summary.total_succeeded == 3


def test_shutdown_right_after_start_still_flushes() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(1))

    async def scenario() -> JobSummary:
        engine = BulkMutationEngine(store, _options(workers=50))
        await engine.submit(make_operations(1)[0])
        return await engine.shutdown()

    summary = asyncio.run(scenario())

    assert summary.total_succeeded == 1
    assert len(store.bulk_calls) == 1


def test_partial_batch_is_flushed_when_interval_elapses() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(3))

    async def scenario() -> tuple[int, JobSummary]:
        engine = BulkMutationEngine(store, _options(workers=2, batch_size=100, flush_interval=0.05))
        for operation in make_operations(3):
            await engine.submit(operation)
        await asyncio.sleep(0.5)
        calls_before_shutdown = len(store.bulk_calls)
        return calls_before_shutdown, await engine.shutdown()

    calls_before_shutdown, summary = asyncio.run(scenario())

    assert calls_before_shutdown >= 1
    assert sum(len(batch) for batch in store.bulk_calls) == 3
    assert summary.total_succeeded == 3


def test_transport_failure_fails_the_whole_batch() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(5), failing_calls=1)

    summary = _run(store, 5, _options(workers=1, batch_size=5))

    assert summary.total_failed == 5
    assert summary.total_succeeded == 0
    assert {result.failure.reason for result in summary.failures if result.failure} == {
        "connection refused"
    }


def test_transport_failure_does_not_stop_later_batches() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(10), failing_calls=1)

    summary = _run(store, 10, _options(workers=1, batch_size=5))

    assert summary.total_failed == 5
    assert summary.total_succeeded == 5
    assert len(store.bulk_calls) == 2


def test_submit_is_rejected_once_stopped() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(2))
    first, second = make_operations(2)

    async def scenario() -> BulkMutationEngine:
        engine = BulkMutationEngine(store, _options())
        await engine.submit(first)
        await engine.shutdown()
        await engine.submit(second)
        return engine

    with pytest.raises(QueueClosedError, match="stopped"):
        asyncio.run(scenario())

    assert store.dispatched == [first.target]


def test_summary_is_not_readable_before_stop() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(1))

    async def scenario() -> JobState:
        engine = BulkMutationEngine(store, _options())
        await engine.submit(make_operations(1)[0])
        with pytest.raises(SummaryNotReadyError):
            _ = engine.summary
        await engine.shutdown()
        assert engine.summary.total_succeeded == 1
        return engine.state

    assert asyncio.run(scenario()) is JobState.STOPPED


def test_cancel_drains_what_was_already_queued() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(5))
    operations = make_operations(5)

    async def scenario() -> JobSummary:
        engine = BulkMutationEngine(store, _options(workers=2, batch_size=100))
        for operation in operations[:3]:
            await engine.submit(operation)
        engine.cancel()
        with pytest.raises(QueueClosedError):
            await engine.submit(operations[3])
        return await engine.shutdown(total_selected=5)

    summary = asyncio.run(scenario())

    assert summary.cancelled
    assert summary.total_selected == 5
    assert summary.total_succeeded == 3
    assert sorted(ref.identifier for ref in store.dispatched) == ["doc-0", "doc-1", "doc-2"]


def test_context_manager_flushes_on_exit() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(4))

    async def scenario() -> BulkMutationEngine:
        async with BulkMutationEngine(store, _options(batch_size=3)) as engine:
            for operation in make_operations(4):
                await engine.submit(operation)
        return engine

    engine = asyncio.run(scenario())

    assert engine.state is JobState.STOPPED
    assert engine.summary.total_succeeded == 4
    assert engine.accepted == 4
    assert engine.dispatches == len(store.bulk_calls)


def test_small_queue_applies_backpressure_without_losing_work() -> None:
    store = InMemoryDocumentStore.with_documents(make_refs(40), latency=0.002)

    summary = _run(store, 40, _options(workers=2, batch_size=4, queue_size=1))

    assert summary.total_succeeded == 40


def test_default_queue_size_holds_two_batches_per_worker() -> None:
    assert _options(workers=3, batch_size=7).effective_queue_size == 42
    assert _options(queue_size=5).effective_queue_size == 5
