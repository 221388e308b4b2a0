from __future__ import annotations

import asyncio

import pytest

from esenricher.domain.bulk import ResultCollector, SummaryNotReadyError
from esenricher.domain.types import OperationResult
from tests.support.store import make_refs


def test_collector_counts_concurrent_records() -> None:
    refs = make_refs(1000)

    async def scenario() -> ResultCollector:
        collector = ResultCollector()
        chunks = [refs[n : n + 10] for n in range(0, len(refs), 10)]
        await asyncio.gather(
            *(
                collector.record(
                    OperationResult.failed(ref, "conflict", status=409)
                    if index % 10 == 0
                    else OperationResult.success(ref)
                    for index, ref in enumerate(chunk)
                )
                for chunk in chunks
            )
        )
        return collector

    collector = asyncio.run(scenario())
    summary = collector.finalize(total_selected=1000)

    assert collector.recorded == 1000
    assert summary.total_succeeded == 900
    assert summary.total_failed == 100
    assert all(result.failure is not None for result in summary.failures)


def test_summary_is_unavailable_until_finalized() -> None:
    collector = ResultCollector()

    with pytest.raises(SummaryNotReadyError):
        _ = collector.summary

    summary = collector.finalize(total_selected=0)

    assert collector.summary is summary
    assert collector.finalize(total_selected=5) is summary


def test_record_after_finalize_is_rejected() -> None:
    (ref,) = make_refs(1)
    collector = ResultCollector()
    collector.finalize(total_selected=1)

    with pytest.raises(RuntimeError, match="finalized"):
        asyncio.run(collector.record([OperationResult.success(ref)]))


def test_failures_keep_their_reason() -> None:
    first, second = make_refs(2)
    collector = ResultCollector()
    asyncio.run(
        collector.record(
            [
                OperationResult.success(first),
                OperationResult.failed(
                    second, "version conflict", status=409, error_type="version_conflict"
                ),
            ]
        )
    )

    summary = collector.finalize(total_selected=2, total_matches=7, truncated=True)

    assert summary.total_matches == 7
    assert summary.truncated
    (failure,) = summary.failures
    assert failure.target == second
    assert str(failure.failure) == "[409] version_conflict: version conflict"
