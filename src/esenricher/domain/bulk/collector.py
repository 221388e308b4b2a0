"""Aggregation of per-operation outcomes into the job summary."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from esenricher.domain.types import JobSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from esenricher.domain.types import OperationResult


class SummaryNotReadyError(RuntimeError):
    """Raised when the summary is read before the job has stopped."""


class ResultCollector:
    """Counts successes and keeps failures, safe for concurrent workers."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._succeeded = 0
        self._failures: list[OperationResult] = []
        self._summary: JobSummary | None = None

    @property
    def finalized(self) -> bool:
        return self._summary is not None

    @property
    def recorded(self) -> int:
        return self._succeeded + len(self._failures)

    async def record(self, results: Iterable[OperationResult]) -> None:
        async with self._lock:
            if self._summary is not None:
                raise RuntimeError("Result collector already finalized")
            for result in results:
                if result.succeeded:
                    self._succeeded += 1
                else:
                    self._failures.append(result)

    def finalize(
        self,
        *,
        total_selected: int,
        total_matches: int | None = None,
        truncated: bool = False,
        cancelled: bool = False,
    ) -> JobSummary:
        if self._summary is None:
            self._summary = JobSummary(
                total_selected=total_selected,
                total_succeeded=self._succeeded,
                total_failed=len(self._failures),
                failures=tuple(self._failures),
                total_matches=total_matches,
                truncated=truncated,
                cancelled=cancelled,
            )
        return self._summary

    @property
    def summary(self) -> JobSummary:
        if self._summary is None:
            raise SummaryNotReadyError("Job summary is not final until the job has stopped")
        return self._summary
