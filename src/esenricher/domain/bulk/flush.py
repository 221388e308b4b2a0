"""Flush triggers and the shutdown protocol of the bulk engine.

A worker flushes its batch when the batch is full or when ``flush_interval``
seconds have passed since its first operation. Shutdown walks through
``RUNNING -> DRAINING -> FLUSHED -> STOPPED``:

* ``DRAINING`` starts when the queue is closed. Workers keep consuming what is
  already queued.
* ``FLUSHED`` is reached only after every worker task has returned, which each
  worker does after dispatching its last partial batch and seeing its
  end-of-input marker. Awaiting the tasks is the rendezvous; there is no grace
  period or sleep involved.
* ``STOPPED`` freezes the summary.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esenricher.domain.types import JobSummary

    from .collector import ResultCollector
    from .queue import MutationQueue
    from .workers import WorkerPool

log = getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_FLUSH_INTERVAL_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class FlushPolicy:
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if self.flush_interval <= 0:
            raise ValueError("flush_interval must be positive")

    def is_full(self, size: int) -> bool:
        return size >= self.max_batch_size

    def deadline(self, started_at: float) -> float:
        return started_at + self.flush_interval


class JobState(StrEnum):
    RUNNING = "running"
    DRAINING = "draining"
    FLUSHED = "flushed"
    STOPPED = "stopped"


_NEXT_STATE: dict[JobState, JobState] = {
    JobState.RUNNING: JobState.DRAINING,
    JobState.DRAINING: JobState.FLUSHED,
    JobState.FLUSHED: JobState.STOPPED,
}


class InvalidStateTransitionError(RuntimeError):
    def __init__(self, current: JobState, target: JobState) -> None:
        super().__init__(f"Cannot move from {current} to {target}")
        self.current = current
        self.target = target


class FlushController:
    """Owns the job state and drives the shutdown sequence."""

    def __init__(
        self,
        *,
        queue: MutationQueue,
        pool: WorkerPool,
        collector: ResultCollector,
    ) -> None:
        self._queue = queue
        self._pool = pool
        self._collector = collector
        self._state = JobState.RUNNING
        self._lock = asyncio.Lock()
        self._failure: Exception | None = None

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def accepting(self) -> bool:
        return self._state is JobState.RUNNING

    def _advance(self, target: JobState) -> None:
        if _NEXT_STATE.get(self._state) is not target:
            raise InvalidStateTransitionError(self._state, target)
        log.debug("Bulk engine %s -> %s", self._state, target)
        self._state = target

    async def shutdown(
        self,
        *,
        total_selected: int | None = None,
        total_matches: int | None = None,
        truncated: bool = False,
        cancelled: bool = False,
    ) -> JobSummary:
        """Drain the queue, wait for every worker, and return the final summary.

        Safe to call more than once; later calls return the first summary. If
        a shutdown failed, later calls raise the same error again.
        """

        async with self._lock:
            if self._failure is not None:
                raise self._failure
            if self._state is JobState.STOPPED:
                return self._collector.summary
            try:
                return await self._drain(
                    total_selected=total_selected,
                    total_matches=total_matches,
                    truncated=truncated,
                    cancelled=cancelled,
                )
            except Exception as exc:
                self._failure = exc
                raise

    async def _drain(
        self,
        *,
        total_selected: int | None,
        total_matches: int | None,
        truncated: bool,
        cancelled: bool,
    ) -> JobSummary:
        self._advance(JobState.DRAINING)
        await self._queue.close()
        log.info(
            "Done queueing %s operation(s), waiting for workers to flush",
            self._queue.accepted,
        )

        await self._pool.join()
        if self._queue.pending():
            raise RuntimeError(f"{self._queue.pending()} queued item(s) left after flush")
        if self._collector.recorded != self._queue.accepted:
            raise RuntimeError(
                f"Recorded {self._collector.recorded} result(s) "
                f"for {self._queue.accepted} accepted operation(s)"
            )
        self._advance(JobState.FLUSHED)

        summary = self._collector.finalize(
            total_selected=self._queue.accepted if total_selected is None else total_selected,
            total_matches=total_matches,
            truncated=truncated,
            cancelled=cancelled,
        )
        self._advance(JobState.STOPPED)
        return summary
