"""Facade over queue, worker pool, flush controller and result collector."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Self

from .collector import ResultCollector
from .flush import FlushController, FlushPolicy, JobState
from .queue import MutationQueue, QueueClosedError
from .workers import WorkerPool

if TYPE_CHECKING:
    from types import TracebackType

    from esenricher.domain.ports.store import DocumentStore
    from esenricher.domain.types import JobSummary, UpdateOperation

log = getLogger(__name__)

DEFAULT_WORKERS = 10


@dataclass(frozen=True, slots=True)
class EngineOptions:
    workers: int = DEFAULT_WORKERS
    policy: FlushPolicy = field(default_factory=FlushPolicy)
    queue_size: int | None = None

    @property
    def effective_queue_size(self) -> int:
        if self.queue_size is not None:
            return self.queue_size
        return self.workers * self.policy.max_batch_size * 2


class BulkMutationEngine:
    """Accepts update operations and applies them to the store in batches.

    Typical use::

        async with BulkMutationEngine(store, options) as engine:
            for op in operations:
                await engine.submit(op)
        summary = engine.summary

    Leaving the block (or calling ``shutdown``) blocks until every accepted
    operation has been dispatched and its result recorded.
    """

    def __init__(self, store: DocumentStore, options: EngineOptions | None = None) -> None:
        self._options = options or EngineOptions()
        self._queue = MutationQueue(
            self._options.effective_queue_size,
            consumers=self._options.workers,
        )
        self._collector = ResultCollector()
        self._pool = WorkerPool(
            queue=self._queue,
            store=store,
            collector=self._collector,
            policy=self._options.policy,
            size=self._options.workers,
        )
        self._controller = FlushController(
            queue=self._queue,
            pool=self._pool,
            collector=self._collector,
        )
        self._cancelled = False

    @property
    def state(self) -> JobState:
        return self._controller.state

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def accepted(self) -> int:
        return self._queue.accepted

    @property
    def dispatches(self) -> int:
        return self._pool.dispatches

    @property
    def summary(self) -> JobSummary:
        """The final summary; raises ``SummaryNotReadyError`` before shutdown."""
        return self._collector.summary

    def start(self) -> None:
        if not self._pool.started:
            self._pool.start()

    def cancel(self) -> None:
        """Stop accepting operations. Already accepted ones are still applied."""
        if not self._cancelled:
            log.warning(
                "Enrichment cancelled, draining %s queued operation(s)",
                self._queue.pending(),
            )
        self._cancelled = True

    async def submit(self, operation: UpdateOperation) -> None:
        if self._cancelled or not self._controller.accepting:
            raise QueueClosedError(
                f"Engine is {self.state}, rejecting update of {operation.target}"
            )
        self.start()
        await self._queue.put(operation)

    async def shutdown(
        self,
        *,
        total_selected: int | None = None,
        total_matches: int | None = None,
        truncated: bool = False,
    ) -> JobSummary:
        self.start()
        return await self._controller.shutdown(
            total_selected=total_selected,
            total_matches=total_matches,
            truncated=truncated,
            cancelled=self._cancelled,
        )

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._controller.state is not JobState.STOPPED:
            await self.shutdown()
