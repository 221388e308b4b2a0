"""Worker tasks that batch queued operations and dispatch them to the store."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from esenricher.domain.ports.store import BulkDispatchError
from esenricher.domain.types import OperationResult

from .queue import QueueSignal

if TYPE_CHECKING:
    from collections.abc import Sequence

    from esenricher.domain.ports.store import DocumentStore
    from esenricher.domain.types import Batch, DocumentRef, UpdateOperation

    from .collector import ResultCollector
    from .flush import FlushPolicy
    from .queue import MutationQueue

log = getLogger(__name__)


class WorkerPool:
    """A fixed number of asyncio tasks draining one ``MutationQueue``.

    Every worker keeps its own batch. Results of each dispatch go to the
    collector; a failed dispatch never stops the worker.
    """

    def __init__(
        self,
        *,
        queue: MutationQueue,
        store: DocumentStore,
        collector: ResultCollector,
        policy: FlushPolicy,
        size: int,
    ) -> None:
        if size < 1:
            raise ValueError("Worker pool size must be at least 1")
        self._queue = queue
        self._store = store
        self._collector = collector
        self._policy = policy
        self._size = size
        self._tasks: list[asyncio.Task[None]] = []
        self._dispatches = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def started(self) -> bool:
        return bool(self._tasks)

    @property
    def dispatches(self) -> int:
        return self._dispatches

    def start(self) -> None:
        if self._tasks:
            raise RuntimeError("Worker pool already started")
        self._tasks = [
            asyncio.create_task(self._run(index), name=f"enrichment-worker-{index}")
            for index in range(self._size)
        ]
        log.debug("Started %s enrichment worker(s)", self._size)

    async def join(self) -> None:
        """Wait until every worker has flushed its last batch and returned."""

        if not self._tasks:
            raise RuntimeError("Worker pool was never started")
        await asyncio.gather(*self._tasks)

    async def _run(self, index: int) -> None:
        loop = asyncio.get_running_loop()
        batch: list[UpdateOperation] = []
        deadline: float | None = None

        while True:
            if deadline is not None and loop.time() >= deadline:
                await self._dispatch(index, batch, trigger="interval")
                batch, deadline = [], None

            timeout = None if deadline is None else max(deadline - loop.time(), 0.0)
            item = await self._queue.get(timeout)
            if item is QueueSignal.TIMEOUT:
                continue
            if item is QueueSignal.END_OF_INPUT:
                break

            if not batch:
                deadline = self._policy.deadline(loop.time())
            batch.append(item)
            if self._policy.is_full(len(batch)):
                await self._dispatch(index, batch, trigger="size")
                batch, deadline = [], None

        if batch:
            await self._dispatch(index, batch, trigger="shutdown")
        log.debug("Worker %s finished", index)

    async def _dispatch(self, index: int, pending: list[UpdateOperation], *, trigger: str) -> None:
        batch: Batch = tuple(pending)
        log.debug("Worker %s dispatching %s operation(s) (%s)", index, len(batch), trigger)
        try:
            results = await self._store.bulk_update(batch)
        except BulkDispatchError as exc:
            log.warning("Bulk update of %s document(s) failed: %s", len(batch), exc)
            outcome = [OperationResult.failed(op.target, str(exc)) for op in batch]
        except Exception as exc:
            log.exception("Unexpected error during bulk update of %s document(s)", len(batch))
            outcome = [
                OperationResult.failed(op.target, str(exc), error_type=type(exc).__name__)
                for op in batch
            ]
        else:
            outcome = align_results(batch, results)
        self._dispatches += 1
        await self._collector.record(outcome)


def align_results(batch: Batch, results: Sequence[OperationResult]) -> list[OperationResult]:
    """Return exactly one result per operation of ``batch``, in batch order.

    Stores answer positionally; if the answer does not line up, results are
    matched by target and operations without one are marked failed.
    """

    if len(results) == len(batch) and all(
        result.target == op.target for op, result in zip(batch, results, strict=True)
    ):
        return list(results)

    log.error(
        "Store returned %s result(s) for a batch of %s, matching them by document",
        len(results),
        len(batch),
    )
    by_target: dict[DocumentRef, list[OperationResult]] = {}
    for result in results:
        by_target.setdefault(result.target, []).append(result)

    aligned: list[OperationResult] = []
    for op in batch:
        candidates = by_target.get(op.target)
        if candidates:
            aligned.append(candidates.pop(0))
        else:
            aligned.append(OperationResult.failed(op.target, "no result returned by the store"))
    return aligned
