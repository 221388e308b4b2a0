"""Asynchronous bulk-mutation engine."""

from __future__ import annotations

from .collector import ResultCollector, SummaryNotReadyError
from .engine import DEFAULT_WORKERS, BulkMutationEngine, EngineOptions
from .flush import (
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_MAX_BATCH_SIZE,
    FlushController,
    FlushPolicy,
    InvalidStateTransitionError,
    JobState,
)
from .queue import MutationQueue, QueueClosedError, QueueSignal
from .workers import WorkerPool, align_results

__all__ = [
    "DEFAULT_FLUSH_INTERVAL_SECONDS",
    "DEFAULT_MAX_BATCH_SIZE",
    "DEFAULT_WORKERS",
    "BulkMutationEngine",
    "EngineOptions",
    "FlushController",
    "FlushPolicy",
    "InvalidStateTransitionError",
    "JobState",
    "MutationQueue",
    "QueueClosedError",
    "QueueSignal",
    "ResultCollector",
    "SummaryNotReadyError",
    "WorkerPool",
    "align_results",
]
