"""Tuning knobs for the bulk enrichment job."""

from __future__ import annotations

from dataclasses import dataclass

from esenricher.domain.bulk import (
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_WORKERS,
)
from esenricher.domain.selection import DEFAULT_PAGE_SIZE

from .errors import InvalidSettingError


@dataclass(frozen=True, slots=True)
class EnrichmentSettings:
    """Explicit configuration handed to the selector and the worker pool.

    Defaults come from the domain layer so the CLI, the settings and a bare
    ``run_enrichment`` call agree. ``queue_size`` bounds the mutation queue;
    ``None`` lets the engine size it to two full batches per worker.
    """

    workers: int = DEFAULT_WORKERS
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS
    page_size: int = DEFAULT_PAGE_SIZE
    queue_size: int | None = None
    refresh: bool = True

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise InvalidSettingError("Worker count must be at least 1")
        if self.max_batch_size < 1:
            raise InvalidSettingError("Batch size must be at least 1")
        if self.flush_interval <= 0:
            raise InvalidSettingError("Flush interval must be positive")
        if self.page_size < 1:
            raise InvalidSettingError("Page size must be at least 1")
        if self.queue_size is not None and self.queue_size < 1:
            raise InvalidSettingError("Queue size must be at least 1")
