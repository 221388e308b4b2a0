"""Bounded channel between the producer and the worker pool."""

from __future__ import annotations

import asyncio
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esenricher.domain.types import UpdateOperation


class QueueClosedError(RuntimeError):
    """Raised when an operation is pushed after the queue was closed."""


class QueueSignal(Enum):
    TIMEOUT = auto()
    END_OF_INPUT = auto()


class MutationQueue:
    """FIFO of pending update operations with an explicit end-of-input signal.

    ``put`` blocks while the queue is full. ``close`` enqueues one
    end-of-input marker per consumer behind every accepted operation, so a
    consumer that receives its marker knows nothing is left for it to take.
    Puts and the close are serialised by a lock: an operation accepted before
    the close can never land behind the markers.
    """

    def __init__(self, maxsize: int, *, consumers: int) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        if consumers < 1:
            raise ValueError("consumers must be at least 1")
        self._queue: asyncio.Queue[UpdateOperation | QueueSignal] = asyncio.Queue(maxsize)
        self._consumers = consumers
        self._lock = asyncio.Lock()
        self._closed = False
        self._accepted = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def accepted(self) -> int:
        return self._accepted

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def pending(self) -> int:
        """Operations (and markers) still waiting to be consumed."""
        return self._queue.qsize()

    async def put(self, operation: UpdateOperation) -> None:
        async with self._lock:
            if self._closed:
                raise QueueClosedError(f"Queue is closed, rejecting update of {operation.target}")
            await self._queue.put(operation)
            self._accepted += 1

    async def close(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            for _ in range(self._consumers):
                await self._queue.put(QueueSignal.END_OF_INPUT)

    async def get(self, timeout: float | None = None) -> UpdateOperation | QueueSignal:
        """Return the next operation, ``TIMEOUT`` or ``END_OF_INPUT``.

        A consumer must stop calling ``get`` once it has seen ``END_OF_INPUT``.
        """

        try:
            async with asyncio.timeout(timeout):
                return await self._queue.get()
        except TimeoutError:
            return QueueSignal.TIMEOUT
