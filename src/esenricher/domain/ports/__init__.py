"""Domain port definitions for adapters."""

from __future__ import annotations

from .store import (
    BulkDispatchError,
    DocumentStore,
    NamespaceNotFoundError,
    SearchFailedError,
    StoreError,
)

__all__ = [
    "BulkDispatchError",
    "DocumentStore",
    "NamespaceNotFoundError",
    "SearchFailedError",
    "StoreError",
]
