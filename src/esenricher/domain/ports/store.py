"""Port for the document store the enrichment job reads from and writes to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from esenricher.domain.types import Batch, OperationResult, SearchPage


class StoreError(RuntimeError):
    """Base class for failures reported by a store adapter."""


class NamespaceNotFoundError(StoreError):
    """Raised when the namespace (or the kind inside it) does not exist."""

    def __init__(self, namespace: str, kind: str | None) -> None:
        where = f"index {namespace}" if not kind else f"index {namespace} or document type {kind}"
        super().__init__(f"{where} not found")
        self.namespace = namespace
        self.kind = kind


class SearchFailedError(StoreError):
    """Raised when a query cannot be executed or its response cannot be read."""


class BulkDispatchError(StoreError):
    """Raised when a whole bulk call fails, e.g. on a transport error.

    Per-item rejections are not errors; they come back as failed
    ``OperationResult`` entries.
    """


@runtime_checkable
class DocumentStore(Protocol):
    """Capability interface of the store: look up, search and bulk-update."""

    async def ensure_namespace(self, namespace: str, kind: str | None) -> None:
        """Raise ``NamespaceNotFoundError`` unless the namespace/kind exists."""
        ...

    async def search(
        self,
        namespace: str,
        kind: str | None,
        query: Mapping[str, Any],
    ) -> SearchPage: ...

    async def bulk_update(self, batch: Batch) -> Sequence[OperationResult]:
        """Apply every operation of ``batch`` in one call.

        Returns one result per operation, in batch order. Raises
        ``BulkDispatchError`` when the call as a whole fails.
        """
        ...

    def describe(self) -> str:
        """Human-readable location of the store, used in error messages."""
        ...


__all__ = [
    "BulkDispatchError",
    "DocumentStore",
    "NamespaceNotFoundError",
    "SearchFailedError",
    "StoreError",
]
