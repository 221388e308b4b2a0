"""Selection of the documents an enrichment run applies to."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from esenricher.domain.ports.store import NamespaceNotFoundError, SearchFailedError

if TYPE_CHECKING:
    from esenricher.domain.ports.store import DocumentStore
    from esenricher.domain.types import DocumentRef, EqualityFilter

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class SelectionError(RuntimeError):
    """Raised when the documents to enrich cannot be selected. Always fatal."""

    def __init__(self, message: str, *, namespace: str, kind: str | None, store: str) -> None:
        super().__init__(
            f"{message} (index={namespace}, type={kind or '-'}, store={store})"
        )
        self.namespace = namespace
        self.kind = kind
        self.store = store


@dataclass(frozen=True, slots=True)
class Selection:
    refs: tuple[DocumentRef, ...]
    total_matches: int
    took_ms: int | None = None

    @property
    def truncated(self) -> bool:
        return self.total_matches > len(self.refs)


def build_selection_query(filter_: EqualityFilter, *, page_size: int) -> dict[str, Any]:
    """Render a size-bounded term-filter query for one field/value pair."""

    return {
        "size": page_size,
        "query": {
            "bool": {
                "filter": [
                    {"term": {filter_.field: filter_.value}},
                ],
            },
        },
    }


class Selector:
    """Runs the single bounded query of an enrichment job.

    Only the first ``page_size`` matches are returned. When the store reports
    more, the selection is flagged as truncated and a warning is logged.
    """

    def __init__(self, store: DocumentStore, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._store = store
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    async def select(
        self,
        namespace: str,
        kind: str | None,
        filter_: EqualityFilter,
    ) -> Selection:
        location = self._store.describe()
        try:
            await self._store.ensure_namespace(namespace, kind)
        except NamespaceNotFoundError as exc:
            raise SelectionError(
                f"Enrichment failed, {exc}", namespace=namespace, kind=kind, store=location
            ) from exc
        except SearchFailedError as exc:
            raise SelectionError(
                f"Unable to look up the index: {exc}",
                namespace=namespace,
                kind=kind,
                store=location,
            ) from exc

        query = build_selection_query(filter_, page_size=self._page_size)
        try:
            page = await self._store.search(namespace, kind, query)
        except (NamespaceNotFoundError, SearchFailedError) as exc:
            raise SelectionError(
                f"Error when searching for documents: {exc}",
                namespace=namespace,
                kind=kind,
                store=location,
            ) from exc

        refs = tuple(page.refs[: self._page_size])
        selection = Selection(refs=refs, total_matches=page.total_matches, took_ms=page.took_ms)
        log.info(
            "Found %s document(s) where %s=%s, %s returned",
            selection.total_matches,
            filter_.field,
            filter_.value,
            len(refs),
        )
        if selection.took_ms is not None:
            log.info("The store reports the query took %s ms to execute", selection.took_ms)
        if selection.truncated:
            log.warning(
                "Only the first %s of %s matching documents will be enriched; "
                "raise --page-size or narrow the filter to cover the rest",
                len(refs),
                selection.total_matches,
            )
        return selection
