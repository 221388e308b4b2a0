"""The enrichment job: select matching documents, then bulk-update them."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from esenricher.domain.bulk import BulkMutationEngine, EngineOptions
from esenricher.domain.selection import DEFAULT_PAGE_SIZE, Selector
from esenricher.domain.types import JobSummary, UpdateOperation

if TYPE_CHECKING:
    import asyncio

    from esenricher.domain.ports.store import DocumentStore
    from esenricher.domain.types import EnrichmentRequest

log = getLogger(__name__)


async def run_enrichment(
    store: DocumentStore,
    request: EnrichmentRequest,
    *,
    options: EngineOptions | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    cancel_event: asyncio.Event | None = None,
) -> JobSummary:
    """Apply ``request.payload`` to every document matching ``request.filter``.

    Raises ``SelectionError`` before anything is queued if the documents cannot
    be selected. Dispatch failures never raise; they are counted in the
    returned summary. Setting ``cancel_event`` stops queueing new operations;
    whatever was queued already is still dispatched.
    """

    selector = Selector(store, page_size=page_size)
    selection = await selector.select(request.namespace, request.kind, request.filter)

    if not selection.refs:
        log.info(
            "0 hits found on index %s with type %s. Nothing more to do.",
            request.namespace,
            request.kind,
        )
        return JobSummary.empty(total_matches=selection.total_matches)

    log.info("Queueing %s document(s) for enrichment", len(selection.refs))
    engine = BulkMutationEngine(store, options)
    async with engine:
        for ref in selection.refs:
            if cancel_event is not None and cancel_event.is_set():
                engine.cancel()
                break
            await engine.submit(
                UpdateOperation(target=ref, payload=request.payload, upsert=request.upsert)
            )
        summary = await engine.shutdown(
            total_selected=len(selection.refs),
            total_matches=selection.total_matches,
            truncated=selection.truncated,
        )

    log.info(
        "Enrichment finished: selected=%s, succeeded=%s, failed=%s",
        summary.total_selected,
        summary.total_succeeded,
        summary.total_failed,
    )
    return summary
