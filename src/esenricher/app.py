"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from logging import getLogger
from signal import SIGINT, SIGTERM, Signals
from typing import TYPE_CHECKING

from esenricher.adapters.elasticsearch import ElasticsearchStore
from esenricher.config import (
    ElasticsearchConfig,
    EnrichmentSettings,
    MissingConfigurationError,
    get_elasticsearch_config,
    parse_payload,
)
from esenricher.domain.bulk import EngineOptions, FlushPolicy
from esenricher.domain.enrichment import run_enrichment
from esenricher.domain.types import EnrichmentRequest, EqualityFilter

if TYPE_CHECKING:
    from esenricher.domain.ports.store import DocumentStore
    from esenricher.domain.types import JobSummary

StoreFactory = Callable[
    [ElasticsearchConfig, EnrichmentSettings],
    AbstractAsyncContextManager["DocumentStore"],
]


log = getLogger(__name__)


def _default_store_factory(
    config: ElasticsearchConfig,
    settings: EnrichmentSettings,
) -> AbstractAsyncContextManager[DocumentStore]:
    return ElasticsearchStore(config, refresh=settings.refresh)


def build_request(
    *,
    index: str,
    doc_type: str | None,
    id_field: str,
    id_value: str | None,
    payload_json: str,
    upsert: bool = False,
) -> EnrichmentRequest:
    """Validate raw job input; raises ``ConfigurationError`` before any work starts."""

    if not index.strip():
        raise MissingConfigurationError("Missing index name")
    if not id_field.strip():
        raise MissingConfigurationError("Missing id field name")
    if id_value is None or not id_value.strip():
        raise MissingConfigurationError(
            f"Missing value for {id_field}; ALL documents matching it would be updated"
        )
    return EnrichmentRequest(
        namespace=index,
        kind=doc_type or None,
        filter=EqualityFilter(field=id_field, value=id_value),
        payload=parse_payload(payload_json),
        upsert=upsert,
    )


def engine_options(settings: EnrichmentSettings) -> EngineOptions:
    return EngineOptions(
        workers=settings.workers,
        policy=FlushPolicy(
            max_batch_size=settings.max_batch_size,
            flush_interval=settings.flush_interval,
        ),
        queue_size=settings.queue_size,
    )


def enrich_documents(
    request: EnrichmentRequest,
    *,
    settings: EnrichmentSettings | None = None,
    elasticsearch: ElasticsearchConfig | None = None,
    store_factory: StoreFactory | None = None,
    handle_signals: bool = False,
) -> JobSummary:
    """Run one enrichment job against Elasticsearch and return its summary.

    With ``handle_signals`` SIGINT and SIGTERM stop the queueing of new
    updates; everything already queued is still flushed before returning. A
    second signal raises ``KeyboardInterrupt`` and abandons the queued updates.
    """

    effective_settings = settings or EnrichmentSettings()
    effective_config = elasticsearch or get_elasticsearch_config()
    factory = store_factory or _default_store_factory
    log.info(
        "Starting enrichment: store=%s, index=%s, type=%s, %s=%s, workers=%s, batch_size=%s",
        effective_config.address,
        request.namespace,
        request.kind,
        request.filter.field,
        request.filter.value,
        effective_settings.workers,
        effective_settings.max_batch_size,
    )
    return asyncio.run(
        _enrich_async(
            request,
            settings=effective_settings,
            config=effective_config,
            factory=factory,
            handle_signals=handle_signals,
        )
    )


async def _enrich_async(
    request: EnrichmentRequest,
    *,
    settings: EnrichmentSettings,
    config: ElasticsearchConfig,
    factory: StoreFactory,
    handle_signals: bool,
) -> JobSummary:
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    signals = (SIGINT, SIGTERM) if handle_signals else ()
    for signum in signals:
        loop.add_signal_handler(signum, _request_cancel, cancel_event, signum)
    try:
        async with factory(config, settings) as store:
            return await run_enrichment(
                store,
                request,
                options=engine_options(settings),
                page_size=settings.page_size,
                cancel_event=cancel_event,
            )
    finally:
        for signum in signals:
            loop.remove_signal_handler(signum)


def _request_cancel(event: asyncio.Event, signum: Signals) -> None:
    if event.is_set():
        log.error("Received %s again, aborting without waiting for queued updates", signum.name)
        raise KeyboardInterrupt
    log.warning(
        "Received %s, finishing queued updates before exiting (repeat to abort)", signum.name
    )
    event.set()
