"""Elasticsearch implementation of the ``DocumentStore`` port."""

from __future__ import annotations

import logging
from logging import getLogger
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import ValidationError

from esenricher.adapters.http_resilience import ResilientClient
from esenricher.domain.ports.store import (
    BulkDispatchError,
    NamespaceNotFoundError,
    SearchFailedError,
)

from .schema import BulkResponse, ErrorResponse, SearchResponse
from .translator import (
    build_bulk_body,
    namespace_path,
    parse_bulk_results,
    parse_search_page,
    search_path,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from esenricher.config.elasticsearch import ElasticsearchConfig
    from esenricher.config.http_resilience import ResilienceConfig
    from esenricher.domain.types import Batch, OperationResult, SearchPage

log = getLogger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"
_HTTP_NOT_FOUND = 404


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).message
    except (ValueError, ValidationError):
        return response.text[:200] or response.reason_phrase


class ElasticsearchStore:
    """Talks to the Elasticsearch REST API through one shared ``ResilientClient``.

    Use as an async context manager so every worker reuses the same
    connection pool::

        async with ElasticsearchStore(config) as store:
            await run_enrichment(store, request)
    """

    def __init__(
        self,
        config: ElasticsearchConfig,
        *,
        refresh: bool = True,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._refresh = refresh
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    def describe(self) -> str:
        return self._config.address

    async def __aenter__(self) -> Self:
        if self._client is None:
            self._client = self._client_factory(self._config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            raise RuntimeError("ElasticsearchStore must be used inside 'async with'")
        return self._client

    async def ensure_namespace(self, namespace: str, kind: str | None) -> None:
        try:
            response = await self.client.head(namespace_path(namespace, kind))
        except httpx.HTTPError as exc:
            raise SearchFailedError(f"request to {self.describe()} failed: {exc}") from exc
        if response.status_code == _HTTP_NOT_FOUND:
            raise NamespaceNotFoundError(namespace, kind)
        if response.is_error:
            raise SearchFailedError(
                f"existence check returned HTTP {response.status_code}"
            )

    async def search(
        self,
        namespace: str,
        kind: str | None,
        query: Mapping[str, Any],
    ) -> SearchPage:
        try:
            response = await self.client.post(search_path(namespace, kind), json=dict(query))
        except httpx.HTTPError as exc:
            raise SearchFailedError(f"request to {self.describe()} failed: {exc}") from exc

        if response.status_code == _HTTP_NOT_FOUND:
            raise NamespaceNotFoundError(namespace, kind)
        if response.is_error:
            raise SearchFailedError(f"HTTP {response.status_code}: {_error_message(response)}")

        try:
            payload = SearchResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SearchFailedError(f"unreadable search response: {exc}") from exc

        if payload.timed_out:
            log.warning("Search on %s timed out, results may be incomplete", namespace)
        if payload.hits.hits and log.isEnabledFor(logging.DEBUG):
            log.debug("First matching document: %s", payload.hits.hits[0].source)
        return parse_search_page(payload, kind=kind)

    async def bulk_update(self, batch: Batch) -> Sequence[OperationResult]:
        if not batch:
            return []
        params = {"refresh": "true"} if self._refresh else None
        try:
            response = await self.client.post(
                "/_bulk",
                content=build_bulk_body(batch),
                params=params,
                headers={"Content-Type": NDJSON_CONTENT_TYPE},
            )
        except httpx.HTTPError as exc:
            raise BulkDispatchError(f"bulk request to {self.describe()} failed: {exc}") from exc

        if response.is_error:
            raise BulkDispatchError(
                f"bulk request returned HTTP {response.status_code}: {_error_message(response)}"
            )

        try:
            payload = BulkResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise BulkDispatchError(f"unreadable bulk response: {exc}") from exc

        if len(payload.items) != len(batch):
            raise BulkDispatchError(
                f"bulk response has {len(payload.items)} item(s) for {len(batch)} action(s)"
            )
        results = parse_bulk_results(batch, payload)
        if payload.errors:
            rejected = sum(1 for result in results if not result.succeeded)
            log.info("Store rejected %s of %s update(s) in a batch", rejected, len(batch))
        return results
