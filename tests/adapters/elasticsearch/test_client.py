from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx
import pytest

from esenricher.adapters.elasticsearch import ElasticsearchStore
from esenricher.adapters.http_resilience import ResilientClient
from esenricher.config import get_elasticsearch_config
from esenricher.domain.ports.store import (
    BulkDispatchError,
    NamespaceNotFoundError,
    SearchFailedError,
)
from tests.support.store import make_operations

if TYPE_CHECKING:
    from esenricher.config import ElasticsearchConfig, ResilienceConfig
    from esenricher.domain.types import SearchPage

Handler = Callable[[httpx.Request], httpx.Response]


def _make_client_factory(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


@pytest.fixture
def es_config() -> ElasticsearchConfig:
    return get_elasticsearch_config(host="es.example.com", port=9200)


def _store(
    config: ElasticsearchConfig,
    handler: Handler,
    *,
    refresh: bool = True,
) -> ElasticsearchStore:
    return ElasticsearchStore(config, refresh=refresh, client_factory=_make_client_factory(handler))


def test_ensure_namespace_checks_index_and_type(es_config: ElasticsearchConfig) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    async def scenario() -> None:
        async with _store(es_config, handler) as store:
            await store.ensure_namespace("logstash-2015.06.30", "audit_log")

    asyncio.run(scenario())

    (request,) = requests
    assert request.method == "HEAD"
    assert request.url == "http://es.example.com:9200/logstash-2015.06.30/audit_log"


def test_ensure_namespace_raises_for_missing_index(es_config: ElasticsearchConfig) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async def scenario() -> None:
        async with _store(es_config, handler) as store:
            await store.ensure_namespace("missing", None)

    with pytest.raises(NamespaceNotFoundError, match="index missing not found"):
        asyncio.run(scenario())


def test_search_posts_query_and_parses_hits(es_config: ElasticsearchConfig) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "took": 12,
                "timed_out": False,
                "hits": {
                    "total": 2,
                    "hits": [
                        {"_index": "logs", "_type": "audit_log", "_id": "1", "_source": {}},
                        {"_index": "logs", "_type": "audit_log", "_id": "2", "_source": {}},
                    ],
                },
            },
        )

    async def scenario() -> SearchPage:
        async with _store(es_config, handler) as store:
            return await store.search("logs", "audit_log", {"size": 100})

    page = asyncio.run(scenario())

    assert seen == {"path": "/logs/audit_log/_search", "body": {"size": 100}}
    assert page.total_matches == 2
    assert [ref.identifier for ref in page.refs] == ["1", "2"]


def test_search_reports_store_errors(es_config: ElasticsearchConfig) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "error": {"type": "parsing_exception", "reason": "unknown query [filtered]"},
                "status": 400,
            },
        )

    async def scenario() -> None:
        async with _store(es_config, handler) as store:
            await store.search("logs", None, {"size": 1})

    with pytest.raises(SearchFailedError, match="parsing_exception: unknown query"):
        asyncio.run(scenario())


def test_bulk_update_sends_ndjson_and_maps_items(es_config: ElasticsearchConfig) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["refresh"] = request.url.params.get("refresh")
        seen["content_type"] = request.headers["content-type"]
        seen["lines"] = request.content.decode().splitlines()
        return httpx.Response(
            200,
            json={
                "took": 3,
                "errors": True,
                "items": [
                    {"update": {"_id": "doc-0", "status": 200}},
                    {
                        "update": {
                            "_id": "doc-1",
                            "status": 409,
                            "error": {"type": "version_conflict_engine_exception"},
                        }
                    },
                ],
            },
        )

    batch = tuple(make_operations(2))

    async def scenario() -> list[bool]:
        async with _store(es_config, handler) as store:
            results = await store.bulk_update(batch)
        return [result.succeeded for result in results]

    assert asyncio.run(scenario()) == [True, False]
    assert seen["path"] == "/_bulk"
    assert seen["refresh"] == "true"
    assert seen["content_type"] == "application/x-ndjson"
    assert len(seen["lines"]) == 4  # type: ignore[arg-type]


def test_bulk_update_without_refresh(es_config: ElasticsearchConfig) -> None:
    params: list[httpx.QueryParams] = []

    def handler(request: httpx.Request) -> httpx.Response:
        params.append(request.url.params)
        return httpx.Response(200, json={"errors": False, "items": [{"update": {"status": 200}}]})

    async def scenario() -> None:
        async with _store(es_config, handler, refresh=False) as store:
            await store.bulk_update(tuple(make_operations(1)))

    asyncio.run(scenario())

    assert "refresh" not in params[0]


def test_bulk_update_transport_error_fails_whole_call(es_config: ElasticsearchConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario() -> None:
        async with _store(es_config, handler) as store:
            await store.bulk_update(tuple(make_operations(2)))

    with pytest.raises(BulkDispatchError, match="connection refused"):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, json={"error": "unavailable", "status": 503}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"errors": False, "items": []}),
    ],
)
def test_bulk_update_unusable_answers_fail_whole_call(
    es_config: ElasticsearchConfig,
    response: httpx.Response,
) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return response

    async def scenario() -> None:
        async with _store(es_config, handler) as store:
            await store.bulk_update(tuple(make_operations(1)))

    with pytest.raises(BulkDispatchError):
        asyncio.run(scenario())


def test_store_requires_context(es_config: ElasticsearchConfig) -> None:
    store = ElasticsearchStore(es_config)

    with pytest.raises(RuntimeError, match="async with"):
        asyncio.run(store.ensure_namespace("logs", None))

    assert store.describe() == "es.example.com:9200"
