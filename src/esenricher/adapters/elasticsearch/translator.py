"""Translation between domain values and Elasticsearch request/response bodies."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from esenricher.domain.types import DocumentRef, OperationResult, SearchPage

from .schema import BulkItemResult, BulkResponse, ErrorCause, SearchResponse

if TYPE_CHECKING:
    from esenricher.domain.types import Batch, UpdateOperation

BULK_ACTION = "update"


def _segment(value: str) -> str:
    # Index patterns and comma separated lists are valid in paths
    return quote(value, safe=",*")


def search_path(namespace: str, kind: str | None) -> str:
    if kind:
        return f"/{_segment(namespace)}/{_segment(kind)}/_search"
    return f"/{_segment(namespace)}/_search"


def namespace_path(namespace: str, kind: str | None) -> str:
    if kind:
        return f"/{_segment(namespace)}/{_segment(kind)}"
    return f"/{_segment(namespace)}"


def bulk_action(operation: UpdateOperation) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the action/metadata line and the source line of one update."""

    target = operation.target
    metadata: dict[str, Any] = {"_index": target.namespace, "_id": target.identifier}
    if target.kind:
        metadata["_type"] = target.kind
    source: dict[str, Any] = {"doc": dict(operation.payload)}
    if operation.upsert:
        source["doc_as_upsert"] = True
    return {BULK_ACTION: metadata}, source


def build_bulk_body(batch: Batch) -> bytes:
    """Serialise a batch as newline-delimited JSON, terminated by a newline."""

    lines: list[str] = []
    for operation in batch:
        metadata, source = bulk_action(operation)
        lines.append(json.dumps(metadata, separators=(",", ":")))
        lines.append(json.dumps(source, separators=(",", ":")))
    return ("\n".join(lines) + "\n").encode("utf-8")


def parse_search_page(response: SearchResponse, *, kind: str | None) -> SearchPage:
    refs = tuple(
        DocumentRef(namespace=hit.index, kind=hit.type or kind, identifier=hit.id)
        for hit in response.hits.hits
    )
    return SearchPage(refs=refs, total_matches=response.hits.total_value, took_ms=response.took)


def parse_bulk_results(batch: Batch, response: BulkResponse) -> list[OperationResult]:
    """Map the bulk response items back onto the operations of ``batch``.

    Elasticsearch answers with one item per action, in request order.
    """

    results: list[OperationResult] = []
    for operation, item in zip(batch, response.items, strict=False):
        result = item.get(BULK_ACTION) or next(iter(item.values()), None)
        results.append(_item_result(operation.target, result))
    return results


def _item_result(target: DocumentRef, item: BulkItemResult | None) -> OperationResult:
    if item is None:
        return OperationResult.failed(target, "empty bulk response item")
    if item.error is None and 200 <= item.status < 300:  # noqa: PLR2004
        return OperationResult.success(target)
    if isinstance(item.error, ErrorCause):
        return OperationResult.failed(
            target,
            item.error.reason or item.error.type,
            status=item.status,
            error_type=item.error.type,
        )
    return OperationResult.failed(
        target,
        item.error or f"unexpected status {item.status}",
        status=item.status,
    )
