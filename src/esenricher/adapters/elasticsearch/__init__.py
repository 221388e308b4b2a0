"""Public interface for the Elasticsearch adapter."""

from __future__ import annotations

from .client import ElasticsearchStore
from .schema import BulkItemResult, BulkResponse, ErrorResponse, SearchHit, SearchResponse
from .translator import build_bulk_body, parse_bulk_results, parse_search_page

__all__ = [
    "BulkItemResult",
    "BulkResponse",
    "ElasticsearchStore",
    "ErrorResponse",
    "SearchHit",
    "SearchResponse",
    "build_bulk_body",
    "parse_bulk_results",
    "parse_search_page",
]
