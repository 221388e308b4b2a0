"""Elasticsearch REST response schemas used by the enrichment job."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ElasticsearchBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TotalHits(ElasticsearchBaseModel):
    value: int
    relation: Literal["eq", "gte"] = "eq"


class SearchHit(ElasticsearchBaseModel):
    index: str = Field(alias="_index")
    type: str | None = Field(default=None, alias="_type")
    id: str = Field(alias="_id")
    source: dict[str, Any] | None = Field(default=None, alias="_source")


class SearchHits(ElasticsearchBaseModel):
    # Elasticsearch < 7 reports a bare integer
    total: int | TotalHits
    hits: list[SearchHit] = Field(default_factory=list["SearchHit"])

    @property
    def total_value(self) -> int:
        if isinstance(self.total, TotalHits):
            return self.total.value
        return self.total


class SearchResponse(ElasticsearchBaseModel):
    took: int | None = None
    timed_out: bool = False
    hits: SearchHits


class ErrorCause(ElasticsearchBaseModel):
    type: str
    reason: str | None = None


class BulkItemResult(ElasticsearchBaseModel):
    index: str | None = Field(default=None, alias="_index")
    type: str | None = Field(default=None, alias="_type")
    id: str | None = Field(default=None, alias="_id")
    status: int
    result: str | None = None
    # Elasticsearch 1.x reports errors as plain strings
    error: ErrorCause | str | None = None


class BulkResponse(ElasticsearchBaseModel):
    took: int | None = None
    errors: bool = False
    items: list[dict[str, BulkItemResult]] = Field(default_factory=list[dict[str, BulkItemResult]])


class ErrorResponse(ElasticsearchBaseModel):
    error: ErrorCause | str
    status: int | None = None

    @property
    def message(self) -> str:
        if isinstance(self.error, ErrorCause):
            return f"{self.error.type}: {self.error.reason or 'no reason given'}"
        return self.error
