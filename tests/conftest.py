from __future__ import annotations

import pytest

from esenricher.domain.types import DocumentRef, EqualityFilter
from tests.support.store import InMemoryDocumentStore, make_refs


@pytest.fixture(autouse=True)
def _no_elasticsearch_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ELASTICSEARCH_USERNAME", raising=False)
    monkeypatch.delenv("ELASTICSEARCH_PASSWORD", raising=False)


@pytest.fixture
def correlation_filter() -> EqualityFilter:
    return EqualityFilter(field="correlation.id", value="abc-123")


@pytest.fixture
def three_refs() -> list[DocumentRef]:
    return make_refs(3)


@pytest.fixture
def three_document_store(three_refs: list[DocumentRef]) -> InMemoryDocumentStore:
    return InMemoryDocumentStore.with_documents(three_refs)
