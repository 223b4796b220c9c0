"""Shared fixtures: records and in-memory backends."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from docsearch.core.models.document import DocumentRecord
from docsearch.infrastructure.blob_stores.memory_store import InMemoryBlobStore
from docsearch.infrastructure.document_stores.memory_store import InMemoryDocumentStore
from docsearch.infrastructure.rankers.fuzzy_ranker import RapidFuzzRanker

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_record(doc_id: str, minutes: int = 0, **fields) -> DocumentRecord:
    """Record uploaded ``minutes`` after BASE_TIME."""
    fields.setdefault("file_name", f"{doc_id}.pdf")
    fields.setdefault("content_type", "application/pdf")
    return DocumentRecord(id=doc_id, uploaded_at=BASE_TIME + timedelta(minutes=minutes), **fields)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def ranker() -> RapidFuzzRanker:
    return RapidFuzzRanker()
