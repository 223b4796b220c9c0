import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from docsearch.core.errors import DocumentStoreError
from docsearch.core.models.document import DocumentRecord

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryDocumentStore:
    """Document collection kept in process memory."""

    def __init__(self, records: list[DocumentRecord] | None = None):
        self._records: dict[str, DocumentRecord] = {}
        for record in records or []:
            self._records[record.id] = record

    def __len__(self) -> int:
        return len(self._records)

    async def list_documents(
        self,
        order_by: str = "uploadedAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[DocumentRecord]:
        def sort_key(record: DocumentRecord) -> Any:
            value = record.to_dict().get(order_by)
            if value is None:
                return (0, _EPOCH)
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return (1, value)

        records = sorted(self._records.values(), key=sort_key, reverse=descending)
        if limit is not None:
            records = records[:limit]
        # copies, so callers mutating hydrated text don't touch the store
        return [replace(r) for r in records]

    async def get_document(self, doc_id: str) -> DocumentRecord | None:
        record = self._records.get(doc_id)
        return replace(record) if record else None

    async def create_document(self, record: DocumentRecord) -> DocumentRecord:
        doc_id = record.id or uuid.uuid4().hex
        if doc_id in self._records:
            raise DocumentStoreError(f"Document already exists: {doc_id}")
        stored = replace(record, id=doc_id)
        self._records[doc_id] = stored
        return replace(stored)

    async def update_document(self, doc_id: str, fields: dict[str, Any]) -> None:
        record = self._records.get(doc_id)
        if record is None:
            raise DocumentStoreError(f"Document not found: {doc_id}")
        data = record.to_dict()
        data.update(fields)
        self._records[doc_id] = DocumentRecord.from_dict(doc_id, data)

    async def delete_document(self, doc_id: str) -> None:
        if self._records.pop(doc_id, None) is None:
            raise DocumentStoreError(f"Document not found: {doc_id}")

    async def find_duplicate(
        self, file_name: str, content_type: str, size: int
    ) -> DocumentRecord | None:
        for record in self._records.values():
            if (
                record.file_name == file_name
                and record.content_type == content_type
                and record.size == size
            ):
                return replace(record)
        return None
