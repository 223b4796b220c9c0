"""Library service - list, delete and watch uploaded documents."""

import asyncio
import logging
from typing import AsyncIterator, Iterable, Optional

from ..errors import DocSearchError, DocumentStoreError
from ..models.document import DeleteSummary, DocumentRecord
from ..protocols.blob_store import BlobStoreProtocol
from ..protocols.document_store import DocumentStoreProtocol

logger = logging.getLogger(__name__)


class LibraryService:
    """Browse and manage the document collection."""

    def __init__(
        self,
        document_store: DocumentStoreProtocol,
        blob_store: Optional[BlobStoreProtocol] = None,
        list_limit: int = 50,
        order_field: str = "uploadedAt",
        poll_interval: float = 5.0,
        delete_blobs: bool = False,
    ):
        """Initialize library service.

        Args:
            document_store: Document metadata collection.
            blob_store: Storage holding file payloads.
            list_limit: Default number of records listed.
            order_field: Collection field listings are sorted by, newest first.
            poll_interval: Seconds between polls while watching.
            delete_blobs: Also remove the stored file when a record is deleted.
                Off by default because storage cleanup usually runs server side.
        """
        self._document_store = document_store
        self._blob_store = blob_store
        self._list_limit = list_limit
        self._order_field = order_field
        self._poll_interval = poll_interval
        self._delete_blobs = delete_blobs

    async def list_documents(self, limit: Optional[int] = None) -> list[DocumentRecord]:
        """Newest documents first."""
        return await self._document_store.list_documents(
            order_by=self._order_field,
            descending=True,
            limit=limit or self._list_limit,
        )

    async def delete_document(self, doc_id: str) -> None:
        """Delete a record (and its stored file when configured).

        Raises:
            DocumentStoreError: If the record cannot be deleted.
        """
        storage_path = None
        if self._delete_blobs and self._blob_store is not None:
            record = await self._document_store.get_document(doc_id)
            storage_path = record.storage_path if record else None

        await self._document_store.delete_document(doc_id)
        logger.info(f"Library: deleted {doc_id}")

        if storage_path:
            try:
                await self._blob_store.delete(storage_path)
            except DocSearchError as e:
                logger.warning(f"Library: could not delete blob {storage_path}: {e}")

    async def delete_many(self, doc_ids: Iterable[Optional[str]]) -> DeleteSummary:
        """Delete records one by one, collecting a per-id outcome."""
        summary = DeleteSummary()
        for doc_id in doc_ids:
            if not doc_id:
                summary.results.append({"id": None, "success": False, "error": "Invalid document"})
                continue
            try:
                await self.delete_document(doc_id)
                summary.results.append({"id": doc_id, "success": True})
            except DocumentStoreError as e:
                summary.results.append({"id": doc_id, "success": False, "error": str(e)})

        logger.info(
            f"Library: batch delete {summary.success_count} ok, {summary.error_count} failed"
        )
        return summary

    async def watch(
        self, interval: Optional[float] = None, limit: Optional[int] = None
    ) -> AsyncIterator[list[DocumentRecord]]:
        """Yield the listing now and again whenever it changes.

        Polls the collection every ``interval`` seconds. Stop by breaking out
        of the loop or calling ``aclose()``. Failed polls are logged and retried
        on the next tick.
        """
        interval = self._poll_interval if interval is None else interval
        last: Optional[list[dict]] = None

        while True:
            try:
                records = await self.list_documents(limit)
            except DocumentStoreError as e:
                logger.warning(f"Library: watch poll failed: {e}")
            else:
                snapshot = [r.to_dict() for r in records]
                if snapshot != last:
                    last = snapshot
                    yield records
            await asyncio.sleep(interval)
