"""Document store protocol for dependency injection."""
from typing import Any, Protocol, runtime_checkable

from ..models.document import DocumentRecord


@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """Protocol for the document metadata collection."""

    async def list_documents(
        self,
        order_by: str = "uploadedAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[DocumentRecord]:
        """List records of the collection.

        Args:
            order_by: Collection field to sort by.
            descending: Newest (largest) first when True.
            limit: Maximum number of records, None for all.

        Returns:
            Records in the requested order.

        Raises:
            DocumentStoreError: If the collection cannot be read.
        """
        ...

    async def get_document(self, doc_id: str) -> DocumentRecord | None:
        """Fetch a single record, None if it does not exist."""
        ...

    async def create_document(self, record: DocumentRecord) -> DocumentRecord:
        """Persist a new record and return it with its assigned id."""
        ...

    async def update_document(self, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge collection fields (camelCase) into an existing record."""
        ...

    async def delete_document(self, doc_id: str) -> None:
        """Remove a record."""
        ...

    async def find_duplicate(
        self, file_name: str, content_type: str, size: int
    ) -> DocumentRecord | None:
        """Find a record describing the same file, if any."""
        ...
