"""Blob store protocol for dependency injection."""
from typing import Callable, Protocol, runtime_checkable

# (bytes_transferred, total_bytes)
ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class BlobStoreProtocol(Protocol):
    """Protocol for file and extracted-text payload storage."""

    async def get_download_url(self, path: str) -> str:
        """Resolve a retrieval URL for a stored object.

        Args:
            path: Object path inside the bucket.

        Returns:
            URL that can be fetched without further credentials.

        Raises:
            BlobStoreError: If the object does not exist or cannot be resolved.
        """
        ...

    async def fetch_text(self, url: str) -> str:
        """Download a text payload from a retrieval URL."""
        ...

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Store a payload and return its download URL.

        Args:
            path: Target object path.
            data: Payload bytes.
            content_type: MIME type of the payload.
            metadata: Custom metadata attached to the object.
            on_progress: Called with transferred and total bytes.

        Returns:
            Download URL of the stored object.

        Raises:
            BlobStoreError: With ``retryable`` set for transient failures.
        """
        ...

    async def delete(self, path: str) -> None:
        """Remove a stored object."""
        ...
