import logging
from urllib.parse import quote, unquote

from docsearch.core.errors import BlobStoreError
from docsearch.core.protocols.blob_store import ProgressCallback

logger = logging.getLogger(__name__)

URL_PREFIX = "memory://"


class InMemoryBlobStore:
    """Blob store kept in process memory."""

    def __init__(self, blobs: dict[str, bytes | str] | None = None):
        self._blobs: dict[str, bytes] = {}
        self._metadata: dict[str, dict[str, str]] = {}
        for path, data in (blobs or {}).items():
            self._blobs[path] = data.encode() if isinstance(data, str) else data

    def __contains__(self, path: str) -> bool:
        return path in self._blobs

    def read(self, path: str) -> bytes:
        return self._blobs[path]

    def metadata(self, path: str) -> dict[str, str]:
        return self._metadata.get(path, {})

    async def get_download_url(self, path: str) -> str:
        if path not in self._blobs:
            raise BlobStoreError(f"Object not found: {path}")
        return f"{URL_PREFIX}{quote(path)}"

    async def fetch_text(self, url: str) -> str:
        if not url.startswith(URL_PREFIX):
            raise BlobStoreError(f"Unsupported URL: {url}")
        path = unquote(url[len(URL_PREFIX):])
        if path not in self._blobs:
            raise BlobStoreError(f"Object not found: {path}")
        return self._blobs[path].decode("utf-8", errors="replace")

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        self._blobs[path] = data
        self._metadata[path] = {"contentType": content_type, **(metadata or {})}
        if on_progress:
            on_progress(len(data), len(data))
        return await self.get_download_url(path)

    async def delete(self, path: str) -> None:
        if self._blobs.pop(path, None) is None:
            raise BlobStoreError(f"Object not found: {path}")
        self._metadata.pop(path, None)
