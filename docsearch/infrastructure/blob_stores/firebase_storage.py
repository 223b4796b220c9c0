import logging
from typing import Any, AsyncIterator, Optional
from urllib.parse import quote

import httpx

from docsearch.core.errors import BlobStoreError
from docsearch.core.protocols.blob_store import ProgressCallback

logger = logging.getLogger(__name__)

STORAGE_URL = "https://firebasestorage.googleapis.com/v0"

RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


def _wrap_error(action: str, path: str, error: httpx.HTTPError) -> BlobStoreError:
    if isinstance(error, httpx.HTTPStatusError):
        retryable = error.response.status_code in RETRYABLE_STATUS
    else:
        retryable = isinstance(error, httpx.TransportError)
    return BlobStoreError(f"Storage {action} {path} failed: {error}", retryable=retryable)


class FirebaseStorageBlobStore:
    """Blob store backed by the Firebase Storage REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        bucket: str,
        auth_token: Optional[str] = None,
        chunk_size: int = 256 * 1024,
    ):
        """Initialize storage client.

        Args:
            client: Shared HTTP client.
            bucket: Storage bucket, e.g. ``my-app.appspot.com``.
            auth_token: Optional ID token sent as Firebase credentials.
            chunk_size: Bytes per chunk when streaming uploads.
        """
        self._client = client
        self._bucket = bucket
        self._auth_token = auth_token
        self._chunk_size = chunk_size

    @property
    def _objects_url(self) -> str:
        return f"{STORAGE_URL}/b/{self._bucket}/o"

    def _object_url(self, path: str) -> str:
        return f"{self._objects_url}/{quote(path, safe='')}"

    def _headers(self) -> dict[str, str]:
        if self._auth_token:
            return {"Authorization": f"Firebase {self._auth_token}"}
        return {}

    def _media_url(self, path: str, metadata: dict[str, Any]) -> str:
        tokens = metadata.get("downloadTokens") or ""
        token = tokens.split(",")[0]
        if not token:
            raise BlobStoreError(f"Storage object {path} has no download token")
        return f"{self._object_url(path)}?alt=media&token={token}"

    async def get_download_url(self, path: str) -> str:
        try:
            resp = await self._client.get(self._object_url(path), headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise _wrap_error("metadata", path, e) from e
        return self._media_url(path, resp.json())

    async def fetch_text(self, url: str) -> str:
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise _wrap_error("download", url, e) from e
        return resp.text

    async def _stream(
        self, data: bytes, on_progress: Optional[ProgressCallback]
    ) -> AsyncIterator[bytes]:
        total = len(data)
        for offset in range(0, total, self._chunk_size):
            chunk = data[offset:offset + self._chunk_size]
            yield chunk
            if on_progress:
                on_progress(min(offset + len(chunk), total), total)

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        headers = {
            **self._headers(),
            "Content-Type": content_type,
            "Content-Length": str(len(data)),
        }
        try:
            resp = await self._client.post(
                self._objects_url,
                params={"uploadType": "media", "name": path},
                headers=headers,
                content=self._stream(data, on_progress),
            )
            resp.raise_for_status()
            info = resp.json()

            if metadata:
                resp = await self._client.patch(
                    self._object_url(path),
                    headers=self._headers(),
                    json={"metadata": metadata},
                )
                resp.raise_for_status()
                info = resp.json()
        except httpx.HTTPError as e:
            raise _wrap_error("upload", path, e) from e

        logger.info(f"Storage: uploaded {path} ({len(data)} bytes)")
        return self._media_url(path, info)

    async def delete(self, path: str) -> None:
        try:
            resp = await self._client.delete(self._object_url(path), headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise _wrap_error("delete", path, e) from e
        logger.info(f"Storage: deleted {path}")
