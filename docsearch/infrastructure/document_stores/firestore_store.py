import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import httpx

from docsearch.core.errors import DocumentStoreError
from docsearch.core.models.document import DocumentRecord

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1"

# Firestore timestamps carry up to nanoseconds; datetime takes microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def encode_value(value: Any) -> dict[str, Any]:
    """Convert a Python value to a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Convert a Firestore typed value to a Python value."""
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "timestampValue" in value:
        stamp = _FRACTION_RE.sub(r"\1", value["timestampValue"])
        return datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "referenceValue" in value:
        return value["referenceValue"]
    return None


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


class FirestoreDocumentStore:
    """Document collection backed by the Firestore REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        project_id: str,
        api_key: Optional[str] = None,
        collection: str = "documents",
        database: str = "(default)",
        auth_token: Optional[str] = None,
    ):
        """Initialize Firestore store.

        Args:
            client: Shared HTTP client.
            project_id: Firebase project id.
            api_key: Web API key sent as ``key`` query parameter.
            collection: Collection holding one record per file.
            database: Firestore database id.
            auth_token: Optional ID token sent as bearer credentials.
        """
        self._client = client
        self._collection = collection
        self._api_key = api_key
        self._auth_token = auth_token
        self._root = f"{FIRESTORE_URL}/projects/{project_id}/databases/{database}/documents"

    @property
    def _collection_url(self) -> str:
        return f"{self._root}/{self._collection}"

    def _params(self, **extra: Any) -> list[tuple[str, Any]]:
        params = [(k, v) for k, v in extra.items() if v is not None]
        if self._api_key:
            params.append(("key", self._api_key))
        return params

    def _headers(self) -> dict[str, str]:
        if self._auth_token:
            return {"Authorization": f"Bearer {self._auth_token}"}
        return {}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kwargs)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise DocumentStoreError(f"Firestore {method} {url.rsplit('/', 1)[-1]} failed: {e}") from e
        return resp

    def _to_record(self, document: dict[str, Any]) -> DocumentRecord:
        doc_id = document["name"].rsplit("/", 1)[-1]
        return DocumentRecord.from_dict(doc_id, decode_fields(document.get("fields", {})))

    async def _run_query(self, structured_query: dict[str, Any]) -> list[DocumentRecord]:
        structured_query["from"] = [{"collectionId": self._collection}]
        resp = await self._request(
            "POST",
            f"{self._root}:runQuery",
            params=self._params(),
            json={"structuredQuery": structured_query},
        )
        # entries without "document" only carry readTime
        return [self._to_record(row["document"]) for row in resp.json() if "document" in row]

    async def list_documents(
        self,
        order_by: str = "uploadedAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[DocumentRecord]:
        query: dict[str, Any] = {
            "orderBy": [{
                "field": {"fieldPath": order_by},
                "direction": "DESCENDING" if descending else "ASCENDING",
            }],
        }
        if limit is not None:
            query["limit"] = limit

        records = await self._run_query(query)
        logger.debug(f"Firestore: fetched {len(records)} records from {self._collection}")
        return records

    async def get_document(self, doc_id: str) -> DocumentRecord | None:
        try:
            resp = await self._client.get(
                f"{self._collection_url}/{doc_id}",
                params=self._params(),
                headers=self._headers(),
            )
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise DocumentStoreError(f"Firestore get {doc_id} failed: {e}") from e
        return self._to_record(resp.json())

    async def create_document(self, record: DocumentRecord) -> DocumentRecord:
        data = record.to_dict()
        data.pop("id", None)
        resp = await self._request(
            "POST",
            self._collection_url,
            params=self._params(documentId=record.id or None),
            json={"fields": encode_fields(data)},
        )
        created = self._to_record(resp.json())
        logger.info(f"Firestore: created {self._collection}/{created.id}")
        return created

    async def update_document(self, doc_id: str, fields: dict[str, Any]) -> None:
        params = [("updateMask.fieldPaths", name) for name in fields]
        params.append(("currentDocument.exists", "true"))
        params.extend(self._params())
        await self._request(
            "PATCH",
            f"{self._collection_url}/{doc_id}",
            params=params,
            json={"fields": encode_fields(fields)},
        )

    async def delete_document(self, doc_id: str) -> None:
        await self._request("DELETE", f"{self._collection_url}/{doc_id}", params=self._params())
        logger.info(f"Firestore: deleted {self._collection}/{doc_id}")

    async def find_duplicate(
        self, file_name: str, content_type: str, size: int
    ) -> DocumentRecord | None:
        filters = [
            {"fieldFilter": {
                "field": {"fieldPath": path},
                "op": "EQUAL",
                "value": encode_value(value),
            }}
            for path, value in (("fileName", file_name), ("contentType", content_type), ("size", size))
        ]
        records = await self._run_query({
            "where": {"compositeFilter": {"op": "AND", "filters": filters}},
            "limit": 1,
        })
        return records[0] if records else None
