"""Document domain models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class MatchMode(Enum):
    """How a query must line up with a field value."""
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"


class SearchField(Enum):
    """Which record attributes a query is matched against."""
    ALL = "all"
    CONTENT = "content"
    FILE_NAME = "fileName"
    AUTHOR = "author"


class ProcessingStatus(Enum):
    """Lifecycle of an uploaded file's record."""
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    PROCESSED = "processed"
    FAILED = "failed"


# Record attribute -> collection field name
_WIRE_FIELDS = {
    "file_name": "fileName",
    "author": "author",
    "title": "title",
    "text_content": "textContent",
    "text_content_storage_path": "textContentStoragePath",
    "created_at": "createdAt",
    "uploaded_at": "uploadedAt",
    "page_count": "pageCount",
    "size": "size",
    "content_type": "contentType",
    "storage_path": "storagePath",
    "download_url": "downloadURL",
    "processing_status": "processingStatus",
    "owner_id": "ownerId",
    "owner_name": "ownerName",
    "searchable": "searchable",
}


_STRING_FIELDS = (
    "file_name",
    "author",
    "title",
    "text_content",
    "text_content_storage_path",
    "content_type",
    "storage_path",
    "download_url",
    "processing_status",
    "owner_id",
    "owner_name",
)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None


@dataclass
class DocumentRecord:
    """Searchable metadata of one uploaded file."""
    id: str
    file_name: str = ""
    author: Optional[str] = None
    title: Optional[str] = None
    text_content: Optional[str] = None
    text_content_storage_path: Optional[str] = None
    created_at: Optional[datetime] = None
    uploaded_at: Optional[datetime] = None
    page_count: Optional[int] = None
    size: int = 0
    content_type: str = "application/octet-stream"
    storage_path: Optional[str] = None
    download_url: Optional[str] = None
    processing_status: Optional[str] = None
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    searchable: bool = False

    @property
    def file_extension(self) -> str:
        """Lowercased extension without the dot, empty if none."""
        dot = self.file_name.rfind(".")
        return self.file_name[dot + 1:].lower() if dot > 0 else ""

    @property
    def has_searchable_text(self) -> bool:
        return bool(self.text_content) or bool(self.text_content_storage_path)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> "DocumentRecord":
        """Build a record from collection fields (camelCase)."""
        values: dict[str, Any] = {}
        for attr, wire in _WIRE_FIELDS.items():
            if wire in data and data[wire] is not None:
                values[attr] = data[wire]

        for attr in _STRING_FIELDS:
            if attr in values and not isinstance(values[attr], str):
                values[attr] = str(values[attr])
        for attr in ("created_at", "uploaded_at"):
            if attr in values:
                values[attr] = _parse_timestamp(values[attr])
        if "page_count" in values:
            values["page_count"] = int(values["page_count"])
        if "size" in values:
            values["size"] = int(values["size"])

        return cls(id=str(data.get("id") or doc_id), **values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to collection fields, skipping unset values."""
        data: dict[str, Any] = {"id": self.id}
        for attr, wire in _WIRE_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[wire] = value
        return data


@dataclass
class SentenceSpan:
    """Sentence of a text field with its [start, end) offsets."""
    text: str
    start: int
    end: int


@dataclass
class WordToken:
    """Run of letters/digits with its offsets."""
    word: str
    start: int
    end: int
    lower: str


@dataclass
class MatchInfo:
    """Location of the first match and its preview window."""
    index: int
    length: int
    match_percent: int
    snippet: str
    highlighted_snippet: str


@dataclass
class SearchResult:
    """Record decorated with highlight and match metadata for one response."""
    document: DocumentRecord
    highlighted_content: Optional[str] = None
    highlighted_full_content: Optional[str] = None
    highlighted_file_name: Optional[str] = None
    highlighted_author: Optional[str] = None
    match_index: Optional[int] = None
    match_percent: Optional[int] = None
    estimated_page: Optional[int] = None

    @property
    def id(self) -> str:
        return self.document.id

    @property
    def file_name(self) -> str:
        return self.document.file_name

    @property
    def has_content_match(self) -> bool:
        return self.match_index is not None

    def to_dict(self) -> dict[str, Any]:
        data = self.document.to_dict()
        extras = {
            "highlightedContent": self.highlighted_content,
            "highlightedFullContent": self.highlighted_full_content,
            "highlightedFileName": self.highlighted_file_name,
            "highlightedAuthor": self.highlighted_author,
            "matchIndex": self.match_index,
            "matchPercent": self.match_percent,
            "estimatedPage": self.estimated_page,
        }
        data.update({k: v for k, v in extras.items() if v is not None})
        for key in ("createdAt", "uploadedAt"):
            if isinstance(data.get(key), datetime):
                data[key] = data[key].isoformat()
        return data


@dataclass
class Suggestion:
    """Autocomplete entry."""
    suggestion: str


@dataclass
class DeleteSummary:
    """Outcome of a batch delete."""
    results: list[dict] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r["success"])

    @property
    def error_count(self) -> int:
        return len(self.results) - self.success_count

    @property
    def success(self) -> bool:
        return self.error_count == 0
