"""Domain models."""
from .document import (
    DeleteSummary,
    DocumentRecord,
    MatchInfo,
    MatchMode,
    ProcessingStatus,
    SearchField,
    SearchResult,
    SentenceSpan,
    Suggestion,
    WordToken,
)
from .upload import (
    BatchValidationResult,
    FileInfo,
    Severity,
    UploadFile,
    UploadOutcome,
    UploadProgress,
    UploadResult,
    UploadStage,
    UploadStats,
    ValidationResult,
)

__all__ = [
    "DeleteSummary",
    "DocumentRecord",
    "MatchInfo",
    "MatchMode",
    "ProcessingStatus",
    "SearchField",
    "SearchResult",
    "SentenceSpan",
    "Suggestion",
    "WordToken",
    "BatchValidationResult",
    "FileInfo",
    "Severity",
    "UploadFile",
    "UploadOutcome",
    "UploadProgress",
    "UploadResult",
    "UploadStage",
    "UploadStats",
    "ValidationResult",
]
