"""Upload domain models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class UploadStage(Enum):
    """Stage reported on the progress channel."""
    VALIDATING = "validating"
    UPLOADING = "uploading"
    RETRYING = "retrying"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


class Severity(Enum):
    """Overall outcome of a file validation."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class UploadFile:
    """File handed to the upload service."""
    name: str
    data: bytes
    content_type: str
    last_modified: Optional[datetime] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadProgress:
    """Single progress event of one upload."""
    upload_id: str
    file_name: str
    stage: UploadStage
    progress: int = 0
    bytes_transferred: int = 0
    total_bytes: int = 0
    attempt: Optional[int] = None
    retry_delay: Optional[float] = None
    error: Optional[str] = None


@dataclass
class UploadResult:
    """Successful upload outcome."""
    upload_id: str
    document_id: str
    storage_path: str
    download_url: Optional[str] = None
    attempts: int = 1


@dataclass
class UploadStats:
    """Counters kept per upload session."""
    success_count: int = 0
    error_count: int = 0
    total_bytes: int = 0

    @property
    def success_rate(self) -> float:
        finished = self.success_count + self.error_count
        return self.success_count / finished * 100 if finished else 0.0


@dataclass
class FileInfo:
    """Validated file facts."""
    name: str
    size: int
    formatted_size: str
    content_type: str
    category: str
    extension: str


@dataclass
class ValidationResult:
    """Outcome of validating a single file."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    security_flags: list[str] = field(default_factory=list)
    file_info: Optional[FileInfo] = None

    @property
    def severity(self) -> Severity:
        if self.security_flags:
            return Severity.CRITICAL
        if self.errors:
            return Severity.ERROR
        if self.warnings:
            return Severity.WARNING
        return Severity.SUCCESS


@dataclass
class BatchValidationResult:
    """Outcome of validating a batch of files."""
    valid_files: list[UploadFile] = field(default_factory=list)
    invalid_files: list[tuple[UploadFile, ValidationResult]] = field(default_factory=list)
    files_with_warnings: list[tuple[UploadFile, ValidationResult]] = field(default_factory=list)
    security_issues: list[tuple[UploadFile, ValidationResult]] = field(default_factory=list)
    batch_errors: list[str] = field(default_factory=list)
    total_size: int = 0

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid_files) or bool(self.batch_errors)

    @property
    def has_security_issues(self) -> bool:
        return bool(self.security_issues)


@dataclass
class UploadOutcome:
    """Per-file outcome of a batch upload."""
    file: UploadFile
    result: Optional[UploadResult] = None
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.result is not None
