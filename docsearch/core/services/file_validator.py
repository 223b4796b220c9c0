"""File validation before upload."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from ..models.upload import BatchValidationResult, FileInfo, UploadFile, ValidationResult

logger = logging.getLogger(__name__)

MB = 1024 * 1024

# MIME type -> (extension, category, max size)
SUPPORTED_FORMATS: dict[str, tuple[str, str, int]] = {
    "application/pdf": (".pdf", "document", 50 * MB),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (
        ".docx", "document", 25 * MB,
    ),
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": (
        ".xlsx", "spreadsheet", 25 * MB,
    ),
    "application/vnd.ms-excel": (".xls", "spreadsheet", 25 * MB),
    "text/plain": (".txt", "text", 5 * MB),
}

DEFAULT_MAX_SIZE = 10 * MB
MAX_FILENAME_LENGTH = 255
BLOCKED_EXTENSIONS = (".exe", ".bat", ".cmd", ".scr", ".js", ".vbs", ".com", ".pif")
SUSPICIOUS_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (r"script", r"<iframe", r"<object", r"javascript:")
]
MAX_FILE_AGE = timedelta(days=365 * 10)

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / 1024 ** exponent, 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def file_extension(name: str) -> str:
    """Lowercased extension including the dot, empty if none."""
    dot = name.rfind(".") if name else -1
    return name[dot:].lower() if dot > 0 else ""


def max_size_for(content_type: str) -> int:
    fmt = SUPPORTED_FORMATS.get(content_type)
    return fmt[2] if fmt else DEFAULT_MAX_SIZE


class FileValidator:
    """Checks type, size, name and security concerns of files."""

    def __init__(
        self,
        min_size: int = 0,
        allowed_categories: Optional[Iterable[str]] = None,
        max_file_count: Optional[int] = None,
        max_batch_size: Optional[int] = None,
    ):
        """Initialize validator.

        Args:
            min_size: Minimum accepted file size in bytes.
            allowed_categories: Restrict to these format categories.
            max_file_count: Maximum files per batch.
            max_batch_size: Maximum total bytes of valid files per batch.
        """
        self._min_size = min_size
        self._allowed_categories = set(allowed_categories) if allowed_categories else None
        self._max_file_count = max_file_count
        self._max_batch_size = max_batch_size

    def validate(self, file: Optional[UploadFile], now: Optional[datetime] = None) -> ValidationResult:
        """Validate a single file.

        Args:
            file: File to check.
            now: Reference time for modification date checks.

        Returns:
            Result with errors (blocking), warnings and security flags.
        """
        errors: list[str] = []
        warnings: list[str] = []
        flags: list[str] = []

        if file is None:
            return ValidationResult(is_valid=False, errors=["File not found"])

        fmt = SUPPORTED_FORMATS.get(file.content_type)
        max_size = max_size_for(file.content_type)

        if file.size == 0:
            errors.append("File is empty")
        elif file.size > max_size:
            errors.append(
                f"File too large: {format_file_size(file.size)}. "
                f"Maximum: {format_file_size(max_size)}"
            )

        if fmt is None:
            errors.append(
                f"Unsupported file format: {file.content_type}. "
                f"Supported: {', '.join(SUPPORTED_FORMATS)}"
            )

        name = file.name or ""
        if not name.strip():
            errors.append("Invalid file name")
        else:
            if len(name) > MAX_FILENAME_LENGTH:
                errors.append(
                    f"File name too long ({len(name)} characters). "
                    f"Maximum: {MAX_FILENAME_LENGTH}"
                )
            if name.lower().endswith(BLOCKED_EXTENSIONS):
                flags.append("Potentially dangerous file extension detected")
                errors.append("This file type is not allowed for security reasons")
            if any(p.search(name) for p in SUSPICIOUS_PATTERNS):
                flags.append("Suspicious filename pattern detected")
                warnings.append("Suspicious characters in file name")
            if "\0" in name:
                flags.append("Null byte in filename")
                errors.append("File name contains invalid characters")

        if fmt and name and not name.lower().endswith(fmt[0]):
            warnings.append(
                f"File extension ({file_extension(name)}) does not match "
                f"MIME type ({file.content_type})"
            )

        if file.last_modified:
            warnings.extend(self._check_modified(file.last_modified, now))

        if self._min_size and file.size < self._min_size:
            errors.append(f"File too small. Minimum size: {format_file_size(self._min_size)}")

        if self._allowed_categories is not None and fmt and fmt[1] not in self._allowed_categories:
            errors.append(f"File category not allowed: {fmt[1]}")

        info = FileInfo(
            name=name,
            size=file.size,
            formatted_size=format_file_size(file.size),
            content_type=file.content_type,
            category=fmt[1] if fmt else "unknown",
            extension=file_extension(name),
        )
        if flags:
            logger.warning(f"Validation: security flags for '{name}': {', '.join(flags)}")
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            security_flags=flags,
            file_info=info,
        )

    def validate_many(
        self, files: Iterable[UploadFile], now: Optional[datetime] = None
    ) -> BatchValidationResult:
        """Validate a batch of files and the batch limits."""
        batch = BatchValidationResult()
        files = list(files)

        for file in files:
            result = self.validate(file, now)
            if result.is_valid:
                batch.valid_files.append(file)
                batch.total_size += file.size
            else:
                batch.invalid_files.append((file, result))
            if result.warnings:
                batch.files_with_warnings.append((file, result))
            if result.security_flags:
                batch.security_issues.append((file, result))

        if self._max_batch_size and batch.total_size > self._max_batch_size:
            batch.batch_errors.append(
                f"Total size too large: {format_file_size(batch.total_size)}. "
                f"Maximum: {format_file_size(self._max_batch_size)}"
            )
        if self._max_file_count and len(files) > self._max_file_count:
            batch.batch_errors.append(
                f"Too many files selected: {len(files)}. Maximum: {self._max_file_count}"
            )
        return batch

    @staticmethod
    def _check_modified(modified: datetime, now: Optional[datetime]) -> list[str]:
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        if modified > now:
            return ["File appears to be modified in the future"]
        if now - modified > MAX_FILE_AGE:
            return ["File was last modified a very long time ago"]
        return []
