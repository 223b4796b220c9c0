"""Core business services."""
from .search_service import SearchService
from .upload_service import UploadService
from .upload_session import ProgressChannel, UploadSession
from .file_validator import FileValidator
from .library_service import LibraryService

__all__ = [
    "SearchService",
    "UploadService",
    "ProgressChannel",
    "UploadSession",
    "FileValidator",
    "LibraryService",
]
