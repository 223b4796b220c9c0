"""Common exceptions raised by docsearch services and adapters."""


class DocSearchError(RuntimeError):
    """Base class for all docsearch errors."""


class DocumentStoreError(DocSearchError):
    """Raised when the document collection cannot be read or written."""


class BlobStoreError(DocSearchError):
    """Raised when a blob cannot be resolved, fetched or uploaded."""

    def __init__(self, message: str, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class UploadError(DocSearchError):
    """Raised when an upload fails after validation and retries."""

    def __init__(self, message: str, *, upload_id: str | None = None):
        super().__init__(message)
        self.upload_id = upload_id


class FileValidationError(DocSearchError):
    """Raised when a file is rejected before upload."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []
