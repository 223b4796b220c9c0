"""Protocol interfaces for dependency injection."""
from .blob_store import BlobStoreProtocol, ProgressCallback
from .document_store import DocumentStoreProtocol
from .ranker import RankerProtocol

__all__ = [
    "BlobStoreProtocol",
    "DocumentStoreProtocol",
    "ProgressCallback",
    "RankerProtocol",
]
