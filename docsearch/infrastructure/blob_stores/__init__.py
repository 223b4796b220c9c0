"""Blob storage adapters."""
from .firebase_storage import FirebaseStorageBlobStore
from .memory_store import InMemoryBlobStore

__all__ = [
    "FirebaseStorageBlobStore",
    "InMemoryBlobStore",
]
