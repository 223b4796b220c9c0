"""Document collection adapters."""
from .firestore_store import FirestoreDocumentStore
from .memory_store import InMemoryDocumentStore

__all__ = [
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
]
