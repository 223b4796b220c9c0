import asyncio

import httpx

from docsearch.config.settings import Settings
from docsearch.container import close_container, configure_container
from docsearch.core.protocols.blob_store import BlobStoreProtocol
from docsearch.core.protocols.document_store import DocumentStoreProtocol
from docsearch.core.protocols.ranker import RankerProtocol
from docsearch.core.services.library_service import LibraryService
from docsearch.core.services.search_service import SearchService
from docsearch.core.services.upload_service import UploadService
from docsearch.infrastructure.blob_stores.firebase_storage import FirebaseStorageBlobStore
from docsearch.infrastructure.document_stores.firestore_store import FirestoreDocumentStore
from docsearch.infrastructure.document_stores.memory_store import InMemoryDocumentStore


def test_memory_backend_wires_services():
    container = configure_container(Settings(backend="memory"))
    try:
        search = container.resolve(SearchService)
        upload = container.resolve(UploadService)
        library = container.resolve(LibraryService)

        assert container.resolve(SearchService) is search
        assert isinstance(container.resolve(DocumentStoreProtocol), InMemoryDocumentStore)
        assert isinstance(container.resolve(RankerProtocol), RankerProtocol)
        assert isinstance(upload, UploadService)
        assert isinstance(library, LibraryService)
    finally:
        asyncio.run(close_container())


def test_firebase_backend_shares_http_client():
    settings = Settings(
        backend="firebase",
        firebase_project_id="demo",
        firebase_storage_bucket="demo.appspot.com",
    )
    container = configure_container(settings)
    try:
        documents = container.resolve(DocumentStoreProtocol)
        blobs = container.resolve(BlobStoreProtocol)

        assert isinstance(documents, FirestoreDocumentStore)
        assert isinstance(blobs, FirebaseStorageBlobStore)
        assert isinstance(documents, DocumentStoreProtocol)
        assert isinstance(blobs, BlobStoreProtocol)
        assert container.is_resolved(httpx.AsyncClient)
    finally:
        asyncio.run(close_container())
        assert not container.is_resolved(httpx.AsyncClient)


def test_settings_rank_weights():
    weights = Settings(rank_weight_title=0.5).rank_weights

    assert weights["title"] == 0.5
    assert weights["text_content"] == 0.7
