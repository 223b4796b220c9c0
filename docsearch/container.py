import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import httpx

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def is_resolved(self, interface: type) -> bool:
        return interface in self._singletons

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.blob_store import BlobStoreProtocol
    from .core.protocols.document_store import DocumentStoreProtocol
    from .core.protocols.ranker import RankerProtocol
    from .core.services.file_validator import FileValidator
    from .core.services.library_service import LibraryService
    from .core.services.search_service import SearchService
    from .core.services.upload_service import UploadService
    from .infrastructure.rankers.fuzzy_ranker import RapidFuzzRanker

    container.register(
        httpx.AsyncClient,
        lambda: httpx.AsyncClient(timeout=settings.http_timeout),
        singleton=True,
    )

    if settings.backend == "memory":
        from .infrastructure.blob_stores.memory_store import InMemoryBlobStore
        from .infrastructure.document_stores.memory_store import InMemoryDocumentStore

        container.register(DocumentStoreProtocol, InMemoryDocumentStore, singleton=True)
        container.register(BlobStoreProtocol, InMemoryBlobStore, singleton=True)
    else:
        from .infrastructure.blob_stores.firebase_storage import FirebaseStorageBlobStore
        from .infrastructure.document_stores.firestore_store import FirestoreDocumentStore

        container.register(
            DocumentStoreProtocol,
            lambda: FirestoreDocumentStore(
                client=container.resolve(httpx.AsyncClient),
                project_id=settings.firebase_project_id,
                api_key=settings.firebase_api_key or None,
                collection=settings.documents_collection,
                auth_token=settings.firebase_auth_token or None,
            ),
            singleton=True,
        )

        container.register(
            BlobStoreProtocol,
            lambda: FirebaseStorageBlobStore(
                client=container.resolve(httpx.AsyncClient),
                bucket=settings.firebase_storage_bucket,
                auth_token=settings.firebase_auth_token or None,
                chunk_size=settings.upload_chunk_size,
            ),
            singleton=True,
        )

    container.register(
        RankerProtocol,
        lambda: RapidFuzzRanker(
            weights=settings.rank_weights,
            score_cutoff=settings.rank_score_cutoff,
        ),
        singleton=True,
    )

    container.register(
        FileValidator,
        lambda: FileValidator(
            max_file_count=settings.upload_max_file_count,
            max_batch_size=settings.upload_max_batch_size,
        ),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            document_store=container.resolve(DocumentStoreProtocol),
            blob_store=container.resolve(BlobStoreProtocol),
            ranker=container.resolve(RankerProtocol),
            snippet_radius=settings.search_snippet_radius,
            max_results=settings.search_max_results,
            suggestion_limit=settings.search_suggestion_limit,
            escape_html=settings.search_escape_html,
            order_field=settings.documents_order_field,
        ),
        singleton=True,
    )

    container.register(
        UploadService,
        lambda: UploadService(
            document_store=container.resolve(DocumentStoreProtocol),
            blob_store=container.resolve(BlobStoreProtocol),
            validator=container.resolve(FileValidator),
            max_concurrent=settings.upload_max_concurrent,
            retry_attempts=settings.upload_retry_attempts,
            retry_delay_base=settings.upload_retry_delay_base,
            retry_delay_max=settings.upload_retry_delay_max,
            allow_duplicates=settings.upload_allow_duplicates,
            allow_security_warnings=settings.upload_allow_security_warnings,
        ),
        singleton=True,
    )

    container.register(
        LibraryService,
        lambda: LibraryService(
            document_store=container.resolve(DocumentStoreProtocol),
            blob_store=container.resolve(BlobStoreProtocol),
            list_limit=settings.library_list_limit,
            order_field=settings.documents_order_field,
            poll_interval=settings.library_poll_interval,
            delete_blobs=settings.library_delete_blobs,
        ),
        singleton=True,
    )

    logger.info(f"Container configured ({settings.backend} backend)")
    return container


async def close_container() -> None:
    """Close the shared HTTP client if it was created."""
    if container.is_resolved(httpx.AsyncClient):
        await container.resolve(httpx.AsyncClient).aclose()
    container.reset()
