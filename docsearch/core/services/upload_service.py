"""Upload service - validate, register, store and track uploaded files."""

import asyncio
import logging
import random
import re
import string
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ..errors import BlobStoreError, DocumentStoreError, FileValidationError, UploadError
from ..models.document import DocumentRecord, ProcessingStatus
from ..models.upload import UploadFile, UploadOutcome, UploadProgress, UploadResult, UploadStage
from ..protocols.blob_store import BlobStoreProtocol
from ..protocols.document_store import DocumentStoreProtocol
from .file_validator import FileValidator
from .upload_session import UploadSession

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_ID_ALPHABET = string.ascii_lowercase + string.digits

UNKNOWN_AUTHOR = "Unknown user"


def _random_id(length: int = 9) -> str:
    return "".join(random.choices(_ID_ALPHABET, k=length))


def build_storage_path(file_name: str, now_ms: Optional[int] = None) -> str:
    """Collision-resistant object path with a sanitized file name."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    safe_name = _UNSAFE_CHARS.sub("_", file_name)
    return f"documents/{now_ms}_{_random_id()}_{safe_name}"


class UploadService:
    """Uploads files to blob storage and tracks them in the collection."""

    def __init__(
        self,
        document_store: DocumentStoreProtocol,
        blob_store: BlobStoreProtocol,
        validator: Optional[FileValidator] = None,
        max_concurrent: int = 3,
        retry_attempts: int = 3,
        retry_delay_base: float = 1.0,
        retry_delay_max: float = 10.0,
        allow_duplicates: bool = True,
        allow_security_warnings: bool = False,
    ):
        """Initialize upload service.

        Args:
            document_store: Document metadata collection.
            blob_store: Storage receiving file payloads.
            validator: File validator.
            max_concurrent: Default concurrency of new sessions.
            retry_attempts: Upload attempts before giving up.
            retry_delay_base: First retry delay in seconds.
            retry_delay_max: Upper bound of a retry delay in seconds.
            allow_duplicates: Skip the duplicate check when True.
            allow_security_warnings: Accept files whose only security
                findings are warnings.
        """
        self._document_store = document_store
        self._blob_store = blob_store
        self._validator = validator or FileValidator()
        self._max_concurrent = max_concurrent
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay_base = retry_delay_base
        self._retry_delay_max = retry_delay_max
        self._allow_duplicates = allow_duplicates
        self._allow_security_warnings = allow_security_warnings

    def new_session(self) -> UploadSession:
        return UploadSession(max_concurrent=self._max_concurrent)

    async def upload(
        self,
        file: UploadFile,
        session: Optional[UploadSession] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UploadResult:
        """Upload one file.

        Args:
            file: File to upload.
            session: Session receiving progress and stats; a fresh one if None.
            metadata: Owner fields (``owner_id``, ``owner_name``) and custom
                storage metadata.

        Returns:
            Upload result with the placeholder document id.

        Raises:
            FileValidationError: If the file is rejected.
            UploadError: If registering or storing the file fails.
            asyncio.CancelledError: If the upload is cancelled via the session.
        """
        session = session or self.new_session()
        upload_id = f"upload_{int(time.time() * 1000)}_{_random_id()}"

        task = asyncio.ensure_future(self._run(upload_id, file, session, dict(metadata or {})))
        try:
            session.track(upload_id, task)
        except UploadError:
            task.cancel()
            raise
        try:
            return await task
        finally:
            session.release(upload_id)

    async def upload_many(
        self,
        files: Iterable[UploadFile],
        session: Optional[UploadSession] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> list[UploadOutcome]:
        """Upload files with at most ``session.max_concurrent`` in flight."""
        session = session or self.new_session()
        files = list(files)
        semaphore = asyncio.Semaphore(session.max_concurrent)

        async def bounded(file: UploadFile) -> UploadResult:
            async with semaphore:
                return await self.upload(file, session, metadata)

        results = await asyncio.gather(*(bounded(f) for f in files), return_exceptions=True)

        outcomes = []
        for file, result in zip(files, results):
            if isinstance(result, asyncio.CancelledError):
                outcomes.append(UploadOutcome(file=file, error="Upload cancelled", cancelled=True))
            elif isinstance(result, BaseException):
                outcomes.append(UploadOutcome(file=file, error=str(result)))
            else:
                outcomes.append(UploadOutcome(file=file, result=result))

        ok = sum(1 for o in outcomes if o.success)
        logger.info(f"Upload: batch finished, {ok}/{len(outcomes)} succeeded")
        return outcomes

    async def retry_failed(
        self, session: UploadSession, metadata: Optional[dict[str, Any]] = None
    ) -> list[UploadOutcome]:
        """Upload again every file that failed in the session."""
        failed = session.take_failed()
        if not failed:
            return []
        logger.info(f"Upload: retrying {len(failed)} failed files")
        return await self.upload_many(failed, session, metadata)

    async def _run(
        self,
        upload_id: str,
        file: UploadFile,
        session: UploadSession,
        metadata: dict[str, Any],
    ) -> UploadResult:
        channel = session.progress

        def publish(stage: UploadStage, progress: int = 0, **extra: Any) -> None:
            channel.publish(UploadProgress(
                upload_id=upload_id,
                file_name=file.name,
                stage=stage,
                progress=progress,
                total_bytes=file.size,
                **extra,
            ))

        publish(UploadStage.VALIDATING)
        try:
            self._validate(file)
        except FileValidationError as e:
            publish(UploadStage.ERROR, error=str(e))
            session.record_failure(file)
            raise

        record: Optional[DocumentRecord] = None
        try:
            await self._check_duplicate(file)
            record = await self._create_placeholder(file, metadata)

            publish(UploadStage.UPLOADING)
            download_url, attempts = await self._store_with_retry(
                file, record, metadata, publish
            )

            publish(UploadStage.PROCESSING, 90, bytes_transferred=file.size)
            await self._mark_uploaded(record.id, download_url)
        except asyncio.CancelledError:
            logger.info(f"Upload: {file.name} cancelled")
            publish(UploadStage.CANCELLED, error="Upload cancelled by user")
            await self._mark_failed(record)
            session.record_failure(file)
            raise
        except Exception as e:
            logger.error(f"Upload: {file.name} failed: {e}")
            publish(UploadStage.ERROR, error=str(e))
            await self._mark_failed(record)
            session.record_failure(file)
            raise UploadError(f"Upload failed for {file.name}: {e}", upload_id=upload_id) from e

        session.record_success(file.size)
        publish(UploadStage.COMPLETED, 100, bytes_transferred=file.size)
        logger.info(f"Upload: {file.name} stored as {record.id} ({attempts} attempt(s))")

        return UploadResult(
            upload_id=upload_id,
            document_id=record.id,
            storage_path=record.storage_path,
            download_url=download_url,
            attempts=attempts,
        )

    def _validate(self, file: UploadFile) -> None:
        result = self._validator.validate(file)
        if not result.is_valid:
            raise FileValidationError(
                f"{file.name}: {'; '.join(result.errors)}", errors=result.errors
            )
        if result.security_flags and not self._allow_security_warnings:
            raise FileValidationError(
                f"{file.name}: rejected for security reasons", errors=result.security_flags
            )
        for warning in result.warnings:
            logger.warning(f"Upload: {file.name}: {warning}")

    async def _check_duplicate(self, file: UploadFile) -> None:
        if self._allow_duplicates:
            return
        try:
            existing = await self._document_store.find_duplicate(
                file.name, file.content_type, file.size
            )
        except DocumentStoreError as e:
            logger.warning(f"Upload: duplicate check failed, continuing: {e}")
            return
        if existing is not None:
            raise UploadError(f"File already uploaded: {file.name} ({existing.id})")

    async def _create_placeholder(
        self, file: UploadFile, metadata: dict[str, Any]
    ) -> DocumentRecord:
        now = datetime.now(timezone.utc)
        owner_name = metadata.get("owner_name")
        record = DocumentRecord(
            id=uuid.uuid4().hex[:20],
            file_name=file.name,
            author=owner_name or UNKNOWN_AUTHOR,
            title=file.name,
            created_at=file.last_modified or now,
            uploaded_at=now,
            size=file.size,
            content_type=file.content_type or "application/octet-stream",
            storage_path=build_storage_path(file.name),
            processing_status=ProcessingStatus.UPLOADING.value,
            owner_id=metadata.get("owner_id") or "anonymous",
            owner_name=owner_name,
            searchable=False,
        )
        return await self._document_store.create_document(record)

    async def _store_with_retry(
        self,
        file: UploadFile,
        record: DocumentRecord,
        metadata: dict[str, Any],
        publish,
    ) -> tuple[str, int]:
        custom = {
            "originalFileName": file.name,
            "docId": record.id,
            "ownerId": record.owner_id or "anonymous",
            "filePath": record.storage_path,
            "fileLastModified": file.last_modified.isoformat() if file.last_modified else "",
        }
        custom.update({
            k: str(v) for k, v in metadata.items() if k not in ("owner_id", "owner_name")
        })

        def on_progress(transferred: int, total: int) -> None:
            percent = round(transferred / total * 100) if total else 100
            publish(UploadStage.UPLOADING, percent, bytes_transferred=transferred)

        for attempt in range(1, self._retry_attempts + 1):
            try:
                url = await self._blob_store.upload(
                    record.storage_path,
                    file.data,
                    record.content_type,
                    metadata=custom,
                    on_progress=on_progress,
                )
                return url, attempt
            except BlobStoreError as e:
                if not e.retryable or attempt == self._retry_attempts:
                    raise
                delay = self.retry_delay(attempt)
                logger.warning(
                    f"Upload: {file.name} attempt {attempt} failed ({e}), "
                    f"retrying in {delay:.1f}s"
                )
                publish(UploadStage.RETRYING, attempt=attempt, retry_delay=delay, error=str(e))
                await asyncio.sleep(delay)

        raise UploadError(f"Upload failed for {file.name}")

    def retry_delay(self, attempt: int) -> float:
        """Capped exponential backoff with jitter for the given attempt (1-based)."""
        delay = min(self._retry_delay_base * 2 ** (attempt - 1), self._retry_delay_max)
        return delay / 2 + random.uniform(0, delay / 2)

    async def _mark_uploaded(self, doc_id: str, download_url: str) -> None:
        try:
            await self._document_store.update_document(doc_id, {
                "processingStatus": ProcessingStatus.UPLOADED.value,
                "downloadURL": download_url,
                "uploadedAt": datetime.now(timezone.utc),
            })
        except DocumentStoreError as e:
            logger.warning(f"Upload: placeholder update for {doc_id} failed: {e}")

    async def _mark_failed(self, record: Optional[DocumentRecord]) -> None:
        if record is None:
            return
        try:
            await self._document_store.update_document(
                record.id, {"processingStatus": ProcessingStatus.FAILED.value}
            )
        except DocumentStoreError as e:
            logger.warning(f"Upload: could not mark {record.id} as failed: {e}")
