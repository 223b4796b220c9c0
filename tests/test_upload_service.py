import asyncio
import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import make_record

from docsearch.core.errors import (
    BlobStoreError,
    DocumentStoreError,
    FileValidationError,
    UploadError,
)
from docsearch.core.models.upload import UploadFile, UploadStage
from docsearch.core.services.upload_service import UploadService, build_storage_path
from docsearch.core.services.upload_session import UploadSession
from docsearch.infrastructure.blob_stores.memory_store import InMemoryBlobStore
from docsearch.infrastructure.document_stores.memory_store import InMemoryDocumentStore


def _file(name="report.pdf", data=b"%PDF-1.4 data") -> UploadFile:
    return UploadFile(name=name, data=data, content_type="application/pdf")


def _service(document_store=None, blob_store=None, **kwargs) -> UploadService:
    kwargs.setdefault("retry_delay_base", 0)
    kwargs.setdefault("retry_delay_max", 0)
    return UploadService(
        document_store if document_store is not None else InMemoryDocumentStore(),
        blob_store if blob_store is not None else InMemoryBlobStore(),
        **kwargs,
    )


def _flaky_blob_store(failures: int, retryable: bool = True):
    blob_store = InMemoryBlobStore()
    original = blob_store.upload
    calls = {"n": 0}

    async def upload(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] <= failures:
            raise BlobStoreError("network down", retryable=retryable)
        return await original(*args, **kwargs)

    blob_store.upload = upload
    return blob_store, calls


def test_build_storage_path_sanitizes_name():
    path = build_storage_path("My Report (final).pdf", now_ms=1700000000000)

    assert re.fullmatch(r"documents/1700000000000_[a-z0-9]{9}_My_Report__final_\.pdf", path)


def test_upload_creates_placeholder_and_stores_file():
    documents = InMemoryDocumentStore()
    blobs = InMemoryBlobStore()
    service = _service(documents, blobs)
    session = UploadSession()

    result = asyncio.run(service.upload(_file(), session, {"owner_name": "Ann"}))

    record = asyncio.run(documents.get_document(result.document_id))
    assert record.processing_status == "uploaded"
    assert record.download_url == result.download_url
    assert record.author == "Ann"
    assert record.title == "report.pdf"
    assert record.searchable is False
    assert blobs.read(result.storage_path) == b"%PDF-1.4 data"
    assert blobs.metadata(result.storage_path)["docId"] == result.document_id
    assert session.stats.success_count == 1
    assert session.stats.total_bytes == len(b"%PDF-1.4 data")
    assert session.active_count == 0


def test_progress_events_reach_subscribers():
    service = _service()
    session = UploadSession()
    subscription = session.progress.subscribe()
    seen = []
    session.progress.add_listener(seen.append)

    async def runner():
        await service.upload(_file(), session)
        session.progress.close()
        return [event.stage async for event in subscription]

    stages = asyncio.run(runner())

    assert stages[0] is UploadStage.VALIDATING
    assert stages[-1] is UploadStage.COMPLETED
    assert UploadStage.UPLOADING in stages
    assert UploadStage.PROCESSING in stages
    assert [e.stage for e in seen] == stages


def test_unsubscribe_stops_delivery():
    service = _service()
    session = UploadSession()
    subscription = session.progress.subscribe()
    subscription.unsubscribe()

    async def runner():
        await service.upload(_file(), session)
        return [event async for event in subscription]

    assert asyncio.run(runner()) == []


def test_retryable_failure_is_retried():
    blob_store, calls = _flaky_blob_store(failures=2)
    service = _service(blob_store=blob_store, retry_attempts=3)
    session = UploadSession()
    seen = []
    session.progress.add_listener(seen.append)

    result = asyncio.run(service.upload(_file(), session))

    assert calls["n"] == 3
    assert result.attempts == 3
    retries = [e for e in seen if e.stage is UploadStage.RETRYING]
    assert [e.attempt for e in retries] == [1, 2]


def test_exhausted_retries_mark_placeholder_failed():
    documents = InMemoryDocumentStore()
    blob_store, calls = _flaky_blob_store(failures=5)
    service = _service(documents, blob_store, retry_attempts=2)
    session = UploadSession()

    with pytest.raises(UploadError):
        asyncio.run(service.upload(_file(), session))

    assert calls["n"] == 2
    records = asyncio.run(documents.list_documents())
    assert [r.processing_status for r in records] == ["failed"]
    assert session.stats.error_count == 1
    assert [f.name for f in session.failed] == ["report.pdf"]


def test_non_retryable_failure_fails_fast():
    blob_store, calls = _flaky_blob_store(failures=1, retryable=False)
    service = _service(blob_store=blob_store, retry_attempts=3)

    with pytest.raises(UploadError):
        asyncio.run(service.upload(_file()))

    assert calls["n"] == 1


def test_invalid_file_is_rejected_before_anything_is_written():
    documents = InMemoryDocumentStore()
    service = _service(documents)
    session = UploadSession()

    with pytest.raises(FileValidationError) as excinfo:
        asyncio.run(service.upload(_file(name="run.exe"), session))

    assert excinfo.value.errors
    assert len(documents) == 0
    assert session.stats.error_count == 1


def test_security_warning_policy():
    suspicious = _file(name="javascript:x.pdf")

    with pytest.raises(FileValidationError):
        asyncio.run(_service().upload(suspicious))

    result = asyncio.run(_service(allow_security_warnings=True).upload(suspicious))
    assert result.document_id


def test_duplicate_check():
    existing = make_record("old", file_name="report.pdf", size=len(b"%PDF-1.4 data"))
    documents = InMemoryDocumentStore([existing])

    with pytest.raises(UploadError, match="already uploaded"):
        asyncio.run(_service(documents, allow_duplicates=False).upload(_file()))

    result = asyncio.run(_service(documents, allow_duplicates=True).upload(_file()))
    assert result.document_id != "old"


def test_concurrency_limit_is_enforced():
    service = _service()
    session = UploadSession(max_concurrent=1)
    session.track("busy", MagicMock())

    with pytest.raises(UploadError, match="concurrent"):
        asyncio.run(service.upload(_file(), session))


def test_upload_many_respects_session_limit():
    blob_store = InMemoryBlobStore()
    original = blob_store.upload
    in_flight = 0
    peak = 0

    async def slow_upload(*args, **kwargs):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return await original(*args, **kwargs)

    blob_store.upload = slow_upload
    service = _service(blob_store=blob_store)
    session = UploadSession(max_concurrent=2)
    files = [_file(name=f"doc{i}.pdf") for i in range(5)] + [_file(name="bad.exe")]

    outcomes = asyncio.run(service.upload_many(files, session))

    assert peak == 2
    assert [o.success for o in outcomes] == [True] * 5 + [False]
    assert session.stats.success_count == 5
    assert session.stats.error_count == 1


def test_cancel_active_upload():
    blob_store = InMemoryBlobStore()

    async def runner():
        gate = asyncio.Event()

        async def hanging_upload(*args, **kwargs):
            gate.set()
            await asyncio.sleep(60)

        blob_store.upload = hanging_upload
        service = _service(blob_store=blob_store)
        session = UploadSession()
        seen = []
        session.progress.add_listener(seen.append)

        task = asyncio.create_task(service.upload(_file(), session))
        await gate.wait()
        assert session.cancel(session.active_ids[0])
        with pytest.raises(asyncio.CancelledError):
            await task
        return session, seen

    session, seen = asyncio.run(runner())

    assert seen[-1].stage is UploadStage.CANCELLED
    assert session.active_count == 0
    assert session.stats.error_count == 1


def test_retry_failed_uploads_again():
    blob_store, calls = _flaky_blob_store(failures=1, retryable=False)
    service = _service(blob_store=blob_store)
    session = UploadSession()

    first = asyncio.run(service.upload_many([_file()], session))
    assert not first[0].success

    retried = asyncio.run(service.retry_failed(session))
    assert [o.success for o in retried] == [True]
    assert session.failed == []


def test_retry_delay_is_capped_with_jitter():
    service = UploadService(MagicMock(), MagicMock(), retry_delay_base=1.0, retry_delay_max=10.0)

    for attempt in range(1, 8):
        expected = min(2 ** (attempt - 1), 10.0)
        delay = service.retry_delay(attempt)
        assert expected / 2 <= delay <= expected


def test_placeholder_update_failure_does_not_fail_upload():
    documents = InMemoryDocumentStore()
    documents.update_document = AsyncMock(side_effect=DocumentStoreError("write denied"))
    service = _service(documents)

    result = asyncio.run(service.upload(_file()))

    assert result.document_id
