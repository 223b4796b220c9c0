"""Per-caller upload state: progress channel, active uploads and stats."""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from ..errors import UploadError
from ..models.upload import UploadFile, UploadProgress, UploadStats

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """Async iterator over progress events of one subscriber."""

    def __init__(self, channel: "ProgressChannel"):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def __aiter__(self) -> AsyncIterator[UploadProgress]:
        return self

    async def __anext__(self) -> UploadProgress:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return event

    def _push(self, event: object) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def unsubscribe(self) -> None:
        """Stop receiving events; pending iteration ends."""
        self._channel._remove(self)
        self._push(_CLOSED)


class ProgressChannel:
    """Fan-out of upload progress events to any number of observers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._listeners: list[Callable[[UploadProgress], None]] = []
        self._closed = False

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        if self._closed:
            subscription._push(_CLOSED)
        else:
            self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, listener: Callable[[UploadProgress], None]) -> Callable[[], None]:
        """Register a synchronous callback; returns a function removing it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def publish(self, event: UploadProgress) -> None:
        if self._closed:
            return
        for subscription in list(self._subscriptions):
            subscription._push(event)
        for listener in list(self._listeners):
            listener(event)

    def close(self) -> None:
        """End every subscription."""
        self._closed = True
        for subscription in self._subscriptions:
            subscription._push(_CLOSED)
        self._subscriptions.clear()
        self._listeners.clear()

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


class UploadSession:
    """Upload bookkeeping owned by one caller."""

    def __init__(self, max_concurrent: int = 3):
        self.max_concurrent = max_concurrent
        self.stats = UploadStats()
        self.progress = ProgressChannel()
        self.failed: list[UploadFile] = []
        self._active: dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def active_ids(self) -> list[str]:
        return list(self._active)

    def track(self, upload_id: str, task: asyncio.Task) -> None:
        """Register a running upload.

        Raises:
            UploadError: If ``max_concurrent`` uploads are already running.
        """
        if len(self._active) >= self.max_concurrent:
            raise UploadError(
                "Maximum concurrent uploads exceeded. Please wait.", upload_id=upload_id
            )
        self._active[upload_id] = task

    def release(self, upload_id: str) -> None:
        self._active.pop(upload_id, None)

    def cancel(self, upload_id: str) -> bool:
        """Cancel a running upload; False if it is not active."""
        task: Optional[asyncio.Task] = self._active.get(upload_id)
        if task is None or task.done():
            return False
        logger.info(f"Upload: cancelling {upload_id}")
        return task.cancel()

    def cancel_all(self) -> int:
        return sum(1 for upload_id in list(self._active) if self.cancel(upload_id))

    def record_success(self, size: int) -> None:
        self.stats.success_count += 1
        self.stats.total_bytes += size

    def record_failure(self, file: UploadFile) -> None:
        self.stats.error_count += 1
        self.failed.append(file)

    def take_failed(self) -> list[UploadFile]:
        failed, self.failed = self.failed, []
        return failed
