"""Upload orchestration use-case service."""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from bulk_uploader.application.cancellation import CancellationController
from bulk_uploader.application.progress import aggregate_progress
from bulk_uploader.application.queue_manager import QueueManager
from bulk_uploader.application.retry_policy import RetryPolicy
from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.errors import UploadNotFoundError, UploadValidationError
from bulk_uploader.domain.events import UploadEvent, UploadEventListener, UploadEventType
from bulk_uploader.domain.monitoring_models import (
    BatchError,
    TransferItemSnapshot,
    UploadSnapshot,
)
from bulk_uploader.domain.ports import TransportAdapter, UploadEventPublisher
from bulk_uploader.domain.transfer_types import TransferState

_DEFAULT_MAX_CONCURRENT = 3
_ID_ALPHABET = string.digits + string.ascii_lowercase

logger = logging.getLogger(__name__)


def generate_upload_id() -> str:
    """Return an id shaped like `upload_<epoch-millis>_<9 base36 chars>`."""

    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"upload_{int(time.time() * 1000)}_{suffix}"


def generate_batch_id() -> str:
    return f"batch_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@dataclass(slots=True, frozen=True)
class BatchHandle:
    """Caller-facing handle for one submitted batch."""

    batch_id: str
    item_ids: tuple[str, ...]
    _orchestrator: UploadOrchestrator = field(repr=False, compare=False)

    def snapshot(self) -> UploadSnapshot:
        """Return the current items and aggregate of this batch."""

        return self._orchestrator.get_snapshot(self.batch_id)

    async def wait(self) -> UploadSnapshot:
        """Wait until every item of the batch is terminal."""

        return await self._orchestrator.wait_for_batch(self.batch_id)


class UploadOrchestrator:
    """Public API composing the queue manager and cancellation controller.

    Must be driven from the event loop that runs the transfers; every method
    except `wait_for_batch`/`aclose` returns immediately.
    """

    def __init__(
        self,
        transport: TransportAdapter,
        retry_policy: RetryPolicy | None = None,
        max_concurrent: int = _DEFAULT_MAX_CONCURRENT,
        event_publisher: UploadEventPublisher | None = None,
        id_factory: Callable[[], str] = generate_upload_id,
    ) -> None:
        self._transport = transport
        self._queue = QueueManager(
            transport=transport,
            retry_policy=retry_policy,
            max_concurrent=max_concurrent,
        )
        self._queue.set_change_callback(self._on_item_change)
        self._cancellation = CancellationController(self._queue)
        self._event_publisher = event_publisher
        self._id_factory = id_factory
        self._batches: dict[str, tuple[str, ...]] = {}
        self._completed_batches: set[str] = set()
        self._batch_waiters: dict[str, list[asyncio.Future[None]]] = {}
        self._listeners: list[UploadEventListener] = []
        self._publish_tasks: set[asyncio.Task[None]] = set()

    @property
    def max_concurrent(self) -> int:
        return self._queue.max_concurrent

    def submit(self, files: Sequence[Any]) -> BatchHandle:
        """Create one PENDING item per file and start filling free slots."""

        if len(files) == 0:
            raise UploadValidationError("At least one file is required to submit a batch.")

        batch_id = generate_batch_id()
        while batch_id in self._batches:
            batch_id = generate_batch_id()

        items: list[TransferItem] = []
        taken: set[str] = set()
        for payload in files:
            item_id = self._new_item_id(taken)
            taken.add(item_id)
            items.append(self._queue.new_item(item_id=item_id, batch_id=batch_id, payload=payload))

        item_ids = tuple(item.item_id for item in items)
        self._batches[batch_id] = item_ids
        logger.info("Submitted batch '%s' with %s file(s).", batch_id, len(item_ids))
        self._queue.enqueue(items)
        return BatchHandle(batch_id=batch_id, item_ids=item_ids, _orchestrator=self)

    def cancel(self, item_id: str) -> bool:
        """Cancel one item; cancelling a terminal item is a no-op."""

        return self._cancellation.cancel(item_id)

    def cancel_batch(self, batch_id: str) -> int:
        return self._cancellation.cancel_items(self._require_batch(batch_id))

    def cancel_all(self) -> int:
        return self._cancellation.cancel_all()

    def retry_failed(self, batch_id: str | None = None) -> int:
        """Re-enqueue every terminal FAILED item with a fresh attempt budget."""

        item_ids = self._item_ids(batch_id)
        failed = [
            item.item_id
            for item in self._queue.snapshot(item_ids)
            if item.state is TransferState.FAILED
        ]
        return self._queue.requeue_failed(failed)

    def retry(self, item_id: str) -> bool:
        """Re-enqueue one terminal FAILED item; other states are a no-op."""

        if not self._queue.contains(item_id):
            raise UploadNotFoundError(f"Transfer item '{item_id}' was not found.")
        return self._queue.requeue_failed([item_id]) == 1

    def get_item(self, item_id: str) -> TransferItemSnapshot:
        return self._queue.get(item_id)

    def get_snapshot(self, batch_id: str | None = None) -> UploadSnapshot:
        """Return items plus freshly computed aggregate, for one batch or all."""

        items = self._queue.snapshot(self._item_ids(batch_id))
        return UploadSnapshot(
            items=items,
            aggregate=aggregate_progress(items),
            errors=tuple(
                BatchError(item_id=item.item_id, name=item.name, message=item.last_error or "")
                for item in items
                if item.state is TransferState.FAILED
            ),
            batch_id=batch_id,
        )

    def list_batches(self) -> list[str]:
        return list(self._batches)

    def clear(self, batch_id: str | None = None) -> int:
        """Cancel remaining work and stop tracking items; return removed count."""

        batch_ids = [batch_id] if batch_id is not None else list(self._batches)
        removed = 0
        for current in batch_ids:
            item_ids = self._require_batch(current)
            removed += self._queue.remove(item_ids)
            del self._batches[current]
            self._completed_batches.discard(current)
            self._release_waiters(current)
        return removed

    def subscribe(self, listener: UploadEventListener) -> Callable[[], None]:
        """Register a push listener; the returned callable unsubscribes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_for_batch(self, batch_id: str) -> UploadSnapshot:
        """Block until the batch is complete and return its final snapshot."""

        while True:
            snapshot = self.get_snapshot(batch_id)
            if snapshot.aggregate.is_complete:
                return snapshot
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._batch_waiters.setdefault(batch_id, []).append(waiter)
            await waiter

    async def aclose(self) -> None:
        """Cancel all work, flush pending event publications, and close adapters."""

        await self._queue.aclose()
        if self._publish_tasks:
            await asyncio.gather(*self._publish_tasks, return_exceptions=True)
        await self._transport.aclose()
        if self._event_publisher is not None:
            await self._event_publisher.aclose()

    def _on_item_change(self, item: TransferItem, event_type: UploadEventType) -> None:
        batch_id = item.batch_id
        if batch_id not in self._batches:
            return

        snapshot = self.get_snapshot(batch_id)
        self._emit(
            UploadEvent(
                event_type=event_type,
                batch_id=batch_id,
                snapshot=snapshot,
                item=TransferItemSnapshot.from_item(item),
            )
        )
        if event_type is not UploadEventType.STATE_CHANGED:
            return

        if not snapshot.aggregate.is_complete:
            self._completed_batches.discard(batch_id)
            return
        if batch_id in self._completed_batches:
            return

        self._completed_batches.add(batch_id)
        aggregate = snapshot.aggregate
        logger.info(
            "Batch '%s' complete: %s succeeded, %s failed, %s cancelled.",
            batch_id,
            aggregate.succeeded,
            aggregate.failed,
            aggregate.cancelled,
        )
        self._emit(
            UploadEvent(
                event_type=UploadEventType.BATCH_COMPLETED,
                batch_id=batch_id,
                snapshot=snapshot,
            )
        )
        self._release_waiters(batch_id)

    def _emit(self, event: UploadEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Upload event listener failed for batch '%s'.", event.batch_id)

        publisher = self._event_publisher
        if publisher is None:
            return
        task = asyncio.get_running_loop().create_task(publisher.publish(event))
        self._publish_tasks.add(task)
        task.add_done_callback(self._on_publish_done)

    def _on_publish_done(self, task: asyncio.Task[None]) -> None:
        self._publish_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Failed to publish upload event: %s", exc)

    def _release_waiters(self, batch_id: str) -> None:
        for waiter in self._batch_waiters.pop(batch_id, []):
            if not waiter.done():
                waiter.set_result(None)

    def _item_ids(self, batch_id: str | None) -> tuple[str, ...] | None:
        if batch_id is None:
            return None
        return self._require_batch(batch_id)

    def _require_batch(self, batch_id: str) -> tuple[str, ...]:
        item_ids = self._batches.get(batch_id)
        if item_ids is None:
            raise UploadNotFoundError(f"Upload batch '{batch_id}' was not found.")
        return item_ids

    def _new_item_id(self, taken: set[str]) -> str:
        item_id = self._id_factory()
        while item_id in taken or self._queue.contains(item_id):
            item_id = self._id_factory()
        return item_id


__all__ = ["BatchHandle", "UploadOrchestrator", "generate_batch_id", "generate_upload_id"]
