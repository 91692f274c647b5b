"""Admission control and scheduling of transfers under a concurrency cap."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from bulk_uploader.application.retry_policy import MaxAttemptsRetryPolicy, RetryPolicy
from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.errors import UploadNotFoundError, UploadValidationError
from bulk_uploader.domain.events import UploadEventType
from bulk_uploader.domain.monitoring_models import TransferItemSnapshot
from bulk_uploader.domain.outcomes import (
    TERMINAL_OUTCOME_TYPES,
    TransferFailed,
    TransferOutcome,
    TransferProgress,
    TransferSucceeded,
)
from bulk_uploader.domain.ports import TransportAdapter
from bulk_uploader.domain.transfer_types import TransferState

_DEFAULT_MAX_CONCURRENT = 3

logger = logging.getLogger(__name__)

ItemChangeCallback = Callable[[TransferItem, UploadEventType], None]


@dataclass(slots=True)
class _ActiveTransfer:
    """Slot held by one in-flight attempt."""

    item_id: str
    attempt: int
    task: asyncio.Task[None] | None = None


async def _failed_stream(error: str) -> AsyncIterator[TransferOutcome]:
    yield TransferFailed(error=error)


class QueueManager:
    """Hold pending/active items and start transfers as slots free up.

    All mutations run synchronously on the event loop thread: transport
    outcomes are consumed by one task per attempt and routed into
    `_handle_outcome`, which never awaits. `tick()` is the only code path that
    moves an item to IN_FLIGHT, and nested calls are coalesced into another
    pass of the running tick.
    """

    def __init__(
        self,
        transport: TransportAdapter,
        retry_policy: RetryPolicy | None = None,
        max_concurrent: int = _DEFAULT_MAX_CONCURRENT,
        on_change: ItemChangeCallback | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1.")
        self._transport = transport
        self._retry_policy = retry_policy or MaxAttemptsRetryPolicy()
        self._max_concurrent = max_concurrent
        self._on_change = on_change
        self._items: dict[str, TransferItem] = {}
        self._pending: deque[str] = deque()
        self._active: dict[str, _ActiveTransfer] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._next_sequence = 0
        self._ticking = False
        self._tick_requested = False
        self._wakeup_handle: asyncio.TimerHandle | None = None

    @property
    def max_concurrent(self) -> int:
        """Return the number of concurrency slots."""

        return self._max_concurrent

    @property
    def active_count(self) -> int:
        """Return the number of slots currently held."""

        return len(self._active)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def set_change_callback(self, callback: ItemChangeCallback | None) -> None:
        self._on_change = callback

    def new_item(self, item_id: str, batch_id: str, payload: object) -> TransferItem:
        """Build a PENDING item carrying the next FIFO sequence number."""

        item = TransferItem(
            item_id=item_id,
            batch_id=batch_id,
            payload=payload,
            sequence=self._next_sequence,
        )
        self._next_sequence += 1
        return item

    def enqueue(self, items: Iterable[TransferItem]) -> None:
        """Append PENDING items in the given order and fill free slots."""

        batch = list(items)
        for item in batch:
            if item.item_id in self._items:
                raise UploadValidationError(f"Transfer item '{item.item_id}' is already queued.")
            if item.state is not TransferState.PENDING:
                raise UploadValidationError(
                    f"Transfer item '{item.item_id}' must be PENDING to be enqueued."
                )
        for item in batch:
            self._items[item.item_id] = item
            self._pending.append(item.item_id)
        self.tick()

    def tick(self) -> None:
        """Start pending items while slots are free."""

        if self._ticking:
            self._tick_requested = True
            return
        self._ticking = True
        try:
            while True:
                self._tick_requested = False
                self._admit_pending()
                if not self._tick_requested:
                    break
        finally:
            self._ticking = False

    def cancel(self, item_id: str) -> bool:
        """Cancel one item; return False when it was already terminal."""

        item = self._require(item_id)
        if item.is_terminal:
            return False

        if item.state is TransferState.PENDING:
            self._pending.remove(item_id)
            item.mark_cancelled()
            self._notify(item, UploadEventType.STATE_CHANGED)
            return True

        active = self._release(item_id)
        item.mark_cancelled()
        if active is not None and active.task is not None:
            active.task.cancel()
        self._notify(item, UploadEventType.STATE_CHANGED)
        self.tick()
        return True

    def cancel_many(self, item_ids: Iterable[str]) -> int:
        """Cancel several items, admitting replacements only once at the end.

        Pending items are cancelled before in-flight ones so that freed slots
        are never handed to an item that is about to be cancelled too.
        """

        ordered = self._cancellation_order(self._require(item_id).item_id for item_id in item_ids)
        cancelled = 0
        with self._admission_paused():
            for item_id in ordered:
                if self.cancel(item_id):
                    cancelled += 1
        return cancelled

    def cancel_all(self) -> int:
        """Cancel every non-terminal item."""

        return self.cancel_many(list(self._items))

    def requeue_failed(self, item_ids: Iterable[str]) -> int:
        """Move terminal FAILED items back to the end of the queue.

        Attempt counters are reset, so each item gets a fresh retry budget.
        """

        requeued = 0
        with self._admission_paused():
            for item_id in item_ids:
                item = self._require(item_id)
                if item.state is not TransferState.FAILED:
                    continue
                item.reset_for_retry(reset_attempts=True)
                self._pending.append(item_id)
                self._notify(item, UploadEventType.STATE_CHANGED)
                requeued += 1
        return requeued

    def remove(self, item_ids: Iterable[str]) -> int:
        """Stop tracking items; non-terminal ones are cancelled first."""

        targets = [item_id for item_id in item_ids if item_id in self._items]
        self.cancel_many(targets)
        for item_id in targets:
            del self._items[item_id]
        return len(targets)

    def get(self, item_id: str) -> TransferItemSnapshot:
        return TransferItemSnapshot.from_item(self._require(item_id))

    def contains(self, item_id: str) -> bool:
        return item_id in self._items

    def snapshot(self, item_ids: Iterable[str] | None = None) -> tuple[TransferItemSnapshot, ...]:
        """Return read-only copies of items in enqueue order."""

        if item_ids is None:
            items: Iterable[TransferItem] = self._items.values()
        else:
            items = (self._items[item_id] for item_id in item_ids if item_id in self._items)
        return tuple(
            TransferItemSnapshot.from_item(item)
            for item in sorted(items, key=lambda entry: entry.sequence)
        )

    async def aclose(self) -> None:
        """Cancel everything and wait for attempt tasks to acknowledge."""

        self.cancel_all()
        if self._wakeup_handle is not None:
            self._wakeup_handle.cancel()
            self._wakeup_handle = None
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _admit_pending(self) -> None:
        if len(self._active) >= self._max_concurrent or not self._pending:
            return

        loop = asyncio.get_running_loop()
        now = loop.time()
        while len(self._active) < self._max_concurrent:
            item = self._pop_next_eligible(now)
            if item is None:
                break
            self._start(item, loop)

        if len(self._active) >= self._max_concurrent:
            return
        deferred = [
            self._items[item_id].not_before
            for item_id in self._pending
            if self._items[item_id].not_before is not None
        ]
        if deferred:
            self._schedule_wakeup(loop, min(when for when in deferred if when is not None))

    def _pop_next_eligible(self, now: float) -> TransferItem | None:
        """Remove and return the earliest-enqueued pending item that may start."""

        for index, item_id in enumerate(self._pending):
            item = self._items[item_id]
            if item.not_before is None or item.not_before <= now:
                del self._pending[index]
                return item
        return None

    def _start(self, item: TransferItem, loop: asyncio.AbstractEventLoop) -> None:
        item.mark_in_flight()
        active = _ActiveTransfer(item_id=item.item_id, attempt=item.attempt_count)
        self._active[item.item_id] = active
        try:
            outcomes = self._transport.transfer(item)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Transport failed to start transfer of item '%s'.", item.item_id)
            outcomes = _failed_stream(str(exc) or exc.__class__.__name__)

        task = loop.create_task(
            self._run_attempt(item.item_id, active.attempt, outcomes),
            name=f"upload-{item.item_id}-{active.attempt}",
        )
        active.task = task
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        self._notify(item, UploadEventType.STATE_CHANGED)

    async def _run_attempt(
        self,
        item_id: str,
        attempt: int,
        outcomes: AsyncIterator[TransferOutcome],
    ) -> None:
        try:
            async for outcome in outcomes:
                self._handle_outcome(item_id, attempt, outcome)
                if isinstance(outcome, TERMINAL_OUTCOME_TYPES):
                    return
            self._handle_outcome(
                item_id,
                attempt,
                TransferFailed(error="Transfer ended without a result"),
            )
        except asyncio.CancelledError:
            logger.debug("Abort acknowledged for item '%s' attempt %s.", item_id, attempt)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Transfer of item '%s' attempt %s raised: %s", item_id, attempt, exc
            )
            self._handle_outcome(
                item_id,
                attempt,
                TransferFailed(error=str(exc) or exc.__class__.__name__),
            )
        finally:
            aclose = getattr(outcomes, "aclose", None)
            if aclose is not None:
                await aclose()

    def _handle_outcome(self, item_id: str, attempt: int, outcome: TransferOutcome) -> None:
        active = self._active.get(item_id)
        if active is None or active.attempt != attempt:
            logger.debug(
                "Discarding %s for item '%s' attempt %s; attempt is no longer active.",
                type(outcome).__name__,
                item_id,
                attempt,
            )
            return

        item = self._items[item_id]
        if isinstance(outcome, TransferProgress):
            if item.record_progress(outcome.percent):
                self._notify(item, UploadEventType.PROGRESS)
            return

        self._release(item_id)
        if isinstance(outcome, TransferSucceeded):
            item.mark_succeeded(outcome.url)
            self._notify(item, UploadEventType.STATE_CHANGED)
        else:
            self._handle_failure(item, outcome)
        self.tick()

    def _handle_failure(self, item: TransferItem, failure: TransferFailed) -> None:
        item.mark_failed(failure.error, failure.retryable)
        decision = self._retry_policy.decide(item.attempt_count, failure)
        if not decision.should_retry:
            self._notify(item, UploadEventType.STATE_CHANGED)
            logger.warning(
                "Giving up on item '%s' after %s attempt(s): %s",
                item.item_id,
                item.attempt_count,
                failure.error,
            )
            return

        item.reset_for_retry()
        if decision.delay_seconds > 0:
            item.not_before = asyncio.get_running_loop().time() + decision.delay_seconds
        self._pending.append(item.item_id)
        logger.info(
            "Retrying item '%s' (attempt %s failed: %s).",
            item.item_id,
            item.attempt_count,
            failure.error,
        )
        self._notify(item, UploadEventType.STATE_CHANGED)

    def _release(self, item_id: str) -> _ActiveTransfer | None:
        return self._active.pop(item_id, None)

    def _schedule_wakeup(self, loop: asyncio.AbstractEventLoop, when: float) -> None:
        handle = self._wakeup_handle
        if handle is not None and not handle.cancelled() and handle.when() <= when:
            return
        if handle is not None:
            handle.cancel()
        self._wakeup_handle = loop.call_at(when, self._on_wakeup)

    def _on_wakeup(self) -> None:
        self._wakeup_handle = None
        self.tick()

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Transfer task %s failed.", task.get_name(), exc_info=exc)

    def _cancellation_order(self, item_ids: Iterable[str]) -> list[str]:
        pending: list[str] = []
        in_flight: list[str] = []
        for item_id in item_ids:
            state = self._items[item_id].state
            if state is TransferState.PENDING:
                pending.append(item_id)
            elif state is TransferState.IN_FLIGHT:
                in_flight.append(item_id)
        return pending + in_flight

    @contextmanager
    def _admission_paused(self) -> Iterator[None]:
        if self._ticking:
            yield
            self._tick_requested = True
            return
        self._ticking = True
        try:
            yield
        finally:
            self._ticking = False
        self.tick()

    def _notify(self, item: TransferItem, event_type: UploadEventType) -> None:
        callback = self._on_change
        if callback is None:
            return
        try:
            callback(item, event_type)
        except Exception:  # noqa: BLE001
            logger.exception("Item change callback failed for item '%s'.", item.item_id)

    def _require(self, item_id: str) -> TransferItem:
        item = self._items.get(item_id)
        if item is None:
            raise UploadNotFoundError(f"Transfer item '{item_id}' was not found.")
        return item


__all__ = ["ItemChangeCallback", "QueueManager"]
