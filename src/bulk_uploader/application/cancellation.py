"""Cancellation of single items, batches, or all tracked uploads."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from bulk_uploader.application.queue_manager import QueueManager

logger = logging.getLogger(__name__)


class CancellationController:
    """Translate user cancel requests into queue-manager transitions.

    PENDING items move straight to CANCELLED. IN_FLIGHT items get their abort
    signalled and their slot released at once; whatever the transport reports
    for that attempt afterwards is discarded. Terminal items are left alone,
    which makes every operation here idempotent.
    """

    def __init__(self, queue: QueueManager) -> None:
        self._queue = queue

    def cancel(self, item_id: str) -> bool:
        """Cancel one item; return False when there was nothing to cancel."""

        cancelled = self._queue.cancel(item_id)
        if cancelled:
            logger.info("Cancelled upload item '%s'.", item_id)
        return cancelled

    def cancel_items(self, item_ids: Iterable[str]) -> int:
        """Cancel a group of items with a single admission pass at the end."""

        cancelled = self._queue.cancel_many(item_ids)
        if cancelled:
            logger.info("Cancelled %s upload item(s).", cancelled)
        return cancelled

    def cancel_all(self) -> int:
        """Cancel every non-terminal item."""

        cancelled = self._queue.cancel_all()
        if cancelled:
            logger.info("Cancelled all uploads (%s item(s)).", cancelled)
        return cancelled


__all__ = ["CancellationController"]
