"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bulk_uploader.domain.transfer_types import (
    TERMINAL_STATES,
    TransferState,
    ensure_transition,
)

_MAX_IN_FLIGHT_PERCENT = 99


@dataclass(slots=True)
class TransferItem:
    """Mutable representation of one file's upload lifecycle.

    Only the queue manager mutates items; everything else observes them
    through `TransferItemSnapshot`.
    """

    item_id: str
    batch_id: str
    payload: Any
    sequence: int
    state: TransferState = TransferState.PENDING
    progress_percent: int = 0
    attempt_count: int = 0
    last_error: str | None = None
    retryable: bool = True
    result_url: str | None = None
    not_before: float | None = None

    @property
    def is_terminal(self) -> bool:
        """Return whether no further transition is expected."""

        return self.state in TERMINAL_STATES

    @property
    def display_name(self) -> str:
        """Best-effort human readable name of the payload."""

        name = getattr(self.payload, "name", None)
        if isinstance(name, str) and name:
            return name
        return str(self.payload)

    def mark_in_flight(self) -> None:
        ensure_transition(self.state, TransferState.IN_FLIGHT)
        self.state = TransferState.IN_FLIGHT
        self.attempt_count += 1
        self.progress_percent = 0
        self.not_before = None

    def record_progress(self, percent: int) -> bool:
        """Apply a progress tick; return whether the visible value changed.

        Progress is clamped below 100 while in flight and never decreases.
        """

        if self.state is not TransferState.IN_FLIGHT:
            return False
        clamped = max(0, min(_MAX_IN_FLIGHT_PERCENT, int(percent)))
        if clamped <= self.progress_percent:
            return False
        self.progress_percent = clamped
        return True

    def mark_succeeded(self, url: str | None) -> None:
        ensure_transition(self.state, TransferState.SUCCEEDED)
        self.state = TransferState.SUCCEEDED
        self.progress_percent = 100
        self.result_url = url
        self.last_error = None

    def mark_failed(self, error: str, retryable: bool) -> None:
        ensure_transition(self.state, TransferState.FAILED)
        self.state = TransferState.FAILED
        self.last_error = error
        self.retryable = retryable

    def mark_cancelled(self) -> None:
        ensure_transition(self.state, TransferState.CANCELLED)
        self.state = TransferState.CANCELLED
        self.not_before = None

    def reset_for_retry(self, *, reset_attempts: bool = False) -> None:
        """Move a failed item back to pending with a clean progress/error slate."""

        ensure_transition(self.state, TransferState.PENDING)
        self.state = TransferState.PENDING
        self.progress_percent = 0
        self.last_error = None
        self.retryable = True
        self.result_url = None
        if reset_attempts:
            self.attempt_count = 0


__all__ = ["TransferItem"]
