"""Retry decisions for failed transfer attempts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from bulk_uploader.domain.outcomes import TransferFailed

_DEFAULT_MAX_ATTEMPTS = 3
_DEFAULT_BACKOFF_MULTIPLIER = 2.0
_DEFAULT_MAX_DELAY_SECONDS = 30.0


class RetryAction(StrEnum):
    """Disposition of a failed transfer item."""

    RETRY = "retry"
    GIVE_UP = "give_up"


@dataclass(slots=True, frozen=True)
class RetryDecision:
    """Policy answer; `delay_seconds` only matters for `RETRY`."""

    action: RetryAction
    delay_seconds: float = 0.0

    @property
    def should_retry(self) -> bool:
        return self.action is RetryAction.RETRY


GIVE_UP = RetryDecision(action=RetryAction.GIVE_UP)


class RetryPolicy(Protocol):
    """Pure decision function consulted inside the failure handler."""

    def decide(self, attempt_count: int, failure: TransferFailed) -> RetryDecision:
        """Return whether a failed item re-enters the queue."""


@dataclass(slots=True, frozen=True)
class MaxAttemptsRetryPolicy:
    """Retry retryable failures while `attempt_count < max_attempts`.

    With `retry_delay_seconds == 0` retries are immediate (back of the pending
    queue). A positive delay grows by `backoff_multiplier` per attempt and is
    capped at `max_delay_seconds`.
    """

    max_attempts: int = _DEFAULT_MAX_ATTEMPTS
    retry_delay_seconds: float = 0.0
    backoff_multiplier: float = _DEFAULT_BACKOFF_MULTIPLIER
    max_delay_seconds: float = _DEFAULT_MAX_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1.")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0.")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1.")
        if self.max_delay_seconds < 0:
            raise ValueError("max_delay_seconds must be >= 0.")

    def decide(self, attempt_count: int, failure: TransferFailed) -> RetryDecision:
        if not failure.retryable or attempt_count >= self.max_attempts:
            return GIVE_UP
        return RetryDecision(
            action=RetryAction.RETRY,
            delay_seconds=self._delay_for(attempt_count),
        )

    def _delay_for(self, attempt_count: int) -> float:
        if self.retry_delay_seconds <= 0:
            return 0.0
        exponent = max(attempt_count - 1, 0)
        delay = self.retry_delay_seconds * (self.backoff_multiplier**exponent)
        return min(delay, self.max_delay_seconds)


__all__ = [
    "GIVE_UP",
    "MaxAttemptsRetryPolicy",
    "RetryAction",
    "RetryDecision",
    "RetryPolicy",
]
