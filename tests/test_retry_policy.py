from __future__ import annotations

import pytest

from bulk_uploader.application.retry_policy import (
    MaxAttemptsRetryPolicy,
    RetryAction,
)
from bulk_uploader.domain.outcomes import TransferFailed


def test_retries_retryable_failures_below_max_attempts() -> None:
    policy = MaxAttemptsRetryPolicy(max_attempts=3)

    first = policy.decide(1, TransferFailed(error="Network error"))
    second = policy.decide(2, TransferFailed(error="Network error"))
    third = policy.decide(3, TransferFailed(error="Network error"))

    assert first.action is RetryAction.RETRY
    assert first.delay_seconds == 0.0
    assert second.should_retry is True
    assert third.action is RetryAction.GIVE_UP


def test_gives_up_on_non_retryable_failure() -> None:
    policy = MaxAttemptsRetryPolicy(max_attempts=5)

    decision = policy.decide(1, TransferFailed(error="Invalid file", retryable=False))

    assert decision.should_retry is False


def test_single_attempt_budget_never_retries() -> None:
    policy = MaxAttemptsRetryPolicy(max_attempts=1)

    assert policy.decide(1, TransferFailed(error="boom")).should_retry is False


def test_backoff_grows_per_attempt_and_is_capped() -> None:
    policy = MaxAttemptsRetryPolicy(
        max_attempts=10,
        retry_delay_seconds=1.0,
        backoff_multiplier=2.0,
        max_delay_seconds=5.0,
    )
    failure = TransferFailed(error="HTTP error: 503")

    delays = [policy.decide(attempt, failure).delay_seconds for attempt in range(1, 6)]

    assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"retry_delay_seconds": -1.0},
        {"backoff_multiplier": 0.5},
        {"max_delay_seconds": -0.1},
    ],
)
def test_rejects_invalid_configuration(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        MaxAttemptsRetryPolicy(**kwargs)
