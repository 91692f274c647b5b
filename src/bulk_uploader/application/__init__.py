"""Application layer public API."""

from bulk_uploader.application.cancellation import CancellationController
from bulk_uploader.application.progress import aggregate_progress
from bulk_uploader.application.queue_manager import QueueManager
from bulk_uploader.application.retry_policy import (
    MaxAttemptsRetryPolicy,
    RetryAction,
    RetryDecision,
    RetryPolicy,
)

__all__ = [
    "CancellationController",
    "MaxAttemptsRetryPolicy",
    "QueueManager",
    "RetryAction",
    "RetryDecision",
    "RetryPolicy",
    "aggregate_progress",
]
