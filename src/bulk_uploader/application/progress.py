"""Batch progress aggregation."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Protocol

from bulk_uploader.domain.monitoring_models import BatchAggregate
from bulk_uploader.domain.transfer_types import TERMINAL_STATES, TransferState


class _ProgressView(Protocol):
    @property
    def state(self) -> TransferState: ...

    @property
    def progress_percent(self) -> int: ...


def aggregate_progress(items: Iterable[_ProgressView]) -> BatchAggregate:
    """Compute batch statistics from scratch.

    Every item weighs the same, pending items count as 0%. The mean is
    rounded half-up. Nothing is cached between calls.
    """

    counts = {state: 0 for state in TransferState}
    total = 0
    progress_sum = 0
    for item in items:
        total += 1
        counts[item.state] += 1
        progress_sum += item.progress_percent

    if total == 0:
        return BatchAggregate()

    terminal = sum(counts[state] for state in TERMINAL_STATES)
    return BatchAggregate(
        total=total,
        pending=counts[TransferState.PENDING],
        in_flight=counts[TransferState.IN_FLIGHT],
        succeeded=counts[TransferState.SUCCEEDED],
        failed=counts[TransferState.FAILED],
        cancelled=counts[TransferState.CANCELLED],
        overall_progress_percent=math.floor(progress_sum / total + 0.5),
        is_complete=terminal == total,
    )


__all__ = ["aggregate_progress"]
