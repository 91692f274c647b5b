from __future__ import annotations

import pytest

from bulk_uploader.application.progress import aggregate_progress
from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.errors import TransferStateError
from bulk_uploader.domain.monitoring_models import BatchAggregate, TransferItemSnapshot
from bulk_uploader.domain.transfer_types import TransferState


def _item(state: TransferState, progress: int = 0) -> TransferItemSnapshot:
    return TransferItemSnapshot(
        item_id=f"item-{state.value}-{progress}",
        batch_id="batch-1",
        name="photo.jpg",
        state=state,
        progress_percent=progress,
        attempt_count=1,
    )


def test_empty_batch_has_zero_progress_and_is_not_complete() -> None:
    assert aggregate_progress([]) == BatchAggregate()
    assert aggregate_progress([]).is_complete is False


def test_counts_states_and_averages_progress() -> None:
    aggregate = aggregate_progress(
        [
            _item(TransferState.SUCCEEDED, 100),
            _item(TransferState.IN_FLIGHT, 40),
            _item(TransferState.PENDING),
            _item(TransferState.FAILED, 10),
            _item(TransferState.CANCELLED, 0),
        ]
    )

    assert aggregate.total == 5
    assert aggregate.succeeded == 1
    assert aggregate.in_flight == 1
    assert aggregate.pending == 1
    assert aggregate.failed == 1
    assert aggregate.cancelled == 1
    assert aggregate.count(TransferState.FAILED) == 1
    assert aggregate.overall_progress_percent == 30
    assert aggregate.is_complete is False


def test_mean_is_rounded_half_up() -> None:
    aggregate = aggregate_progress(
        [_item(TransferState.IN_FLIGHT, 1), _item(TransferState.IN_FLIGHT, 2)]
    )

    assert aggregate.overall_progress_percent == 2


def test_batch_is_complete_when_every_item_is_terminal() -> None:
    aggregate = aggregate_progress(
        [
            _item(TransferState.SUCCEEDED, 100),
            _item(TransferState.FAILED, 30),
            _item(TransferState.CANCELLED, 0),
        ]
    )

    assert aggregate.is_complete is True
    assert aggregate.overall_progress_percent == 43


def test_item_rejects_invalid_transitions() -> None:
    item = TransferItem(item_id="a", batch_id="batch-1", payload="a.bin", sequence=0)
    item.mark_in_flight()
    item.mark_succeeded("https://files.test/a")

    with pytest.raises(TransferStateError):
        item.mark_in_flight()
    with pytest.raises(TransferStateError):
        item.mark_cancelled()


def test_item_progress_ignored_outside_flight() -> None:
    item = TransferItem(item_id="a", batch_id="batch-1", payload="a.bin", sequence=0)

    assert item.record_progress(50) is False
    assert item.progress_percent == 0


def test_item_is_terminal_only_in_final_states() -> None:
    item = TransferItem(item_id="a", batch_id="batch-1", payload="a.bin", sequence=0)
    assert item.is_terminal is False

    item.mark_in_flight()
    assert item.is_terminal is False

    item.mark_failed("boom", retryable=True)
    assert item.is_terminal is True

    item.reset_for_retry()
    assert item.is_terminal is False
