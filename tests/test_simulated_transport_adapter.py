from __future__ import annotations

import asyncio

import pytest

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.outcomes import (
    TransferFailed,
    TransferOutcome,
    TransferProgress,
    TransferSucceeded,
)
from bulk_uploader.infrastructure.transfers import SimulatedTransportAdapter


def _run(adapter: SimulatedTransportAdapter, name: str) -> list[TransferOutcome]:
    item = TransferItem(item_id="upload_1_000000001", batch_id="batch-1", payload=name, sequence=0)

    async def scenario() -> list[TransferOutcome]:
        return [outcome async for outcome in adapter.transfer(item)]

    return asyncio.run(scenario())


def test_simulated_upload_reports_progress_then_success() -> None:
    adapter = SimulatedTransportAdapter(
        failure_rate=0.0,
        tick_seconds=0,
        settle_seconds=0,
        seed=7,
    )

    outcomes = _run(adapter, "holiday photo.jpg")

    progress = [outcome.percent for outcome in outcomes if isinstance(outcome, TransferProgress)]
    assert progress == sorted(progress)
    assert progress[-1] == 95
    assert outcomes[-1] == TransferSucceeded(
        url="https://example.com/uploads/upload_1_000000001_holiday%20photo.jpg"
    )


def test_simulated_upload_always_fails_at_full_failure_rate() -> None:
    adapter = SimulatedTransportAdapter(failure_rate=1.0, tick_seconds=0, settle_seconds=0)

    outcomes = _run(adapter, "a.txt")

    assert outcomes[-1] == TransferFailed(error="Simulated upload failure")


def test_rejects_out_of_range_failure_rate() -> None:
    with pytest.raises(ValueError):
        SimulatedTransportAdapter(failure_rate=1.5)
