from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

import pytest

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.outcomes import (
    TransferFailed,
    TransferOutcome,
    TransferProgress,
    TransferSucceeded,
)


class ScriptedTransport:
    """Transport double whose attempts only advance when a test pushes outcomes."""

    def __init__(self) -> None:
        self.started: list[tuple[str, int]] = []
        self.aborted: list[tuple[str, int]] = []
        self.closed = False
        self._channels: dict[tuple[str, int], asyncio.Queue[TransferOutcome]] = {}
        self._latest_attempt: dict[str, int] = {}

    @property
    def started_ids(self) -> list[str]:
        return [item_id for item_id, _ in self.started]

    def transfer(self, item: TransferItem) -> AsyncIterator[TransferOutcome]:
        key = (item.item_id, item.attempt_count)
        channel: asyncio.Queue[TransferOutcome] = asyncio.Queue()
        self._channels[key] = channel
        self._latest_attempt[item.item_id] = item.attempt_count
        self.started.append(key)
        return self._stream(key, channel)

    async def aclose(self) -> None:
        self.closed = True

    def progress(self, item_id: str, percent: int) -> None:
        self.emit(item_id, TransferProgress(percent=percent))

    def succeed(self, item_id: str, url: str | None = None) -> None:
        self.emit(item_id, TransferSucceeded(url=url or f"https://files.test/{item_id}"))

    def fail(self, item_id: str, error: str = "boom", retryable: bool = True) -> None:
        self.emit(item_id, TransferFailed(error=error, retryable=retryable))

    def emit(self, item_id: str, outcome: TransferOutcome, attempt: int | None = None) -> None:
        key = (item_id, attempt if attempt is not None else self._latest_attempt[item_id])
        self._channels[key].put_nowait(outcome)

    async def _stream(
        self,
        key: tuple[str, int],
        channel: asyncio.Queue[TransferOutcome],
    ) -> AsyncIterator[TransferOutcome]:
        try:
            while True:
                outcome = await channel.get()
                yield outcome
                if not isinstance(outcome, TransferProgress):
                    return
        except asyncio.CancelledError:
            self.aborted.append(key)
            raise


class PlannedTransport:
    """Transport double replaying a fixed list of terminal outcomes per item name."""

    def __init__(self, plans: dict[str, list[TransferOutcome]]) -> None:
        self._plans = {name: list(outcomes) for name, outcomes in plans.items()}
        self.attempts: list[str] = []
        self.closed = False

    def transfer(self, item: TransferItem) -> AsyncIterator[TransferOutcome]:
        name = item.display_name
        self.attempts.append(name)
        plan = self._plans.get(name) or [TransferSucceeded(url=f"https://files.test/{name}")]
        outcome = plan.pop(0) if len(plan) > 1 else plan[0]
        return self._stream(outcome)

    async def aclose(self) -> None:
        self.closed = True

    async def _stream(self, outcome: TransferOutcome) -> AsyncIterator[TransferOutcome]:
        await asyncio.sleep(0)
        yield TransferProgress(percent=50)
        await asyncio.sleep(0)
        yield outcome


async def _settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def scripted_transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def planned_transport_factory() -> Callable[[dict[str, list[TransferOutcome]]], PlannedTransport]:
    return PlannedTransport


@pytest.fixture
def settle() -> Callable[..., Awaitable[None]]:
    return _settle
