"""Simulated transport for local development without an upload endpoint."""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator
from urllib.parse import quote

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.outcomes import (
    TransferFailed,
    TransferOutcome,
    TransferProgress,
    TransferSucceeded,
)
from bulk_uploader.domain.ports import TransportAdapter

_DEFAULT_TICK_SECONDS = 0.2
_DEFAULT_SETTLE_SECONDS = 0.5
_SIMULATED_PROGRESS_CEILING = 95
_SIMULATED_MAX_STEP = 20


class SimulatedTransportAdapter(TransportAdapter):
    """Fake uploads: random progress up to 95%, then success or failure."""

    def __init__(
        self,
        failure_rate: float = 0.1,
        tick_seconds: float = _DEFAULT_TICK_SECONDS,
        settle_seconds: float = _DEFAULT_SETTLE_SECONDS,
        base_url: str = "https://example.com/uploads",
        seed: int | None = None,
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1.")
        self._failure_rate = failure_rate
        self._tick_seconds = max(0.0, tick_seconds)
        self._settle_seconds = max(0.0, settle_seconds)
        self._base_url = base_url.rstrip("/")
        self._random = random.Random(seed)

    def transfer(self, item: TransferItem) -> AsyncIterator[TransferOutcome]:
        return self._transfer(item.item_id, item.display_name)

    async def aclose(self) -> None:
        return None

    async def _transfer(self, item_id: str, name: str) -> AsyncIterator[TransferOutcome]:
        progress = 0.0
        while progress < _SIMULATED_PROGRESS_CEILING:
            await asyncio.sleep(self._tick_seconds)
            progress = min(
                progress + self._random.random() * _SIMULATED_MAX_STEP,
                _SIMULATED_PROGRESS_CEILING,
            )
            yield TransferProgress(percent=int(progress))

        await asyncio.sleep(self._settle_seconds)
        if self._random.random() < self._failure_rate:
            yield TransferFailed(error="Simulated upload failure")
            return
        yield TransferSucceeded(url=f"{self._base_url}/{item_id}_{quote(name, safe='')}")


__all__ = ["SimulatedTransportAdapter"]
