"""Ports for transfer execution and event publishing."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.events import UploadEvent
from bulk_uploader.domain.outcomes import TransferOutcome


class TransportAdapter(Protocol):
    """Performs the network transfer of one item.

    `transfer` is called exactly once per attempt and returns the attempt's
    outcome stream: any number of `TransferProgress` ticks followed by one
    `TransferSucceeded` or `TransferFailed`. Aborting an attempt cancels the
    task consuming the stream; the stream finishing is the acknowledgement.
    """

    def transfer(self, item: TransferItem) -> AsyncIterator[TransferOutcome]:
        """Start one transfer attempt for `item`."""

    async def aclose(self) -> None:
        """Release transport resources."""


class UploadEventPublisher(Protocol):
    """Outbound publisher for upload progress/state notifications."""

    async def publish(self, event: UploadEvent) -> None:
        """Publish one upload event."""

    async def aclose(self) -> None:
        """Release publisher resources."""


__all__ = ["TransportAdapter", "UploadEventPublisher"]
