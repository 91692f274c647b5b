"""No-op upload event publisher."""

from __future__ import annotations

from bulk_uploader.domain.events import UploadEvent
from bulk_uploader.domain.ports import UploadEventPublisher


class NoopUploadEventPublisher(UploadEventPublisher):
    """No-op implementation for environments without event streaming."""

    async def publish(self, event: UploadEvent) -> None:
        _ = event

    async def aclose(self) -> None:
        return None


__all__ = ["NoopUploadEventPublisher"]
