"""Push notifications emitted by the upload orchestrator."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from bulk_uploader.domain.monitoring_models import TransferItemSnapshot, UploadSnapshot


class UploadEventType(StrEnum):
    """Notification kinds delivered to subscribers."""

    PROGRESS = "progress"
    STATE_CHANGED = "state"
    BATCH_COMPLETED = "completed"


@dataclass(slots=True, frozen=True)
class UploadEvent:
    """One notification; `snapshot` is scoped to the affected batch."""

    event_type: UploadEventType
    batch_id: str
    snapshot: UploadSnapshot
    item: TransferItemSnapshot | None = None


UploadEventListener = Callable[[UploadEvent], None]


__all__ = ["UploadEvent", "UploadEventListener", "UploadEventType"]
