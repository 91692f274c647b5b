"""Domain public API."""

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.errors import (
    TransferStateError,
    UploadError,
    UploadNotFoundError,
    UploadValidationError,
)
from bulk_uploader.domain.events import UploadEvent, UploadEventListener, UploadEventType
from bulk_uploader.domain.monitoring_models import (
    BatchAggregate,
    BatchError,
    TransferItemSnapshot,
    UploadSnapshot,
)
from bulk_uploader.domain.outcomes import (
    TransferFailed,
    TransferOutcome,
    TransferProgress,
    TransferSucceeded,
)
from bulk_uploader.domain.ports import TransportAdapter, UploadEventPublisher
from bulk_uploader.domain.transfer_types import TERMINAL_STATES, TransferState

__all__ = [
    "BatchAggregate",
    "BatchError",
    "TERMINAL_STATES",
    "TransferFailed",
    "TransferItem",
    "TransferItemSnapshot",
    "TransferOutcome",
    "TransferProgress",
    "TransferState",
    "TransferStateError",
    "TransferSucceeded",
    "TransportAdapter",
    "UploadError",
    "UploadEvent",
    "UploadEventListener",
    "UploadEventPublisher",
    "UploadEventType",
    "UploadNotFoundError",
    "UploadSnapshot",
    "UploadValidationError",
]
