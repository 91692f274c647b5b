"""Snapshot and aggregate models for upload monitoring."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.transfer_types import TransferState


@dataclass(slots=True, frozen=True)
class TransferItemSnapshot:
    """Read-only copy of a transfer item at one point in time."""

    item_id: str
    batch_id: str
    name: str
    state: TransferState
    progress_percent: int
    attempt_count: int
    last_error: str | None = None
    result_url: str | None = None

    @classmethod
    def from_item(cls, item: TransferItem) -> TransferItemSnapshot:
        return cls(
            item_id=item.item_id,
            batch_id=item.batch_id,
            name=item.display_name,
            state=item.state,
            progress_percent=item.progress_percent,
            attempt_count=item.attempt_count,
            last_error=item.last_error if item.state is TransferState.FAILED else None,
            result_url=item.result_url if item.state is TransferState.SUCCEEDED else None,
        )


@dataclass(slots=True, frozen=True)
class BatchAggregate:
    """Batch-level statistics derived from a set of transfer items."""

    total: int = 0
    pending: int = 0
    in_flight: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    overall_progress_percent: int = 0
    is_complete: bool = False

    def count(self, state: TransferState) -> int:
        """Return the number of items in `state`."""

        return {
            TransferState.PENDING: self.pending,
            TransferState.IN_FLIGHT: self.in_flight,
            TransferState.SUCCEEDED: self.succeeded,
            TransferState.FAILED: self.failed,
            TransferState.CANCELLED: self.cancelled,
        }[state]


@dataclass(slots=True, frozen=True)
class BatchError:
    """Error surfaced for an item that ended in terminal FAILED."""

    item_id: str
    name: str
    message: str


@dataclass(slots=True, frozen=True)
class UploadSnapshot:
    """Items plus aggregate view, optionally scoped to one batch."""

    items: tuple[TransferItemSnapshot, ...]
    aggregate: BatchAggregate
    errors: tuple[BatchError, ...] = ()
    batch_id: str | None = None


class MonitoringModel(BaseModel):
    """Base model for management routes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class TransferItemResponse(MonitoringModel):
    """One transfer item as shown by management endpoints."""

    item_id: str = Field(alias="itemId")
    batch_id: str = Field(alias="batchId")
    name: str
    state: TransferState
    progress_percent: int = Field(alias="progressPercent")
    attempt_count: int = Field(alias="attemptCount")
    last_error: str | None = Field(default=None, alias="lastError")
    result_url: str | None = Field(default=None, alias="resultUrl")

    @classmethod
    def from_snapshot(cls, item: TransferItemSnapshot) -> TransferItemResponse:
        return cls(
            item_id=item.item_id,
            batch_id=item.batch_id,
            name=item.name,
            state=item.state,
            progress_percent=item.progress_percent,
            attempt_count=item.attempt_count,
            last_error=item.last_error,
            result_url=item.result_url,
        )


class BatchAggregateResponse(MonitoringModel):
    """Aggregate statistics payload."""

    total: int
    pending: int
    in_flight: int = Field(alias="inFlight")
    succeeded: int
    failed: int
    cancelled: int
    overall_progress_percent: int = Field(alias="overallProgressPercent")
    is_complete: bool = Field(alias="isComplete")


class BatchErrorResponse(MonitoringModel):
    """Error entry for a terminally failed item."""

    item_id: str = Field(alias="itemId")
    name: str
    message: str


class UploadSnapshotResponse(MonitoringModel):
    """Snapshot payload for one batch or for every tracked item."""

    batch_id: str | None = Field(default=None, alias="batchId")
    items: list[TransferItemResponse]
    aggregate: BatchAggregateResponse
    errors: list[BatchErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: UploadSnapshot) -> UploadSnapshotResponse:
        aggregate = snapshot.aggregate
        return cls(
            batch_id=snapshot.batch_id,
            items=[TransferItemResponse.from_snapshot(item) for item in snapshot.items],
            aggregate=BatchAggregateResponse(
                total=aggregate.total,
                pending=aggregate.pending,
                in_flight=aggregate.in_flight,
                succeeded=aggregate.succeeded,
                failed=aggregate.failed,
                cancelled=aggregate.cancelled,
                overall_progress_percent=aggregate.overall_progress_percent,
                is_complete=aggregate.is_complete,
            ),
            errors=[
                BatchErrorResponse(item_id=error.item_id, name=error.name, message=error.message)
                for error in snapshot.errors
            ],
        )


class BatchListResponse(MonitoringModel):
    """Collection wrapper for the batch list endpoint."""

    uploader_id: str = Field(alias="uploaderId")
    batches: list[UploadSnapshotResponse]


class SubmitBatchRequest(MonitoringModel):
    """Request body for submitting local files as one batch."""

    files: list[str] = Field(min_length=1)


class OperationCountResponse(MonitoringModel):
    """Number of items affected by a bulk command."""

    affected: int


__all__ = [
    "BatchAggregate",
    "BatchAggregateResponse",
    "BatchError",
    "BatchErrorResponse",
    "BatchListResponse",
    "OperationCountResponse",
    "SubmitBatchRequest",
    "TransferItemResponse",
    "TransferItemSnapshot",
    "UploadSnapshot",
    "UploadSnapshotResponse",
]
