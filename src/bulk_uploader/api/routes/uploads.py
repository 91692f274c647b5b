"""Upload batch management routes."""

from __future__ import annotations

from pathlib import Path as FilePath
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path

from bulk_uploader.api.dependencies import get_settings, get_upload_orchestrator
from bulk_uploader.application.services import UploadOrchestrator
from bulk_uploader.config import Settings
from bulk_uploader.domain.errors import (
    TransferStateError,
    UploadNotFoundError,
    UploadValidationError,
)
from bulk_uploader.domain.monitoring_models import (
    BatchListResponse,
    OperationCountResponse,
    SubmitBatchRequest,
    TransferItemResponse,
    UploadSnapshotResponse,
)

router = APIRouter(tags=["uploads"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, UploadNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, UploadValidationError | TransferStateError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected upload error")


@router.post("/batches", response_model=UploadSnapshotResponse, status_code=202)
async def submit_batch(
    request: SubmitBatchRequest,
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> UploadSnapshotResponse:
    """Submit local files as one upload batch."""

    try:
        handle = orchestrator.submit([FilePath(path) for path in request.files])
        return UploadSnapshotResponse.from_snapshot(handle.snapshot())
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.get("/batches", response_model=BatchListResponse, status_code=200)
async def list_batches(
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
    settings: Settings = Depends(get_settings),
) -> BatchListResponse:
    """List tracked batches with their aggregate progress."""

    return BatchListResponse(
        uploader_id=settings.uploader_id,
        batches=[
            UploadSnapshotResponse.from_snapshot(orchestrator.get_snapshot(batch_id))
            for batch_id in orchestrator.list_batches()
        ],
    )


@router.get("/batches/{batch_id}", response_model=UploadSnapshotResponse, status_code=200)
async def get_batch(
    batch_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> UploadSnapshotResponse:
    """Get items, aggregate progress, and errors of one batch."""

    try:
        return UploadSnapshotResponse.from_snapshot(orchestrator.get_snapshot(batch_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.post(
    "/batches/{batch_id}/cancel",
    response_model=OperationCountResponse,
    status_code=200,
)
async def cancel_batch(
    batch_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> OperationCountResponse:
    """Cancel every non-terminal item of a batch."""

    try:
        return OperationCountResponse(affected=orchestrator.cancel_batch(batch_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.post(
    "/batches/{batch_id}/retry-failed",
    response_model=OperationCountResponse,
    status_code=200,
)
async def retry_failed_in_batch(
    batch_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> OperationCountResponse:
    """Restart every failed item of a batch."""

    try:
        return OperationCountResponse(affected=orchestrator.retry_failed(batch_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.delete("/batches/{batch_id}", response_model=OperationCountResponse, status_code=200)
async def clear_batch(
    batch_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> OperationCountResponse:
    """Cancel remaining work of a batch and stop tracking it."""

    try:
        return OperationCountResponse(affected=orchestrator.clear(batch_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.get("/items/{item_id}", response_model=TransferItemResponse, status_code=200)
async def get_item(
    item_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> TransferItemResponse:
    """Get one transfer item."""

    try:
        return TransferItemResponse.from_snapshot(orchestrator.get_item(item_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.post("/items/{item_id}/cancel", response_model=TransferItemResponse, status_code=200)
async def cancel_item(
    item_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> TransferItemResponse:
    """Cancel one item; terminal items are left unchanged."""

    try:
        orchestrator.cancel(item_id)
        return TransferItemResponse.from_snapshot(orchestrator.get_item(item_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.post("/items/{item_id}/retry", response_model=TransferItemResponse, status_code=200)
async def retry_item(
    item_id: str = Path(...),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> TransferItemResponse:
    """Restart one failed item."""

    try:
        orchestrator.retry(item_id)
        return TransferItemResponse.from_snapshot(orchestrator.get_item(item_id))
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.get("/uploads", response_model=UploadSnapshotResponse, status_code=200)
async def get_all_uploads(
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> UploadSnapshotResponse:
    """Get every tracked item with the overall aggregate."""

    return UploadSnapshotResponse.from_snapshot(orchestrator.get_snapshot())


@router.post("/uploads/cancel", response_model=OperationCountResponse, status_code=200)
async def cancel_all_uploads(
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> OperationCountResponse:
    """Cancel every non-terminal item across all batches."""

    return OperationCountResponse(affected=orchestrator.cancel_all())


@router.post("/uploads/retry-failed", response_model=OperationCountResponse, status_code=200)
async def retry_all_failed_uploads(
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> OperationCountResponse:
    """Restart every failed item across all batches."""

    return OperationCountResponse(affected=orchestrator.retry_failed())


__all__ = ["router"]
