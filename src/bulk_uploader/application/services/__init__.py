"""Application services public API."""

from bulk_uploader.application.services.upload_orchestrator import (
    BatchHandle,
    UploadOrchestrator,
    generate_batch_id,
    generate_upload_id,
)

__all__ = ["BatchHandle", "UploadOrchestrator", "generate_batch_id", "generate_upload_id"]
