"""Domain exceptions for upload orchestration."""


class UploadError(Exception):
    """Base class for upload orchestration errors."""


class UploadNotFoundError(UploadError):
    """Raised when an upload item or batch cannot be found."""


class UploadValidationError(UploadError):
    """Raised when a request to the orchestrator is invalid."""


class TransferStateError(UploadError):
    """Raised when a transfer item is asked to make an illegal state transition."""


__all__ = [
    "TransferStateError",
    "UploadError",
    "UploadNotFoundError",
    "UploadValidationError",
]
