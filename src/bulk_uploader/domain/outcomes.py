"""Tagged outcomes reported by a transport adapter for one transfer attempt."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TransferProgress:
    """Byte-level progress tick, expressed in percent."""

    percent: int


@dataclass(slots=True, frozen=True)
class TransferSucceeded:
    """Terminal success; `url` is where the remote endpoint stored the file."""

    url: str | None = None


@dataclass(slots=True, frozen=True)
class TransferFailed:
    """Terminal failure.

    `retryable=False` marks an explicit rejection by the remote side (for
    example a validation failure) that must not be retried.
    """

    error: str
    retryable: bool = True


TransferOutcome = TransferProgress | TransferSucceeded | TransferFailed

TERMINAL_OUTCOME_TYPES = (TransferSucceeded, TransferFailed)


__all__ = [
    "TERMINAL_OUTCOME_TYPES",
    "TransferFailed",
    "TransferOutcome",
    "TransferProgress",
    "TransferSucceeded",
]
