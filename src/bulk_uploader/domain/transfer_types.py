"""Transfer state helpers."""

from enum import StrEnum

from bulk_uploader.domain.errors import TransferStateError


class TransferState(StrEnum):
    """Lifecycle states of one transfer item."""

    PENDING = "PENDING"
    IN_FLIGHT = "IN_FLIGHT"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


# FAILED only leaves this set when the retry policy re-enqueues the item, which
# happens inside the same failure handler, so it is never observed as transient.
TERMINAL_STATES = frozenset(
    {TransferState.SUCCEEDED, TransferState.FAILED, TransferState.CANCELLED}
)

_ALLOWED_TRANSITIONS: dict[TransferState, frozenset[TransferState]] = {
    TransferState.PENDING: frozenset({TransferState.IN_FLIGHT, TransferState.CANCELLED}),
    TransferState.IN_FLIGHT: frozenset(
        {TransferState.SUCCEEDED, TransferState.FAILED, TransferState.CANCELLED}
    ),
    TransferState.FAILED: frozenset({TransferState.PENDING}),
    TransferState.SUCCEEDED: frozenset(),
    TransferState.CANCELLED: frozenset(),
}


def ensure_transition(current: TransferState, target: TransferState) -> None:
    """Raise when `current -> target` is not part of the item state machine."""

    if target not in _ALLOWED_TRANSITIONS[current]:
        raise TransferStateError(f"Cannot move transfer item from '{current}' to '{target}'.")


__all__ = ["TERMINAL_STATES", "TransferState", "ensure_transition"]
