"""QueueItem status state machine.

PENDING is the only initial state and is written by the ingestion endpoint.
The worker moves an item PENDING -> PROCESSING -> COMPLETED | FAILED.
"""
from app.core.exceptions import InvalidTransitionError
from app.models import QueueItem, QueueStatus

ALLOWED_TRANSITIONS = {
    QueueStatus.PENDING: frozenset({QueueStatus.PROCESSING}),
    QueueStatus.PROCESSING: frozenset({QueueStatus.COMPLETED, QueueStatus.FAILED}),
    QueueStatus.COMPLETED: frozenset(),
    QueueStatus.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({QueueStatus.COMPLETED, QueueStatus.FAILED})


def can_transition(current: QueueStatus, new: QueueStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[QueueStatus(current)]


def transition(item: QueueItem, new_state: QueueStatus) -> QueueItem:
    """Move `item` to `new_state`, raising InvalidTransitionError on a disallowed edge."""
    current = QueueStatus(item.status)
    new_state = QueueStatus(new_state)
    if not can_transition(current, new_state):
        raise InvalidTransitionError(
            f"QueueItem {item.id}: {current.value} -> {new_state.value} is not allowed"
        )
    item.status = new_state
    return item
