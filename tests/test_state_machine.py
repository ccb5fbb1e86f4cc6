"""Tests for the QueueItem status state machine."""
import pytest

from app.core.exceptions import InvalidTransitionError
from app.models import QueueItem, QueueStatus
from app.worker.state import TERMINAL_STATES, can_transition, transition


def make_item(status=QueueStatus.PENDING):
    return QueueItem(id="item-1", device_id="dev-1", url="https://video/1", status=status)


class TestTransitions:
    """Allowed edges: PENDING -> PROCESSING -> COMPLETED | FAILED."""

    @pytest.mark.parametrize(
        "current,new",
        [
            (QueueStatus.PENDING, QueueStatus.PROCESSING),
            (QueueStatus.PROCESSING, QueueStatus.COMPLETED),
            (QueueStatus.PROCESSING, QueueStatus.FAILED),
        ],
    )
    def test_allowed(self, current, new):
        item = transition(make_item(current), new)
        assert item.status == new

    @pytest.mark.parametrize(
        "current,new",
        [
            (QueueStatus.PENDING, QueueStatus.COMPLETED),
            (QueueStatus.PENDING, QueueStatus.FAILED),
            (QueueStatus.COMPLETED, QueueStatus.PROCESSING),
            (QueueStatus.FAILED, QueueStatus.PENDING),
            (QueueStatus.PROCESSING, QueueStatus.PENDING),
        ],
    )
    def test_rejected(self, current, new):
        item = make_item(current)
        with pytest.raises(InvalidTransitionError):
            transition(item, new)
        assert item.status == current

    def test_terminal_states_have_no_exits(self):
        for state in TERMINAL_STATES:
            assert not any(can_transition(state, new) for new in QueueStatus)

    def test_accepts_raw_values(self):
        assert can_transition("PENDING", "PROCESSING")
