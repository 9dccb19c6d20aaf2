from __future__ import annotations

from datetime import datetime, timezone

import pytest

from housekeeping.domain.errors import InvalidTransitionError
from housekeeping.domain.models import Room, RoomStatus
from housekeeping.domain.transitions import (
    ALLOWED_EDGES,
    RoomEvent,
    ensure_transition,
    next_status,
    validate_room_invariants,
)


def _room(status: RoomStatus, **overrides) -> Room:
    values = {
        "room_id": "r-101",
        "number": "101",
        "room_type": "Deluxe King",
        "floor": 1,
        "status": status,
    }
    values.update(overrides)
    return Room(**values)


def test_transition_table_contains_exactly_the_workflow_edges():
    assert ALLOWED_EDGES == {
        (RoomStatus.CHECKOUT, RoomStatus.ASSIGNED),
        (RoomStatus.CHECKOUT, RoomStatus.IN_CLEANING),
        (RoomStatus.ASSIGNED, RoomStatus.IN_CLEANING),
        (RoomStatus.ASSIGNED, RoomStatus.ASSIGNED),
        (RoomStatus.IN_CLEANING, RoomStatus.IN_CLEANING),
        (RoomStatus.IN_CLEANING, RoomStatus.AVAILABLE),
        (RoomStatus.IN_CLEANING, RoomStatus.CHECKOUT),
    }


def test_next_status_follows_events():
    assert next_status(RoomStatus.CHECKOUT, RoomEvent.ASSIGNMENT_ACCEPTED) is RoomStatus.ASSIGNED
    assert next_status(RoomStatus.CHECKOUT, RoomEvent.SELF_SELECTED) is RoomStatus.IN_CLEANING
    assert next_status(RoomStatus.IN_CLEANING, RoomEvent.ABANDONED) is RoomStatus.CHECKOUT
    assert next_status(RoomStatus.IN_CLEANING, RoomEvent.FINISHED) is RoomStatus.AVAILABLE


@pytest.mark.parametrize(
    ("status", "event"),
    [
        (RoomStatus.AVAILABLE, RoomEvent.ASSIGNMENT_ACCEPTED),
        (RoomStatus.ASSIGNED, RoomEvent.FINISHED),
        (RoomStatus.CHECKOUT, RoomEvent.CLEANING_STARTED),
        (RoomStatus.CHECKOUT, RoomEvent.REASSIGNMENT_ACCEPTED),
        (RoomStatus.ASSIGNED, RoomEvent.ABANDONED),
    ],
)
def test_edges_outside_the_table_are_rejected(status, event):
    with pytest.raises(InvalidTransitionError):
        next_status(status, event)


def test_maintenance_rooms_never_enter_the_workflow():
    room = _room(RoomStatus.MAINTENANCE)
    for event in RoomEvent:
        with pytest.raises(InvalidTransitionError):
            ensure_transition(room, event)


def test_invariants_tie_session_start_to_in_cleaning():
    started = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    validate_room_invariants(
        _room(RoomStatus.IN_CLEANING, assigned_worker_id="w-1", session_started_at=started)
    )
    validate_room_invariants(_room(RoomStatus.ASSIGNED, assigned_worker_id="w-1"))

    with pytest.raises(ValueError):
        validate_room_invariants(
            _room(RoomStatus.ASSIGNED, assigned_worker_id="w-1", session_started_at=started)
        )
    with pytest.raises(ValueError):
        validate_room_invariants(_room(RoomStatus.IN_CLEANING, assigned_worker_id="w-1"))
    with pytest.raises(ValueError):
        validate_room_invariants(_room(RoomStatus.ASSIGNED))
