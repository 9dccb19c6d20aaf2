"""Room status state machine."""

from __future__ import annotations

import enum

from housekeeping.domain.errors import InvalidTransitionError
from housekeeping.domain.models import Room, RoomStatus


class RoomEvent(str, enum.Enum):
    ASSIGNMENT_ACCEPTED = "assignment_accepted"
    SELF_SELECTED = "self_selected"
    CLEANING_STARTED = "cleaning_started"
    REASSIGNMENT_ACCEPTED = "reassignment_accepted"
    FINISHED = "finished"
    ABANDONED = "abandoned"


TRANSITIONS: dict[tuple[RoomStatus, RoomEvent], RoomStatus] = {
    (RoomStatus.CHECKOUT, RoomEvent.ASSIGNMENT_ACCEPTED): RoomStatus.ASSIGNED,
    (RoomStatus.CHECKOUT, RoomEvent.SELF_SELECTED): RoomStatus.IN_CLEANING,
    (RoomStatus.ASSIGNED, RoomEvent.CLEANING_STARTED): RoomStatus.IN_CLEANING,
    (RoomStatus.ASSIGNED, RoomEvent.REASSIGNMENT_ACCEPTED): RoomStatus.ASSIGNED,
    (RoomStatus.IN_CLEANING, RoomEvent.REASSIGNMENT_ACCEPTED): RoomStatus.IN_CLEANING,
    (RoomStatus.IN_CLEANING, RoomEvent.FINISHED): RoomStatus.AVAILABLE,
    (RoomStatus.IN_CLEANING, RoomEvent.ABANDONED): RoomStatus.CHECKOUT,
}

ACTIVE_STATUSES = frozenset({RoomStatus.ASSIGNED, RoomStatus.IN_CLEANING})

ALLOWED_EDGES = frozenset((source, target) for (source, _), target in TRANSITIONS.items())


def next_status(status: RoomStatus, event: RoomEvent) -> RoomStatus:
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"Event '{event.value}' is not allowed while room is '{status.value}'"
        ) from None


def ensure_transition(room: Room, event: RoomEvent) -> RoomStatus:
    """Return the target status for `event`, raising if the edge is not in the table."""
    if room.status is RoomStatus.MAINTENANCE:
        raise InvalidTransitionError(
            f"Room {room.number} is under maintenance and cannot enter the cleaning workflow"
        )
    return next_status(room.status, event)


def validate_room_invariants(room: Room) -> None:
    if (room.session_started_at is not None) != (room.status is RoomStatus.IN_CLEANING):
        raise ValueError(
            f"Room {room.number}: session_started_at must be set exactly when in cleaning"
        )
    if room.status in ACTIVE_STATUSES and not room.assigned_worker_id:
        raise ValueError(f"Room {room.number}: active rooms require an assigned worker")
