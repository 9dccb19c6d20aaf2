"""Authoritative room state with a status index and per-room serialization."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from threading import Lock, RLock
from typing import Iterable, Iterator, Optional, Sequence

from housekeeping.domain.activities import merge_catalog
from housekeeping.domain.errors import (
    ConcurrentConflictError,
    IncompleteActivitiesError,
    InvalidTransitionError,
    RoomNotFoundError,
)
from housekeeping.domain.models import (
    Activity,
    AssignmentEvent,
    ChangeEvent,
    HistoryRecord,
    Message,
    Room,
    RoomStatus,
)
from housekeeping.domain.transitions import (
    ACTIVE_STATUSES,
    RoomEvent,
    ensure_transition,
    validate_room_invariants,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.notification_service import ChangeNotifier
from housekeeping.utils.clock import Clock, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


def _room_sort_key(room: Room) -> tuple[int, str]:
    return room.floor, room.number


class RoomRegistry:
    """Holds every room in memory, indexed by status, and applies transitions.

    All writes go through `_commit`, which persists with a version check
    before the in-memory view is updated, so a failed write leaves both
    copies at the previous state.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        notifier: Optional[ChangeNotifier] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._notifier = notifier or ChangeNotifier()
        self._clock = clock or utc_now
        self._rooms: dict[str, Room] = {}
        self._status_index: dict[RoomStatus, dict[str, None]] = {
            status: {} for status in RoomStatus
        }
        self._state_lock = RLock()
        self._room_locks: dict[str, RLock] = {}
        self._room_locks_guard = Lock()

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    def load(self) -> None:
        """(Re)build the in-memory view from persisted state."""
        rooms = self._repository.list_rooms()
        with self._state_lock:
            self._rooms = {}
            self._status_index = {status: {} for status in RoomStatus}
            for room in rooms:
                self._index(room)
        logger.info("Room registry loaded | rooms=%s", len(rooms))

    # --- Queries -----------------------------------------------------------

    def get_room(self, room_id: str) -> Room:
        with self._state_lock:
            room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room '{room_id}' not found")
        return room

    def list_rooms(self) -> list[Room]:
        with self._state_lock:
            rooms = list(self._rooms.values())
        return sorted(rooms, key=_room_sort_key)

    def rooms_by_status(self, status: RoomStatus) -> list[Room]:
        with self._state_lock:
            rooms = [self._rooms[room_id] for room_id in self._status_index[status]]
        return sorted(rooms, key=_room_sort_key)

    def status_summary(self) -> dict[RoomStatus, int]:
        with self._state_lock:
            return {status: len(room_ids) for status, room_ids in self._status_index.items()}

    def checkout_queue(
        self,
        *,
        floor: Optional[int] = None,
        number_query: Optional[str] = None,
    ) -> list[Room]:
        rooms = self.rooms_by_status(RoomStatus.CHECKOUT)
        if floor is not None:
            rooms = [room for room in rooms if room.floor == floor]
        if number_query:
            needle = number_query.strip()
            rooms = [room for room in rooms if needle in room.number]
        return rooms

    def rooms_for_worker(
        self,
        worker_id: str,
        statuses: Sequence[RoomStatus] = tuple(ACTIVE_STATUSES),
    ) -> list[Room]:
        with self._state_lock:
            rooms = [
                self._rooms[room_id]
                for status in statuses
                for room_id in self._status_index[status]
                if self._rooms[room_id].assigned_worker_id == worker_id
            ]
        return sorted(rooms, key=_room_sort_key)

    # --- Serialization -----------------------------------------------------

    def _lock_for(self, room_id: str) -> RLock:
        with self._room_locks_guard:
            lock = self._room_locks.get(room_id)
            if lock is None:
                lock = RLock()
                self._room_locks[room_id] = lock
            return lock

    @contextmanager
    def guard(self, *room_ids: str) -> Iterator[None]:
        """Hold the locks of `room_ids` (sorted order); re-entrant per thread."""
        acquired: list[RLock] = []
        try:
            for room_id in sorted(set(room_ids)):
                lock = self._lock_for(room_id)
                if not lock.acquire(timeout=self._settings.room_lock_timeout_seconds):
                    logger.warning("Room lock timeout | room_id=%s", room_id)
                    raise ConcurrentConflictError(
                        f"Room '{room_id}' is busy with another operation; retry"
                    )
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    # --- Transitions -------------------------------------------------------

    def assign(self, room_id: str, worker_id: str, event: AssignmentEvent) -> Room:
        """Checkout -> Assigned after an accepted negotiation."""
        with self.guard(room_id):
            room = self.get_room(room_id)
            target = ensure_transition(room, RoomEvent.ASSIGNMENT_ACCEPTED)
            updated = replace(room, status=target, assigned_worker_id=worker_id)
            self._commit([(room, updated)], "room.assigned", assignment_events=[event])
            return updated

    def reassign(
        self,
        room_id: str,
        from_worker_id: str,
        to_worker_id: str,
        event: AssignmentEvent,
    ) -> Room:
        """Swap the worker of an active room; session start is preserved."""
        with self.guard(room_id):
            room = self.get_room(room_id)
            target = ensure_transition(room, RoomEvent.REASSIGNMENT_ACCEPTED)
            if room.assigned_worker_id != from_worker_id:
                raise ConcurrentConflictError(
                    f"Room {room.number} is no longer assigned to '{from_worker_id}'"
                )
            updated = replace(room, status=target, assigned_worker_id=to_worker_id)
            self._commit([(room, updated)], "room.reassigned", assignment_events=[event])
            return updated

    def start_cleaning(self, room_id: str, worker_id: str, started_at: datetime) -> Room:
        """Assigned -> InCleaning for the worker who holds the room."""
        with self.guard(room_id):
            room = self.get_room(room_id)
            target = ensure_transition(room, RoomEvent.CLEANING_STARTED)
            if room.assigned_worker_id != worker_id:
                raise InvalidTransitionError(
                    f"Room {room.number} is assigned to another worker"
                )
            updated = replace(
                room,
                status=target,
                session_started_at=room.session_started_at or started_at,
            )
            self._commit([(room, updated)], "room.cleaning_started")
            return updated

    def self_select(
        self,
        room_ids: Sequence[str],
        worker_id: str,
        started_at: datetime,
        events: Sequence[AssignmentEvent],
    ) -> list[Room]:
        """Checkout -> InCleaning for a whole batch; all rooms move or none do."""
        with self.guard(*room_ids):
            changes: list[tuple[Room, Room]] = []
            for room_id in room_ids:
                room = self.get_room(room_id)
                target = ensure_transition(room, RoomEvent.SELF_SELECTED)
                if room.assigned_worker_id not in (None, worker_id):
                    raise InvalidTransitionError(
                        f"Room {room.number} is held by another worker"
                    )
                changes.append(
                    (
                        room,
                        replace(
                            room,
                            status=target,
                            assigned_worker_id=room.assigned_worker_id or worker_id,
                            session_started_at=room.session_started_at or started_at,
                        ),
                    )
                )
            self._commit(changes, "room.cleaning_started", assignment_events=events)
            return [updated for _, updated in changes]

    def update_activities(self, room_id: str, activities: Sequence[Activity]) -> Room:
        with self.guard(room_id):
            room = self.get_room(room_id)
            if room.status is not RoomStatus.IN_CLEANING:
                raise InvalidTransitionError(
                    f"Activities of room {room.number} can only change while in cleaning"
                )
            updated = replace(room, activities=tuple(activities))
            self._commit([(room, updated)], "room.activity_toggled")
            return updated

    def apply_catalog_addition(
        self,
        addition: Iterable[tuple[str, Sequence[str]]],
    ) -> list[Room]:
        """Append catalog entries each room lacks; status is untouched.

        Rooms are read and merged while their locks are held, so progress
        committed by a concurrent toggle is part of what gets merged.
        """
        catalog = list(addition)
        with self._state_lock:
            room_ids = sorted(self._rooms)
        with self.guard(*room_ids):
            changes = []
            for room_id in room_ids:
                room = self.get_room(room_id)
                merged = merge_catalog(room.activities, catalog)
                if len(merged) != len(room.activities):
                    changes.append((room, replace(room, activities=merged)))
            if changes:
                self._commit(changes, "room.activities_merged")
            return [updated for _, updated in changes]

    def complete(self, room_id: str, record: HistoryRecord) -> Room:
        """InCleaning -> Available with the completion record appended."""
        with self.guard(room_id):
            room = self.get_room(room_id)
            target = ensure_transition(room, RoomEvent.FINISHED)
            if not room.all_activities_completed:
                raise IncompleteActivitiesError(
                    f"Room {room.number} still has incomplete activities"
                )
            updated = replace(
                room,
                status=target,
                assigned_worker_id=None,
                session_started_at=None,
            )
            self._commit(
                [(room, updated)],
                "room.finished",
                history_record=record,
                worker_id=room.assigned_worker_id,
            )
            return updated

    def release_to_queue(self, room_id: str, message: Message) -> Room:
        """InCleaning -> Checkout; activity flags are deliberately kept."""
        with self.guard(room_id):
            room = self.get_room(room_id)
            target = ensure_transition(room, RoomEvent.ABANDONED)
            updated = replace(
                room,
                status=target,
                assigned_worker_id=None,
                session_started_at=None,
            )
            self._commit(
                [(room, updated)],
                "room.abandoned",
                message=message,
                worker_id=room.assigned_worker_id,
            )
            return updated

    # --- Internals ---------------------------------------------------------

    def _index(self, room: Room) -> None:
        previous = self._rooms.get(room.room_id)
        if previous is not None:
            self._status_index[previous.status].pop(room.room_id, None)
        self._rooms[room.room_id] = room
        self._status_index[room.status][room.room_id] = None

    def _commit(
        self,
        changes: Sequence[tuple[Room, Room]],
        kind: str,
        *,
        assignment_events: Sequence[AssignmentEvent] = (),
        history_record: Optional[HistoryRecord] = None,
        message: Optional[Message] = None,
        worker_id: Optional[str] = None,
    ) -> None:
        versioned = []
        for current, updated in changes:
            candidate = replace(updated, version=current.version + 1)
            validate_room_invariants(candidate)
            versioned.append((current, candidate))

        try:
            self._repository.save_rooms(
                [(candidate, current.version) for current, candidate in versioned],
                assignment_events=assignment_events,
                history_record=history_record,
                message=message,
            )
        except ConcurrentConflictError:
            logger.warning(
                "Room write conflict | kind=%s | rooms=%s",
                kind,
                [current.room_id for current, _ in versioned],
            )
            raise

        occurred_at = self._clock()
        with self._state_lock:
            for _, candidate in versioned:
                self._index(candidate)

        for current, candidate in versioned:
            logger.info(
                "Room transition committed | kind=%s | room=%s | %s -> %s | worker=%s",
                kind,
                candidate.number,
                current.status.value,
                candidate.status.value,
                candidate.assigned_worker_id or worker_id,
            )
            self._notifier.publish(
                ChangeEvent(
                    kind=kind,
                    room_id=candidate.room_id,
                    status=candidate.status,
                    worker_id=candidate.assigned_worker_id or worker_id,
                    occurred_at=occurred_at,
                )
            )
