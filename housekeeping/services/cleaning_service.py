"""Cleaning sessions: batch selection, ordered activity completion, finish and abandon."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Optional, Sequence

from housekeeping.domain.activities import count_completed, find_activity, toggle
from housekeeping.domain.errors import (
    IncompleteActivitiesError,
    InvalidTransitionError,
)
from housekeeping.domain.models import (
    Activity,
    AssignmentInitiator,
    HistoryRecord,
    Message,
    Room,
    RoomStatus,
)
from housekeeping.domain.transitions import ACTIVE_STATUSES
from housekeeping.services.history_service import HistoryLedger
from housekeeping.services.message_service import MessageBus
from housekeeping.services.room_registry import RoomRegistry
from housekeeping.services.worker_directory import WorkerDirectory
from housekeeping.utils.clock import Clock, elapsed_seconds, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ToggleOutcome:
    room: Room
    activity: Activity
    applied: bool


@dataclass(frozen=True)
class BatchStatus:
    worker_id: str
    selected_room_ids: list[str]
    active_rooms: list[Room]
    clock_started_at: Optional[datetime]
    elapsed_seconds: int


@dataclass(frozen=True)
class WorkerProgress:
    worker_id: str
    completed: int
    total: int
    percentage: int

    def to_dict(self) -> dict[str, int | str]:
        return {
            "worker_id": self.worker_id,
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
        }


class CleaningSessionService:
    """Gates progress inside a cleaning session and owns each worker's batch.

    A worker's pending selection is in-memory only. The batch clock is a
    derived value: it starts when the worker's set of in-cleaning rooms
    becomes non-empty and is cleared when the set empties again.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        workers: WorkerDirectory,
        ledger: HistoryLedger,
        messages: MessageBus,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry
        self._workers = workers
        self._ledger = ledger
        self._messages = messages
        self._clock = clock or utc_now
        self._lock = RLock()
        self._selections: dict[str, list[str]] = {}
        self._batch_clocks: dict[str, datetime] = {}

    # --- Batch selection ---------------------------------------------------

    def select_rooms(self, worker_id: str, room_ids: Sequence[str]) -> list[str]:
        """Queue checkout rooms for the worker's next `proceed`."""
        self._workers.require_active(worker_id)
        for room_id in room_ids:
            room = self._registry.get_room(room_id)
            if room.status is not RoomStatus.CHECKOUT:
                raise InvalidTransitionError(
                    f"Room {room.number} is '{room.status.value}' and cannot be selected"
                )
        with self._lock:
            selection = self._selections.setdefault(worker_id, [])
            for room_id in room_ids:
                if room_id not in selection:
                    selection.append(room_id)
            return list(selection)

    def cancel_selection(self, worker_id: str, room_id: str) -> bool:
        """Drop a not-yet-started room from the selection; safe to repeat."""
        with self._lock:
            selection = self._selections.get(worker_id, [])
            if room_id not in selection:
                return False
            selection.remove(room_id)
            if not selection:
                self._selections.pop(worker_id, None)
        logger.info("Selection cancelled | worker=%s | room_id=%s", worker_id, room_id)
        return True

    def selected_rooms(self, worker_id: str) -> list[str]:
        with self._lock:
            return list(self._selections.get(worker_id, []))

    def proceed(self, worker_id: str) -> list[Room]:
        """Move every selected room into cleaning at once, or none of them."""
        self._workers.require_active(worker_id)
        with self._lock:
            room_ids = list(self._selections.get(worker_id, []))
        if not room_ids:
            raise InvalidTransitionError(f"Worker '{worker_id}' has no rooms selected")

        now = self._clock()
        with self._registry.guard(*room_ids):
            rooms = [self._registry.get_room(room_id) for room_id in room_ids]
            events = [
                self._ledger.build_assignment_event(
                    worker_id,
                    room,
                    AssignmentInitiator.WORKER,
                    now,
                )
                for room in rooms
            ]
            started = self._registry.self_select(room_ids, worker_id, now, events)

        with self._lock:
            self._selections.pop(worker_id, None)
            for other_worker, selection in list(self._selections.items()):
                remaining = [room_id for room_id in selection if room_id not in room_ids]
                if remaining:
                    self._selections[other_worker] = remaining
                else:
                    self._selections.pop(other_worker, None)
        self.sync_batch_clock(worker_id, started_at=now)
        logger.info(
            "Batch started | worker=%s | rooms=%s",
            worker_id,
            [room.number for room in started],
        )
        return started

    def start_cleaning(self, room_id: str, worker_id: str) -> Room:
        """Begin a manager-assigned room."""
        self._workers.require_active(worker_id)
        now = self._clock()
        room = self._registry.start_cleaning(room_id, worker_id, now)
        self.sync_batch_clock(worker_id, started_at=now)
        return room

    # --- Session work ------------------------------------------------------

    def toggle_activity(self, room_id: str, activity_id: str) -> ToggleOutcome:
        with self._registry.guard(room_id):
            room = self._registry.get_room(room_id)
            if room.status is not RoomStatus.IN_CLEANING:
                raise InvalidTransitionError(
                    f"Room {room.number} is not in cleaning; activities are locked"
                )
            activities, applied = toggle(room.activities, activity_id)
            if not applied:
                logger.debug(
                    "Toggle blocked by incomplete predecessor | room=%s | activity=%s",
                    room.number,
                    activity_id,
                )
                return ToggleOutcome(
                    room=room,
                    activity=find_activity(room.activities, activity_id),
                    applied=False,
                )
            updated = self._registry.update_activities(room_id, activities)
        return ToggleOutcome(
            room=updated,
            activity=find_activity(updated.activities, activity_id),
            applied=True,
        )

    def finish_room(self, room_id: str) -> HistoryRecord:
        with self._registry.guard(room_id):
            room = self._registry.get_room(room_id)
            if room.status is not RoomStatus.IN_CLEANING:
                raise InvalidTransitionError(
                    f"Room {room.number} is '{room.status.value}' and cannot be finished"
                )
            if not room.all_activities_completed:
                completed, total = count_completed(room.activities)
                raise IncompleteActivitiesError(
                    f"Room {room.number} has {total - completed} incomplete activities"
                )
            record = self._ledger.build_completion_record(room, self._clock())
            self._registry.complete(room_id, record)
        if room.assigned_worker_id:
            self.sync_batch_clock(room.assigned_worker_id)
        logger.info(
            "Cleaning finished | room=%s | worker=%s | duration_seconds=%s",
            room.number,
            record.worker_id,
            record.duration_seconds,
        )
        return record

    def abandon_room(self, room_id: str, note: Optional[str] = None) -> Message:
        """Return an in-progress room to the queue and notify the manager.

        Completed activities stay completed, so whoever picks the room up next
        resumes from the same point.
        """
        with self._registry.guard(room_id):
            room = self._registry.get_room(room_id)
            if room.status is not RoomStatus.IN_CLEANING:
                raise InvalidTransitionError(
                    f"Room {room.number} is '{room.status.value}'; only rooms in "
                    "cleaning can be abandoned"
                )
            message = self._messages.compose_abandonment(
                room,
                room.assigned_worker_id or "",
                note,
                self._clock(),
            )
            self._registry.release_to_queue(room_id, message)
        if room.assigned_worker_id:
            self.sync_batch_clock(room.assigned_worker_id)
        logger.info(
            "Cleaning abandoned | room=%s | worker=%s | time_spent=%s",
            room.number,
            message.worker_id,
            message.time_spent,
        )
        return message

    # --- Derived views -----------------------------------------------------

    def sync_batch_clock(
        self,
        worker_id: str,
        *,
        started_at: Optional[datetime] = None,
    ) -> Optional[datetime]:
        """Align the worker's batch clock with the rooms currently in cleaning.

        Without `started_at` and without a running clock (e.g. after a
        restart) the start is re-derived from the earliest room session.
        """
        active = self._registry.rooms_for_worker(worker_id, (RoomStatus.IN_CLEANING,))
        with self._lock:
            if not active:
                self._batch_clocks.pop(worker_id, None)
                return None
            current = self._batch_clocks.get(worker_id)
            if current is None:
                current = started_at or min(
                    room.session_started_at for room in active if room.session_started_at
                )
                self._batch_clocks[worker_id] = current
            return current

    def batch_status(self, worker_id: str) -> BatchStatus:
        clock_started_at = self.sync_batch_clock(worker_id)
        return BatchStatus(
            worker_id=worker_id,
            selected_room_ids=self.selected_rooms(worker_id),
            active_rooms=self._registry.rooms_for_worker(
                worker_id,
                (RoomStatus.IN_CLEANING,),
            ),
            clock_started_at=clock_started_at,
            elapsed_seconds=elapsed_seconds(clock_started_at, self._clock()),
        )

    def worker_progress(self, worker_id: str) -> WorkerProgress:
        rooms = self._registry.rooms_for_worker(worker_id, tuple(ACTIVE_STATUSES))
        completed = 0
        total = 0
        for room in rooms:
            room_completed, room_total = count_completed(room.activities)
            completed += room_completed
            total += room_total
        percentage = math.floor(completed * 100 / total + 0.5) if total else 0
        return WorkerProgress(
            worker_id=worker_id,
            completed=completed,
            total=total,
            percentage=int(percentage),
        )
