"""Append-only completion and assignment ledgers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from housekeeping.domain.models import (
    AssignmentEvent,
    AssignmentInitiator,
    HistoryRecord,
    Room,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.room_registry import RoomRegistry
from housekeeping.utils.clock import elapsed_seconds
from housekeeping.utils.config import Settings, get_settings


class HistoryValidationError(Exception):
    """Raised when history query bounds are inconsistent."""


@dataclass(frozen=True)
class WorkerMetrics:
    worker_id: str
    self_selected_count: int
    manager_assigned_count: int
    active_room_numbers: list[str]
    completed_cleanings: int

    def to_dict(self) -> dict[str, object]:
        return {
            "worker_id": self.worker_id,
            "self_selected_count": self.self_selected_count,
            "manager_assigned_count": self.manager_assigned_count,
            "active_room_numbers": list(self.active_room_numbers),
            "completed_cleanings": self.completed_cleanings,
        }


class HistoryLedger:
    """Builds ledger entries and answers history and per-worker metric queries.

    Entries are written by the room registry in the same transaction as the
    status change they describe; this class never updates or deletes them.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._registry = registry

    @staticmethod
    def build_completion_record(room: Room, ended_at: datetime) -> HistoryRecord:
        started_at = room.session_started_at or ended_at
        return HistoryRecord(
            record_id=uuid4().hex,
            room_id=room.room_id,
            room_number=room.number,
            room_type=room.room_type,
            floor=room.floor,
            cleaning_date=ended_at.date(),
            started_at=started_at,
            ended_at=ended_at,
            duration_seconds=elapsed_seconds(started_at, ended_at),
            activities=tuple(room.activities),
            worker_id=room.assigned_worker_id or "",
        )

    @staticmethod
    def build_assignment_event(
        worker_id: str,
        room: Room,
        assigned_by: AssignmentInitiator,
        timestamp: datetime,
    ) -> AssignmentEvent:
        return AssignmentEvent(
            worker_id=worker_id,
            room_number=room.number,
            assigned_by=assigned_by,
            timestamp=timestamp,
        )

    def history(
        self,
        *,
        worker_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        room_id: Optional[str] = None,
    ) -> list[HistoryRecord]:
        if date_from is not None and date_to is not None and date_from > date_to:
            raise HistoryValidationError("date_from must not be after date_to")
        return self._repository.list_history(
            worker_id=worker_id,
            room_id=room_id,
            date_from=date_from,
            date_to=date_to,
        )

    def assignment_events(self, worker_id: str) -> list[AssignmentEvent]:
        return self._repository.list_assignment_events(worker_id)

    def worker_metrics(self, worker_id: str) -> WorkerMetrics:
        events = self.assignment_events(worker_id)
        active_rooms = self._registry.rooms_for_worker(worker_id)
        return WorkerMetrics(
            worker_id=worker_id,
            self_selected_count=sum(
                1 for event in events if event.assigned_by is AssignmentInitiator.WORKER
            ),
            manager_assigned_count=sum(
                1 for event in events if event.assigned_by is AssignmentInitiator.MANAGER
            ),
            active_room_numbers=[room.number for room in active_rooms],
            completed_cleanings=len(self._repository.list_history(worker_id=worker_id)),
        )
