"""Domain models for the room-cleaning workflow."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


class RoomStatus(str, enum.Enum):
    CHECKOUT = "checkout"
    ASSIGNED = "assigned"
    IN_CLEANING = "in_cleaning"
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"


class AssignmentInitiator(str, enum.Enum):
    MANAGER = "manager"
    WORKER = "worker"


class NegotiationOutcome(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Activity:
    activity_id: str
    label: str
    category: str
    position: int
    completed: bool = False


@dataclass(frozen=True)
class Room:
    room_id: str
    number: str
    room_type: str
    floor: int
    status: RoomStatus
    activities: tuple[Activity, ...] = ()
    assigned_worker_id: Optional[str] = None
    session_started_at: Optional[datetime] = None
    version: int = 0

    @property
    def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for activity in sorted(self.activities, key=lambda item: item.position):
            seen.setdefault(activity.category, None)
        return list(seen)

    @property
    def all_activities_completed(self) -> bool:
        return all(activity.completed for activity in self.activities)


@dataclass(frozen=True)
class Worker:
    worker_id: str
    name: str
    phone: str = ""
    email: str = ""
    active: bool = True


@dataclass(frozen=True)
class Negotiation:
    negotiation_id: str
    room_id: str
    proposed_worker_id: str
    outcome: NegotiationOutcome
    is_reassignment: bool
    proposed_at: datetime
    from_worker_id: Optional[str] = None

    @property
    def rejected_worker_id(self) -> Optional[str]:
        if self.outcome is NegotiationOutcome.REJECTED:
            return self.proposed_worker_id
        return None


@dataclass(frozen=True)
class HistoryRecord:
    """Immutable snapshot of a completed cleaning session."""

    record_id: str
    room_id: str
    room_number: str
    room_type: str
    floor: int
    cleaning_date: date
    started_at: datetime
    ended_at: datetime
    duration_seconds: int
    activities: tuple[Activity, ...]
    worker_id: str


@dataclass(frozen=True)
class AssignmentEvent:
    worker_id: str
    room_number: str
    assigned_by: AssignmentInitiator
    timestamp: datetime


@dataclass(frozen=True)
class Message:
    """Escalation produced when a worker abandons an in-progress room."""

    message_id: str
    room_id: str
    room_number: str
    worker_id: str
    time_spent_seconds: int
    time_spent: str
    note: str
    timestamp: datetime


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    room_id: str
    status: RoomStatus
    worker_id: Optional[str]
    occurred_at: datetime
