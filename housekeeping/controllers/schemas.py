"""Request/response DTOs shared by the HTTP controllers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from housekeeping.domain.activities import count_completed
from housekeeping.domain.models import (
    Activity,
    AssignmentEvent,
    AssignmentInitiator,
    HistoryRecord,
    Message,
    Negotiation,
    NegotiationOutcome,
    Room,
    RoomStatus,
    Worker,
)
from housekeeping.services.cleaning_service import BatchStatus, ToggleOutcome, WorkerProgress
from housekeeping.services.history_service import WorkerMetrics
from housekeeping.utils.clock import elapsed_seconds, format_elapsed_long


# --- Requests ----------------------------------------------------------------


class ProposeAssignmentRequest(BaseModel):
    room_id: str = Field(min_length=1)
    worker_id: str = Field(min_length=1)


class ProposeReassignmentRequest(BaseModel):
    room_id: str = Field(min_length=1)
    from_worker_id: str = Field(min_length=1)
    to_worker_id: str = Field(min_length=1)

    @field_validator("to_worker_id")
    @classmethod
    def validate_different_worker(cls, value: str, info: ValidationInfo) -> str:
        if value == info.data.get("from_worker_id"):
            raise ValueError("to_worker_id must differ from from_worker_id")
        return value


class ResolveAssignmentRequest(BaseModel):
    accepted: bool


class StartCleaningRequest(BaseModel):
    worker_id: str = Field(min_length=1)


class AbandonRequest(BaseModel):
    note: Optional[str] = Field(default=None, max_length=500)


class SelectRoomsRequest(BaseModel):
    room_ids: list[str]

    @field_validator("room_ids")
    @classmethod
    def validate_room_ids(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("room_ids must contain at least one room id")
        for room_id in value:
            if not room_id.strip():
                raise ValueError("room_ids values must be non-empty")
        return value


class TaskRequest(BaseModel):
    category: str = Field(min_length=1)
    label: str = Field(min_length=1)


# --- Responses ---------------------------------------------------------------


class ActivityPayload(BaseModel):
    activity_id: str
    label: str
    category: str
    position: int = Field(ge=0)
    completed: bool


class RoomPayload(BaseModel):
    room_id: str
    number: str
    room_type: str
    floor: int
    status: RoomStatus
    assigned_worker_id: Optional[str] = None
    session_started_at: Optional[datetime] = None
    elapsed_seconds: int = Field(ge=0)
    elapsed: str
    completed_activities: int = Field(ge=0)
    total_activities: int = Field(ge=0)
    activities: list[ActivityPayload]


class RoomListResponse(BaseModel):
    rooms: list[RoomPayload]


class StatusSummaryResponse(BaseModel):
    counts: dict[RoomStatus, int]
    total: int = Field(ge=0)


class NegotiationPayload(BaseModel):
    negotiation_id: str
    room_id: str
    proposed_worker_id: str
    outcome: NegotiationOutcome
    is_reassignment: bool
    proposed_at: datetime
    from_worker_id: Optional[str] = None
    rejected_worker_id: Optional[str] = None


class NegotiationListResponse(BaseModel):
    negotiations: list[NegotiationPayload]


class WorkerPayload(BaseModel):
    worker_id: str
    name: str
    phone: str
    email: str
    active: bool


class WorkerListResponse(BaseModel):
    workers: list[WorkerPayload]


class ToggleResponse(BaseModel):
    applied: bool
    activity: ActivityPayload
    room: RoomPayload


class HistoryPayload(BaseModel):
    record_id: str
    room_id: str
    room_number: str
    room_type: str
    floor: int
    cleaning_date: date
    started_at: datetime
    ended_at: datetime
    duration_seconds: int = Field(ge=0)
    duration: str
    worker_id: str
    activities: list[ActivityPayload]


class HistoryListResponse(BaseModel):
    records: list[HistoryPayload]


class MessagePayload(BaseModel):
    message_id: str
    room_id: str
    room_number: str
    worker_id: str
    time_spent_seconds: int = Field(ge=0)
    time_spent: str
    note: str
    timestamp: datetime


class MessageListResponse(BaseModel):
    messages: list[MessagePayload]


class AssignmentEventPayload(BaseModel):
    worker_id: str
    room_number: str
    assigned_by: AssignmentInitiator
    timestamp: datetime


class AssignmentEventListResponse(BaseModel):
    events: list[AssignmentEventPayload]


class SelectionResponse(BaseModel):
    worker_id: str
    selected_room_ids: list[str]


class CancelSelectionResponse(SelectionResponse):
    removed: bool


class BatchResponse(BaseModel):
    worker_id: str
    selected_room_ids: list[str]
    active_rooms: list[RoomPayload]
    clock_started_at: Optional[datetime] = None
    elapsed_seconds: int = Field(ge=0)
    elapsed: str


class ProgressResponse(BaseModel):
    worker_id: str
    completed: int = Field(ge=0)
    total: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)


class WorkerMetricsResponse(BaseModel):
    worker_id: str
    self_selected_count: int = Field(ge=0)
    manager_assigned_count: int = Field(ge=0)
    active_room_numbers: list[str]
    completed_cleanings: int = Field(ge=0)


class TaskCategoryPayload(BaseModel):
    category: str
    labels: list[str]


class TaskCatalogResponse(BaseModel):
    categories: list[TaskCategoryPayload]


# --- Converters --------------------------------------------------------------


def activity_payload(activity: Activity) -> ActivityPayload:
    return ActivityPayload(
        activity_id=activity.activity_id,
        label=activity.label,
        category=activity.category,
        position=activity.position,
        completed=activity.completed,
    )


def room_payload(room: Room, now: datetime) -> RoomPayload:
    seconds = elapsed_seconds(room.session_started_at, now)
    completed, total = count_completed(room.activities)
    return RoomPayload(
        room_id=room.room_id,
        number=room.number,
        room_type=room.room_type,
        floor=room.floor,
        status=room.status,
        assigned_worker_id=room.assigned_worker_id,
        session_started_at=room.session_started_at,
        elapsed_seconds=seconds,
        elapsed=format_elapsed_long(seconds),
        completed_activities=completed,
        total_activities=total,
        activities=[
            activity_payload(activity)
            for activity in sorted(room.activities, key=lambda item: item.position)
        ],
    )


def negotiation_payload(negotiation: Negotiation) -> NegotiationPayload:
    return NegotiationPayload(
        negotiation_id=negotiation.negotiation_id,
        room_id=negotiation.room_id,
        proposed_worker_id=negotiation.proposed_worker_id,
        outcome=negotiation.outcome,
        is_reassignment=negotiation.is_reassignment,
        proposed_at=negotiation.proposed_at,
        from_worker_id=negotiation.from_worker_id,
        rejected_worker_id=negotiation.rejected_worker_id,
    )


def worker_payload(worker: Worker) -> WorkerPayload:
    return WorkerPayload(
        worker_id=worker.worker_id,
        name=worker.name,
        phone=worker.phone,
        email=worker.email,
        active=worker.active,
    )


def toggle_response(outcome: ToggleOutcome, now: datetime) -> ToggleResponse:
    return ToggleResponse(
        applied=outcome.applied,
        activity=activity_payload(outcome.activity),
        room=room_payload(outcome.room, now),
    )


def history_payload(record: HistoryRecord) -> HistoryPayload:
    return HistoryPayload(
        record_id=record.record_id,
        room_id=record.room_id,
        room_number=record.room_number,
        room_type=record.room_type,
        floor=record.floor,
        cleaning_date=record.cleaning_date,
        started_at=record.started_at,
        ended_at=record.ended_at,
        duration_seconds=record.duration_seconds,
        duration=format_elapsed_long(record.duration_seconds),
        worker_id=record.worker_id,
        activities=[activity_payload(activity) for activity in record.activities],
    )


def message_payload(message: Message) -> MessagePayload:
    return MessagePayload(
        message_id=message.message_id,
        room_id=message.room_id,
        room_number=message.room_number,
        worker_id=message.worker_id,
        time_spent_seconds=message.time_spent_seconds,
        time_spent=message.time_spent,
        note=message.note,
        timestamp=message.timestamp,
    )


def assignment_event_payload(event: AssignmentEvent) -> AssignmentEventPayload:
    return AssignmentEventPayload(
        worker_id=event.worker_id,
        room_number=event.room_number,
        assigned_by=event.assigned_by,
        timestamp=event.timestamp,
    )


def batch_response(batch: BatchStatus, now: datetime) -> BatchResponse:
    return BatchResponse(
        worker_id=batch.worker_id,
        selected_room_ids=batch.selected_room_ids,
        active_rooms=[room_payload(room, now) for room in batch.active_rooms],
        clock_started_at=batch.clock_started_at,
        elapsed_seconds=batch.elapsed_seconds,
        elapsed=format_elapsed_long(batch.elapsed_seconds),
    )


def progress_response(progress: WorkerProgress) -> ProgressResponse:
    return ProgressResponse(**progress.to_dict())


def metrics_response(metrics: WorkerMetrics) -> WorkerMetricsResponse:
    return WorkerMetricsResponse(**metrics.to_dict())


def task_catalog_response(catalog: list[tuple[str, tuple[str, ...]]]) -> TaskCatalogResponse:
    return TaskCatalogResponse(
        categories=[
            TaskCategoryPayload(category=category, labels=list(labels))
            for category, labels in catalog
        ]
    )
