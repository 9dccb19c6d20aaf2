from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from housekeeping.domain.errors import (
    ConcurrentConflictError,
    InactiveWorkerError,
    InvalidTransitionError,
    NegotiationNotFoundError,
    NegotiationPendingError,
    RoomNotFoundError,
    WorkerNotFoundError,
)
from housekeeping.domain.models import AssignmentInitiator, NegotiationOutcome, RoomStatus, Worker
from housekeeping.repository.data_repository import DataRepository, RoomSeed
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.config import get_settings


class _FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_data=False)


def _build_service(tmp_path, clock: _FakeClock) -> HousekeepingService:
    settings = _build_test_settings(tmp_path, "negotiation.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_task_catalog_if_empty()
    repository.upsert_worker(Worker("w-1", "Ana Silva"))
    repository.upsert_worker(Worker("w-2", "Ben Okafor"))
    repository.upsert_worker(Worker("w-3", "Cai Lun", active=False))
    repository.provision_rooms(
        [
            RoomSeed("r-101", "101", "Deluxe King", 1),
            RoomSeed("r-102", "102", "Standard Twin", 1),
            RoomSeed("r-103", "103", "Garden Suite", 1, RoomStatus.AVAILABLE),
            RoomSeed("r-104", "104", "Family Room", 1, RoomStatus.MAINTENANCE),
        ]
    )
    service = HousekeepingService(repository=repository, settings=settings, clock=clock)
    service.load()
    return service


def test_accepted_proposal_assigns_room_and_logs_manager_event(tmp_path):
    clock = _FakeClock()
    service = _build_service(tmp_path, clock)

    negotiation = service.propose_assignment("r-101", "w-1")
    assert negotiation.outcome is NegotiationOutcome.PENDING
    assert service.get_room("r-101").status is RoomStatus.CHECKOUT
    assert [item.negotiation_id for item in service.pending_negotiations()] == [
        negotiation.negotiation_id
    ]

    resolved = service.resolve_assignment(negotiation.negotiation_id, accepted=True)

    room = service.get_room("r-101")
    assert resolved.outcome is NegotiationOutcome.ACCEPTED
    assert room.status is RoomStatus.ASSIGNED
    assert room.assigned_worker_id == "w-1"
    assert room.session_started_at is None
    events = service.assignment_events("w-1")
    assert [(event.room_number, event.assigned_by) for event in events] == [
        ("101", AssignmentInitiator.MANAGER)
    ]
    assert service.pending_negotiations() == []


def test_rejection_leaves_room_untouched_and_names_the_worker(tmp_path):
    service = _build_service(tmp_path, _FakeClock())
    negotiation = service.propose_assignment("r-101", "w-1")

    resolved = service.resolve_assignment(negotiation.negotiation_id, accepted=False)

    assert resolved.outcome is NegotiationOutcome.REJECTED
    assert resolved.rejected_worker_id == "w-1"
    room = service.get_room("r-101")
    assert room.status is RoomStatus.CHECKOUT
    assert room.version == 0
    assert service.assignment_events("w-1") == []

    # The manager may immediately propose again.
    retry = service.propose_assignment("r-101", "w-2")
    assert retry.proposed_worker_id == "w-2"


def test_only_one_pending_negotiation_per_room(tmp_path):
    service = _build_service(tmp_path, _FakeClock())
    service.propose_assignment("r-101", "w-1")

    with pytest.raises(NegotiationPendingError):
        service.propose_assignment("r-101", "w-2")

    other = service.propose_assignment("r-102", "w-2")
    assert other.room_id == "r-102"


def test_resolution_is_single_use(tmp_path):
    service = _build_service(tmp_path, _FakeClock())
    negotiation = service.propose_assignment("r-101", "w-1")
    service.resolve_assignment(negotiation.negotiation_id, accepted=True)

    with pytest.raises(NegotiationNotFoundError):
        service.resolve_assignment(negotiation.negotiation_id, accepted=True)
    with pytest.raises(NegotiationNotFoundError):
        service.resolve_assignment("does-not-exist", accepted=False)


@pytest.mark.parametrize("room_id", ["r-103", "r-104"])
def test_only_checkout_rooms_can_be_proposed(tmp_path, room_id):
    service = _build_service(tmp_path, _FakeClock())

    with pytest.raises(InvalidTransitionError):
        service.propose_assignment(room_id, "w-1")


def test_proposal_requires_known_active_worker_and_room(tmp_path):
    service = _build_service(tmp_path, _FakeClock())

    with pytest.raises(InactiveWorkerError):
        service.propose_assignment("r-101", "w-3")
    with pytest.raises(WorkerNotFoundError):
        service.propose_assignment("r-101", "w-404")
    with pytest.raises(RoomNotFoundError):
        service.propose_assignment("r-999", "w-1")
    assert service.pending_negotiations() == []


def test_room_taken_while_pending_discards_negotiation(tmp_path):
    service = _build_service(tmp_path, _FakeClock())
    negotiation = service.propose_assignment("r-101", "w-1")

    service.select_rooms("w-2", ["r-101"])
    service.proceed("w-2")

    with pytest.raises(ConcurrentConflictError):
        service.resolve_assignment(negotiation.negotiation_id, accepted=True)

    room = service.get_room("r-101")
    assert room.status is RoomStatus.IN_CLEANING
    assert room.assigned_worker_id == "w-2"
    assert service.pending_negotiations() == []


def test_reassignment_mid_session_keeps_session_start(tmp_path):
    clock = _FakeClock()
    service = _build_service(tmp_path, clock)
    service.select_rooms("w-1", ["r-101"])
    service.proceed("w-1")
    started_at = service.get_room("r-101").session_started_at
    clock.advance(minutes=12)

    negotiation = service.propose_reassignment("r-101", "w-1", "w-2")
    assert negotiation.is_reassignment is True
    assert negotiation.from_worker_id == "w-1"
    resolved = service.resolve_assignment(negotiation.negotiation_id, accepted=True)

    room = service.get_room("r-101")
    assert resolved.outcome is NegotiationOutcome.ACCEPTED
    assert room.status is RoomStatus.IN_CLEANING
    assert room.assigned_worker_id == "w-2"
    assert room.session_started_at == started_at
    assert service.active_worker_rooms("w-1") == []
    assert service.batch_status("w-1").clock_started_at is None
    assert service.batch_status("w-2").clock_started_at == clock.now
    assert [event.assigned_by for event in service.assignment_events("w-2")] == [
        AssignmentInitiator.MANAGER
    ]


def test_reassignment_validation(tmp_path):
    service = _build_service(tmp_path, _FakeClock())

    with pytest.raises(InvalidTransitionError):
        service.propose_reassignment("r-101", "w-1", "w-2")

    negotiation = service.propose_assignment("r-101", "w-1")
    service.resolve_assignment(negotiation.negotiation_id, accepted=True)

    with pytest.raises(InvalidTransitionError):
        service.propose_reassignment("r-101", "w-2", "w-1")
    with pytest.raises(InvalidTransitionError):
        service.propose_reassignment("r-101", "w-1", "w-1")
    with pytest.raises(InactiveWorkerError):
        service.propose_reassignment("r-101", "w-1", "w-3")

    rejected = service.propose_reassignment("r-101", "w-1", "w-2")
    service.resolve_assignment(rejected.negotiation_id, accepted=False)
    assert service.get_room("r-101").assigned_worker_id == "w-1"


def test_rejected_reassignment_leaves_session_in_progress_untouched(tmp_path):
    clock = _FakeClock()
    service = _build_service(tmp_path, clock)
    service.select_rooms("w-1", ["r-101"])
    service.proceed("w-1")
    started_at = clock.now
    clock.advance(minutes=4)
    service.toggle_activity("r-101", "clean-mirror")
    before = service.get_room("r-101")

    negotiation = service.propose_reassignment("r-101", "w-1", "w-2")
    clock.advance(minutes=2)
    resolved = service.resolve_assignment(negotiation.negotiation_id, accepted=False)

    after = service.get_room("r-101")
    assert resolved.outcome is NegotiationOutcome.REJECTED
    assert resolved.rejected_worker_id == "w-2"
    assert after == before
    assert after.status is RoomStatus.IN_CLEANING
    assert after.session_started_at == started_at
    assert after.version == before.version
    assert [activity.completed for activity in after.activities] == [
        activity.completed for activity in before.activities
    ]
    assert service.batch_status("w-1").clock_started_at == started_at
    assert service.batch_status("w-1").elapsed_seconds == 360
    assert service.batch_status("w-2").clock_started_at is None
    assert service.active_worker_rooms("w-2") == []
    assert service.assignment_events("w-2") == []
    assert service.pending_negotiations() == []
