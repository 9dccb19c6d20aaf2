from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from housekeeping.domain.models import RoomStatus, Worker
from housekeeping.repository.data_repository import DataRepository, RoomSeed
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.clock import elapsed_seconds
from housekeeping.utils.config import get_settings


class _FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 6, 7, 45, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_data=False)


def _prepare_database(settings) -> DataRepository:
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_task_catalog_if_empty()
    repository.upsert_worker(Worker("w-1", "Ana Silva"))
    repository.provision_rooms(
        [
            RoomSeed("r-101", "101", "Deluxe King", 1),
            RoomSeed("r-102", "102", "Standard Twin", 1),
            RoomSeed("r-103", "103", "Garden Suite", 1),
        ]
    )
    return repository


def _start_service(settings, clock: _FakeClock) -> HousekeepingService:
    service = HousekeepingService(
        repository=DataRepository(settings),
        settings=settings,
        clock=clock,
    )
    service.load()
    return service


def test_restart_resumes_sessions_and_recomputes_elapsed_time(tmp_path):
    settings = _build_test_settings(tmp_path, "restart.db")
    _prepare_database(settings)
    clock = _FakeClock()
    batch_start = clock.now

    before = _start_service(settings, clock)
    before.select_rooms("w-1", ["r-101"])
    before.proceed("w-1")
    clock.advance(minutes=4)
    before.select_rooms("w-1", ["r-102"])
    before.proceed("w-1")
    for activity_id in ("clean-mirror", "change-bed-sheets"):
        before.toggle_activity("r-101", activity_id)
    negotiation = before.propose_assignment("r-103", "w-1")
    before.resolve_assignment(negotiation.negotiation_id, accepted=True)

    clock.advance(minutes=30)
    after = _start_service(settings, clock)

    room = after.get_room("r-101")
    assert room.status is RoomStatus.IN_CLEANING
    assert room.session_started_at == batch_start
    assert elapsed_seconds(room.session_started_at, clock.now) == 34 * 60
    completed = {activity.activity_id for activity in room.activities if activity.completed}
    assert completed == {"clean-mirror", "change-bed-sheets"}
    assert after.get_room("r-103").status is RoomStatus.ASSIGNED
    assert after.status_summary()[RoomStatus.IN_CLEANING] == 2

    batch = after.batch_status("w-1")
    assert batch.clock_started_at == batch_start
    assert batch.elapsed_seconds == 34 * 60
    assert [item.room_id for item in batch.active_rooms] == ["r-101", "r-102"]
    assert after.worker_progress("w-1").completed == 2


def test_pending_negotiations_and_selections_are_not_persisted(tmp_path):
    settings = _build_test_settings(tmp_path, "volatile.db")
    _prepare_database(settings)
    clock = _FakeClock()

    before = _start_service(settings, clock)
    before.propose_assignment("r-101", "w-1")
    before.select_rooms("w-1", ["r-102"])

    after = _start_service(settings, clock)

    assert after.pending_negotiations() == []
    assert after.selected_rooms("w-1") == []
    assert after.get_room("r-101").status is RoomStatus.CHECKOUT
    after.propose_assignment("r-101", "w-1")


def test_versions_survive_restart(tmp_path):
    settings = _build_test_settings(tmp_path, "versions.db")
    _prepare_database(settings)
    clock = _FakeClock()

    before = _start_service(settings, clock)
    before.select_rooms("w-1", ["r-101"])
    before.proceed("w-1")
    before.toggle_activity("r-101", "clean-mirror")

    after = _start_service(settings, clock)
    assert after.get_room("r-101").version == 2
    after.toggle_activity("r-101", "scrub-toilet")
    assert after.get_room("r-101").version == 3
