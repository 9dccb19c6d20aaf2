from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from housekeeping.domain.errors import CatalogValidationError, ConcurrentConflictError
from housekeeping.domain.models import Worker
from housekeeping.repository.data_repository import DataRepository, RoomSeed
from housekeeping.services import room_registry
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.config import DEFAULT_TASK_CATALOG, get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_data=False)


def _build_service(tmp_path) -> HousekeepingService:
    settings = _build_test_settings(tmp_path, "catalog.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_task_catalog_if_empty()
    repository.seed_task_catalog_if_empty()
    repository.upsert_worker(Worker("w-1", "Ana Silva"))
    repository.provision_rooms(
        [
            RoomSeed("r-101", "101", "Deluxe King", 1),
            RoomSeed("r-102", "102", "Standard Twin", 1),
        ]
    )
    service = HousekeepingService(
        repository=repository,
        settings=settings,
        clock=lambda: datetime(2026, 3, 5, 8, 0, tzinfo=timezone.utc),
    )
    service.load()
    return service


def test_default_catalog_is_seeded_once(tmp_path):
    service = _build_service(tmp_path)

    assert service.list_tasks() == list(DEFAULT_TASK_CATALOG)


def test_added_task_is_merged_at_the_end_of_every_room(tmp_path):
    service = _build_service(tmp_path)
    service.select_rooms("w-1", ["r-101"])
    service.proceed("w-1")
    service.toggle_activity("r-101", "clean-mirror")

    catalog = dict(service.add_task(" washroom ", " Refill Soap "))

    assert catalog["washroom"][-1] == "Refill Soap"
    for room_id in ("r-101", "r-102"):
        room = service.get_room(room_id)
        added = room.activities[-1]
        assert added.activity_id == "refill-soap"
        assert added.category == "washroom"
        assert added.position == 14
        assert added.completed is False
    in_progress = service.get_room("r-101")
    assert in_progress.activities[0].completed is True
    assert service.toggle_activity("r-101", "refill-soap").applied is False


def test_new_category_creates_its_own_sequence(tmp_path):
    service = _build_service(tmp_path)
    service.add_task("balcony", "Sweep Balcony")
    service.add_task("balcony", "Wipe Railings")
    service.select_rooms("w-1", ["r-102"])
    service.proceed("w-1")

    assert service.get_room("r-102").categories == ["washroom", "bedroom", "balcony"]
    assert service.toggle_activity("r-102", "wipe-railings").applied is False
    assert service.toggle_activity("r-102", "sweep-balcony").applied is True


def test_duplicate_or_blank_tasks_are_rejected(tmp_path):
    service = _build_service(tmp_path)

    with pytest.raises(CatalogValidationError):
        service.add_task("washroom", "Clean Mirror")
    with pytest.raises(CatalogValidationError):
        service.add_task("washroom", "   ")
    with pytest.raises(CatalogValidationError):
        service.add_task("", "Dust Lamps")
    assert len(service.get_room("r-101").activities) == 14


def test_removing_a_task_only_changes_the_template(tmp_path):
    service = _build_service(tmp_path)

    catalog = dict(service.remove_task("bedroom", "Check Mini-Bar"))

    assert "Check Mini-Bar" not in catalog["bedroom"]
    labels = [activity.label for activity in service.get_room("r-101").activities]
    assert "Check Mini-Bar" in labels
    with pytest.raises(CatalogValidationError):
        service.remove_task("bedroom", "Check Mini-Bar")


def test_toggle_committed_while_merging_is_not_reverted(monkeypatch, tmp_path):
    service = _build_service(tmp_path)
    service.select_rooms("w-1", ["r-101"])
    service.proceed("w-1")
    real_merge = room_registry.merge_catalog
    toggles = []

    def merge_after_concurrent_toggle(activities, catalog):
        if not toggles:
            toggles.append(service.toggle_activity("r-101", "clean-mirror"))
        return real_merge(activities, catalog)

    monkeypatch.setattr(room_registry, "merge_catalog", merge_after_concurrent_toggle)

    with pytest.raises(ConcurrentConflictError):
        service.add_task("washroom", "Polish Taps")

    assert toggles[0].applied is True
    room = service.get_room("r-101")
    assert room.activities[0].completed is True
    assert "polish-taps" not in [activity.activity_id for activity in room.activities]
    assert "Polish Taps" not in dict(service.list_tasks())["washroom"]

    monkeypatch.undo()
    catalog = dict(service.add_task("washroom", "Polish Taps"))

    assert catalog["washroom"][-1] == "Polish Taps"
    room = service.get_room("r-101")
    assert room.activities[0].completed is True
    assert room.activities[-1].activity_id == "polish-taps"


def test_failed_room_merge_leaves_template_ready_for_retry(monkeypatch, tmp_path):
    service = _build_service(tmp_path)

    def busy_rooms(addition):
        raise ConcurrentConflictError("Room 'r-101' is busy with another operation; retry")

    monkeypatch.setattr(service.registry, "apply_catalog_addition", busy_rooms)

    with pytest.raises(ConcurrentConflictError):
        service.add_task("washroom", "Polish Taps")
    assert "Polish Taps" not in dict(service.list_tasks())["washroom"]

    monkeypatch.undo()
    catalog = dict(service.add_task("washroom", "Polish Taps"))

    assert catalog["washroom"][-1] == "Polish Taps"
    for room_id in ("r-101", "r-102"):
        assert service.get_room(room_id).activities[-1].label == "Polish Taps"
