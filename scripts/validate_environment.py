#!/usr/bin/env python3
"""Validate local housekeeping service environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from importlib.metadata import version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.config import get_settings

SEPARATOR_LINE = "=" * 44
EXPECTED_DEMO_ROOMS = 14


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="housekeeping-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "housekeeping_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Task catalog and demo room seeding
        try:
            repository.seed_task_catalog_if_empty()
            repository.seed_demo_data_if_empty()
            room_count = repository.count_rooms()
            if room_count != EXPECTED_DEMO_ROOMS:
                raise RuntimeError(f"expected {EXPECTED_DEMO_ROOMS} rooms, got {room_count}")
            ok, line = _print_result("Demo seed", True, f": {room_count} rooms")
        except Exception as exc:
            ok, line = _print_result("Demo seed", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: End-to-end cleaning workflow
        try:
            service = HousekeepingService(repository=repository, settings=validation_settings)
            service.load()
            room = service.checkout_queue()[0]
            worker = service.list_workers(active_only=True)[0]
            service.select_rooms(worker.worker_id, [room.room_id])
            service.proceed(worker.worker_id)
            for activity in sorted(room.activities, key=lambda item: item.position):
                service.toggle_activity(room.room_id, activity.activity_id)
            record = service.finish_room(room.room_id)
            if len(service.history(room_id=room.room_id)) != 1:
                raise RuntimeError("completion record was not persisted")
            ok, line = _print_result(
                "Cleaning workflow",
                True,
                f": room {record.room_number} finished by {record.worker_id}",
            )
        except Exception as exc:
            ok, line = _print_result("Cleaning workflow", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Housekeeping Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
