"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


DEFAULT_TASK_CATALOG: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "washroom",
        (
            "Clean Mirror",
            "Scrub Toilet",
            "Clean Sink",
            "Clean Shower/Bathtub",
            "Replace Towels",
            "Sanitize Surfaces",
        ),
    ),
    (
        "bedroom",
        (
            "Change Bed Sheets",
            "Vacuum Floor",
            "Pick Up Trash",
            "Restock Amenities",
            "Check Mini-Bar",
            "Check Electricals",
            "Replace Water Bottles",
            "Final Inspection",
        ),
    ),
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    database_path: Path
    log_level: str
    room_lock_timeout_seconds: float
    default_abandon_note: str
    seed_demo_data: bool
    default_task_catalog: tuple[tuple[str, tuple[str, ...]], ...]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive variants with replace()."""
    project_root = Path(__file__).resolve().parents[2]
    default_db = project_root / "data" / "housekeeping.db"
    return Settings(
        app_name=os.getenv("APP_NAME", "Housekeeping Workflow Service"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        database_path=Path(os.getenv("HOUSEKEEPING_DB_PATH", str(default_db))),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        room_lock_timeout_seconds=_env_float("ROOM_LOCK_TIMEOUT_SECONDS", 5.0),
        default_abandon_note=os.getenv(
            "DEFAULT_ABANDON_NOTE",
            "Unable to finish this room",
        ),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
        default_task_catalog=DEFAULT_TASK_CATALOG,
    )
