"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from housekeeping.domain.activities import build_activities
from housekeeping.domain.errors import ConcurrentConflictError
from housekeeping.domain.models import (
    Activity,
    AssignmentEvent,
    AssignmentInitiator,
    HistoryRecord,
    Message,
    Room,
    RoomStatus,
    Worker,
)
from housekeeping.utils.clock import from_iso, to_iso
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RoomSeed:
    """Room provisioning row used for demo data and tests."""

    room_id: str
    number: str
    room_type: str
    floor: int
    status: RoomStatus = RoomStatus.CHECKOUT


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Workers (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        phone TEXT NOT NULL DEFAULT '',
                        email TEXT NOT NULL DEFAULT '',
                        active INTEGER NOT NULL DEFAULT 1 CHECK (active IN (0,1))
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id TEXT PRIMARY KEY,
                        number TEXT NOT NULL UNIQUE,
                        room_type TEXT NOT NULL,
                        floor INTEGER NOT NULL,
                        status TEXT NOT NULL,
                        assigned_worker_id TEXT,
                        session_started_at TEXT,
                        version INTEGER NOT NULL DEFAULT 0,
                        FOREIGN KEY (assigned_worker_id) REFERENCES Workers(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS RoomActivities (
                        room_id TEXT NOT NULL,
                        activity_id TEXT NOT NULL,
                        label TEXT NOT NULL,
                        category TEXT NOT NULL,
                        position INTEGER NOT NULL,
                        completed INTEGER NOT NULL DEFAULT 0 CHECK (completed IN (0,1)),
                        PRIMARY KEY (room_id, activity_id),
                        FOREIGN KEY (room_id) REFERENCES Rooms(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS TaskCatalog (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        category TEXT NOT NULL,
                        label TEXT NOT NULL,
                        UNIQUE (category, label)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS AssignmentEvents (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        worker_id TEXT NOT NULL,
                        room_number TEXT NOT NULL,
                        assigned_by TEXT NOT NULL CHECK (assigned_by IN ('manager','worker')),
                        created_at TEXT NOT NULL,
                        UNIQUE (worker_id, room_number)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS CleaningHistory (
                        id TEXT PRIMARY KEY,
                        room_id TEXT NOT NULL,
                        room_number TEXT NOT NULL,
                        room_type TEXT NOT NULL,
                        floor INTEGER NOT NULL,
                        worker_id TEXT NOT NULL,
                        cleaning_date TEXT NOT NULL,
                        started_at TEXT NOT NULL,
                        ended_at TEXT NOT NULL,
                        duration_seconds INTEGER NOT NULL CHECK (duration_seconds >= 0),
                        activities_json TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Messages (
                        id TEXT PRIMARY KEY,
                        room_id TEXT NOT NULL,
                        room_number TEXT NOT NULL,
                        worker_id TEXT NOT NULL,
                        time_spent_seconds INTEGER NOT NULL,
                        time_spent TEXT NOT NULL,
                        note TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_rooms_status ON Rooms(status);"
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_history_room
                    ON CleaningHistory(room_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_history_worker_date
                    ON CleaningHistory(worker_id, cleaning_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_messages_created
                    ON Messages(created_at);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_task_catalog_if_empty(self) -> None:
        """Seed the default activity template only when the catalog is empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM TaskCatalog;")
                if int(cursor.fetchone()["count"]) > 0:
                    return
                cursor.executemany(
                    "INSERT INTO TaskCatalog (category, label) VALUES (?, ?);",
                    [
                        (category, label)
                        for category, labels in self._settings.default_task_catalog
                        for label in labels
                    ],
                )
                conn.commit()
            logger.info("Default task catalog seeded")
        except sqlite3.Error as exc:
            raise RuntimeError(f"Task catalog seeding failed: {exc}") from exc

    def seed_demo_data_if_empty(self) -> None:
        """Seed a demo worker directory and room catalog when no rooms exist."""
        workers = [
            Worker("hk-1", "Nadia Perera", "12025550147", "nadia@hotel.example", True),
            Worker("hk-2", "Omar Haddad", "12025550120", "omar@hotel.example", True),
            Worker("hk-3", "Lena Fischer", "12025550170", "lena@hotel.example", False),
        ]
        rooms = [
            RoomSeed("r-101", "101", "Deluxe King", 10),
            RoomSeed("r-102", "102", "Garden Suite", 10),
            RoomSeed("r-103", "103", "Standard Twin", 10),
            RoomSeed("r-105", "105", "Ocean View", 10),
            RoomSeed("r-201", "201", "Executive Suite", 20),
            RoomSeed("r-202", "202", "Family Room", 20),
            RoomSeed("r-204", "204", "Deluxe King", 20, RoomStatus.AVAILABLE),
            RoomSeed("r-215", "215", "Spa Suite", 21),
            RoomSeed("r-301", "301", "Presidential Suite", 30),
            RoomSeed("r-310", "310", "Deluxe Twin", 30),
            RoomSeed("r-311", "311", "Deluxe Twin", 30, RoomStatus.MAINTENANCE),
            RoomSeed("r-401", "401", "Penthouse Suite", 40),
            RoomSeed("r-407", "407", "Premium King", 40, RoomStatus.AVAILABLE),
            RoomSeed("r-501", "501", "Luxury Suite", 50),
        ]
        if self.count_rooms() > 0:
            logger.info("Demo data already present; skipping seed")
            return
        for worker in workers:
            self.upsert_worker(worker)
        self.provision_rooms(rooms)
        logger.info(
            "Demo seed completed with %s rooms and %s workers",
            len(rooms),
            len(workers),
        )

    # --- Workers -----------------------------------------------------------

    def upsert_worker(self, worker: Worker) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Workers (id, name, phone, email, active)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    phone = excluded.phone,
                    email = excluded.email,
                    active = excluded.active;
                """,
                (
                    worker.worker_id,
                    worker.name,
                    worker.phone,
                    worker.email,
                    int(worker.active),
                ),
            )
            conn.commit()

    def get_worker(self, worker_id: str) -> Optional[Worker]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, phone, email, active FROM Workers WHERE id = ?;",
                (worker_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_worker(row)

    def list_workers(self) -> list[Worker]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, phone, email, active FROM Workers ORDER BY id ASC;"
            )
            return [self._row_to_worker(row) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_worker(row: sqlite3.Row) -> Worker:
        return Worker(
            worker_id=str(row["id"]),
            name=str(row["name"]),
            phone=str(row["phone"]),
            email=str(row["email"]),
            active=bool(row["active"]),
        )

    # --- Rooms -------------------------------------------------------------

    def count_rooms(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Rooms;")
            return int(cursor.fetchone()["count"])

    def provision_rooms(self, seeds: Sequence[RoomSeed]) -> None:
        """Insert rooms with activities built from the current task catalog."""
        activities = build_activities(self.list_task_catalog())
        with self._connect() as conn:
            cursor = conn.cursor()
            for seed in seeds:
                cursor.execute(
                    """
                    INSERT INTO Rooms (id, number, room_type, floor, status, version)
                    VALUES (?, ?, ?, ?, ?, 0);
                    """,
                    (seed.room_id, seed.number, seed.room_type, seed.floor, seed.status.value),
                )
                self._write_activities(cursor, seed.room_id, activities)
            conn.commit()

    def list_rooms(self) -> list[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT room_id, activity_id, label, category, position, completed
                FROM RoomActivities
                ORDER BY room_id ASC, position ASC;
                """
            )
            activities_by_room: dict[str, list[Activity]] = {}
            for row in cursor.fetchall():
                activities_by_room.setdefault(str(row["room_id"]), []).append(
                    self._row_to_activity(row)
                )

            cursor.execute(
                """
                SELECT id, number, room_type, floor, status,
                       assigned_worker_id, session_started_at, version
                FROM Rooms
                ORDER BY floor ASC, number ASC;
                """
            )
            return [
                Room(
                    room_id=str(row["id"]),
                    number=str(row["number"]),
                    room_type=str(row["room_type"]),
                    floor=int(row["floor"]),
                    status=RoomStatus(str(row["status"])),
                    activities=tuple(activities_by_room.get(str(row["id"]), [])),
                    assigned_worker_id=(
                        str(row["assigned_worker_id"])
                        if row["assigned_worker_id"] is not None
                        else None
                    ),
                    session_started_at=from_iso(row["session_started_at"]),
                    version=int(row["version"]),
                )
                for row in cursor.fetchall()
            ]

    def save_rooms(
        self,
        rooms: Sequence[tuple[Room, int]],
        *,
        assignment_events: Iterable[AssignmentEvent] = (),
        history_record: Optional[HistoryRecord] = None,
        message: Optional[Message] = None,
    ) -> None:
        """Persist room transitions and their ledger appends in one transaction.

        Each room's `version` must already be `expected_version + 1`; a
        mismatch against the stored version means another writer got there
        first.
        """
        events = list(assignment_events)
        with self._connect() as conn:
            cursor = conn.cursor()
            for room, expected_version in rooms:
                cursor.execute(
                    """
                    UPDATE Rooms
                    SET status = ?,
                        assigned_worker_id = ?,
                        session_started_at = ?,
                        version = ?
                    WHERE id = ? AND version = ?;
                    """,
                    (
                        room.status.value,
                        room.assigned_worker_id,
                        to_iso(room.session_started_at),
                        room.version,
                        room.room_id,
                        expected_version,
                    ),
                )
                if cursor.rowcount != 1:
                    conn.rollback()
                    raise ConcurrentConflictError(
                        f"Room {room.number} was modified by another operation"
                    )
                self._write_activities(cursor, room.room_id, room.activities)

            if events:
                cursor.executemany(
                    """
                    INSERT OR IGNORE INTO AssignmentEvents (
                        worker_id, room_number, assigned_by, created_at
                    )
                    VALUES (?, ?, ?, ?);
                    """,
                    [
                        (
                            event.worker_id,
                            event.room_number,
                            event.assigned_by.value,
                            to_iso(event.timestamp),
                        )
                        for event in events
                    ],
                )
            if history_record is not None:
                self._insert_history_record(cursor, history_record)
            if message is not None:
                self._insert_message(cursor, message)
            conn.commit()

    @staticmethod
    def _write_activities(
        cursor: sqlite3.Cursor,
        room_id: str,
        activities: Sequence[Activity],
    ) -> None:
        cursor.execute("DELETE FROM RoomActivities WHERE room_id = ?;", (room_id,))
        cursor.executemany(
            """
            INSERT INTO RoomActivities (
                room_id, activity_id, label, category, position, completed
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    room_id,
                    activity.activity_id,
                    activity.label,
                    activity.category,
                    activity.position,
                    int(activity.completed),
                )
                for activity in activities
            ],
        )

    @staticmethod
    def _row_to_activity(row: sqlite3.Row) -> Activity:
        return Activity(
            activity_id=str(row["activity_id"]),
            label=str(row["label"]),
            category=str(row["category"]),
            position=int(row["position"]),
            completed=bool(row["completed"]),
        )

    # --- Task catalog ------------------------------------------------------

    def list_task_catalog(self) -> list[tuple[str, tuple[str, ...]]]:
        """Return categories in first-insertion order with their ordered labels."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT category, label FROM TaskCatalog ORDER BY id ASC;")
            catalog: dict[str, list[str]] = {}
            for row in cursor.fetchall():
                catalog.setdefault(str(row["category"]), []).append(str(row["label"]))
        return [(category, tuple(labels)) for category, labels in catalog.items()]

    def add_catalog_task(self, category: str, label: str) -> bool:
        """Insert a template task; returns False when it already exists."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO TaskCatalog (category, label) VALUES (?, ?);",
                (category, label),
            )
            conn.commit()
            return cursor.rowcount == 1

    def remove_catalog_task(self, category: str, label: str) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM TaskCatalog WHERE category = ? AND label = ?;",
                (category, label),
            )
            conn.commit()
            return cursor.rowcount > 0

    # --- Assignment log ----------------------------------------------------

    def list_assignment_events(self, worker_id: str) -> list[AssignmentEvent]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT worker_id, room_number, assigned_by, created_at
                FROM AssignmentEvents
                WHERE worker_id = ?
                ORDER BY id ASC;
                """,
                (worker_id,),
            )
            return [
                AssignmentEvent(
                    worker_id=str(row["worker_id"]),
                    room_number=str(row["room_number"]),
                    assigned_by=AssignmentInitiator(str(row["assigned_by"])),
                    timestamp=from_iso(row["created_at"]),
                )
                for row in cursor.fetchall()
            ]

    def count_assignment_events(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM AssignmentEvents;")
            return int(cursor.fetchone()["count"])

    # --- Completion log ----------------------------------------------------

    @staticmethod
    def _insert_history_record(cursor: sqlite3.Cursor, record: HistoryRecord) -> None:
        cursor.execute(
            """
            INSERT INTO CleaningHistory (
                id, room_id, room_number, room_type, floor, worker_id,
                cleaning_date, started_at, ended_at, duration_seconds, activities_json
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                record.record_id,
                record.room_id,
                record.room_number,
                record.room_type,
                record.floor,
                record.worker_id,
                record.cleaning_date.isoformat(),
                to_iso(record.started_at),
                to_iso(record.ended_at),
                record.duration_seconds,
                json.dumps(
                    [
                        {
                            "activity_id": activity.activity_id,
                            "label": activity.label,
                            "category": activity.category,
                            "position": activity.position,
                            "completed": activity.completed,
                        }
                        for activity in record.activities
                    ]
                ),
            ),
        )

    def list_history(
        self,
        *,
        worker_id: Optional[str] = None,
        room_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[HistoryRecord]:
        """Return completion records newest first; date bounds are inclusive."""
        clauses: list[str] = []
        params: list[str] = []
        if worker_id is not None:
            clauses.append("worker_id = ?")
            params.append(worker_id)
        if room_id is not None:
            clauses.append("room_id = ?")
            params.append(room_id)
        if date_from is not None:
            clauses.append("cleaning_date >= ?")
            params.append(date_from.isoformat())
        if date_to is not None:
            clauses.append("cleaning_date <= ?")
            params.append(date_to.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT id, room_id, room_number, room_type, floor, worker_id,
                       cleaning_date, started_at, ended_at, duration_seconds,
                       activities_json
                FROM CleaningHistory
                {where}
                ORDER BY ended_at DESC, id DESC;
                """,
                tuple(params),
            )
            return [
                HistoryRecord(
                    record_id=str(row["id"]),
                    room_id=str(row["room_id"]),
                    room_number=str(row["room_number"]),
                    room_type=str(row["room_type"]),
                    floor=int(row["floor"]),
                    cleaning_date=date.fromisoformat(str(row["cleaning_date"])),
                    started_at=from_iso(row["started_at"]),
                    ended_at=from_iso(row["ended_at"]),
                    duration_seconds=int(row["duration_seconds"]),
                    activities=tuple(
                        Activity(**item) for item in json.loads(row["activities_json"])
                    ),
                    worker_id=str(row["worker_id"]),
                )
                for row in cursor.fetchall()
            ]

    def count_history_records(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM CleaningHistory;")
            return int(cursor.fetchone()["count"])

    # --- Message log -------------------------------------------------------

    @staticmethod
    def _insert_message(cursor: sqlite3.Cursor, message: Message) -> None:
        cursor.execute(
            """
            INSERT INTO Messages (
                id, room_id, room_number, worker_id,
                time_spent_seconds, time_spent, note, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                message.message_id,
                message.room_id,
                message.room_number,
                message.worker_id,
                message.time_spent_seconds,
                message.time_spent,
                message.note,
                to_iso(message.timestamp),
            ),
        )

    def list_messages(self) -> list[Message]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, room_id, room_number, worker_id,
                       time_spent_seconds, time_spent, note, created_at
                FROM Messages
                ORDER BY created_at ASC, rowid ASC;
                """
            )
            return [
                Message(
                    message_id=str(row["id"]),
                    room_id=str(row["room_id"]),
                    room_number=str(row["room_number"]),
                    worker_id=str(row["worker_id"]),
                    time_spent_seconds=int(row["time_spent_seconds"]),
                    time_spent=str(row["time_spent"]),
                    note=str(row["note"]),
                    timestamp=from_iso(row["created_at"]),
                )
                for row in cursor.fetchall()
            ]
