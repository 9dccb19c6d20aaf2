"""Escalation channel from workers to the manager."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from housekeeping.domain.models import Message, Room
from housekeeping.repository.data_repository import DataRepository
from housekeeping.utils.clock import elapsed_seconds, format_elapsed
from housekeeping.utils.config import Settings, get_settings


class MessageBus:
    """Ordered audit trail of abandoned sessions; messages carry no resolved flag."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def compose_abandonment(
        self,
        room: Room,
        worker_id: str,
        note: Optional[str],
        timestamp: datetime,
    ) -> Message:
        seconds = elapsed_seconds(room.session_started_at, timestamp)
        cleaned_note = (note or "").strip() or self._settings.default_abandon_note
        return Message(
            message_id=uuid4().hex,
            room_id=room.room_id,
            room_number=room.number,
            worker_id=worker_id,
            time_spent_seconds=seconds,
            time_spent=format_elapsed(seconds),
            note=cleaned_note,
            timestamp=timestamp,
        )

    def messages(self) -> list[Message]:
        return self._repository.list_messages()
