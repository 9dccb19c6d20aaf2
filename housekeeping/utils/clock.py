"""Time source and elapsed-time helpers.

Elapsed time is always derived from a stored start timestamp, so nothing in
the service needs a running counter.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Optional


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_seconds(started_at: Optional[datetime], now: datetime) -> int:
    """Whole seconds between `started_at` and `now`; zero when never started."""
    if started_at is None:
        return 0
    delta = (now - started_at).total_seconds()
    return max(0, int(math.floor(delta)))


def format_elapsed(seconds: int) -> str:
    """Render seconds as MM:SS (minutes may exceed 59)."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


def format_elapsed_long(seconds: int) -> str:
    """Render seconds as HH:MM:SS."""
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
