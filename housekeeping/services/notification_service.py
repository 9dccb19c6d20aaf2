"""In-process change notifications feeding manager and worker views."""

from __future__ import annotations

from threading import Lock
from typing import Callable

from housekeeping.domain.models import ChangeEvent
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Thread-safe subscriber list; handlers run synchronously after commit."""

    def __init__(self) -> None:
        self._handlers: list[ChangeHandler] = []
        self._lock = Lock()

    def subscribe(self, handler: ChangeHandler) -> None:
        if not callable(handler):
            raise TypeError(f"Handler must be callable, got {type(handler)}")
        with self._lock:
            if any(existing == handler for existing in self._handlers):
                return
            self._handlers.append(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        with self._lock:
            self._handlers = [existing for existing in self._handlers if existing != handler]

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                # Remaining handlers still run; the transition stays committed.
                logger.exception(
                    "Change handler failed | kind=%s | room_id=%s",
                    event.kind,
                    event.room_id,
                )
