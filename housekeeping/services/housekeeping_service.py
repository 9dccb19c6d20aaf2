"""Facade combining registry, negotiation, sessions and ledgers for callers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from housekeeping.domain.models import (
    AssignmentEvent,
    HistoryRecord,
    Message,
    Negotiation,
    NegotiationOutcome,
    Room,
    RoomStatus,
    Worker,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.assignment_service import AssignmentNegotiator
from housekeeping.services.cleaning_service import (
    BatchStatus,
    CleaningSessionService,
    ToggleOutcome,
    WorkerProgress,
)
from housekeeping.services.history_service import HistoryLedger, WorkerMetrics
from housekeeping.services.message_service import MessageBus
from housekeeping.services.notification_service import ChangeHandler, ChangeNotifier
from housekeeping.services.room_registry import RoomRegistry
from housekeeping.services.task_catalog_service import TaskCatalogService
from housekeeping.services.worker_directory import WorkerDirectory
from housekeeping.utils.clock import Clock, utc_now
from housekeeping.utils.config import Settings, get_settings


class HousekeepingService:
    """Coordinates propose -> accept -> clean -> finish/abandon for managers and workers."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        notifier: Optional[ChangeNotifier] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or utc_now
        self._registry = RoomRegistry(
            repository=self._repository,
            settings=self._settings,
            notifier=notifier,
            clock=self._clock,
        )
        self._workers = WorkerDirectory(repository=self._repository, settings=self._settings)
        self._ledger = HistoryLedger(
            repository=self._repository,
            registry=self._registry,
            settings=self._settings,
        )
        self._messages = MessageBus(repository=self._repository, settings=self._settings)
        self._negotiator = AssignmentNegotiator(
            registry=self._registry,
            workers=self._workers,
            ledger=self._ledger,
            settings=self._settings,
            clock=self._clock,
        )
        self._sessions = CleaningSessionService(
            registry=self._registry,
            workers=self._workers,
            ledger=self._ledger,
            messages=self._messages,
            settings=self._settings,
            clock=self._clock,
        )
        self._catalog = TaskCatalogService(
            registry=self._registry,
            repository=self._repository,
            settings=self._settings,
        )

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    def load(self) -> None:
        self._registry.load()

    def now(self) -> datetime:
        return self._clock()

    # --- Manager assignment -------------------------------------------------

    def propose_assignment(self, room_id: str, worker_id: str) -> Negotiation:
        return self._negotiator.propose(room_id, worker_id)

    def propose_reassignment(
        self,
        room_id: str,
        from_worker_id: str,
        to_worker_id: str,
    ) -> Negotiation:
        return self._negotiator.propose_reassignment(room_id, from_worker_id, to_worker_id)

    def resolve_assignment(self, negotiation_id: str, accepted: bool) -> Negotiation:
        resolved = self._negotiator.resolve(negotiation_id, accepted)
        if resolved.outcome is NegotiationOutcome.ACCEPTED and resolved.is_reassignment:
            self._sessions.sync_batch_clock(
                resolved.proposed_worker_id,
                started_at=self._clock(),
            )
            if resolved.from_worker_id:
                self._sessions.sync_batch_clock(resolved.from_worker_id)
        return resolved

    def pending_negotiations(self) -> list[Negotiation]:
        return self._negotiator.pending()

    # --- Worker session -----------------------------------------------------

    def select_rooms(self, worker_id: str, room_ids: Sequence[str]) -> list[str]:
        return self._sessions.select_rooms(worker_id, room_ids)

    def cancel_selection(self, worker_id: str, room_id: str) -> bool:
        return self._sessions.cancel_selection(worker_id, room_id)

    def selected_rooms(self, worker_id: str) -> list[str]:
        return self._sessions.selected_rooms(worker_id)

    def proceed(self, worker_id: str) -> list[Room]:
        return self._sessions.proceed(worker_id)

    def start_cleaning(self, room_id: str, worker_id: str) -> Room:
        return self._sessions.start_cleaning(room_id, worker_id)

    def toggle_activity(self, room_id: str, activity_id: str) -> ToggleOutcome:
        return self._sessions.toggle_activity(room_id, activity_id)

    def finish_room(self, room_id: str) -> HistoryRecord:
        return self._sessions.finish_room(room_id)

    def abandon_room(self, room_id: str, note: Optional[str] = None) -> Message:
        return self._sessions.abandon_room(room_id, note)

    def batch_status(self, worker_id: str) -> BatchStatus:
        self._workers.get_worker(worker_id)
        return self._sessions.batch_status(worker_id)

    def worker_progress(self, worker_id: str) -> WorkerProgress:
        self._workers.get_worker(worker_id)
        return self._sessions.worker_progress(worker_id)

    # --- Views --------------------------------------------------------------

    def get_room(self, room_id: str) -> Room:
        return self._registry.get_room(room_id)

    def rooms_by_status(self, status: Optional[RoomStatus] = None) -> list[Room]:
        if status is None:
            return self._registry.list_rooms()
        return self._registry.rooms_by_status(status)

    def active_worker_rooms(self, worker_id: str) -> list[Room]:
        self._workers.get_worker(worker_id)
        return self._registry.rooms_for_worker(worker_id)

    def status_summary(self) -> dict[RoomStatus, int]:
        return self._registry.status_summary()

    def checkout_queue(
        self,
        *,
        floor: Optional[int] = None,
        number_query: Optional[str] = None,
    ) -> list[Room]:
        return self._registry.checkout_queue(floor=floor, number_query=number_query)

    def list_workers(self, *, active_only: bool = False) -> list[Worker]:
        return self._workers.list_workers(active_only=active_only)

    def history(
        self,
        *,
        worker_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        room_id: Optional[str] = None,
    ) -> list[HistoryRecord]:
        return self._ledger.history(
            worker_id=worker_id,
            date_from=date_from,
            date_to=date_to,
            room_id=room_id,
        )

    def assignment_events(self, worker_id: str) -> list[AssignmentEvent]:
        self._workers.get_worker(worker_id)
        return self._ledger.assignment_events(worker_id)

    def worker_metrics(self, worker_id: str) -> WorkerMetrics:
        self._workers.get_worker(worker_id)
        return self._ledger.worker_metrics(worker_id)

    def messages(self) -> list[Message]:
        return self._messages.messages()

    # --- Task catalog -------------------------------------------------------

    def list_tasks(self) -> list[tuple[str, tuple[str, ...]]]:
        return self._catalog.list_tasks()

    def add_task(self, category: str, label: str) -> list[tuple[str, tuple[str, ...]]]:
        return self._catalog.add_task(category, label)

    def remove_task(self, category: str, label: str) -> list[tuple[str, tuple[str, ...]]]:
        return self._catalog.remove_task(category, label)

    # --- Notifications ------------------------------------------------------

    def subscribe(self, handler: ChangeHandler) -> None:
        self._registry.notifier.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        self._registry.notifier.unsubscribe(handler)
