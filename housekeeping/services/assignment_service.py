"""Propose / accept / reject protocol that hands rooms to workers."""

from __future__ import annotations

from dataclasses import replace
from threading import RLock
from typing import Optional
from uuid import uuid4

from housekeeping.domain.errors import (
    ConcurrentConflictError,
    InvalidTransitionError,
    NegotiationNotFoundError,
    NegotiationPendingError,
)
from housekeeping.domain.models import (
    AssignmentInitiator,
    Negotiation,
    NegotiationOutcome,
    RoomStatus,
)
from housekeeping.domain.transitions import ACTIVE_STATUSES
from housekeeping.services.history_service import HistoryLedger
from housekeeping.services.room_registry import RoomRegistry
from housekeeping.services.worker_directory import WorkerDirectory
from housekeeping.utils.clock import Clock, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class AssignmentNegotiator:
    """Keeps at most one pending negotiation per room until the worker answers.

    Negotiations live only in memory; there is no timeout, a proposal stays
    pending until `resolve` is called for it.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        workers: WorkerDirectory,
        ledger: HistoryLedger,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry
        self._workers = workers
        self._ledger = ledger
        self._clock = clock or utc_now
        self._lock = RLock()
        self._pending: dict[str, Negotiation] = {}
        self._pending_by_room: dict[str, str] = {}

    def propose(
        self,
        room_id: str,
        worker_id: str,
        *,
        is_reassignment: bool = False,
    ) -> Negotiation:
        """Open a pending negotiation for an initial assignment or a reassignment."""
        room = self._registry.get_room(room_id)
        if is_reassignment:
            if room.status not in ACTIVE_STATUSES:
                raise InvalidTransitionError(
                    f"Room {room.number} is '{room.status.value}'; only assigned or "
                    "in-cleaning rooms can be reassigned"
                )
            if room.assigned_worker_id == worker_id:
                raise InvalidTransitionError(
                    f"Room {room.number} is already assigned to '{worker_id}'"
                )
        elif room.status is not RoomStatus.CHECKOUT:
            raise InvalidTransitionError(
                f"Room {room.number} is '{room.status.value}'; only checkout rooms "
                "can be proposed"
            )
        self._workers.require_active(worker_id)

        with self._lock:
            if room_id in self._pending_by_room:
                raise NegotiationPendingError(
                    f"Room {room.number} already has a pending negotiation"
                )
            negotiation = Negotiation(
                negotiation_id=uuid4().hex,
                room_id=room_id,
                proposed_worker_id=worker_id,
                outcome=NegotiationOutcome.PENDING,
                is_reassignment=is_reassignment,
                proposed_at=self._clock(),
                from_worker_id=room.assigned_worker_id if is_reassignment else None,
            )
            self._pending[negotiation.negotiation_id] = negotiation
            self._pending_by_room[room_id] = negotiation.negotiation_id

        logger.info(
            "Negotiation proposed | id=%s | room=%s | worker=%s | reassignment=%s",
            negotiation.negotiation_id,
            room.number,
            worker_id,
            is_reassignment,
        )
        return negotiation

    def propose_reassignment(
        self,
        room_id: str,
        from_worker_id: str,
        to_worker_id: str,
    ) -> Negotiation:
        room = self._registry.get_room(room_id)
        if room.assigned_worker_id != from_worker_id:
            raise InvalidTransitionError(
                f"Room {room.number} is not assigned to '{from_worker_id}'"
            )
        return self.propose(room_id, to_worker_id, is_reassignment=True)

    def get(self, negotiation_id: str) -> Negotiation:
        with self._lock:
            negotiation = self._pending.get(negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundError(
                f"Negotiation '{negotiation_id}' not found or already resolved"
            )
        return negotiation

    def pending(self) -> list[Negotiation]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda item: item.proposed_at)

    def resolve(self, negotiation_id: str, accepted: bool) -> Negotiation:
        """Terminate a negotiation; acceptance applies the registry transition."""
        negotiation = self._take(negotiation_id)

        if not accepted:
            resolved = replace(negotiation, outcome=NegotiationOutcome.REJECTED)
            logger.info(
                "Negotiation rejected | id=%s | room_id=%s | worker=%s | reassignment=%s",
                negotiation.negotiation_id,
                negotiation.room_id,
                negotiation.proposed_worker_id,
                negotiation.is_reassignment,
            )
            return resolved

        with self._registry.guard(negotiation.room_id):
            room = self._registry.get_room(negotiation.room_id)
            self._workers.require_active(negotiation.proposed_worker_id)
            event = self._ledger.build_assignment_event(
                negotiation.proposed_worker_id,
                room,
                AssignmentInitiator.MANAGER,
                self._clock(),
            )
            if negotiation.is_reassignment:
                if (
                    room.status not in ACTIVE_STATUSES
                    or room.assigned_worker_id != negotiation.from_worker_id
                ):
                    raise ConcurrentConflictError(
                        f"Room {room.number} changed while the reassignment was pending"
                    )
                self._registry.reassign(
                    room.room_id,
                    negotiation.from_worker_id or "",
                    negotiation.proposed_worker_id,
                    event,
                )
            else:
                if room.status is not RoomStatus.CHECKOUT:
                    raise ConcurrentConflictError(
                        f"Room {room.number} left the checkout queue while the "
                        "assignment was pending"
                    )
                self._registry.assign(room.room_id, negotiation.proposed_worker_id, event)

        return replace(negotiation, outcome=NegotiationOutcome.ACCEPTED)

    def _take(self, negotiation_id: str) -> Negotiation:
        with self._lock:
            negotiation = self._pending.pop(negotiation_id, None)
            if negotiation is None:
                raise NegotiationNotFoundError(
                    f"Negotiation '{negotiation_id}' not found or already resolved"
                )
            self._pending_by_room.pop(negotiation.room_id, None)
            return negotiation
