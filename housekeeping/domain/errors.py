"""Exception taxonomy shared by the workflow services."""

from __future__ import annotations


class HousekeepingError(Exception):
    """Base class for all business-level workflow failures."""


class NotFoundError(HousekeepingError):
    """Raised when a referenced entity does not exist."""


class RoomNotFoundError(NotFoundError):
    """Raised when a room id is unknown to the registry."""


class WorkerNotFoundError(NotFoundError):
    """Raised when a worker id is unknown to the directory."""


class NegotiationNotFoundError(NotFoundError):
    """Raised when a negotiation id is unknown or already resolved."""


class ActivityNotFoundError(NotFoundError):
    """Raised when an activity id does not belong to the room."""


class InvalidTransitionError(HousekeepingError):
    """Raised when an operation is not allowed from the room's current state."""


class IncompleteActivitiesError(InvalidTransitionError):
    """Raised when finishing a room that still has open activities."""


class InactiveWorkerError(InvalidTransitionError):
    """Raised when work is offered to a deactivated worker."""


class NegotiationPendingError(InvalidTransitionError):
    """Raised when a room already has an unresolved negotiation."""


class ConcurrentConflictError(HousekeepingError):
    """Raised when another operation on the same room won the race."""


class CatalogValidationError(HousekeepingError):
    """Raised when task catalog input is invalid."""
