"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from housekeeping.domain.errors import (
    CatalogValidationError,
    ConcurrentConflictError,
    HousekeepingError,
    InvalidTransitionError,
    NotFoundError,
)
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.config import get_settings


def get_housekeeping_service(request: Request) -> HousekeepingService:
    service = getattr(request.app.state, "housekeeping_service", None)
    if service is None:
        repository = getattr(request.app.state, "repository", None)
        if repository is not None:
            service = HousekeepingService(repository=repository, settings=get_settings())
            service.load()
            request.app.state.housekeeping_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Housekeeping service is not initialized",
        )
    return service


def to_http_exception(exc: HousekeepingError) -> HTTPException:
    """Translate a workflow error into the HTTP status callers act on."""
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (InvalidTransitionError, ConcurrentConflictError)):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, CatalogValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=str(exc))
