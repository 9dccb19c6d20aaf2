"""Controller layer for the manager's propose / accept / reject protocol."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from housekeeping.controllers.dependencies import get_housekeeping_service, to_http_exception
from housekeeping.controllers.schemas import (
    NegotiationListResponse,
    NegotiationPayload,
    ProposeAssignmentRequest,
    ProposeReassignmentRequest,
    ResolveAssignmentRequest,
    negotiation_payload,
)
from housekeeping.domain.errors import HousekeepingError
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post("", response_model=NegotiationPayload, status_code=status.HTTP_201_CREATED)
async def propose_assignment(
    payload: ProposeAssignmentRequest,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> NegotiationPayload:
    try:
        negotiation = service.propose_assignment(payload.room_id, payload.worker_id)
        return negotiation_payload(negotiation)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment proposal failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to propose assignment",
        ) from exc


@router.post("/reassign", response_model=NegotiationPayload, status_code=status.HTTP_201_CREATED)
async def propose_reassignment(
    payload: ProposeReassignmentRequest,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> NegotiationPayload:
    try:
        negotiation = service.propose_reassignment(
            payload.room_id,
            payload.from_worker_id,
            payload.to_worker_id,
        )
        return negotiation_payload(negotiation)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected reassignment proposal failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to propose reassignment",
        ) from exc


@router.get("/pending", response_model=NegotiationListResponse, status_code=status.HTTP_200_OK)
async def pending_negotiations(
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> NegotiationListResponse:
    return NegotiationListResponse(
        negotiations=[negotiation_payload(item) for item in service.pending_negotiations()]
    )


@router.post(
    "/{negotiation_id}/resolve",
    response_model=NegotiationPayload,
    status_code=status.HTTP_200_OK,
)
async def resolve_assignment(
    negotiation_id: str,
    payload: ResolveAssignmentRequest,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> NegotiationPayload:
    try:
        resolved = service.resolve_assignment(negotiation_id, payload.accepted)
        return negotiation_payload(resolved)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected negotiation resolve failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to resolve negotiation",
        ) from exc
