"""Controller layer for room views and in-session cleaning actions."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from housekeeping.controllers.dependencies import get_housekeeping_service, to_http_exception
from housekeeping.controllers.schemas import (
    AbandonRequest,
    HistoryPayload,
    MessagePayload,
    RoomListResponse,
    RoomPayload,
    StartCleaningRequest,
    StatusSummaryResponse,
    ToggleResponse,
    history_payload,
    message_payload,
    room_payload,
    toggle_response,
)
from housekeeping.domain.errors import HousekeepingError
from housekeeping.domain.models import RoomStatus
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("", response_model=RoomListResponse, status_code=status.HTTP_200_OK)
async def list_rooms(
    room_status: Optional[RoomStatus] = Query(default=None, alias="status"),
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> RoomListResponse:
    try:
        now = service.now()
        rooms = service.rooms_by_status(room_status)
        return RoomListResponse(rooms=[room_payload(room, now) for room in rooms])
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list rooms",
        ) from exc


@router.get("/summary", response_model=StatusSummaryResponse, status_code=status.HTTP_200_OK)
async def status_summary(
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> StatusSummaryResponse:
    counts = service.status_summary()
    return StatusSummaryResponse(counts=counts, total=sum(counts.values()))


@router.get("/checkout_queue", response_model=RoomListResponse, status_code=status.HTTP_200_OK)
async def checkout_queue(
    floor: Optional[int] = Query(default=None),
    number: Optional[str] = Query(default=None, min_length=1),
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> RoomListResponse:
    now = service.now()
    rooms = service.checkout_queue(floor=floor, number_query=number)
    return RoomListResponse(rooms=[room_payload(room, now) for room in rooms])


@router.get("/{room_id}", response_model=RoomPayload, status_code=status.HTTP_200_OK)
async def get_room(
    room_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> RoomPayload:
    try:
        return room_payload(service.get_room(room_id), service.now())
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{room_id}/start", response_model=RoomPayload, status_code=status.HTTP_200_OK)
async def start_cleaning(
    room_id: str,
    payload: StartCleaningRequest,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> RoomPayload:
    try:
        room = service.start_cleaning(room_id, payload.worker_id)
        return room_payload(room, service.now())
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected start cleaning failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start cleaning",
        ) from exc


@router.post(
    "/{room_id}/activities/{activity_id}/toggle",
    response_model=ToggleResponse,
    status_code=status.HTTP_200_OK,
)
async def toggle_activity(
    room_id: str,
    activity_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> ToggleResponse:
    try:
        outcome = service.toggle_activity(room_id, activity_id)
        return toggle_response(outcome, service.now())
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected activity toggle failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to toggle activity",
        ) from exc


@router.post("/{room_id}/finish", response_model=HistoryPayload, status_code=status.HTTP_200_OK)
async def finish_room(
    room_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> HistoryPayload:
    try:
        return history_payload(service.finish_room(room_id))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected finish failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to finish room",
        ) from exc


@router.post("/{room_id}/abandon", response_model=MessagePayload, status_code=status.HTTP_200_OK)
async def abandon_room(
    room_id: str,
    payload: Optional[AbandonRequest] = None,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> MessagePayload:
    try:
        note = payload.note if payload is not None else None
        return message_payload(service.abandon_room(room_id, note))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected abandon failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to abandon room",
        ) from exc
