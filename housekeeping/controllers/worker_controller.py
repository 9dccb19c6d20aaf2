"""Controller layer for worker-facing batch selection and per-worker views."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from housekeeping.controllers.dependencies import get_housekeeping_service, to_http_exception
from housekeeping.controllers.schemas import (
    AssignmentEventListResponse,
    BatchResponse,
    CancelSelectionResponse,
    ProgressResponse,
    RoomListResponse,
    SelectionResponse,
    SelectRoomsRequest,
    WorkerListResponse,
    WorkerMetricsResponse,
    assignment_event_payload,
    batch_response,
    metrics_response,
    progress_response,
    room_payload,
    worker_payload,
)
from housekeeping.domain.errors import HousekeepingError
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/workers", tags=["workers"])


@router.get("", response_model=WorkerListResponse, status_code=status.HTTP_200_OK)
async def list_workers(
    active_only: bool = Query(default=False),
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> WorkerListResponse:
    workers = service.list_workers(active_only=active_only)
    return WorkerListResponse(workers=[worker_payload(worker) for worker in workers])


@router.post(
    "/{worker_id}/selection",
    response_model=SelectionResponse,
    status_code=status.HTTP_200_OK,
)
async def select_rooms(
    worker_id: str,
    payload: SelectRoomsRequest,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> SelectionResponse:
    try:
        selected = service.select_rooms(worker_id, payload.room_ids)
        return SelectionResponse(worker_id=worker_id, selected_room_ids=selected)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc


@router.delete(
    "/{worker_id}/selection/{room_id}",
    response_model=CancelSelectionResponse,
    status_code=status.HTTP_200_OK,
)
async def cancel_selection(
    worker_id: str,
    room_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> CancelSelectionResponse:
    removed = service.cancel_selection(worker_id, room_id)
    return CancelSelectionResponse(
        worker_id=worker_id,
        selected_room_ids=service.selected_rooms(worker_id),
        removed=removed,
    )


@router.post("/{worker_id}/proceed", response_model=RoomListResponse, status_code=status.HTTP_200_OK)
async def proceed(
    worker_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> RoomListResponse:
    try:
        rooms = service.proceed(worker_id)
        now = service.now()
        return RoomListResponse(rooms=[room_payload(room, now) for room in rooms])
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected batch proceed failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start batch",
        ) from exc


@router.get("/{worker_id}/batch", response_model=BatchResponse, status_code=status.HTTP_200_OK)
async def batch_status(
    worker_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> BatchResponse:
    try:
        return batch_response(service.batch_status(worker_id), service.now())
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{worker_id}/rooms", response_model=RoomListResponse, status_code=status.HTTP_200_OK)
async def active_worker_rooms(
    worker_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> RoomListResponse:
    try:
        now = service.now()
        rooms = service.active_worker_rooms(worker_id)
        return RoomListResponse(rooms=[room_payload(room, now) for room in rooms])
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/{worker_id}/progress",
    response_model=ProgressResponse,
    status_code=status.HTTP_200_OK,
)
async def worker_progress(
    worker_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> ProgressResponse:
    try:
        return progress_response(service.worker_progress(worker_id))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/{worker_id}/metrics",
    response_model=WorkerMetricsResponse,
    status_code=status.HTTP_200_OK,
)
async def worker_metrics(
    worker_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> WorkerMetricsResponse:
    try:
        return metrics_response(service.worker_metrics(worker_id))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/{worker_id}/assignments",
    response_model=AssignmentEventListResponse,
    status_code=status.HTTP_200_OK,
)
async def assignment_events(
    worker_id: str,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> AssignmentEventListResponse:
    try:
        events = service.assignment_events(worker_id)
        return AssignmentEventListResponse(
            events=[assignment_event_payload(event) for event in events]
        )
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
