"""Controller layer for history, manager messages and the task catalog."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from housekeeping.controllers.dependencies import get_housekeeping_service, to_http_exception
from housekeeping.controllers.schemas import (
    HistoryListResponse,
    MessageListResponse,
    TaskCatalogResponse,
    TaskRequest,
    history_payload,
    message_payload,
    task_catalog_response,
)
from housekeeping.domain.errors import HousekeepingError
from housekeeping.services.history_service import HistoryValidationError
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["ledger"])


@router.get("/history", response_model=HistoryListResponse, status_code=status.HTTP_200_OK)
async def history(
    worker_id: Optional[str] = Query(default=None),
    room_id: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> HistoryListResponse:
    try:
        records = service.history(
            worker_id=worker_id,
            room_id=room_id,
            date_from=date_from,
            date_to=date_to,
        )
        return HistoryListResponse(records=[history_payload(record) for record in records])
    except HistoryValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected history query failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load history",
        ) from exc


@router.get("/messages", response_model=MessageListResponse, status_code=status.HTTP_200_OK)
async def messages(
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> MessageListResponse:
    return MessageListResponse(
        messages=[message_payload(message) for message in service.messages()]
    )


@router.get("/tasks", response_model=TaskCatalogResponse, status_code=status.HTTP_200_OK)
async def list_tasks(
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> TaskCatalogResponse:
    return task_catalog_response(service.list_tasks())


@router.post("/tasks", response_model=TaskCatalogResponse, status_code=status.HTTP_201_CREATED)
async def add_task(
    payload: TaskRequest,
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> TaskCatalogResponse:
    try:
        return task_catalog_response(service.add_task(payload.category, payload.label))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected task catalog update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add task",
        ) from exc


@router.delete("/tasks", response_model=TaskCatalogResponse, status_code=status.HTTP_200_OK)
async def remove_task(
    category: str = Query(min_length=1),
    label: str = Query(min_length=1),
    service: HousekeepingService = Depends(get_housekeeping_service),
) -> TaskCatalogResponse:
    try:
        return task_catalog_response(service.remove_task(category, label))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
