"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the housekeeping services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from housekeeping.controllers.assignment_controller import router as assignment_router
from housekeeping.controllers.ledger_controller import router as ledger_router
from housekeeping.controllers.room_controller import router as room_router
from housekeeping.controllers.worker_controller import router as worker_router
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.housekeeping_service import HousekeepingService
from housekeeping.utils.clock import Clock
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are attached to app.state so controllers resolve them through
    FastAPI dependencies; every dependency is traceable from this function.
    """
    settings = settings or get_settings()

    repository = DataRepository(settings)
    housekeeping_service = HousekeepingService(
        repository=repository,
        settings=settings,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(room_router)
    app.include_router(assignment_router)
    app.include_router(worker_router)
    app.include_router(ledger_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.housekeeping_service = housekeeping_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Order matters:
      1. Schema must exist before seeding.
      2. The task catalog is seeded before rooms, which copy it.
      3. The registry loads last so in-progress sessions resume where they were.
    """
    settings: Settings = app.state.settings
    repository: DataRepository = app.state.repository
    housekeeping_service: HousekeepingService = app.state.housekeeping_service

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    logger.info("Startup: seeding default task catalog")
    repository.seed_task_catalog_if_empty()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo workers and rooms (skipped if rooms exist)")
        repository.seed_demo_data_if_empty()

    logger.info("Startup: loading room registry")
    housekeeping_service.load()

    logger.info("Startup complete | system ready")


# Module-level app object for uvicorn
app = create_app()
