"""Read access to the externally provisioned worker directory."""

from __future__ import annotations

from typing import Optional

from housekeeping.domain.errors import InactiveWorkerError, WorkerNotFoundError
from housekeeping.domain.models import Worker
from housekeeping.repository.data_repository import DataRepository
from housekeeping.utils.config import Settings, get_settings


class WorkerDirectory:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def list_workers(self, *, active_only: bool = False) -> list[Worker]:
        workers = self._repository.list_workers()
        if active_only:
            return [worker for worker in workers if worker.active]
        return workers

    def get_worker(self, worker_id: str) -> Worker:
        worker = self._repository.get_worker(worker_id)
        if worker is None:
            raise WorkerNotFoundError(f"Worker '{worker_id}' not found")
        return worker

    def require_active(self, worker_id: str) -> Worker:
        """Deactivated workers keep their history but cannot take new rooms."""
        worker = self.get_worker(worker_id)
        if not worker.active:
            raise InactiveWorkerError(f"Worker '{worker_id}' is not active")
        return worker
