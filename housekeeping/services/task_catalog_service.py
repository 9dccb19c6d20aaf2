"""Editable activity template applied to every room."""

from __future__ import annotations

from typing import Optional

from housekeeping.domain.errors import CatalogValidationError
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.room_registry import RoomRegistry
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class TaskCatalogService:
    """Category -> ordered labels template.

    Additions are merged into rooms that lack the label; removals only
    change the template, rooms keep whatever activities they already have.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._registry = registry

    def list_tasks(self) -> list[tuple[str, tuple[str, ...]]]:
        return self._repository.list_task_catalog()

    def add_task(self, category: str, label: str) -> list[tuple[str, tuple[str, ...]]]:
        cleaned_category = self._clean(category, "category")
        cleaned_label = self._clean(label, "label")
        if cleaned_label in dict(self.list_tasks()).get(cleaned_category, ()):
            raise CatalogValidationError(
                f"Task '{cleaned_label}' already exists in category '{cleaned_category}'"
            )

        # Template row is written only once every room carries the task.
        updated_rooms = self._registry.apply_catalog_addition(
            [(cleaned_category, (cleaned_label,))]
        )
        if not self._repository.add_catalog_task(cleaned_category, cleaned_label):
            raise CatalogValidationError(
                f"Task '{cleaned_label}' already exists in category '{cleaned_category}'"
            )

        logger.info(
            "Catalog task added | category=%s | label=%s | rooms_updated=%s",
            cleaned_category,
            cleaned_label,
            len(updated_rooms),
        )
        return self.list_tasks()

    def remove_task(self, category: str, label: str) -> list[tuple[str, tuple[str, ...]]]:
        cleaned_category = self._clean(category, "category")
        cleaned_label = self._clean(label, "label")
        if not self._repository.remove_catalog_task(cleaned_category, cleaned_label):
            raise CatalogValidationError(
                f"Task '{cleaned_label}' does not exist in category '{cleaned_category}'"
            )
        logger.info(
            "Catalog task removed | category=%s | label=%s",
            cleaned_category,
            cleaned_label,
        )
        return self.list_tasks()

    @staticmethod
    def _clean(value: str, field_name: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise CatalogValidationError(f"Task {field_name} must not be empty")
        return cleaned
