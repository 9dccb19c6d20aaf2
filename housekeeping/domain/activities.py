"""Ordered task-completion rules for a room's activities."""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, Sequence

from housekeeping.domain.errors import ActivityNotFoundError
from housekeeping.domain.models import Activity


_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(label: str) -> str:
    slug = _SLUG_PATTERN.sub("-", label.strip().lower()).strip("-")
    return slug or "activity"


def build_activities(catalog: Iterable[tuple[str, Sequence[str]]]) -> tuple[Activity, ...]:
    """Create fresh, uncompleted activities from a category -> labels catalog."""
    activities: list[Activity] = []
    used_ids: set[str] = set()
    for category, labels in catalog:
        for label in labels:
            activity_id = _unique_id(slugify(label), used_ids)
            used_ids.add(activity_id)
            activities.append(
                Activity(
                    activity_id=activity_id,
                    label=label,
                    category=category,
                    position=len(activities),
                )
            )
    return tuple(activities)


def merge_catalog(
    activities: Sequence[Activity],
    catalog: Iterable[tuple[str, Sequence[str]]],
) -> tuple[Activity, ...]:
    """Append catalog entries whose label the room does not have yet.

    Existing activities keep their position and completion flag, so the
    prefix order inside every category is unchanged.
    """
    merged = list(activities)
    known_labels = {activity.label for activity in merged}
    used_ids = {activity.activity_id for activity in merged}
    next_position = max((activity.position for activity in merged), default=-1) + 1
    for category, labels in catalog:
        for label in labels:
            if label in known_labels:
                continue
            activity_id = _unique_id(slugify(label), used_ids)
            used_ids.add(activity_id)
            known_labels.add(label)
            merged.append(
                Activity(
                    activity_id=activity_id,
                    label=label,
                    category=category,
                    position=next_position,
                )
            )
            next_position += 1
    return tuple(merged)


def _unique_id(candidate: str, used_ids: set[str]) -> str:
    if candidate not in used_ids:
        return candidate
    suffix = 2
    while f"{candidate}-{suffix}" in used_ids:
        suffix += 1
    return f"{candidate}-{suffix}"


def find_activity(activities: Sequence[Activity], activity_id: str) -> Activity:
    for activity in activities:
        if activity.activity_id == activity_id:
            return activity
    raise ActivityNotFoundError(f"Activity '{activity_id}' not found")


def can_toggle(activities: Sequence[Activity], activity_id: str) -> bool:
    """An activity may be unchecked at any time, or checked once every
    predecessor in its category is complete."""
    target = find_activity(activities, activity_id)
    if target.completed:
        return True
    predecessors = [
        activity
        for activity in activities
        if activity.category == target.category and activity.position < target.position
    ]
    return all(activity.completed for activity in predecessors)


def toggle(
    activities: Sequence[Activity],
    activity_id: str,
) -> tuple[tuple[Activity, ...], bool]:
    """Return the updated activities and whether the toggle was applied."""
    if not can_toggle(activities, activity_id):
        return tuple(activities), False
    updated = tuple(
        replace(activity, completed=not activity.completed)
        if activity.activity_id == activity_id
        else activity
        for activity in activities
    )
    return updated, True


def count_completed(activities: Sequence[Activity]) -> tuple[int, int]:
    completed = sum(1 for activity in activities if activity.completed)
    return completed, len(activities)
