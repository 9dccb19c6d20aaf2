from __future__ import annotations

import pytest

from housekeeping.domain.activities import (
    build_activities,
    can_toggle,
    count_completed,
    merge_catalog,
    slugify,
    toggle,
)
from housekeeping.domain.errors import ActivityNotFoundError
from housekeeping.utils.config import DEFAULT_TASK_CATALOG


def _complete(activities, *activity_ids):
    for activity_id in activity_ids:
        activities, applied = toggle(activities, activity_id)
        assert applied
    return activities


def test_build_activities_uses_slug_ids_and_catalog_order():
    activities = build_activities(DEFAULT_TASK_CATALOG)

    assert len(activities) == 14
    assert [activity.position for activity in activities] == list(range(14))
    assert activities[0].activity_id == "clean-mirror"
    assert activities[3].activity_id == "clean-shower-bathtub"
    assert activities[6].category == "bedroom"
    assert not any(activity.completed for activity in activities)


def test_slugify_handles_punctuation_and_blank_labels():
    assert slugify("  Check Mini-Bar ") == "check-mini-bar"
    assert slugify("!!!") == "activity"


def test_toggle_requires_every_predecessor_in_category():
    activities = build_activities(DEFAULT_TASK_CATALOG)

    updated, applied = toggle(activities, "scrub-toilet")
    assert applied is False
    assert updated == activities

    activities = _complete(activities, "clean-mirror", "scrub-toilet")
    assert can_toggle(activities, "clean-sink")
    assert not can_toggle(activities, "replace-towels")


def test_categories_are_gated_independently():
    activities = build_activities(DEFAULT_TASK_CATALOG)

    activities = _complete(activities, "change-bed-sheets", "vacuum-floor")

    assert count_completed(activities) == (2, 14)
    assert not can_toggle(activities, "scrub-toilet")


def test_uncheck_is_always_allowed_even_mid_sequence():
    activities = build_activities(DEFAULT_TASK_CATALOG)
    activities = _complete(activities, "clean-mirror", "scrub-toilet", "clean-sink")

    activities, applied = toggle(activities, "clean-mirror")

    assert applied is True
    assert count_completed(activities) == (2, 14)
    # Re-checking the first activity is fine; later ones now wait for it.
    assert can_toggle(activities, "clean-mirror")


def test_unknown_activity_raises():
    with pytest.raises(ActivityNotFoundError):
        toggle(build_activities(DEFAULT_TASK_CATALOG), "polish-chandelier")


def test_merge_catalog_appends_missing_labels_and_keeps_flags():
    activities = _complete(build_activities(DEFAULT_TASK_CATALOG), "clean-mirror")

    merged = merge_catalog(activities, [("washroom", ("Clean Mirror", "Refill Soap"))])

    assert len(merged) == 15
    assert merged[0].completed is True
    assert merged[-1].activity_id == "refill-soap"
    assert merged[-1].position == 14
    assert merge_catalog(merged, [("washroom", ("Refill Soap",))]) == merged
