"""
Completion predicate for plan instance days.

Every consumer (iteration state, schedule projection, progress reporting
and the store) decides "is this day done?" through is_day_complete().
"""

from datetime import datetime

from .models import PlanInstanceDay


def is_day_complete(day: PlanInstanceDay) -> bool:
    """
    Decide whether a plan instance day is done.

    Rest days are complete only through their explicit flag.  Workout days
    are complete when their workout session was completed or the flag is set.

    Args:
        day: Plan instance day

    Returns:
        True if the day is complete
    """
    if day.plan_day.is_rest_day:
        return day.is_complete
    workout = day.workout_instance
    return (workout is not None and workout.completed_at is not None) or day.is_complete


def day_completed_at(day: PlanInstanceDay) -> datetime | None:
    """
    Timestamp at which a day was completed.

    Workout days use the session's ``completed_at`` and fall back to the
    day's ``updated_at`` when only the flag was set.  Rest days use
    ``updated_at``.  Returns None for incomplete days.
    """
    if not is_day_complete(day):
        return None
    if not day.plan_day.is_rest_day and day.workout_instance is not None:
        if day.workout_instance.completed_at is not None:
            return day.workout_instance.completed_at
    return day.updated_at
