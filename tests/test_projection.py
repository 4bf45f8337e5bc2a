"""
Schedule projection tests.

Covers upcoming-day projection (stored remaining days plus generated
placeholder days), the user-wide history window, and graceful handling of
inconsistent stored state.
"""

import logging
from datetime import datetime, timedelta

import pytest

from meso_scheduler.core.config import VIRTUAL_DAY_ID
from meso_scheduler.core.iteration import build_iteration, current_instance, refresh_instance_status
from meso_scheduler.core.models import (
    Mesocycle,
    PlanDay,
    PlanInstance,
    PlanInstanceDay,
    TrainingPlan,
    WorkoutExercise,
    WorkoutInstance,
    WorkoutTemplate,
)
from meso_scheduler.core.projection import (
    ProjectionInput,
    RealDay,
    VirtualDay,
    collect_previous_days,
    project_schedule,
    project_upcoming,
    schedule_sort_key,
)

NOW = datetime(2026, 3, 10, 12, 0)

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _plan(pattern: str = "WR", plan_id: int = 1) -> TrainingPlan:
    """Plan from a pattern string: W = workout day, R = rest day."""
    days = []
    for number, kind in enumerate(pattern, 1):
        workout = None
        if kind == "W":
            workout = WorkoutTemplate(
                id=number,
                name=f"Workout {number}",
                exercises=[WorkoutExercise(exercise_id=1, order=1)],
            )
        days.append(PlanDay(id=number, day_number=number, is_rest_day=kind == "R", workout=workout))
    return TrainingPlan(id=plan_id, name="Test plan", days=days)


def _instance(plan: TrainingPlan, iteration: int, iterations: int, base_id: int = 0) -> PlanInstance:
    return build_iteration(
        plan,
        iteration,
        iterations,
        instance_id=base_id + iteration,
        first_day_id=(base_id + iteration) * 10,
    )


def _complete_day(day: PlanInstanceDay, when: datetime) -> None:
    if not day.is_rest_day:
        day.workout_instance = WorkoutInstance(id=day.id, started_at=when - timedelta(hours=1), completed_at=when)
    day.is_complete = True
    day.updated_at = when


def _complete_instance(instance: PlanInstance, when: datetime) -> PlanInstance:
    for day in instance.days:
        _complete_day(day, when)
    refresh_instance_status(instance, when)
    return instance


def _mesocycle(
    plan: TrainingPlan,
    instances: list[PlanInstance],
    iterations: int = 3,
    meso_id: int = 1,
    status: str = "IN_PROGRESS",
) -> Mesocycle:
    return Mesocycle(
        id=meso_id,
        name=f"Block {meso_id}",
        user_id="local",
        plan=plan,
        iterations=iterations,
        status=status,
        instances=instances,
    )


def _coords(days) -> list[tuple[int, int]]:
    return [(d.iteration_number, d.day_number) for d in days]


# ===========================================================================
# Upcoming days
# ===========================================================================


class TestUpcomingDays:

    def test_no_instances_generates_every_iteration(self):
        """N=3, two-day plan, nothing stored: 6 placeholders in training order."""
        meso = _mesocycle(_plan("WR"), [], iterations=3, status="NOT_STARTED")
        upcoming = project_upcoming(ProjectionInput.build(meso))

        assert _coords(upcoming) == [(1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2)]
        assert all(isinstance(d, VirtualDay) for d in upcoming)
        assert all(d.id == VIRTUAL_DAY_ID for d in upcoming)

    @pytest.mark.parametrize("iterations, pattern", [(1, "W"), (2, "WRW"), (4, "WWRWR")])
    def test_exhaustive_when_nothing_materialized(self, iterations, pattern):
        meso = _mesocycle(_plan(pattern), [], iterations=iterations, status="NOT_STARTED")
        upcoming = project_upcoming(ProjectionInput.build(meso))
        assert len(upcoming) == iterations * len(pattern)

    def test_after_completed_iteration_generates_the_rest(self):
        """Iteration 1 complete, iteration 2 not created, N=3: four placeholders."""
        plan = _plan("WR")
        first = _complete_instance(_instance(plan, 1, 3), NOW - timedelta(days=1))
        meso = _mesocycle(plan, [first], iterations=3)

        assert current_instance(meso.instances) is None
        upcoming = project_upcoming(ProjectionInput.build(meso))

        assert _coords(upcoming) == [(2, 1), (2, 2), (3, 1), (3, 2)]
        assert all(d.is_virtual for d in upcoming)

    def test_current_iteration_keeps_stored_days(self):
        plan = _plan("WR")
        first = _instance(plan, 1, 3)
        _complete_day(first.days[0], NOW)
        refresh_instance_status(first, NOW)
        meso = _mesocycle(plan, [first], iterations=3)

        upcoming = project_upcoming(ProjectionInput.build(meso))

        assert _coords(upcoming) == [(1, 2), (2, 1), (2, 2), (3, 1), (3, 2)]
        assert isinstance(upcoming[0], RealDay)
        assert upcoming[0].id == first.days[1].id
        assert upcoming[0].plan_instance_id == first.id
        assert all(isinstance(d, VirtualDay) for d in upcoming[1:])

    def test_not_started_iteration_is_current(self):
        plan = _plan("WR")
        first = _instance(plan, 1, 2)
        meso = _mesocycle(plan, [first], iterations=2, status="NOT_STARTED")

        upcoming = project_upcoming(ProjectionInput.build(meso))

        assert _coords(upcoming) == [(1, 1), (1, 2), (2, 1), (2, 2)]
        assert [d.is_virtual for d in upcoming] == [False, False, True, True]

    def test_materialized_later_iteration_not_generated_twice(self):
        plan = _plan("WR")
        first = _instance(plan, 1, 3)
        first.status = "IN_PROGRESS"
        second = _instance(plan, 2, 3)
        meso = _mesocycle(plan, [first, second], iterations=3)

        upcoming = project_upcoming(ProjectionInput.build(meso))

        assert _coords(upcoming) == [(1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2)]
        assert [d.is_virtual for d in upcoming] == [False, False, False, False, True, True]

    def test_final_iteration_complete_leaves_nothing(self):
        plan = _plan("WR")
        first = _complete_instance(_instance(plan, 1, 1), NOW)
        meso = _mesocycle(plan, [first], iterations=1)
        assert project_upcoming(ProjectionInput.build(meso)) == []

    def test_complete_mesocycle_has_nothing_upcoming(self):
        plan = _plan("WR")
        first = _instance(plan, 1, 3)
        meso = _mesocycle(plan, [first], iterations=3, status="COMPLETE")
        assert project_upcoming(ProjectionInput.build(meso)) == []

    def test_upcoming_is_sorted(self):
        plan = _plan("WRWR")
        first = _instance(plan, 1, 3)
        _complete_day(first.days[2], NOW)
        refresh_instance_status(first, NOW)
        meso = _mesocycle(plan, [first], iterations=3)

        upcoming = project_upcoming(ProjectionInput.build(meso))
        assert upcoming == sorted(upcoming, key=schedule_sort_key)
        assert (1, 3) not in _coords(upcoming)

    def test_virtual_days_never_complete_or_owned(self):
        meso = _mesocycle(_plan("WR"), [], iterations=1, status="NOT_STARTED")
        for day in project_upcoming(ProjectionInput.build(meso)):
            assert day.kind == "virtual"
            assert day.plan_instance_id == VIRTUAL_DAY_ID
            assert not day.is_complete
            assert day.workout_instance is None
            assert day.mesocycle_id == meso.id


class TestInconsistentState:

    def test_unset_status_yields_empty_and_warns(self, caplog):
        plan = _plan("WR")
        broken = _instance(plan, 1, 3)
        broken.status = None
        meso = _mesocycle(plan, [broken], iterations=3)
        logger = logging.getLogger("test.projection")

        with caplog.at_level(logging.WARNING, logger="test.projection"):
            upcoming = project_upcoming(ProjectionInput.build(meso), logger=logger)

        assert upcoming == []
        assert "no upcoming days" in caplog.text

    def test_mirroring_violation_yields_empty(self, caplog):
        plan = _plan("WRW")
        first = _instance(plan, 1, 3)
        first.days.pop()
        meso = _mesocycle(plan, [first], iterations=3)

        with caplog.at_level(logging.WARNING):
            upcoming = project_upcoming(ProjectionInput.build(meso))

        assert upcoming == []

    def test_unset_status_after_completed_iteration_is_skipped(self):
        plan = _plan("WR")
        first = _complete_instance(_instance(plan, 1, 3), NOW)
        second = _instance(plan, 2, 3)
        second.status = None
        meso = _mesocycle(plan, [first, second], iterations=3)

        upcoming = project_upcoming(ProjectionInput.build(meso))
        assert _coords(upcoming) == [(3, 1), (3, 2)]


# ===========================================================================
# Previous days
# ===========================================================================


class TestPreviousDays:

    def test_most_recent_first_across_mesocycles(self):
        plan_a, plan_b = _plan("WR", 1), _plan("W", 2)
        old = _complete_instance(_instance(plan_a, 1, 1, base_id=0), NOW - timedelta(days=20))
        meso_a = _mesocycle(plan_a, [old], iterations=1, meso_id=1, status="COMPLETE")

        recent = _instance(plan_b, 1, 2, base_id=100)
        _complete_day(recent.days[0], NOW - timedelta(days=2))
        refresh_instance_status(recent, NOW)
        meso_b = _mesocycle(plan_b, [recent], iterations=2, meso_id=2)

        schedule = project_schedule(ProjectionInput.build(meso_b, [meso_a, meso_b]), NOW)

        assert [d.mesocycle_id for d in schedule.previous_days] == [2, 1, 1]
        dates = [d.completed_at for d in schedule.previous_days]
        assert dates == sorted(dates, reverse=True)
        assert all(isinstance(d, RealDay) for d in schedule.previous_days)

    def test_equal_completion_dates_keep_input_order(self):
        plan = _plan("WRW")
        first = _complete_instance(_instance(plan, 1, 2), NOW - timedelta(days=1))
        meso = _mesocycle(plan, [first], iterations=2)

        previous = collect_previous_days(ProjectionInput.build(meso).history, NOW)

        assert [d.day_number for d in previous] == [1, 2, 3]

    def test_window_excludes_old_and_future_days(self):
        plan = _plan("WWW")
        first = _instance(plan, 1, 1)
        _complete_day(first.days[0], NOW - timedelta(days=400))
        _complete_day(first.days[1], NOW - timedelta(days=365))
        _complete_day(first.days[2], NOW + timedelta(days=3))
        meso = _mesocycle(plan, [first], iterations=1)

        previous = collect_previous_days(ProjectionInput.build(meso).history, NOW)
        assert [d.day_number for d in previous] == [2]

    def test_custom_window(self):
        plan = _plan("WW")
        first = _instance(plan, 1, 1)
        _complete_day(first.days[0], NOW - timedelta(days=10))
        _complete_day(first.days[1], NOW - timedelta(days=1))
        meso = _mesocycle(plan, [first], iterations=1)

        previous = collect_previous_days(ProjectionInput.build(meso).history, NOW, window_days=7)
        assert [d.day_number for d in previous] == [2]

    def test_incomplete_days_are_not_history(self):
        plan = _plan("WR")
        first = _instance(plan, 1, 1)
        first.days[0].workout_instance = WorkoutInstance(id=1, started_at=NOW)
        meso = _mesocycle(plan, [first], iterations=1)

        assert collect_previous_days(ProjectionInput.build(meso).history, NOW) == []

    def test_no_day_both_previous_and_upcoming(self):
        plan = _plan("WRWR")
        first = _instance(plan, 1, 3)
        _complete_day(first.days[0], NOW - timedelta(days=3))
        _complete_day(first.days[1], NOW - timedelta(days=2))
        refresh_instance_status(first, NOW)
        meso = _mesocycle(plan, [first], iterations=3)

        schedule = project_schedule(ProjectionInput.build(meso), NOW)

        previous = {(d.plan_instance_id, d.day_number) for d in schedule.previous_days}
        upcoming = {(d.plan_instance_id, d.day_number) for d in schedule.upcoming_days}
        assert previous == {(first.id, 1), (first.id, 2)}
        assert previous.isdisjoint(upcoming)
