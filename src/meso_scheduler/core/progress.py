"""
Progress aggregation over completed training.

Pure functions folding completed sets into muscle-group series, iteration
totals, per-exercise iteration-over-iteration changes and dashboard
statistics.  Volume is always weight x reps.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Sequence

from .completion import is_day_complete
from .config import ROLLING_WINDOW, TOP_EXERCISE_COUNT
from .models import (
    CompletedSet,
    Exercise,
    ExerciseHistory,
    ExerciseSet,
    Mesocycle,
    PlanInstance,
    WorkoutInstance,
)


@dataclass
class MetricPoint:
    """Accumulated value of one (category, workout instance) pair."""

    value: float
    date: datetime


# category -> workout instance id -> point, in encounter order
MuscleGroupSeries = dict[str, dict[int, MetricPoint]]


@dataclass
class IterationVolume:
    iteration_number: int
    total_volume: float


@dataclass
class ExerciseProgress:
    """
    One exercise inside one iteration of a plan day.

    ``previous_volume`` is None when there is no baseline: either no earlier
    completed iteration of the day, or the exercise was not performed in it.
    ``is_new`` marks the latter case.
    """

    exercise_id: int
    name: str
    category: str
    order: int
    volume: float
    volume_change: float
    previous_volume: float | None
    is_new: bool
    sets: list[ExerciseSet] = field(default_factory=list)


@dataclass
class IterationWorkout:
    iteration_number: int
    workout_instance_id: int
    completed_at: datetime | None
    exercises: list[ExerciseProgress] = field(default_factory=list)


@dataclass
class DayProgress:
    day_number: int
    is_rest_day: bool
    workout_name: str | None
    iterations: list[IterationWorkout] = field(default_factory=list)


@dataclass
class MesocycleDetail:
    """Per-day, per-iteration progress of one mesocycle."""

    mesocycle_id: int
    name: str
    plan_name: str
    days: list[DayProgress] = field(default_factory=list)
    iteration_volumes: list[IterationVolume] = field(default_factory=list)


@dataclass
class VolumePoint:
    workout_instance_id: int
    date: datetime
    volume: float
    sets: int


@dataclass
class PersonalRecords:
    max_weight: float = 0.0
    max_reps: int = 0
    max_volume: float = 0.0  # best single-session volume


@dataclass
class ExerciseStats:
    exercise: Exercise
    total_sets: int
    total_volume: float
    prs: PersonalRecords
    last_performed: datetime | None
    volume_progression: list[VolumePoint] = field(default_factory=list)


# =============================================================================
# MUSCLE-GROUP SERIES
# =============================================================================


def build_muscle_group_metric(
    histories: Sequence[ExerciseHistory],
    value_of: Callable[[CompletedSet], float],
) -> MuscleGroupSeries:
    """
    Accumulate a per-set value by (exercise category, workout instance).

    Each pair keeps the workout's ``started_at`` as its date.  Pairs appear
    in the order their first set is encountered.

    Args:
        histories: Completed sets grouped by exercise
        value_of: Value contributed by one set

    Returns:
        Series keyed by category, then workout instance id
    """
    series: MuscleGroupSeries = {}
    for history in histories:
        category = history.exercise.category
        for s in history.sets:
            points = series.setdefault(category, {})
            point = points.get(s.workout_instance_id)
            if point is None:
                point = MetricPoint(value=0.0, date=s.started_at)
                points[s.workout_instance_id] = point
            point.value += value_of(s)
    return series


def aggregate_volume(histories: Sequence[ExerciseHistory]) -> MuscleGroupSeries:
    """Volume (weight x reps) per muscle group and workout session."""
    return build_muscle_group_metric(histories, lambda s: s.weight * s.reps)


def aggregate_set_counts(histories: Sequence[ExerciseHistory]) -> MuscleGroupSeries:
    """Number of sets per muscle group and workout session."""
    return build_muscle_group_metric(histories, lambda s: 1)


# =============================================================================
# ITERATIONS
# =============================================================================


def instance_volume(instance: PlanInstance) -> float:
    """Total volume of every workout performed in one iteration."""
    return sum(
        day.workout_instance.volume
        for day in instance.days
        if day.workout_instance is not None
    )


def aggregate_iteration_volumes(mesocycle: Mesocycle) -> list[IterationVolume]:
    """
    Total volume per materialized iteration, ordered by iteration number.

    Iterations without workouts report 0.
    """
    return [
        IterationVolume(
            iteration_number=instance.iteration_number,
            total_volume=instance_volume(instance),
        )
        for instance in sorted(mesocycle.instances, key=lambda i: i.iteration_number)
    ]


def compute_volume_change(current_volume: float, previous_volume: float) -> float:
    """
    Percent change of volume against a previous value.

    change = (current - previous) / previous x 100

    Returns 0 when there is no previous volume.
    """
    if not previous_volume:
        return 0.0
    return (current_volume - previous_volume) / previous_volume * 100


def _previous_completed_workout(
    instances: list[PlanInstance],
    iteration_number: int,
    day_number: int,
) -> WorkoutInstance | None:
    """Latest lower iteration whose same plan day has a completed workout."""
    for instance in reversed(instances):
        if instance.iteration_number >= iteration_number:
            continue
        day = instance.get_day(day_number)
        if day is None or day.workout_instance is None:
            continue
        if is_day_complete(day) and day.workout_instance.completed_at is not None:
            return day.workout_instance
    return None


def _exercise_order(template_ids: list[int], workout: WorkoutInstance) -> list[int]:
    """Template exercises first, then any other exercise that has sets."""
    ordered = list(template_ids)
    for s in workout.sets:
        if s.exercise_id not in ordered:
            ordered.append(s.exercise_id)
    return ordered


def build_mesocycle_detail(
    mesocycle: Mesocycle,
    exercises: dict[int, Exercise],
) -> MesocycleDetail:
    """
    Per-day, per-iteration exercise progress for one mesocycle.

    Each exercise's change is measured against the nearest lower iteration
    in which the same plan day was completed, for that exercise alone.

    Args:
        mesocycle: Mesocycle with its materialized iterations
        exercises: Exercise catalogue by id

    Returns:
        MesocycleDetail
    """
    instances = sorted(mesocycle.instances, key=lambda i: i.iteration_number)
    days: list[DayProgress] = []

    for plan_day in mesocycle.plan.days:
        template_ids = plan_day.workout.ordered_exercise_ids if plan_day.workout else []
        day_progress = DayProgress(
            day_number=plan_day.day_number,
            is_rest_day=plan_day.is_rest_day,
            workout_name=plan_day.workout.name if plan_day.workout else None,
        )

        for instance in instances:
            day = instance.get_day(plan_day.day_number)
            if day is None or day.workout_instance is None:
                continue
            workout = day.workout_instance
            baseline = _previous_completed_workout(
                instances, instance.iteration_number, plan_day.day_number
            )

            entries: list[ExerciseProgress] = []
            for order, exercise_id in enumerate(_exercise_order(template_ids, workout), 1):
                sets = workout.sets_for(exercise_id)
                volume = sum(s.volume for s in sets)

                previous_volume: float | None = None
                is_new = False
                if baseline is not None:
                    prev_sets = baseline.sets_for(exercise_id)
                    if prev_sets:
                        previous_volume = sum(s.volume for s in prev_sets)
                    else:
                        is_new = True

                exercise = exercises.get(exercise_id)
                entries.append(
                    ExerciseProgress(
                        exercise_id=exercise_id,
                        name=exercise.name if exercise else f"Exercise {exercise_id}",
                        category=exercise.category if exercise else "UNKNOWN",
                        order=order,
                        volume=volume,
                        volume_change=compute_volume_change(volume, previous_volume or 0.0),
                        previous_volume=previous_volume,
                        is_new=is_new,
                        sets=sets,
                    )
                )

            day_progress.iterations.append(
                IterationWorkout(
                    iteration_number=instance.iteration_number,
                    workout_instance_id=workout.id,
                    completed_at=workout.completed_at,
                    exercises=entries,
                )
            )

        days.append(day_progress)

    return MesocycleDetail(
        mesocycle_id=mesocycle.id,
        name=mesocycle.name,
        plan_name=mesocycle.plan.name,
        days=days,
        iteration_volumes=aggregate_iteration_volumes(mesocycle),
    )


# =============================================================================
# SMOOTHING
# =============================================================================


def _trailing_windows(values: Sequence[float], window: int) -> list[Sequence[float]]:
    if window < 1:
        raise ValueError("window must be >= 1")
    return [values[max(0, i - window + 1): i + 1] for i in range(len(values))]


def rolling_average(values: Sequence[float], window: int = ROLLING_WINDOW) -> list[float]:
    """
    Trailing mean over the current point and up to ``window - 1`` before it.

    For index i the window is [max(0, i - window + 1), i], so with the
    default window of 4 that is [max(0, i - 3), i].
    """
    return [sum(w) / len(w) for w in _trailing_windows(values, window)]


def rolling_sum(values: Sequence[float], window: int = ROLLING_WINDOW) -> list[float]:
    """Trailing sum over the same window as rolling_average()."""
    return [float(sum(w)) for w in _trailing_windows(values, window)]


# =============================================================================
# EXERCISE STATISTICS
# =============================================================================


def exercise_stats(history: ExerciseHistory) -> ExerciseStats:
    """
    Lifetime statistics of one exercise.

    Args:
        history: Completed sets of the exercise

    Returns:
        ExerciseStats with PRs and a date-sorted volume progression
    """
    by_workout: dict[int, list[CompletedSet]] = {}
    for s in history.sets:
        by_workout.setdefault(s.workout_instance_id, []).append(s)

    prs = PersonalRecords()
    total_volume = 0.0
    for s in history.sets:
        total_volume += s.volume
        prs.max_weight = max(prs.max_weight, s.weight)
        prs.max_reps = max(prs.max_reps, s.reps)

    progression: list[VolumePoint] = []
    for workout_id, sets in by_workout.items():
        volume = sum(s.volume for s in sets)
        prs.max_volume = max(prs.max_volume, volume)
        progression.append(
            VolumePoint(
                workout_instance_id=workout_id,
                date=sets[0].completed_at,
                volume=volume,
                sets=len(sets),
            )
        )
    progression.sort(key=lambda p: p.date)

    return ExerciseStats(
        exercise=history.exercise,
        total_sets=len(history.sets),
        total_volume=total_volume,
        prs=prs,
        last_performed=progression[-1].date if progression else None,
        volume_progression=progression,
    )


def top_exercises(stats: list[ExerciseStats], count: int = TOP_EXERCISE_COUNT) -> list[ExerciseStats]:
    """Exercises with the most sets, highest first."""
    return sorted(stats, key=lambda s: s.total_sets, reverse=True)[:count]
