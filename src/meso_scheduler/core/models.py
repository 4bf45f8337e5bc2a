"""
Data models for meso-scheduler.

All core dataclasses representing plans, mesocycles, iterations and the
workouts performed inside them.  Models hold plain values only; the
relations a database would carry (user ownership, foreign keys) are
resolved by the store before the engine sees them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from .config import MAX_ITERATIONS, MIN_ITERATIONS, STATUSES

Status = Literal["NOT_STARTED", "IN_PROGRESS", "COMPLETE"]


def _validate_status(status: str | None, allow_unset: bool = False) -> None:
    if status is None and allow_unset:
        return
    if status not in STATUSES:
        raise ValueError(f"Invalid status: {status!r}. Must be one of {STATUSES}")


@dataclass
class Exercise:
    """
    A catalogue exercise.

    ``category`` is the muscle group the exercise is counted against in
    muscle-group volume series (e.g. "CHEST", "BACK").
    """

    id: int
    name: str
    category: str

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Exercise name must be non-empty")
        if not self.category.strip():
            raise ValueError("Exercise category must be non-empty")


@dataclass
class WorkoutExercise:
    """Reference from a workout template to one exercise, with its position."""

    exercise_id: int
    order: int


@dataclass
class WorkoutTemplate:
    """An ordered list of exercises performed on a training day."""

    id: int
    name: str
    exercises: list[WorkoutExercise] = field(default_factory=list)

    @property
    def ordered_exercise_ids(self) -> list[int]:
        """Exercise ids sorted by their ``order`` field."""
        return [we.exercise_id for we in sorted(self.exercises, key=lambda we: we.order)]


@dataclass
class PlanDay:
    """
    One day of a training plan.

    Rest days never reference a workout template.
    """

    id: int
    day_number: int  # 1-indexed position in the plan
    is_rest_day: bool
    workout: WorkoutTemplate | None = None

    def __post_init__(self) -> None:
        """Validate plan day."""
        if self.day_number < 1:
            raise ValueError("day_number must be >= 1")
        if self.is_rest_day and self.workout is not None:
            raise ValueError(f"Rest day {self.day_number} cannot reference a workout")


@dataclass
class TrainingPlan:
    """
    A reusable multi-day plan.

    Days are kept sorted by ``day_number`` and must number 1..D with no gaps.
    """

    id: int
    name: str
    days: list[PlanDay] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate that day numbers are dense and 1-indexed."""
        if not self.days:
            raise ValueError("A training plan needs at least one day")
        self.days.sort(key=lambda d: d.day_number)
        numbers = [d.day_number for d in self.days]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Plan day numbers must be 1..{len(numbers)}, got {numbers}")

    @property
    def day_numbers(self) -> frozenset[int]:
        return frozenset(d.day_number for d in self.days)

    def get_day(self, day_number: int) -> PlanDay | None:
        """Return the plan day with the given number, or None."""
        for day in self.days:
            if day.day_number == day_number:
                return day
        return None


@dataclass
class ExerciseSet:
    """A single performed set."""

    exercise_id: int
    set_number: int
    weight: float
    reps: int

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.set_number < 1:
            raise ValueError("set_number must be >= 1")
        if self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps < 0:
            raise ValueError("reps must be non-negative")

    @property
    def volume(self) -> float:
        """Volume contribution: weight x reps."""
        return self.weight * self.reps


@dataclass
class WorkoutInstance:
    """
    One performed training session.

    Created lazily when the user starts the workout of a plan day.
    """

    id: int
    started_at: datetime
    completed_at: datetime | None = None
    sets: list[ExerciseSet] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    @property
    def volume(self) -> float:
        """Total volume of all sets in this session."""
        return sum(s.volume for s in self.sets)

    def sets_for(self, exercise_id: int) -> list[ExerciseSet]:
        """Sets of one exercise, ordered by set number."""
        return sorted(
            (s for s in self.sets if s.exercise_id == exercise_id),
            key=lambda s: s.set_number,
        )


@dataclass
class PlanInstanceDay:
    """
    A concrete day of one iteration.

    ``is_complete`` is authoritative for rest days.  For workout days the
    linked workout's ``completed_at`` also counts; see core/completion.py.
    """

    id: int
    plan_day: PlanDay
    is_complete: bool = False
    workout_instance: WorkoutInstance | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate day data."""
        if self.plan_day.is_rest_day and self.workout_instance is not None:
            raise ValueError(
                f"Rest day {self.plan_day.day_number} cannot have a workout instance"
            )

    @property
    def day_number(self) -> int:
        return self.plan_day.day_number

    @property
    def is_rest_day(self) -> bool:
        return self.plan_day.is_rest_day


@dataclass
class PlanInstance:
    """
    One iteration of a mesocycle.

    ``status`` may be None for instances written by older tooling that
    never assigned one.
    """

    id: int
    iteration_number: int
    status: Status | None
    rir: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    days: list[PlanInstanceDay] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate instance data."""
        if self.iteration_number < 1:
            raise ValueError("iteration_number must be >= 1")
        if self.rir < 0:
            raise ValueError("rir must be non-negative")
        _validate_status(self.status, allow_unset=True)

    def get_day(self, day_number: int) -> PlanInstanceDay | None:
        """Return this iteration's day with the given plan day number, or None."""
        for day in self.days:
            if day.day_number == day_number:
                return day
        return None


@dataclass
class Mesocycle:
    """
    A training block: one plan repeated ``iterations`` times.

    Instances are materialized lazily, so ``instances`` may hold fewer than
    ``iterations`` entries.
    """

    id: int
    name: str
    user_id: str
    plan: TrainingPlan
    iterations: int
    status: Status = "NOT_STARTED"
    instances: list[PlanInstance] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate mesocycle data."""
        if not MIN_ITERATIONS <= self.iterations <= MAX_ITERATIONS:
            raise ValueError(
                f"iterations must be between {MIN_ITERATIONS} and {MAX_ITERATIONS}, "
                f"got {self.iterations}"
            )
        _validate_status(self.status)
        numbers = [i.iteration_number for i in self.instances]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Duplicate iteration numbers in mesocycle {self.id}: {numbers}")
        if any(n > self.iterations for n in numbers):
            raise ValueError(
                f"Mesocycle {self.id} has an instance beyond its {self.iterations} iterations"
            )
        self.instances.sort(key=lambda i: i.iteration_number)

    def get_instance(self, iteration_number: int) -> PlanInstance | None:
        """Return the materialized instance for an iteration, or None."""
        for instance in self.instances:
            if instance.iteration_number == iteration_number:
                return instance
        return None


@dataclass
class CompletedSet:
    """
    A set row joined with its workout session.

    This is the inbound shape for progress aggregation: only sets whose
    workout has been completed are ever turned into CompletedSet.
    """

    exercise_id: int
    set_number: int
    weight: float
    reps: int
    workout_instance_id: int
    started_at: datetime
    completed_at: datetime

    @property
    def volume(self) -> float:
        return self.weight * self.reps


@dataclass
class ExerciseHistory:
    """All completed sets of one exercise."""

    exercise: Exercise
    sets: list[CompletedSet] = field(default_factory=list)
