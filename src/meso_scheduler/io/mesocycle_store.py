"""
JSON-based storage for plans, mesocycles and performed workouts.

A single JSON document holds the exercise catalogue, training plans and
mesocycles (with their iterations, days, workouts and sets).  Every change
rewrites the document through a temporary file and os.replace(), so a
write either lands completely or not at all.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from ..core.config import STATUS_COMPLETE, STATUS_IN_PROGRESS, STATUS_NOT_STARTED
from ..core.errors import IterationGateError, NotFoundError
from ..core.iteration import (
    build_iteration,
    can_create_iteration,
    can_start_iteration,
    next_iteration_number,
    refresh_instance_status,
    refresh_mesocycle_status,
    start_iteration,
)
from ..core.models import (
    CompletedSet,
    Exercise,
    ExerciseHistory,
    ExerciseSet,
    Mesocycle,
    PlanDay,
    PlanInstance,
    PlanInstanceDay,
    TrainingPlan,
    WorkoutExercise,
    WorkoutInstance,
    WorkoutTemplate,
)
from .serializers import (
    ValidationError,
    dict_to_exercise,
    dict_to_mesocycle,
    dict_to_plan,
    exercise_to_dict,
    mesocycle_to_dict,
    plan_to_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_USER = "local"

_ID_KINDS = (
    "exercise",
    "plan",
    "plan_day",
    "workout",
    "mesocycle",
    "instance",
    "day",
    "workout_instance",
)


@dataclass
class StoreData:
    """In-memory view of the stored document."""

    exercises: dict[int, Exercise] = field(default_factory=dict)
    plans: dict[int, TrainingPlan] = field(default_factory=dict)
    mesocycles: list[Mesocycle] = field(default_factory=list)
    next_ids: dict[str, int] = field(default_factory=lambda: {k: 1 for k in _ID_KINDS})

    def allocate(self, kind: str) -> int:
        """Return the next id of a kind and advance the counter."""
        value = self.next_ids.get(kind, 1)
        self.next_ids[kind] = value + 1
        return value


class MesocycleStore:
    """
    Manages the meso-scheduler JSON document.

    All lookups of user-owned data take a ``user_id``; a mesocycle that
    belongs to another user is reported as not found.
    """

    def __init__(self, store_path: str | Path, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the store.

        Args:
            store_path: Path to the JSON document
            clock: Source of "now" for status timestamps
        """
        self.store_path = Path(store_path)
        self.clock = clock

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        """Check if the store file exists."""
        return self.store_path.exists()

    def init(self) -> None:
        """
        Create an empty store if none exists.

        Creates parent directories if needed.
        """
        if not self.store_path.exists():
            self.save(StoreData())

    def load(self) -> StoreData:
        """
        Load the whole document.

        Raises:
            FileNotFoundError: If the store file doesn't exist
            ValidationError: If the document is malformed
        """
        if not self.store_path.exists():
            raise FileNotFoundError(
                f"Store not found: {self.store_path}. Run 'init' first."
            )

        try:
            with open(self.store_path, "r") as f:
                raw = json.load(f)
            exercises = {e.id: e for e in (dict_to_exercise(d) for d in raw.get("exercises", []))}
            plans = {p.id: p for p in (dict_to_plan(d) for d in raw.get("plans", []))}
            mesocycles = [dict_to_mesocycle(d, plans) for d in raw.get("mesocycles", [])]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Error parsing {self.store_path}: {e}") from e

        next_ids = {k: 1 for k in _ID_KINDS}
        next_ids.update({k: int(v) for k, v in raw.get("next_ids", {}).items()})
        return StoreData(
            exercises=exercises,
            plans=plans,
            mesocycles=mesocycles,
            next_ids=next_ids,
        )

    def save(self, data: StoreData) -> None:
        """
        Write the whole document atomically.

        The document is written to a temporary file in the same directory
        and moved over the store file; on failure the old file is untouched.
        """
        document: dict[str, Any] = {
            "next_ids": data.next_ids,
            "exercises": [exercise_to_dict(e) for e in data.exercises.values()],
            "plans": [plan_to_dict(p) for p in data.plans.values()],
            "mesocycles": [mesocycle_to_dict(m) for m in data.mesocycles],
        }
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.store_path.parent, prefix=".store-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.store_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @staticmethod
    def _find_mesocycle(data: StoreData, mesocycle_id: int, user_id: str) -> Mesocycle:
        for mesocycle in data.mesocycles:
            if mesocycle.id == mesocycle_id and mesocycle.user_id == user_id:
                return mesocycle
        raise NotFoundError(f"Mesocycle {mesocycle_id} not found")

    @staticmethod
    def _find_day(
        data: StoreData, day_id: int, user_id: str
    ) -> tuple[Mesocycle, PlanInstance, PlanInstanceDay]:
        for mesocycle in data.mesocycles:
            if mesocycle.user_id != user_id:
                continue
            for instance in mesocycle.instances:
                for day in instance.days:
                    if day.id == day_id:
                        return mesocycle, instance, day
        raise NotFoundError(f"Plan instance day {day_id} not found")

    @staticmethod
    def _find_workout(
        data: StoreData, workout_id: int, user_id: str
    ) -> tuple[Mesocycle, PlanInstance, PlanInstanceDay, WorkoutInstance]:
        for mesocycle in data.mesocycles:
            if mesocycle.user_id != user_id:
                continue
            for instance in mesocycle.instances:
                for day in instance.days:
                    if day.workout_instance is not None and day.workout_instance.id == workout_id:
                        return mesocycle, instance, day, day.workout_instance
        raise NotFoundError(f"Workout instance {workout_id} not found")

    def list_exercises(self) -> list[Exercise]:
        return sorted(self.load().exercises.values(), key=lambda e: e.id)

    def get_exercise_map(self) -> dict[int, Exercise]:
        return dict(self.load().exercises)

    def list_plans(self) -> list[TrainingPlan]:
        return sorted(self.load().plans.values(), key=lambda p: p.id)

    def get_plan(self, plan_id: int) -> TrainingPlan:
        """
        Raises:
            NotFoundError: If the plan does not exist
        """
        plan = self.load().plans.get(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    def list_mesocycles(self, user_id: str = DEFAULT_USER) -> list[Mesocycle]:
        """All mesocycles of a user, in creation order."""
        return [m for m in self.load().mesocycles if m.user_id == user_id]

    def get_mesocycle(self, mesocycle_id: int, user_id: str = DEFAULT_USER) -> Mesocycle:
        """
        Raises:
            NotFoundError: If the mesocycle does not exist or belongs to another user
        """
        return self._find_mesocycle(self.load(), mesocycle_id, user_id)

    # ------------------------------------------------------------------
    # Catalogue and plans
    # ------------------------------------------------------------------

    def add_exercise(self, name: str, category: str) -> Exercise:
        """Add an exercise to the catalogue; categories are stored upper-case."""
        data = self.load()
        exercise = Exercise(
            id=data.allocate("exercise"),
            name=name.strip(),
            category=category.strip().upper(),
        )
        data.exercises[exercise.id] = exercise
        self.save(data)
        return exercise

    def add_plan(
        self,
        name: str,
        days: list[tuple[bool, str | None, list[int]]],
    ) -> TrainingPlan:
        """
        Add a training plan.

        Args:
            name: Plan name
            days: (is_rest_day, workout_name, exercise_ids) per day, in order

        Raises:
            NotFoundError: If a referenced exercise does not exist
        """
        data = self.load()
        for _, _, exercise_ids in days:
            for exercise_id in exercise_ids:
                if exercise_id not in data.exercises:
                    raise NotFoundError(f"Exercise {exercise_id} not found")

        plan_days = []
        for day_number, (is_rest_day, workout_name, exercise_ids) in enumerate(days, 1):
            workout = None
            if not is_rest_day:
                workout = WorkoutTemplate(
                    id=data.allocate("workout"),
                    name=workout_name or f"Day {day_number}",
                    exercises=[
                        WorkoutExercise(exercise_id=exercise_id, order=order)
                        for order, exercise_id in enumerate(exercise_ids, 1)
                    ],
                )
            plan_days.append(
                PlanDay(
                    id=data.allocate("plan_day"),
                    day_number=day_number,
                    is_rest_day=is_rest_day,
                    workout=workout,
                )
            )

        plan = TrainingPlan(id=data.allocate("plan"), name=name.strip(), days=plan_days)
        data.plans[plan.id] = plan
        self.save(data)
        return plan

    # ------------------------------------------------------------------
    # Mesocycles
    # ------------------------------------------------------------------

    def create_mesocycle(
        self,
        name: str,
        plan_id: int,
        iterations: int,
        user_id: str = DEFAULT_USER,
        with_first_iteration: bool = False,
        max_rir: int | None = None,
    ) -> Mesocycle:
        """
        Create a NOT_STARTED mesocycle.

        By default iterations are created later, one at a time.  With
        ``with_first_iteration`` iteration 1 is materialized in the same save.

        Raises:
            NotFoundError: If the plan does not exist
        """
        data = self.load()
        plan = data.plans.get(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        mesocycle = Mesocycle(
            id=data.allocate("mesocycle"),
            name=name.strip(),
            user_id=user_id,
            plan=plan,
            iterations=iterations,
        )
        data.mesocycles.append(mesocycle)
        if with_first_iteration:
            self._materialize(data, mesocycle, 1, max_rir)
        self.save(data)
        return mesocycle

    def delete_mesocycle(self, mesocycle_id: int, user_id: str = DEFAULT_USER) -> None:
        """Delete a mesocycle with all its iterations, workouts and sets."""
        data = self.load()
        mesocycle = self._find_mesocycle(data, mesocycle_id, user_id)
        data.mesocycles.remove(mesocycle)
        self.save(data)

    def complete_mesocycle(self, mesocycle_id: int, user_id: str = DEFAULT_USER) -> Mesocycle:
        """
        Finish a mesocycle early.

        Iterations in progress are marked COMPLETE along with the mesocycle.

        Raises:
            ValidationError: If the mesocycle is already complete
        """
        data = self.load()
        mesocycle = self._find_mesocycle(data, mesocycle_id, user_id)
        if mesocycle.status == STATUS_COMPLETE:
            raise ValidationError(f"Mesocycle {mesocycle_id} is already complete")

        now = self.clock()
        for instance in mesocycle.instances:
            if instance.status == STATUS_IN_PROGRESS:
                instance.status = STATUS_COMPLETE
                instance.completed_at = now
        mesocycle.status = STATUS_COMPLETE
        mesocycle.completed_at = now
        self.save(data)
        return mesocycle

    # ------------------------------------------------------------------
    # Iterations
    # ------------------------------------------------------------------

    def create_iteration_atomic(
        self,
        plan: TrainingPlan,
        mesocycle_id: int,
        iteration_number: int,
        user_id: str = DEFAULT_USER,
        max_rir: int | None = None,
    ) -> PlanInstance:
        """
        Materialize one iteration with one day per plan day, all or nothing.

        The instance and every day are built in memory and written in a
        single atomic save; if anything fails the store is unchanged.

        Args:
            plan: Plan of the mesocycle
            mesocycle_id: Owning mesocycle
            iteration_number: Iteration to create (must be the next one)
            user_id: Owner of the mesocycle
            max_rir: RIR ceiling; defaults to the configured constant

        Returns:
            The created PlanInstance (NOT_STARTED)

        Raises:
            NotFoundError: If the mesocycle does not exist
            ValidationError: If ``plan`` is not the mesocycle's plan
            IterationGateError: If the iteration is out of order or beyond the target
        """
        data = self.load()
        mesocycle = self._find_mesocycle(data, mesocycle_id, user_id)
        if plan.id != mesocycle.plan.id:
            raise ValidationError(
                f"Plan {plan.id} is not the plan of mesocycle {mesocycle_id}"
            )
        if not can_create_iteration(mesocycle, iteration_number):
            raise IterationGateError(
                f"Cannot create iteration {iteration_number} of mesocycle {mesocycle_id}: "
                f"next is {next_iteration_number(mesocycle)} of {mesocycle.iterations} "
                "and all earlier iterations must be complete"
            )

        instance = self._materialize(data, mesocycle, iteration_number, max_rir)
        self.save(data)
        return instance

    @staticmethod
    def _materialize(
        data: StoreData,
        mesocycle: Mesocycle,
        iteration_number: int,
        max_rir: int | None,
    ) -> PlanInstance:
        """Build an iteration into ``data`` without saving."""
        instance_id = data.allocate("instance")
        first_day_id = data.next_ids.get("day", 1)
        data.next_ids["day"] = first_day_id + len(mesocycle.plan.days)
        kwargs = {"max_rir": max_rir} if max_rir is not None else {}
        instance = build_iteration(
            mesocycle.plan,
            iteration_number,
            mesocycle.iterations,
            instance_id,
            first_day_id,
            **kwargs,
        )
        mesocycle.instances.append(instance)
        logger.debug(
            "Created iteration %s of mesocycle %s with %d days",
            iteration_number,
            mesocycle.id,
            len(instance.days),
        )
        return instance

    def create_next_iteration(
        self,
        mesocycle_id: int,
        user_id: str = DEFAULT_USER,
        max_rir: int | None = None,
    ) -> PlanInstance:
        """Materialize the next iteration of a mesocycle."""
        mesocycle = self.get_mesocycle(mesocycle_id, user_id)
        return self.create_iteration_atomic(
            mesocycle.plan,
            mesocycle_id,
            next_iteration_number(mesocycle),
            user_id=user_id,
            max_rir=max_rir,
        )

    def start_iteration(
        self,
        mesocycle_id: int,
        iteration_number: int,
        user_id: str = DEFAULT_USER,
    ) -> PlanInstance:
        """
        Start a materialized iteration.

        Raises:
            NotFoundError: If the iteration has not been created
            IterationGateError: If earlier iterations are incomplete
        """
        data = self.load()
        mesocycle = self._find_mesocycle(data, mesocycle_id, user_id)
        instance = mesocycle.get_instance(iteration_number)
        if instance is None:
            raise NotFoundError(
                f"Iteration {iteration_number} of mesocycle {mesocycle_id} not found"
            )
        now = self.clock()
        start_iteration(instance, mesocycle.instances, now)
        refresh_mesocycle_status(mesocycle, now)
        self.save(data)
        return instance

    def _ensure_started(self, mesocycle: Mesocycle, instance: PlanInstance, now: datetime) -> None:
        if instance.status in (STATUS_IN_PROGRESS, STATUS_COMPLETE):
            return
        if not can_start_iteration(instance, mesocycle.instances):
            raise IterationGateError(
                f"Iteration {instance.iteration_number} cannot be trained yet; "
                "earlier iterations must be complete first"
            )
        start_iteration(instance, mesocycle.instances, now)

    # ------------------------------------------------------------------
    # Days and workouts
    # ------------------------------------------------------------------

    def start_workout(self, day_id: int, user_id: str = DEFAULT_USER) -> WorkoutInstance:
        """
        Create (or return) the workout session of a workout day.

        Starting the first workout of a NOT_STARTED iteration starts it.

        Raises:
            NotFoundError: If the day does not exist
            ValidationError: If the day is a rest day
            IterationGateError: If the iteration cannot be trained yet
        """
        data = self.load()
        mesocycle, instance, day = self._find_day(data, day_id, user_id)
        if day.is_rest_day:
            raise ValidationError(f"Day {day_id} is a rest day")
        if day.workout_instance is not None:
            return day.workout_instance

        now = self.clock()
        self._ensure_started(mesocycle, instance, now)
        day.workout_instance = WorkoutInstance(id=data.allocate("workout_instance"), started_at=now)
        day.updated_at = now
        refresh_mesocycle_status(mesocycle, now)
        self.save(data)
        return day.workout_instance

    def log_set(
        self,
        workout_id: int,
        exercise_id: int,
        weight: float,
        reps: int,
        user_id: str = DEFAULT_USER,
    ) -> ExerciseSet:
        """
        Append a set to a workout; set numbers count up per exercise.

        Raises:
            NotFoundError: If the workout or exercise does not exist
        """
        data = self.load()
        _, _, _, workout = self._find_workout(data, workout_id, user_id)
        if exercise_id not in data.exercises:
            raise NotFoundError(f"Exercise {exercise_id} not found")

        exercise_set = ExerciseSet(
            exercise_id=exercise_id,
            set_number=len(workout.sets_for(exercise_id)) + 1,
            weight=weight,
            reps=reps,
        )
        workout.sets.append(exercise_set)
        self.save(data)
        return exercise_set

    def complete_workout(self, workout_id: int, user_id: str = DEFAULT_USER) -> WorkoutInstance:
        """
        Complete a workout session and its day, then re-derive statuses.

        Raises:
            NotFoundError: If the workout does not exist
        """
        data = self.load()
        mesocycle, instance, day, workout = self._find_workout(data, workout_id, user_id)
        now = self.clock()
        if workout.completed_at is None:
            workout.completed_at = now
        day.is_complete = True
        day.updated_at = now
        refresh_instance_status(instance, now)
        refresh_mesocycle_status(mesocycle, now)
        self.save(data)
        return workout

    def complete_rest_day(self, day_id: int, user_id: str = DEFAULT_USER) -> PlanInstanceDay:
        """
        Mark a rest day complete, then re-derive statuses.

        Raises:
            NotFoundError: If the day does not exist
            ValidationError: If the day is not a rest day
            IterationGateError: If the iteration cannot be trained yet
        """
        data = self.load()
        mesocycle, instance, day = self._find_day(data, day_id, user_id)
        if not day.is_rest_day:
            raise ValidationError(f"Day {day_id} is not a rest day")

        now = self.clock()
        if instance.status in (STATUS_NOT_STARTED, None):
            self._ensure_started(mesocycle, instance, now)
        day.is_complete = True
        day.updated_at = now
        refresh_instance_status(instance, now)
        refresh_mesocycle_status(mesocycle, now)
        self.save(data)
        return day

    # ------------------------------------------------------------------
    # Progress inputs
    # ------------------------------------------------------------------

    def exercise_histories(
        self,
        user_id: str = DEFAULT_USER,
        mesocycle_id: int | None = None,
    ) -> list[ExerciseHistory]:
        """
        Completed sets grouped by exercise, in catalogue order.

        Only sets of completed workouts count.  With ``mesocycle_id`` only
        that mesocycle's workouts are included.
        """
        data = self.load()
        histories = {
            exercise_id: ExerciseHistory(exercise=exercise)
            for exercise_id, exercise in sorted(data.exercises.items())
        }
        for mesocycle in data.mesocycles:
            if mesocycle.user_id != user_id:
                continue
            if mesocycle_id is not None and mesocycle.id != mesocycle_id:
                continue
            for instance in mesocycle.instances:
                for day in instance.days:
                    workout = day.workout_instance
                    if workout is None or workout.completed_at is None:
                        continue
                    for s in workout.sets:
                        history = histories.get(s.exercise_id)
                        if history is None:
                            continue
                        history.sets.append(
                            CompletedSet(
                                exercise_id=s.exercise_id,
                                set_number=s.set_number,
                                weight=s.weight,
                                reps=s.reps,
                                workout_instance_id=workout.id,
                                started_at=workout.started_at,
                                completed_at=workout.completed_at,
                            )
                        )
        return list(histories.values())


def get_default_store_path() -> Path:
    """Return the default store path (~/.meso-scheduler/store.json)."""
    return Path.home() / ".meso-scheduler" / "store.json"
