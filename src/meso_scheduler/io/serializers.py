"""
JSON serialization for meso-scheduler data models.

Handles conversion between dataclasses and JSON-compatible dicts, both for
the stored document and for the outbound shapes reported by the CLI.
"""

from datetime import datetime
from typing import Any

from ..core.models import (
    Exercise,
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
from ..core.progress import (
    ExerciseStats,
    IterationVolume,
    MesocycleDetail,
    MuscleGroupSeries,
)
from ..core.projection import RealDay, Schedule, ScheduledDay


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


# =============================================================================
# PRIMITIVES
# =============================================================================


def datetime_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_datetime(value: str | None, name: str = "timestamp") -> datetime | None:
    """
    Parse an ISO timestamp (or YYYY-MM-DD date).

    Raises:
        ValidationError: If the value is not ISO formatted
    """
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {name}: {value!r}. Expected ISO format") from e


def validate_positive(value: int | float, name: str) -> int | float:
    """
    Validate that a value is positive.

    Raises:
        ValidationError: If value is not positive
    """
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


# =============================================================================
# STORED DOCUMENT
# =============================================================================


def exercise_to_dict(exercise: Exercise) -> dict[str, Any]:
    return {"id": exercise.id, "name": exercise.name, "category": exercise.category}


def dict_to_exercise(data: dict[str, Any]) -> Exercise:
    return Exercise(id=int(data["id"]), name=data["name"], category=data["category"])


def plan_to_dict(plan: TrainingPlan) -> dict[str, Any]:
    """Convert TrainingPlan to JSON-compatible dict."""
    return {
        "id": plan.id,
        "name": plan.name,
        "days": [
            {
                "id": d.id,
                "day_number": d.day_number,
                "is_rest_day": d.is_rest_day,
                "workout": (
                    {
                        "id": d.workout.id,
                        "name": d.workout.name,
                        "exercises": [
                            {"exercise_id": we.exercise_id, "order": we.order}
                            for we in d.workout.exercises
                        ],
                    }
                    if d.workout is not None
                    else None
                ),
            }
            for d in plan.days
        ],
    }


def dict_to_plan(data: dict[str, Any]) -> TrainingPlan:
    """Convert dict to TrainingPlan."""
    days = []
    for d in data["days"]:
        workout_data = d.get("workout")
        workout = None
        if workout_data is not None:
            workout = WorkoutTemplate(
                id=int(workout_data["id"]),
                name=workout_data["name"],
                exercises=[
                    WorkoutExercise(exercise_id=int(we["exercise_id"]), order=int(we["order"]))
                    for we in workout_data.get("exercises", [])
                ],
            )
        days.append(
            PlanDay(
                id=int(d["id"]),
                day_number=int(d["day_number"]),
                is_rest_day=bool(d["is_rest_day"]),
                workout=workout,
            )
        )
    return TrainingPlan(id=int(data["id"]), name=data["name"], days=days)


def workout_instance_to_dict(workout: WorkoutInstance) -> dict[str, Any]:
    return {
        "id": workout.id,
        "started_at": datetime_to_str(workout.started_at),
        "completed_at": datetime_to_str(workout.completed_at),
        "sets": [
            {
                "exercise_id": s.exercise_id,
                "set_number": s.set_number,
                "weight": s.weight,
                "reps": s.reps,
            }
            for s in workout.sets
        ],
    }


def dict_to_workout_instance(data: dict[str, Any]) -> WorkoutInstance:
    started_at = parse_datetime(data.get("started_at"), "started_at")
    if started_at is None:
        raise ValidationError(f"Workout instance {data.get('id')} has no started_at")
    return WorkoutInstance(
        id=int(data["id"]),
        started_at=started_at,
        completed_at=parse_datetime(data.get("completed_at"), "completed_at"),
        sets=[
            ExerciseSet(
                exercise_id=int(s["exercise_id"]),
                set_number=int(s["set_number"]),
                weight=float(s["weight"]),
                reps=int(s["reps"]),
            )
            for s in data.get("sets", [])
        ],
    )


def instance_to_dict(instance: PlanInstance) -> dict[str, Any]:
    """
    Convert PlanInstance to dict.

    Days reference their plan day by ``day_number`` only; the plan day
    itself is stored once on the plan.
    """
    return {
        "id": instance.id,
        "iteration_number": instance.iteration_number,
        "status": instance.status,
        "rir": instance.rir,
        "started_at": datetime_to_str(instance.started_at),
        "completed_at": datetime_to_str(instance.completed_at),
        "days": [
            {
                "id": day.id,
                "day_number": day.day_number,
                "is_complete": day.is_complete,
                "updated_at": datetime_to_str(day.updated_at),
                "workout_instance": (
                    workout_instance_to_dict(day.workout_instance)
                    if day.workout_instance is not None
                    else None
                ),
            }
            for day in instance.days
        ],
    }


def dict_to_instance(data: dict[str, Any], plan: TrainingPlan) -> PlanInstance:
    """
    Convert dict to PlanInstance, resolving days against the plan.

    Raises:
        ValidationError: If a day references a plan day that does not exist
    """
    days = []
    for d in data.get("days", []):
        plan_day = plan.get_day(int(d["day_number"]))
        if plan_day is None:
            raise ValidationError(
                f"Day {d.get('id')} references day {d['day_number']} missing from plan {plan.id}"
            )
        workout_data = d.get("workout_instance")
        days.append(
            PlanInstanceDay(
                id=int(d["id"]),
                plan_day=plan_day,
                is_complete=bool(d.get("is_complete", False)),
                workout_instance=(
                    dict_to_workout_instance(workout_data) if workout_data is not None else None
                ),
                updated_at=parse_datetime(d.get("updated_at"), "updated_at"),
            )
        )
    return PlanInstance(
        id=int(data["id"]),
        iteration_number=int(data["iteration_number"]),
        status=data.get("status"),
        rir=int(data.get("rir", 0)),
        started_at=parse_datetime(data.get("started_at"), "started_at"),
        completed_at=parse_datetime(data.get("completed_at"), "completed_at"),
        days=days,
    )


def mesocycle_to_dict(mesocycle: Mesocycle) -> dict[str, Any]:
    """Convert Mesocycle to dict; the plan is referenced by id."""
    return {
        "id": mesocycle.id,
        "name": mesocycle.name,
        "user_id": mesocycle.user_id,
        "plan_id": mesocycle.plan.id,
        "iterations": mesocycle.iterations,
        "status": mesocycle.status,
        "started_at": datetime_to_str(mesocycle.started_at),
        "completed_at": datetime_to_str(mesocycle.completed_at),
        "instances": [instance_to_dict(i) for i in mesocycle.instances],
    }


def dict_to_mesocycle(data: dict[str, Any], plans: dict[int, TrainingPlan]) -> Mesocycle:
    """
    Convert dict to Mesocycle.

    Args:
        data: Stored mesocycle
        plans: Plans by id

    Raises:
        ValidationError: If the plan is missing or the data is invalid
    """
    plan = plans.get(int(data["plan_id"]))
    if plan is None:
        raise ValidationError(
            f"Mesocycle {data.get('id')} references unknown plan {data['plan_id']}"
        )
    try:
        return Mesocycle(
            id=int(data["id"]),
            name=data["name"],
            user_id=data["user_id"],
            plan=plan,
            iterations=int(data["iterations"]),
            status=data.get("status", "NOT_STARTED"),
            instances=[dict_to_instance(i, plan) for i in data.get("instances", [])],
            started_at=parse_datetime(data.get("started_at"), "started_at"),
            completed_at=parse_datetime(data.get("completed_at"), "completed_at"),
        )
    except ValueError as e:
        raise ValidationError(f"Invalid mesocycle {data.get('id')}: {e}") from e


# =============================================================================
# PLAN DAY SPECS
# =============================================================================


def parse_day_spec(spec: str) -> tuple[bool, str | None, list[int]]:
    """
    Parse a compact plan day description.

    Formats:
        "rest"                  -> rest day
        "Push:1,2,3"            -> workout "Push" with exercise ids 1, 2, 3 in order

    Args:
        spec: Day description

    Returns:
        (is_rest_day, workout_name, exercise_ids)

    Raises:
        ValidationError: If the description cannot be parsed
    """
    text = spec.strip()
    if text.lower() in ("rest", "r"):
        return True, None, []

    if ":" not in text:
        raise ValidationError(
            f"Invalid day: {spec!r}. Use 'rest' or 'NAME:EXERCISE_ID,EXERCISE_ID'"
        )
    name, _, ids_part = text.partition(":")
    name = name.strip()
    if not name:
        raise ValidationError(f"Invalid day: {spec!r}. Workout name is empty")

    exercise_ids: list[int] = []
    for raw in ids_part.split(","):
        raw = raw.strip()
        if not raw:
            continue
        try:
            exercise_ids.append(int(raw))
        except ValueError as e:
            raise ValidationError(f"Invalid exercise id {raw!r} in day {spec!r}") from e

    if not exercise_ids:
        raise ValidationError(f"Invalid day: {spec!r}. A workout day needs exercises")
    return False, name, exercise_ids


# =============================================================================
# OUTBOUND SHAPES
# =============================================================================


def scheduled_day_to_dict(day: ScheduledDay) -> dict[str, Any]:
    """Convert a projected day to dict; ``kind`` discriminates real and virtual days."""
    workout = day.workout_instance
    plan_day = day.plan_day
    data: dict[str, Any] = {
        "kind": day.kind,
        "id": day.id,
        "planInstanceId": day.plan_instance_id,
        "iterationNumber": day.iteration_number,
        "dayNumber": day.day_number,
        "isRestDay": day.is_rest_day,
        "isComplete": day.is_complete,
        "workoutName": plan_day.workout.name if plan_day.workout else None,
        "workoutInstance": (
            {
                "id": workout.id,
                "startedAt": datetime_to_str(workout.started_at),
                "completedAt": datetime_to_str(workout.completed_at),
            }
            if workout is not None
            else None
        ),
        "mesocycle": {"id": day.mesocycle_id, "name": day.mesocycle_name},
    }
    if isinstance(day, RealDay) and day.completed_at is not None:
        data["completedAt"] = datetime_to_str(day.completed_at)
    return data


def schedule_to_dict(schedule: Schedule) -> dict[str, Any]:
    return {
        "previousDays": [scheduled_day_to_dict(d) for d in schedule.previous_days],
        "upcomingDays": [scheduled_day_to_dict(d) for d in schedule.upcoming_days],
    }


def muscle_group_series_to_dict(series: MuscleGroupSeries, value_key: str) -> dict[str, Any]:
    """
    Convert a muscle-group series to ``{category: [{instanceId: {key, date}}]}``.

    Args:
        series: Aggregated series
        value_key: "volume" or "count"
    """
    return {
        category: [
            {
                str(instance_id): {
                    value_key: point.value if value_key == "volume" else int(point.value),
                    "date": datetime_to_str(point.date),
                }
            }
            for instance_id, point in points.items()
        ]
        for category, points in series.items()
    }


def iteration_volumes_to_list(volumes: list[IterationVolume]) -> list[dict[str, Any]]:
    return [
        {"iterationNumber": v.iteration_number, "totalVolume": v.total_volume}
        for v in volumes
    ]


def mesocycle_detail_to_dict(detail: MesocycleDetail) -> dict[str, Any]:
    """Convert MesocycleDetail to the mesocycle progress shape."""
    return {
        "id": detail.mesocycle_id,
        "name": detail.name,
        "plan": detail.plan_name,
        "planDays": [
            {
                "dayNumber": day.day_number,
                "isRestDay": day.is_rest_day,
                "workout": day.workout_name,
                "iterations": [
                    {
                        "iterationNumber": it.iteration_number,
                        "workoutInstanceId": it.workout_instance_id,
                        "completedAt": datetime_to_str(it.completed_at),
                        "exercises": [
                            {
                                "id": ex.exercise_id,
                                "name": ex.name,
                                "category": ex.category,
                                "order": ex.order,
                                "volume": ex.volume,
                                "volumeChange": ex.volume_change,
                                "isNew": ex.is_new,
                                "sets": [
                                    {
                                        "weight": s.weight,
                                        "reps": s.reps,
                                        "setNumber": s.set_number,
                                    }
                                    for s in ex.sets
                                ],
                            }
                            for ex in it.exercises
                        ],
                    }
                    for it in day.iterations
                ],
            }
            for day in detail.days
        ],
        "iterationVolumes": iteration_volumes_to_list(detail.iteration_volumes),
    }


def exercise_stats_to_dict(stats: ExerciseStats) -> dict[str, Any]:
    return {
        "id": stats.exercise.id,
        "name": stats.exercise.name,
        "category": stats.exercise.category,
        "totalSets": stats.total_sets,
        "totalVolume": stats.total_volume,
        "prs": {
            "maxWeight": stats.prs.max_weight,
            "maxReps": stats.prs.max_reps,
            "maxVolume": stats.prs.max_volume,
        },
        "lastPerformed": datetime_to_str(stats.last_performed),
        "volumeProgression": [
            {
                "workoutInstanceId": p.workout_instance_id,
                "date": datetime_to_str(p.date),
                "volume": p.volume,
                "sets": p.sets,
            }
            for p in stats.volume_progression
        ],
    }
