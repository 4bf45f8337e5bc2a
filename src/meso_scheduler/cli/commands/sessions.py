"""Session commands: start-workout, log-set, complete-workout, complete-rest."""

import json
from typing import Annotated

import typer

from ...io.serializers import validate_positive, workout_instance_to_dict
from .. import views
from ..app import (
    COMMAND_ERRORS,
    DEFAULT_USER,
    JsonOption,
    StorePathOption,
    UserOption,
    app,
    get_store,
    require_store,
)


@app.command("start-workout")
def start_workout(
    day_id: Annotated[int, typer.Argument(help="Day ID from 'schedule' or 'upcoming'")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Start the workout of a training day.

    Starting the first workout of an iteration starts the iteration.
    Running it again returns the workout already in progress.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        workout = store.start_workout(day_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(workout_instance_to_dict(workout), indent=2))
        return
    views.print_success(f"Workout #{workout.id} started")
    views.print_info(f"Log sets with: log-set {workout.id} EXERCISE_ID WEIGHT REPS")


@app.command("log-set")
def log_set(
    workout_id: Annotated[int, typer.Argument(help="Workout ID")],
    exercise_id: Annotated[int, typer.Argument(help="Exercise ID")],
    weight: Annotated[float, typer.Argument(help="Weight in kg")],
    reps: Annotated[int, typer.Argument(help="Repetitions")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """
    Log one set of an exercise.

      meso-scheduler log-set 3 1 80 8
    """
    store = get_store(store_path)
    require_store(store)

    try:
        validate_positive(reps, "reps")
        exercise_set = store.log_set(workout_id, exercise_id, weight, reps, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(
        f"Set {exercise_set.set_number}: {exercise_set.weight:g} kg x {exercise_set.reps} "
        f"(volume {exercise_set.volume:.1f})"
    )


@app.command("complete-workout")
def complete_workout(
    workout_id: Annotated[int, typer.Argument(help="Workout ID")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """
    Complete a workout and its day.

    The iteration completes with its last day; the mesocycle completes with
    its last iteration.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        workout = store.complete_workout(workout_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(
        f"Workout #{workout.id} complete: {len(workout.sets)} sets, volume {workout.volume:.1f}"
    )


@app.command("complete-rest")
def complete_rest(
    day_id: Annotated[int, typer.Argument(help="Rest day ID")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """
    Mark a rest day complete.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        day = store.complete_rest_day(day_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Rest day {day.day_number} complete")
