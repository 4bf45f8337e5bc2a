"""Planning commands: init, exercises, plans, mesocycles and iterations."""

import json
from typing import Annotated, Optional

import typer

from ...core.iteration import mesocycle_progress
from ...io.serializers import (
    datetime_to_str,
    exercise_to_dict,
    parse_day_spec,
    plan_to_dict,
)
from .. import views
from ..app import (
    COMMAND_ERRORS,
    DEFAULT_USER,
    JsonOption,
    StorePathOption,
    UserOption,
    app,
    get_settings,
    get_store,
    require_store,
)


@app.command()
def init(
    store_path: StorePathOption = None,
) -> None:
    """
    Create an empty store.
    """
    store = get_store(store_path)
    if store.exists():
        views.print_info(f"Store already exists: {store.store_path}")
        return
    store.init()
    views.print_success(f"Created store: {store.store_path}")


@app.command("add-exercise")
def add_exercise(
    name: Annotated[str, typer.Argument(help="Exercise name, e.g. 'Bench Press'")],
    category: Annotated[
        str,
        typer.Option("--category", "-c", help="Muscle group, e.g. CHEST, BACK, LEGS"),
    ],
    store_path: StorePathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Add an exercise to the catalogue.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        exercise = store.add_exercise(name, category)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(exercise_to_dict(exercise), indent=2))
        return
    views.print_success(f"Added exercise #{exercise.id}: {exercise.name} ({exercise.category})")


@app.command()
def exercises(
    store_path: StorePathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List the exercise catalogue.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        catalogue = store.list_exercises()
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([exercise_to_dict(e) for e in catalogue], indent=2))
        return
    if not catalogue:
        views.print_info("No exercises yet. Add one with 'add-exercise'.")
        return
    views.console.print(views.format_exercise_table(catalogue))


@app.command("add-plan")
def add_plan(
    name: Annotated[str, typer.Argument(help="Plan name")],
    day: Annotated[
        list[str],
        typer.Option(
            "--day",
            "-d",
            help="One per day, in order: 'rest' or 'NAME:EXERCISE_ID,EXERCISE_ID'",
        ),
    ],
    store_path: StorePathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Add a training plan.

      meso-scheduler add-plan "Upper/Lower" -d "Upper:1,2" -d rest -d "Lower:3,4"
    """
    store = get_store(store_path)
    require_store(store)

    try:
        days = [parse_day_spec(spec) for spec in day]
        plan = store.add_plan(name, days)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(plan_to_dict(plan), indent=2))
        return
    views.print_success(f"Added plan #{plan.id}: {plan.name} ({len(plan.days)} days)")


@app.command()
def plans(
    store_path: StorePathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List training plans with their days.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        all_plans = store.list_plans()
        catalogue = store.get_exercise_map()
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([plan_to_dict(p) for p in all_plans], indent=2))
        return
    if not all_plans:
        views.print_info("No plans yet. Add one with 'add-plan'.")
        return
    for plan in all_plans:
        views.console.print(views.format_plan_table(plan, catalogue))


@app.command("create-mesocycle")
def create_mesocycle(
    name: Annotated[str, typer.Argument(help="Mesocycle name")],
    plan_id: Annotated[int, typer.Option("--plan", help="Training plan ID")],
    iterations: Annotated[
        int,
        typer.Option("--iterations", "-n", help="Number of times the plan is repeated"),
    ],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Create a mesocycle and materialize its first iteration.
    """
    store = get_store(store_path)
    require_store(store)
    settings = get_settings()

    try:
        mesocycle = store.create_mesocycle(
            name,
            plan_id,
            iterations,
            user_id=user,
            with_first_iteration=True,
            max_rir=settings.max_rir,
        )
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    instance = mesocycle.instances[0]
    if json_out:
        print(json.dumps({
            "id": mesocycle.id,
            "name": mesocycle.name,
            "plan_id": plan_id,
            "iterations": mesocycle.iterations,
            "first_instance_id": instance.id,
            "rir": instance.rir,
        }, indent=2))
        return
    views.print_success(
        f"Created mesocycle #{mesocycle.id}: {mesocycle.name} "
        f"({mesocycle.iterations} iterations, iteration 1 at RIR {instance.rir})"
    )


@app.command()
def mesocycles(
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    List your mesocycles with their progress.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        items = store.list_mesocycles(user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        result = []
        for m in items:
            progress = mesocycle_progress(m)
            result.append({
                "id": m.id,
                "name": m.name,
                "plan": m.plan.name,
                "status": m.status,
                "iterations": m.iterations,
                "completed_iterations": progress.completed_iterations,
                "progress": round(progress.percent, 1),
                "started_at": datetime_to_str(m.started_at),
                "completed_at": datetime_to_str(m.completed_at),
            })
        print(json.dumps(result, indent=2))
        return
    if not items:
        views.print_info("No mesocycles yet. Create one with 'create-mesocycle'.")
        return
    views.console.print(views.format_mesocycle_table(items))


@app.command("delete-mesocycle")
def delete_mesocycle(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Delete without confirmation"),
    ] = False,
) -> None:
    """
    Delete a mesocycle with all its iterations and workouts.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        mesocycle = store.get_mesocycle(mesocycle_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not force and not views.confirm_action(f"Delete mesocycle '{mesocycle.name}'?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        store.delete_mesocycle(mesocycle_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Deleted mesocycle #{mesocycle_id}: {mesocycle.name}")


@app.command("complete-mesocycle")
def complete_mesocycle(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """
    Finish a mesocycle early; iterations in progress are marked complete.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        mesocycle = store.complete_mesocycle(mesocycle_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Mesocycle #{mesocycle.id} '{mesocycle.name}' marked complete")


@app.command("new-iteration")
def new_iteration(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    iteration: Annotated[
        Optional[int],
        typer.Option("--iteration", "-i", help="Iteration number (default: next)"),
    ] = None,
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Materialize the next iteration once the previous one is complete.
    """
    store = get_store(store_path)
    require_store(store)
    settings = get_settings()

    try:
        if iteration is None:
            instance = store.create_next_iteration(mesocycle_id, user_id=user, max_rir=settings.max_rir)
        else:
            mesocycle = store.get_mesocycle(mesocycle_id, user_id=user)
            instance = store.create_iteration_atomic(
                mesocycle.plan, mesocycle_id, iteration, user_id=user, max_rir=settings.max_rir
            )
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "id": instance.id,
            "iteration_number": instance.iteration_number,
            "rir": instance.rir,
            "status": instance.status,
            "day_ids": [d.id for d in instance.days],
        }, indent=2))
        return
    views.print_success(
        f"Created iteration {instance.iteration_number} (RIR {instance.rir}) "
        f"with {len(instance.days)} days"
    )


@app.command("start-iteration")
def start_iteration(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    iteration: Annotated[int, typer.Argument(help="Iteration number")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """
    Start a created iteration.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        instance = store.start_iteration(mesocycle_id, iteration, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Iteration {instance.iteration_number} started")
