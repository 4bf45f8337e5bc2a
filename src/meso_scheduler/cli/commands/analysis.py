"""Analysis commands: schedule, upcoming, progress, muscle-groups, exercise-stats."""

import json
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.iteration import mesocycle_progress
from ...core.progress import (
    aggregate_set_counts,
    aggregate_volume,
    build_mesocycle_detail,
    exercise_stats,
    top_exercises,
)
from ...core.projection import ProjectionInput, project_schedule, project_upcoming
from ...io.serializers import (
    exercise_stats_to_dict,
    mesocycle_detail_to_dict,
    muscle_group_series_to_dict,
    parse_datetime,
    schedule_to_dict,
    scheduled_day_to_dict,
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
def schedule(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    as_of: Annotated[
        Optional[str],
        typer.Option("--as-of", help="Reference date (YYYY-MM-DD, default: now)"),
    ] = None,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-l", help="Maximum rows per table"),
    ] = None,
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show completed days and the projected upcoming days of a mesocycle.

    Completed days come from all your mesocycles within the history window.
    Upcoming days not yet created show no day ID.
    """
    store = get_store(store_path)
    require_store(store)
    settings = get_settings()

    try:
        reference = parse_datetime(as_of, "--as-of") or datetime.now()
        mesocycle = store.get_mesocycle(mesocycle_id, user_id=user)
        projection = ProjectionInput.build(mesocycle, store.list_mesocycles(user_id=user))
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    result = project_schedule(projection, reference, window_days=settings.history_window_days)

    if json_out:
        print(json.dumps(schedule_to_dict(result), indent=2))
        return
    views.print_schedule(result, mesocycle.name, limit=limit)


@app.command()
def upcoming(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-l", help="Maximum rows"),
    ] = None,
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show only the upcoming days of a mesocycle, in training order.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        mesocycle = store.get_mesocycle(mesocycle_id, user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    days = project_upcoming(ProjectionInput.build(mesocycle))
    if limit:
        days = days[:limit]

    if json_out:
        print(json.dumps([scheduled_day_to_dict(d) for d in days], indent=2))
        return
    if not days:
        views.print_info("Nothing upcoming.")
        return
    views.console.print(views.format_schedule_table(days, f"Upcoming: {mesocycle.name}"))


@app.command()
def progress(
    mesocycle_id: Annotated[int, typer.Argument(help="Mesocycle ID")],
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show per-exercise volume and its change between iterations.

    Each exercise is compared with the latest earlier iteration in which
    the same plan day was completed.
    """
    store = get_store(store_path)
    require_store(store)

    try:
        mesocycle = store.get_mesocycle(mesocycle_id, user_id=user)
        catalogue = store.get_exercise_map()
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    detail = build_mesocycle_detail(mesocycle, catalogue)
    overall = mesocycle_progress(mesocycle)

    if json_out:
        data = mesocycle_detail_to_dict(detail)
        data["status"] = mesocycle.status
        data["progress"] = round(overall.percent, 1)
        print(json.dumps(data, indent=2))
        return

    views.print_info(
        f"{overall.completed_iterations}/{overall.total_iterations} iterations complete "
        f"({overall.percent:.0f}%), status {mesocycle.status}"
    )
    views.print_mesocycle_detail(detail)


@app.command("muscle-groups")
def muscle_groups(
    mesocycle_id: Annotated[
        Optional[int],
        typer.Option("--mesocycle", "-m", help="Only this mesocycle (default: all)"),
    ] = None,
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show volume and set counts per muscle group and workout.
    """
    store = get_store(store_path)
    require_store(store)
    settings = get_settings()

    try:
        if mesocycle_id is not None:
            store.get_mesocycle(mesocycle_id, user_id=user)
        histories = store.exercise_histories(user_id=user, mesocycle_id=mesocycle_id)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    volume = aggregate_volume(histories)
    set_counts = aggregate_set_counts(histories)

    if json_out:
        print(json.dumps({
            "muscleGroupVolume": muscle_group_series_to_dict(volume, "volume"),
            "muscleGroupSets": muscle_group_series_to_dict(set_counts, "count"),
        }, indent=2))
        return
    views.print_muscle_groups(volume, set_counts, window=settings.rolling_window)


@app.command("exercise-stats")
def exercise_stats_cmd(
    show_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Show every exercise, not just the most trained"),
    ] = False,
    chart: Annotated[
        bool,
        typer.Option("--chart", help="Show volume progression charts"),
    ] = False,
    store_path: StorePathOption = None,
    user: UserOption = DEFAULT_USER,
    json_out: JsonOption = False,
) -> None:
    """
    Show totals, personal records and volume progression per exercise.
    """
    store = get_store(store_path)
    require_store(store)
    settings = get_settings()

    try:
        histories = store.exercise_histories(user_id=user)
    except COMMAND_ERRORS as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    stats = [exercise_stats(h) for h in histories if h.sets]
    if not show_all:
        stats = top_exercises(stats, settings.top_exercise_count)

    if json_out:
        print(json.dumps([exercise_stats_to_dict(s) for s in stats], indent=2))
        return
    views.print_exercise_stats(stats, chart=chart)
