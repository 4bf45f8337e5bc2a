"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of plans, schedules and progress.
"""

from datetime import datetime

from rich.console import Console
from rich.table import Table

from ..core.ascii_plot import (
    create_iteration_volume_chart,
    create_muscle_group_chart,
    create_volume_progression_chart,
)
from ..core.config import ROLLING_WINDOW, STATUS_COMPLETE, STATUS_IN_PROGRESS
from ..core.iteration import mesocycle_progress
from ..core.models import Exercise, Mesocycle, TrainingPlan
from ..core.progress import (
    ExerciseStats,
    MesocycleDetail,
    MuscleGroupSeries,
    rolling_average,
    rolling_sum,
)
from ..core.projection import Schedule, ScheduledDay

console = Console()

_STATUS_STYLE = {
    STATUS_COMPLETE: "green",
    STATUS_IN_PROGRESS: "yellow",
}


def _fmt_status(status: str | None) -> str:
    if status is None:
        return "[red]UNSET[/red]"
    style = _STATUS_STYLE.get(status, "dim")
    return f"[{style}]{status}[/{style}]"


def _fmt_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "-"


def _fmt_change(change: float, is_new: bool, has_baseline: bool) -> str:
    if is_new:
        return "[cyan]new[/cyan]"
    if not has_baseline:
        return "-"
    if change > 0:
        return f"[green]+{change:.1f}%[/green]"
    if change < 0:
        return f"[red]{change:.1f}%[/red]"
    return "0.0%"


# =============================================================================
# CATALOGUE AND PLANS
# =============================================================================


def format_exercise_table(exercises: list[Exercise]) -> Table:
    table = Table(title="Exercises")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="magenta")
    for exercise in exercises:
        table.add_row(str(exercise.id), exercise.name, exercise.category)
    return table


def format_plan_table(plan: TrainingPlan, exercises: dict[int, Exercise]) -> Table:
    """
    Create a Rich table displaying the days of a plan.

    Args:
        plan: Plan to display
        exercises: Exercise catalogue by id

    Returns:
        Rich Table object
    """
    table = Table(title=f"Plan #{plan.id}: {plan.name}")
    table.add_column("Day", justify="right")
    table.add_column("Workout", style="cyan")
    table.add_column("Exercises")

    for day in plan.days:
        if day.is_rest_day or day.workout is None:
            table.add_row(str(day.day_number), "[dim]Rest[/dim]", "")
            continue
        names = [
            exercises[eid].name if eid in exercises else f"#{eid}"
            for eid in day.workout.ordered_exercise_ids
        ]
        table.add_row(str(day.day_number), day.workout.name, ", ".join(names))
    return table


def format_mesocycle_table(mesocycles: list[Mesocycle]) -> Table:
    """
    Create a Rich table listing mesocycles with their progress.

    Args:
        mesocycles: Mesocycles to display

    Returns:
        Rich Table object
    """
    table = Table(title="Mesocycles")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Plan")
    table.add_column("Status")
    table.add_column("Iterations", justify="right")
    table.add_column("Progress", justify="right", style="bold")
    table.add_column("Started", justify="right")

    for mesocycle in mesocycles:
        progress = mesocycle_progress(mesocycle)
        table.add_row(
            str(mesocycle.id),
            mesocycle.name,
            mesocycle.plan.name,
            _fmt_status(mesocycle.status),
            f"{progress.completed_iterations}/{progress.total_iterations}",
            f"{progress.percent:.0f}%",
            _fmt_date(mesocycle.started_at),
        )
    return table


# =============================================================================
# SCHEDULE
# =============================================================================


def format_schedule_table(days: list[ScheduledDay], title: str, show_mesocycle: bool = False) -> Table:
    """
    Create a Rich table of projected days.

    Virtual days have no id yet and are shown dimmed.

    Args:
        days: Days to display
        title: Table title
        show_mesocycle: Add a mesocycle column (previous days span mesocycles)

    Returns:
        Rich Table object
    """
    table = Table(title=title)
    table.add_column("Day ID", justify="right", style="dim")
    if show_mesocycle:
        table.add_column("Mesocycle", style="magenta")
    table.add_column("Iter", justify="right")
    table.add_column("Day", justify="right")
    table.add_column("Workout", style="cyan")
    table.add_column("Status")
    table.add_column("Date", justify="right")

    for day in days:
        workout = day.plan_day.workout
        label = "Rest" if day.is_rest_day or workout is None else workout.name
        if day.is_virtual:
            status = "[dim]planned[/dim]"
        elif day.is_complete:
            status = "[green]done[/green]"
        elif day.workout_instance is not None:
            status = "[yellow]started[/yellow]"
        else:
            status = "next"

        completed_at = getattr(day, "completed_at", None)
        row = [
            "-" if day.is_virtual else str(day.id),
        ]
        if show_mesocycle:
            row.append(day.mesocycle_name)
        row.extend(
            [
                str(day.iteration_number),
                str(day.day_number),
                f"[dim]{label}[/dim]" if day.is_virtual else label,
                status,
                _fmt_date(completed_at),
            ]
        )
        table.add_row(*row)
    return table


def print_schedule(schedule: Schedule, mesocycle_name: str, limit: int | None = None) -> None:
    """
    Print previous and upcoming days of a mesocycle.

    Args:
        schedule: Projected schedule
        mesocycle_name: Name shown in the upcoming table title
        limit: Maximum number of rows per table (None = all)
    """
    previous = schedule.previous_days[:limit] if limit else schedule.previous_days
    upcoming = schedule.upcoming_days[:limit] if limit else schedule.upcoming_days

    if previous:
        console.print(format_schedule_table(previous, "Previous Days", show_mesocycle=True))
    else:
        console.print("[yellow]No completed days in the history window.[/yellow]")

    console.print()
    if upcoming:
        console.print(format_schedule_table(upcoming, f"Upcoming: {mesocycle_name}"))
    else:
        console.print("[yellow]Nothing upcoming.[/yellow]")


# =============================================================================
# PROGRESS
# =============================================================================


def print_mesocycle_detail(detail: MesocycleDetail) -> None:
    """
    Print per-day, per-iteration exercise volumes with their change.

    Args:
        detail: Mesocycle progress detail
    """
    console.print(f"[bold]{detail.name}[/bold] ({detail.plan_name})")

    for day in detail.days:
        if day.is_rest_day:
            continue
        table = Table(title=f"Day {day.day_number}: {day.workout_name}")
        table.add_column("Iter", justify="right")
        table.add_column("Exercise", style="cyan")
        table.add_column("Sets", justify="right")
        table.add_column("Volume", justify="right", style="bold")
        table.add_column("Change", justify="right")

        for iteration in day.iterations:
            for exercise in iteration.exercises:
                table.add_row(
                    str(iteration.iteration_number),
                    exercise.name,
                    str(len(exercise.sets)),
                    f"{exercise.volume:.1f}",
                    _fmt_change(
                        exercise.volume_change,
                        exercise.is_new,
                        exercise.previous_volume is not None,
                    ),
                )
        if day.iterations:
            console.print(table)
        else:
            console.print(f"[dim]Day {day.day_number}: no workouts yet[/dim]")

    console.print()
    console.print(create_iteration_volume_chart(detail.iteration_volumes))


def format_muscle_group_table(
    volume: MuscleGroupSeries,
    set_counts: MuscleGroupSeries,
    window: int = ROLLING_WINDOW,
) -> Table:
    """
    Create a Rich table summarizing muscle groups.

    Args:
        volume: Volume per group and session
        set_counts: Set count per group and session
        window: Rolling window for the trend columns (volume averaged, sets summed)

    Returns:
        Rich Table object
    """
    table = Table(title="Muscle Groups")
    table.add_column("Group", style="cyan")
    table.add_column("Sessions", justify="right")
    table.add_column("Sets", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column(f"Avg vol ({window})", justify="right", style="bold")
    table.add_column(f"Sets ({window})", justify="right", style="bold")

    for category in sorted(volume):
        points = sorted(volume[category].values(), key=lambda p: p.date)
        smoothed = rolling_average([p.value for p in points], window)
        counts = sorted(set_counts.get(category, {}).values(), key=lambda p: p.date)
        recent_sets = rolling_sum([p.value for p in counts], window)
        table.add_row(
            category,
            str(len(points)),
            str(int(sum(p.value for p in counts))),
            f"{sum(p.value for p in points):.1f}",
            f"{smoothed[-1]:.1f}" if smoothed else "-",
            str(int(recent_sets[-1])) if recent_sets else "-",
        )
    return table


def print_muscle_groups(
    volume: MuscleGroupSeries,
    set_counts: MuscleGroupSeries,
    window: int = ROLLING_WINDOW,
) -> None:
    if not volume:
        console.print("[yellow]No completed workouts yet.[/yellow]")
        return
    console.print(format_muscle_group_table(volume, set_counts, window))
    console.print()
    console.print(
        create_muscle_group_chart(volume, title=f"Volume, {window}-session rolling average", window=window)
    )


def format_exercise_stats_table(stats: list[ExerciseStats]) -> Table:
    table = Table(title="Exercise Statistics")
    table.add_column("Exercise", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Sets", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Max kg", justify="right", style="bold")
    table.add_column("Max reps", justify="right")
    table.add_column("Best session", justify="right")
    table.add_column("Last", justify="right")

    for s in stats:
        table.add_row(
            s.exercise.name,
            s.exercise.category,
            str(s.total_sets),
            f"{s.total_volume:.1f}",
            f"{s.prs.max_weight:.1f}",
            str(s.prs.max_reps),
            f"{s.prs.max_volume:.1f}",
            _fmt_date(s.last_performed),
        )
    return table


def print_exercise_stats(stats: list[ExerciseStats], chart: bool = False) -> None:
    """
    Print exercise statistics.

    Args:
        stats: Statistics to display
        chart: Also print a volume progression chart per exercise
    """
    if not stats:
        console.print("[yellow]No completed sets yet.[/yellow]")
        return

    console.print(format_exercise_stats_table(stats))
    if chart:
        for s in stats:
            console.print()
            console.print(create_volume_progression_chart(s))


# =============================================================================
# MESSAGES
# =============================================================================


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
