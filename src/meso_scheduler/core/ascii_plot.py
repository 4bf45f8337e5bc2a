"""
ASCII charts for terminal output.

Horizontal bar charts for iteration volumes, muscle-group trends and
per-exercise volume progression.
"""

from .config import ROLLING_WINDOW
from .progress import (
    ExerciseStats,
    IterationVolume,
    MuscleGroupSeries,
    rolling_average,
)


def create_simple_bar_chart(
    labels: list[str],
    values: list[float],
    width: int = 40,
    title: str = "",
) -> str:
    """
    Create a simple horizontal bar chart.

    Args:
        labels: Labels for each bar
        values: Values for each bar
        width: Maximum bar width
        title: Chart title

    Returns:
        ASCII bar chart string
    """
    if not values:
        return "No data to display."

    max_val = max(values)
    max_label_len = max(len(label) for label in labels) if labels else 0

    lines = []

    if title:
        lines.append(title)
        lines.append("─" * (max_label_len + width + 5))

    for label, value in zip(labels, values):
        bar_len = int((value / max_val) * width) if max_val > 0 else 0
        bar = "█" * bar_len
        lines.append(f"{label:>{max_label_len}} │{bar} {value:.1f}")

    return "\n".join(lines)


def create_iteration_volume_chart(volumes: list[IterationVolume], width: int = 40) -> str:
    """
    Chart total volume per iteration of a mesocycle.

    Args:
        volumes: Iteration totals, ordered by iteration number
        width: Maximum bar width

    Returns:
        ASCII chart string
    """
    if not volumes:
        return "No iterations yet."

    labels = [f"Iteration {v.iteration_number}" for v in volumes]
    values = [v.total_volume for v in volumes]
    return create_simple_bar_chart(labels, values, width=width, title="Volume per Iteration (kg x reps)")


def create_muscle_group_chart(
    series: MuscleGroupSeries,
    title: str,
    window: int = ROLLING_WINDOW,
    width: int = 40,
) -> str:
    """
    Chart the latest smoothed value of each muscle group.

    Sessions of a group are ordered by date and smoothed with a trailing
    rolling average; the last smoothed value is drawn.

    Args:
        series: Per-group, per-session values
        title: Chart title
        window: Rolling window size
        width: Maximum bar width

    Returns:
        ASCII chart string
    """
    if not series:
        return "No completed workouts."

    labels = []
    values = []
    for category in sorted(series):
        points = sorted(series[category].values(), key=lambda p: p.date)
        smoothed = rolling_average([p.value for p in points], window)
        labels.append(category)
        values.append(smoothed[-1])

    return create_simple_bar_chart(labels, values, width=width, title=title)


def create_volume_progression_chart(stats: ExerciseStats, width: int = 40) -> str:
    """Chart session volume over time for one exercise."""
    if not stats.volume_progression:
        return f"No completed sets for {stats.exercise.name}."

    labels = [p.date.strftime("%Y-%m-%d") for p in stats.volume_progression]
    values = [p.volume for p in stats.volume_progression]
    return create_simple_bar_chart(
        labels, values, width=width, title=f"{stats.exercise.name}: Volume per Session"
    )
