"""
CLI entry point using Typer.

Provides commands for mesocycle training:
- init, add-exercise, exercises, add-plan, plans: catalogue and plans
- create-mesocycle, mesocycles, delete-mesocycle, complete-mesocycle
- new-iteration, start-iteration: iteration lifecycle
- start-workout, log-set, complete-workout, complete-rest: training days
- schedule, upcoming: previous and projected days
- progress, muscle-groups, exercise-stats: progress analysis
"""

from .app import app
from .commands import analysis, plans, sessions  # noqa: F401  registers commands


if __name__ == "__main__":
    app()
