"""Shared Typer app object, shared option types, and store utility."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..core.engine.config_loader import EngineSettings, load_engine_settings
from ..core.errors import MesoSchedulerError
from ..io.mesocycle_store import DEFAULT_USER, MesocycleStore, get_default_store_path
from ..io.serializers import ValidationError
from . import views

# Errors a command reports with print_error() before exiting with status 1
COMMAND_ERRORS = (FileNotFoundError, ValidationError, MesoSchedulerError, ValueError)

# Shared --store-path option type used across all commands
StorePathOption = Annotated[
    Optional[Path],
    typer.Option("--store-path", "-p", help="Path to the JSON store file"),
]

# Shared --user option type used across all commands
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="Owner of the mesocycles"),
]

# Shared --json option type used across all read commands
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

app = typer.Typer(
    name="meso-scheduler",
    help="Mesocycle training scheduler: plans, iterations, workouts and progress.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log scheduling decisions to stderr"),
    ] = False,
) -> None:
    """
    Mesocycle training scheduler.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_store(store_path: Path | None) -> MesocycleStore:
    """Get the store from path or the default location."""
    if store_path is None:
        store_path = get_default_store_path()
    return MesocycleStore(store_path)


def get_settings() -> EngineSettings:
    """Engine settings from the bundled YAML merged with user overrides."""
    try:
        return load_engine_settings()
    except (TypeError, ValueError) as e:
        views.print_warning(f"Ignoring engine settings: {e}")
        return EngineSettings()


def require_store(store: MesocycleStore) -> None:
    """Exit with an error when the store has not been initialized."""
    if not store.exists():
        views.print_error(f"Store not found: {store.store_path}")
        views.print_info("Run 'init' first to create the store.")
        raise typer.Exit(1)

