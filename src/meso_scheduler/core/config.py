"""
Configuration constants for the mesocycle engine.

All adjustable parameters are centralized here.  Values can be overridden
per installation through engine.yaml (see core/engine/config_loader.py).
"""

from typing import Final

# =============================================================================
# STATUSES
# =============================================================================

STATUS_NOT_STARTED: Final[str] = "NOT_STARTED"
STATUS_IN_PROGRESS: Final[str] = "IN_PROGRESS"
STATUS_COMPLETE: Final[str] = "COMPLETE"

STATUSES: Final[tuple[str, ...]] = (
    STATUS_NOT_STARTED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETE,
)

# =============================================================================
# SCHEDULE PROJECTION
# =============================================================================

HISTORY_WINDOW_DAYS: Final[int] = 365  # trailing window for previous days
VIRTUAL_DAY_ID: Final[int] = -1  # id carried by days with no stored row yet

# =============================================================================
# ITERATIONS
# =============================================================================

MAX_RIR: Final[int] = 3  # target RIR ceiling; counts down to 0 in the last iteration
MIN_ITERATIONS: Final[int] = 1
MAX_ITERATIONS: Final[int] = 52

# =============================================================================
# PROGRESS REPORTING
# =============================================================================

ROLLING_WINDOW: Final[int] = 4  # trailing points (current + 3 previous)
TOP_EXERCISE_COUNT: Final[int] = 3  # exercises highlighted in stats


def rir_for_iteration(iteration_number: int, iterations: int, max_rir: int = MAX_RIR) -> int:
    """
    Target reps-in-reserve for one iteration of a mesocycle.

    RIR = min(max_rir, iterations - iteration_number)

    The final iteration is trained to 0 RIR; earlier ones back off by one
    rep per remaining iteration, capped at ``max_rir``.

    Args:
        iteration_number: 1-based iteration
        iterations: Total iterations in the mesocycle

    Returns:
        Target RIR (>= 0)
    """
    return max(0, min(max_rir, iterations - iteration_number))
