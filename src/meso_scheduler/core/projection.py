"""
Schedule projection for mesocycles.

Builds two ordered lists for a mesocycle:

- previous days: completed days from every mesocycle of the user inside the
  trailing history window, most recent first;
- upcoming days: the remaining days of the current iteration followed by
  generated placeholder days for iterations that have not been
  materialized yet, ordered by (iteration_number, day_number).

The projector reads only a ProjectionInput built once per request and never
mutates it.  Days that exist in storage are RealDay; generated placeholders
are VirtualDay and carry the sentinel id VIRTUAL_DAY_ID.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import ClassVar

from .completion import day_completed_at, is_day_complete
from .config import HISTORY_WINDOW_DAYS, STATUS_COMPLETE, VIRTUAL_DAY_ID
from .errors import InconsistentStateError
from .iteration import check_day_mirroring, current_instance, last_completed_instance
from .models import (
    Mesocycle,
    PlanDay,
    PlanInstance,
    PlanInstanceDay,
    Status,
    TrainingPlan,
    WorkoutInstance,
)

_logger = logging.getLogger(__name__)


# =============================================================================
# INPUT
# =============================================================================


@dataclass(frozen=True)
class HistoryRow:
    """A stored day together with the iteration and mesocycle it belongs to."""

    mesocycle_id: int
    mesocycle_name: str
    instance: PlanInstance
    day: PlanInstanceDay


@dataclass(frozen=True)
class ProjectionInput:
    """
    Snapshot of everything the projector needs for one request.

    ``instances`` belong to the requested mesocycle and are sorted by
    iteration number.  ``history`` spans every mesocycle of the user.
    """

    mesocycle_id: int
    mesocycle_name: str
    status: Status
    iterations: int
    plan: TrainingPlan
    instances: tuple[PlanInstance, ...]
    history: tuple[HistoryRow, ...] = ()

    @classmethod
    def build(
        cls,
        mesocycle: Mesocycle,
        user_mesocycles: list[Mesocycle] | None = None,
    ) -> "ProjectionInput":
        """
        Flatten a mesocycle and the user's other mesocycles.

        Args:
            mesocycle: The mesocycle whose upcoming days are projected
            user_mesocycles: Every mesocycle of the same user; the requested
                mesocycle is added if missing

        Returns:
            ProjectionInput
        """
        sources = list(user_mesocycles or [])
        if all(m.id != mesocycle.id for m in sources):
            sources.append(mesocycle)

        history = tuple(
            HistoryRow(
                mesocycle_id=meso.id,
                mesocycle_name=meso.name,
                instance=instance,
                day=day,
            )
            for meso in sources
            for instance in meso.instances
            for day in instance.days
        )
        return cls(
            mesocycle_id=mesocycle.id,
            mesocycle_name=mesocycle.name,
            status=mesocycle.status,
            iterations=mesocycle.iterations,
            plan=mesocycle.plan,
            instances=tuple(sorted(mesocycle.instances, key=lambda i: i.iteration_number)),
            history=history,
        )


# =============================================================================
# OUTPUT
# =============================================================================


@dataclass(frozen=True)
class RealDay:
    """A day that exists in storage."""

    kind: ClassVar[str] = "real"
    is_virtual: ClassVar[bool] = False

    day: PlanInstanceDay
    plan_instance_id: int
    iteration_number: int
    mesocycle_id: int
    mesocycle_name: str
    completed_at: datetime | None = None

    @property
    def id(self) -> int:
        return self.day.id

    @property
    def plan_day(self) -> PlanDay:
        return self.day.plan_day

    @property
    def day_number(self) -> int:
        return self.day.day_number

    @property
    def is_rest_day(self) -> bool:
        return self.day.is_rest_day

    @property
    def is_complete(self) -> bool:
        return is_day_complete(self.day)

    @property
    def workout_instance(self) -> WorkoutInstance | None:
        return self.day.workout_instance


@dataclass(frozen=True)
class VirtualDay:
    """
    A generated placeholder for a day of an iteration not yet materialized.

    Virtual days have no storage identity: ``id`` and ``plan_instance_id``
    are VIRTUAL_DAY_ID, they are never complete and never own a workout.
    """

    kind: ClassVar[str] = "virtual"
    is_virtual: ClassVar[bool] = True

    plan_day: PlanDay
    iteration_number: int
    mesocycle_id: int
    mesocycle_name: str

    @property
    def id(self) -> int:
        return VIRTUAL_DAY_ID

    @property
    def plan_instance_id(self) -> int:
        return VIRTUAL_DAY_ID

    @property
    def day_number(self) -> int:
        return self.plan_day.day_number

    @property
    def is_rest_day(self) -> bool:
        return self.plan_day.is_rest_day

    @property
    def is_complete(self) -> bool:
        return False

    @property
    def workout_instance(self) -> None:
        return None


ScheduledDay = RealDay | VirtualDay


@dataclass
class Schedule:
    """Projected schedule of one mesocycle."""

    previous_days: list[RealDay] = field(default_factory=list)
    upcoming_days: list[ScheduledDay] = field(default_factory=list)


def schedule_sort_key(day: ScheduledDay) -> tuple[int, int]:
    """Global ordering of upcoming days: iteration, then plan day."""
    return (day.iteration_number, day.day_number)


# =============================================================================
# PREVIOUS DAYS
# =============================================================================


def collect_previous_days(
    history: tuple[HistoryRow, ...] | list[HistoryRow],
    as_of: datetime,
    window_days: int = HISTORY_WINDOW_DAYS,
) -> list[RealDay]:
    """
    Completed days inside the trailing history window, most recent first.

    A day is kept when it passes the completion predicate and its
    completion date lies within ``[as_of - window_days, as_of]`` at calendar
    day granularity.  Days with equal completion dates keep input order.

    Args:
        history: Stored days with their iteration context
        as_of: Reference moment
        window_days: Length of the trailing window in days

    Returns:
        Completed days sorted by completion date, descending
    """
    window_end = as_of.date()
    window_start = window_end - timedelta(days=window_days)

    completed: list[RealDay] = []
    for row in history:
        if not is_day_complete(row.day):
            continue
        completed_at = day_completed_at(row.day)
        if completed_at is None:
            continue
        if not window_start <= completed_at.date() <= window_end:
            continue
        completed.append(
            RealDay(
                day=row.day,
                plan_instance_id=row.instance.id,
                iteration_number=row.instance.iteration_number,
                mesocycle_id=row.mesocycle_id,
                mesocycle_name=row.mesocycle_name,
                completed_at=completed_at,
            )
        )

    completed.sort(key=lambda d: d.completed_at, reverse=True)  # type: ignore[arg-type, return-value]
    return completed


# =============================================================================
# UPCOMING DAYS
# =============================================================================


def synthesize_virtual_days(
    projection: ProjectionInput,
    iteration_numbers: list[int] | range,
) -> list[VirtualDay]:
    """
    Generate one virtual day per plan day for each given iteration.

    Iterations that already have a materialized instance are skipped.
    """
    materialized = {i.iteration_number for i in projection.instances}
    return [
        VirtualDay(
            plan_day=plan_day,
            iteration_number=iteration_number,
            mesocycle_id=projection.mesocycle_id,
            mesocycle_name=projection.mesocycle_name,
        )
        for iteration_number in iteration_numbers
        if iteration_number not in materialized
        for plan_day in projection.plan.days
    ]


def _remaining_real_days(projection: ProjectionInput, instance: PlanInstance) -> list[RealDay]:
    return [
        RealDay(
            day=day,
            plan_instance_id=instance.id,
            iteration_number=instance.iteration_number,
            mesocycle_id=projection.mesocycle_id,
            mesocycle_name=projection.mesocycle_name,
        )
        for day in instance.days
        if not is_day_complete(day)
    ]


def _upcoming_for_current(
    projection: ProjectionInput,
    current: PlanInstance,
    log: logging.Logger,
) -> list[ScheduledDay]:
    upcoming: list[ScheduledDay] = []
    upcoming.extend(_remaining_real_days(projection, current))

    # Guard for an anomalous state: the creation gate normally prevents a
    # later iteration from existing while this one is unfinished.  If one
    # does, its stored days are listed instead of generated placeholders.
    for instance in projection.instances:
        if instance.iteration_number > current.iteration_number and instance.status != STATUS_COMPLETE:
            upcoming.extend(_remaining_real_days(projection, instance))

    later = range(current.iteration_number + 1, projection.iterations + 1)
    virtual = synthesize_virtual_days(projection, later)
    upcoming.extend(virtual)

    log.debug(
        "Mesocycle %s: current iteration %s, %d stored days remaining, %d generated",
        projection.mesocycle_id,
        current.iteration_number,
        len(upcoming) - len(virtual),
        len(virtual),
    )
    upcoming.sort(key=schedule_sort_key)
    return upcoming


def _upcoming_without_current(
    projection: ProjectionInput,
    log: logging.Logger,
) -> list[ScheduledDay]:
    last = last_completed_instance(list(projection.instances))

    if last is not None:
        if last.iteration_number + 1 > projection.iterations:
            log.debug(
                "Mesocycle %s: final iteration %s complete, nothing upcoming",
                projection.mesocycle_id,
                last.iteration_number,
            )
            return []
        remaining = range(last.iteration_number + 1, projection.iterations + 1)
        log.debug(
            "Mesocycle %s: iteration %s complete, generating iterations %s..%s",
            projection.mesocycle_id,
            last.iteration_number,
            remaining.start,
            remaining.stop - 1,
        )
        upcoming: list[ScheduledDay] = list(synthesize_virtual_days(projection, remaining))
        upcoming.sort(key=schedule_sort_key)
        return upcoming

    if not projection.instances:
        log.debug(
            "Mesocycle %s not started, generating all %d iterations",
            projection.mesocycle_id,
            projection.iterations,
        )
        return list(synthesize_virtual_days(projection, range(1, projection.iterations + 1)))

    statuses = [(i.iteration_number, i.status) for i in projection.instances]
    raise InconsistentStateError(
        f"Mesocycle {projection.mesocycle_id} has instances {statuses} but none is "
        "in progress, not started or complete"
    )


def project_upcoming(
    projection: ProjectionInput,
    logger: logging.Logger | None = None,
) -> list[ScheduledDay]:
    """
    Project the upcoming days of one mesocycle.

    - COMPLETE mesocycle: nothing upcoming.
    - A current iteration exists (IN_PROGRESS, else NOT_STARTED): its
      incomplete days plus generated days for every later iteration without
      an instance.
    - Otherwise, after the highest completed iteration: generated days for
      the remaining iterations, or none if it was the last.
    - No instances at all: generated days for all iterations.

    Inconsistent stored state is logged and yields an empty list.

    Args:
        projection: Request snapshot
        logger: Logger for projection decisions; defaults to the module logger

    Returns:
        Days sorted by (iteration_number, day_number)
    """
    log = logger or _logger

    if projection.status == STATUS_COMPLETE:
        log.debug("Mesocycle %s is complete, nothing upcoming", projection.mesocycle_id)
        return []

    try:
        for instance in projection.instances:
            check_day_mirroring(instance, projection.plan)

        current = current_instance(list(projection.instances))
        if current is not None:
            return _upcoming_for_current(projection, current, log)
        return _upcoming_without_current(projection, log)
    except InconsistentStateError as e:
        log.warning("Returning no upcoming days: %s", e)
        return []


def project_schedule(
    projection: ProjectionInput,
    as_of: datetime,
    logger: logging.Logger | None = None,
    window_days: int = HISTORY_WINDOW_DAYS,
) -> Schedule:
    """
    Project previous and upcoming days for one mesocycle.

    Args:
        projection: Request snapshot
        as_of: Reference moment for the history window
        logger: Logger for projection decisions; defaults to the module logger
        window_days: Length of the history window in days

    Returns:
        Schedule with previous_days (user-wide, most recent first) and
        upcoming_days (this mesocycle, in training order)
    """
    log = logger or _logger

    previous = collect_previous_days(projection.history, as_of, window_days)
    upcoming = project_upcoming(projection, log)

    log.debug(
        "Schedule for mesocycle %s: %d previous, %d upcoming",
        projection.mesocycle_id,
        len(previous),
        len(upcoming),
    )
    return Schedule(previous_days=previous, upcoming_days=upcoming)
