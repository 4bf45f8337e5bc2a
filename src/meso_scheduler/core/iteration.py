"""
Iteration lifecycle for mesocycles.

An iteration (PlanInstance) moves NOT_STARTED -> IN_PROGRESS -> COMPLETE
and never skips IN_PROGRESS.  Iterations progress strictly in order: a
later iteration may only be created or started once every lower-numbered
one is complete.
"""

from dataclasses import dataclass
from datetime import datetime

from .completion import is_day_complete
from .config import (
    MAX_RIR,
    STATUS_COMPLETE,
    STATUS_IN_PROGRESS,
    STATUS_NOT_STARTED,
    rir_for_iteration,
)
from .errors import InvariantViolationError, IterationGateError
from .models import Mesocycle, PlanInstance, PlanInstanceDay, TrainingPlan


@dataclass
class MesocycleProgress:
    """Completed iterations out of the mesocycle's target count."""

    completed_iterations: int
    total_iterations: int

    @property
    def percent(self) -> float:
        if self.total_iterations <= 0:
            return 0.0
        return self.completed_iterations / self.total_iterations * 100


def is_instance_complete(instance: PlanInstance) -> bool:
    """
    Decide whether an iteration is complete.

    True if ``completed_at`` is set, or every day passes the completion
    predicate.

    Args:
        instance: Plan instance

    Returns:
        True if the iteration is complete
    """
    if instance.completed_at is not None:
        return True
    return all(is_day_complete(day) for day in instance.days)


def can_start_iteration(instance: PlanInstance, all_instances: list[PlanInstance]) -> bool:
    """
    Check whether an iteration may be started.

    An iteration can start when it is neither complete nor already in
    progress, and it is iteration 1 or every lower-numbered sibling is
    complete.

    Args:
        instance: Iteration to start
        all_instances: Every materialized instance of the same mesocycle

    Returns:
        True if starting is allowed
    """
    if is_instance_complete(instance):
        return False
    if instance.status == STATUS_IN_PROGRESS:
        return False
    if instance.iteration_number == 1:
        return True
    return all(
        is_instance_complete(other)
        for other in all_instances
        if other.iteration_number < instance.iteration_number
    )


def current_instance(all_instances: list[PlanInstance]) -> PlanInstance | None:
    """
    Return the iteration the user is working on.

    The first IN_PROGRESS instance wins; otherwise the first NOT_STARTED
    one.  Returns None when neither exists.
    """
    for instance in all_instances:
        if instance.status == STATUS_IN_PROGRESS:
            return instance
    for instance in all_instances:
        if instance.status == STATUS_NOT_STARTED:
            return instance
    return None


def last_completed_instance(all_instances: list[PlanInstance]) -> PlanInstance | None:
    """Return the COMPLETE instance with the highest iteration number, or None."""
    completed = [i for i in all_instances if i.status == STATUS_COMPLETE]
    if not completed:
        return None
    return max(completed, key=lambda i: i.iteration_number)


def next_iteration_number(mesocycle: Mesocycle) -> int:
    """Iteration number the next materialized instance would receive."""
    if not mesocycle.instances:
        return 1
    return max(i.iteration_number for i in mesocycle.instances) + 1


def can_create_iteration(mesocycle: Mesocycle, iteration_number: int) -> bool:
    """
    Check whether a new iteration may be materialized.

    Iteration numbers stay dense: only the next number is accepted, it must
    not exceed the mesocycle's target count, and every existing iteration
    must already be complete.
    """
    if mesocycle.status == STATUS_COMPLETE:
        return False
    if iteration_number != next_iteration_number(mesocycle):
        return False
    if iteration_number > mesocycle.iterations:
        return False
    return all(is_instance_complete(i) for i in mesocycle.instances)


def build_iteration(
    plan: TrainingPlan,
    iteration_number: int,
    iterations: int,
    instance_id: int,
    first_day_id: int,
    max_rir: int = MAX_RIR,
) -> PlanInstance:
    """
    Build an unsaved iteration with one day per plan day.

    Day ids are assigned consecutively from ``first_day_id``.  The caller
    is responsible for persisting the result in one step.
    """
    days = [
        PlanInstanceDay(id=first_day_id + offset, plan_day=plan_day)
        for offset, plan_day in enumerate(plan.days)
    ]
    return PlanInstance(
        id=instance_id,
        iteration_number=iteration_number,
        status=STATUS_NOT_STARTED,
        rir=rir_for_iteration(iteration_number, iterations, max_rir),
        days=days,
    )


def check_day_mirroring(instance: PlanInstance, plan: TrainingPlan) -> None:
    """
    Verify that an instance has exactly one day per plan day.

    Raises:
        InvariantViolationError: If day numbers are missing, extra or duplicated
    """
    numbers = [d.day_number for d in instance.days]
    if len(numbers) != len(set(numbers)) or frozenset(numbers) != plan.day_numbers:
        raise InvariantViolationError(
            f"Iteration {instance.iteration_number} (instance {instance.id}) has days "
            f"{sorted(numbers)}, plan '{plan.name}' has {sorted(plan.day_numbers)}"
        )


def start_iteration(
    instance: PlanInstance,
    all_instances: list[PlanInstance],
    now: datetime,
) -> PlanInstance:
    """
    Move an iteration from NOT_STARTED to IN_PROGRESS.

    Args:
        instance: Iteration to start (mutated in place)
        all_instances: Every materialized instance of the same mesocycle
        now: Start timestamp

    Returns:
        The started instance

    Raises:
        IterationGateError: If the iteration cannot be started yet
    """
    if not can_start_iteration(instance, all_instances):
        raise IterationGateError(
            f"Iteration {instance.iteration_number} cannot be started "
            f"(status {instance.status}); earlier iterations must be complete first"
        )
    instance.status = STATUS_IN_PROGRESS
    instance.started_at = now
    return instance


def refresh_instance_status(instance: PlanInstance, now: datetime) -> bool:
    """
    Re-derive an iteration's status from its days.

    Any completed day moves a NOT_STARTED iteration to IN_PROGRESS.  When
    every day is complete the iteration becomes COMPLETE, passing through
    IN_PROGRESS if needed.

    Returns:
        True if the status changed
    """
    before = instance.status
    any_done = any(is_day_complete(d) for d in instance.days)
    all_done = bool(instance.days) and all(is_day_complete(d) for d in instance.days)

    if instance.status != STATUS_COMPLETE and (any_done or all_done):
        if instance.status != STATUS_IN_PROGRESS:
            instance.status = STATUS_IN_PROGRESS
            if instance.started_at is None:
                instance.started_at = now
        if all_done:
            instance.status = STATUS_COMPLETE
            instance.completed_at = now

    return instance.status != before


def refresh_mesocycle_status(mesocycle: Mesocycle, now: datetime) -> bool:
    """
    Re-derive a mesocycle's status from its iterations.

    The mesocycle starts with its first iteration activity and completes
    when its final iteration does.

    Returns:
        True if the status changed
    """
    before = mesocycle.status
    if mesocycle.status == STATUS_COMPLETE:
        return False

    final = mesocycle.get_instance(mesocycle.iterations)
    if final is not None and final.status == STATUS_COMPLETE:
        mesocycle.status = STATUS_COMPLETE
        mesocycle.completed_at = now
        if mesocycle.started_at is None:
            mesocycle.started_at = now
    elif any(i.status in (STATUS_IN_PROGRESS, STATUS_COMPLETE) for i in mesocycle.instances):
        if mesocycle.status == STATUS_NOT_STARTED:
            mesocycle.status = STATUS_IN_PROGRESS
            mesocycle.started_at = now

    return mesocycle.status != before


def mesocycle_progress(mesocycle: Mesocycle) -> MesocycleProgress:
    """Count completed iterations against the target iteration count."""
    completed = sum(1 for i in mesocycle.instances if is_instance_complete(i))
    return MesocycleProgress(
        completed_iterations=completed,
        total_iterations=mesocycle.iterations,
    )
