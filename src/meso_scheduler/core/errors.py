"""
Error taxonomy for meso-scheduler.

NotFoundError is surfaced to the caller.  InconsistentStateError (and its
InvariantViolationError subclass) is caught by the schedule projector and
resolved to an empty projection.
"""


class MesoSchedulerError(Exception):
    """Base class for all meso-scheduler errors."""

    pass


class NotFoundError(MesoSchedulerError):
    """Raised when a mesocycle, plan, instance or day does not exist for the user."""

    pass


class InconsistentStateError(MesoSchedulerError):
    """Raised when stored iteration state matches no modelled branch."""

    pass


class InvariantViolationError(InconsistentStateError):
    """Raised when an instance's days do not mirror its training plan."""

    pass


class IterationGateError(MesoSchedulerError):
    """Raised when an iteration is created or started out of order."""

    pass
