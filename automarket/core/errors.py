"""
Error taxonomy for the sell engine.

Workflows never let these escape a single item's processing; they are caught at
each public entry point and turned into outcomes. Only RunCancelled is allowed
to unwind the scheduler.
"""

from enum import Enum


class FailureReason(Enum):
    """Why an item, agent or run stopped."""
    COMPLETED = "completed"
    SURFACE_NOT_READY = "surface_not_ready"
    LOCATION_LOST = "location_lost"
    CAPACITY_REACHED = "capacity_reached"
    INVALID_BATCH = "invalid_batch"
    NO_PRICE = "no_price"
    SUBMIT_FAILED = "submit_failed"
    CANCELLED = "cancelled"
    UNEXPECTED_FAULT = "unexpected_fault"


class AutomationError(Exception):
    """Base class for sell engine errors."""

    reason = FailureReason.UNEXPECTED_FAULT

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SurfaceNotReady(AutomationError):
    """A readiness poll exhausted its attempts."""

    reason = FailureReason.SURFACE_NOT_READY

    def __init__(self, surface: str, attempts: int):
        self.surface = surface
        self.attempts = attempts
        super().__init__(f"{surface} not ready after {attempts} attempts")


class LocationLost(AutomationError):
    """An item's stack is gone and no successor stack exists."""

    reason = FailureReason.LOCATION_LOST


class CapacityExceeded(AutomationError):
    """The agent is at its listing cap. A scheduling signal, not a fault."""

    reason = FailureReason.CAPACITY_REACHED


class SubmitFailed(AutomationError):
    """The target rejected a price/quantity submission."""

    reason = FailureReason.SUBMIT_FAILED


class RunCancelled(AutomationError):
    """Cooperative cancellation was observed."""

    reason = FailureReason.CANCELLED

    def __init__(self, message: str = "Run cancelled"):
        super().__init__(message)


class ConfigError(ValueError):
    """Invalid automation configuration."""
