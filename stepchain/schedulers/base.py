"""
StepChain Scheduler Protocol

A StepScheduler is the host-side collaborator that runs a chain's next unit
of work "later". The chain calls schedule_next(unit); the scheduler must
eventually call unit.run_scheduled_unit(run_id) exactly once for that
request, never while a previous call for the same unit is still running.

Any object honouring that contract works; chains never inherit from a
platform job type.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Protocol

__all__ = [
    "ScheduledUnit",
    "StepScheduler",
]


class ScheduledUnit(Protocol):
    """What a scheduler re-invokes (a Chain)."""

    name: str

    def run_scheduled_unit(self, run_id: str | None = None) -> None: ...


class StepScheduler(ABC):
    """
    Abstract base for step schedulers.

    Implement schedule_next() to integrate with a job queue, task runner or
    event loop.
    """

    @abstractmethod
    def schedule_next(self, unit: ScheduledUnit) -> None:
        """Arrange for unit.run_scheduled_unit() to be called later."""
        pass

    def new_run_id(self) -> str:
        """Opaque id for one invocation, recorded in the chain context."""
        return uuid.uuid4().hex

    def _invoke(self, unit: ScheduledUnit) -> None:
        unit.run_scheduled_unit(self.new_run_id())
