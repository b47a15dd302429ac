"""
StepChain Queue Scheduler

Collects scheduled units in a FIFO and runs them only when asked. Gives
tests (and hosts with their own run loop) full control over when each step
of a chain executes.
"""

from collections import deque

from stepchain.schedulers.base import ScheduledUnit, StepScheduler
from stepchain.utils.logging import get_logger

logger = get_logger(__name__)


class QueueScheduler(StepScheduler):
    """
    Deterministic, manually driven scheduler.

    Usage:
        scheduler = QueueScheduler()
        chain = Chain.create(scheduler=scheduler).then(a).then(b).execute()
        scheduler.run_next()   # runs a
        scheduler.run_all()    # runs everything still queued
    """

    def __init__(self, run_id_prefix: str = "run") -> None:
        self._queue: deque[ScheduledUnit] = deque()
        self._counter = 0
        self.run_id_prefix = run_id_prefix
        self.history: list[str] = []

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule_next(self, unit: ScheduledUnit) -> None:
        self._queue.append(unit)

    def new_run_id(self) -> str:
        self._counter += 1
        return f"{self.run_id_prefix}-{self._counter}"

    def run_next(self) -> bool:
        """Run the oldest queued unit. Returns False when the queue is empty."""
        if not self._queue:
            return False
        unit = self._queue.popleft()
        run_id = self.new_run_id()
        self.history.append(run_id)
        logger.debug("Running scheduled unit", unit=unit.name, run_id=run_id)
        unit.run_scheduled_unit(run_id)
        return True

    def run_all(self, max_units: int = 10_000) -> int:
        """
        Run queued units (including ones scheduled meanwhile) until the queue
        is empty. Returns the number of units run.
        """
        count = 0
        while self.run_next():
            count += 1
            if count >= max_units:
                raise RuntimeError(f"QueueScheduler ran {count} units without draining")
        return count

    def clear(self) -> None:
        self._queue.clear()
