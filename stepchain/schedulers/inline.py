"""
StepChain Inline Scheduler

Runs scheduled units in the calling thread, as soon as possible, without
nesting: a unit scheduled while another unit is running is queued and picked
up once the running one returns. A chain whose steps settle synchronously
therefore runs to completion inside execute(). A unit that raises does not
stop the drain; the first such error is re-raised once the queue is empty.
"""

from collections import deque

from stepchain.schedulers.base import ScheduledUnit, StepScheduler
from stepchain.utils.logging import get_logger

logger = get_logger(__name__)


class InlineScheduler(StepScheduler):
    """
    Trampolining scheduler for single-threaded use.

    Usage:
        chain = Chain.create(1, scheduler=InlineScheduler()).then(step).execute()
        assert chain.is_fulfilled()
    """

    def __init__(self) -> None:
        self._queue: deque[ScheduledUnit] = deque()
        self._draining = False
        self.units_run = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule_next(self, unit: ScheduledUnit) -> None:
        self._queue.append(unit)
        if self._draining:
            return

        self._draining = True
        first_error: Exception | None = None
        try:
            while self._queue:
                next_unit = self._queue.popleft()
                self.units_run += 1
                logger.debug("Running scheduled unit", unit=next_unit.name, queued=len(self._queue))
                try:
                    self._invoke(next_unit)
                except Exception as e:
                    # Units queued behind a failing one still belong to live chains
                    logger.warning(
                        "Scheduled unit raised",
                        unit=next_unit.name,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    if first_error is None:
                        first_error = e
        finally:
            self._draining = False

        if first_error is not None:
            raise first_error
