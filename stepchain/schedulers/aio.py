"""
StepChain asyncio Scheduler

Schedules each unit with loop.call_soon(), so steps run as separate event
loop callbacks. Steps may settle their resolver from any later callback or
task on the same loop (see stepchain.core.units.awaiting).
"""

import asyncio
from typing import TYPE_CHECKING

from stepchain.schedulers.base import ScheduledUnit, StepScheduler
from stepchain.utils.logging import get_logger

if TYPE_CHECKING:
    from stepchain.core.chain import Chain

logger = get_logger(__name__)


class AsyncioScheduler(StepScheduler):
    """
    Event-loop scheduler.

    Usage:
        scheduler = AsyncioScheduler()
        chain = Chain.create(scheduler=scheduler).then(awaiting(fetch_user))
        await scheduler.run(chain, timeout=10)
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        # Only consulted when schedule_next() is called off-loop
        self._loop = loop
        self._faults: dict[int, list[Exception]] = {}

    def schedule_next(self, unit: ScheduledUnit) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is None:
                raise
            loop = self._loop
        loop.call_soon(self._invoke, unit)

    def _invoke(self, unit: ScheduledUnit) -> None:
        try:
            super()._invoke(unit)
        except Exception as e:
            faults = self._faults.get(id(unit))
            if faults is None:
                raise
            logger.warning(
                "Scheduled unit raised",
                unit=unit.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            faults.append(e)

    async def run(self, chain: "Chain", timeout: float | None = None) -> "Chain":
        """
        Execute `chain` and wait until it is terminal.

        Units are scheduled on the loop running this coroutine, so one
        scheduler can be reused across asyncio.run() calls. An exception
        raised out of one of the chain's units (a finalizer fault, a step
        raising after it settled) is re-raised here once the chain is
        terminal.

        Raises:
            asyncio.TimeoutError: if the chain is still pending after `timeout`
                                  seconds (for example a step never settled)
        """
        loop = asyncio.get_running_loop()
        done: asyncio.Future = loop.create_future()

        def _on_done(finished: "Chain") -> None:
            if not done.done():
                done.set_result(finished)

        chain.add_done_callback(_on_done)
        faults = self._faults.setdefault(id(chain), [])
        logger.debug("Running chain on event loop", chain=chain.name, timeout=timeout)
        try:
            chain.execute()
            await asyncio.wait_for(done, timeout)
        finally:
            self._faults.pop(id(chain), None)

        if faults:
            raise faults[0]
        return chain
