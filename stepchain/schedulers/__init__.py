"""StepChain Schedulers Module"""

from stepchain.schedulers.aio import AsyncioScheduler
from stepchain.schedulers.base import ScheduledUnit, StepScheduler
from stepchain.schedulers.inline import InlineScheduler
from stepchain.schedulers.manual import QueueScheduler

SCHEDULERS: dict[str, type[StepScheduler]] = {
    "inline": InlineScheduler,
    "queue": QueueScheduler,
    "asyncio": AsyncioScheduler,
}


def create_scheduler(kind: str = "inline") -> StepScheduler:
    """
    Create a scheduler by name ("inline", "queue" or "asyncio").

    Raises:
        ValueError: for an unknown kind
    """
    try:
        scheduler_cls = SCHEDULERS[kind.strip().lower()]
    except KeyError:
        choices = ", ".join(sorted(SCHEDULERS))
        raise ValueError(f"Unknown scheduler '{kind}' (expected one of: {choices})") from None
    return scheduler_cls()


__all__ = [
    "StepScheduler",
    "ScheduledUnit",
    "InlineScheduler",
    "QueueScheduler",
    "AsyncioScheduler",
    "SCHEDULERS",
    "create_scheduler",
]
