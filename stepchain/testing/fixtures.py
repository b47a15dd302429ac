"""
StepChain Test Fixtures

Helpers for building and driving chains in tests. Compatible with pytest
and unittest.
"""

from typing import Any

from stepchain.core.chain import Chain
from stepchain.schedulers import QueueScheduler, StepScheduler


def create_test_chain(
    *steps: Any,
    payload: Any = None,
    scheduler: StepScheduler | None = None,
    name: str = "test_chain",
    **kwargs: Any,
) -> Chain:
    """
    Create a chain with the given steps on a QueueScheduler (by default).

    Usage:
        chain = create_test_chain(RecordingStep(returns=1), payload=0)
        run_to_completion(chain)

    Args:
        steps: Steps appended in order with then()
        payload: Initial payload
        scheduler: Scheduler to use (default: a fresh QueueScheduler)
        name: Chain name
        kwargs: Passed through to Chain.create()
    """
    chain = Chain.create(payload, scheduler=scheduler or QueueScheduler(), name=name, **kwargs)
    for step in steps:
        chain.then(step)
    return chain


def run_to_completion(chain: Chain, scheduler: StepScheduler | None = None) -> Chain:
    """
    Execute `chain` and, for a QueueScheduler, drain it.

    A chain can still be pending afterwards when a step holds its resolver
    (see DeferredStep); this helper never waits.
    """
    scheduler = scheduler or chain.scheduler
    chain.execute()
    if isinstance(scheduler, QueueScheduler):
        scheduler.run_all()
    return chain
