"""
StepChain Testing Utilities

Provides testing helpers for chains, steps and error handlers:
- RecordingStep / FailingStep / RaisingStep / DeferredStep: scripted steps
- RecordingHandler / RecordingFinalizer: capture what the chain passed in
- run_to_completion: execute a chain and drain its scheduler
- assert_fulfilled / assert_rejected / assert_pending: outcome assertions

Usage:
    from stepchain.testing import RecordingStep, FailingStep, RecordingFinalizer

    first = RecordingStep(returns="a")
    finalizer = RecordingFinalizer()
    chain = Chain.create(0, scheduler=QueueScheduler()).then(first).finall(finalizer)

    run_to_completion(chain)
    assert_fulfilled(chain, "a")
    assert finalizer.last_call == ("a", False)
"""

from stepchain.testing.assertions import (
    assert_fulfilled,
    assert_pending,
    assert_rejected,
)
from stepchain.testing.fixtures import create_test_chain, run_to_completion
from stepchain.testing.mocks import (
    DeferredStep,
    FailingStep,
    RaisingStep,
    RecordingFinalizer,
    RecordingHandler,
    RecordingStep,
)

__all__ = [
    # Mocks
    "RecordingStep",
    "FailingStep",
    "RaisingStep",
    "DeferredStep",
    "RecordingHandler",
    "RecordingFinalizer",
    # Fixtures
    "create_test_chain",
    "run_to_completion",
    # Assertions
    "assert_fulfilled",
    "assert_rejected",
    "assert_pending",
]
