"""
StepChain Test Fixtures

Shared fixtures for all StepChain tests.
"""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from stepchain import Chain, InlineScheduler, QueueScheduler, StepChainConfig, set_config
from stepchain.testing import RecordingFinalizer, RecordingHandler
from stepchain.utils.tracing import set_tracer

# ══════════════════════════════════════════════════════════════════════════════
#                           CONFIG ISOLATION
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def default_config():
    """Pin every test to the default configuration (ignores env and .env)."""
    config = StepChainConfig()
    set_config(config)
    yield config
    set_config(None)


# ══════════════════════════════════════════════════════════════════════════════
#                           SCHEDULERS
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def queue_scheduler() -> QueueScheduler:
    """Manually driven scheduler: nothing runs until run_next()/run_all()."""
    return QueueScheduler()


@pytest.fixture
def inline_scheduler() -> InlineScheduler:
    return InlineScheduler()


# ══════════════════════════════════════════════════════════════════════════════
#                           CHAINS & UNITS
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def chain(queue_scheduler) -> Chain:
    """Fresh chain with initial payload 0 on a QueueScheduler."""
    return Chain.create(0, scheduler=queue_scheduler, name="test_chain")


@pytest.fixture
def finalizer() -> RecordingFinalizer:
    return RecordingFinalizer()


@pytest.fixture
def recovering_handler() -> RecordingHandler:
    return RecordingHandler("resolve", value="recovered")


@pytest.fixture
def execution_log() -> list[str]:
    """Shared list steps append their names to, for ordering assertions."""
    return []


# ══════════════════════════════════════════════════════════════════════════════
#                           TRACING
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def span_exporter():
    """Route StepChain spans into an in-memory exporter for the test."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    set_tracer(provider.get_tracer("stepchain-tests"))
    yield exporter
    set_tracer(None)
    exporter.clear()
