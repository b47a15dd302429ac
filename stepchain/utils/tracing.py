"""
StepChain OpenTelemetry Tracing

Every step, error handler and finalizer invocation runs inside a span. Until
configure_tracing() installs a provider, the OpenTelemetry API hands out
non-recording spans, so tracing costs nothing when it is not configured.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.trace import Span, Status, StatusCode

logger = logging.getLogger(__name__)

_tracer: trace.Tracer | None = None


def configure_tracing(
    service_name: str = "stepchain",
    exporter: SpanExporter | None = None,
    enabled: bool = True,
) -> None:
    """
    Install a TracerProvider and point chain spans at it.

    Args:
        service_name: Reported as the "service.name" resource attribute
        exporter: Span exporter; ConsoleSpanExporter when omitted
        enabled: False installs a no-op tracer instead

    Usage:
        configure_tracing(service_name="billing-worker")
        configure_tracing(exporter=OTLPSpanExporter(endpoint="localhost:4317"))
    """
    global _tracer

    if not enabled:
        logger.info("Tracing disabled")
        _tracer = trace.NoOpTracer()
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(exporter or ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    _tracer = provider.get_tracer("stepchain")
    logger.info(f"Tracing enabled for {service_name}")


def get_tracer() -> trace.Tracer:
    """Tracer used for chain spans (falls back to the global provider)."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("stepchain")
    return _tracer


def set_tracer(tracer: trace.Tracer | None) -> None:
    """Replace the module tracer (None re-resolves from the global provider)."""
    global _tracer
    _tracer = tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
    record_exception: bool = True,
) -> Iterator[Span]:
    """
    Open a span named `name`; None-valued attributes are skipped and an
    escaping exception marks the span as failed.

    Usage:
        with trace_span("load_order", attributes={"order.id": 42}):
            ...
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            if record_exception:
                span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


class ChainTracer:
    """
    Span factory for one chain instance.

    Usage:
        tracer = ChainTracer("orders")
        with tracer.step_span(0, "load_order", run_id="a1b2"):
            step.run(payload, resolver)
    """

    def __init__(self, chain_name: str):
        self.chain_name = chain_name

    def _attributes(self, run_id: str | None, **extra: Any) -> dict[str, Any]:
        return {"chain.name": self.chain_name, "chain.run_id": run_id, **extra}

    @contextmanager
    def step_span(self, index: int, step_name: str, run_id: str | None = None) -> Iterator[Span]:
        attrs = self._attributes(run_id, **{"step.index": index, "step.name": step_name})
        with trace_span(f"step.{step_name}", attributes=attrs) as span:
            yield span

    @contextmanager
    def handler_span(self, index: int, handler_name: str, run_id: str | None = None) -> Iterator[Span]:
        attrs = self._attributes(run_id, **{"step.index": index, "handler.name": handler_name})
        with trace_span(f"handler.{handler_name}", attributes=attrs) as span:
            yield span

    @contextmanager
    def finalizer_span(self, has_error: bool, run_id: str | None = None) -> Iterator[Span]:
        attrs = self._attributes(run_id, **{"finalizer.has_error": has_error})
        with trace_span(f"finalizer.{self.chain_name}", attributes=attrs) as span:
            yield span
