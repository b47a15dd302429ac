"""StepChain Utilities Module"""

from stepchain.utils.logging import (
    ChainLogger,
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from stepchain.utils.tracing import (
    ChainTracer,
    configure_tracing,
    get_tracer,
    set_tracer,
    trace_span,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    "bind_context",
    "clear_context",
    "ChainLogger",
    # Tracing
    "configure_tracing",
    "get_tracer",
    "set_tracer",
    "trace_span",
    "ChainTracer",
]
