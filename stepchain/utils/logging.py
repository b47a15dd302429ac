"""
StepChain Structured Logging

structlog configuration for the package plus ChainLogger, the per-chain
logger that stamps every lifecycle event with the chain name and run id.
Until configure_logging() is called structlog's defaults apply.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, unbind_contextvars

PACKAGE_LOGGER = "stepchain"


def _renderer(json_output: bool) -> list[Any]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    include_timestamp: bool = True,
) -> None:
    """
    Route structlog through the stdlib `logging` module on stderr.

    Args:
        level: Level name for the "stepchain" logger; unknown names mean INFO
        json_output: Render one JSON object per line instead of console output
        include_timestamp: Prefix events with an ISO timestamp

    Usage:
        from stepchain.utils.logging import configure_logging
        configure_logging(level="DEBUG", json_output=True)
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    processors: list[Any] = [structlog.processors.TimeStamper(fmt="iso")] if include_timestamp else []
    processors += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        *_renderer(json_output),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(log_level)


def get_logger(name: str) -> Any:
    """structlog logger for `name` (usually __name__)."""
    return structlog.get_logger(name)


class LogContext:
    """
    Bind key/value pairs to every log event emitted inside the block.

    Usage:
        with LogContext(tenant="acme", chain="orders"):
            chain.execute()
    """

    def __init__(self, **context: Any):
        self.context = context

    def __enter__(self) -> "LogContext":
        bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        unbind_contextvars(*self.context)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def bind_context(**context: Any) -> None:
    bind_contextvars(**context)


def clear_context() -> None:
    clear_contextvars()


class ChainLogger:
    """
    Logger for one chain instance; every event carries the chain name and
    the run id of the scheduler invocation currently executing it.

    Usage:
        logger = ChainLogger("orders")
        logger.run_id = scheduler_run_id
        logger.step_start(0, "load_order")
    """

    def __init__(self, chain_name: str):
        self.chain_name = chain_name
        self.run_id: str | None = None
        self._logger = get_logger(f"stepchain.chain.{chain_name}")

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        if self.run_id:
            kwargs.setdefault("run_id", self.run_id)
        getattr(self._logger, level)(message, chain=self.chain_name, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("info", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("debug", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("warning", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("error", message, **kwargs)

    def chain_start(self, total_steps: int) -> None:
        self.info("Chain started", total_steps=total_steps)

    def step_start(self, index: int, step_name: str) -> None:
        self.debug("Step started", step=step_name, step_index=index)

    def step_resolved(self, index: int, step_name: str) -> None:
        self.debug("Step resolved", step=step_name, step_index=index)

    def step_rejected(self, index: int, step_name: str, error: Any) -> None:
        self.warning(
            "Step rejected",
            step=step_name,
            step_index=index,
            error=str(error),
            error_type=type(error).__name__,
        )

    def handler_start(self, index: int, handler_name: str, error: Any) -> None:
        self.info(
            "Error handler started",
            handler=handler_name,
            step_index=index,
            error_type=type(error).__name__,
        )

    def chain_fulfilled(self, steps_run: int) -> None:
        self.info("Chain fulfilled", steps_run=steps_run)

    def chain_rejected(self, error: Any) -> None:
        self.error("Chain rejected", error=str(error), error_type=type(error).__name__)

    def ignored(self, reason: str, **kwargs: Any) -> None:
        self.warning("Call ignored", reason=reason, **kwargs)
