"""
StepChain Chain Orchestrator

Runs an ordered list of steps one at a time, feeding each step the value the
previous one resolved with, and ends in exactly one terminal state:
FULFILLED or REJECTED.

Steps are never run back-to-back on one call stack. Every step is handed to
the chain's StepScheduler, which calls back into run_scheduled_unit() later,
possibly from another task or worker.

    chain = (
        Chain.create({"order_id": 42}, scheduler=InlineScheduler(), name="orders")
        .then(load_order)
        .then(returning(price_order))
        .catch_error(fallback_price)
        .finall(release_lock)
        .execute()
    )

State machine:
    PENDING --resolve--> FULFILLED           finalizer(payload, False)
    PENDING --reject---> error handling
        no handler / handler raised   -> REJECTED, finalizer(error, True)
        handler rejects               -> REJECTED with the handler's error
        handler resolves              -> RecoveryMode.FINISH: FULFILLED
                                         RecoveryMode.RESUME: next step
    FULFILLED / REJECTED: every further call is a silent no-op

Only the first registered error handler is ever attempted.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from stepchain.config import get_config
from stepchain.core.context import ChainState, Context, RecoveryMode
from stepchain.core.errors import (
    ChainConfigurationError,
    ErrorKind,
    SchedulerViolationError,
)
from stepchain.core.resolver import ErrorResolver, StepResolver
from stepchain.core.units import (
    ErrorHandler,
    Finalizer,
    Step,
    as_error_handler,
    as_finalizer,
    as_step,
    unit_name,
)
from stepchain.core.validation import (
    ContractValidationError,
    is_pydantic_model,
    validate_payload,
)
from stepchain.schedulers import StepScheduler, create_scheduler
from stepchain.utils.logging import ChainLogger
from stepchain.utils.tracing import ChainTracer

__all__ = ["Chain"]

T = TypeVar("T")

DoneCallback = Callable[["Chain[Any]"], None]


@dataclass(frozen=True)
class _StepEntry:
    unit: Step
    output_model: type | None = None

    @property
    def name(self) -> str:
        return unit_name(self.unit)


class Chain(Generic[T]):
    """
    Sequential asynchronous chain of steps.

    Args:
        initial_payload: Value handed to the first step
        scheduler: StepScheduler that re-invokes the chain for each step
                   (defaults to the configured STEPCHAIN_SCHEDULER kind)
        name: Label used in logs, spans and to_dict()
        strict_resolvers: Raise ResolverMisuseError when a resolver is
                          settled twice (defaults to STEPCHAIN_STRICT_RESOLVERS)
        recovery_mode: What happens after the error handler recovers
                       (defaults to STEPCHAIN_RECOVERY_MODE)
        input_model: Optional Pydantic model the initial payload must satisfy
    """

    def __init__(
        self,
        initial_payload: T | None = None,
        *,
        scheduler: StepScheduler | None = None,
        name: str | None = None,
        strict_resolvers: bool | None = None,
        recovery_mode: RecoveryMode | str | None = None,
        input_model: type | None = None,
    ):
        config = get_config()

        self.name = name or f"chain-{uuid.uuid4().hex[:8]}"
        self.scheduler = scheduler or create_scheduler(config.default_scheduler)
        self.strict_resolvers = (
            config.strict_resolvers if strict_resolvers is None else strict_resolvers
        )
        self.recovery_mode = RecoveryMode.parse(
            config.recovery_mode if recovery_mode is None else recovery_mode
        )

        if input_model is not None:
            if not is_pydantic_model(input_model):
                raise ChainConfigurationError(
                    f"input_model must be a Pydantic model, got {input_model!r}", chain=self.name
                )
            initial_payload = validate_payload("<input>", input_model, initial_payload, "input")

        self._context: Context[T] = Context(payload=initial_payload)
        self._steps: list[_StepEntry] = []
        self._error_handlers: list[ErrorHandler] = []
        self._finalizer: Finalizer | None = None
        self._done_callbacks: list[DoneCallback] = []

        self._state = ChainState.PENDING
        self._cursor = 0
        self._steps_run = 0
        self._started = False

        # A unit is queued on the scheduler and has not run yet
        self._unit_pending = False
        # Inside run_scheduled_unit()
        self._in_unit = False
        # Resolver of the step currently in flight
        self._active_resolver: StepResolver[T] | None = None
        # Resolver of the error handler currently in flight
        self._handling: ErrorResolver[T] | None = None

        self._log = ChainLogger(self.name)
        self._tracer = ChainTracer(self.name)

    @classmethod
    def create(cls, initial_payload: T | None = None, **kwargs: Any) -> "Chain[T]":
        """Create a chain; keyword arguments are passed to the constructor."""
        return cls(initial_payload, **kwargs)

    # ══════════════════════════════════════════════════════════════════
    #                    BUILDING
    # ══════════════════════════════════════════════════════════════════

    def then(self, step: Any, *, output_model: type | None = None) -> "Chain[T]":
        """
        Append a step.

        `step` is an object with run(input, resolver) or a callable with the
        same signature. When `output_model` is given, the value the step
        resolves with must validate against it; a failing value rejects the
        step with ContractValidationError.
        """
        self._ensure_configurable("then")
        if output_model is not None and not is_pydantic_model(output_model):
            raise ChainConfigurationError(
                f"output_model must be a Pydantic model, got {output_model!r}", chain=self.name
            )
        self._steps.append(_StepEntry(as_step(step), output_model))
        return self

    def catch_error(self, handler: Any) -> "Chain[T]":
        """Append an error handler. Only the first one is ever invoked."""
        self._ensure_configurable("catch_error")
        self._error_handlers.append(as_error_handler(handler))
        return self

    def finall(self, handler: Any) -> "Chain[T]":
        """Set the finalizer, run once with (payload_or_error, has_error)."""
        self._ensure_configurable("finall")
        if self._finalizer is not None:
            raise ChainConfigurationError(
                f"Chain '{self.name}' already has a finalizer",
                kind=ErrorKind.FINALIZER_ALREADY_SET,
                chain=self.name,
            )
        self._finalizer = as_finalizer(handler)
        return self

    def add_done_callback(self, callback: DoneCallback) -> "Chain[T]":
        """
        Call `callback(chain)` once the chain is terminal (after the finalizer).

        Called immediately if the chain is already terminal.
        """
        if self._state.is_terminal:
            callback(self)
        else:
            self._done_callbacks.append(callback)
        return self

    def _ensure_configurable(self, operation: str) -> None:
        if self._started or self._state.is_terminal:
            raise ChainConfigurationError(
                f"Cannot call {operation}() on chain '{self.name}' after it has started",
                kind=ErrorKind.CHAIN_STARTED,
                chain=self.name,
            )

    # ══════════════════════════════════════════════════════════════════
    #                    RUNNING
    # ══════════════════════════════════════════════════════════════════

    def execute(self) -> "Chain[T]":
        """
        Start the chain.

        Safe to call repeatedly: nothing is scheduled while a unit is queued,
        a step or the error handler is in flight, or the chain is terminal.
        """
        if self._state.is_terminal:
            return self

        if not self._started:
            self._started = True
            self._log.chain_start(total_steps=len(self._steps))

        if self._unit_pending or self._active_resolver is not None or self._handling is not None:
            return self

        if self._cursor >= len(self._steps):
            self._fulfill(self._context.payload)
        else:
            self._schedule()
        return self

    def run_scheduled_unit(self, run_id: str | None = None) -> None:
        """
        Scheduler callback: run the step at the cursor.

        Each call made for a schedule_next() request runs exactly one step.
        Calls that do not match a pending request (duplicates, late calls
        after termination) are ignored.
        """
        if self._in_unit:
            raise SchedulerViolationError(
                f"Chain '{self.name}' was re-entered while a unit was still running",
                chain=self.name,
            )

        self._context.record_run(run_id)
        self._log.run_id = run_id

        if self._state.is_terminal:
            self._note_ignored("scheduled unit after termination")
            return
        if not self._unit_pending:
            self._note_ignored("scheduled unit without a pending request")
            return

        self._unit_pending = False
        if self._cursor >= len(self._steps):
            self._fulfill(self._context.payload)
            return

        self._in_unit = True
        try:
            self._run_step(self._cursor)
        finally:
            self._in_unit = False

    def _schedule(self) -> None:
        self._started = True
        if self._unit_pending:
            return
        self._unit_pending = True
        self.scheduler.schedule_next(self)

    def _run_step(self, index: int) -> None:
        entry = self._steps[index]
        resolver: StepResolver[T] = StepResolver(self, index, strict=self.strict_resolvers)
        self._active_resolver = resolver
        self._steps_run += 1
        self._log.step_start(index, entry.name)

        try:
            with self._tracer.step_span(index, entry.name, run_id=self._context.run_id):
                entry.unit.run(self._context.payload, resolver)
        except Exception as e:
            if resolver.settled:
                # Outcome already recorded; the fault belongs to the caller
                raise
            resolver.reject(e)

    def _continue_chain(self) -> None:
        if self._state.is_terminal:
            return
        self._cursor += 1
        if self._cursor < len(self._steps):
            self._schedule()
        else:
            self._fulfill(self._context.payload)

    # ══════════════════════════════════════════════════════════════════
    #                    RESOLVER CALLBACKS
    # ══════════════════════════════════════════════════════════════════

    def _step_resolved(self, resolver: StepResolver[T], value: T | None) -> None:
        if self._state.is_terminal or resolver is not self._active_resolver:
            self._note_ignored("resolve() from a step that is no longer running", step_index=resolver.step_index)
            return

        self._active_resolver = None
        entry = self._steps[resolver.step_index]
        if entry.output_model is not None:
            try:
                value = validate_payload(entry.name, entry.output_model, value)
            except ContractValidationError as e:
                self._log.step_rejected(resolver.step_index, entry.name, e)
                self._escalate(resolver.step_index, e)
                return

        self._log.step_resolved(resolver.step_index, entry.name)
        self._context.payload = value
        self._continue_chain()

    def _step_rejected(self, resolver: StepResolver[T], error: Any) -> None:
        if self._state.is_terminal or resolver is not self._active_resolver:
            self._note_ignored("reject() from a step that is no longer running", step_index=resolver.step_index)
            return

        self._active_resolver = None
        self._log.step_rejected(resolver.step_index, self._steps[resolver.step_index].name, error)
        self._escalate(resolver.step_index, error)

    def _handler_resolved(self, resolver: ErrorResolver[T], value: T | None) -> None:
        if self._state.is_terminal or resolver is not self._handling:
            self._note_ignored("resolve() from an error handler that is no longer running")
            return

        self._handling = None
        self._context.payload = value
        self._log.info(
            "Error handler recovered",
            step_index=resolver.step_index,
            recovery_mode=self.recovery_mode.value,
        )
        if self.recovery_mode is RecoveryMode.RESUME:
            self._continue_chain()
        else:
            self._fulfill(value)

    def _handler_rejected(self, resolver: ErrorResolver[T], error: Any) -> None:
        if self._state.is_terminal or resolver is not self._handling:
            self._note_ignored("reject() from an error handler that is no longer running")
            return

        self._handling = None
        self._finalize_rejected(error)

    def _note_ignored(self, reason: str, **kwargs: Any) -> None:
        if self._state.is_terminal:
            self._log.debug("Call ignored", reason=reason, state=self._state.value, **kwargs)
        else:
            self._log.ignored(reason, **kwargs)

    # ══════════════════════════════════════════════════════════════════
    #                    TERMINATION
    # ══════════════════════════════════════════════════════════════════

    def resolve(self, value: T | None = None) -> "Chain[T]":
        """Fulfill the chain now with `value`. No-op when terminal."""
        if self._state.is_terminal:
            return self
        self._active_resolver = None
        self._handling = None
        self._fulfill(value)
        return self

    def reject(self, error: Any) -> "Chain[T]":
        """
        Reject the chain with `error`. No-op when terminal.

        Outside error handling this goes through the error handler like a
        failed step; while the handler is running it finalizes directly.
        """
        if self._state.is_terminal:
            return self
        if self._handling is not None:
            self._handling = None
            self._finalize_rejected(error)
            return self

        self._active_resolver = None
        self._escalate(self._cursor, error)
        return self

    def _escalate(self, index: int, error: Any) -> None:
        self._context.last_error = error
        if not self._error_handlers:
            self._finalize_rejected(error)
            return

        handler = self._error_handlers[0]
        handler_name = unit_name(handler)
        resolver: ErrorResolver[T] = ErrorResolver(self, index, strict=self.strict_resolvers)
        self._handling = resolver
        self._log.handler_start(index, handler_name, error)

        try:
            with self._tracer.handler_span(index, handler_name, run_id=self._context.run_id):
                handler.run(error, self._context.payload, resolver)
        except Exception as handler_error:
            if resolver.settled:
                raise
            self._log.error(
                "Error handler raised",
                handler=handler_name,
                error=str(handler_error),
                error_type=type(handler_error).__name__,
            )
            if self._handling is resolver:
                self._handling = None
                self._finalize_rejected(error)

    def _fulfill(self, value: T | None) -> None:
        self._state = ChainState.FULFILLED
        self._context.payload = value
        self._log.chain_fulfilled(steps_run=self._steps_run)
        self._settle(value, has_error=False)

    def _finalize_rejected(self, error: Any) -> None:
        self._state = ChainState.REJECTED
        self._context.last_error = error
        self._log.chain_rejected(error)
        self._settle(error, has_error=True)

    def _settle(self, value: Any, has_error: bool) -> None:
        try:
            if self._finalizer is not None:
                with self._tracer.finalizer_span(has_error, run_id=self._context.run_id):
                    self._finalizer.run(value, has_error)
        finally:
            callbacks, self._done_callbacks = self._done_callbacks, []
            for callback in callbacks:
                callback(self)

    # ══════════════════════════════════════════════════════════════════
    #                    INSPECTION
    # ══════════════════════════════════════════════════════════════════

    @property
    def state(self) -> ChainState:
        return self._state

    @property
    def context(self) -> Context[T]:
        return self._context

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(entry.unit for entry in self._steps)

    @property
    def error_handlers(self) -> tuple[ErrorHandler, ...]:
        return tuple(self._error_handlers)

    @property
    def finalizer(self) -> Finalizer | None:
        return self._finalizer

    @property
    def steps_run(self) -> int:
        return self._steps_run

    def get_state(self) -> ChainState:
        return self._state

    def get_context(self) -> Context[T]:
        return self._context

    def is_pending(self) -> bool:
        return self._state is ChainState.PENDING

    def is_fulfilled(self) -> bool:
        return self._state is ChainState.FULFILLED

    def is_rejected(self) -> bool:
        return self._state is ChainState.REJECTED

    def is_handling_error(self) -> bool:
        return self._handling is not None

    def outcome(self) -> Any:
        """The authoritative result: the error when rejected, otherwise the payload."""
        if self._state is ChainState.REJECTED:
            return self._context.last_error
        return self._context.payload

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "chain": self.name,
            "state": self._state.value,
            "cursor": self._cursor,
            "total_steps": len(self._steps),
            "steps_run": self._steps_run,
            "handling_error": self.is_handling_error(),
            "recovery_mode": self.recovery_mode.value,
            "context": self._context.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"<Chain {self.name!r} state={self._state.value} "
            f"cursor={self._cursor}/{len(self._steps)}>"
        )


