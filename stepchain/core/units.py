"""
StepChain Units

The three kinds of work a chain runs, plus adapters that turn plain
functions into units.

    step:           run(input, resolver) -> None
    error handler:  run(error, input, resolver) -> None
    finalizer:      run(input, has_error) -> None

Any object with a matching `run` method works. Plain callables with the same
signature are wrapped automatically by Chain.then / catch_error / finall.

Adapters:
    returning(fn)       resolve with fn(input); raising rejects
    awaiting(coro_fn)   run coro_fn(input) on the running event loop and
                        settle the resolver when it finishes
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from stepchain.core.errors import ChainConfigurationError, ErrorKind
from stepchain.core.resolver import Resolver

__all__ = [
    "Step",
    "ErrorHandler",
    "Finalizer",
    "FunctionStep",
    "FunctionErrorHandler",
    "FunctionFinalizer",
    "returning",
    "awaiting",
    "as_step",
    "as_error_handler",
    "as_finalizer",
    "unit_name",
]


class Step(Protocol):
    """A unit of asynchronous work; must eventually settle `resolver`."""

    def run(self, input: Any, resolver: Resolver) -> None: ...


class ErrorHandler(Protocol):
    """Recovery unit; resolve to recover, reject to give up."""

    def run(self, error: Any, input: Any, resolver: Resolver) -> None: ...


class Finalizer(Protocol):
    """Cleanup unit run once when the chain reaches a terminal state."""

    def run(self, input: Any, has_error: bool) -> None: ...


class _FunctionUnit:
    def __init__(self, func: Callable[..., Any], name: str | None = None):
        self.func = func
        self.name = name or getattr(func, "__name__", type(func).__name__)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class FunctionStep(_FunctionUnit):
    def run(self, input: Any, resolver: Resolver) -> None:
        self.func(input, resolver)


class FunctionErrorHandler(_FunctionUnit):
    def run(self, error: Any, input: Any, resolver: Resolver) -> None:
        self.func(error, input, resolver)


class FunctionFinalizer(_FunctionUnit):
    def run(self, input: Any, has_error: bool) -> None:
        self.func(input, has_error)


class returning(_FunctionUnit):
    """
    Step adapter for synchronous functions of the payload.

    Usage:
        chain.then(returning(lambda order: order["total"] * 1.2))
    """

    def run(self, input: Any, resolver: Resolver) -> None:
        resolver.resolve(self.func(input))


class awaiting(_FunctionUnit):
    """
    Step adapter for coroutine functions.

    The coroutine is started as a task on the running event loop and the
    resolver is settled from the task's done callback, so the chain advances
    only once the awaited work has finished.

    Usage:
        async def fetch_user(user_id):
            ...

        chain.then(awaiting(fetch_user))
    """

    def __init__(self, func: Callable[[Any], Awaitable[Any]], name: str | None = None):
        super().__init__(func, name)
        self._tasks: set[asyncio.Task] = set()

    def run(self, input: Any, resolver: Resolver) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self.func(input), name=f"stepchain.{self.name}")
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._settle(t, resolver))

    def _settle(self, task: asyncio.Task, resolver: Resolver) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            resolver.reject(asyncio.CancelledError(f"{self.name} was cancelled"))
        elif task.exception() is not None:
            resolver.reject(task.exception())
        else:
            resolver.resolve(task.result())


def _coerce(obj: Any, wrapper: type[_FunctionUnit], kind: str) -> Any:
    if callable(getattr(obj, "run", None)):
        return obj
    if callable(obj):
        return wrapper(obj)
    raise ChainConfigurationError(
        f"{kind} must be callable or define run(), got {type(obj).__name__}",
        kind=ErrorKind.INVALID_UNIT,
    )


def as_step(obj: Any) -> Step:
    return _coerce(obj, FunctionStep, "Step")


def as_error_handler(obj: Any) -> ErrorHandler:
    return _coerce(obj, FunctionErrorHandler, "Error handler")


def as_finalizer(obj: Any) -> Finalizer:
    return _coerce(obj, FunctionFinalizer, "Finalizer")


def unit_name(unit: Any) -> str:
    """Human-readable name for logs and spans."""
    name = getattr(unit, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(unit).__name__
