"""
StepChain Resolvers

A resolver is the capability handed to a running unit so it can report its
outcome. One resolver is created per step (or error handler) invocation and
may be settled exactly once, with either resolve() or reject().

Two variants exist because the continuation targets differ:
- StepResolver: resolve continues the chain, reject enters error handling
- ErrorResolver: resolve means "recovered", reject means "unrecoverable"

Settling a resolver twice is a usage error. In strict mode it raises
ResolverMisuseError; in lenient mode the redundant call is logged and dropped.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from stepchain.core.errors import ResolverMisuseError

if TYPE_CHECKING:
    from stepchain.core.chain import Chain

__all__ = [
    "Resolver",
    "StepResolver",
    "ErrorResolver",
]

T = TypeVar("T")


class Resolver(ABC, Generic[T]):
    """One-shot resolve/reject capability bound to a chain."""

    def __init__(self, chain: "Chain[T]", step_index: int, strict: bool = True):
        self._chain = chain
        self.step_index = step_index
        self.strict = strict
        self._settled_with: str | None = None

    @property
    def settled(self) -> bool:
        return self._settled_with is not None

    @property
    def settled_with(self) -> str | None:
        """"resolve", "reject" or None while unsettled."""
        return self._settled_with

    def resolve(self, value: T | None = None) -> None:
        if self._claim("resolve"):
            self._on_resolve(value)

    def reject(self, error: Any) -> None:
        if self._claim("reject"):
            self._on_reject(error)

    def _claim(self, action: str) -> bool:
        if self._settled_with is None:
            self._settled_with = action
            return True

        message = (
            f"{type(self).__name__} for step {self.step_index} of chain "
            f"'{self._chain.name}' already settled with {self._settled_with}(); "
            f"{action}() is not allowed"
        )
        if self.strict:
            raise ResolverMisuseError(message, chain=self._chain.name, step_index=self.step_index)
        self._chain._note_ignored(f"redundant {action}()", step_index=self.step_index)
        return False

    @abstractmethod
    def _on_resolve(self, value: T | None) -> None: ...

    @abstractmethod
    def _on_reject(self, error: Any) -> None: ...

    def __repr__(self) -> str:
        state = self._settled_with or "unsettled"
        return f"<{type(self).__name__} chain={self._chain.name!r} step={self.step_index} {state}>"


class StepResolver(Resolver[T]):
    """Resolver handed to a step: resolve continues, reject escalates."""

    def _on_resolve(self, value: T | None) -> None:
        self._chain._step_resolved(self, value)

    def _on_reject(self, error: Any) -> None:
        self._chain._step_rejected(self, error)


class ErrorResolver(Resolver[T]):
    """
    Resolver handed to the error handler.

    resolve(value) recovers with `value` as the new payload; the failed step
    is never re-run. reject(error) finalizes the chain as rejected with
    `error`, which may differ from the original failure.
    """

    def _on_resolve(self, value: T | None) -> None:
        self._chain._handler_resolved(self, value)

    def _on_reject(self, error: Any) -> None:
        self._chain._handler_rejected(self, error)
