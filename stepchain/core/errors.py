"""
StepChain Error Taxonomy

All errors raised by the orchestrator itself derive from ChainError and carry
an ErrorKind so callers (and structured logs) can branch on the category
without string matching.

Failures reported by steps are NOT wrapped: whatever a step rejects with is
stored as-is in Context.last_error.
"""

from enum import Enum
from typing import Any

__all__ = [
    "ErrorKind",
    "ChainError",
    "ChainConfigurationError",
    "ResolverMisuseError",
    "SchedulerViolationError",
]


class ErrorKind(Enum):
    """Category of an orchestrator error"""

    CHAIN_ERROR = "chain_error"

    RESOLVER_MISUSE = "resolver_misuse"
    CHAIN_STARTED = "chain_started"
    FINALIZER_ALREADY_SET = "finalizer_already_set"
    INVALID_UNIT = "invalid_unit"
    SCHEDULER_VIOLATION = "scheduler_violation"
    CONTRACT_VIOLATION = "contract_violation"


class ChainError(Exception):
    """Base class for errors raised by the orchestrator."""

    kind: ErrorKind = ErrorKind.CHAIN_ERROR

    def __init__(self, message: str, *, kind: ErrorKind | None = None, chain: str | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.chain = chain

    def to_dict(self) -> dict[str, Any]:
        """Structured form for logging and CLI output."""
        return {
            "type": type(self).__name__,
            "kind": self.kind.value,
            "message": str(self),
            "chain": self.chain,
        }


class ChainConfigurationError(ChainError):
    """Raised when a chain is built incorrectly (late appends, bad units, ...)."""

    kind = ErrorKind.INVALID_UNIT


class ResolverMisuseError(ChainError):
    """
    Raised when a resolver is settled more than once.

    A resolver belongs to exactly one step invocation and may call either
    resolve() or reject() exactly once.
    """

    kind = ErrorKind.RESOLVER_MISUSE

    def __init__(self, message: str, *, chain: str | None = None, step_index: int | None = None):
        super().__init__(message, chain=chain)
        self.step_index = step_index

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["step_index"] = self.step_index
        return data


class SchedulerViolationError(ChainError):
    """Raised when a scheduler re-enters a chain while a unit is still running."""

    kind = ErrorKind.SCHEDULER_VIOLATION
