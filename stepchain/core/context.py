"""
StepChain Context

The mutable carrier shared by one chain instance and the resolver of its
currently running step: the current payload, the last captured error and the
run id of the scheduler invocation that is executing the chain right now.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

__all__ = [
    "ChainState",
    "RecoveryMode",
    "Context",
]

T = TypeVar("T")


class ChainState(Enum):
    """Lifecycle state of a chain"""

    PENDING = "pending"
    FULFILLED = "fulfilled"  # terminal
    REJECTED = "rejected"  # terminal

    @property
    def is_terminal(self) -> bool:
        return self is not ChainState.PENDING


class RecoveryMode(Enum):
    """What happens after the error handler resolves (recovers)"""

    FINISH = "finish"  # Settle the chain as fulfilled with the handler's value
    RESUME = "resume"  # Continue with the step after the failed one

    @classmethod
    def parse(cls, value: "str | RecoveryMode") -> "RecoveryMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown recovery mode '{value}' (expected one of: {choices})") from None


@dataclass
class Context(Generic[T]):
    """
    Payload / error / run-id carrier for one chain instance.

    `payload` and `last_error` are never cleared by each other: a recovery
    leaves the old error in place. The owning chain's state decides which one
    is authoritative (see Chain.outcome()).
    """

    payload: T | None = None
    last_error: Any = None
    run_id: str | None = None
    run_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_error(self) -> bool:
        return self.last_error is not None

    def record_run(self, run_id: str | None) -> None:
        """Remember the id of the scheduler invocation now executing the chain."""
        self.run_id = run_id
        if run_id is not None:
            self.run_ids.append(run_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization (error as type/message)."""
        error = None
        if self.last_error is not None:
            error = {
                "type": type(self.last_error).__name__,
                "message": str(self.last_error),
            }
        return {
            "payload": self.payload,
            "last_error": error,
            "run_id": self.run_id,
            "run_ids": list(self.run_ids),
            "created_at": self.created_at.isoformat(),
        }
