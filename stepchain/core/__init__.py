"""StepChain Core Module"""

from stepchain.core.chain import Chain
from stepchain.core.context import ChainState, Context, RecoveryMode
from stepchain.core.errors import (
    ChainConfigurationError,
    ChainError,
    ErrorKind,
    ResolverMisuseError,
    SchedulerViolationError,
)
from stepchain.core.resolver import ErrorResolver, Resolver, StepResolver
from stepchain.core.units import (
    ErrorHandler,
    Finalizer,
    Step,
    as_error_handler,
    as_finalizer,
    as_step,
    awaiting,
    returning,
)
from stepchain.core.validation import ContractValidationError, validate_payload

__all__ = [
    "Chain",
    "ChainState",
    "Context",
    "RecoveryMode",
    # Resolvers
    "Resolver",
    "StepResolver",
    "ErrorResolver",
    # Units
    "Step",
    "ErrorHandler",
    "Finalizer",
    "as_step",
    "as_error_handler",
    "as_finalizer",
    "returning",
    "awaiting",
    # Errors
    "ErrorKind",
    "ChainError",
    "ChainConfigurationError",
    "ResolverMisuseError",
    "SchedulerViolationError",
    # Validation
    "ContractValidationError",
    "validate_payload",
]
