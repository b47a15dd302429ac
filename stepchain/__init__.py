"""
StepChain: Sequential Asynchronous Chain Orchestration

Runs an ordered list of steps, passing each step's result to the next, and
ends in exactly one outcome (fulfilled or rejected). Each step is handed to a
pluggable scheduler that calls back into the chain when it is time to run it.

Quick Start:
    from stepchain import Chain, InlineScheduler, returning

    def load(order_id, resolver):
        resolver.resolve({"id": order_id, "total": 100})

    chain = (
        Chain.create(42, scheduler=InlineScheduler(), name="orders")
        .then(load)
        .then(returning(lambda order: order["total"] * 1.2))
        .catch_error(lambda error, payload, resolver: resolver.resolve(0))
        .finall(lambda result, has_error: print(result, has_error))
        .execute()
    )
    assert chain.is_fulfilled()

For async steps and HTTP calls:
    from stepchain import AsyncioScheduler, awaiting
    from stepchain.steps import HttpStep
"""

from stepchain.config import ConfigError, StepChainConfig, get_config, reload_config, set_config
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
from stepchain.core.units import awaiting, returning
from stepchain.core.validation import ContractValidationError
from stepchain.schedulers import (
    AsyncioScheduler,
    InlineScheduler,
    QueueScheduler,
    StepScheduler,
    create_scheduler,
)
from stepchain.utils import configure_logging, configure_tracing, get_logger

__version__ = "0.1.0"

__all__ = [
    # Core
    "Chain",
    "ChainState",
    "Context",
    "RecoveryMode",
    "Resolver",
    "StepResolver",
    "ErrorResolver",
    "returning",
    "awaiting",
    # Schedulers
    "StepScheduler",
    "InlineScheduler",
    "QueueScheduler",
    "AsyncioScheduler",
    "create_scheduler",
    # Errors
    "ErrorKind",
    "ChainError",
    "ChainConfigurationError",
    "ResolverMisuseError",
    "SchedulerViolationError",
    "ContractValidationError",
    # Config
    "StepChainConfig",
    "ConfigError",
    "get_config",
    "set_config",
    "reload_config",
    # Utilities
    "configure_logging",
    "configure_tracing",
    "get_logger",
]
