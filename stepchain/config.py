"""
StepChain Configuration Module

Centralized configuration loaded from environment variables (and a `.env`
file when present). Settings are loaded once and read by chains, schedulers
and the CLI.

Usage:
    from stepchain.config import get_config

    config = get_config()
    scheduler = create_scheduler(config.default_scheduler)
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

__all__ = [
    "ConfigError",
    "StepChainConfig",
    "get_config",
    "set_config",
    "reload_config",
    "load_env_file",
]

SCHEDULER_KINDS = ("inline", "queue", "asyncio")
LOG_FORMATS = ("text", "json")
RECOVERY_MODES = ("finish", "resume")


class ConfigError(Exception):
    """Raised when configuration validation fails"""
    pass


def load_env_file() -> Path | None:
    """Load the first `.env` found in cwd or next to the package."""
    env_paths = [
        Path.cwd() / ".env",
        Path(__file__).parent.parent / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _get_env(key: str, default: str) -> str:
    return os.getenv(key, default).strip()


def _get_env_bool(key: str, default: bool, errors: list[str]) -> bool:
    value = _get_env(key, str(default)).lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    errors.append(f"{key} must be a boolean, got '{value}'")
    return default


def _get_env_float(key: str, default: float, errors: list[str]) -> float:
    value = _get_env(key, str(default))
    try:
        return float(value)
    except ValueError:
        errors.append(f"{key} must be a number, got '{value}'")
        return default


def _get_env_choice(key: str, default: str, choices: tuple[str, ...], errors: list[str]) -> str:
    value = _get_env(key, default).lower()
    if value not in choices:
        errors.append(f"{key} must be one of {', '.join(choices)}, got '{value}'")
        return default
    return value


@dataclass
class StepChainConfig:
    """
    StepChain configuration.

    Attributes:
        service_name: Name used for tracing and logs
        environment: Deployment environment label
        default_scheduler: Scheduler used by the CLI ("inline", "queue", "asyncio")
        strict_resolvers: Raise ResolverMisuseError on a second resolve/reject
        recovery_mode: What a recovered error handler does ("finish" or "resume")
        http_timeout: Default timeout in seconds for HttpStep
        log_level: Log level for configure_logging()
        log_format: "text" or "json"
        otel_enabled: Install an OpenTelemetry tracer provider
        otel_service_name: Service name reported to OpenTelemetry
    """

    service_name: str = "stepchain"
    environment: str = "development"
    default_scheduler: str = "inline"
    strict_resolvers: bool = True
    recovery_mode: str = "finish"
    http_timeout: float = 30.0
    log_level: str = "INFO"
    log_format: str = "text"
    otel_enabled: bool = False
    otel_service_name: str = ""

    @classmethod
    def from_env(cls) -> "StepChainConfig":
        """
        Load configuration from environment variables.

        Fails fast with every invalid value listed in one ConfigError.
        """
        errors: list[str] = []

        config = cls(
            service_name=_get_env("STEPCHAIN_SERVICE_NAME", "stepchain"),
            environment=_get_env("STEPCHAIN_ENV", "development"),
            default_scheduler=_get_env_choice("STEPCHAIN_SCHEDULER", "inline", SCHEDULER_KINDS, errors),
            strict_resolvers=_get_env_bool("STEPCHAIN_STRICT_RESOLVERS", True, errors),
            recovery_mode=_get_env_choice("STEPCHAIN_RECOVERY_MODE", "finish", RECOVERY_MODES, errors),
            http_timeout=_get_env_float("STEPCHAIN_HTTP_TIMEOUT", 30.0, errors),
            log_level=_get_env("LOG_LEVEL", "INFO").upper(),
            log_format=_get_env_choice("LOG_FORMAT", "text", LOG_FORMATS, errors),
            otel_enabled=_get_env_bool("OTEL_ENABLED", False, errors),
            otel_service_name=_get_env("OTEL_SERVICE_NAME", ""),
        )

        if config.http_timeout <= 0:
            errors.append(f"STEPCHAIN_HTTP_TIMEOUT must be positive, got {config.http_timeout}")

        if errors:
            raise ConfigError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )

        return config

    def to_safe_dict(self) -> dict[str, Any]:
        """Return config as a JSON-friendly dict (safe for logs and the CLI)."""
        return asdict(self)


_config: StepChainConfig | None = None


def get_config() -> StepChainConfig:
    """
    Get the global configuration instance.

    Lazy loads from environment (and `.env`) on first access.
    """
    global _config
    if _config is None:
        env_file = load_env_file()
        if env_file:
            logger.debug(f"Loaded environment from {env_file}")
        _config = StepChainConfig.from_env()
    return _config


def set_config(config: StepChainConfig | None) -> None:
    """Set the global configuration instance (for testing); None forces a reload."""
    global _config
    _config = config


def reload_config() -> StepChainConfig:
    """Discard the cached configuration and load it again."""
    set_config(None)
    return get_config()
