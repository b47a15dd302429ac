"""
Unit Tests for StepChain Configuration
"""

import pytest

from stepchain.config import (
    ConfigError,
    StepChainConfig,
    get_config,
    load_env_file,
    reload_config,
    set_config,
)

ENV_VARS = [
    "STEPCHAIN_SERVICE_NAME",
    "STEPCHAIN_ENV",
    "STEPCHAIN_SCHEDULER",
    "STEPCHAIN_STRICT_RESOLVERS",
    "STEPCHAIN_RECOVERY_MODE",
    "STEPCHAIN_HTTP_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "OTEL_ENABLED",
    "OTEL_SERVICE_NAME",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run with no StepChain variables set and no .env in the cwd."""
    for var in ENV_VARS:
        # setenv first so monkeypatch restores whatever .env loading writes
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestFromEnv:
    def test_defaults(self, clean_env):
        config = StepChainConfig.from_env()

        assert config == StepChainConfig()
        assert config.default_scheduler == "inline"
        assert config.strict_resolvers is True
        assert config.recovery_mode == "finish"
        assert config.http_timeout == 30.0

    def test_reads_environment(self, clean_env):
        clean_env.setenv("STEPCHAIN_SERVICE_NAME", "billing")
        clean_env.setenv("STEPCHAIN_SCHEDULER", "Asyncio")
        clean_env.setenv("STEPCHAIN_STRICT_RESOLVERS", "off")
        clean_env.setenv("STEPCHAIN_RECOVERY_MODE", "resume")
        clean_env.setenv("STEPCHAIN_HTTP_TIMEOUT", "2.5")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("LOG_FORMAT", "json")
        clean_env.setenv("OTEL_ENABLED", "1")

        config = StepChainConfig.from_env()

        assert config.service_name == "billing"
        assert config.default_scheduler == "asyncio"
        assert config.strict_resolvers is False
        assert config.recovery_mode == "resume"
        assert config.http_timeout == 2.5
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.otel_enabled is True

    def test_lists_every_problem(self, clean_env):
        clean_env.setenv("STEPCHAIN_SCHEDULER", "celery")
        clean_env.setenv("STEPCHAIN_STRICT_RESOLVERS", "maybe")
        clean_env.setenv("STEPCHAIN_HTTP_TIMEOUT", "soon")

        with pytest.raises(ConfigError) as exc_info:
            StepChainConfig.from_env()

        message = str(exc_info.value)
        assert "STEPCHAIN_SCHEDULER" in message
        assert "STEPCHAIN_STRICT_RESOLVERS" in message
        assert "STEPCHAIN_HTTP_TIMEOUT" in message

    def test_timeout_must_be_positive(self, clean_env):
        clean_env.setenv("STEPCHAIN_HTTP_TIMEOUT", "0")

        with pytest.raises(ConfigError, match="must be positive"):
            StepChainConfig.from_env()

    def test_to_safe_dict(self):
        data = StepChainConfig(service_name="svc").to_safe_dict()

        assert data["service_name"] == "svc"
        assert set(data) >= {"default_scheduler", "recovery_mode", "otel_enabled"}


class TestGlobalConfig:
    def test_set_and_get(self):
        config = StepChainConfig(environment="test")
        set_config(config)

        assert get_config() is config

    def test_reload_reads_environment(self, clean_env):
        clean_env.setenv("STEPCHAIN_ENV", "staging")

        config = reload_config()

        assert config.environment == "staging"
        assert get_config() is config

    def test_env_file_is_loaded(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("STEPCHAIN_SERVICE_NAME=from-dotenv\n")

        assert load_env_file() == tmp_path / ".env"
        assert reload_config().service_name == "from-dotenv"
