"""Test configuration and settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from ghost_mcp.core.config import Environment, Settings, resolve_environment
from ghost_mcp.errors import ConfigurationError


class TestSettings:
    """Test configuration settings."""

    def test_default_settings(self, monkeypatch):
        """Test that default settings are loaded correctly."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.ENVIRONMENT == "production"
        assert settings.HOST == "127.0.0.1"
        assert settings.PORT == 3001
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FORMAT == "json"
        assert settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD == 5
        assert settings.CIRCUIT_BREAKER_RESET_TIMEOUT_MS == 60000
        assert settings.RETRY_MAX_ATTEMPTS == 3
        assert settings.RATE_LIMIT_DEFAULT_LIMIT == 100
        assert settings.RATE_LIMIT_DEFAULT_WINDOW == 60

    def test_settings_from_env(self, monkeypatch):
        """Test that settings can be loaded from environment variables."""
        monkeypatch.setenv("ENVIRONMENT", "Development")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("GHOST_ADMIN_API_URL", "https://blog.example.com")

        settings = Settings(_env_file=None)

        assert settings.ENVIRONMENT == "development"
        assert settings.PORT == 9000
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.GHOST_ADMIN_API_URL == "https://blog.example.com"

    @pytest.mark.parametrize("field,value", [
        ("ENVIRONMENT", "staging"),
        ("LOG_LEVEL", "VERBOSE"),
        ("LOG_FORMAT", "xml"),
        ("CIRCUIT_BREAKER_FAILURE_THRESHOLD", 0),
        ("RETRY_MAX_ATTEMPTS", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, **{field: value})

    def test_environment_property(self):
        assert Settings(_env_file=None, ENVIRONMENT="development").environment == Environment(True)
        assert Settings(_env_file=None, ENVIRONMENT="test").environment.is_development is False

    def test_require_ghost_config_lists_missing_fields(self, monkeypatch):
        monkeypatch.delenv("GHOST_ADMIN_API_URL", raising=False)
        monkeypatch.delenv("GHOST_ADMIN_API_KEY", raising=False)
        settings = Settings(_env_file=None, GHOST_ADMIN_API_URL="https://blog.example.com")

        with pytest.raises(ConfigurationError) as exc_info:
            settings.require_ghost_config()

        assert exc_info.value.missing_fields == ["GHOST_ADMIN_API_KEY"]
        assert exc_info.value.is_operational is False

    def test_require_ghost_config_complete(self):
        settings = Settings(
            _env_file=None,
            GHOST_ADMIN_API_URL="https://blog.example.com",
            GHOST_ADMIN_API_KEY="id:deadbeef",
        )

        settings.require_ghost_config()


class TestEnvironment:

    def test_constructors(self):
        assert Environment.development().is_development is True
        assert Environment.production().is_development is False
        assert Environment().is_development is False

    def test_resolve_prefers_explicit_value(self):
        env = Environment.development()

        assert resolve_environment(env) is env

    def test_resolve_falls_back_to_settings(self, monkeypatch):
        from ghost_mcp.core import config

        monkeypatch.setattr(config, "settings", Settings(_env_file=None, ENVIRONMENT="development"))

        assert resolve_environment(None).is_development is True
