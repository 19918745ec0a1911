"""Configuration management for the Ghost MCP server."""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class Environment:
    """
    Runtime environment passed to error construction and formatting.

    Only one question is ever asked of it: are we in development mode?
    Development mode exposes stack traces, passes unknown error messages
    through verbatim and keeps secrets in tool inputs.
    """

    is_development: bool = False

    @classmethod
    def development(cls) -> "Environment":
        return cls(is_development=True)

    @classmethod
    def production(cls) -> "Environment":
        return cls(is_development=False)


class Settings(BaseSettings):
    """Application settings for the Ghost MCP server."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Runtime environment
    ENVIRONMENT: str = Field(default="production", description="development, production or test")

    # Server configuration
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=3001, description="Server port")
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"], description="CORS allowed origins")

    # Authentication
    GHOST_MCP_API_KEY: Optional[str] = Field(default=None, description="Shared API key; authentication is off when unset")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    # Upstream Ghost Admin API
    GHOST_ADMIN_API_URL: Optional[str] = Field(default=None, description="Ghost Admin API base URL")
    GHOST_ADMIN_API_KEY: Optional[str] = Field(default=None, description="Ghost Admin API key")
    GHOST_API_TIMEOUT: float = Field(default=30.0, gt=0, description="Upstream request timeout in seconds")

    # Circuit breaker defaults
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(default=5, ge=1, description="Failures before the circuit opens")
    CIRCUIT_BREAKER_RESET_TIMEOUT_MS: int = Field(default=60000, ge=1, description="Open-state cooldown in milliseconds")
    CIRCUIT_BREAKER_MONITORING_PERIOD_MS: int = Field(default=10000, ge=1, description="Monitoring period in milliseconds")

    # Retry policy
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1, le=10, description="Attempts per upstream request")

    # Rate limiting configuration
    ENABLE_RATE_LIMITING: bool = Field(default=True, description="Enable rate limiting")
    RATE_LIMIT_DEFAULT_LIMIT: int = Field(default=100, ge=1, le=10000, description="Requests per window")
    RATE_LIMIT_DEFAULT_WINDOW: int = Field(default=60, ge=1, le=3600, description="Window length in seconds")

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate runtime environment"""
        valid_environments = ["development", "production", "test"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ["json", "text"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    @property
    def environment(self) -> Environment:
        """Environment value derived from ENVIRONMENT."""
        return Environment(is_development=self.ENVIRONMENT == "development")

    def require_ghost_config(self) -> None:
        """
        Ensure the upstream API is configured.

        Raises:
            ConfigurationError: listing every missing GHOST_* field
        """
        from ghost_mcp.errors.taxonomy import ConfigurationError

        missing = [
            name for name in ("GHOST_ADMIN_API_URL", "GHOST_ADMIN_API_KEY")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                "Ghost Admin API configuration is incomplete",
                missing_fields=missing,
            )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings


def get_environment() -> Environment:
    """Environment used when a caller does not pass one explicitly."""
    return settings.environment


def resolve_environment(env: Optional[Environment]) -> Environment:
    return env if env is not None else get_environment()
