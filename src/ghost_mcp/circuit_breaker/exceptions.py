"""
Circuit breaker exceptions.

These extend the error taxonomy so that the HTTP and MCP boundaries can
format them like any other error.
"""

import math
from typing import Any, Dict, Optional

from ghost_mcp.core.config import Environment
from ghost_mcp.errors.taxonomy import BaseError, ConfigurationError


class CircuitBreakerError(BaseError):
    """Base class for circuit breaker errors."""

    def __init__(self, message: str, breaker_name: Optional[str] = None,
                 status_code: int = 503, code: str = "CIRCUIT_BREAKER_ERROR"):
        super().__init__(message, status_code, code)
        self.breaker_name = breaker_name


class CircuitBreakerOpenError(CircuitBreakerError):
    """
    Raised when the breaker is OPEN and the call was not attempted.

    Attributes:
        breaker_name: Name of the protected dependency
        retry_after: Seconds until the breaker will allow a trial call
        failure_count: Failures recorded when the call was rejected
    """

    def __init__(self,
                 breaker_name: Optional[str] = None,
                 retry_after: float = 0,
                 failure_count: int = 0):
        super().__init__("Circuit breaker is OPEN", breaker_name, 503, "CIRCUIT_BREAKER_OPEN")
        self.retry_after = max(0.0, retry_after)
        self.failure_count = failure_count

    def _extra_json(self) -> Dict[str, Any]:
        return {
            "breaker": self.breaker_name,
            "retryAfter": math.ceil(self.retry_after),
        }

    def get_retry_after_header(self) -> str:
        """Value for the HTTP Retry-After header (whole seconds, rounded up)."""
        return str(math.ceil(self.retry_after))


class CircuitBreakerConfigurationError(ConfigurationError):
    """Raised when a breaker is constructed with invalid settings."""

    def __init__(self, message: str, config_field: Optional[str] = None,
                 provided_value: Optional[Any] = None):
        super().__init__(message, [config_field] if config_field else None)
        self.config_field = config_field
        self.provided_value = provided_value

    def to_json(self, env: Optional[Environment] = None) -> Dict[str, Any]:
        data = super().to_json(env)
        data.update({
            "configField": self.config_field,
            "providedValue": self.provided_value,
        })
        return data
