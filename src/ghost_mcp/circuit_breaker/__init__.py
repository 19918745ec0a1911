"""
Circuit breaker for calls to unreliable upstream services.

The breaker counts failures of the calls it wraps. Once the failure
threshold is reached it opens and rejects calls without attempting them
until the reset timeout has elapsed; the next call is then a single trial
that either closes the circuit again or reopens it.

Example Usage:
    from ghost_mcp.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError

    breaker = CircuitBreaker("ghost-admin-api", failure_threshold=5, reset_timeout=60000)

    try:
        result = await breaker.execute(call_upstream, payload)
    except CircuitBreakerOpenError as e:
        logger.warning("Upstream unavailable", retry_after=e.retry_after)
"""

from .breaker import CircuitBreaker, CircuitBreakerState, CircuitBreakerConfig
from .manager import CircuitBreakerManager
from .exceptions import (
    CircuitBreakerError,
    CircuitBreakerOpenError,
    CircuitBreakerConfigurationError,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerState",
    "CircuitBreakerConfig",
    "CircuitBreakerManager",
    "CircuitBreakerError",
    "CircuitBreakerOpenError",
    "CircuitBreakerConfigurationError",
]
