"""
Circuit breaker registry.

Holds one breaker per protected dependency so that an outage of one
upstream never blocks calls to another. Breakers are created lazily on
first use with the manager's default configuration unless a dependency
has been given its own.

Example Usage:
    manager = CircuitBreakerManager()

    try:
        site = await manager.execute("ghost-admin-api", client.get_site_info)
    except CircuitBreakerOpenError:
        return service_unavailable()
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ghost_mcp.core.config import Settings, get_settings
from ghost_mcp.core.logging import get_logger
from .breaker import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerState

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitBreakerManager:
    """Named collection of circuit breakers."""

    def __init__(self, default_config: Optional[CircuitBreakerConfig] = None):
        self.default_config = default_config or CircuitBreakerConfig()
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._configs: Dict[str, CircuitBreakerConfig] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CircuitBreakerManager":
        settings = settings or get_settings()
        return cls(CircuitBreakerConfig(
            failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            reset_timeout=settings.CIRCUIT_BREAKER_RESET_TIMEOUT_MS,
            monitoring_period=settings.CIRCUIT_BREAKER_MONITORING_PERIOD_MS,
        ))

    def configure(self, name: str, config: CircuitBreakerConfig) -> None:
        """Use ``config`` for ``name`` when its breaker is first created."""
        self._configs[name] = config

    async def get_breaker(self, name: str) -> CircuitBreaker:
        """Get or create the breaker for ``name``."""
        async with self._lock:
            if name not in self._breakers:
                config = self._configs.get(name, self.default_config)
                self._breakers[name] = CircuitBreaker(name, config)
                logger.info(
                    "Created circuit breaker",
                    breaker=name,
                    total_breakers=len(self._breakers),
                )
            return self._breakers[name]

    async def execute(self, name: str, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Run ``func`` through the breaker registered as ``name``."""
        breaker = await self.get_breaker(name)
        return await breaker.execute(func, *args, **kwargs)

    def get_all_states(self) -> Dict[str, Dict[str, Any]]:
        return {name: breaker.get_state() for name, breaker in self._breakers.items()}

    def any_open(self) -> bool:
        return any(
            breaker.state == CircuitBreakerState.OPEN
            for breaker in self._breakers.values()
        )

    async def reset(self, name: str) -> bool:
        """
        Reset one breaker to CLOSED.

        Returns:
            False if no breaker with that name exists
        """
        breaker = self._breakers.get(name)
        if breaker is None:
            return False
        await breaker.reset()
        return True
