"""
Core circuit breaker implementation.

The circuit breaker operates as a state machine with three states:
- CLOSED: Normal operation, calls flow through and failures are counted
- OPEN: Too many failures, calls are rejected without being attempted
- HALF_OPEN: Cooldown elapsed, a single trial call decides the next state

Every read-modify-write of the breaker state happens under an asyncio lock,
so concurrent callers racing past the failure threshold open the circuit
exactly once. The protected call itself runs outside the lock.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ghost_mcp.core.logging import get_logger
from .exceptions import CircuitBreakerConfigurationError, CircuitBreakerOpenError

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitBreakerState(Enum):
    """
    Circuit breaker state enumeration.

    States:
        CLOSED: Normal operation - calls pass through to the dependency
        OPEN: Failing fast - calls are rejected immediately
        HALF_OPEN: Recovery testing - one trial call is allowed
    """
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreakerConfig:
    """
    Tunable circuit breaker parameters.

    Durations are in milliseconds.
    """

    failure_threshold: int = 5
    """Failures required to open the circuit"""

    reset_timeout: int = 60000
    """How long the circuit stays open before a trial call is allowed"""

    monitoring_period: int = 10000
    """Accepted and reported; not used by the transition logic"""

    def __post_init__(self):
        self._validate_config()

    def _validate_config(self):
        """
        Raises:
            CircuitBreakerConfigurationError: If a value is out of range
        """
        if self.failure_threshold < 1:
            raise CircuitBreakerConfigurationError(
                "failure_threshold must be >= 1",
                config_field="failure_threshold",
                provided_value=self.failure_threshold
            )

        if self.reset_timeout <= 0:
            raise CircuitBreakerConfigurationError(
                "reset_timeout must be > 0",
                config_field="reset_timeout",
                provided_value=self.reset_timeout
            )

        if self.monitoring_period <= 0:
            raise CircuitBreakerConfigurationError(
                "monitoring_period must be > 0",
                config_field="monitoring_period",
                provided_value=self.monitoring_period
            )


class CircuitBreaker:
    """
    Circuit breaker guarding one upstream dependency.

    Usage:
        breaker = CircuitBreaker("ghost-admin-api", failure_threshold=3)

        try:
            post = await breaker.execute(fetch_post, post_id)
        except CircuitBreakerOpenError as e:
            return format_http_error(e)

    The breaker never inspects why a call failed: any exception counts.
    """

    def __init__(self,
                 name: str = "default",
                 config: Optional[CircuitBreakerConfig] = None,
                 *,
                 failure_threshold: Optional[int] = None,
                 reset_timeout: Optional[int] = None,
                 monitoring_period: Optional[int] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize circuit breaker.

        Args:
            name: Identifier of the protected dependency (used in logs and errors)
            config: Full configuration; individual keyword values override it
            failure_threshold: Failures before opening (default 5)
            reset_timeout: Open-state cooldown in ms (default 60000)
            monitoring_period: Accepted for compatibility, inert (default 10000)
            clock: Returns the current time in epoch seconds
        """
        base = config or CircuitBreakerConfig()
        self.config = CircuitBreakerConfig(
            failure_threshold=base.failure_threshold if failure_threshold is None else failure_threshold,
            reset_timeout=base.reset_timeout if reset_timeout is None else reset_timeout,
            monitoring_period=base.monitoring_period if monitoring_period is None else monitoring_period,
        )
        self.name = name
        self._clock = clock
        self._lock = asyncio.Lock()

        self.state = CircuitBreakerState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.next_attempt: Optional[float] = None
        self._trial_in_flight = False
        self._generation = 0

        logger.info(
            "Circuit breaker initialized",
            breaker=self.name,
            failure_threshold=self.failure_threshold,
            reset_timeout_ms=self.reset_timeout,
        )

    @property
    def failure_threshold(self) -> int:
        return self.config.failure_threshold

    @property
    def reset_timeout(self) -> int:
        return self.config.reset_timeout

    @property
    def monitoring_period(self) -> int:
        return self.config.monitoring_period

    async def execute(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Run ``func`` under circuit breaker protection.

        Returns:
            Whatever ``func`` returns

        Raises:
            CircuitBreakerOpenError: If the circuit is open (``func`` not called)
            Exception: Anything ``func`` raised, after recording the failure
        """
        async with self._lock:
            trial = self._before_call()

        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            async with self._lock:
                if self._is_current_trial(trial):
                    self._trial_in_flight = False
            raise
        except Exception as e:
            async with self._lock:
                self._on_failure(e, trial)
            raise

        async with self._lock:
            self._on_success(trial)
        return result

    def _before_call(self) -> Optional[int]:
        """
        Admit or reject a call. Must be called while holding the lock.

        Returns:
            The breaker generation if the call is the half-open trial, else None
        """
        if self.state == CircuitBreakerState.OPEN:
            now = self._clock()
            if now < self.next_attempt:
                logger.warning(
                    "Circuit breaker rejecting call - circuit is open",
                    breaker=self.name,
                    retry_after_seconds=self.next_attempt - now,
                )
                raise CircuitBreakerOpenError(self.name, self.next_attempt - now, self.failure_count)
            self._transition(CircuitBreakerState.HALF_OPEN)

        if self.state == CircuitBreakerState.HALF_OPEN:
            if self._trial_in_flight:
                raise CircuitBreakerOpenError(
                    self.name,
                    self.reset_timeout / 1000,
                    self.failure_count,
                )
            self._trial_in_flight = True
            return self._generation
        return None

    def _is_current_trial(self, trial: Optional[int]) -> bool:
        # Only the trial admitted in the current HALF_OPEN period decides it
        return (
            trial is not None
            and trial == self._generation
            and self.state == CircuitBreakerState.HALF_OPEN
        )

    def _on_success(self, trial: Optional[int] = None) -> None:
        if self._is_current_trial(trial):
            self._trial_in_flight = False
            self.failure_count = 0
            self.last_failure_time = None
            self.next_attempt = None
            self._transition(CircuitBreakerState.CLOSED)

    def _on_failure(self, error: Exception, trial: Optional[int] = None) -> None:
        now = self._clock()
        self.failure_count += 1
        self.last_failure_time = now

        logger.warning(
            "Circuit breaker recorded failure",
            breaker=self.name,
            error_type=type(error).__name__,
            error=str(error),
            failure_count=self.failure_count,
            state=self.state.value,
        )

        if self._is_current_trial(trial):
            self._trial_in_flight = False
            self._open(now)
        elif self.state == CircuitBreakerState.CLOSED and self.failure_count >= self.failure_threshold:
            self._open(now)

    def _open(self, now: float) -> None:
        self.next_attempt = now + self.reset_timeout / 1000
        self._transition(CircuitBreakerState.OPEN)

    def _transition(self, new_state: CircuitBreakerState) -> None:
        old_state = self.state
        self.state = new_state
        self._generation += 1
        log = logger.warning if new_state == CircuitBreakerState.OPEN else logger.info
        log(
            "Circuit breaker state changed",
            breaker=self.name,
            previous_state=old_state.value,
            state=new_state.value,
            failure_count=self.failure_count,
            next_attempt=self.next_attempt,
        )

    def get_state(self) -> Dict[str, Any]:
        """
        Snapshot for health and observability endpoints.

        Timestamps are epoch seconds or None.
        """
        return {
            "state": self.state.value,
            "failureCount": self.failure_count,
            "lastFailureTime": self.last_failure_time,
            "nextAttempt": self.next_attempt,
        }

    async def reset(self) -> None:
        """Force the breaker back to CLOSED (administrative use)."""
        async with self._lock:
            self.failure_count = 0
            self.last_failure_time = None
            self.next_attempt = None
            self._trial_in_flight = False
            self._transition(CircuitBreakerState.CLOSED)
