"""Fixed-window rate limiter."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ghost_mcp.core.config import Settings, get_settings
from ghost_mcp.errors.taxonomy import RateLimitError


@dataclass
class RatePolicy:
    """Rate limiting policy configuration."""
    limit: int = 100
    window_seconds: int = 60


class MemoryBackend:
    """Thread-safe in-memory counters keyed by (key, window id)."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._counters: Dict[Tuple[str, int], int] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def incr_and_get(self, key: str, window_seconds: int) -> Tuple[int, int]:
        """
        Atomically increment the counter for ``key`` in the current window.

        Returns:
            (count, seconds remaining in the window)
        """
        with self._lock:
            now = self._clock()
            window_id = int(now // window_seconds)
            ttl_remaining = max(1, int((window_id + 1) * window_seconds - now))

            counter_key = (key, window_id)
            self._counters[counter_key] = self._counters.get(counter_key, 0) + 1
            self._cleanup_old_windows(window_id)
            return self._counters[counter_key], ttl_remaining

    def _cleanup_old_windows(self, current_window_id: int) -> None:
        stale = [k for k in self._counters if k[1] < current_window_id]
        for k in stale:
            del self._counters[k]


class RateLimiter:
    """Enforces a RatePolicy using a MemoryBackend."""

    def __init__(self, backend: Optional[MemoryBackend] = None, policy: Optional[RatePolicy] = None):
        self.backend = backend or MemoryBackend()
        self.policy = policy or RatePolicy()

    def check(self, key: str) -> None:
        """
        Consume one request for ``key``.

        Raises:
            RateLimitError: If the key is over its limit; ``retry_after`` is
                the time left in the current window
        """
        count, ttl_remaining = self.backend.incr_and_get(key, self.policy.window_seconds)
        if count > self.policy.limit:
            raise RateLimitError(ttl_remaining)


def create_rate_limiter(settings: Optional[Settings] = None) -> Optional[RateLimiter]:
    """Build the limiter from settings, or None when rate limiting is disabled."""
    settings = settings or get_settings()
    if not settings.ENABLE_RATE_LIMITING:
        return None
    return RateLimiter(
        MemoryBackend(),
        RatePolicy(
            limit=settings.RATE_LIMIT_DEFAULT_LIMIT,
            window_seconds=settings.RATE_LIMIT_DEFAULT_WINDOW,
        ),
    )
