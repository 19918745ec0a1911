"""Rate limiting module."""

from .limiter import MemoryBackend, RatePolicy, RateLimiter, create_rate_limiter
from .middleware import RateLimitMiddleware, build_rl_key

__all__ = [
    "MemoryBackend",
    "RatePolicy",
    "RateLimiter",
    "create_rate_limiter",
    "RateLimitMiddleware",
    "build_rl_key",
]
