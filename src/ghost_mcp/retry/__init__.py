"""Retry policy with exponential backoff and jitter."""

from ghost_mcp.errors.handler import get_retry_delay, is_retryable
from .policy import cancellable_sleep, retry_with_backoff
from .exceptions import RetryCancelledError

__all__ = [
    "retry_with_backoff",
    "cancellable_sleep",
    "is_retryable",
    "get_retry_delay",
    "RetryCancelledError",
]
