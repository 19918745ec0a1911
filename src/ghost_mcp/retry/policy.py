"""
Retry with exponential backoff.

Attempts run strictly one after another. Between attempts the loop waits on
a cancellable sleep: setting the caller's ``cancel_event`` aborts the wait
(and the loop) immediately, and cancelling the surrounding task does the
same through normal asyncio cancellation.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ghost_mcp.core.logging import get_logger
from ghost_mcp.errors.handler import get_retry_delay, is_retryable
from .exceptions import RetryCancelledError

logger = get_logger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, BaseException], Any]


async def cancellable_sleep(delay_ms: int, cancel_event: Optional[asyncio.Event] = None) -> bool:
    """
    Wait ``delay_ms`` milliseconds.

    Returns:
        True if the full delay elapsed, False if ``cancel_event`` was set first
    """
    seconds = max(delay_ms, 0) / 1000
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return True
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return True
    return False


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    on_retry: Optional[OnRetry] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> T:
    """
    Await ``func()`` until it succeeds, fails with a non-retryable error, or
    ``max_attempts`` attempts have failed.

    Args:
        func: Zero-argument coroutine function performing one attempt
        max_attempts: Total attempts including the first
        on_retry: Called as ``on_retry(attempt, error)`` before each wait;
            may be a plain function or a coroutine function
        cancel_event: Setting it aborts the loop with RetryCancelledError

    Raises:
        RetryCancelledError: If ``cancel_event`` was set
        Exception: The last error when it is not retryable or attempts ran out
    """
    attempt = 0
    last_error: Optional[BaseException] = None

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise RetryCancelledError(attempt, last_error) from last_error

        attempt += 1
        try:
            return await func()
        except Exception as e:
            last_error = e

            if not is_retryable(e) or attempt >= max_attempts:
                if attempt > 1:
                    logger.error(
                        "Operation failed after retries",
                        attempts=attempt,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                raise

            delay_ms = get_retry_delay(attempt, e)
            logger.warning(
                "Operation failed, retrying",
                attempt=attempt,
                max_attempts=max_attempts,
                delay_ms=delay_ms,
                error_type=type(e).__name__,
                error=str(e),
            )

            if on_retry is not None:
                outcome = on_retry(attempt, e)
                if inspect.isawaitable(outcome):
                    await outcome

            if not await cancellable_sleep(delay_ms, cancel_event):
                raise RetryCancelledError(attempt, e) from e
