"""Retry policy exceptions."""

from typing import Optional

from ghost_mcp.errors.taxonomy import BaseError


class RetryCancelledError(BaseError):
    """
    Raised when a retry loop is aborted through its cancel event.

    The last error seen by the loop (if any) is kept as ``last_error`` and
    chained as ``__cause__``.
    """

    def __init__(self, attempts: int = 0, last_error: Optional[BaseException] = None):
        super().__init__(
            f"Retry cancelled after {attempts} attempt(s)",
            503,
            "RETRY_CANCELLED",
        )
        self.attempts = attempts
        self.last_error = last_error
