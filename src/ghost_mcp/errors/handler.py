"""
Error formatting and classification.

Turns any exception into one of the two wire shapes the server speaks:

- MCP tool errors: ``{"error": {...}}``, wrapped by the tool layer into an
  ``isError`` result
- HTTP errors: ``{"statusCode": int, "body": {"error": {...}}}``

Taxonomy errors keep their own code, status and message. Anything else is
reported as a generic 500 whose message is only passed through in
development.
"""

import errno
import functools
import json
import random
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from ghost_mcp.core.config import Environment, resolve_environment
from ghost_mcp.core.logging import get_logger
from .taxonomy import (
    BaseError,
    ConflictError,
    ExternalServiceError,
    GhostAPIError,
    NotFoundError,
    RateLimitError,
    ValidationError,
    _lookup,
)

logger = get_logger(__name__)

T = TypeVar("T")

UNKNOWN_MCP_MESSAGE = "An unexpected error occurred"
UNKNOWN_HTTP_MESSAGE = "An internal error occurred"

NETWORK_ERROR_CODES = frozenset({"ECONNREFUSED", "ETIMEDOUT", "ECONNRESET"})
NETWORK_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ETIMEDOUT, errno.ECONNRESET})
NETWORK_EXCEPTION_TYPES = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    httpx.ConnectError,
    httpx.TimeoutException,
)

BASE_RETRY_DELAY_MS = 1000
MAX_RETRY_DELAY_MS = 30000
RETRY_JITTER_RATIO = 0.3


def is_operational_error(error: BaseException) -> bool:
    """True only for taxonomy errors flagged as operational."""
    return isinstance(error, BaseError) and error.is_operational is True


def _public_message(error: BaseError, env: Environment, fallback: str) -> str:
    if error.is_operational or env.is_development:
        return error.message
    return fallback


def format_mcp_error(
    error: BaseException,
    tool_name: Optional[str] = None,
    env: Optional[Environment] = None,
) -> Dict[str, Any]:
    """Format an error for an MCP tool response."""
    env = resolve_environment(env)

    if isinstance(error, BaseError):
        payload: Dict[str, Any] = {
            "code": error.code,
            "message": _public_message(error, env, UNKNOWN_MCP_MESSAGE),
            "statusCode": error.status_code,
        }
        if tool_name:
            payload["tool"] = tool_name
        if isinstance(error, ValidationError):
            payload["validationErrors"] = error.errors
        if isinstance(error, RateLimitError):
            payload["retryAfter"] = error.retry_after
        payload["timestamp"] = error.timestamp
        return {"error": payload}

    payload = {
        "code": "UNKNOWN_ERROR",
        "message": str(error) if env.is_development else UNKNOWN_MCP_MESSAGE,
        "statusCode": 500,
    }
    if tool_name:
        payload["tool"] = tool_name
    return {"error": payload}


def format_http_error(error: BaseException, env: Optional[Environment] = None) -> Dict[str, Any]:
    """Format an error for an HTTP JSON response."""
    env = resolve_environment(env)

    if isinstance(error, BaseError):
        payload: Dict[str, Any] = {
            "code": error.code,
            "message": _public_message(error, env, UNKNOWN_HTTP_MESSAGE),
            "statusCode": error.status_code,
            "timestamp": error.timestamp,
        }
        if isinstance(error, ValidationError):
            payload["errors"] = error.errors
        elif isinstance(error, RateLimitError):
            payload["retryAfter"] = error.retry_after
        elif isinstance(error, NotFoundError):
            payload["resource"] = error.resource
            payload["identifier"] = error.identifier
        elif isinstance(error, ConflictError):
            payload["resource"] = error.resource
        return {"statusCode": error.status_code, "body": {"error": payload}}

    return {
        "statusCode": 500,
        "body": {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": str(error) if env.is_development else UNKNOWN_HTTP_MESSAGE,
                "statusCode": 500,
            }
        },
    }


def mcp_tool_error_payload(
    error: BaseException,
    tool_name: Optional[str] = None,
    env: Optional[Environment] = None,
) -> Dict[str, Any]:
    """MCP tool result envelope for a failed call."""
    return {
        "content": [
            {"type": "text", "text": json.dumps(format_mcp_error(error, tool_name, env), default=str)}
        ],
        "isError": True,
    }


def async_wrapper(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Decorate a coroutine function so unexpected errors are logged before propagating.

    Operational taxonomy errors are re-raised untouched; anything else is
    logged with its traceback and re-raised.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not is_operational_error(e):
                logger.error(
                    "Unexpected error",
                    function=getattr(func, "__qualname__", repr(func)),
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True,
                )
            raise

    return wrapper


def from_ghost_error(raw_error: Any, operation: str) -> GhostAPIError:
    """
    Translate a raw upstream client error into a GhostAPIError.

    Accepts ``{"response": {"status", "data": {"errors": [...]}}}``,
    ``{"statusCode", "message"}`` shaped mappings or objects, and
    ``httpx.HTTPStatusError``.
    """
    response = _lookup(raw_error, "response")

    status = None
    if response is not None:
        status = _lookup(response, "status")
        if status is None:
            status = _lookup(response, "status_code")
    if status is None:
        status = _lookup(raw_error, "statusCode")
    if status is None:
        status = _lookup(raw_error, "status_code")

    message = _first_upstream_message(response)
    if message is None:
        message = _lookup(raw_error, "message")
    if message is None:
        message = str(raw_error)

    return GhostAPIError(operation, message, status)


def _first_upstream_message(response: Any) -> Optional[str]:
    if response is None:
        return None
    data = _lookup(response, "data")
    if data is None and isinstance(response, httpx.Response):
        try:
            data = response.json()
        except ValueError:
            return None
    errors = _lookup(data, "errors")
    if isinstance(errors, list) and errors:
        return _lookup(errors[0], "message")
    return None


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether an error is worth another attempt.

    Rate limits, upstream failures (including every GhostAPIError) and
    transport faults are retryable. Everything else fails fast.
    """
    if isinstance(error, RateLimitError):
        return True
    if isinstance(error, ExternalServiceError):
        return True
    if isinstance(error, GhostAPIError):
        # Unreachable while GhostAPIError subclasses ExternalServiceError
        return error.ghost_status_code in (429, 502, 503, 504)
    if isinstance(error, NETWORK_EXCEPTION_TYPES):
        return True
    if getattr(error, "code", None) in NETWORK_ERROR_CODES:
        return True
    return getattr(error, "errno", None) in NETWORK_ERRNOS


def get_retry_delay(attempt: int, error: BaseException) -> int:
    """
    Milliseconds to wait before retry number ``attempt`` (1-based).

    Rate limits are honoured exactly; everything else backs off
    exponentially from 1s, capped at 30s, plus up to 30% jitter.
    """
    if isinstance(error, RateLimitError):
        return int(error.retry_after * 1000)

    base = min(BASE_RETRY_DELAY_MS * 2 ** (attempt - 1), MAX_RETRY_DELAY_MS)
    jitter = random.random() * RETRY_JITTER_RATIO * base
    return int(base + jitter)
