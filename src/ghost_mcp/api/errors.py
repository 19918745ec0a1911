"""FastAPI exception handlers backed by the error formatter."""

import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ghost_mcp.core.logging import get_logger
from ghost_mcp.errors.handler import format_http_error, is_operational_error
from ghost_mcp.errors.metrics import error_metrics
from ghost_mcp.errors.taxonomy import BaseError, ValidationError

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Record, log and format ``exc`` as a JSON response."""
    endpoint = f"{request.method} {request.url.path}"
    error_metrics.record_error(exc, endpoint)

    if is_operational_error(exc):
        logger.info(
            "Request failed",
            endpoint=endpoint,
            error_type=type(exc).__name__,
            code=getattr(exc, "code", None),
        )
    else:
        logger.error(
            "Unhandled exception",
            endpoint=endpoint,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=exc,
        )

    app_settings = getattr(request.app.state, "settings", None)
    formatted = format_http_error(exc, app_settings.environment if app_settings else None)
    headers = dict(SECURITY_HEADERS)
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers["Retry-After"] = str(math.ceil(retry_after))

    return JSONResponse(
        status_code=formatted["statusCode"],
        content=formatted["body"],
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report FastAPI request validation failures as ValidationError."""
    return error_response(request, ValidationError.from_pydantic(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseError, general_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, general_exception_handler)
