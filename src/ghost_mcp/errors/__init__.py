"""
Error taxonomy and formatting for the Ghost MCP server.

Example Usage:
    from ghost_mcp.errors import NotFoundError, format_http_error

    try:
        post = await load_post(post_id)
    except NotFoundError as e:
        formatted = format_http_error(e)
        return JSONResponse(formatted["body"], status_code=formatted["statusCode"])
"""

from .taxonomy import (
    BaseError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    RateLimitError,
    ExternalServiceError,
    GhostAPIError,
    MCPProtocolError,
    ToolExecutionError,
    ImageProcessingError,
    ConfigurationError,
)
from .handler import (
    is_operational_error,
    format_mcp_error,
    format_http_error,
    mcp_tool_error_payload,
    async_wrapper,
    from_ghost_error,
    is_retryable,
    get_retry_delay,
)
from .metrics import ErrorMetrics, error_metrics

__all__ = [
    "BaseError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "ExternalServiceError",
    "GhostAPIError",
    "MCPProtocolError",
    "ToolExecutionError",
    "ImageProcessingError",
    "ConfigurationError",
    "is_operational_error",
    "format_mcp_error",
    "format_http_error",
    "mcp_tool_error_payload",
    "async_wrapper",
    "from_ghost_error",
    "is_retryable",
    "get_retry_delay",
    "ErrorMetrics",
    "error_metrics",
]
