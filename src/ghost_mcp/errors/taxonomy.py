"""
Error taxonomy for the Ghost MCP server.

Every error raised by the server is one of the classes below. Each class
fixes its HTTP status code and machine readable ``code`` so that both the
HTTP and the MCP boundaries can report failures with a stable shape.

Operational errors (``is_operational=True``) are anticipated runtime
conditions such as bad input or an upstream outage. Non-operational errors
point at a programming or configuration defect and have their details
hidden outside development.
"""

import re
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from ghost_mcp.core.config import Environment, resolve_environment

ErrorSource = Union[str, BaseException, None]

SENSITIVE_KEY_PATTERN = re.compile(r"api[_-]?key|password|token", re.IGNORECASE)


def _error_message(source: ErrorSource) -> Optional[str]:
    """Reduce an exception (or string) to its message text."""
    if source is None or isinstance(source, str):
        return source
    return getattr(source, "message", None) or str(source)


def _lookup(obj: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a mapping or an attribute object."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


class BaseError(Exception):
    """
    Root of the error taxonomy.

    Attributes:
        message: Human readable description
        status_code: HTTP status code reported at the boundary
        code: Stable machine readable error code
        is_operational: False for programming/configuration defects
        timestamp: ISO 8601 creation time (UTC)
        stack: Call stack captured at construction
    """

    def __init__(
        self,
        message: str = "",
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        is_operational: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.is_operational = is_operational
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.stack = f"{self.name}: {message}\n" + "".join(traceback.format_stack()[:-1])

    @property
    def name(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        return self.message

    def _extra_json(self) -> Dict[str, Any]:
        """Variant specific fields added to the serialized form."""
        return {}

    def to_json(self, env: Optional[Environment] = None) -> Dict[str, Any]:
        """
        Serialize the error for logs and responses.

        The stack is only included in development.
        """
        env = resolve_environment(env)
        data = {
            "name": self.name,
            "message": self.message,
            "code": self.code,
            "statusCode": self.status_code,
            "timestamp": self.timestamp,
        }
        data.update(self._extra_json())
        if env.is_development:
            data["stack"] = self.stack
        return data


class ValidationError(BaseError):
    """Client input failed validation."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "VALIDATION_ERROR")
        self.errors = list(errors) if errors else []

    def _extra_json(self) -> Dict[str, Any]:
        return {"errors": self.errors}

    @classmethod
    def from_joi(cls, joi_error: Any) -> "ValidationError":
        """Build from a Joi style error carrying a ``details`` list."""
        errors = [
            {
                "field": ".".join(str(part) for part in _lookup(detail, "path", [])),
                "message": _lookup(detail, "message"),
                "type": _lookup(detail, "type"),
            }
            for detail in _lookup(joi_error, "details", []) or []
        ]
        return cls("Validation failed", errors)

    @classmethod
    def from_zod(cls, zod_error: Any, context: Optional[str] = None) -> "ValidationError":
        """Build from a Zod style error carrying an ``issues`` list."""
        errors = [
            {
                "field": ".".join(str(part) for part in _lookup(issue, "path", [])),
                "message": _lookup(issue, "message"),
                "type": _lookup(issue, "code"),
            }
            for issue in _lookup(zod_error, "issues", []) or []
        ]
        return cls(_validation_message(context), errors)

    @classmethod
    def from_pydantic(cls, error: Any, context: Optional[str] = None) -> "ValidationError":
        """Build from a ``pydantic.ValidationError`` (or FastAPI's request variant)."""
        errors = [
            {
                "field": ".".join(str(part) for part in item.get("loc", ())),
                "message": item.get("msg"),
                "type": item.get("type"),
            }
            for item in error.errors()
        ]
        return cls(_validation_message(context), errors)


def _validation_message(context: Optional[str]) -> str:
    return f"Validation failed for {context}" if context else "Validation failed"


class AuthenticationError(BaseError):
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, 401, "AUTHENTICATION_ERROR")


class AuthorizationError(BaseError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, 403, "AUTHORIZATION_ERROR")


class NotFoundError(BaseError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} not found: {identifier}", 404, "NOT_FOUND")
        self.resource = resource
        self.identifier = identifier

    def _extra_json(self) -> Dict[str, Any]:
        return {"resource": self.resource, "identifier": self.identifier}


class ConflictError(BaseError):
    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message, 409, "CONFLICT")
        self.resource = resource

    def _extra_json(self) -> Dict[str, Any]:
        return {"resource": self.resource}


class RateLimitError(BaseError):
    """Too many requests; ``retry_after`` is in seconds."""

    def __init__(self, retry_after: Union[int, float] = 60):
        super().__init__("Rate limit exceeded", 429, "RATE_LIMIT_EXCEEDED")
        self.retry_after = retry_after

    def _extra_json(self) -> Dict[str, Any]:
        return {"retryAfter": self.retry_after}


class ExternalServiceError(BaseError):
    """An upstream dependency failed."""

    def __init__(self, service: str, original_error: ErrorSource = None):
        super().__init__(f"External service error: {service}", 502, "EXTERNAL_SERVICE_ERROR")
        self.service = service
        self.original_error = _error_message(original_error)

    def _extra_json(self) -> Dict[str, Any]:
        return {"service": self.service}


# Upstream status code -> (local status code, error code)
GHOST_STATUS_MAP = {
    401: (401, "GHOST_AUTH_ERROR"),
    404: (404, "GHOST_NOT_FOUND"),
    422: (400, "GHOST_VALIDATION_ERROR"),
    429: (429, "GHOST_RATE_LIMIT"),
}


class GhostAPIError(ExternalServiceError):
    """A Ghost Admin API call failed; the upstream status is normalized."""

    def __init__(self, operation: str, message: ErrorSource, ghost_status_code: Optional[int] = None):
        super().__init__("Ghost API", message)
        self.operation = operation
        self.ghost_status_code = ghost_status_code
        if ghost_status_code in GHOST_STATUS_MAP:
            self.status_code, self.code = GHOST_STATUS_MAP[ghost_status_code]

    def _extra_json(self) -> Dict[str, Any]:
        data = super()._extra_json()
        data["operation"] = self.operation
        return data


class MCPProtocolError(BaseError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "MCP_PROTOCOL_ERROR")
        self.details = details or {}

    def _extra_json(self) -> Dict[str, Any]:
        return {"details": self.details}


class ToolExecutionError(BaseError):
    """
    An MCP tool implementation failed.

    Outside development, top-level input keys that look like credentials
    (api key, password, token) are dropped from ``input``.
    """

    def __init__(
        self,
        tool_name: str,
        original_error: ErrorSource,
        input: Optional[Dict[str, Any]] = None,
        env: Optional[Environment] = None,
    ):
        super().__init__(f"Tool execution failed: {tool_name}", 500, "TOOL_EXECUTION_ERROR")
        self.tool_name = tool_name
        self.original_error = _error_message(original_error)
        input = dict(input or {})
        if not resolve_environment(env).is_development:
            input = {
                key: value for key, value in input.items()
                if not SENSITIVE_KEY_PATTERN.search(str(key))
            }
        self.input = input

    def _extra_json(self) -> Dict[str, Any]:
        return {"tool": self.tool_name}


class ImageProcessingError(BaseError):
    def __init__(self, operation: str, original_error: ErrorSource = None):
        super().__init__(f"Image processing failed: {operation}", 422, "IMAGE_PROCESSING_ERROR")
        self.operation = operation
        self.original_error = _error_message(original_error)


class ConfigurationError(BaseError):
    """The process is misconfigured. Never operational."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        super().__init__(message, 500, "CONFIGURATION_ERROR", is_operational=False)
        self.missing_fields = list(missing_fields) if missing_fields else []
