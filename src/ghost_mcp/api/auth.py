"""
API key authentication middleware for FastAPI.

Clients present the shared key either in the ``X-API-Key`` header or as
``Authorization: Bearer <key>``. Keys are compared in constant time.
Failures are rendered as AuthenticationError responses through the normal
error formatter.
"""

import hmac
from typing import Callable, Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ghost_mcp.core.logging import get_logger
from ghost_mcp.errors.taxonomy import AuthenticationError
from .errors import error_response

logger = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"
PUBLIC_ENDPOINTS = ("/api/v1/health", "/docs", "/redoc", "/openapi.json")


def extract_api_key(request: Request) -> Optional[str]:
    """Key from ``X-API-Key``, else from a Bearer ``Authorization`` header."""
    key = request.headers.get(API_KEY_HEADER)
    if key:
        return key
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def api_key_matches(provided: Optional[str], expected: str) -> bool:
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class ApiKeyAuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests without the configured API key.

    Public endpoints (health and documentation) and CORS preflight
    requests are let through unauthenticated.
    """

    def __init__(self, app, api_key: str, public_endpoints: Iterable[str] = PUBLIC_ENDPOINTS):
        super().__init__(app)
        self.api_key = api_key
        self.public_endpoints = tuple(public_endpoints)

        logger.info(
            "API key authentication middleware initialized",
            public_endpoints=len(self.public_endpoints),
        )

    def _is_public_endpoint(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.public_endpoints)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS" or self._is_public_endpoint(request.url.path):
            return await call_next(request)

        provided = extract_api_key(request)
        if not api_key_matches(provided, self.api_key):
            logger.warning(
                "API key authentication failed",
                path=request.url.path,
                method=request.method,
                key_present=provided is not None,
            )
            message = "Invalid API key" if provided is not None else "API key required"
            return error_response(request, AuthenticationError(message))

        request.state.authenticated = True
        return await call_next(request)
