"""Rate limiting middleware for FastAPI."""

from typing import Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ghost_mcp.core.logging import get_logger
from ghost_mcp.api.errors import error_response
from ghost_mcp.errors.taxonomy import RateLimitError
from .limiter import RateLimiter

logger = get_logger(__name__)


def build_rl_key(client_id: str, path_prefix: str) -> str:
    """Rate limiting key for one client on one protected path prefix."""
    return f"rl:client:{client_id.strip()}|path:{path_prefix}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients that exceed the limiter's policy with a formatted 429."""

    def __init__(
        self,
        app,
        limiter: Optional[RateLimiter] = None,
        apply_to_paths: Tuple[str, ...] = ("/api/v1",),
        exempt_paths: Tuple[str, ...] = ("/api/v1/health",),
    ):
        super().__init__(app)
        self.limiter = limiter
        self.apply_to_paths = apply_to_paths
        self.exempt_paths = exempt_paths

        if self.limiter is None:
            logger.info("Rate limiting middleware initialized but disabled (no limiter provided)")
        else:
            logger.info(
                "Rate limiting middleware initialized",
                apply_to_paths=self.apply_to_paths,
                policy_limit=self.limiter.policy.limit,
                policy_window=self.limiter.policy.window_seconds,
            )

    def _matching_prefix(self, path: str) -> Optional[str]:
        if any(path.startswith(p) for p in self.exempt_paths):
            return None
        for prefix in self.apply_to_paths:
            if path.startswith(prefix):
                return prefix
        return None

    async def dispatch(self, request: Request, call_next):
        if self.limiter is None:
            return await call_next(request)

        prefix = self._matching_prefix(request.url.path)
        if prefix is None:
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        key = build_rl_key(client_id, prefix)

        try:
            self.limiter.check(key)
        except RateLimitError as e:
            logger.warning(
                "Rate limit exceeded",
                client=client_id,
                path=request.url.path,
                retry_after=e.retry_after,
            )
            return error_response(request, e)

        return await call_next(request)
