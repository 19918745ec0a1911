"""
Resilient access to the Ghost Admin API.

Every upstream request goes through the same pipeline:

    retry_with_backoff( breaker.execute( send request -> from_ghost_error ) )

The retry loop sits outside the circuit breaker, so each attempt is one
breaker call and counts as one breaker failure. Once the breaker opens, the
CircuitBreakerOpenError it raises is not retryable and the loop stops
immediately instead of waiting out its backoff.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from authlib.jose import JsonWebToken

from ghost_mcp.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from ghost_mcp.core.config import Settings, get_settings
from ghost_mcp.core.logging import get_logger
from ghost_mcp.errors.handler import from_ghost_error
from ghost_mcp.errors.taxonomy import ConfigurationError, GhostAPIError
from ghost_mcp.retry import retry_with_backoff

logger = get_logger(__name__)

GHOST_API_VERSION = "v5.0"
ADMIN_TOKEN_TTL_SECONDS = 300
GHOST_BREAKER_NAME = "ghost-admin-api"


def create_admin_token(api_key: str, now: Optional[int] = None) -> str:
    """
    Sign a short-lived Admin API token from an ``id:secret`` key.

    Raises:
        ConfigurationError: If the key is not in ``id:secret`` hex form
    """
    key_id, _, secret = api_key.partition(":")
    try:
        secret_bytes = bytes.fromhex(secret)
    except ValueError:
        secret_bytes = b""
    if not key_id or not secret_bytes:
        raise ConfigurationError(
            "GHOST_ADMIN_API_KEY must have the form <id>:<hex secret>",
            missing_fields=["GHOST_ADMIN_API_KEY"],
        )

    issued_at = int(now if now is not None else time.time())
    header = {"alg": "HS256", "typ": "JWT", "kid": key_id}
    payload = {"iat": issued_at, "exp": issued_at + ADMIN_TOKEN_TTL_SECONDS, "aud": "/admin/"}
    return JsonWebToken(["HS256"]).encode(header, payload, secret_bytes).decode("ascii")


class GhostAPIClient:
    """
    Ghost Admin API client protected by a circuit breaker and retry policy.

    Args:
        http_client: AsyncClient whose base_url points at the Admin API root
        breaker: Breaker for the Ghost dependency (one per process)
        api_key: Admin API key; when set, each request carries a fresh token
        max_retries: Attempts per request
        use_circuit_breaker: Disable to call the upstream directly
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        breaker: Optional[CircuitBreaker] = None,
        api_key: Optional[str] = None,
        max_retries: int = 3,
        use_circuit_breaker: bool = True,
    ):
        self.http_client = http_client
        self.breaker = breaker or CircuitBreaker(GHOST_BREAKER_NAME)
        self.api_key = api_key
        self.max_retries = max_retries
        self.use_circuit_breaker = use_circuit_breaker

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> "GhostAPIClient":
        settings = settings or get_settings()
        settings.require_ghost_config()

        base_url = settings.GHOST_ADMIN_API_URL.rstrip("/") + "/ghost/api/admin/"
        http_client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(settings.GHOST_API_TIMEOUT),
            headers={"Accept-Version": GHOST_API_VERSION, "Accept": "application/json"},
        )
        breaker = breaker or CircuitBreaker(
            GHOST_BREAKER_NAME,
            CircuitBreakerConfig(
                failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                reset_timeout=settings.CIRCUIT_BREAKER_RESET_TIMEOUT_MS,
                monitoring_period=settings.CIRCUIT_BREAKER_MONITORING_PERIOD_MS,
            ),
        )
        return cls(
            http_client,
            breaker,
            api_key=settings.GHOST_ADMIN_API_KEY,
            max_retries=settings.RETRY_MAX_ATTEMPTS,
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def request(self, operation: str, method: str, path: str, **kwargs) -> Any:
        """
        Perform one logical upstream request.

        Args:
            operation: Label such as ``posts.read`` used in errors and logs
            method: HTTP method
            path: Path relative to the Admin API root
            **kwargs: Passed to ``httpx.AsyncClient.request``

        Returns:
            Decoded JSON body (None for empty responses)

        Raises:
            GhostAPIError: Upstream failure after retries
            CircuitBreakerOpenError: Breaker rejected the call
        """

        extra_headers = dict(kwargs.pop("headers", None) or {})

        async def send() -> Any:
            headers = dict(extra_headers)
            if self.api_key:
                headers["Authorization"] = f"Ghost {create_admin_token(self.api_key)}"
            try:
                logger.debug("Executing Ghost API request", operation=operation)
                response = await self.http_client.request(method, path, headers=headers, **kwargs)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise from_ghost_error(e, operation) from e

            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise GhostAPIError(operation, f"Invalid JSON in response: {e}", response.status_code) from e

        async def attempt() -> Any:
            if self.use_circuit_breaker:
                return await self.breaker.execute(send)
            return await send()

        def on_retry(attempt_number: int, error: BaseException) -> None:
            logger.info(
                "Retrying Ghost API request",
                operation=operation,
                attempt=attempt_number,
                max_attempts=self.max_retries,
                circuit_breaker=self.breaker.get_state() if self.use_circuit_breaker else None,
            )

        return await retry_with_backoff(attempt, max_attempts=self.max_retries, on_retry=on_retry)

    async def get_site_info(self) -> Dict[str, Any]:
        body = await self.request("site.read", "GET", "site/")
        return (body or {}).get("site", {})

    async def check_health(self) -> Dict[str, Any]:
        """Health probe including the breaker snapshot."""
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            site = await self.get_site_info()
        except Exception as e:
            logger.warning("Ghost health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
                "circuitBreaker": self.breaker.get_state(),
                "timestamp": timestamp,
            }
        return {
            "status": "healthy",
            "site": {
                "title": site.get("title"),
                "version": site.get("version"),
                "url": site.get("url"),
            },
            "circuitBreaker": self.breaker.get_state(),
            "timestamp": timestamp,
        }
