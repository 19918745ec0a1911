"""Main entry point for the Ghost MCP server HTTP surface."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ghost_mcp.api.auth import ApiKeyAuthMiddleware
from ghost_mcp.api.errors import register_exception_handlers
from ghost_mcp.api.routes import router
from ghost_mcp.circuit_breaker import CircuitBreakerManager
from ghost_mcp.core.config import Settings, get_settings
from ghost_mcp.core.logging import get_logger, setup_logging
from ghost_mcp.errors.taxonomy import ConfigurationError
from ghost_mcp.rl import RateLimitMiddleware, create_rate_limiter
from ghost_mcp.services.ghost_client import GHOST_BREAKER_NAME, GhostAPIClient

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management.

    Connects the Ghost client when the Admin API is configured; without it
    the server still starts and reports the gap on /api/v1/health/ghost.
    """
    settings: Settings = app.state.settings
    logger.info(
        "Starting Ghost MCP server",
        environment=settings.ENVIRONMENT,
        host=settings.HOST,
        port=settings.PORT,
        rate_limiting_enabled=settings.ENABLE_RATE_LIMITING,
    )

    try:
        breaker = await app.state.breaker_manager.get_breaker(GHOST_BREAKER_NAME)
        app.state.ghost_client = GhostAPIClient.from_settings(settings, breaker)
    except ConfigurationError as e:
        logger.warning("Ghost Admin API not configured", missing_fields=e.missing_fields)
        app.state.ghost_client = None

    yield

    logger.info("Shutting down Ghost MCP server")
    if app.state.ghost_client is not None:
        await app.state.ghost_client.aclose()
    app.state.ghost_client = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Ghost MCP Server",
        description="Resilience layer between MCP tools and the Ghost Admin API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check, circuit breaker and error metrics",
            },
        ],
    )
    app.state.settings = settings
    app.state.breaker_manager = CircuitBreakerManager.from_settings(settings)
    app.state.ghost_client = None

    app.add_middleware(
        RateLimitMiddleware,
        limiter=create_rate_limiter(settings),
        apply_to_paths=("/api/v1",),
    )

    if settings.GHOST_MCP_API_KEY:
        app.add_middleware(ApiKeyAuthMiddleware, api_key=settings.GHOST_MCP_API_KEY)
    else:
        logger.warning("API key authentication is disabled - running in insecure mode")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
        max_age=86400,
    )

    register_exception_handlers(app)
    app.include_router(router, prefix="/api/v1")

    return app


def main() -> None:
    """Main entry point for the application."""
    setup_logging()
    settings = get_settings()

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
        server_header=False,
        date_header=True,
    )


if __name__ == "__main__":
    main()
