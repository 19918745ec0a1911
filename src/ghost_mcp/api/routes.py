"""
HTTP endpoints exposing resilience state.

The breaker manager and the Ghost client live on ``app.state`` (set up by
``ghost_mcp.main.create_app``); handlers only read them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ghost_mcp.circuit_breaker import CircuitBreakerManager
from ghost_mcp.errors.metrics import error_metrics
from ghost_mcp.errors.taxonomy import ConfigurationError, NotFoundError
from ghost_mcp.services.ghost_client import GhostAPIClient

router = APIRouter()


def get_breaker_manager(request: Request) -> CircuitBreakerManager:
    return request.app.state.breaker_manager


def get_ghost_client(request: Request) -> Optional[GhostAPIClient]:
    return getattr(request.app.state, "ghost_client", None)


@router.get("/health", tags=["health"])
async def health(manager: CircuitBreakerManager = Depends(get_breaker_manager)):
    """Overall health: 503 while any circuit breaker is open."""
    degraded = manager.any_open()
    return JSONResponse(
        status_code=503 if degraded else 200,
        content={
            "status": "degraded" if degraded else "healthy",
            "circuitBreakers": manager.get_all_states(),
            "metrics": error_metrics.get_metrics(),
        },
    )


@router.get("/health/ghost", tags=["health"])
async def ghost_health(ghost_client: Optional[GhostAPIClient] = Depends(get_ghost_client)):
    """Probe the upstream Ghost Admin API."""
    if ghost_client is None:
        raise ConfigurationError(
            "Ghost Admin API configuration is incomplete",
            missing_fields=["GHOST_ADMIN_API_URL", "GHOST_ADMIN_API_KEY"],
        )
    result = await ghost_client.check_health()
    return JSONResponse(status_code=200 if result["status"] == "healthy" else 503, content=result)


@router.post("/circuit-breakers/{name}/reset", tags=["health"])
async def reset_breaker(name: str, manager: CircuitBreakerManager = Depends(get_breaker_manager)):
    """Force a breaker back to CLOSED."""
    if not await manager.reset(name):
        raise NotFoundError("Circuit breaker", name)
    return (await manager.get_breaker(name)).get_state()
