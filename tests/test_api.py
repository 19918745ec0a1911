"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from ghost_mcp.circuit_breaker import CircuitBreakerConfig
from ghost_mcp.core.config import Settings
from ghost_mcp.errors import NotFoundError, RateLimitError, error_metrics
from ghost_mcp.main import create_app


@pytest.fixture(autouse=True)
def reset_metrics():
    error_metrics.reset()
    yield
    error_metrics.reset()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="production",
        GHOST_ADMIN_API_URL=None,
        GHOST_ADMIN_API_KEY=None,
        GHOST_MCP_API_KEY=None,
        RATE_LIMIT_DEFAULT_LIMIT=3,
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)

    @app.get("/api/v1/posts/{post_id}")
    async def get_post(post_id: str):
        raise NotFoundError("Post", post_id)

    @app.get("/api/v1/throttled")
    async def throttled():
        raise RateLimitError(7)

    @app.get("/api/v1/broken")
    async def broken():
        raise RuntimeError("database password is hunter2")

    @app.get("/api/v1/items")
    async def items(limit: int):
        return {"limit": limit}

    return app


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


class TestHealth:

    def test_healthy(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["circuitBreakers"]["ghost-admin-api"]["state"] == "CLOSED"
        assert body["metrics"]["totalErrors"] == 0

    @pytest.mark.asyncio
    async def test_degraded_when_breaker_open(self, app, client):
        app.state.breaker_manager.configure("unsplash", CircuitBreakerConfig(failure_threshold=1))
        breaker = await app.state.breaker_manager.get_breaker("unsplash")

        async def fail():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await breaker.execute(fail)

        response = client.get("/api/v1/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        assert response.json()["circuitBreakers"]["unsplash"]["state"] == "OPEN"

    def test_health_is_not_rate_limited(self, client):
        for _ in range(10):
            assert client.get("/api/v1/health").status_code == 200

    def test_ghost_health_without_configuration(self, client):
        response = client.get("/api/v1/health/ghost")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "CONFIGURATION_ERROR"
        assert error["message"] == "An internal error occurred"


class TestErrorResponses:
    """Test that exceptions are rendered with the HTTP error shape."""

    def test_not_found(self, client):
        response = client.get("/api/v1/posts/abc")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["resource"] == "Post"
        assert error["identifier"] == "abc"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_rate_limit_error_sets_retry_after(self, client):
        response = client.get("/api/v1/throttled")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "7"
        assert response.json()["error"]["retryAfter"] == 7

    def test_unknown_error_is_masked(self, client):
        response = client.get("/api/v1/broken")

        assert response.status_code == 500
        assert response.json() == {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal error occurred",
                "statusCode": 500,
            }
        }

    def test_request_validation(self, client):
        response = client.get("/api/v1/items", params={"limit": "many"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["errors"][0]["field"] == "query.limit"

    def test_errors_are_counted(self, client):
        client.get("/api/v1/posts/abc")
        client.get("/api/v1/broken")

        metrics = error_metrics.get_metrics()
        assert metrics["totalErrors"] == 2
        assert metrics["errorsByType"] == {"NotFoundError": 1, "RuntimeError": 1}
        assert metrics["errorsByStatusCode"] == {404: 1, 500: 1}
        assert metrics["errorsByEndpoint"]["GET /api/v1/posts/abc"] == 1


class TestCircuitBreakerReset:

    def test_reset_known_breaker(self, client):
        response = client.post("/api/v1/circuit-breakers/ghost-admin-api/reset")

        assert response.status_code == 200
        assert response.json()["state"] == "CLOSED"

    def test_reset_unknown_breaker(self, client):
        response = client.post("/api/v1/circuit-breakers/nope/reset")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Circuit breaker not found: nope"


class TestRateLimiting:

    def test_protected_paths_are_limited(self, client):
        statuses = [client.get("/api/v1/posts/abc").status_code for _ in range(4)]

        assert statuses == [404, 404, 404, 429]
