"""Tests for the error taxonomy."""

import pytest
from types import SimpleNamespace

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ghost_mcp.core.config import Environment
from ghost_mcp.errors import (
    AuthenticationError,
    AuthorizationError,
    BaseError,
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    GhostAPIError,
    ImageProcessingError,
    MCPProtocolError,
    NotFoundError,
    RateLimitError,
    ToolExecutionError,
    ValidationError,
)

DEV = Environment.development()
PROD = Environment.production()


class TestBaseError:
    """Test the root error class."""

    def test_defaults(self):
        error = BaseError("boom")

        assert error.message == "boom"
        assert error.status_code == 500
        assert error.code == "INTERNAL_ERROR"
        assert error.is_operational is True
        assert error.name == "BaseError"
        assert str(error) == "boom"
        assert error.timestamp

    def test_is_exception(self):
        with pytest.raises(BaseError):
            raise BaseError("boom", 418, "TEAPOT")

    def test_to_json_production_has_no_stack(self):
        data = BaseError("boom", 418, "TEAPOT").to_json(PROD)

        assert data == {
            "name": "BaseError",
            "message": "boom",
            "code": "TEAPOT",
            "statusCode": 418,
            "timestamp": data["timestamp"],
        }

    def test_to_json_development_includes_stack(self):
        data = BaseError("boom").to_json(DEV)

        assert "stack" in data
        assert data["stack"].startswith("BaseError: boom")

    def test_subclass_name(self):
        assert NotFoundError("Post", 1).to_json(PROD)["name"] == "NotFoundError"


class TestValidationError:
    """Test validation error construction."""

    def test_basic(self):
        error = ValidationError("bad input", [{"field": "title", "message": "required", "type": "any.required"}])

        assert error.status_code == 400
        assert error.code == "VALIDATION_ERROR"
        assert error.errors[0]["field"] == "title"
        assert error.to_json(PROD)["errors"] == error.errors

    def test_errors_default_to_empty_list(self):
        assert ValidationError("bad input").errors == []

    def test_from_joi(self):
        joi_error = {
            "details": [
                {"path": ["post", "title"], "message": '"title" is required', "type": "any.required"},
                {"path": ["tags", 0], "message": "must be a string", "type": "string.base"},
            ]
        }

        error = ValidationError.from_joi(joi_error)

        assert error.message == "Validation failed"
        assert error.errors == [
            {"field": "post.title", "message": '"title" is required', "type": "any.required"},
            {"field": "tags.0", "message": "must be a string", "type": "string.base"},
        ]

    def test_from_zod_with_context(self):
        zod_error = SimpleNamespace(issues=[
            SimpleNamespace(path=["status"], message="Invalid enum value", code="invalid_enum_value"),
        ])

        error = ValidationError.from_zod(zod_error, "ghost_create_post")

        assert error.message == "Validation failed for ghost_create_post"
        assert error.errors == [
            {"field": "status", "message": "Invalid enum value", "type": "invalid_enum_value"},
        ]

    def test_from_zod_without_context(self):
        error = ValidationError.from_zod({"issues": []})

        assert error.message == "Validation failed"
        assert error.errors == []

    def test_from_pydantic(self):
        class PostInput(BaseModel):
            title: str
            limit: int = Field(ge=1)

        with pytest.raises(PydanticValidationError) as exc_info:
            PostInput.model_validate({"limit": 0})

        error = ValidationError.from_pydantic(exc_info.value, "ghost_get_posts")

        assert error.message == "Validation failed for ghost_get_posts"
        fields = {item["field"]: item["type"] for item in error.errors}
        assert fields == {"title": "missing", "limit": "greater_than_equal"}


class TestTaxonomyVariants:
    """Test the fixed codes and statuses of every variant."""

    @pytest.mark.parametrize("error,status,code", [
        (AuthenticationError(), 401, "AUTHENTICATION_ERROR"),
        (AuthorizationError(), 403, "AUTHORIZATION_ERROR"),
        (NotFoundError("Post", "abc"), 404, "NOT_FOUND"),
        (ConflictError("Slug taken", "Post"), 409, "CONFLICT"),
        (RateLimitError(), 429, "RATE_LIMIT_EXCEEDED"),
        (ExternalServiceError("Unsplash"), 502, "EXTERNAL_SERVICE_ERROR"),
        (MCPProtocolError("bad frame"), 400, "MCP_PROTOCOL_ERROR"),
        (ToolExecutionError("ghost_get_posts", "boom"), 500, "TOOL_EXECUTION_ERROR"),
        (ImageProcessingError("resize"), 422, "IMAGE_PROCESSING_ERROR"),
        (ConfigurationError("missing key"), 500, "CONFIGURATION_ERROR"),
    ])
    def test_status_and_code(self, error, status, code):
        assert error.status_code == status
        assert error.code == code

    def test_default_messages(self):
        assert AuthenticationError().message == "Authentication failed"
        assert AuthorizationError().message == "Access denied"
        assert RateLimitError().message == "Rate limit exceeded"

    def test_not_found_message(self):
        error = NotFoundError("Post", "abc123")

        assert error.message == "Post not found: abc123"
        data = error.to_json(PROD)
        assert data["resource"] == "Post"
        assert data["identifier"] == "abc123"

    def test_rate_limit_retry_after(self):
        assert RateLimitError().retry_after == 60
        assert RateLimitError(5).to_json(PROD)["retryAfter"] == 5

    def test_external_service_keeps_original_message(self):
        error = ExternalServiceError("Unsplash", ConnectionError("refused"))

        assert error.message == "External service error: Unsplash"
        assert error.original_error == "refused"
        assert error.to_json(PROD)["service"] == "Unsplash"

    def test_image_processing_message(self):
        error = ImageProcessingError("resize", ValueError("bad header"))

        assert error.message == "Image processing failed: resize"
        assert error.original_error == "bad header"

    def test_configuration_error_is_not_operational(self):
        error = ConfigurationError("missing", ["GHOST_ADMIN_API_KEY"])

        assert error.is_operational is False
        assert error.missing_fields == ["GHOST_ADMIN_API_KEY"]

    def test_every_other_variant_is_operational(self):
        assert all(e.is_operational for e in (
            ValidationError("x"), NotFoundError("Post", 1), RateLimitError(),
            GhostAPIError("posts.read", "boom"), ToolExecutionError("t", "boom"),
        ))


class TestGhostAPIError:
    """Test upstream status normalization."""

    @pytest.mark.parametrize("upstream,status,code", [
        (401, 401, "GHOST_AUTH_ERROR"),
        (404, 404, "GHOST_NOT_FOUND"),
        (422, 400, "GHOST_VALIDATION_ERROR"),
        (429, 429, "GHOST_RATE_LIMIT"),
    ])
    def test_mapped_statuses(self, upstream, status, code):
        error = GhostAPIError("posts.read", "failed", upstream)

        assert error.status_code == status
        assert error.code == code
        assert error.ghost_status_code == upstream

    @pytest.mark.parametrize("upstream", [None, 500, 503])
    def test_unmapped_statuses_keep_external_defaults(self, upstream):
        error = GhostAPIError("posts.read", "failed", upstream)

        assert error.status_code == 502
        assert error.code == "EXTERNAL_SERVICE_ERROR"

    def test_is_external_service_error(self):
        error = GhostAPIError("posts.read", "Post not found")

        assert isinstance(error, ExternalServiceError)
        assert error.service == "Ghost API"
        assert error.operation == "posts.read"
        assert error.original_error == "Post not found"
        assert error.to_json(PROD)["operation"] == "posts.read"


class TestToolExecutionError:
    """Test credential redaction of tool input."""

    INPUT = {
        "title": "Hello",
        "apiKey": "secret-1",
        "api_key": "secret-2",
        "user_password": "hunter2",
        "accessToken": "abc",
    }

    def test_redacts_sensitive_keys_outside_development(self):
        error = ToolExecutionError("ghost_create_post", ValueError("boom"), self.INPUT, PROD)

        assert error.input == {"title": "Hello"}
        assert error.original_error == "boom"
        assert error.message == "Tool execution failed: ghost_create_post"

    def test_keeps_input_in_development(self):
        error = ToolExecutionError("ghost_create_post", "boom", self.INPUT, DEV)

        assert error.input == self.INPUT

    def test_does_not_mutate_caller_input(self):
        data = dict(self.INPUT)
        ToolExecutionError("ghost_create_post", "boom", data, PROD)

        assert data == self.INPUT

    def test_to_json_includes_tool(self):
        assert ToolExecutionError("ghost_get_posts", "boom").to_json(PROD)["tool"] == "ghost_get_posts"
