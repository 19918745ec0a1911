"""
MCP tool boundary.

Tool implementations raise taxonomy errors; this module turns them into
``CallToolResult`` objects with ``isError=True`` so that the MCP client
receives the same structured error payload whatever went wrong.
"""

import functools
import json
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from mcp.types import CallToolResult, TextContent
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ghost_mcp.core.config import Environment
from ghost_mcp.errors.handler import async_wrapper, format_mcp_error
from ghost_mcp.errors.taxonomy import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def tool_error_result(
    error: BaseException,
    tool_name: Optional[str] = None,
    env: Optional[Environment] = None,
) -> CallToolResult:
    """Wrap a formatted MCP error in a tool result."""
    payload = format_mcp_error(error, tool_name, env)
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
        isError=True,
    )


def validate_tool_input(model: Type[ModelT], raw_input: Any, tool_name: str) -> ModelT:
    """
    Validate raw tool arguments against a pydantic model.

    Raises:
        ValidationError: With one entry per failed field, tagged with the tool name
    """
    try:
        return model.model_validate(raw_input)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, tool_name) from e


def tool_handler(tool_name: str, env: Optional[Environment] = None):
    """
    Decorator for MCP tool coroutines.

    Successful results are returned unchanged. Any exception becomes an
    error ``CallToolResult``; unexpected ones are logged first.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        guarded = async_wrapper(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await guarded(*args, **kwargs)
            except Exception as e:
                return tool_error_result(e, tool_name, env)

        return wrapper

    return decorator
