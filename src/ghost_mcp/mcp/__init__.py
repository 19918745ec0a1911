"""MCP tool boundary helpers."""

from .tool_errors import tool_error_result, tool_handler, validate_tool_input

__all__ = ["tool_error_result", "tool_handler", "validate_tool_input"]
