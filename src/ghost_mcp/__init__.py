"""Ghost MCP server: error handling and resilience for the Ghost Admin API."""

__version__ = "0.1.0"
