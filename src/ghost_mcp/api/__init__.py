"""HTTP surface of the Ghost MCP server."""
