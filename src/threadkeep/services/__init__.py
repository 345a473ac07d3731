"""Service layer: CLI and MCP server."""
