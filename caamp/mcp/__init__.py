"""MCP server installation, listing and per-provider transforms."""
