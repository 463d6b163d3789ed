"""MCP tools for Relay MCP."""

from relay_mcp.tools.connect import connect, disconnect

__all__ = ["connect", "disconnect"]
