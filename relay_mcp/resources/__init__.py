"""MCP resources for Relay MCP."""

from relay_mcp.resources.hosts import list_hosts_resource

__all__ = ["list_hosts_resource"]
