"""Utilities for Relay MCP."""

from relay_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter
from relay_mcp.utils.validation import validate_host, validate_port

__all__ = [
    "ColorfulFormatter",
    "MCPRequestFormatter",
    "validate_host",
    "validate_port",
]
