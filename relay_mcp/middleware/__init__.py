"""Relay MCP middleware components."""

from relay_mcp.middleware.base import RelayMiddleware
from relay_mcp.middleware.errors import ErrorHandlingMiddleware
from relay_mcp.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "RelayMiddleware",
]
