"""Relay MCP FastMCP server.

This is a thin wrapper that wires together the MCP server with tools and resources.
All connection logic is delegated to the services/ modules.
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from relay_mcp.config import Settings
from relay_mcp.dependencies import Dependencies
from relay_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from relay_mcp.resources import list_hosts_resource
from relay_mcp.services import set_dependencies
from relay_mcp.tools import connect, disconnect
from relay_mcp.utils.console import MCPRequestFormatter

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging() -> None:
    """Configure colorful logging for the relay_mcp package.

    Called at module load time so logging is configured before any loggers
    are used, regardless of how the server is started.
    """
    log_level = os.getenv("RELAY_LOG_LEVEL", "INFO").upper()
    use_colors = os.getenv("RELAY_LOG_COLORS", "true").lower() != "false"

    if not sys.stderr.isatty():
        use_colors = False

    relay_logger = logging.getLogger("relay_mcp")
    relay_logger.setLevel(getattr(logging, log_level, logging.INFO))

    if not relay_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        relay_logger.addHandler(handler)
        relay_logger.propagate = False

    for name in NOISY_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)
        lg.handlers = []
        lg.propagate = False

    # Suppress root logger - this prevents uvicorn's default output
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Load the inventory at startup and close every session at shutdown.

    Args:
        server: The FastMCP server instance

    Yields:
        Dict with inventory server names
    """
    logger.info("Relay MCP server starting up")

    deps = Dependencies.create()
    server.deps = deps  # type: ignore[attr-defined]
    set_dependencies(deps)

    inventory = deps.config.inventory
    servers = inventory.servers
    logger.info(
        "Loaded %d server(s) in %d role(s), %d task(s)",
        len(servers),
        len(inventory.roles),
        len(inventory.tasks),
    )
    if deps.config.gateway:
        logger.info("Gateway routing: %s", deps.config.gateway)
    logger.info("Relay MCP server ready to accept connections")

    try:
        yield {"hosts": [str(s) for s in servers]}
    finally:
        logger.info("Relay MCP server shutting down")
        sessions = deps.context.sessions
        if sessions.size > 0:
            logger.info(
                "Closing %d active SSH session(s): %s",
                sessions.size,
                ", ".join(str(s) for s in sessions.active_servers),
            )
        await deps.cleanup()
        logger.info("Relay MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings | None = None) -> None:
    """Configure middleware stack for the server.

    Adds middleware in order: ErrorHandling -> Logging

    Environment variables:
        RELAY_LOG_PAYLOADS: Set to "true" to log request/response payloads
        RELAY_SLOW_THRESHOLD_MS: Threshold for slow request warnings (default: 1000)
        RELAY_INCLUDE_TRACEBACK: Set to "true" to include tracebacks in error logs

    Args:
        server: The FastMCP server to configure.
        settings: Settings to read; loaded from the environment when omitted.
    """
    settings = settings or Settings.from_env()

    # First added = innermost
    server.add_middleware(
        ErrorHandlingMiddleware(include_traceback=settings.include_traceback)
    )
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=float(settings.slow_threshold_ms),
        )
    )


def create_server() -> FastMCP:
    """Create and configure the MCP server with all middleware and resources.

    Returns:
        Configured FastMCP server instance
    """
    server = FastMCP(
        "relay_mcp",
        lifespan=app_lifespan,
    )

    configure_middleware(server)

    server.tool(output_schema=None)(connect)
    server.tool(output_schema=None)(disconnect)

    server.resource("hosts://list")(list_hosts_resource)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


# Default server instance
mcp = create_server()
