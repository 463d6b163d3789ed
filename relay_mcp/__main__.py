"""Entry point for relay_mcp server."""

import logging

from relay_mcp.config import Settings
from relay_mcp.server import mcp  # This import also configures logging

logger = logging.getLogger(__name__)


def _quiet_third_party_loggers() -> None:
    """Reduce noise from third-party libraries."""
    logging.getLogger("asyncssh").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure additional logging settings for direct execution.

    Core logging is already configured in server.py at import time.
    """
    _quiet_third_party_loggers()
    logger.info(
        "Logging configured: level=%s, transport=%s",
        settings.log_level.upper(),
        settings.transport,
    )


def run_server() -> None:
    """Run the MCP server with configured transport."""
    settings = Settings.from_env()
    configure_logging(settings)

    if settings.transport == "stdio":
        logger.info("Starting Relay MCP server (transport=stdio)")
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting Relay MCP server (transport=http, host=%s, port=%d)",
            settings.http_host,
            settings.http_port,
        )
        mcp.run(
            transport="http",
            host=settings.http_host,
            port=settings.http_port,
        )


if __name__ == "__main__":
    run_server()
