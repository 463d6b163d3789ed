"""Error handling middleware for consistent error logging."""

import logging
import traceback
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from relay_mcp.middleware.base import RelayMiddleware
from relay_mcp.services.errors import ConnectionError, RemoteError, TeardownError

ErrorCallback = Callable[[Exception, MiddlewareContext], None]

# Errors that carry the servers they concern
HOST_ERRORS = (ConnectionError, RemoteError, TeardownError)


class ErrorHandlingMiddleware(RelayMiddleware):
    """Logs and counts errors raised while handling a request.

    Connection, remote and teardown errors are logged with the hosts they
    concern and counted per host as well as per type. The exception is
    always re-raised.

    Example:
        >>> def on_error(exc, ctx):
        ...     print(f"Error in {ctx.method}: {exc}")
        >>> middleware = ErrorHandlingMiddleware(error_callback=on_error)
        >>> mcp.add_middleware(middleware)
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Whether to include full traceback in logs.
            error_callback: Optional callback called on each error.
                Receives (exception, context) as arguments.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self.error_callback = error_callback
        self._error_counts: dict[str, int] = defaultdict(int)
        self._host_counts: dict[str, int] = defaultdict(int)

    def get_error_stats(self) -> dict[str, int]:
        """Get error statistics by exception type."""
        return dict(self._error_counts)

    def get_host_stats(self) -> dict[str, int]:
        """Get the number of errors each host was involved in."""
        return dict(self._host_counts)

    def reset_stats(self) -> None:
        self._error_counts.clear()
        self._host_counts.clear()

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Handle errors during request processing.

        Raises:
            Exception: Re-raises the original exception after logging.
        """
        try:
            return await call_next(context)

        except Exception as e:
            error_type = type(e).__name__
            self._error_counts[error_type] += 1

            hosts: list[str] = []
            if isinstance(e, HOST_ERRORS):
                hosts = [str(h) for h in e.hosts]
                for host in hosts:
                    self._host_counts[host] += 1

            message = "Error in %s: %s: %s"
            args: list[Any] = [context.method, error_type, str(e)]
            if hosts:
                message += " (hosts: %s)"
                args.append(", ".join(hosts))
            if self.include_traceback:
                message += "\n%s"
                args.append(traceback.format_exc())
            self.logger.error(message, *args)

            if self.error_callback:
                try:
                    self.error_callback(e, context)
                except Exception as callback_error:
                    self.logger.warning(
                        "Error callback failed: %s",
                        str(callback_error),
                    )

            raise
