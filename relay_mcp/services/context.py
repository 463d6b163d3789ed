"""Execution context: session and failure state for one run.

Each unit of concurrency that runs a task owns its own context and passes
it explicitly; nothing here is module-global.
"""

import asyncio
import logging
from types import TracebackType

from relay_mcp.models import GatewaySpec, NoGateway
from relay_mcp.protocols import ConnectionFactory
from relay_mcp.services.connection import ConnectOptions
from relay_mcp.services.factory import build_connection_factory
from relay_mcp.services.sessions import FailureTracker, SessionRegistry

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Sessions, failures and the connection factory for one execution."""

    def __init__(
        self,
        options: ConnectOptions | None = None,
        gateway: GatewaySpec | None = None,
        factory: ConnectionFactory | None = None,
    ) -> None:
        """Initialize an execution context.

        Args:
            options: Options applied to every SSH dial
            gateway: Resolved gateway option; NoGateway connects directly
            factory: Pre-built factory, skips lazy construction (for tests)
        """
        self.options = options or ConnectOptions()
        self.gateway: GatewaySpec = gateway if gateway is not None else NoGateway()
        self.sessions = SessionRegistry()
        self.failures = FailureTracker()
        self._factory = factory
        self._factory_lock = asyncio.Lock()

    @property
    def has_factory(self) -> bool:
        return self._factory is not None

    async def connection_factory(self) -> ConnectionFactory:
        """Return the connection factory, building it on first use.

        Construction opens every gateway tunnel, so it runs at most once
        per context even when called concurrently.
        """
        if self._factory is not None:
            return self._factory

        async with self._factory_lock:
            if self._factory is None:
                if self.gateway:
                    logger.debug("Establishing connection to gateway %s", self.gateway)
                self._factory = await build_connection_factory(self.gateway, self.options)
                logger.debug("Connection factory ready: %s", type(self._factory).__name__)
            return self._factory

    async def close(self) -> None:
        """Tear down every session, then the factory and its tunnels."""
        try:
            await self.sessions.close_all()
        finally:
            if self._factory is not None:
                factory, self._factory = self._factory, None
                await factory.close()

    async def __aenter__(self) -> "ExecutionContext":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
