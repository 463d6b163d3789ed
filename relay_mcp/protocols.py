"""Protocol interfaces for dependency inversion.

Defines the contracts the orchestrator and session registry depend on,
so tests and alternative transports can substitute their own
implementations.

Usage Example:

    from relay_mcp.protocols import ConnectionFactory

    async def warm_up(factory: ConnectionFactory, server: ServerDescriptor):
        '''Function depends on protocol, not concrete implementation.'''
        session = await factory.connect_to(server)
        # ... use session

    # Can pass any implementation
    from relay_mcp.services.factory import DirectConnectionFactory
    await warm_up(DirectConnectionFactory(options), server)  # Works

    # Or a fake for testing
    class FakeFactory:
        async def connect_to(self, server):
            return Session(server=server, connection=MagicMock())

        async def close(self):
            pass

    await warm_up(FakeFactory(), server)  # Also works
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from relay_mcp.models import ServerDescriptor, Session

ExecutionCallback = Callable[[list[ServerDescriptor]], Awaitable[Any]]
"""Async callable invoked once per batch with the servers of that batch."""


@runtime_checkable
class ConnectionFactory(Protocol):
    """Protocol for producing sessions.

    Example implementation:
        class MyFactory:
            async def connect_to(self, server: ServerDescriptor) -> Session:
                connection = await asyncssh.connect(server.host)
                return Session(server=server, connection=connection)

            async def close(self) -> None:
                pass
    """

    async def connect_to(self, server: ServerDescriptor) -> Session:
        """Open a new session to a server.

        Args:
            server: Server to connect to

        Returns:
            Open session

        Raises:
            OSError, asyncssh.Error: If the dial fails
        """
        ...

    async def close(self) -> None:
        """Release resources held by the factory (gateway tunnels).

        Sessions already handed out are not closed.
        """
        ...


@runtime_checkable
class Tunnel(Protocol):
    """Protocol for a live forwarding tunnel."""

    async def open(self, host: str, port: int) -> int:
        """Forward a local port to host:port.

        Returns:
            Locally bound port
        """
        ...

    def release(self, local_port: int) -> None:
        """Stop forwarding a port returned by ``open``."""
        ...

    async def close(self) -> None:
        """Close the tunnel."""
        ...


# Export all protocols
__all__ = [
    "ConnectionFactory",
    "ExecutionCallback",
    "Tunnel",
]
