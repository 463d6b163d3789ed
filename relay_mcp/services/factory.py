"""Connection factories.

A factory turns a ServerDescriptor into an open Session. The direct factory
dials the server itself; the gateway factory dials a loopback port
forwarded through the tunnel that routes to the server.
"""

import logging
from functools import partial

from relay_mcp.models import GatewaySpec, NoGateway, ServerDescriptor, Session
from relay_mcp.protocols import ConnectionFactory, Tunnel
from relay_mcp.services import connection as transport
from relay_mcp.services.connection import LOOPBACK, ConnectOptions
from relay_mcp.services.gateway import GatewayChainBuilder, GatewayRegistry

logger = logging.getLogger(__name__)


class DirectConnectionFactory:
    """Connects straight to each server."""

    def __init__(self, options: ConnectOptions) -> None:
        self.options = options

    async def connect_to(self, server: ServerDescriptor) -> Session:
        connection = await transport.connect(server, self.options)
        return Session(server=server, connection=connection)

    async def close(self) -> None:
        """Nothing to release; sessions are owned by the registry."""


class GatewayConnectionFactory:
    """Connects to servers through gateway tunnels."""

    def __init__(self, registry: GatewayRegistry, options: ConnectOptions) -> None:
        """Initialize factory around already-built tunnels.

        Use ``create()`` to build the tunnels from a gateway spec.
        """
        self.registry = registry
        self.options = options

    @classmethod
    async def create(
        cls,
        spec: GatewaySpec,
        options: ConnectOptions,
        builder: GatewayChainBuilder | None = None,
    ) -> "GatewayConnectionFactory":
        """Build every gateway tunnel and return a factory using them."""
        builder = builder or GatewayChainBuilder(options)
        registry = await GatewayRegistry.build(spec, builder)
        return cls(registry, options)

    def gateway_for(self, server: ServerDescriptor) -> Tunnel:
        return self.registry.tunnel_for(server.host)

    async def connect_to(self, server: ServerDescriptor) -> Session:
        logger.debug("Establishing connection to %s via gateway", server)
        tunnel = self.gateway_for(server)
        local_port = await tunnel.open(server.address, server.effective_port)
        local = ServerDescriptor(
            host=LOOPBACK,
            user=server.user,
            port=local_port,
            options=server.options,
        )
        try:
            connection = await transport.connect(
                local,
                self.options,
                host=LOOPBACK,
                port=local_port,
                host_key_alias=server.address,
            )
        except BaseException:
            tunnel.release(local_port)
            raise
        return Session(
            server=local,
            connection=connection,
            original_target=server,
            release=partial(tunnel.release, local_port),
        )

    async def close(self) -> None:
        """Close every gateway tunnel."""
        await self.registry.close()


async def build_connection_factory(
    spec: GatewaySpec,
    options: ConnectOptions,
) -> ConnectionFactory:
    """Create the factory appropriate for a gateway spec.

    Returns:
        DirectConnectionFactory when no gateway is configured, otherwise a
        GatewayConnectionFactory with all tunnels already open
    """
    if isinstance(spec, NoGateway):
        return DirectConnectionFactory(options)

    logger.debug("Establishing connection to gateway %s", spec)
    return await GatewayConnectionFactory.create(spec, options)
