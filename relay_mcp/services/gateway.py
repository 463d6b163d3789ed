"""Gateway tunnels and multi-hop chains.

A tunnel is an SSH connection to a gateway host used purely for local port
forwarding. Chains are built hop by hop: each hop is dialed through a port
forwarded by the previous one, so only the first gateway has to be
reachable from this machine.

    g0 <- direct dial
    g1 <- dialed at 127.0.0.1:<port forwarded through g0>
    H  <- dialed at 127.0.0.1:<port forwarded through g1>
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from relay_mcp.models import MultiGateway, NoGateway, ServerDescriptor, SingleChain
from relay_mcp.services.connection import LOOPBACK, ConnectOptions, open_tunnel

if TYPE_CHECKING:
    import asyncssh

    from relay_mcp.models import GatewaySpec
    from relay_mcp.models.gateway import Chain

logger = logging.getLogger(__name__)

TunnelDialer = Callable[..., Awaitable["asyncssh.SSHClientConnection"]]


class TunnelHandle:
    """A live gateway connection that can forward ports to hosts behind it."""

    def __init__(
        self,
        server: ServerDescriptor,
        connection: "asyncssh.SSHClientConnection",
        upstream: "TunnelHandle | None" = None,
    ) -> None:
        """Initialize tunnel handle.

        Args:
            server: Gateway this tunnel terminates at
            connection: SSH connection to that gateway
            upstream: Previous hop of a chain, closed along with this one
        """
        self.server = server
        self.connection = connection
        self.upstream = upstream
        self._listeners: dict[int, Any] = {}
        self._closed = False

    @property
    def depth(self) -> int:
        """Number of hops in the chain ending at this tunnel."""
        return 1 + (self.upstream.depth if self.upstream else 0)

    async def open(self, host: str, port: int) -> int:
        """Forward a local loopback port to host:port through this gateway.

        Returns:
            Locally bound port to dial
        """
        listener = await self.connection.forward_local_port(LOOPBACK, 0, host, port)
        local_port: int = listener.get_port()
        self._listeners[local_port] = listener
        logger.debug(
            "Forwarding %s:%d -> %s:%d via %s",
            LOOPBACK,
            local_port,
            host,
            port,
            self.server,
        )
        return local_port

    def release(self, local_port: int) -> None:
        """Stop forwarding a port returned by ``open``."""
        listener = self._listeners.pop(local_port, None)
        if listener is not None:
            logger.debug("Releasing %s:%d via %s", LOOPBACK, local_port, self.server)
            listener.close()

    @property
    def forwarded_ports(self) -> list[int]:
        return list(self._listeners)

    async def close(self) -> None:
        """Close forwarded ports, this hop and every upstream hop."""
        if self._closed:
            return
        self._closed = True

        for listener in self._listeners.values():
            listener.close()
        self._listeners.clear()

        logger.info("Closing gateway connection to %s", self.server)
        self.connection.close()
        await self.connection.wait_closed()

        if self.upstream is not None:
            await self.upstream.close()

    def __repr__(self) -> str:
        return f"TunnelHandle({self.server}, depth={self.depth})"


class GatewayChainBuilder:
    """Builds a composed TunnelHandle from an ordered list of gateways."""

    def __init__(self, options: ConnectOptions, dial: TunnelDialer = open_tunnel) -> None:
        self.options = options
        self._dial = dial

    async def build(self, hops: "Chain") -> TunnelHandle:
        """Open a tunnel through every hop in order.

        Args:
            hops: Gateways to traverse, nearest first

        Returns:
            Tunnel terminating at the last hop

        Raises:
            ValueError: If hops is empty
        """
        if not hops:
            raise ValueError("Cannot build a gateway chain with no hops")

        first, *rest = hops
        logger.debug("Creating gateway using %s", ", ".join(str(h) for h in hops))
        tunnel = TunnelHandle(first, await self._dial(first, self.options))

        try:
            for destination in rest:
                logger.debug("Creating tunnel to %s", destination)
                local_port = await tunnel.open(
                    destination.address, destination.effective_port
                )
                connection = await self._dial(
                    destination,
                    self.options,
                    host=LOOPBACK,
                    port=local_port,
                    host_key_alias=destination.address,
                )
                tunnel = TunnelHandle(destination, connection, upstream=tunnel)
        except BaseException:
            await tunnel.close()
            raise

        return tunnel


class GatewayRegistry:
    """Maps target hosts to the tunnel they are routed through."""

    def __init__(
        self,
        default: TunnelHandle,
        routes: dict[str, TunnelHandle] | None = None,
    ) -> None:
        self.default = default
        self._routes = dict(routes or {})

    def tunnel_for(self, host: str) -> TunnelHandle:
        """Tunnel for a host, falling back to the default."""
        return self._routes.get(host, self.default)

    @property
    def hosts(self) -> list[str]:
        """Hosts with an explicit route."""
        return list(self._routes)

    @property
    def tunnels(self) -> list[TunnelHandle]:
        """Distinct tunnels, default first."""
        unique = [self.default]
        for tunnel in self._routes.values():
            if all(tunnel is not t for t in unique):
                unique.append(tunnel)
        return unique

    @classmethod
    async def build(
        cls,
        spec: "GatewaySpec",
        builder: GatewayChainBuilder,
    ) -> "GatewayRegistry":
        """Build every tunnel a gateway spec calls for.

        Each distinct chain is built exactly once. For the multi-gateway
        form the first route's tunnel also serves unlisted hosts.

        Raises:
            ValueError: If spec is NoGateway
        """
        if isinstance(spec, NoGateway):
            raise ValueError("Cannot build a gateway registry without gateways")

        if isinstance(spec, SingleChain):
            return cls(default=await builder.build(spec.hops))

        if not isinstance(spec, MultiGateway):
            raise TypeError(f"Unsupported gateway spec: {spec!r}")

        logger.debug(
            "Creating multiple gateways using %s",
            {",".join(str(h) for h in r.chain): list(r.hosts) for r in spec.routes},
        )
        built: dict[Chain, TunnelHandle] = {}
        routes: dict[str, TunnelHandle] = {}
        try:
            for route in spec.routes:
                tunnel = built.get(route.chain)
                if tunnel is None:
                    tunnel = await builder.build(route.chain)
                    built[route.chain] = tunnel
                for host in route.hosts:
                    routes[host] = tunnel
        except BaseException:
            for tunnel in built.values():
                await tunnel.close()
            raise

        return cls(default=built[spec.default_chain], routes=routes)

    async def close(self) -> None:
        """Close every tunnel in the registry."""
        for tunnel in self.tunnels:
            await tunnel.close()
