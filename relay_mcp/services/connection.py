"""SSH transport primitive.

Every SSH dial in Relay MCP, to a target or to a gateway hop, goes through
``connect()``. Authentication and host key handling are delegated to
asyncssh; this module only maps a ServerDescriptor and ConnectOptions onto
``asyncssh.connect`` arguments.
"""

import logging
from dataclasses import dataclass, field

import asyncssh

from relay_mcp.models import ServerDescriptor

logger = logging.getLogger(__name__)

LOOPBACK = "127.0.0.1"


@dataclass
class ConnectOptions:
    """Process-wide options applied to every SSH dial."""

    known_hosts: str | None = None
    strict_host_key_checking: bool = True
    connect_timeout: float | None = None
    default_user: str | None = None
    client_keys: list[str] = field(default_factory=list)

    def username_for(self, server: ServerDescriptor) -> str | None:
        return server.user or self.default_user

    def client_keys_for(self, server: ServerDescriptor) -> list[str] | None:
        identity_file = server.options.get("identity_file")
        if identity_file:
            return [identity_file]
        return list(self.client_keys) or None


async def connect(
    server: ServerDescriptor,
    options: ConnectOptions,
    *,
    host: str | None = None,
    port: int | None = None,
    host_key_alias: str | None = None,
) -> asyncssh.SSHClientConnection:
    """Open an SSH connection to a server.

    Args:
        server: Server to connect to (supplies user and per-host options)
        options: Shared connection options
        host: Address to dial instead of ``server.host`` (a forwarded
            loopback endpoint when tunneling)
        port: Port to dial instead of ``server.effective_port``
        host_key_alias: Name to verify the host key against. A forwarded
            loopback dial passes the real target so known_hosts matches it
            rather than 127.0.0.1.

    Returns:
        Connected asyncssh client connection

    Raises:
        asyncssh.HostKeyNotVerifiable: If strict checking rejects the key
        OSError, asyncssh.Error: If the dial or handshake fails
    """
    dial_host = host or server.address
    dial_port = port or server.effective_port
    username = options.username_for(server)
    client_keys = options.client_keys_for(server)

    kwargs: dict[str, object] = {
        "port": dial_port,
        "username": username,
        "known_hosts": options.known_hosts,
        "client_keys": client_keys,
    }
    if options.connect_timeout:
        kwargs["connect_timeout"] = options.connect_timeout
    if host_key_alias:
        kwargs["host_key_alias"] = host_key_alias

    logger.debug(
        "Dialing %s@%s:%d (for %s)",
        username or "",
        dial_host,
        dial_port,
        server,
    )

    try:
        return await asyncssh.connect(dial_host, **kwargs)
    except asyncssh.HostKeyNotVerifiable as e:
        if options.strict_host_key_checking:
            logger.error(
                "Host key verification failed for %s: %s. "
                "Add the host key to %s or set "
                "RELAY_STRICT_HOST_KEY_CHECKING=false",
                server,
                e,
                options.known_hosts,
            )
            raise
        logger.warning(
            "Host key not verified for %s (strict mode disabled): %s",
            server,
            e,
        )
        kwargs["known_hosts"] = None
        return await asyncssh.connect(dial_host, **kwargs)


async def open_tunnel(
    server: ServerDescriptor,
    options: ConnectOptions,
    *,
    host: str | None = None,
    port: int | None = None,
    host_key_alias: str | None = None,
) -> asyncssh.SSHClientConnection:
    """Open a connection to a gateway hop.

    The connection is only used for local port forwarding, never to run
    commands.
    """
    logger.info("Opening gateway connection to %s", server)
    return await connect(
        server, options, host=host, port=port, host_key_alias=host_key_alias
    )
