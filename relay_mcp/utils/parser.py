"""Server and gateway option parsing."""

import re
from collections.abc import Mapping
from typing import Any

from relay_mcp.models.gateway import (
    Chain,
    GatewayRoute,
    GatewaySpec,
    MultiGateway,
    NoGateway,
    SingleChain,
)
from relay_mcp.models.server import ServerDescriptor
from relay_mcp.utils.validation import validate_host, validate_port

_SERVER_RE = re.compile(
    r"""
    ^(?:(?P<user>[^@\s]+)@)?          # optional user@
    (?:\[(?P<ipv6>[^\]]+)\]           # [ipv6]
      |(?P<host>[^:\s\[\]]+))         # or plain host
    (?::(?P<port>\d+))?$              # optional :port
    """,
    re.VERBOSE,
)


def parse_server(value: str, **options: object) -> ServerDescriptor:
    """Parse a server string into a ServerDescriptor.

    Formats:
        - "host"
        - "user@host"
        - "user@host:2222"
        - "deploy@[::1]:2222" (IPv6 addresses must be bracketed to carry a port)

    Returns:
        ServerDescriptor with parsed components.

    Raises:
        ValueError: If the string is not a valid server spec.
    """
    value = value.strip()
    if not value:
        raise ValueError("Server cannot be empty")

    match = _SERVER_RE.match(value)
    if match is None:
        # Bare IPv6 address without brackets and without a port
        if value.count(":") > 1 and "@" not in value and "[" not in value:
            return ServerDescriptor(host=validate_host(value), options=dict(options))
        raise ValueError(
            f"Invalid server '{value}'. Expected '[user@]host[:port]'"
        )

    host = validate_host(match.group("ipv6") or match.group("host"))
    port = validate_port(match.group("port")) if match.group("port") else None

    return ServerDescriptor(
        host=host,
        user=match.group("user"),
        port=port,
        options=dict(options),
    )


def parse_chain(value: Any) -> Chain:
    """Parse a chain spec into an ordered tuple of hops.

    Accepts "gw", "gw0,gw1" or ["gw0", "gw1"].

    Raises:
        ValueError: If the chain is empty or has an unsupported type
    """
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",") if p.strip()]
    elif isinstance(value, (list, tuple)):
        parts = [str(p).strip() for p in value if str(p).strip()]
    else:
        raise ValueError(f"Invalid gateway chain: {value!r}")

    if not parts:
        raise ValueError(f"Gateway chain cannot be empty: {value!r}")
    return tuple(parse_server(p) for p in parts)


def parse_gateway_spec(value: Any) -> GatewaySpec:
    """Resolve the raw ``gateway`` option into a GatewaySpec.

    Args:
        value: None, a host string, a list of hosts (a chain), or a mapping
            from chain spec to a host or list of hosts.

    Returns:
        NoGateway, SingleChain or MultiGateway

    Raises:
        ValueError: If the value has an unsupported shape
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return NoGateway()

    if isinstance(value, Mapping):
        if not value:
            return NoGateway()
        routes = []
        for chain_spec, hosts in value.items():
            if isinstance(hosts, str):
                hosts = [hosts]
            elif hosts is None:
                hosts = []
            routes.append(
                GatewayRoute(
                    chain=parse_chain(chain_spec),
                    hosts=tuple(parse_server(str(h)).host for h in hosts),
                )
            )
        return MultiGateway(routes=tuple(routes))

    if isinstance(value, (list, tuple)):
        if not value:
            return NoGateway()
        return SingleChain(hops=parse_chain(value))

    if isinstance(value, str):
        return SingleChain(hops=parse_chain(value))

    raise ValueError(f"Unsupported gateway option: {value!r}")
