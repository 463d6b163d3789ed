"""Data models for Relay MCP."""

from relay_mcp.models.gateway import (
    Chain,
    GatewayRoute,
    GatewaySpec,
    MultiGateway,
    NoGateway,
    SingleChain,
    chain_for,
    map_hops,
)
from relay_mcp.models.server import (
    ConnectFailure,
    ConnectResult,
    ServerDescriptor,
    Session,
)
from relay_mcp.models.task import ExecuteOptions, Task

__all__ = [
    "Chain",
    "ConnectFailure",
    "ConnectResult",
    "ExecuteOptions",
    "GatewayRoute",
    "GatewaySpec",
    "MultiGateway",
    "NoGateway",
    "ServerDescriptor",
    "Session",
    "SingleChain",
    "Task",
    "chain_for",
    "map_hops",
]
