"""Services for Relay MCP."""

from relay_mcp.services.connection import ConnectOptions, connect, open_tunnel
from relay_mcp.services.context import ExecutionContext
from relay_mcp.services.errors import (
    ConnectionError,
    NoMatchingServersError,
    RelayError,
    RemoteError,
    TeardownError,
)
from relay_mcp.services.factory import (
    DirectConnectionFactory,
    GatewayConnectionFactory,
    build_connection_factory,
)
from relay_mcp.services.gateway import (
    GatewayChainBuilder,
    GatewayRegistry,
    TunnelHandle,
)
from relay_mcp.services.orchestrator import ExecutionOrchestrator
from relay_mcp.services.sessions import FailureTracker, SessionRegistry
from relay_mcp.services.state import (
    get_dependencies,
    reset_state,
    set_dependencies,
)

__all__ = [
    "ConnectOptions",
    "ConnectionError",
    "DirectConnectionFactory",
    "ExecutionContext",
    "ExecutionOrchestrator",
    "FailureTracker",
    "GatewayChainBuilder",
    "GatewayConnectionFactory",
    "GatewayRegistry",
    "NoMatchingServersError",
    "RelayError",
    "RemoteError",
    "SessionRegistry",
    "TeardownError",
    "TunnelHandle",
    "build_connection_factory",
    "connect",
    "get_dependencies",
    "open_tunnel",
    "reset_state",
    "set_dependencies",
]
