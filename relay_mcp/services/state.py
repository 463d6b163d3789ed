"""Process-wide dependency holder for the MCP server.

The server lifespan installs one Dependencies instance; tools and
resources look it up here. Library callers should build their own
ExecutionContext instead.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relay_mcp.dependencies import Dependencies

_deps: "Dependencies | None" = None


def get_dependencies() -> "Dependencies":
    """Get or create the dependencies."""
    global _deps
    if _deps is None:
        from relay_mcp.dependencies import Dependencies

        _deps = Dependencies.create()
    return _deps


def set_dependencies(deps: "Dependencies") -> None:
    """Set the global dependencies instance.

    Args:
        deps: Dependencies instance to use globally.
    """
    global _deps
    _deps = deps


def reset_state() -> None:
    """Reset global state for testing.

    Clears the instance so tests start fresh. Does not close sessions.
    """
    global _deps
    _deps = None
