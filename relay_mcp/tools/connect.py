"""Connect and disconnect tools.

Pre-open SSH sessions for a task (or an ad-hoc selection of hosts/roles)
so later operations do not pay connection setup time, and close them
again when done.
"""

import logging

from relay_mcp.models import ExecuteOptions, ServerDescriptor, Task
from relay_mcp.services import (
    ConnectionError,
    NoMatchingServersError,
    TeardownError,
    get_dependencies,
)

logger = logging.getLogger(__name__)


def _format_servers(title: str, servers: list[ServerDescriptor]) -> list[str]:
    lines = [title, "-" * 40]
    if servers:
        lines.extend(f"  {s}" for s in servers)
    else:
        lines.append("  (none)")
    lines.append("")
    return lines


def _error_report(
    error: Exception, hosts: list[ServerDescriptor], open_sessions: int
) -> str:
    lines = [f"Error: {error}", ""]
    lines.extend(_format_servers("Failed", hosts))
    lines.append(f"Open sessions: {open_sessions}")
    return "\n".join(lines)


async def connect(
    task: str = "",
    hosts: list[str] | None = None,
    roles: list[str] | None = None,
    max_hosts: int | None = None,
    once: bool = False,
) -> str:
    """Open SSH connections to the servers a task or selection targets.

    Servers are connected in parallel, at most ``max_hosts`` at a time.
    When every server fits in one batch the sessions stay open for
    subsequent calls; otherwise each batch is closed before the next.

    Args:
        task: Name of an inventory task whose roles/hosts select servers.
        hosts: Explicit hosts ("[user@]host[:port]"), overriding the task scope.
        roles: Inventory roles, overriding the task scope.
        max_hosts: Maximum number of simultaneous connections.
        once: Only connect to the first matching server.

    Returns:
        Summary of connected servers, or an error message.

    Examples:
        connect(task="deploy")
        connect(roles=["web"], max_hosts=2)
        connect(hosts=["deploy@db1:2222"])
    """
    deps = get_dependencies()

    selected: Task | None = None
    if task:
        try:
            selected = deps.config.inventory.get_task(task)
        except KeyError as e:
            return f"Error: {e.args[0]}"

    if max_hosts is not None and max_hosts <= 0:
        return f"Error: max_hosts must be > 0, got {max_hosts}"

    options = ExecuteOptions(
        max_hosts=max_hosts,
        once=once,
        hosts=list(hosts or []),
        roles=list(roles or []),
    )

    try:
        servers = await deps.orchestrator.connect(selected, options)
    except NoMatchingServersError as e:
        return f"Error: {e}"
    except ValueError as e:
        return f"Error: {e}"
    except ConnectionError as e:
        logger.warning("Connect aborted: %s", e)
        return _error_report(e, e.hosts, deps.context.sessions.size)

    sessions = deps.context.sessions
    failed = deps.context.failures.failed
    logger.info(
        "Connected to %d server(s) (sessions=%d, failed=%d)",
        len(servers),
        sessions.size,
        len(failed),
    )

    lines = _format_servers(f"Connected to {len(servers)} server(s)", servers)
    if failed:
        lines.extend(_format_servers("Failed", failed))
    lines.append(f"Open sessions: {sessions.size}")
    return "\n".join(lines)


async def disconnect(hosts: list[str] | None = None) -> str:
    """Close open SSH sessions.

    Args:
        hosts: Hosts to disconnect from. Closes every session when omitted.

    Returns:
        Summary of closed sessions.
    """
    deps = get_dependencies()
    sessions = deps.context.sessions

    if hosts:
        inventory = deps.config.inventory
        try:
            servers = [inventory.resolve(inventory.lookup(h)) for h in hosts]
        except ValueError as e:
            return f"Error: {e}"
        servers = [s for s in servers if s in sessions]
    else:
        servers = sessions.active_servers

    if not servers:
        return "No open sessions to close."

    try:
        await deps.orchestrator.teardown_connections_to(servers)
    except TeardownError as e:
        return _error_report(e, e.hosts, sessions.size)

    lines = _format_servers(f"Closed {len(servers)} session(s)", servers)
    lines.append(f"Open sessions: {sessions.size}")
    return "\n".join(lines)
