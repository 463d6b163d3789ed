"""Hosts resource for listing inventory servers and their sessions."""

from relay_mcp.models import chain_for
from relay_mcp.services import get_dependencies


async def list_hosts_resource() -> str:
    """List inventory servers with roles, gateway route and session status.

    Returns:
        Formatted list of servers grouped by role, followed by tasks.
    """
    deps = get_dependencies()
    inventory = deps.config.inventory
    gateway = deps.config.gateway
    sessions = deps.context.sessions
    failures = deps.context.failures

    servers = [inventory.resolve(s) for s in inventory.servers]
    if not servers:
        return "No servers in inventory."

    lines = ["Inventory Servers", "=" * 40, ""]

    for server in servers:
        if server in failures:
            status_icon, status = "✗", "failed"
        elif server in sessions:
            status_icon, status = "✓", "connected"
        else:
            status_icon, status = " ", "idle"

        chain = chain_for(gateway, server.host)
        route = " -> ".join(str(hop) for hop in chain) if chain else "direct"

        lines.append(f"[{status_icon}] {server} ({status})")
        lines.append(f"    Roles:    {', '.join(inventory.roles_for(server)) or '-'}")
        lines.append(f"    Route:    {route}")
        lines.append("")

    if inventory.tasks:
        lines.append("Tasks:")
        lines.append("-" * 40)
        for name, task in sorted(inventory.tasks.items()):
            scope = task.scope() or "all servers"
            lines.append(f"  {name}: {scope}")
        lines.append("")

    lines.append(f"Open sessions: {sessions.size}")
    return "\n".join(lines)
