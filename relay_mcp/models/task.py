"""Task and execution option models."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from relay_mcp.models.server import ServerDescriptor

CONTINUE = "continue"


@dataclass(frozen=True)
class Task:
    """A named unit of work scoped to a set of roles and/or hosts.

    An empty scope (no roles and no hosts) means every server in the
    inventory.
    """

    name: str
    roles: tuple[str, ...] = ()
    hosts: tuple[str, ...] = ()
    namespace: str | None = None
    max_hosts: int | None = None
    continue_on_error: bool = False
    on_no_matching_servers: str | None = None
    once: bool = False
    description: str = ""

    @property
    def fully_qualified_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}:{self.name}"
        return self.name

    def matches(self, server: ServerDescriptor, server_roles: Iterable[str]) -> bool:
        """Check whether a server falls within this task's scope."""
        if not self.roles and not self.hosts:
            return True
        if server.host in self.hosts or str(server) in self.hosts:
            return True
        return bool(set(self.roles) & set(server_roles))

    def scope(self) -> dict[str, Any]:
        """Scope options for log and error messages."""
        scope: dict[str, Any] = {}
        if self.roles:
            scope["roles"] = list(self.roles)
        if self.hosts:
            scope["hosts"] = list(self.hosts)
        return scope

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "Task":
        """Build a task from an inventory mapping.

        Raises:
            ValueError: If max_hosts is not a positive integer
        """
        max_hosts = data.get("max_hosts")
        if max_hosts is not None:
            max_hosts = int(max_hosts)
            if max_hosts <= 0:
                raise ValueError(f"max_hosts must be > 0 for task {name}, got {max_hosts}")

        return cls(
            name=name,
            roles=_as_tuple(data.get("roles")),
            hosts=_as_tuple(data.get("hosts")),
            namespace=data.get("namespace"),
            max_hosts=max_hosts,
            continue_on_error=bool(data.get("continue_on_error", False)),
            on_no_matching_servers=data.get("on_no_matching_servers"),
            once=bool(data.get("once", False)),
            description=data.get("description", ""),
        )


@dataclass
class ExecuteOptions:
    """Per-call options for executing against servers."""

    max_hosts: int | None = None
    once: bool = False
    on_no_matching_servers: str | None = None
    roles: list[str] = field(default_factory=list)
    hosts: list[str] = field(default_factory=list)

    def continue_on_no_match(self, task: Task | None = None) -> bool:
        """Whether an empty server set should be skipped silently."""
        policy = self.on_no_matching_servers
        if policy is None and task is not None:
            policy = task.on_no_matching_servers
        return policy == CONTINUE


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(",") if v.strip())
    return tuple(str(v) for v in value)
