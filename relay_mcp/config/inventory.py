"""Server inventory: roles, tasks and gateway routing from a YAML file.

Example::

    user: deploy
    gateway:
      bastion-a: [web1, web2]
      "bastion-b,inner-b": [db1]
    roles:
      web:
        - web1
        - deploy@web2:2222
      db:
        - host: db1
          identity_file: ~/.ssh/db_key
    tasks:
      restart:
        roles: [web]
        max_hosts: 1
        continue_on_error: true
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from relay_mcp.config.parser import SSHConfigParser
from relay_mcp.models import (
    ExecuteOptions,
    GatewaySpec,
    NoGateway,
    ServerDescriptor,
    Task,
    map_hops,
)
from relay_mcp.utils.parser import parse_gateway_spec, parse_server

logger = logging.getLogger(__name__)


@dataclass
class Inventory:
    """Known servers grouped by role, plus named tasks."""

    roles: dict[str, list[ServerDescriptor]] = field(default_factory=dict)
    tasks: dict[str, Task] = field(default_factory=dict)
    gateway: GatewaySpec = field(default_factory=NoGateway)
    default_user: str | None = None
    ssh_config: SSHConfigParser | None = None
    source_path: Path | None = None

    @property
    def servers(self) -> list[ServerDescriptor]:
        """Every server in role order, without duplicates."""
        return _unique(s for servers in self.roles.values() for s in servers)

    def roles_for(self, server: ServerDescriptor) -> list[str]:
        return [role for role, servers in self.roles.items() if server in servers]

    def get_task(self, name: str) -> Task:
        """Look up a named task.

        Raises:
            KeyError: If no task has that name
        """
        try:
            return self.tasks[name]
        except KeyError:
            raise KeyError(f"Unknown task: {name}") from None

    def lookup(self, host: str) -> ServerDescriptor:
        """Return the inventory entry for a host string, or parse it."""
        wanted = parse_server(host)
        for server in self.servers:
            if server == wanted or (
                wanted.user is None and wanted.port is None and server.host == wanted.host
            ):
                return server
        return wanted

    def find_servers(
        self,
        options: ExecuteOptions | None = None,
        *,
        hosts: list[str] | None = None,
        roles: list[str] | None = None,
        host_filter: list[str] | None = None,
    ) -> list[ServerDescriptor]:
        """Resolve servers matching explicit host/role selections.

        Args:
            options: Per-call options; ``options.hosts``/``options.roles``
                narrow the selection
            hosts: Host override that replaces any other selection
            roles: Role override that replaces any other role selection
            host_filter: Only keep servers whose host is listed

        Returns:
            Matching servers in inventory order, without duplicates
        """
        options = options or ExecuteOptions()
        return self._select(
            hosts=hosts or options.hosts,
            roles=roles or options.roles,
            host_filter=host_filter,
        )

    def find_servers_for_task(
        self,
        task: Task,
        options: ExecuteOptions | None = None,
        *,
        hosts: list[str] | None = None,
        roles: list[str] | None = None,
        host_filter: list[str] | None = None,
    ) -> list[ServerDescriptor]:
        """Resolve the servers in scope for a task.

        Selections take precedence in this order: the ``hosts``/``roles``
        overrides, then per-call options, then the task's own scope.
        """
        options = options or ExecuteOptions()
        override_hosts = hosts or options.hosts
        override_roles = roles or options.roles
        if override_hosts or override_roles:
            return self._select(
                hosts=override_hosts or [],
                roles=override_roles or [],
                host_filter=host_filter,
            )

        scoped = [s for s in self.servers if task.matches(s, self.roles_for(s))]
        # Hosts named by the task but absent from every role
        for host in task.hosts:
            server = self.lookup(host)
            if server not in scoped:
                scoped.append(server)
        return self._finish(scoped, host_filter)

    def _select(
        self,
        hosts: list[str],
        roles: list[str],
        host_filter: list[str] | None,
    ) -> list[ServerDescriptor]:
        if hosts:
            selected = [self.lookup(h) for h in hosts]
        elif roles:
            missing = [r for r in roles if r not in self.roles]
            if missing:
                logger.warning("Unknown role(s): %s", ", ".join(missing))
            selected = [s for r in roles for s in self.roles.get(r, [])]
        else:
            selected = self.servers
        return self._finish(selected, host_filter)

    def _finish(
        self,
        servers: list[ServerDescriptor],
        host_filter: list[str] | None,
    ) -> list[ServerDescriptor]:
        servers = _unique(servers)
        if host_filter:
            servers = [s for s in servers if s.host in host_filter or str(s) in host_filter]
        return [self.resolve(s) for s in servers]

    def resolve(self, server: ServerDescriptor) -> ServerDescriptor:
        """Fill in defaults from the SSH config and the inventory user."""
        if self.ssh_config is not None:
            server = self.ssh_config.apply(server)
        if server.user is None and self.default_user:
            server = server.with_defaults(user=self.default_user)
        return server

    def resolve_gateway(self, spec: GatewaySpec) -> GatewaySpec:
        """Fill in gateway hop defaults the same way as for targets."""
        return map_hops(spec, self.resolve)

    @classmethod
    def from_dict(
        cls,
        raw: dict[str, Any],
        ssh_config: SSHConfigParser | None = None,
    ) -> "Inventory":
        """Build an inventory from parsed YAML data.

        Raises:
            ValueError: If a role, task or gateway entry is malformed
        """
        roles: dict[str, list[ServerDescriptor]] = {}
        for role, entries in (raw.get("roles") or {}).items():
            if isinstance(entries, (str, dict)):
                entries = [entries]
            roles[str(role)] = [_parse_entry(e, role) for e in entries or []]

        tasks = {
            str(name): Task.from_dict(str(name), data or {})
            for name, data in (raw.get("tasks") or {}).items()
        }

        return cls(
            roles=roles,
            tasks=tasks,
            gateway=parse_gateway_spec(raw.get("gateway")),
            default_user=raw.get("user"),
            ssh_config=ssh_config,
        )

    @classmethod
    def load(
        cls,
        path: str | Path,
        ssh_config: SSHConfigParser | None = None,
    ) -> "Inventory":
        """Load and validate an inventory from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a YAML mapping
        """
        path = Path(os.path.expanduser(str(path))).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Inventory file not found: {path}")

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise ValueError(f"Inventory must be a mapping: {path}")

        inventory = cls.from_dict(raw, ssh_config=ssh_config)
        inventory.source_path = path
        logger.info(
            "Loaded inventory from %s: %d server(s), %d role(s), %d task(s)",
            path,
            len(inventory.servers),
            len(inventory.roles),
            len(inventory.tasks),
        )
        return inventory


def _parse_entry(entry: Any, role: str) -> ServerDescriptor:
    """Parse a role entry: a server string or a mapping with a host key."""
    if isinstance(entry, str):
        return parse_server(entry)

    if not isinstance(entry, dict) or not entry.get("host"):
        raise ValueError(f"Role '{role}' entry must be a string or have a 'host' field")

    options: dict[str, Any] = {}
    if entry.get("identity_file"):
        options["identity_file"] = os.path.expanduser(entry["identity_file"])

    server = parse_server(str(entry["host"]), **options)
    return server.with_defaults(
        user=entry.get("user"),
        port=int(entry["port"]) if entry.get("port") else None,
    )


def _unique(servers: Any) -> list[ServerDescriptor]:
    return list(dict.fromkeys(servers))
