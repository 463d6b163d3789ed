"""Application configuration.

Delegates to specialized components:
- Settings: Environment variables
- SSHConfigParser: Reads ~/.ssh/config
- HostKeyVerifier: Manages known_hosts
- Inventory: Roles, tasks and gateway routing
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from relay_mcp.config.host_keys import HostKeyVerifier
from relay_mcp.config.inventory import Inventory
from relay_mcp.config.parser import SSHConfigParser
from relay_mcp.config.settings import Settings
from relay_mcp.models import GatewaySpec
from relay_mcp.services.connection import ConnectOptions
from relay_mcp.utils.parser import parse_gateway_spec

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Aggregates settings from the environment, SSH config, known_hosts and
    the inventory file.
    """

    settings: Settings
    parser: SSHConfigParser
    host_keys: HostKeyVerifier
    _inventory: Inventory | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        settings = Settings.from_env()
        parser = SSHConfigParser(os.getenv("RELAY_SSH_CONFIG") or None)
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("RELAY_KNOWN_HOSTS"),
            strict_checking=settings.strict_host_key_checking,
        )
        return cls(settings=settings, parser=parser, host_keys=host_keys)

    @classmethod
    def from_inventory(
        cls,
        inventory_path: Path | str,
        ssh_config_path: Path | str | None = None,
        settings: Settings | None = None,
    ) -> "Config":
        """Create config for an explicit inventory file.

        Host key verification is left lax so ad-hoc and test setups do not
        need a known_hosts file.
        """
        settings = settings or Settings.from_env()
        settings.inventory_path = str(inventory_path)
        parser = SSHConfigParser(ssh_config_path)
        host_keys = HostKeyVerifier(known_hosts_path="none", strict_checking=False)
        return cls(settings=settings, parser=parser, host_keys=host_keys)

    @property
    def inventory(self) -> Inventory:
        """The inventory, loaded on first access.

        Without RELAY_INVENTORY the inventory is empty and only ad-hoc hosts
        can be targeted.
        """
        if self._inventory is None:
            path = self.settings.inventory_path
            if path:
                self._inventory = Inventory.load(path, ssh_config=self.parser)
            else:
                logger.warning("No inventory configured (RELAY_INVENTORY not set)")
                self._inventory = Inventory(ssh_config=self.parser)
            if self.settings.default_user and not self._inventory.default_user:
                self._inventory.default_user = self.settings.default_user
        return self._inventory

    @property
    def gateway(self) -> GatewaySpec:
        """Gateway routing; RELAY_GATEWAY overrides the inventory.

        Hops get the same user, port and identity defaults as targets.
        """
        if self.settings.gateway:
            spec = parse_gateway_spec(self.settings.gateway)
        else:
            spec = self.inventory.gateway
        return self.inventory.resolve_gateway(spec)

    def connect_options(self) -> ConnectOptions:
        """Options applied to every SSH dial."""
        return ConnectOptions(
            known_hosts=self.host_keys.get_known_hosts_path(),
            strict_host_key_checking=self.host_keys.strict_checking,
            connect_timeout=self.settings.connect_timeout,
            default_user=self.inventory.default_user,
        )

    # Delegate to settings for convenience
    @property
    def dry_run(self) -> bool:
        """Whether errors that would abort are suppressed."""
        return self.settings.dry_run

    @property
    def transport(self) -> str:
        """Transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        """HTTP server bind address."""
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        """HTTP server port."""
        return self.settings.http_port

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()

    @property
    def strict_host_key_checking(self) -> bool:
        """Whether to reject unknown host keys."""
        return self.host_keys.strict_checking
