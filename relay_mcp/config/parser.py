"""SSH config file parser.

Reads ~/.ssh/config so inventory entries can name a Host alias and inherit
its HostName, User, Port and IdentityFile.
"""

import logging
import os
import re
from pathlib import Path

from relay_mcp.models import ServerDescriptor

logger = logging.getLogger(__name__)

_HOST_RE = re.compile(r"^Host\s+(.+)$", re.IGNORECASE)
_KV_RE = re.compile(r"^(\w+)\s*=?\s*(.+)$")


class SSHConfigParser:
    """Parser for SSH config files.

    Each concrete ``Host`` alias becomes a ServerDescriptor carrying its
    settings; ``Host *`` values apply as defaults to every alias.
    """

    def __init__(self, config_path: Path | str | None = None):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file (default: ~/.ssh/config)
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"
        self.config_path = Path(config_path)
        self._cache: dict[str, ServerDescriptor] | None = None

    def parse(self) -> dict[str, ServerDescriptor]:
        """Parse SSH config and return per-alias defaults.

        Returns:
            Dictionary mapping Host alias to a ServerDescriptor whose
            options hold ``hostname`` and ``identity_file`` when set
        """
        if self._cache is not None:
            return self._cache

        if not self.config_path.exists():
            logger.debug("SSH config not found: %s", self.config_path)
            self._cache = {}
            return self._cache

        try:
            content = self.config_path.read_text()
            logger.debug("Reading SSH config from %s", self.config_path)
        except (OSError, PermissionError) as e:
            logger.warning("Cannot read SSH config %s: %s", self.config_path, e)
            self._cache = {}
            return self._cache

        blocks: dict[str, dict[str, str]] = {}
        global_defaults: dict[str, str] = {}
        current: list[str] = []

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            host_match = _HOST_RE.match(line)
            if host_match:
                current = host_match.group(1).split()
                continue

            kv_match = _KV_RE.match(line)
            if not kv_match or not current:
                continue

            key = kv_match.group(1).lower()
            value = kv_match.group(2).strip()
            if key == "identityfile":
                value = os.path.expanduser(value)

            for alias in current:
                if alias == "*":
                    global_defaults.setdefault(key, value)
                elif "*" not in alias and "?" not in alias:
                    # First obtained value wins, as in ssh(1)
                    blocks.setdefault(alias, {}).setdefault(key, value)

        hosts = {
            alias: self._to_descriptor(alias, {**global_defaults, **data})
            for alias, data in blocks.items()
        }
        logger.info("Parsed %d host(s) from %s", len(hosts), self.config_path)
        self._cache = hosts
        return hosts

    @staticmethod
    def _to_descriptor(alias: str, data: dict[str, str]) -> ServerDescriptor:
        try:
            port = int(data["port"]) if "port" in data else None
        except ValueError:
            port = None

        options: dict[str, str] = {}
        if data.get("hostname"):
            options["hostname"] = data["hostname"]
        if data.get("identityfile"):
            options["identity_file"] = data["identityfile"]

        return ServerDescriptor(
            host=alias,
            user=data.get("user"),
            port=port,
            options=options,
        )

    def apply(self, server: ServerDescriptor) -> ServerDescriptor:
        """Fill a server's missing settings from its SSH config alias."""
        defaults = self.parse().get(server.host)
        if defaults is None:
            return server
        return server.with_defaults(
            user=defaults.user,
            port=defaults.port,
            options=defaults.options,
        )
