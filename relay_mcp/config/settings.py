"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Inventory and routing
    inventory_path: str | None = field(default=None)
    gateway: str | None = field(default=None)

    # Execution
    max_hosts: int | None = field(default=None)
    dry_run: bool = field(default=False)
    hosts: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    host_filter: list[str] = field(default_factory=list)

    # SSH
    connect_timeout: float = field(default=30.0)
    default_user: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=True)

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="0.0.0.0")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @property
    def permissive_filter(self) -> bool:
        """Whether an empty server match is skipped instead of raised.

        A host filter narrows every task, so tasks it filters down to nothing
        are expected and only logged.
        """
        return bool(self.host_filter)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            inventory_path=os.getenv("RELAY_INVENTORY") or None,
            gateway=os.getenv("RELAY_GATEWAY") or None,
            max_hosts=cls._get_max_hosts(),
            dry_run=cls._get_bool("RELAY_DRY_RUN", False),
            hosts=cls._get_list("RELAY_HOSTS"),
            roles=cls._get_list("RELAY_ROLES"),
            host_filter=cls._get_list("RELAY_HOSTFILTER"),
            connect_timeout=float(cls._get_int("RELAY_CONNECT_TIMEOUT", 30)),
            default_user=os.getenv("RELAY_DEFAULT_USER") or None,
            strict_host_key_checking=cls._get_bool(
                "RELAY_STRICT_HOST_KEY_CHECKING", True
            ),
            transport=cls._get_transport(),
            http_host=os.getenv("RELAY_HTTP_HOST", "0.0.0.0"),
            http_port=cls._get_int("RELAY_HTTP_PORT", 8000),
            log_level=os.getenv("RELAY_LOG_LEVEL", "INFO"),
            log_payloads=cls._get_bool("RELAY_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("RELAY_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("RELAY_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_list(key: str) -> list[str]:
        """Get comma-separated list from environment.

        Returns:
            List of values (empty if not set)
        """
        value = os.getenv(key, "").strip()
        if not value:
            return []
        return [v.strip() for v in value.split(",") if v.strip()]

    @classmethod
    def _get_max_hosts(cls) -> int | None:
        """Get the batch size cap, ignoring non-positive values."""
        value = cls._get_int("RELAY_MAX_HOSTS", 0)
        if value < 0:
            logger.warning("RELAY_MAX_HOSTS must be > 0, got %d. Ignoring.", value)
        return value if value > 0 else None

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("RELAY_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
