"""Error types raised across the connection and execution layers."""

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relay_mcp.models import ConnectFailure, ServerDescriptor


class RelayError(Exception):
    """Base class for Relay MCP errors."""


class ConnectionError(RelayError):
    """One or more servers could not be connected to.

    A single error may stand for many simultaneous per-host failures.
    """

    def __init__(self, message: str, hosts: Iterable["ServerDescriptor"] = ()):
        """Initialize connection error.

        Args:
            message: Human readable summary
            hosts: Servers that failed to connect
        """
        self.hosts: list[ServerDescriptor] = list(hosts)
        super().__init__(message)

    @classmethod
    def from_failures(cls, failures: Sequence["ConnectFailure"]) -> "ConnectionError":
        """Aggregate per-host failures into one error."""
        details = ", ".join(f.describe() for f in failures)
        return cls(
            f"connection failed for: {details}",
            hosts=[f.server for f in failures],
        )


class NoMatchingServersError(RelayError):
    """A task's scope resolved to no servers."""


class RemoteError(RelayError):
    """Execution failed on one or more hosts.

    Raised by execution callbacks; the orchestrator records the hosts as
    failed when the task tolerates errors.
    """

    def __init__(self, message: str, hosts: Iterable["ServerDescriptor"] = ()):
        self.hosts: list[ServerDescriptor] = list(hosts)
        super().__init__(message)


class TeardownError(RelayError):
    """Closing one or more sessions failed for a reason other than a dead link."""

    def __init__(
        self,
        message: str,
        hosts: Iterable["ServerDescriptor"] = (),
        errors: Iterable[BaseException] = (),
    ):
        self.hosts: list[ServerDescriptor] = list(hosts)
        self.errors: list[BaseException] = list(errors)
        super().__init__(message)
