"""Server and session data models."""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import asyncssh

DEFAULT_SSH_PORT = 22


@dataclass(frozen=True)
class ServerDescriptor:
    """Identity of a remote SSH endpoint.

    Two descriptors are equal when host, user and port match. Per-host
    options (identity file, etc.) ride along but do not affect identity.
    """

    host: str
    user: str | None = None
    port: int | None = None
    options: dict[str, Any] = field(
        default_factory=dict, compare=False, hash=False, repr=False
    )

    @property
    def address(self) -> str:
        """Network address to dial; an ssh config HostName overrides the alias."""
        return self.options.get("hostname") or self.host

    @property
    def effective_port(self) -> int:
        """Port to dial, falling back to the SSH default."""
        return self.port or DEFAULT_SSH_PORT

    def with_defaults(
        self,
        user: str | None = None,
        port: int | None = None,
        options: dict[str, Any] | None = None,
    ) -> "ServerDescriptor":
        """Return a copy with missing user/port/options filled in."""
        merged = dict(options or {})
        merged.update(self.options)
        return replace(
            self,
            user=self.user or user,
            port=self.port or port,
            options=merged,
        )

    def __str__(self) -> str:
        text = self.host
        if ":" in text:
            text = f"[{text}]"
        if self.user:
            text = f"{self.user}@{text}"
        if self.port:
            text = f"{text}:{self.port}"
        return text


@dataclass
class Session:
    """An open SSH session.

    When the session was opened through a gateway, ``server`` is the loopback
    endpoint actually dialed and ``original_target`` is the real destination.
    ``release`` stops the port forward that endpoint depends on.
    """

    server: ServerDescriptor
    connection: "asyncssh.SSHClientConnection"
    original_target: ServerDescriptor | None = None
    release: Callable[[], None] | None = field(default=None, repr=False)

    @property
    def target(self) -> ServerDescriptor:
        """Logical destination of this session."""
        return self.original_target or self.server

    @property
    def is_closed(self) -> bool:
        """Check if the underlying connection was closed."""
        is_closed = self.connection.is_closed
        # asyncssh exposes is_closed() as a method
        if callable(is_closed):
            is_closed = is_closed()
        return bool(is_closed)

    async def close(self) -> None:
        """Close the connection and wait for it to shut down."""
        try:
            self.connection.close()
            await self.connection.wait_closed()
        finally:
            if self.release is not None:
                release, self.release = self.release, None
                release()


@dataclass
class ConnectFailure:
    """A single server that could not be connected to."""

    server: ServerDescriptor
    error: BaseException

    def describe(self) -> str:
        return f"{self.server} ({type(self.error).__name__}: {self.error})"


@dataclass
class ConnectResult:
    """Outcome of connecting to a batch of servers."""

    succeeded: list[ServerDescriptor] = field(default_factory=list)
    failed: list[ConnectFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failed_servers(self) -> list[ServerDescriptor]:
        return [f.server for f in self.failed]

    def raise_for_failures(self) -> None:
        """Raise ConnectionError if any server failed.

        Raises:
            ConnectionError: Carrying every failed server
        """
        if self.failed:
            from relay_mcp.services.errors import ConnectionError

            raise ConnectionError.from_failures(self.failed)
