"""Per-context SSH session registry and failure tracking.

Locking Strategy:
- `_meta_lock`: Protects the _sessions, _server_locks and _lock_users dicts
- Per-server locks: Serialize connect/teardown for one server; dropped when
  unused and the server has no session
- Lock acquisition order: Always per-server lock first, then meta-lock if needed

Connects to different servers only contend on the meta-lock for dict
updates, never across a dial, so a batch of servers connects in parallel.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import asyncssh

from relay_mcp.models import ServerDescriptor, Session
from relay_mcp.protocols import ConnectionFactory
from relay_mcp.services.errors import TeardownError

logger = logging.getLogger(__name__)

# Errors raised when closing a connection whose TCP link is already gone
DEAD_CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncssh.DisconnectError,
)


class SessionRegistry:
    """Maps servers to their open session within one execution context.

    At most one live session exists per server; connecting to a server that
    already has one returns it without dialing again.
    """

    def __init__(self) -> None:
        self._sessions: dict[ServerDescriptor, Session] = {}
        self._server_locks: dict[ServerDescriptor, asyncio.Lock] = {}
        self._lock_users: dict[ServerDescriptor, int] = {}
        self._meta_lock = asyncio.Lock()

    @asynccontextmanager
    async def _server_lock(self, server: ServerDescriptor) -> AsyncIterator[None]:
        """Hold the lock for one server.

        The lock is dropped once nobody holds or waits for it and the server
        has no session, so the lock table does not outgrow the registry.
        """
        async with self._meta_lock:
            lock = self._server_locks.setdefault(server, asyncio.Lock())
            self._lock_users[server] = self._lock_users.get(server, 0) + 1
        try:
            async with lock:
                yield
        finally:
            async with self._meta_lock:
                self._lock_users[server] -= 1
                if not self._lock_users[server]:
                    del self._lock_users[server]
                    if server not in self._sessions:
                        del self._server_locks[server]

    async def connect(
        self,
        factory: ConnectionFactory,
        server: ServerDescriptor,
    ) -> Session:
        """Return the open session for a server, dialing if needed.

        Args:
            factory: Factory used when no live session exists
            server: Server to connect to

        Returns:
            Existing or newly opened session

        Raises:
            Exception: Whatever the factory raises when the dial fails
        """
        async with self._server_lock(server):
            session = self._sessions.get(server)

            if session is not None and not session.is_closed:
                logger.debug(
                    "Reusing existing session to %s (sessions=%d)",
                    server,
                    len(self._sessions),
                )
                return session

            if session is not None:
                logger.info("Session to %s is stale, creating new session", server)
                async with self._meta_lock:
                    self._sessions.pop(server, None)
                try:
                    await session.close()
                except DEAD_CONNECTION_ERRORS as e:
                    logger.debug("Stale session to %s did not close cleanly: %s", server, e)

            logger.info("Opening SSH session to %s", server)
            # Network I/O happens here - only blocks same server, not all servers
            session = await factory.connect_to(server)

            async with self._meta_lock:
                self._sessions[server] = session

            logger.info(
                "SSH session established to %s (sessions=%d)",
                server,
                len(self._sessions),
            )
            return session

    def get(self, server: ServerDescriptor) -> Session | None:
        """Return the session for a server without connecting."""
        return self._sessions.get(server)

    async def teardown(self, servers: Iterable[ServerDescriptor]) -> None:
        """Remove and close the sessions for the given servers.

        Close failures from a connection that is already dead are ignored.
        Any other failure does not stop the remaining servers from being torn
        down; all such failures are raised together afterwards.

        Raises:
            TeardownError: If any session failed to close for another reason
        """
        failed: list[ServerDescriptor] = []
        errors: list[BaseException] = []

        for server in list(servers):
            async with self._server_lock(server):
                async with self._meta_lock:
                    session = self._sessions.pop(server, None)
                if session is None:
                    logger.debug("No session to close for %s", server)
                    continue

                logger.info(
                    "Closing session to %s (sessions=%d)",
                    server,
                    len(self._sessions),
                )
                try:
                    await session.close()
                except DEAD_CONNECTION_ERRORS as e:
                    # the TCP connection is already dead
                    logger.debug("Session to %s was already closed: %s", server, e)
                except Exception as e:
                    logger.error("Failed to close session to %s: %s", server, e)
                    failed.append(server)
                    errors.append(e)

        if errors:
            details = ", ".join(
                f"{s} ({type(e).__name__}: {e})" for s, e in zip(failed, errors)
            )
            raise TeardownError(
                f"teardown failed for: {details}",
                hosts=failed,
                errors=errors,
            )

    async def close_all(self) -> None:
        """Close every session in the registry."""
        servers = self.active_servers
        if servers:
            logger.info("Closing all %d session(s)", len(servers))
            await self.teardown(servers)

    @property
    def size(self) -> int:
        """Return the current number of sessions."""
        return len(self._sessions)

    @property
    def active_servers(self) -> list[ServerDescriptor]:
        """Return servers with a session in the registry."""
        return list(self._sessions.keys())

    def __contains__(self, server: object) -> bool:
        return server in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class FailureTracker:
    """Servers that failed during one execution context.

    Once marked, a server stays failed until the context ends.
    """

    def __init__(self) -> None:
        self._failed: dict[ServerDescriptor, None] = {}

    def mark_failed(self, server: ServerDescriptor) -> None:
        if server not in self._failed:
            logger.warning("Marking %s as failed", server)
        self._failed[server] = None

    def has_failed(self, server: ServerDescriptor) -> bool:
        return server in self._failed

    @property
    def failed(self) -> list[ServerDescriptor]:
        """Failed servers in the order they were marked."""
        return list(self._failed)

    def __contains__(self, server: object) -> bool:
        return server in self._failed

    def __len__(self) -> int:
        return len(self._failed)
