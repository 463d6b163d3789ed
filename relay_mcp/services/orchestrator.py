"""Batch execution across servers.

``execute_on_servers`` resolves the servers a task applies to, then walks
them in slices of at most ``max_hosts``:

    connect slice (in parallel) -> callback(slice) -> teardown slice

Slices run strictly one after another. When the slice is smaller than the
full server list, its sessions are torn down before the next slice
connects, so no more than ``max_hosts`` sessions are ever open at once.
Tasks with ``continue_on_error`` drop hosts that fail to connect or
execute, record them in the context's FailureTracker, and carry on.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from relay_mcp.models import (
    ConnectFailure,
    ConnectResult,
    ExecuteOptions,
    ServerDescriptor,
    Session,
    Task,
)
from relay_mcp.protocols import ExecutionCallback
from relay_mcp.services.context import ExecutionContext
from relay_mcp.services.errors import (
    ConnectionError,
    NoMatchingServersError,
    RemoteError,
)

if TYPE_CHECKING:
    from relay_mcp.config.inventory import Inventory
    from relay_mcp.config.settings import Settings

logger = logging.getLogger(__name__)


def slices(
    servers: list[ServerDescriptor], size: int
) -> Iterator[list[ServerDescriptor]]:
    """Yield consecutive slices of at most ``size`` servers, in order."""
    if size <= 0:
        raise ValueError(f"max_hosts must be > 0, got {size}")
    for start in range(0, len(servers), size):
        yield servers[start : start + size]


class ExecutionOrchestrator:
    """Filters, connects and batches servers for task execution."""

    def __init__(
        self,
        context: ExecutionContext,
        inventory: "Inventory",
        settings: "Settings | None" = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            context: Session and failure state for this execution
            inventory: Resolves the servers in scope for a task
            settings: Environment overrides (dry run, host filter, ...)
        """
        if settings is None:
            from relay_mcp.config.settings import Settings

            settings = Settings()
        self.context = context
        self.inventory = inventory
        self.settings = settings

    @property
    def dry_run(self) -> bool:
        return self.settings.dry_run

    def filter_servers(
        self,
        task: Task | None,
        options: ExecuteOptions | None = None,
    ) -> tuple[Task | None, list[ServerDescriptor]]:
        """Determine the servers within a task's scope.

        Args:
            task: Task to resolve servers for, or None to select servers
                purely from the options
            options: Per-call options

        Returns:
            The task and its servers

        Raises:
            NoMatchingServersError: If nothing matched and neither dry-run
                nor a continue policy applies
        """
        options = options or ExecuteOptions()
        overrides = {
            "hosts": self.settings.hosts or None,
            "roles": self.settings.roles or None,
            "host_filter": self.settings.host_filter or None,
        }

        if task is not None:
            servers = self.inventory.find_servers_for_task(task, options, **overrides)

            if not servers:
                if self.settings.permissive_filter or options.continue_on_no_match(task):
                    logger.info(
                        "Skipping `%s' because no servers matched",
                        task.fully_qualified_name,
                    )
                elif not self.dry_run:
                    raise NoMatchingServersError(
                        f"`{task.fully_qualified_name}' is only run for servers "
                        f"matching {task.scope()}, but no servers matched"
                    )

            if task.continue_on_error:
                servers = [s for s in servers if not self.context.failures.has_failed(s)]
        else:
            servers = self.inventory.find_servers(options, **overrides)
            if not servers and not self.dry_run and not options.continue_on_no_match():
                raise NoMatchingServersError(
                    f"no servers found to match roles={options.roles} hosts={options.hosts}"
                )

        if options.once or (task is not None and task.once):
            servers = servers[:1]

        return task, servers

    async def execute_on_servers(
        self,
        task: Task | None,
        options: ExecuteOptions | None,
        callback: ExecutionCallback | None,
    ) -> list[ServerDescriptor]:
        """Connect to a task's servers in batches and run a callback on each.

        Args:
            task: Task whose scope selects the servers
            options: Per-call options (max_hosts, once, ...)
            callback: Awaited once per batch with that batch's servers

        Returns:
            Servers the callback was invoked with, across all batches

        Raises:
            TypeError: If no callback is given
            NoMatchingServersError: See ``filter_servers``
            ConnectionError: If connecting failed and the task is not tolerant
            RemoteError: If the callback failed and the task is not tolerant
        """
        if callback is None:
            raise TypeError("execute_on_servers expected a callback")

        options = options or ExecuteOptions()
        task, servers = self.filter_servers(task, options)
        if not servers:
            return []

        logger.debug("servers: %s", [s.host for s in servers])

        max_hosts = (
            options.max_hosts
            or (task.max_hosts if task is not None else None)
            or self.settings.max_hosts
            or len(servers)
        )
        is_partial = max_hosts < len(servers)
        tolerant = task is not None and task.continue_on_error
        processed: list[ServerDescriptor] = []

        if is_partial:
            logger.info(
                "Processing %d server(s) in batches of %d",
                len(servers),
                max_hosts,
            )

        for batch in slices(servers, max_hosts):
            result = await self.connect_all(batch)
            if not result.ok:
                if not (tolerant or self.dry_run):
                    result.raise_for_failures()
                error = ConnectionError.from_failures(result.failed)
                logger.warning("Continuing without failed host(s): %s", error)
                batch = [s for s in batch if s not in result.failed_servers]
                if tolerant:
                    for server in error.hosts:
                        self.context.failures.mark_failed(server)

            if batch:
                try:
                    await callback(batch)
                except RemoteError as error:
                    if not tolerant:
                        raise
                    logger.warning("Execution failed on %d host(s): %s", len(error.hosts), error)
                    for server in error.hosts:
                        self.context.failures.mark_failed(server)
                processed.extend(batch)
            else:
                logger.warning("No reachable servers left in batch, skipping callback")

            # A subset is open; close it to make room for the next one
            if is_partial:
                await self.teardown_connections_to(batch)

        return processed

    async def connect_all(self, servers: Iterable[ServerDescriptor]) -> ConnectResult:
        """Connect to every server in parallel and report each outcome.

        The connection factory is built before any connect starts, so
        gateway tunnels are opened exactly once. A failed connect never
        cancels the others; every attempt runs to completion.
        """
        servers = list(servers)
        factory = await self.context.connection_factory()

        outcomes = await asyncio.gather(
            *(self.context.sessions.connect(factory, server) for server in servers),
            return_exceptions=True,
        )

        result = ConnectResult()
        for server, outcome in zip(servers, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Connection to %s failed: %s", server, outcome)
                result.failed.append(ConnectFailure(server=server, error=outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.succeeded.append(server)
        return result

    async def establish_connections_to(self, servers: Iterable[ServerDescriptor]) -> None:
        """Ensure there is an open session for each server.

        Raises:
            ConnectionError: Listing every server that failed to connect
        """
        result = await self.connect_all(servers)
        result.raise_for_failures()

    async def teardown_connections_to(self, servers: Iterable[ServerDescriptor]) -> None:
        """Close the sessions for the given servers."""
        await self.context.sessions.teardown(servers)

    async def connect(
        self,
        task: Task | None = None,
        options: ExecuteOptions | None = None,
    ) -> list[ServerDescriptor]:
        """Force connections open for a task's servers.

        Connections are normally opened lazily; use this before an
        operation that should not pay connection setup time.
        """

        async def _noop(batch: list[ServerDescriptor]) -> None:
            return None

        return await self.execute_on_servers(task, options, _noop)

    def session_for(self, server: ServerDescriptor) -> Session | None:
        return self.context.sessions.get(server)
