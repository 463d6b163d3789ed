"""Tests for the connect and disconnect tools."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from relay_mcp.config import Config, Settings
from relay_mcp.dependencies import Dependencies
from relay_mcp.models import ServerDescriptor, Session
from relay_mcp.services import reset_state, set_dependencies
from relay_mcp.services.context import ExecutionContext
from relay_mcp.services.orchestrator import ExecutionOrchestrator
from relay_mcp.tools import connect, disconnect


class FakeFactory:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()

    async def connect_to(self, server: ServerDescriptor) -> Session:
        await asyncio.sleep(0)
        if server.host in self.failing:
            raise OSError("Connection refused")
        conn = MagicMock()
        conn.is_closed = False
        conn.wait_closed = AsyncMock()
        return Session(server=server, connection=conn)

    async def close(self) -> None:
        pass


@pytest.fixture
def inventory_file(tmp_path: Path) -> Path:
    path = tmp_path / "inventory.yaml"
    path.write_text(
        """
roles:
  web: [web1, web2, web3]
  db: [db1]
tasks:
  restart:
    roles: [web]
  tolerant:
    roles: [web]
    continue_on_error: true
"""
    )
    return path


def install(inventory_file: Path, factory: FakeFactory) -> Dependencies:
    config = Config.from_inventory(
        inventory_file,
        ssh_config_path=inventory_file.parent / "no_ssh_config",
        settings=Settings(),
    )
    context = ExecutionContext(factory=factory)
    orchestrator = ExecutionOrchestrator(context, config.inventory, config.settings)
    deps = Dependencies(config=config, context=context, orchestrator=orchestrator)
    set_dependencies(deps)
    return deps


@pytest.fixture(autouse=True)
def clean_state():
    yield
    reset_state()


@pytest.mark.asyncio
async def test_connect_task(inventory_file: Path) -> None:
    deps = install(inventory_file, FakeFactory())

    result = await connect(task="restart")

    assert "Connected to 3 server(s)" in result
    assert "web1" in result
    assert "Open sessions: 3" in result
    assert deps.context.sessions.size == 3


@pytest.mark.asyncio
async def test_connect_roles_and_hosts(inventory_file: Path) -> None:
    deps = install(inventory_file, FakeFactory())

    await connect(roles=["db"])
    await connect(hosts=["deploy@adhoc:2222"])

    assert deps.context.sessions.active_servers == [
        ServerDescriptor("db1"),
        ServerDescriptor("adhoc", "deploy", 2222),
    ]


@pytest.mark.asyncio
async def test_connect_unknown_task(inventory_file: Path) -> None:
    install(inventory_file, FakeFactory())
    assert await connect(task="nope") == "Error: Unknown task: nope"


@pytest.mark.asyncio
async def test_connect_no_matching_servers(inventory_file: Path) -> None:
    install(inventory_file, FakeFactory())
    result = await connect(roles=["cache"])
    assert result.startswith("Error: no servers found")


@pytest.mark.asyncio
async def test_connect_invalid_max_hosts(inventory_file: Path) -> None:
    install(inventory_file, FakeFactory())
    assert "max_hosts must be > 0" in await connect(task="restart", max_hosts=0)


@pytest.mark.asyncio
async def test_connect_failure_reports_error(inventory_file: Path) -> None:
    deps = install(inventory_file, FakeFactory(failing={"web2"}))

    result = await connect(task="restart")

    assert result.startswith(
        "Error: connection failed for: web2 (OSError: Connection refused)"
    )
    failed_section = result.split("Failed")[1]
    assert "web2" in failed_section
    assert "web1" not in failed_section
    assert "Open sessions: 2" in result
    assert deps.context.sessions.size == 2


@pytest.mark.asyncio
async def test_connect_tolerant_reports_failed(inventory_file: Path) -> None:
    install(inventory_file, FakeFactory(failing={"web2"}))

    result = await connect(task="tolerant")

    assert "Connected to 2 server(s)" in result
    assert "Failed" in result
    assert "web2" in result.split("Failed")[1]


@pytest.mark.asyncio
async def test_disconnect_selected_and_all(inventory_file: Path) -> None:
    deps = install(inventory_file, FakeFactory())
    await connect(task="restart")

    result = await disconnect(hosts=["web1"])
    assert "Closed 1 session(s)" in result
    assert ServerDescriptor("web1") not in deps.context.sessions

    result = await disconnect()
    assert "Closed 2 session(s)" in result
    assert deps.context.sessions.size == 0

    assert await disconnect() == "No open sessions to close."


@pytest.mark.asyncio
async def test_disconnect_reports_close_failures(inventory_file: Path) -> None:
    deps = install(inventory_file, FakeFactory())
    await connect(task="restart")
    session = deps.context.sessions.get(ServerDescriptor("web1"))
    session.connection.wait_closed.side_effect = RuntimeError("close hung up")

    result = await disconnect()

    assert result.startswith(
        "Error: teardown failed for: web1 (RuntimeError: close hung up)"
    )
    assert "web1" in result.split("Failed")[1]
    assert "Open sessions: 0" in result
