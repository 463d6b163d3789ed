"""Tests for the hosts://list resource."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from relay_mcp.config import Config, Settings
from relay_mcp.dependencies import Dependencies
from relay_mcp.models import ServerDescriptor, Session
from relay_mcp.resources import list_hosts_resource
from relay_mcp.services import reset_state, set_dependencies
from relay_mcp.services.context import ExecutionContext
from relay_mcp.services.orchestrator import ExecutionOrchestrator


@pytest.fixture(autouse=True)
def clean_state():
    yield
    reset_state()


def install(tmp_path: Path, content: str) -> Dependencies:
    path = tmp_path / "inventory.yaml"
    path.write_text(content)
    config = Config.from_inventory(
        path, ssh_config_path=tmp_path / "no_ssh_config", settings=Settings()
    )
    factory = MagicMock()
    context = ExecutionContext(factory=factory)
    deps = Dependencies(
        config=config,
        context=context,
        orchestrator=ExecutionOrchestrator(context, config.inventory, config.settings),
    )
    set_dependencies(deps)
    return deps


@pytest.mark.asyncio
async def test_empty_inventory(tmp_path: Path) -> None:
    install(tmp_path, "{}\n")
    assert await list_hosts_resource() == "No servers in inventory."


@pytest.mark.asyncio
async def test_lists_roles_routes_and_status(tmp_path: Path) -> None:
    deps = install(
        tmp_path,
        """
gateway:
  bastion: [db1]
roles:
  web: [web1, web2]
  db: [db1]
tasks:
  restart:
    roles: [web]
""",
    )
    conn = MagicMock()
    conn.is_closed = False
    conn.wait_closed = AsyncMock()
    factory = MagicMock()
    factory.connect_to = AsyncMock(side_effect=lambda s: Session(s, conn))
    await deps.context.sessions.connect(factory, ServerDescriptor("web1"))
    deps.context.failures.mark_failed(ServerDescriptor("web2"))

    result = await list_hosts_resource()

    assert "[✓] web1 (connected)" in result
    assert "[✗] web2 (failed)" in result
    assert "[ ] db1 (idle)" in result
    assert "Route:    bastion" in result
    assert "Roles:    web" in result
    assert "restart: {'roles': ['web']}" in result
    assert "Open sessions: 1" in result
