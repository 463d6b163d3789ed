"""Tests for server lifespan."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relay_mcp.config import Config, Settings
from relay_mcp.dependencies import Dependencies
from relay_mcp.models import ServerDescriptor, Session
from relay_mcp.services import get_dependencies, reset_state


@pytest.fixture(autouse=True)
def clean_state():
    yield
    reset_state()


@pytest.fixture
def deps(tmp_path: Path) -> Dependencies:
    inventory = tmp_path / "inventory.yaml"
    inventory.write_text(
        """
roles:
  web: [web1, deploy@web2]
tasks:
  restart:
    roles: [web]
"""
    )
    config = Config.from_inventory(
        inventory, ssh_config_path=tmp_path / "no_ssh_config", settings=Settings()
    )
    return Dependencies.from_config(config)


@pytest.mark.asyncio
async def test_lifespan_yields_inventory_hosts(deps: Dependencies) -> None:
    from relay_mcp.server import app_lifespan

    server = MagicMock()
    with patch("relay_mcp.server.Dependencies.create", return_value=deps):
        async with app_lifespan(server) as result:
            assert result == {"hosts": ["web1", "deploy@web2"]}
            assert server.deps is deps
            assert get_dependencies() is deps


@pytest.mark.asyncio
async def test_lifespan_closes_sessions_on_shutdown(deps: Dependencies) -> None:
    from relay_mcp.server import app_lifespan

    conn = MagicMock()
    conn.is_closed = False
    conn.wait_closed = AsyncMock()
    factory = MagicMock()
    factory.connect_to = AsyncMock(side_effect=lambda s: Session(s, conn))
    factory.close = AsyncMock()

    with patch("relay_mcp.server.Dependencies.create", return_value=deps):
        async with app_lifespan(MagicMock()):
            await deps.context.sessions.connect(factory, ServerDescriptor("web1"))
            assert deps.context.sessions.size == 1

    assert deps.context.sessions.size == 0
    conn.close.assert_called_once()
