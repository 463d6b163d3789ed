"""Tests for the SSH transport primitive."""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from relay_mcp.models import ServerDescriptor
from relay_mcp.services.connection import ConnectOptions, connect, open_tunnel


@pytest.fixture
def mock_connect():
    with patch("asyncssh.connect", new_callable=AsyncMock) as mock:
        mock.return_value = MagicMock()
        yield mock


@pytest.mark.asyncio
async def test_connect_maps_descriptor_to_asyncssh(mock_connect: AsyncMock) -> None:
    """User, port and known_hosts are passed through."""
    options = ConnectOptions(known_hosts="/kh", connect_timeout=5.0)
    server = ServerDescriptor("web1", "deploy", 2222)

    conn = await connect(server, options)

    assert conn is mock_connect.return_value
    mock_connect.assert_awaited_once_with(
        "web1",
        port=2222,
        username="deploy",
        known_hosts="/kh",
        client_keys=None,
        connect_timeout=5.0,
    )


@pytest.mark.asyncio
async def test_connect_uses_defaults(mock_connect: AsyncMock) -> None:
    """Default user and port 22 apply when the descriptor has none."""
    options = ConnectOptions(default_user="ops", client_keys=["/id"])

    await connect(ServerDescriptor("web1"), options)

    args, kwargs = mock_connect.call_args
    assert args == ("web1",)
    assert kwargs["port"] == 22
    assert kwargs["username"] == "ops"
    assert kwargs["client_keys"] == ["/id"]
    assert "connect_timeout" not in kwargs


@pytest.mark.asyncio
async def test_connect_prefers_identity_file_and_hostname(mock_connect: AsyncMock) -> None:
    server = ServerDescriptor(
        "web1", options={"hostname": "10.0.0.5", "identity_file": "/web_key"}
    )

    await connect(server, ConnectOptions(client_keys=["/id"]))

    args, kwargs = mock_connect.call_args
    assert args == ("10.0.0.5",)
    assert kwargs["client_keys"] == ["/web_key"]


@pytest.mark.asyncio
async def test_connect_dial_override(mock_connect: AsyncMock) -> None:
    """An explicit host/port replaces the descriptor's address."""
    server = ServerDescriptor("web1", "deploy", options={"hostname": "10.0.0.5"})

    await connect(server, ConnectOptions(), host="127.0.0.1", port=40001)

    args, kwargs = mock_connect.call_args
    assert args == ("127.0.0.1",)
    assert kwargs["port"] == 40001
    assert kwargs["username"] == "deploy"


@pytest.mark.asyncio
async def test_strict_mode_reraises_host_key_error(mock_connect: AsyncMock) -> None:
    mock_connect.side_effect = asyncssh.HostKeyNotVerifiable("unknown key")

    with pytest.raises(asyncssh.HostKeyNotVerifiable):
        await connect(ServerDescriptor("web1"), ConnectOptions(known_hosts="/kh"))

    assert mock_connect.await_count == 1


@pytest.mark.asyncio
async def test_lax_mode_retries_without_verification(mock_connect: AsyncMock) -> None:
    conn = MagicMock()
    mock_connect.side_effect = [asyncssh.HostKeyNotVerifiable("unknown key"), conn]
    options = ConnectOptions(known_hosts="/kh", strict_host_key_checking=False)

    result = await connect(ServerDescriptor("web1"), options)

    assert result is conn
    assert mock_connect.await_count == 2
    assert mock_connect.call_args.kwargs["known_hosts"] is None


@pytest.mark.asyncio
async def test_connection_errors_propagate(mock_connect: AsyncMock) -> None:
    mock_connect.side_effect = OSError("Connection refused")

    with pytest.raises(OSError, match="refused"):
        await connect(ServerDescriptor("web1"), ConnectOptions())


@pytest.mark.asyncio
async def test_open_tunnel_dials_gateway(mock_connect: AsyncMock) -> None:
    conn = await open_tunnel(ServerDescriptor("bastion"), ConnectOptions())

    assert conn is mock_connect.return_value
    assert mock_connect.call_args.args == ("bastion",)


@pytest.mark.asyncio
async def test_loopback_dial_verifies_real_target_key(mock_connect: AsyncMock) -> None:
    """A forwarded dial checks known_hosts against the target, not 127.0.0.1."""
    server = ServerDescriptor("web1", options={"hostname": "10.0.0.5"})

    await connect(
        server,
        ConnectOptions(known_hosts="/kh"),
        host="127.0.0.1",
        port=40001,
        host_key_alias="10.0.0.5",
    )

    args, kwargs = mock_connect.call_args
    assert args == ("127.0.0.1",)
    assert kwargs["host_key_alias"] == "10.0.0.5"
    assert kwargs["known_hosts"] == "/kh"


@pytest.mark.asyncio
async def test_direct_dial_has_no_alias(mock_connect: AsyncMock) -> None:
    await connect(ServerDescriptor("web1"), ConnectOptions())
    assert "host_key_alias" not in mock_connect.call_args.kwargs


@pytest.mark.asyncio
async def test_open_tunnel_passes_alias(mock_connect: AsyncMock) -> None:
    await open_tunnel(
        ServerDescriptor("g1"),
        ConnectOptions(),
        host="127.0.0.1",
        port=40002,
        host_key_alias="g1",
    )

    assert mock_connect.call_args.kwargs["host_key_alias"] == "g1"
