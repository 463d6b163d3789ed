"""Tests for environment settings."""

import pytest

from relay_mcp.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ["RELAY_INVENTORY", "RELAY_MAX_HOSTS", "RELAY_TRANSPORT", "RELAY_DRY_RUN"]:
        monkeypatch.delenv(key, raising=False)

    settings = Settings.from_env()

    assert settings.inventory_path is None
    assert settings.max_hosts is None
    assert settings.dry_run is False
    assert settings.transport == "http"
    assert settings.strict_host_key_checking is True
    assert not settings.permissive_filter


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_INVENTORY", "/etc/relay/hosts.yaml")
    monkeypatch.setenv("RELAY_GATEWAY", "bastion")
    monkeypatch.setenv("RELAY_MAX_HOSTS", "4")
    monkeypatch.setenv("RELAY_DRY_RUN", "true")
    monkeypatch.setenv("RELAY_HOSTS", "web1, web2")
    monkeypatch.setenv("RELAY_ROLES", "web")
    monkeypatch.setenv("RELAY_HOSTFILTER", "web1")
    monkeypatch.setenv("RELAY_CONNECT_TIMEOUT", "5")
    monkeypatch.setenv("RELAY_TRANSPORT", "STDIO")
    monkeypatch.setenv("RELAY_STRICT_HOST_KEY_CHECKING", "false")

    settings = Settings.from_env()

    assert settings.inventory_path == "/etc/relay/hosts.yaml"
    assert settings.gateway == "bastion"
    assert settings.max_hosts == 4
    assert settings.dry_run is True
    assert settings.hosts == ["web1", "web2"]
    assert settings.roles == ["web"]
    assert settings.host_filter == ["web1"]
    assert settings.permissive_filter
    assert settings.connect_timeout == 5.0
    assert settings.transport == "stdio"
    assert settings.strict_host_key_checking is False


@pytest.mark.parametrize("value", ["0", "-3", "lots"])
def test_invalid_max_hosts_ignored(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("RELAY_MAX_HOSTS", value)
    assert Settings.from_env().max_hosts is None


def test_invalid_transport_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_TRANSPORT", "carrier-pigeon")
    assert Settings.from_env().transport == "http"
