"""Tests for HostKeyVerifier."""

from pathlib import Path

import pytest

from relay_mcp.config.host_keys import HostKeyVerifier


def test_verifier_uses_default_known_hosts_path(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifier defaults to ~/.ssh/known_hosts."""
    monkeypatch.setenv("HOME", str(tmp_path))
    known_hosts = tmp_path / ".ssh" / "known_hosts"
    known_hosts.parent.mkdir()
    known_hosts.touch()

    verifier = HostKeyVerifier()

    assert verifier.get_known_hosts_path() == str(known_hosts)
    assert verifier.is_enabled()


def test_verifier_uses_custom_path(tmp_path: Path) -> None:
    custom = tmp_path / "my_known_hosts"
    custom.touch()

    verifier = HostKeyVerifier(known_hosts_path=str(custom))
    assert verifier.get_known_hosts_path() == str(custom)


@pytest.mark.parametrize("value", ["none", "NONE", " None "])
def test_verifier_disabled_with_none(value: str) -> None:
    verifier = HostKeyVerifier(known_hosts_path=value)
    assert verifier.get_known_hosts_path() is None
    assert not verifier.is_enabled()


def test_verifier_raises_on_missing_file_strict_mode(tmp_path: Path) -> None:
    """Fails closed when strict and the file is missing."""
    missing = tmp_path / "nonexistent"
    with pytest.raises(FileNotFoundError, match="known_hosts not found"):
        HostKeyVerifier(known_hosts_path=str(missing), strict_checking=True)


def test_verifier_allows_missing_file_non_strict(tmp_path: Path) -> None:
    missing = tmp_path / "nonexistent"
    verifier = HostKeyVerifier(known_hosts_path=str(missing), strict_checking=False)
    assert verifier.get_known_hosts_path() is None
    assert not verifier.strict_checking
