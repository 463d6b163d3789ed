"""Tests for the YAML inventory."""

from pathlib import Path

import pytest

from relay_mcp.config import Inventory, SSHConfigParser
from relay_mcp.models import (
    ExecuteOptions,
    MultiGateway,
    NoGateway,
    ServerDescriptor,
    SingleChain,
    Task,
)

INVENTORY = """
user: deploy
gateway:
  bastion-a: [web1, web2]
  "bastion-b,inner-b": [db1]
roles:
  web:
    - web1
    - ops@web2:2222
  app:
    - web1
    - app1
  db:
    - host: db1
      port: 2200
      identity_file: ~/.ssh/db_key
tasks:
  restart:
    roles: [web]
    max_hosts: 1
    continue_on_error: true
  backup:
    hosts: [db1, standalone]
  everything: {}
"""


@pytest.fixture
def inventory_file(tmp_path: Path) -> Path:
    path = tmp_path / "inventory.yaml"
    path.write_text(INVENTORY)
    return path


@pytest.fixture
def inventory(inventory_file: Path) -> Inventory:
    return Inventory.load(inventory_file)


def test_load_parses_roles_and_tasks(inventory: Inventory, inventory_file: Path) -> None:
    assert inventory.source_path == inventory_file.resolve()
    assert inventory.default_user == "deploy"
    assert inventory.roles["web"] == [
        ServerDescriptor("web1"),
        ServerDescriptor("web2", "ops", 2222),
    ]
    db1 = inventory.roles["db"][0]
    assert db1 == ServerDescriptor("db1", port=2200)
    assert db1.options["identity_file"].endswith(".ssh/db_key")

    restart = inventory.get_task("restart")
    assert restart == Task(
        "restart", roles=("web",), max_hosts=1, continue_on_error=True
    )


def test_load_resolves_gateway(inventory: Inventory) -> None:
    assert isinstance(inventory.gateway, MultiGateway)
    first, second = inventory.gateway.routes
    assert first.hosts == ("web1", "web2")
    assert [h.host for h in second.chain] == ["bastion-b", "inner-b"]


def test_servers_unique_in_role_order(inventory: Inventory) -> None:
    assert [str(s) for s in inventory.servers] == [
        "web1",
        "ops@web2:2222",
        "app1",
        "db1:2200",
    ]
    assert inventory.roles_for(ServerDescriptor("web1")) == ["web", "app"]


def test_unknown_task(inventory: Inventory) -> None:
    with pytest.raises(KeyError, match="Unknown task: nope"):
        inventory.get_task("nope")


def test_find_servers_for_task_applies_default_user(inventory: Inventory) -> None:
    servers = inventory.find_servers_for_task(inventory.get_task("restart"))

    assert servers == [
        ServerDescriptor("web1", "deploy"),
        ServerDescriptor("web2", "ops", 2222),
    ]


def test_task_hosts_outside_roles_included(inventory: Inventory) -> None:
    servers = inventory.find_servers_for_task(inventory.get_task("backup"))
    assert [s.host for s in servers] == ["db1", "standalone"]


def test_empty_scope_matches_all(inventory: Inventory) -> None:
    servers = inventory.find_servers_for_task(inventory.get_task("everything"))
    assert len(servers) == 4


def test_options_override_task_scope(inventory: Inventory) -> None:
    servers = inventory.find_servers_for_task(
        inventory.get_task("restart"), ExecuteOptions(roles=["db"])
    )
    assert [s.host for s in servers] == ["db1"]


def test_host_filter(inventory: Inventory) -> None:
    servers = inventory.find_servers(host_filter=["web1", "app1"])
    assert [s.host for s in servers] == ["web1", "app1"]


def test_find_servers_by_host_uses_inventory_entry(inventory: Inventory) -> None:
    servers = inventory.find_servers(ExecuteOptions(hosts=["web2", "new@other:2022"]))
    assert servers == [
        ServerDescriptor("web2", "ops", 2222),
        ServerDescriptor("other", "new", 2022),
    ]


def test_unknown_role_yields_nothing(inventory: Inventory) -> None:
    assert inventory.find_servers(roles=["cache"]) == []


def test_ssh_config_applied_on_resolve(tmp_path: Path) -> None:
    config = tmp_path / "ssh_config"
    config.write_text("Host web1\n  HostName 10.1.1.1\n  User admin\n  Port 2022\n")
    inventory = Inventory.from_dict(
        {"roles": {"web": ["web1"]}}, ssh_config=SSHConfigParser(config)
    )

    (server,) = inventory.find_servers()

    assert server == ServerDescriptor("web1", "admin", 2022)
    assert server.address == "10.1.1.1"


def test_empty_inventory() -> None:
    inventory = Inventory.from_dict({})
    assert inventory.servers == []
    assert isinstance(inventory.gateway, NoGateway)


def test_single_gateway_string() -> None:
    inventory = Inventory.from_dict({"gateway": "bastion"})
    assert inventory.gateway == SingleChain(hops=(ServerDescriptor("bastion"),))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Inventory.load(tmp_path / "nope.yaml")


def test_non_mapping_file(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- web1\n- web2\n")
    with pytest.raises(ValueError, match="must be a mapping"):
        Inventory.load(path)


def test_bad_role_entry() -> None:
    with pytest.raises(ValueError, match="must be a string or have a 'host' field"):
        Inventory.from_dict({"roles": {"web": [{"port": 22}]}})


def test_gateway_hops_get_inventory_user(inventory: Inventory) -> None:
    spec = inventory.resolve_gateway(inventory.gateway)

    assert isinstance(spec, MultiGateway)
    assert [[str(h) for h in r.chain] for r in spec.routes] == [
        ["deploy@bastion-a"],
        ["deploy@bastion-b", "deploy@inner-b"],
    ]


def test_gateway_hops_use_ssh_config(tmp_path: Path) -> None:
    config = tmp_path / "ssh_config"
    config.write_text(
        "Host bastion\n  HostName 203.0.113.7\n  User jump\n  Port 2022\n"
        "  IdentityFile /keys/jump\n"
    )
    inventory = Inventory.from_dict(
        {"user": "deploy", "gateway": "bastion"}, ssh_config=SSHConfigParser(config)
    )

    spec = inventory.resolve_gateway(inventory.gateway)

    assert isinstance(spec, SingleChain)
    (hop,) = spec.hops
    assert hop == ServerDescriptor("bastion", "jump", 2022)
    assert hop.address == "203.0.113.7"
    assert hop.options["identity_file"] == "/keys/jump"
