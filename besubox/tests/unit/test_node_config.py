from pathlib import Path

import pytest
import toml

from besubox.commands.errors import ConfigurationError, ValidationError
from besubox.commands.node_config import (
    NodeConfigGenerator,
    rewrite_bootnodes,
    set_nested_config,
)

BOOTNODE_ENODE = "enode://" + "ab" * 64 + "@10.0.0.10:30303"
NODE_ADDRESS = "0x" + "d" * 40


def test_signer_config(scenario_spec, scenario_nodes):
    text = NodeConfigGenerator().render(scenario_nodes[1], scenario_spec, [BOOTNODE_ENODE], NODE_ADDRESS)
    config = toml.loads(text)

    assert config["genesis-file"] == "/data/genesis.json"
    assert config["rpc-http-port"] == 8546
    assert config["p2p-port"] == 30303
    assert config["miner-enabled"] is True
    assert config["miner-coinbase"] == NODE_ADDRESS
    assert config["miner-coinbase"] != scenario_spec.signer_accounts[0].address
    assert config["bootnodes"] == [BOOTNODE_ENODE]
    assert "ETH" in config["rpc-http-api"]


def test_bootnode_never_lists_bootnodes(scenario_spec, scenario_nodes):
    config = NodeConfigGenerator().build(scenario_nodes[0], scenario_spec, [BOOTNODE_ENODE])
    assert "bootnodes" not in config
    assert "miner-enabled" not in config


def test_signer_requires_node_address(scenario_spec, scenario_nodes):
    with pytest.raises(ValidationError) as exc:
        NodeConfigGenerator().build(scenario_nodes[1], scenario_spec, [])
    assert exc.value.field == "node_address"


def test_render_is_pure(scenario_spec, scenario_nodes):
    generator = NodeConfigGenerator()
    first = generator.render(scenario_nodes[1], scenario_spec, [BOOTNODE_ENODE], NODE_ADDRESS)
    second = generator.render(scenario_nodes[1], scenario_spec, [BOOTNODE_ENODE], NODE_ADDRESS)
    assert first == second


def test_set_nested_config():
    config = {"a": 1}
    set_nested_config(config, "b.c", 2, log=False)
    assert config == {"a": 1, "b": {"c": 2}}
    with pytest.raises(TypeError):
        set_nested_config(config, "a.b", 3, log=False)


def test_rewrite_bootnodes(tmp_path, scenario_spec, scenario_nodes):
    path = tmp_path / "miner1" / "config.toml"
    path.parent.mkdir(parents=True)
    path.write_text(
        NodeConfigGenerator().render(scenario_nodes[1], scenario_spec, [BOOTNODE_ENODE], NODE_ADDRESS)
    )
    moved = BOOTNODE_ENODE.replace("10.0.0.10", "10.0.0.99")

    assert rewrite_bootnodes(path, "miner1", [moved]) is True
    config = toml.loads(path.read_text())
    assert config["bootnodes"] == [moved]
    assert config["miner-coinbase"] == NODE_ADDRESS


def test_rewrite_bootnodes_missing_file(tmp_path):
    assert rewrite_bootnodes(Path(tmp_path) / "absent.toml", "miner1", []) is False


def test_rewrite_bootnodes_invalid_toml(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('key = "unterminated')
    with pytest.raises(ConfigurationError):
        rewrite_bootnodes(path, "miner1", [])
