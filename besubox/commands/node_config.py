"""
NodeConfigGenerator - renders per-node TOML configuration files.

Rendering depends only on the node, the network and the current bootnode
list, so configs can be regenerated at any time without touching genesis.
"""

import stat
from pathlib import Path
from typing import Any, Optional, Union

import toml
from rich.console import Console

from besubox.commands.constants import (
    CONTAINER_DATA_MOUNT,
    GENESIS_FILE,
    RPC_HTTP_APIS,
)
from besubox.commands.errors import ConfigurationError, ValidationError
from besubox.commands.models import NetworkSpec, NodeSpec, Role

console = Console()


def set_nested_config(config: dict, key: str, value, log: bool = True) -> None:
    """
    Set a configuration value using dot notation.

    Args:
        config: The configuration dictionary to modify
        key: Dot-separated key path (e.g., "bootnodes")
        value: The value to set
        log: Whether to print the change (default True)

    Raises:
        TypeError: If an intermediate key exists but is not a dict
    """
    keys = key.split(".")
    current = config
    for k in keys[:-1]:
        if k not in current:
            current[k] = {}
        elif not isinstance(current[k], dict):
            raise TypeError(f"Cannot set nested key: '{k}' is not a dict")
        current = current[k]

    current[keys[-1]] = value
    if log:
        console.print(f"[cyan]  {key} = {value}[/cyan]")


class NodeConfigGenerator:
    """Builds the TOML config consumed by the node binary."""

    def __init__(self, data_mount: str = CONTAINER_DATA_MOUNT):
        self.data_mount = data_mount

    def build(
        self,
        node: NodeSpec,
        spec: NetworkSpec,
        bootstrap_uris: list[str],
        node_address: Optional[str] = None,
    ) -> dict[str, Any]:
        """Config as an ordered dict; ``render`` serializes it.

        ``node_address`` is the node's own derived account; signer nodes
        name it as their block-reward target.
        """
        config: dict[str, Any] = {
            "genesis-file": f"{self.data_mount}/{GENESIS_FILE}",
            "p2p-host": "0.0.0.0",
            "p2p-port": node.peer_port,
            "p2p-enabled": True,
            "rpc-http-enabled": True,
            "rpc-http-host": "0.0.0.0",
            "rpc-http-port": node.rpc_port,
            "rpc-http-cors-origins": ["*"],
            "rpc-http-api": list(RPC_HTTP_APIS),
            "host-allowlist": ["*"],
            "sync-mode": "FULL",
        }

        if node.role is Role.SIGNER:
            if not node_address:
                raise ValidationError(
                    f"Signer node '{node.name}' needs its derived address",
                    field="node_address",
                )
            config["miner-enabled"] = True
            config["miner-coinbase"] = node_address

        if node.role is not Role.BOOTSTRAP and bootstrap_uris:
            config["bootnodes"] = list(bootstrap_uris)

        return config

    def render(
        self,
        node: NodeSpec,
        spec: NetworkSpec,
        bootstrap_uris: list[str],
        node_address: Optional[str] = None,
    ) -> str:
        """Render the node's config as TOML text."""
        return toml.dumps(self.build(node, spec, bootstrap_uris, node_address))


def rewrite_bootnodes(
    config_file: Union[Path, str],
    node_name: str,
    bootnodes: list[str],
) -> bool:
    """
    Replace the bootnode list of an existing config file in place.

    Args:
        config_file: Path to the config.toml file (Path or str)
        node_name: Name of the node (for logging)
        bootnodes: New list of bootnode enode URIs

    Returns:
        False if the file does not exist, True once rewritten.

    Raises:
        ConfigurationError: If the existing file is not valid TOML.
    """
    path = Path(config_file)
    if not path.exists():
        console.print(f"[yellow]Config file not found: {config_file}[/yellow]")
        return False

    try:
        with open(path, encoding="utf-8") as f:
            config = toml.load(f)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(
            f"Cannot parse config of {node_name}: {e}", config_file=str(path)
        ) from e

    set_nested_config(config, "bootnodes", list(bootnodes), log=False)

    # Ensure file is writable
    path.chmod(path.stat().st_mode | stat.S_IWUSR)

    with open(path, "w", encoding="utf-8") as f:
        toml.dump(config, f)

    console.print(
        f"[green]✓ Updated bootnodes of {node_name} ({len(bootnodes)} nodes)[/green]"
    )
    return True
