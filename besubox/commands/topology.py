"""
Topology files and builders.

A topology file is YAML or JSON with a ``network`` mapping and a ``nodes``
list; ``initial_balance`` (ether) optionally sets the block producer's
genesis balance. The builders turn role counts into node lists, numbering
hosts from ``.20`` inside the subnet.
"""

import ipaddress
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from rich.console import Console

from besubox.commands.constants import DEFAULT_BLOCK_TIME, DEFAULT_RPC_PORT
from besubox.commands.errors import ConfigurationError
from besubox.commands.models import ConsensusKind, NetworkSpec, NodeSpec, Role

console = Console()

FIRST_HOST = 20
SIGNER_PORT_BASE = DEFAULT_RPC_PORT + 1
SIGNER_PORT_STEP = 2
QUERY_PORT_BASE = 8570
RELAY_PORT_BASE = 8590


@dataclass
class Topology:
    spec: NetworkSpec
    nodes: list[NodeSpec]
    initial_balance: Optional[str] = None


def read_document(path: Union[str, Path]) -> Any:
    """Parse a YAML or JSON file.

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as file:
            if path.suffix.lower() == ".json":
                return json.load(file)
            return yaml.safe_load(file)
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Topology file not found: {path}", config_file=str(path)
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON format: {e}", config_file=str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML format: {e}", config_file=str(path)) from e


def load_topology_file(path: Union[str, Path]) -> Topology:
    """Load a network definition and its nodes from ``path``."""
    data = read_document(path)
    if not isinstance(data, dict):
        raise ConfigurationError("Topology file must contain a mapping", config_file=str(path))
    missing = [key for key in ("network", "nodes") if key not in data]
    if missing:
        raise ConfigurationError(
            f"Missing required field: {', '.join(missing)}", config_file=str(path)
        )
    if not isinstance(data["nodes"], list):
        raise ConfigurationError("'nodes' must be a list", config_file=str(path))

    balance = data.get("initial_balance")
    return Topology(
        spec=NetworkSpec.from_dict(data["network"]),
        nodes=[NodeSpec.from_dict(node) for node in data["nodes"]],
        initial_balance=None if balance is None else str(balance),
    )


def load_nodes_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load nodes to add, as a list or as ``{nodes: [...], signer_accounts: [...]}``.

    Returns:
        A mapping ready for ``parse_update_request``.
    """
    data = read_document(path)
    if isinstance(data, list):
        return {"add": data}
    if isinstance(data, dict) and "nodes" in data:
        result = {"add": data["nodes"]}
        if "signer_accounts" in data:
            result["signer_accounts"] = data["signer_accounts"]
        return result
    raise ConfigurationError(
        "Node file must be a list of nodes or a mapping with a 'nodes' list",
        config_file=str(path),
    )


def _host(subnet: str, offset: int) -> str:
    try:
        network = ipaddress.IPv4Network(subnet, strict=False)
    except ValueError as e:
        raise ConfigurationError(f"Invalid subnet format: {subnet}") from e
    if offset >= network.num_addresses - 1:
        raise ConfigurationError(f"Subnet {subnet} is too small for {offset - FIRST_HOST + 1} nodes")
    return str(network.network_address + offset)


def _numbered(prefix: str, index: int, count: int) -> str:
    return prefix if count == 1 else f"{prefix}{index + 1}"


def custom_topology(
    subnet: str,
    bootnodes: int = 1,
    miners: int = 1,
    rpc_nodes: int = 0,
    validators: int = 0,
) -> list[NodeSpec]:
    """Nodes for the given role counts.

    Bootnodes take RPC ports from 8545, miners every second port from 8546,
    RPC nodes from 8570 and validator (relay) nodes from 8590.
    """
    nodes: list[NodeSpec] = []
    offset = FIRST_HOST

    def push(name: str, port: int, role: Role) -> None:
        nonlocal offset
        nodes.append(NodeSpec(name=name, ip=_host(subnet, offset), rpc_port=port, role=role))
        offset += 1

    for i in range(bootnodes):
        push(_numbered("bootnode", i, bootnodes), DEFAULT_RPC_PORT + i, Role.BOOTSTRAP)
    for i in range(miners):
        push(_numbered("miner", i, miners), SIGNER_PORT_BASE + SIGNER_PORT_STEP * i, Role.SIGNER)
    for i in range(rpc_nodes):
        push(f"rpc{i + 1}", QUERY_PORT_BASE + i, Role.QUERY)
    for i in range(validators):
        push(f"validator{i + 1}", RELAY_PORT_BASE + i, Role.RELAY)
    return nodes


def simple_topology(subnet: str) -> list[NodeSpec]:
    """One bootnode and one miner."""
    return custom_topology(subnet, bootnodes=1, miners=1)


def multi_signer_topology(subnet: str, miners: int, rpc_nodes: int = 0) -> list[NodeSpec]:
    """One bootnode, ``miners`` numbered miners and optional RPC nodes."""
    nodes = custom_topology(subnet, bootnodes=1, miners=miners, rpc_nodes=rpc_nodes)
    if miners == 1:
        nodes[1].name = "miner1"
    return nodes


def scalable_topology(
    subnet: str,
    total_nodes: int,
    miner_percentage: int = 20,
    rpc_percentage: int = 30,
) -> list[NodeSpec]:
    """Distribute ``total_nodes`` over roles: one bootnode, at least one miner."""
    if total_nodes < 2:
        raise ConfigurationError("A scalable network needs at least 2 nodes")
    miners = max(1, total_nodes * miner_percentage // 100)
    rpc_nodes = total_nodes * rpc_percentage // 100
    relays = max(0, total_nodes - 1 - miners - rpc_nodes)

    console.print(f"[cyan]Creating scalable network with {total_nodes} nodes:[/cyan]")
    console.print("   - Bootnodes: 1")
    console.print(f"   - Miners: {miners}")
    console.print(f"   - RPC nodes: {rpc_nodes}")
    console.print(f"   - Regular nodes: {relays}")

    nodes = custom_topology(subnet, bootnodes=1, miners=miners, rpc_nodes=rpc_nodes)
    offset = FIRST_HOST + len(nodes)
    for i in range(relays):
        nodes.append(
            NodeSpec(
                name=f"node{i + 1}",
                ip=_host(subnet, offset + i),
                rpc_port=RELAY_PORT_BASE + i,
                role=Role.RELAY,
            )
        )
    return nodes


def sample_topology(name: str = "besu-dev") -> dict[str, Any]:
    subnet = "172.24.0.0/16"
    return {
        "network": {
            "name": name,
            "chain_id": 1337,
            "subnet": subnet,
            "consensus": ConsensusKind.AUTHORITY_ROUND.value,
            "gas_limit": "0x47E7C4",
            "block_time": DEFAULT_BLOCK_TIME,
            "signer_accounts": [],
            "accounts": [],
        },
        "nodes": [node.to_dict() for node in custom_topology(subnet, miners=1, rpc_nodes=1)],
        "initial_balance": "1000",
    }


def create_sample_topology(output_path: str = "network.yml", name: str = "besu-dev") -> Path:
    """Write a sample topology file."""
    path = Path(output_path)
    with open(path, "w", encoding="utf-8") as file:
        if path.suffix.lower() == ".json":
            json.dump(sample_topology(name), file, indent=2)
        else:
            yaml.dump(sample_topology(name), file, default_flow_style=False, indent=2, sort_keys=False)

    console.print(f"[green]✓ Sample topology created: {output_path}[/green]")
    console.print(
        "[yellow]Note: add signer_accounts (one per miner) to control which addresses seal blocks[/yellow]"
    )
    return path
