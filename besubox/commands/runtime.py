"""
NetworkRuntimeAdapter - maps besubox networks and nodes onto a container runtime.

The adapter owns the orchestration decisions (subnet conflict resolution,
container naming, labels, ports, mounts and the node command line) and
talks to the backend through the narrow ``ContainerRuntime`` interface.
The Docker implementation lives in ``besubox.commands.managers``.

Cleanup calls (stop, remove, teardown) are idempotent: absent networks and
containers are skipped. Intent calls (create, launch) propagate failures.
"""

import ipaddress
import logging
import os
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from besubox.commands.constants import (
    ALTERNATIVE_SUBNET_BASES,
    CONTAINER_DATA_MOUNT,
    GENESIS_FILE,
    HOST_RPC_PORT_OFFSET,
    NETWORK_TYPE_LABEL,
    NODE_CONFIG_FILE,
    PRIVATE_KEY_FILE,
    RANDOM_SUBNET_ATTEMPTS,
)
from besubox.commands.errors import SubnetConflictError
from besubox.commands.models import NodeIdentity, NodeSpec

console = Console()
logger = logging.getLogger(__name__)

# Docker's predefined networks never hold besubox nodes
SYSTEM_NETWORKS = frozenset({"bridge", "host", "none"})


@dataclass
class ContainerSpec:
    """Everything the backend needs to run one node container."""

    name: str
    image: str
    network: str
    ip: str
    command: list[str]
    ports: dict[str, int] = field(default_factory=dict)
    volumes: dict[str, dict[str, str]] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


class ContainerRuntime(ABC):
    """Minimal container backend used by NetworkRuntimeAdapter."""

    @abstractmethod
    def network_subnets(self) -> dict[str, list[str]]:
        """Map network name to the subnets of its address pools."""

    @abstractmethod
    def has_network(self, name: str) -> bool:
        pass

    @abstractmethod
    def create_network(self, name: str, subnet: str, labels: dict[str, str]) -> None:
        pass

    @abstractmethod
    def remove_network(self, name: str) -> bool:
        """Remove a network; False when it did not exist."""

    @abstractmethod
    def run_container(self, spec: ContainerSpec) -> str:
        """Create and start a container; returns its name."""

    @abstractmethod
    def list_containers(self, labels: dict[str, str], running_only: bool = False) -> list[str]:
        pass

    @abstractmethod
    def stop_container(self, name: str) -> bool:
        """Stop a container; False when it was absent or not running."""

    @abstractmethod
    def remove_container(self, name: str) -> bool:
        """Remove a container; False when it did not exist."""


def rebase_ip(ip: str, old_subnet: str, new_subnet: str) -> str:
    """Move ``ip`` into ``new_subnet`` keeping its host offset."""
    old = ipaddress.IPv4Network(old_subnet, strict=False)
    new = ipaddress.IPv4Network(new_subnet, strict=False)
    offset = int(ipaddress.IPv4Address(ip)) - int(old.network_address)
    if not 0 <= offset < new.num_addresses:
        raise SubnetConflictError(
            f"Cannot move {ip} into {new_subnet}: host offset {offset} does not fit",
            subnet=new_subnet,
        )
    return str(new.network_address + offset)


def rebase_nodes(nodes: list[NodeSpec], old_subnet: str, new_subnet: str) -> list[NodeSpec]:
    """Return copies of ``nodes`` re-addressed into ``new_subnet``."""
    if old_subnet == new_subnet:
        return list(nodes)
    return [replace(node, ip=rebase_ip(node.ip, old_subnet, new_subnet)) for node in nodes]


def host_rpc_port(node: NodeSpec) -> int:
    return node.rpc_port + HOST_RPC_PORT_OFFSET


class NetworkRuntimeAdapter:
    """Orchestration logic over a ContainerRuntime backend."""

    def __init__(self, runtime: ContainerRuntime, rng: Optional[random.Random] = None):
        self.runtime = runtime
        self.rng = rng or random.Random()

    # Networks

    def network_exists(self, name: str) -> bool:
        return self.runtime.has_network(name)

    def subnet_available(self, subnet: str, ignore: Optional[str] = None) -> bool:
        """True when no runtime network (other than ``ignore``) overlaps ``subnet``."""
        wanted = ipaddress.IPv4Network(subnet, strict=False)
        for name, subnets in self.runtime.network_subnets().items():
            if name in SYSTEM_NETWORKS or name == ignore:
                continue
            for claimed in subnets:
                try:
                    if wanted.overlaps(ipaddress.IPv4Network(claimed, strict=False)):
                        return False
                except ValueError:
                    # IPv6 pools never clash with an IPv4 subnet
                    continue
        return True

    def candidate_subnets(self, subnet: str) -> list[str]:
        """Alternatives to try, in order, for a claimed ``subnet``."""
        mask = subnet.split("/")[1]
        candidates = [f"{base}/{mask}" for base in ALTERNATIVE_SUBNET_BASES]
        for _ in range(RANDOM_SUBNET_ATTEMPTS):
            second = self.rng.randint(1, 255)
            third = self.rng.randint(0, 254)
            network = ipaddress.IPv4Network(f"172.{second}.{third}.0/{mask}", strict=False)
            candidates.append(str(network))
        return [c for c in candidates if c != subnet]

    def resolve_subnet(self, subnet: str) -> str:
        """Return ``subnet`` if free, otherwise the first free candidate.

        Raises:
            SubnetConflictError: If every candidate is claimed.
        """
        if self.subnet_available(subnet):
            return subnet
        console.print(f"[yellow]⚠️  Subnet {subnet} is not available, finding alternative...[/yellow]")
        for candidate in self.candidate_subnets(subnet):
            if self.subnet_available(candidate):
                console.print(f"[green]✓ Using alternative subnet: {candidate}[/green]")
                return candidate
        raise SubnetConflictError(
            f"Unable to find an available subnet to replace {subnet}", subnet=subnet
        )

    def ensure_network(self, name: str, subnet: str, auto_resolve: bool = True) -> str:
        """Make sure the runtime network exists and return its subnet.

        An existing network keeps its subnet. A new one is created on
        ``subnet`` or, when that is claimed and ``auto_resolve`` is set, on
        the first free alternative.

        Raises:
            SubnetConflictError: If the subnet is claimed and cannot be resolved.
        """
        if self.runtime.has_network(name):
            current = self.runtime.network_subnets().get(name) or [subnet]
            logger.debug("Network %s already exists on %s", name, current[0])
            return current[0]

        if not self.subnet_available(subnet):
            if not auto_resolve:
                raise SubnetConflictError(
                    f"Subnet {subnet} is already in use by another Docker network",
                    subnet=subnet,
                )
            subnet = self.resolve_subnet(subnet)

        self.runtime.create_network(
            name, subnet, {"network": name, "type": NETWORK_TYPE_LABEL}
        )
        return subnet

    def teardown_network(self, name: str) -> bool:
        """Remove the runtime network; absent networks are a no-op."""
        removed = self.runtime.remove_network(name)
        if not removed:
            logger.debug("Network %s already absent", name)
        return removed

    # Containers

    def container_spec(
        self,
        network: str,
        node: NodeSpec,
        image: str,
        data_path: Union[str, Path],
    ) -> ContainerSpec:
        mount = CONTAINER_DATA_MOUNT
        return ContainerSpec(
            name=node.container_name(network),
            image=image,
            network=network,
            ip=node.ip,
            command=[
                f"--config-file={mount}/{node.name}/{NODE_CONFIG_FILE}",
                f"--data-path={mount}/{node.name}/data",
                f"--node-private-key-file={mount}/{node.name}/{PRIVATE_KEY_FILE}",
                f"--genesis-file={mount}/{GENESIS_FILE}",
            ],
            ports={f"{node.rpc_port}/tcp": host_rpc_port(node)},
            volumes={os.path.abspath(str(data_path)): {"bind": mount, "mode": "rw"}},
            labels={
                "network": network,
                "node": node.name,
                "role": node.role.value,
                "port": str(node.rpc_port),
            },
        )

    def launch_node(
        self,
        network: str,
        node: NodeSpec,
        identity: NodeIdentity,
        image: str,
        data_path: Union[str, Path],
    ) -> str:
        """Run one node container; returns the container name."""
        spec = self.container_spec(network, node, image, data_path)
        name = self.runtime.run_container(spec)
        console.print(
            f"[green]✓ Started {node.name} ({node.role.value}) at {node.ip}, "
            f"RPC on localhost:{host_rpc_port(node)}[/green]"
        )
        logger.debug("%s enode: %s", node.name, identity.enode)
        return name

    def list_nodes(self, network: str, running_only: bool = False) -> list[str]:
        return self.runtime.list_containers({"network": network}, running_only=running_only)

    def stop_all(self, network: str) -> list[str]:
        """Stop every container of ``network``; returns those actually stopped."""
        stopped = []
        for name in self.list_nodes(network, running_only=True):
            if self.runtime.stop_container(name):
                stopped.append(name)
                console.print(f"[green]✓ Stopped {name}[/green]")
        return stopped

    def remove_all(self, network: str) -> list[str]:
        """Remove every container of ``network``; returns those removed."""
        removed = []
        for name in self.list_nodes(network):
            if self.runtime.remove_container(name):
                removed.append(name)
        if removed:
            console.print(f"[green]✓ Removed {len(removed)} containers of {network}[/green]")
        return removed

    def remove_node(self, network: str, node: NodeSpec) -> bool:
        return self.runtime.remove_container(node.container_name(network))


def default_runtime() -> ContainerRuntime:
    """The Docker-backed runtime."""
    from besubox.commands.managers.docker_runtime import DockerRuntime

    return DockerRuntime()
