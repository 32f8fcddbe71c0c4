"""
DockerRuntime - ContainerRuntime backed by the Docker SDK.

Composes NetworkManager and NodeManager over a single shared client.
"""

from typing import Optional

import docker

from besubox.commands.managers.network import NetworkManager
from besubox.commands.managers.node import NodeManager
from besubox.commands.runtime import ContainerRuntime, ContainerSpec


class DockerRuntime(ContainerRuntime):
    def __init__(self, client: Optional[docker.DockerClient] = None):
        self.network_manager = NetworkManager(client)
        self.node_manager = NodeManager(self.network_manager.client)

    def network_subnets(self) -> dict[str, list[str]]:
        return self.network_manager.network_subnets()

    def has_network(self, name: str) -> bool:
        return self.network_manager.get_network(name) is not None

    def create_network(self, name: str, subnet: str, labels: dict[str, str]) -> None:
        self.network_manager.create_network(name, subnet, labels)

    def remove_network(self, name: str) -> bool:
        return self.network_manager.remove_network(name)

    def run_container(self, spec: ContainerSpec) -> str:
        return self.node_manager.run_container(
            name=spec.name,
            image=spec.image,
            network=spec.network,
            ip=spec.ip,
            command=spec.command,
            ports=spec.ports,
            volumes=spec.volumes,
            labels=spec.labels,
        )

    def list_containers(self, labels: dict[str, str], running_only: bool = False) -> list[str]:
        return self.node_manager.list_containers(labels, running_only=running_only)

    def stop_container(self, name: str) -> bool:
        return self.node_manager.stop_container(name)

    def remove_container(self, name: str) -> bool:
        return self.node_manager.remove_container(name)
