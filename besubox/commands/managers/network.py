"""
NetworkManager - Docker network management for besubox networks.
"""

from typing import Optional

import docker
from rich.console import Console

from besubox.commands.errors import RuntimeAdapterError
from besubox.commands.managers.base import BaseManager

console = Console()


class NetworkManager(BaseManager):
    """Creates, inspects and removes bridge networks with a fixed subnet."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize the NetworkManager.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
        """
        super().__init__(client)

    def get_network(self, network_name: str):
        """Get a Docker network by name.

        Args:
            network_name: Name of the network to get.

        Returns:
            The Docker network object, or None if not found.
        """
        try:
            return self.client.networks.get(network_name)
        except docker.errors.NotFound:
            return None

    def network_subnets(self) -> dict[str, list[str]]:
        """Map every Docker network name to the subnets of its IPAM pools."""
        try:
            networks = self.client.networks.list()
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(f"Cannot list Docker networks: {e}") from e

        result = {}
        for network in networks:
            configs = (network.attrs.get("IPAM") or {}).get("Config") or []
            result[network.name] = [c["Subnet"] for c in configs if c.get("Subnet")]
        return result

    def create_network(self, network_name: str, subnet: str, labels: dict[str, str]) -> None:
        """Create a bridge network with a single IPAM pool.

        Raises:
            RuntimeAdapterError: If Docker refuses to create the network.
        """
        ipam_pool = docker.types.IPAMPool(subnet=subnet)
        ipam_config = docker.types.IPAMConfig(pool_configs=[ipam_pool])
        try:
            self.client.networks.create(
                network_name, driver="bridge", ipam=ipam_config, labels=labels
            )
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(
                f"Failed to create network {network_name} ({subnet}): {e}",
                resource=network_name,
            ) from e
        console.print(f"[green]✓ Created network: {network_name} ({subnet})[/green]")

    def remove_network(self, network_name: str) -> bool:
        """Remove a network. Returns False if it did not exist."""
        network = self.get_network(network_name)
        if network is None:
            return False
        try:
            network.remove()
        except docker.errors.NotFound:
            return False
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(
                f"Failed to remove network {network_name}: {e}", resource=network_name
            ) from e
        console.print(f"[green]✓ Removed network: {network_name}[/green]")
        return True
