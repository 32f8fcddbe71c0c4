"""
NodeManager - Besu node container management.
"""

import logging
from typing import Optional

import docker
from rich.console import Console

from besubox.commands.constants import CONTAINER_STOP_TIMEOUT
from besubox.commands.errors import RuntimeAdapterError
from besubox.commands.managers.base import BaseManager

console = Console()
logger = logging.getLogger(__name__)


class NodeManager(BaseManager):
    """Manages node containers attached to a besubox network."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize the NodeManager.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
        """
        super().__init__(client)

    def run_container(
        self,
        name: str,
        image: str,
        network: str,
        ip: str,
        command: list[str],
        ports: dict[str, int],
        volumes: dict[str, dict[str, str]],
        labels: dict[str, str],
    ) -> str:
        """Create a container with a static IP on ``network`` and start it.

        Raises:
            RuntimeAdapterError: If the image is unavailable or Docker fails.
        """
        if not self._ensure_image_pulled(image):
            raise RuntimeAdapterError(f"Cannot proceed without image: {image}", resource=image)

        # Leftovers from an interrupted run would block the name
        self.remove_container(name)

        try:
            container = self.client.containers.create(
                image,
                command=command,
                name=name,
                detach=True,
                ports=ports,
                volumes=volumes,
                labels=labels,
                network=network,
            )
            docker_network = self.client.networks.get(network)
            docker_network.disconnect(container)
            docker_network.connect(container, ipv4_address=ip)
            container.start()
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(
                f"Failed to start container {name}: {e}", resource=name
            ) from e

        logger.debug("Started container %s (%s) at %s", name, container.short_id, ip)
        return name

    def stop_container(self, name: str) -> bool:
        """Stop a container. Returns False if it does not exist."""
        try:
            container = self.client.containers.get(name)
        except docker.errors.NotFound:
            return False
        if container.status != "running":
            return False
        try:
            container.stop(timeout=CONTAINER_STOP_TIMEOUT)
        except docker.errors.NotFound:
            return False
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(f"Failed to stop {name}: {e}", resource=name) from e
        return True

    def remove_container(self, name: str) -> bool:
        """Force-remove a container. Returns False if it does not exist."""
        try:
            container = self.client.containers.get(name)
            container.remove(force=True)
        except docker.errors.NotFound:
            return False
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(f"Failed to remove {name}: {e}", resource=name) from e
        return True

    def list_containers(self, labels: dict[str, str], running_only: bool = False) -> list[str]:
        """Names of containers carrying every label in ``labels``."""
        filters = {"label": [f"{key}={value}" for key, value in labels.items()]}
        try:
            containers = self.client.containers.list(all=not running_only, filters=filters)
        except docker.errors.APIError as e:
            raise RuntimeAdapterError(f"Cannot list containers: {e}") from e
        return [c.name for c in containers]
