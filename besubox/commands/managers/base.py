"""
BaseManager - Common Docker client utilities and shared functionality.
"""

import logging
from typing import Optional

import docker
from rich.console import Console

from besubox.commands.errors import RuntimeAdapterError

console = Console()
logger = logging.getLogger(__name__)


class BaseManager:
    """Base class with shared Docker client utilities."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize with an optional Docker client.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.

        Raises:
            RuntimeAdapterError: If the Docker daemon cannot be reached.
        """
        if client is not None:
            self.client = client
        else:
            try:
                self.client = docker.from_env()
            except docker.errors.DockerException as e:
                console.print(
                    "[yellow]Make sure Docker is running and you have permission to access it.[/yellow]"
                )
                raise RuntimeAdapterError(
                    f"Failed to connect to Docker: {e}", resource="docker"
                ) from e

    def _ensure_image_pulled(self, image: str) -> bool:
        """Ensure the specified Docker image is available locally, pulling if needed."""
        try:
            self.client.images.get(image)
            logger.debug("Image %s already available locally", image)
            return True
        except docker.errors.ImageNotFound:
            pass
        except docker.errors.APIError as e:
            console.print(f"[red]✗ Error checking image {image}: {str(e)}[/red]")
            return False

        console.print(f"[yellow]Pulling image: {image}[/yellow]")
        try:
            self.client.images.pull(image)
            console.print(f"[green]✓ Successfully pulled image: {image}[/green]")
            return True
        except docker.errors.NotFound:
            console.print(f"[red]✗ Image {image} not found in registry[/red]")
            return False
        except docker.errors.APIError as e:
            console.print(f"[red]✗ Docker API error pulling {image}: {str(e)}[/red]")
            return False
