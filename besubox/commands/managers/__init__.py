"""
Managers module - Focused Docker manager classes behind the ContainerRuntime interface.

- BaseManager: Common Docker client utilities
- NetworkManager: Docker network management
- NodeManager: Node container management
- DockerRuntime: ContainerRuntime implementation composing the two
"""

from besubox.commands.managers.base import BaseManager
from besubox.commands.managers.docker_runtime import DockerRuntime
from besubox.commands.managers.network import NetworkManager
from besubox.commands.managers.node import NodeManager

__all__ = [
    "BaseManager",
    "NetworkManager",
    "NodeManager",
    "DockerRuntime",
]
