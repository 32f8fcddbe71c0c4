"""
NetworkStore - file-backed persistence for network descriptors, genesis,
node configs and identity bundles.

Layout under the storage root::

    <root>/<network>/network-config.json
    <root>/<network>/genesis.json
    <root>/<network>/<node>/config.toml
    <root>/<network>/<node>/key.priv, key.pub, address, enode
    <root>/.locks/<network>.lock
"""

import json
import logging
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from filelock import FileLock, Timeout

from besubox.commands.constants import (
    DEFAULT_STORAGE_ROOT,
    DESCRIPTOR_FILE,
    ERROR_NETWORK_NOT_FOUND,
    GENESIS_FILE,
    STORAGE_ROOT_ENV,
)
from besubox.commands.errors import ConfigurationError, NetworkBusyError, NetworkStateError
from besubox.commands.models import NetworkDescriptor

logger = logging.getLogger(__name__)

LOCKS_DIR = ".locks"


def resolve_storage_root(path: Optional[Union[str, Path]] = None) -> Path:
    """Pick the storage root: explicit path, then BESUBOX_HOME, then ./networks."""
    if path:
        return Path(path)
    return Path(os.environ.get(STORAGE_ROOT_ENV) or DEFAULT_STORAGE_ROOT)


class NetworkStore:
    """Blob store with folder semantics, one folder per network."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def network_path(self, network: str) -> Path:
        return self.root / network

    def node_path(self, network: str, node: str) -> Path:
        return self.root / network / node

    def exists(self, network: str) -> bool:
        return (self.network_path(network) / DESCRIPTOR_FILE).exists()

    def write_text(self, network: str, relpath: str, content: str) -> Path:
        path = self.network_path(network) / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def read_text(self, network: str, relpath: str) -> Optional[str]:
        path = self.network_path(network) / relpath
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write_json(self, network: str, relpath: str, data: Any) -> Path:
        return self.write_text(network, relpath, json.dumps(data, indent=2) + "\n")

    def read_json(self, network: str, relpath: str) -> Optional[Any]:
        content = self.read_text(network, relpath)
        if content is None:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Corrupt JSON document: {e}",
                config_file=str(self.network_path(network) / relpath),
            ) from e

    def remove(self, network: str, relpath: str = "") -> None:
        """Remove a file or folder; absent paths are ignored."""
        path = self.network_path(network) / relpath if relpath else self.network_path(network)
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()

    def save_descriptor(self, descriptor: NetworkDescriptor) -> Path:
        logger.debug("Saving descriptor for %s", descriptor.name)
        return self.write_json(descriptor.name, DESCRIPTOR_FILE, descriptor.to_dict())

    def load_descriptor(self, network: str) -> NetworkDescriptor:
        data = self.read_json(network, DESCRIPTOR_FILE)
        if data is None:
            raise NetworkStateError(
                ERROR_NETWORK_NOT_FOUND.format(name=network, root=self.root),
                network=network,
                code="NETWORK_NOT_FOUND",
            )
        return NetworkDescriptor.from_dict(data)

    def save_genesis(self, network: str, genesis: dict[str, Any]) -> Path:
        return self.write_json(network, GENESIS_FILE, genesis)

    def load_genesis(self, network: str) -> Optional[dict[str, Any]]:
        return self.read_json(network, GENESIS_FILE)

    def list_networks(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_dir()
            and not entry.name.startswith(".")
            and (entry / DESCRIPTOR_FILE).exists()
        )

    def tracked_networks(self, exclude: Optional[str] = None) -> list[NetworkDescriptor]:
        """Load every readable descriptor except ``exclude``."""
        descriptors = []
        for name in self.list_networks():
            if name == exclude:
                continue
            try:
                descriptors.append(self.load_descriptor(name))
            except ConfigurationError as e:
                logger.warning("Skipping unreadable network %s: %s", name, e)
        return descriptors

    @contextmanager
    def lock(self, network: str) -> Iterator[None]:
        """Hold the single-writer lock for ``network``.

        Raises:
            NetworkBusyError: If another create/apply already holds it.
        """
        lock_dir = self.root / LOCKS_DIR
        lock_dir.mkdir(parents=True, exist_ok=True)
        file_lock = FileLock(str(lock_dir / f"{network}.lock"), timeout=0)
        try:
            file_lock.acquire()
        except Timeout:
            raise NetworkBusyError(
                f"Another operation is in flight for network '{network}'",
                network=network,
            ) from None
        try:
            yield
        finally:
            file_lock.release()
