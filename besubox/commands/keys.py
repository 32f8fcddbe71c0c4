"""
KeyManager - per-node secp256k1 identities.

Each node owns four files in its folder: ``key.priv``, ``key.pub``,
``address`` and ``enode``. The private key is the durable identity; the
enode is re-derived whenever the node's IP or peer port changes.
"""

import logging
from typing import Optional

from rich.console import Console

from besubox.commands import crypto
from besubox.commands.constants import (
    ADDRESS_FILE,
    DEFAULT_P2P_PORT,
    ENODE_FILE,
    PRIVATE_KEY_FILE,
    PUBLIC_KEY_FILE,
)
from besubox.commands.models import NodeIdentity
from besubox.commands.storage import NetworkStore

console = Console()
logger = logging.getLogger(__name__)


class KeyManager:
    """Generates, loads and re-derives node identities for one network."""

    def __init__(self, store: NetworkStore, network: str):
        self.store = store
        self.network = network

    def _path(self, node_name: str, filename: str) -> str:
        return f"{node_name}/{filename}"

    def load(self, node_name: str) -> Optional[NodeIdentity]:
        """Load a persisted identity, or None if the node has no private key."""
        private_key = self.store.read_text(self.network, self._path(node_name, PRIVATE_KEY_FILE))
        if private_key is None:
            return None
        private_key = crypto.strip_hex_prefix(private_key.strip())
        public_key = self.store.read_text(self.network, self._path(node_name, PUBLIC_KEY_FILE))
        address = self.store.read_text(self.network, self._path(node_name, ADDRESS_FILE))
        enode = self.store.read_text(self.network, self._path(node_name, ENODE_FILE))
        if public_key is None or address is None:
            # Partial bundle: rebuild the derived fields from the key
            key = crypto.load_private_key(private_key)
            public_key = crypto.public_key_hex(key)
            address = crypto.address_from_public_key(public_key)
        return NodeIdentity(
            private_key=private_key,
            public_key=crypto.strip_hex_prefix(public_key.strip()),
            address=address.strip(),
            enode=(enode or "").strip(),
        )

    def identity_for(
        self, node_name: str, ip: str, p2p_port: int = DEFAULT_P2P_PORT
    ) -> NodeIdentity:
        """Return the node's identity, creating or re-deriving it as needed."""
        identity = self.load(node_name)
        if identity is None:
            identity = self._generate(ip, p2p_port)
            self._save(node_name, identity)
            logger.debug("Generated identity for %s: %s", node_name, identity.address)
            return identity

        expected = crypto.build_enode(identity.public_key, ip, p2p_port)
        if identity.enode != expected:
            console.print(
                f"[cyan]Re-deriving enode for {node_name} ({ip}:{p2p_port})[/cyan]"
            )
            identity.enode = expected
            self._save(node_name, identity)
        return identity

    def _generate(self, ip: str, p2p_port: int) -> NodeIdentity:
        key = crypto.generate_private_key()
        public_key = crypto.public_key_hex(key)
        return NodeIdentity(
            private_key=key.to_string().hex(),
            public_key=public_key,
            address=crypto.address_from_public_key(public_key),
            enode=crypto.build_enode(public_key, ip, p2p_port),
        )

    def _save(self, node_name: str, identity: NodeIdentity) -> None:
        files = {
            PRIVATE_KEY_FILE: identity.private_key,
            PUBLIC_KEY_FILE: identity.public_key,
            ADDRESS_FILE: identity.address,
            ENODE_FILE: identity.enode,
        }
        for filename, content in files.items():
            self.store.write_text(self.network, self._path(node_name, filename), content)
