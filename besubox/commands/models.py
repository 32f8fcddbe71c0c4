"""
Typed data model for besubox networks.

Free-form topology dictionaries are converted once at the boundary
(``from_dict``) into these dataclasses; everything past that point works
with typed values. ``to_dict`` produces the persisted JSON shape.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from besubox.commands.constants import DEFAULT_GAS_LIMIT, DEFAULT_P2P_PORT
from besubox.commands.errors import ConfigurationError


class ConsensusKind(str, Enum):
    """Consensus algorithms; values are the genesis section names."""

    AUTHORITY_ROUND = "clique"
    BFT_V1 = "ibft2"
    BFT_V2 = "qbft"

    @property
    def is_bft(self) -> bool:
        return self in (ConsensusKind.BFT_V1, ConsensusKind.BFT_V2)

    @property
    def label(self) -> str:
        return {
            ConsensusKind.AUTHORITY_ROUND: "Clique",
            ConsensusKind.BFT_V1: "IBFT2",
            ConsensusKind.BFT_V2: "QBFT",
        }[self]

    @classmethod
    def parse(cls, value: Any) -> "ConsensusKind":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", "-")
        aliases = {
            "authority-round": cls.AUTHORITY_ROUND,
            "bft-v1": cls.BFT_V1,
            "bft-v2": cls.BFT_V2,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            supported = ", ".join(kind.value for kind in cls)
            raise ConfigurationError(
                f"Unknown consensus mechanism: {value}. Supported: {supported}"
            ) from None


class Role(str, Enum):
    """Node roles; values are the labels written on containers."""

    BOOTSTRAP = "bootnode"
    SIGNER = "miner"
    QUERY = "rpc"
    RELAY = "node"

    @property
    def start_order(self) -> int:
        return _START_ORDER[self]

    @classmethod
    def parse(cls, value: Any) -> "Role":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for role in cls:
            if text in (role.value, role.name.lower()):
                return role
        valid = ", ".join(role.value for role in cls)
        raise ConfigurationError(f"Node type '{value}' is invalid. Valid types: {valid}")


_START_ORDER = {Role.BOOTSTRAP: 0, Role.SIGNER: 1, Role.QUERY: 2, Role.RELAY: 3}


class NetworkState(str, Enum):
    UNPROVISIONED = "unprovisioned"
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    DESTROYED = "destroyed"


class FindingCategory(str, Enum):
    DUPLICATE = "duplicate"
    MALFORMED = "malformed"
    OUT_OF_RANGE = "out-of-range"
    STRUCTURALLY_INVALID = "structurally-invalid"
    MISSING_REQUIRED = "missing-required"


@dataclass(frozen=True)
class ValidationFinding:
    """A single validation problem, addressed by field path."""

    field: str
    category: FindingCategory
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "field": self.field,
            "category": self.category.value,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class Account:
    """An address with a balance in wei (decimal string)."""

    address: str
    balance: str

    def to_dict(self) -> dict[str, str]:
        return {"address": self.address, "balance": self.balance}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Account":
        if not isinstance(data, dict) or "address" not in data:
            raise ConfigurationError(f"Account entry must define an address: {data!r}")
        balance = data.get("balance", data.get("weiAmount"))
        if balance is None:
            raise ConfigurationError(f"Account {data['address']} must define a balance")
        return cls(address=str(data["address"]), balance=str(balance))


@dataclass
class NetworkSpec:
    """Network-wide parameters; immutable once the network is launched."""

    name: str
    chain_id: int
    subnet: str
    consensus: ConsensusKind
    gas_limit: str = DEFAULT_GAS_LIMIT
    block_time: Optional[int] = None
    signer_accounts: list[Account] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "chain_id": self.chain_id,
            "subnet": self.subnet,
            "consensus": self.consensus.value,
            "gas_limit": self.gas_limit,
            "signer_accounts": [a.to_dict() for a in self.signer_accounts],
            "accounts": [a.to_dict() for a in self.accounts],
        }
        if self.block_time is not None:
            result["block_time"] = self.block_time
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkSpec":
        if not isinstance(data, dict):
            raise ConfigurationError("Network definition must be a mapping")
        missing = [k for k in ("name", "subnet", "consensus") if k not in data]
        if "chain_id" not in data and "chainId" not in data:
            missing.append("chain_id")
        if missing:
            raise ConfigurationError(
                f"Network definition is missing required fields: {', '.join(missing)}"
            )
        chain_id = data.get("chain_id", data.get("chainId"))
        block_time = data.get("block_time", data.get("blockTime"))
        return cls(
            name=str(data["name"]),
            chain_id=_as_int(chain_id, "chain_id"),
            subnet=str(data["subnet"]),
            consensus=ConsensusKind.parse(data["consensus"]),
            gas_limit=str(data.get("gas_limit", data.get("gasLimit", DEFAULT_GAS_LIMIT))),
            block_time=None if block_time is None else _as_int(block_time, "block_time"),
            signer_accounts=[
                Account.from_dict(a)
                for a in data.get("signer_accounts", data.get("signerAccounts")) or []
            ],
            accounts=[Account.from_dict(a) for a in data.get("accounts") or []],
        )


@dataclass
class NodeSpec:
    """A node's placement and role inside a network."""

    name: str
    ip: str
    rpc_port: int
    role: Role
    p2p_port: Optional[int] = None

    @property
    def peer_port(self) -> int:
        return self.p2p_port if self.p2p_port is not None else DEFAULT_P2P_PORT

    def container_name(self, network_name: str) -> str:
        return f"{network_name}-{self.name}"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "ip": self.ip,
            "rpc_port": self.rpc_port,
            "role": self.role.value,
        }
        if self.p2p_port is not None:
            result["p2p_port"] = self.p2p_port
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeSpec":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Node definition must be a mapping: {data!r}")
        missing = [k for k in ("name", "ip") if k not in data]
        if "rpc_port" not in data and "rpcPort" not in data:
            missing.append("rpc_port")
        if "role" not in data and "type" not in data:
            missing.append("role")
        if missing:
            raise ConfigurationError(
                f"Node definition {data.get('name', '?')} is missing: {', '.join(missing)}"
            )
        p2p_port = data.get("p2p_port", data.get("p2pPort"))
        return cls(
            name=str(data["name"]),
            ip=str(data["ip"]),
            rpc_port=_as_int(data.get("rpc_port", data.get("rpcPort")), "rpc_port"),
            role=Role.parse(data.get("role", data.get("type"))),
            p2p_port=None if p2p_port is None else _as_int(p2p_port, "p2p_port"),
        )


@dataclass
class NodeIdentity:
    """Key material of a node. The private key is the durable identity."""

    private_key: str
    public_key: str
    address: str
    enode: str

    def to_dict(self) -> dict[str, str]:
        # Private key deliberately omitted
        return {"public_key": self.public_key, "address": self.address, "enode": self.enode}


@dataclass(frozen=True)
class SignerAssociation:
    """Relation between a signer-role node and a signer account address."""

    node: str
    address: str

    def to_dict(self) -> dict[str, str]:
        return {"node": self.node, "address": self.address}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SignerAssociation":
        return cls(node=str(data["node"]), address=str(data["address"]))


@dataclass
class NetworkDescriptor:
    """Persisted source of truth for a network: spec, nodes and associations."""

    spec: NetworkSpec
    nodes: list[NodeSpec] = field(default_factory=list)
    associations: list[SignerAssociation] = field(default_factory=list)
    state: NetworkState = NetworkState.UNPROVISIONED

    @property
    def name(self) -> str:
        return self.spec.name

    def node(self, name: str) -> Optional[NodeSpec]:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def nodes_by_role(self, role: Role) -> list[NodeSpec]:
        return [n for n in self.nodes if n.role is role]

    def association_for(self, node_name: str) -> Optional[SignerAssociation]:
        for association in self.associations:
            if association.node == node_name:
                return association
        return None

    def start_order(self) -> list[NodeSpec]:
        """Nodes sorted bootstrap, signer, query, relay; stable within a role."""
        return sorted(self.nodes, key=lambda n: n.role.start_order)

    def to_dict(self) -> dict[str, Any]:
        return {
            "network": self.spec.to_dict(),
            "nodes": [n.to_dict() for n in self.nodes],
            "signer_associations": [a.to_dict() for a in self.associations],
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkDescriptor":
        try:
            return cls(
                spec=NetworkSpec.from_dict(data["network"]),
                nodes=[NodeSpec.from_dict(n) for n in data.get("nodes", [])],
                associations=[
                    SignerAssociation.from_dict(a)
                    for a in data.get("signer_associations", [])
                ],
                state=NetworkState(data.get("state", NetworkState.CREATED.value)),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid network descriptor: {e}") from e


@dataclass
class NodeStatus:
    """Liveness view of a single node."""

    node_name: str
    is_active: bool
    block_number: Optional[int] = None
    peers: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"node_name": self.node_name, "is_active": self.is_active}
        if self.block_number is not None:
            result["block_number"] = self.block_number
        if self.peers is not None:
            result["peers"] = self.peers
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class NodeUpdate:
    """In-place property changes for an existing node."""

    name: str
    ip: Optional[str] = None
    rpc_port: Optional[int] = None
    p2p_port: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeUpdate":
        if not isinstance(data, dict) or "name" not in data:
            raise ConfigurationError(f"Node update must name a node: {data!r}")
        rpc_port = data.get("rpc_port", data.get("rpcPort"))
        p2p_port = data.get("p2p_port", data.get("p2pPort"))
        return cls(
            name=str(data["name"]),
            ip=data.get("ip"),
            rpc_port=None if rpc_port is None else _as_int(rpc_port, "rpc_port"),
            p2p_port=None if p2p_port is None else _as_int(p2p_port, "p2p_port"),
        )


@dataclass
class UpdateRequest:
    """Topology changes for TopologyUpdater.apply."""

    add: list[NodeSpec] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)
    update: list[NodeUpdate] = field(default_factory=list)
    signer_accounts: list[Account] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.add or self.remove or self.update or self.signer_accounts)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UpdateRequest":
        if not isinstance(data, dict):
            raise ConfigurationError("Update request must be a mapping")
        return cls(
            add=[NodeSpec.from_dict(n) for n in data.get("add") or []],
            remove=[str(n) for n in data.get("remove") or []],
            update=[NodeUpdate.from_dict(u) for u in data.get("update") or []],
            signer_accounts=[
                Account.from_dict(a) for a in data.get("signer_accounts") or []
            ],
        )


@dataclass
class UpdateResult:
    nodes_added: list[str] = field(default_factory=list)
    nodes_removed: list[str] = field(default_factory=list)
    nodes_updated: list[str] = field(default_factory=list)
    success: bool = False
    findings: list[ValidationFinding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "nodes_added": list(self.nodes_added),
            "nodes_removed": list(self.nodes_removed),
            "nodes_updated": list(self.nodes_updated),
            "findings": [f.to_dict() for f in self.findings],
        }


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"{field_name} must be an integer, got {value!r}"
        ) from None
