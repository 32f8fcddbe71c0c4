"""
TopologyValidator - pure validation of a network definition and its nodes.

``validate`` never raises for business-rule violations. It returns a list of
ValidationFinding objects; an empty list means the topology is acceptable.
Findings are grouped in passes:

- network: name, chain id, subnet, gas limit, block time, uniqueness
- nodes: names, IPs, ports, subnet membership, endpoint uniqueness
- consensus: bootstrap presence and signer/validator quorum math
- accounts: address format, duplicates, balance bounds, signer caps
- signers: signer node / signer account association rules
- coherence: segment, port-range, balance-of-roles and naming heuristics

Warnings and hard errors share the same list, and both block creation.
"""

import ipaddress
import logging
import re
from collections import Counter
from decimal import Decimal, InvalidOperation
from typing import Optional

from besubox.commands.constants import (
    ADDRESS_PATTERN,
    BALANCED_NETWORK_THRESHOLD,
    LARGE_NETWORK_NODES,
    MAX_AUTHORITY_ROUND_NODES,
    MAX_AUTHORITY_ROUND_SIGNERS,
    MAX_BFT_SIGNERS,
    MAX_BFT_VALIDATORS,
    MAX_BLOCK_TIME,
    MAX_BOOTSTRAP_RATIO,
    MAX_GAS_LIMIT,
    MAX_INITIAL_BALANCE_ETHER,
    MAX_PORT,
    MAX_RPC_PORT_SPAN,
    MAX_SIGNER_RATIO,
    MAX_SUBNET_MASK,
    MAX_WEI_AMOUNT,
    MIN_BFT_VALIDATORS,
    MIN_BLOCK_TIME,
    MIN_GAS_LIMIT,
    MIN_PORT,
    MIN_SUBNET_MASK,
    NAME_PATTERN,
    NAMING_CONVENTION_RATIO,
    NAMING_CONVENTION_THRESHOLD,
    QUERY_NODE_THRESHOLD,
    RESERVED_CHAIN_IDS,
    RESERVED_PORTS,
    WEI_PER_ETHER,
)
from besubox.commands.models import (
    Account,
    ConsensusKind,
    FindingCategory,
    NetworkSpec,
    NodeSpec,
    Role,
    SignerAssociation,
    ValidationFinding,
)

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(NAME_PATTERN)
_ADDRESS_RE = re.compile(ADDRESS_PATTERN)
_IP_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_SUBNET_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}/\d{1,2}$")
_SEQUENTIAL_NAME_RE = re.compile(r"^(node|nodo)(\d+)$", re.IGNORECASE)

DUPLICATE = FindingCategory.DUPLICATE
MALFORMED = FindingCategory.MALFORMED
OUT_OF_RANGE = FindingCategory.OUT_OF_RANGE
INVALID = FindingCategory.STRUCTURALLY_INVALID
REQUIRED = FindingCategory.MISSING_REQUIRED


def is_valid_name(name: str) -> bool:
    return bool(name) and bool(_NAME_RE.match(name))


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and bool(_ADDRESS_RE.match(address))


def is_valid_ip(ip: str) -> bool:
    if not isinstance(ip, str) or not _IP_RE.match(ip):
        return False
    return all(0 <= int(part) <= 255 for part in ip.split("."))


def parse_subnet(subnet: str) -> Optional[ipaddress.IPv4Network]:
    """Parse ``a.b.c.d/m`` with a mask in [8, 30]; None when invalid."""
    if not isinstance(subnet, str) or not _SUBNET_RE.match(subnet):
        return None
    address, mask = subnet.split("/")
    if not is_valid_ip(address) or not MIN_SUBNET_MASK <= int(mask) <= MAX_SUBNET_MASK:
        return None
    return ipaddress.IPv4Network(subnet, strict=False)


def is_valid_subnet(subnet: str) -> bool:
    return parse_subnet(subnet) is not None


def ip_in_subnet(ip: str, subnet: str) -> bool:
    network = parse_subnet(subnet)
    if network is None or not is_valid_ip(ip):
        return False
    return ipaddress.IPv4Address(ip) in network


def is_reserved_ip(ip: str, subnet: str) -> bool:
    """Network, broadcast or gateway (first host) address of ``subnet``."""
    network = parse_subnet(subnet)
    if network is None or not is_valid_ip(ip):
        return False
    address = ipaddress.IPv4Address(ip)
    return address in (
        network.network_address,
        network.broadcast_address,
        network.network_address + 1,
    )


def parse_wei(amount: str) -> Optional[int]:
    """Parse a positive integer wei amount; None when malformed or not positive."""
    try:
        value = int(str(amount).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def parse_gas_limit(gas_limit: str) -> Optional[int]:
    try:
        return int(str(gas_limit), 16)
    except (TypeError, ValueError):
        return None


def signer_nodes(nodes: list[NodeSpec]) -> list[NodeSpec]:
    return [n for n in nodes if n.role is Role.SIGNER]


def fault_tolerance(validators: int) -> int:
    """Byzantine faults tolerated by ``validators`` nodes: floor((n-1)/3)."""
    return max(0, (validators - 1) // 3)


class TopologyValidator:
    """Validates NetworkSpec + NodeSpec lists into a list of findings.

    Uniqueness against other networks uses the tracked descriptors of
    ``store`` and, when given, the networks known to ``runtime``.
    """

    def __init__(self, store=None, runtime=None):
        self.store = store
        self.runtime = runtime

    def validate(
        self,
        spec: NetworkSpec,
        nodes: list[NodeSpec],
        *,
        associations: Optional[list[SignerAssociation]] = None,
        existing: bool = False,
        auto_resolve_subnet: bool = True,
    ) -> list[ValidationFinding]:
        """Validate a topology.

        Args:
            spec: Network-wide parameters.
            nodes: Full node set of the topology.
            associations: Signer associations of an existing network. When
                None, creation rules apply (one signer account per signer node).
            existing: The network already exists; skip the checks that
                would flag its own name as taken.
            auto_resolve_subnet: Subnets claimed by other runtime networks
                will be resolved by the runtime adapter, so they are not
                reported here. Tracked networks are always checked.

        Returns:
            All findings, in pass order. Empty when the topology is valid.
        """
        findings: list[ValidationFinding] = []
        self._check_network(spec, findings, existing, auto_resolve_subnet)
        self._check_nodes(spec, nodes, findings)
        self._check_consensus(spec, nodes, findings)
        self._check_accounts(spec, findings)
        self._check_signers(spec, nodes, associations, findings)
        self._check_coherence(spec, nodes, findings)
        if findings:
            logger.debug("Topology %s produced %d findings", spec.name, len(findings))
        return findings

    def validate_accounts(self, spec: NetworkSpec) -> list[ValidationFinding]:
        """Account rules only, for account updates on an existing network."""
        findings: list[ValidationFinding] = []
        self._check_accounts(spec, findings)
        return findings

    # Network parameters

    def _check_network(self, spec, findings, existing, auto_resolve_subnet):
        add = _adder(findings)

        if not spec.name or not spec.name.strip():
            add("name", REQUIRED, "Network name is required")
        else:
            if not is_valid_name(spec.name):
                add(
                    "name",
                    MALFORMED,
                    "Network name can only contain letters, numbers, hyphens and underscores",
                )
            if not existing:
                if self.store is not None and self.store.exists(spec.name):
                    add("name", DUPLICATE, f"Network '{spec.name}' is already tracked")
                elif self.runtime is not None and self.runtime.network_exists(spec.name):
                    add(
                        "name",
                        DUPLICATE,
                        f"Docker network with name '{spec.name}' already exists",
                    )

        tracked = self.store.tracked_networks(exclude=spec.name) if self.store else []

        if isinstance(spec.chain_id, bool) or not isinstance(spec.chain_id, int) or spec.chain_id <= 0:
            add("chain_id", MALFORMED, "Chain ID must be a positive integer")
        else:
            if spec.chain_id in RESERVED_CHAIN_IDS:
                add(
                    "chain_id",
                    INVALID,
                    f"Chain ID {spec.chain_id} is reserved for public networks. "
                    "Use a custom chain ID > 1000",
                )
            if any(d.spec.chain_id == spec.chain_id for d in tracked):
                add(
                    "chain_id",
                    DUPLICATE,
                    f"Chain ID {spec.chain_id} is already in use by another local network",
                )

        if not is_valid_subnet(spec.subnet):
            add(
                "subnet",
                MALFORMED,
                "Invalid subnet format. Expected format: xxx.xxx.xxx.xxx/xx "
                f"with a mask between /{MIN_SUBNET_MASK} and /{MAX_SUBNET_MASK}",
            )
        elif not existing:
            if any(_same_subnet(d.spec.subnet, spec.subnet) for d in tracked):
                add(
                    "subnet",
                    DUPLICATE,
                    f"Subnet {spec.subnet} is already in use by another local network",
                )
            elif (
                not auto_resolve_subnet
                and self.runtime is not None
                and not self.runtime.subnet_available(spec.subnet)
            ):
                add(
                    "subnet",
                    DUPLICATE,
                    f"Subnet {spec.subnet} is already in use by another Docker network",
                )

        gas_limit = parse_gas_limit(spec.gas_limit)
        if gas_limit is None or not MIN_GAS_LIMIT <= gas_limit <= MAX_GAS_LIMIT:
            add(
                "gas_limit",
                OUT_OF_RANGE,
                f"Gas limit must be between {MIN_GAS_LIMIT:,} ({hex(MIN_GAS_LIMIT)}) "
                f"and {MAX_GAS_LIMIT:,} ({hex(MAX_GAS_LIMIT)})",
            )

        if spec.block_time is not None:
            if (
                isinstance(spec.block_time, bool)
                or not isinstance(spec.block_time, int)
                or not MIN_BLOCK_TIME <= spec.block_time <= MAX_BLOCK_TIME
            ):
                add(
                    "block_time",
                    OUT_OF_RANGE,
                    f"Block time must be between {MIN_BLOCK_TIME} and {MAX_BLOCK_TIME} seconds",
                )

    # Nodes

    def _check_nodes(self, spec, nodes, findings):
        add = _adder(findings)
        if not nodes:
            add("nodes", REQUIRED, "At least one node must be defined")
            return

        names: set[str] = set()
        ips: set[str] = set()
        rpc_endpoints: set[str] = set()
        p2p_endpoints: set[str] = set()
        explicit_p2p = any(n.p2p_port is not None for n in nodes)

        for index, node in enumerate(nodes):
            prefix = f"nodes[{index}]"

            if not node.name or not node.name.strip():
                add(f"{prefix}.name", REQUIRED, f"Node {index} name is required")
            else:
                if not is_valid_name(node.name):
                    add(
                        f"{prefix}.name",
                        MALFORMED,
                        f"Node {index} name can only contain letters, numbers, "
                        "hyphens and underscores",
                    )
                if node.name in names:
                    add(
                        f"{prefix}.name",
                        DUPLICATE,
                        f"Node name '{node.name}' is duplicated within the network",
                    )
                names.add(node.name)

            if not is_valid_ip(node.ip):
                add(f"{prefix}.ip", MALFORMED, f"Node {index} IP address format is invalid")
            else:
                if node.ip in ips:
                    add(
                        f"{prefix}.ip",
                        DUPLICATE,
                        f"Node {index} IP address '{node.ip}' is duplicated within the network",
                    )
                ips.add(node.ip)
                if is_valid_subnet(spec.subnet):
                    if not ip_in_subnet(node.ip, spec.subnet):
                        add(
                            f"{prefix}.ip",
                            INVALID,
                            f"Node {index} IP '{node.ip}' is not in the configured "
                            f"subnet '{spec.subnet}'",
                        )
                    elif is_reserved_ip(node.ip, spec.subnet):
                        add(
                            f"{prefix}.ip",
                            INVALID,
                            f"Node {index} IP '{node.ip}' is a reserved IP address "
                            "(network, broadcast, or gateway)",
                        )

            rpc_ok = self._check_port(add, f"{prefix}.rpc_port", index, "RPC", node.rpc_port)
            if rpc_ok:
                endpoint = f"{node.ip}:{node.rpc_port}"
                if endpoint in rpc_endpoints:
                    add(
                        f"{prefix}.rpc_port",
                        DUPLICATE,
                        f"Node {index} RPC endpoint {endpoint} is duplicated within the network",
                    )
                rpc_endpoints.add(endpoint)

            p2p_ok = self._check_port(add, f"{prefix}.p2p_port", index, "P2P", node.peer_port)
            if p2p_ok:
                endpoint = f"{node.ip}:{node.peer_port}"
                if endpoint in p2p_endpoints:
                    add(
                        f"{prefix}.p2p_port",
                        DUPLICATE,
                        f"Node {index} P2P endpoint {endpoint} is duplicated within the network",
                    )
                p2p_endpoints.add(endpoint)
                if node.peer_port == node.rpc_port:
                    add(
                        f"{prefix}.p2p_port",
                        INVALID,
                        f"Node {index} P2P port {node.peer_port} cannot be the same as RPC port",
                    )
                if explicit_p2p and node.p2p_port is None:
                    add(
                        f"{prefix}.p2p_port",
                        INVALID,
                        f"Node {index} should specify P2P port explicitly for consistency "
                        "with other nodes in the network",
                    )

            if not isinstance(node.role, Role):
                add(f"{prefix}.role", INVALID, f"Node {index} role '{node.role}' is invalid")

    @staticmethod
    def _check_port(add, field, index, label, port) -> bool:
        if isinstance(port, bool) or not isinstance(port, int) or not MIN_PORT <= port <= MAX_PORT:
            add(field, OUT_OF_RANGE, f"Node {index} {label} port must be between {MIN_PORT} and {MAX_PORT}")
            return False
        if port in RESERVED_PORTS:
            add(field, INVALID, f"Node {index} {label} port {port} is a system reserved port")
        return True

    # Consensus quorum

    def _check_consensus(self, spec, nodes, findings):
        add = _adder(findings)
        counts = Counter(n.role for n in nodes)
        total = len(nodes)
        bootstraps = counts[Role.BOOTSTRAP]
        signers = counts[Role.SIGNER]
        queries = counts[Role.QUERY]
        relays = counts[Role.RELAY]

        if bootstraps == 0:
            add("nodes", REQUIRED, "At least one bootnode is required for any consensus mechanism")
        if total < 2:
            add("nodes", REQUIRED, "At least 2 nodes are required for a functional blockchain network")

        if spec.consensus is ConsensusKind.AUTHORITY_ROUND:
            if signers == 0:
                add("consensus", REQUIRED, "Clique consensus requires at least one miner node (signer)")
            if signers == 2:
                add(
                    "consensus",
                    INVALID,
                    "Clique consensus with exactly 2 miners can cause network splits. "
                    "Use 1, 3, or more miners for better stability",
                )
            if signers > 0 and signers % 2 == 0:
                add(
                    "consensus",
                    INVALID,
                    f"Clique consensus with {signers} miners (even number) may cause issues. "
                    "Consider using an odd number of miners for better consensus",
                )
            if total > MAX_AUTHORITY_ROUND_NODES:
                add(
                    "consensus",
                    INVALID,
                    f"Clique consensus is not recommended for networks with more than "
                    f"{MAX_AUTHORITY_ROUND_NODES} nodes due to performance limitations",
                )
        elif spec.consensus.is_bft:
            label = spec.consensus.label
            validators = signers + relays
            if validators < MIN_BFT_VALIDATORS:
                add(
                    "consensus",
                    REQUIRED,
                    f"{label} consensus requires at least {MIN_BFT_VALIDATORS} validator nodes "
                    f"(miners + validator nodes). Currently: {validators}",
                )
            if fault_tolerance(validators) == 0 and validators > 1:
                add(
                    "consensus",
                    INVALID,
                    f"With {validators} validators, {label} cannot tolerate any faults. "
                    f"Use at least {MIN_BFT_VALIDATORS} validators for fault tolerance",
                )
            if validators > MAX_BFT_VALIDATORS:
                add(
                    "consensus",
                    INVALID,
                    f"{label} consensus is not recommended for networks with more than "
                    f"{MAX_BFT_VALIDATORS} validators due to performance limitations",
                )
            if signers == 0:
                add(
                    "consensus",
                    REQUIRED,
                    f"{label} consensus requires at least one miner node to produce blocks",
                )

        if signers + queries + relays == 0:
            add(
                "nodes",
                REQUIRED,
                "Network must have at least one active node (miner, rpc, or validator) "
                "besides bootnodes",
            )
        if total > 0 and bootstraps == total:
            add(
                "nodes",
                INVALID,
                "Network cannot consist only of bootnodes. Add miner, rpc, or validator nodes",
            )
        if total > LARGE_NETWORK_NODES and queries == 0:
            add(
                "nodes",
                INVALID,
                f"For networks with more than {LARGE_NETWORK_NODES} nodes, consider adding "
                "dedicated RPC nodes for better performance",
            )

    # Accounts

    def _check_accounts(self, spec, findings):
        add = _adder(findings)
        seen: set[str] = set()

        cap = MAX_BFT_SIGNERS if spec.consensus.is_bft else MAX_AUTHORITY_ROUND_SIGNERS
        if len(spec.signer_accounts) > cap:
            add(
                "signer_accounts",
                OUT_OF_RANGE,
                f"{spec.consensus.label} consensus supports a maximum of {cap} signers "
                "for optimal performance",
            )

        self._check_account_list(add, "signer_accounts", "Signer account", spec.signer_accounts, seen)
        self._check_account_list(add, "accounts", "Account", spec.accounts, seen)

    @staticmethod
    def _check_account_list(add, field, label, accounts: list[Account], seen: set[str]):
        for index, account in enumerate(accounts):
            prefix = f"{field}[{index}]"
            if not is_valid_address(account.address):
                add(
                    f"{prefix}.address",
                    MALFORMED,
                    f"{label} {index} address must be a valid Ethereum address (0x + 40 hex)",
                )
            else:
                lowered = account.address.lower()
                if lowered in seen:
                    add(f"{prefix}.address", DUPLICATE, f"{label} {index} address is duplicated")
                seen.add(lowered)

            amount = parse_wei(account.balance)
            if amount is None:
                add(
                    f"{prefix}.balance",
                    MALFORMED,
                    f"{label} {index} wei amount must be a valid positive number",
                )
            elif amount > MAX_WEI_AMOUNT:
                add(
                    f"{prefix}.balance",
                    OUT_OF_RANGE,
                    f"{label} {index} wei amount should be between 1 wei and 10^24 wei "
                    "(1,000,000 ETH max)",
                )

    # Signer associations

    def _check_signers(self, spec, nodes, associations, findings):
        add = _adder(findings)
        signer_node_names = [n.name for n in signer_nodes(nodes)]
        account_count = len(spec.signer_accounts)

        if associations is None:
            if spec.consensus is ConsensusKind.AUTHORITY_ROUND and account_count and (
                len(signer_node_names) != account_count
            ):
                add(
                    "signer_accounts",
                    INVALID,
                    f"Clique requires one signer account per miner node "
                    f"({len(signer_node_names)} miner nodes, {account_count} signer accounts)",
                )
            return

        known = {a.address.lower() for a in spec.signer_accounts}
        by_node = {a.node: a for a in associations}
        claimed: Counter = Counter(a.address.lower() for a in associations)
        requires_account = spec.consensus is ConsensusKind.AUTHORITY_ROUND or account_count > 0

        for name in signer_node_names:
            association = by_node.get(name)
            if association is None:
                if requires_account:
                    add(
                        "signer_accounts",
                        REQUIRED,
                        f"Miner node '{name}' has no matching unused signer account",
                    )
                continue
            if association.address.lower() not in known:
                add(
                    "signer_accounts",
                    INVALID,
                    f"Miner node '{name}' is associated with unknown signer account "
                    f"{association.address}",
                )
            if claimed[association.address.lower()] > 1:
                add(
                    "signer_accounts",
                    DUPLICATE,
                    f"Signer account {association.address} is associated with more than one miner",
                )

        if spec.consensus is ConsensusKind.AUTHORITY_ROUND:
            # Clique pairs miners and signer accounts one-to-one
            unclaimed = known - set(claimed)
            for index, account in enumerate(spec.signer_accounts):
                if account.address.lower() in unclaimed:
                    add(
                        f"signer_accounts[{index}]",
                        INVALID,
                        f"Signer account {account.address} has no matching miner node",
                    )

        stale = set(by_node) - set(signer_node_names)
        for name in sorted(stale):
            add(
                "signer_associations",
                INVALID,
                f"Signer association references '{name}', which is not a miner node",
            )

    # Coherence heuristics

    def _check_coherence(self, spec, nodes, findings):
        add = _adder(findings)
        if not nodes:
            return

        segments = sorted({n.ip.rsplit(".", 1)[0] for n in nodes if is_valid_ip(n.ip)})
        if len(segments) > 1:
            add(
                "nodes",
                INVALID,
                "All node IPs should be in the same network segment. "
                f"Found segments: {', '.join(segments)}",
            )

        rpc_ports = [n.rpc_port for n in nodes if isinstance(n.rpc_port, int)]
        if rpc_ports and max(rpc_ports) - min(rpc_ports) > MAX_RPC_PORT_SPAN:
            add(
                "nodes",
                INVALID,
                f"RPC ports span too wide a range ({min(rpc_ports)}-{max(rpc_ports)}). "
                "Consider using a more compact range",
            )

        miner_ports = sorted(
            n.rpc_port for n in signer_nodes(nodes) if isinstance(n.rpc_port, int)
        )
        for low, high in zip(miner_ports, miner_ports[1:]):
            if high - low == 1:
                add(
                    "nodes",
                    INVALID,
                    f"Miner nodes should not use consecutive RPC ports ({low} and {high}) "
                    "to avoid potential conflicts",
                )

        total = len(nodes)
        counts = Counter(n.role for n in nodes)
        if total > BALANCED_NETWORK_THRESHOLD:
            if counts[Role.BOOTSTRAP] / total > MAX_BOOTSTRAP_RATIO:
                add(
                    "nodes",
                    INVALID,
                    f"Too many bootnodes relative to total nodes "
                    f"({counts[Role.BOOTSTRAP]}/{total})",
                )
            if counts[Role.SIGNER] / total > MAX_SIGNER_RATIO:
                add(
                    "nodes",
                    INVALID,
                    f"Too many miners relative to total nodes ({counts[Role.SIGNER]}/{total}). "
                    "Consider adding RPC or validator nodes for better balance",
                )
            if counts[Role.QUERY] == 0 and total > QUERY_NODE_THRESHOLD:
                add(
                    "nodes",
                    INVALID,
                    f"Large networks (>{QUERY_NODE_THRESHOLD} nodes) should include "
                    "dedicated RPC nodes for better client connectivity",
                )

        if total > NAMING_CONVENTION_THRESHOLD and not (
            _has_sequential_naming(nodes) or _has_role_naming(nodes)
        ):
            add(
                "nodes",
                INVALID,
                f"For networks with more than {NAMING_CONVENTION_THRESHOLD} nodes, use a "
                "consistent naming convention (node1, node2... or bootnode1, miner1, rpc1...)",
            )


def _adder(findings: list[ValidationFinding]):
    def add(field: str, category: FindingCategory, message: str) -> None:
        findings.append(ValidationFinding(field, category, message))

    return add


def _same_subnet(left: str, right: str) -> bool:
    a, b = parse_subnet(left), parse_subnet(right)
    return a is not None and b is not None and a.overlaps(b)


def _has_sequential_naming(nodes: list[NodeSpec]) -> bool:
    matching = sum(1 for n in nodes if _SEQUENTIAL_NAME_RE.match(n.name or ""))
    return matching > len(nodes) * NAMING_CONVENTION_RATIO


def _has_role_naming(nodes: list[NodeSpec]) -> bool:
    matching = 0
    for node in nodes:
        if not isinstance(node.role, Role):
            continue
        pattern = rf"^({node.role.value}|{node.role.name.lower()})\d*$"
        if re.match(pattern, node.name or "", re.IGNORECASE):
            matching += 1
    return matching > len(nodes) * NAMING_CONVENTION_RATIO


def ether_to_wei(amount) -> int:
    """Convert a decimal ether amount ("100", "1000.5") to wei.

    Raises:
        ValueError: If ``amount`` is not a decimal number.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid ether amount: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid ether amount: {amount!r}")
    return int(value * WEI_PER_ETHER)


def validate_initial_balance(amount) -> list[ValidationFinding]:
    """Findings for the block producer's initial balance, given in ether."""
    if amount is None:
        return []
    try:
        wei = ether_to_wei(amount)
    except ValueError:
        return [
            ValidationFinding(
                "initial_balance",
                MALFORMED,
                'Initial balance must be a valid ETH amount (e.g., "100", "1000.5")',
            )
        ]
    if wei <= 0 or wei > MAX_INITIAL_BALANCE_ETHER * WEI_PER_ETHER:
        return [
            ValidationFinding(
                "initial_balance",
                OUT_OF_RANGE,
                f"Initial balance should be between 0 and {MAX_INITIAL_BALANCE_ETHER:,} ETH",
            )
        ]
    return []
