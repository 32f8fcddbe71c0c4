"""
TopologyUpdater - diff-and-apply engine for existing networks.

Every change is validated against the merged topology before any file is
written. Genesis is never regenerated: requests touching consensus, chain
id, gas limit, block time or the genesis signer set raise
GenesisImmutableError and must be expressed as a new network instead.
"""

import logging
from dataclasses import replace
from typing import Any, Optional

from rich.console import Console

from besubox.commands.constants import DEFAULT_IMAGE, NODE_CONFIG_FILE
from besubox.commands.errors import (
    ConfigurationError,
    GenesisImmutableError,
    InsufficientFundsError,
    TopologyValidationError,
)
from besubox.commands.keys import KeyManager
from besubox.commands.models import (
    Account,
    FindingCategory,
    NetworkDescriptor,
    NetworkState,
    Role,
    UpdateRequest,
    UpdateResult,
    ValidationFinding,
)
from besubox.commands.node_config import rewrite_bootnodes
from besubox.commands.orchestrator import NetworkOrchestrator, associate_signers
from besubox.commands.rpc import RpcClient
from besubox.commands.runtime import NetworkRuntimeAdapter, rebase_nodes
from besubox.commands.storage import NetworkStore
from besubox.commands.validation import TopologyValidator, is_valid_subnet, parse_subnet

console = Console()
logger = logging.getLogger(__name__)

# Request keys that could only be honoured by a new genesis document
GENESIS_FIELDS = {
    "consensus": "consensus",
    "chain_id": "chain_id",
    "chainId": "chain_id",
    "gas_limit": "gas_limit",
    "gasLimit": "gas_limit",
    "block_time": "block_time",
    "blockTime": "block_time",
}


def parse_update_request(data: dict[str, Any]) -> UpdateRequest:
    """Build an UpdateRequest, refusing genesis-level changes.

    Raises:
        GenesisImmutableError: If ``data`` touches a genesis field.
        ConfigurationError: If ``data`` is malformed.
    """
    if isinstance(data, dict):
        for key in data:
            if key in GENESIS_FIELDS:
                raise _immutable(GENESIS_FIELDS[key])
    return UpdateRequest.from_dict(data)


def _immutable(field: str) -> GenesisImmutableError:
    return GenesisImmutableError(
        f"Changing {field} requires a new genesis; create a new network "
        "(new name and chain id) instead",
        field=field,
    )


def _finding(field: str, category: FindingCategory, message: str) -> ValidationFinding:
    return ValidationFinding(field, category, message)


class TopologyUpdater:
    """Applies node additions, removals and in-place updates."""

    def __init__(
        self,
        store: NetworkStore,
        runtime: Optional[NetworkRuntimeAdapter] = None,
        client_factory=RpcClient,
        **orchestrator_options: Any,
    ):
        self.store = store
        self.runtime = runtime
        self.client_factory = client_factory
        self.orchestrator_options = orchestrator_options

    def _orchestrator(self, network_name: str) -> NetworkOrchestrator:
        return NetworkOrchestrator.load(
            network_name,
            self.store,
            self.runtime,
            client_factory=self.client_factory,
            **self.orchestrator_options,
        )

    # Nodes

    def plan(
        self, descriptor: NetworkDescriptor, request: UpdateRequest
    ) -> tuple[NetworkDescriptor, list[ValidationFinding], dict[str, set[str]]]:
        """Compute the merged descriptor and its findings without writing.

        Returns:
            (merged descriptor, findings, {"added", "removed", "updated"} name sets)
        """
        findings: list[ValidationFinding] = []
        current = {n.name: n for n in descriptor.nodes}

        removed: set[str] = set()
        for index, name in enumerate(request.remove):
            if name not in current:
                findings.append(
                    _finding(f"remove[{index}]", FindingCategory.MISSING_REQUIRED, f"Node '{name}' does not exist")
                )
            elif name in removed:
                findings.append(
                    _finding(f"remove[{index}]", FindingCategory.DUPLICATE, f"Node '{name}' is listed twice")
                )
            removed.add(name)

        nodes = [n for n in descriptor.nodes if n.name not in removed]
        updated: set[str] = set()
        for index, change in enumerate(request.update):
            position = next((i for i, n in enumerate(nodes) if n.name == change.name), None)
            if position is None:
                findings.append(
                    _finding(
                        f"update[{index}].name",
                        FindingCategory.MISSING_REQUIRED,
                        f"Node '{change.name}' does not exist or is being removed",
                    )
                )
                continue
            if change.name in updated:
                findings.append(
                    _finding(f"update[{index}].name", FindingCategory.DUPLICATE, f"Node '{change.name}' is updated twice")
                )
            node = nodes[position]
            nodes[position] = replace(
                node,
                ip=change.ip if change.ip is not None else node.ip,
                rpc_port=change.rpc_port if change.rpc_port is not None else node.rpc_port,
                p2p_port=change.p2p_port if change.p2p_port is not None else node.p2p_port,
            )
            updated.add(change.name)

        added: set[str] = set()
        remaining = {n.name for n in nodes}
        for index, node in enumerate(request.add):
            if node.name in remaining:
                findings.append(
                    _finding(
                        f"add[{index}].name",
                        FindingCategory.DUPLICATE,
                        f"Node '{node.name}' already exists in the network",
                    )
                )
                continue
            nodes.append(node)
            remaining.add(node.name)
            added.add(node.name)

        spec = replace(
            descriptor.spec,
            signer_accounts=descriptor.spec.signer_accounts + list(request.signer_accounts),
        )
        survivors = [a for a in descriptor.associations if a.node not in removed]
        associations = associate_signers(nodes, spec.signer_accounts, existing=survivors)

        validator = TopologyValidator(self.store)
        findings += validator.validate(spec, nodes, associations=associations, existing=True)

        merged = NetworkDescriptor(
            spec=spec, nodes=nodes, associations=associations, state=descriptor.state
        )
        return merged, findings, {"added": added, "removed": removed, "updated": updated}

    def apply(
        self,
        network_name: str,
        request: UpdateRequest,
        *,
        start_after_update: bool = False,
        image: str = DEFAULT_IMAGE,
    ) -> UpdateResult:
        """Validate and apply ``request`` to a network.

        Returns:
            UpdateResult; on findings ``success`` is False and nothing is written.

        Raises:
            NetworkStateError: If the network does not exist.
            NetworkBusyError: If another create/apply is in flight.
        """
        with self.store.lock(network_name):
            # Validation reads the descriptor under the same lock as the write
            orchestrator = self._orchestrator(network_name)
            descriptor = orchestrator.descriptor
            merged, findings, changes = self.plan(descriptor, request)
            if findings:
                console.print(
                    f"[red]✗ Update of {network_name} rejected with {len(findings)} findings[/red]"
                )
                return UpdateResult(findings=findings)
            self._write(orchestrator, descriptor, merged, changes)

        result = UpdateResult(
            nodes_added=sorted(changes["added"]),
            nodes_removed=sorted(changes["removed"]),
            nodes_updated=sorted(changes["updated"]),
            success=True,
        )
        console.print(
            f"[green]✓ Updated {network_name}: {len(result.nodes_added)} added, "
            f"{len(result.nodes_removed)} removed, {len(result.nodes_updated)} updated[/green]"
        )

        if start_after_update:
            orchestrator.start(image)
        return result

    def _write(self, orchestrator, previous, merged, changes) -> None:
        name = merged.name
        keys = KeyManager(self.store, name)
        old_bootnodes = self._bootnode_enodes(previous, keys, changes["removed"])

        for node_name in sorted(changes["removed"]):
            node = previous.node(node_name)
            if previous.state is NetworkState.RUNNING:
                orchestrator.runtime.remove_node(name, node)
            self.store.remove(name, node_name)
            console.print(f"[green]✓ Removed node {node_name}[/green]")

        identities = {n.name: keys.identity_for(n.name, n.ip, n.peer_port) for n in merged.nodes}
        touched = changes["added"] | changes["updated"]
        orchestrator.write_configs(merged, identities, only=touched)

        new_bootnodes = [identities[n.name].enode for n in merged.nodes_by_role(Role.BOOTSTRAP)]
        if old_bootnodes != new_bootnodes:
            for node in merged.nodes:
                if node.name in touched or node.role is Role.BOOTSTRAP:
                    continue
                path = self.store.node_path(name, node.name) / NODE_CONFIG_FILE
                if not rewrite_bootnodes(path, node.name, new_bootnodes):
                    orchestrator.write_configs(merged, identities, only={node.name})

        orchestrator.descriptor = merged
        self.store.save_descriptor(merged)

    def _bootnode_enodes(self, descriptor, keys: KeyManager, removed: set[str]) -> list[Optional[str]]:
        enodes = []
        for node in descriptor.nodes_by_role(Role.BOOTSTRAP):
            if node.name in removed:
                enodes.append(None)
                continue
            identity = keys.load(node.name)
            enodes.append(identity.enode if identity else None)
        return enodes

    # Network-level changes

    def update_network(self, network_name: str, changes: dict[str, Any]) -> NetworkDescriptor:
        """Apply network-level changes. Only the subnet can move in place.

        Raises:
            GenesisImmutableError: For consensus, chain id, gas limit or block time.
            ConfigurationError: For unknown fields.
        """
        for key in changes:
            if key in GENESIS_FIELDS:
                raise _immutable(GENESIS_FIELDS[key])
            if key != "subnet":
                raise ConfigurationError(f"Unsupported network update field: {key}")
        descriptor = self._orchestrator(network_name).descriptor
        if "subnet" in changes and changes["subnet"] != descriptor.spec.subnet:
            return self.update_subnet(network_name, changes["subnet"])
        return descriptor

    def update_subnet(self, network_name: str, new_subnet: str) -> NetworkDescriptor:
        """Move a network to ``new_subnet``, keeping every node's host offset.

        Containers are stopped and the runtime network recreated; enodes are
        re-derived and configs re-rendered. Keys are unchanged.

        Raises:
            TopologyValidationError: If the subnet is invalid, claimed, or the
                rebased topology does not validate.
        """
        orchestrator = self._orchestrator(network_name)
        descriptor = orchestrator.descriptor
        runtime = orchestrator.runtime

        findings: list[ValidationFinding] = []
        if not is_valid_subnet(new_subnet):
            raise TopologyValidationError(
                [_finding("subnet", FindingCategory.MALFORMED, f"Invalid subnet format: {new_subnet}")]
            )
        wanted = parse_subnet(new_subnet)
        for other in self.store.tracked_networks(exclude=network_name):
            claimed = parse_subnet(other.spec.subnet)
            if claimed is not None and wanted.overlaps(claimed):
                findings.append(
                    _finding(
                        "subnet",
                        FindingCategory.DUPLICATE,
                        f"Subnet {new_subnet} is already in use by network '{other.name}'",
                    )
                )
        if not runtime.subnet_available(new_subnet, ignore=network_name):
            findings.append(
                _finding(
                    "subnet",
                    FindingCategory.DUPLICATE,
                    f"Subnet {new_subnet} is already in use by another Docker network",
                )
            )

        nodes = rebase_nodes(descriptor.nodes, descriptor.spec.subnet, new_subnet)
        spec = replace(descriptor.spec, subnet=new_subnet)
        findings += TopologyValidator(self.store).validate(
            spec, nodes, associations=descriptor.associations, existing=True
        )
        if findings:
            raise TopologyValidationError(findings, message="Subnet update validation failed")

        with self.store.lock(network_name):
            orchestrator.stop()
            runtime.teardown_network(network_name)
            runtime.ensure_network(network_name, new_subnet, auto_resolve=False)

            moved = NetworkDescriptor(
                spec=spec,
                nodes=nodes,
                associations=list(descriptor.associations),
                state=orchestrator.state,
            )
            orchestrator.write_configs(moved)
            orchestrator.descriptor = moved
            self.store.save_descriptor(moved)

        console.print(f"[green]✓ Network {network_name} moved to {new_subnet}[/green]")
        return moved

    # Accounts

    async def update_accounts(
        self,
        network_name: str,
        accounts: list[Account],
        transfer: bool = False,
        private_key: Optional[str] = None,
    ) -> dict[str, Any]:
        """Merge prefunded accounts into the descriptor, optionally topping them up.

        Genesis is not modified; with ``transfer`` the balances are reached
        through transfers from the funding source. The descriptor is only
        written when every transfer succeeded.

        Raises:
            TopologyValidationError: If an account is malformed or duplicated.
            InsufficientFundsError: If the source cannot cover the transfers.
        """
        orchestrator = self._orchestrator(network_name)
        descriptor = orchestrator.descriptor

        merged = [Account(a.address, a.balance) for a in descriptor.spec.accounts]
        for account in accounts:
            existing = next(
                (a for a in merged if a.address.lower() == account.address.lower()), None
            )
            if existing is not None:
                existing.balance = account.balance
            else:
                merged.append(Account(account.address, account.balance))
        spec = replace(descriptor.spec, accounts=merged)

        findings = TopologyValidator().validate_accounts(spec)
        if findings:
            raise TopologyValidationError(findings, message="Account update validation failed")

        transfers: list[dict[str, Any]] = []
        if transfer:
            async with self.client_factory(orchestrator.rpc_url()) as client:
                funder = orchestrator.funder(client, private_key)
                try:
                    transfers = await funder.top_up(accounts)
                except InsufficientFundsError:
                    console.print("[red]✗ Transfers stopped, accounts not saved[/red]")
                    raise
            if not all(t.get("success") for t in transfers):
                console.print("[yellow]⚠️  Some transfers failed, accounts not saved[/yellow]")
                return {"success": False, "config_updated": False, "transfers": transfers}

        with self.store.lock(network_name):
            descriptor.spec = spec
            self.store.save_descriptor(descriptor)

        console.print(f"[green]✓ Saved {len(accounts)} accounts for {network_name}[/green]")
        return {"success": True, "config_updated": True, "transfers": transfers}
