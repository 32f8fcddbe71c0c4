"""
NetworkOrchestrator - lifecycle facade for one besubox network.

State machine, persisted in the network descriptor::

    UNPROVISIONED -> CREATED -> RUNNING <-> STOPPED -> DESTROYED

``create`` validates first and fails with every finding before touching
the runtime or the store. ``start`` launches nodes sequentially in role
order with a settling delay. ``stop`` and ``destroy`` are idempotent.
Liveness checks run concurrently and never raise.
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Optional

from rich.console import Console

from besubox.commands.constants import (
    DEFAULT_IMAGE,
    DEFAULT_PRODUCER_BALANCE,
    ERROR_NODE_NOT_FOUND,
    MAX_BLOCK_SPREAD,
    NODE_CONFIG_FILE,
    NODE_SETTLE_DELAY,
    LIVENESS_TIMEOUT,
    SYNC_POLL_INTERVAL,
    SYNC_WAIT_TIMEOUT,
)
from besubox.commands.errors import (
    ClientError,
    FundingError,
    NetworkStateError,
    NodeError,
    TopologyValidationError,
)
from besubox.commands.funding import Funder, source_key_for
from besubox.commands.genesis import GenesisBuilder, extra_data_signers
from besubox.commands.keys import KeyManager
from besubox.commands.models import (
    Account,
    ConsensusKind,
    NetworkDescriptor,
    NetworkSpec,
    NetworkState,
    NodeIdentity,
    NodeSpec,
    NodeStatus,
    Role,
    SignerAssociation,
)
from besubox.commands.node_config import NodeConfigGenerator
from besubox.commands.retry import LIVENESS_CONFIG
from besubox.commands.rpc import RpcClient, SyncRpcClient
from besubox.commands.runtime import (
    NetworkRuntimeAdapter,
    default_runtime,
    host_rpc_port,
    rebase_nodes,
)
from besubox.commands.storage import NetworkStore
from besubox.commands.validation import (
    TopologyValidator,
    ether_to_wei,
    signer_nodes,
    validate_initial_balance,
)

console = Console()
logger = logging.getLogger(__name__)

STARTABLE_STATES = (NetworkState.CREATED, NetworkState.STOPPED, NetworkState.RUNNING)


def associate_signers(
    nodes: list[NodeSpec],
    accounts: list[Account],
    existing: Optional[list[SignerAssociation]] = None,
) -> list[SignerAssociation]:
    """Pair signer nodes with signer accounts.

    Existing associations are kept; unassociated signer nodes claim unused
    accounts in account order. Nodes left without an account stay
    unassociated, the validator reports them where an account is required.
    """
    signer_names = {n.name for n in signer_nodes(nodes)}
    kept = [a for a in existing or [] if a.node in signer_names]
    claimed = {a.address.lower() for a in kept}
    associated = {a.node for a in kept}
    free = [a.address for a in accounts if a.address.lower() not in claimed]

    result = list(kept)
    for node in signer_nodes(nodes):
        if node.name in associated or not free:
            continue
        result.append(SignerAssociation(node=node.name, address=free.pop(0)))
    return result


class NetworkOrchestrator:
    """Coordinates keys, genesis, configs and containers of one network."""

    def __init__(
        self,
        store: NetworkStore,
        runtime: Optional[NetworkRuntimeAdapter] = None,
        descriptor: Optional[NetworkDescriptor] = None,
        client_factory: Callable[..., RpcClient] = RpcClient,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self._runtime = runtime
        self.descriptor = descriptor
        self.client_factory = client_factory
        self._sleep = sleep
        self.genesis_builder = GenesisBuilder()
        self.config_generator = NodeConfigGenerator()

    @classmethod
    def load(
        cls,
        name: str,
        store: NetworkStore,
        runtime: Optional[NetworkRuntimeAdapter] = None,
        **kwargs: Any,
    ) -> "NetworkOrchestrator":
        """Rebuild an orchestrator from the persisted descriptor.

        Raises:
            NetworkStateError: If no descriptor exists for ``name``.
        """
        return cls(store, runtime, store.load_descriptor(name), **kwargs)

    @property
    def runtime(self) -> NetworkRuntimeAdapter:
        if self._runtime is None:
            self._runtime = NetworkRuntimeAdapter(default_runtime())
        return self._runtime

    @property
    def name(self) -> str:
        return self._require_descriptor().name

    @property
    def state(self) -> NetworkState:
        if self.descriptor is None:
            return NetworkState.UNPROVISIONED
        return self.descriptor.state

    def keys(self, network: Optional[str] = None) -> KeyManager:
        return KeyManager(self.store, network or self.name)

    def _require_descriptor(self) -> NetworkDescriptor:
        if self.descriptor is None:
            raise NetworkStateError(
                "Network has not been created", state=NetworkState.UNPROVISIONED.value
            )
        return self.descriptor

    def _set_state(self, state: NetworkState) -> None:
        descriptor = self._require_descriptor()
        descriptor.state = state
        if state is not NetworkState.DESTROYED:
            self.store.save_descriptor(descriptor)

    # Provisioning

    def create(
        self,
        spec: NetworkSpec,
        nodes: list[NodeSpec],
        *,
        auto_resolve_subnet: bool = True,
        initial_balance: Optional[str] = None,
    ) -> NetworkDescriptor:
        """Validate and provision a network without starting it.

        Args:
            spec: Network parameters.
            nodes: Every node of the topology.
            auto_resolve_subnet: Move to a free subnet if the requested one
                is claimed by another runtime network.
            initial_balance: Block producer balance in ether. Defaults to
                10^12 ether.

        Returns:
            The persisted descriptor, in state CREATED.

        Raises:
            TopologyValidationError: If validation produced any finding.
            NetworkBusyError: If another create/apply holds the network lock.
            SubnetConflictError: If the subnet cannot be resolved.
        """
        if self.descriptor is not None and self.descriptor.state is not NetworkState.DESTROYED:
            raise NetworkStateError(
                f"Network '{self.descriptor.name}' already exists",
                network=self.descriptor.name,
                state=self.descriptor.state.value,
            )

        validator = TopologyValidator(self.store, self.runtime)
        findings = validator.validate(spec, nodes, auto_resolve_subnet=auto_resolve_subnet)
        findings += validate_initial_balance(initial_balance)
        if findings:
            raise TopologyValidationError(findings)

        producer_balance = (
            str(ether_to_wei(initial_balance)) if initial_balance is not None else DEFAULT_PRODUCER_BALANCE
        )

        with self.store.lock(spec.name):
            if self.store.exists(spec.name):
                raise NetworkStateError(
                    f"Network '{spec.name}' was created concurrently",
                    network=spec.name,
                    code="NETWORK_EXISTS",
                )
            console.print(f"[bold]Creating network {spec.name} ({spec.consensus.label})...[/bold]")

            subnet = self.runtime.ensure_network(spec.name, spec.subnet, auto_resolve=auto_resolve_subnet)
            if subnet != spec.subnet:
                nodes = rebase_nodes(nodes, spec.subnet, subnet)
                spec = replace(spec, subnet=subnet)
                console.print(f"[cyan]Updated node IPs for new subnet: {subnet}[/cyan]")

            try:
                self.descriptor = self._materialize(spec, nodes, producer_balance)
            except Exception:
                self.store.remove(spec.name)
                self.runtime.teardown_network(spec.name)
                self.descriptor = None
                raise

        console.print(f"[green]✓ Network {spec.name} created with {len(nodes)} nodes[/green]")
        return self.descriptor

    def _materialize(
        self, spec: NetworkSpec, nodes: list[NodeSpec], producer_balance: str
    ) -> NetworkDescriptor:
        keys = KeyManager(self.store, spec.name)
        identities = {n.name: keys.identity_for(n.name, n.ip, n.peer_port) for n in nodes}
        associations = associate_signers(nodes, spec.signer_accounts)

        descriptor = NetworkDescriptor(
            spec=spec, nodes=list(nodes), associations=associations, state=NetworkState.CREATED
        )
        producer = self.block_producer(descriptor, identities)
        genesis = self.genesis_builder.build(spec, associations, producer, producer_balance)
        self.store.save_genesis(spec.name, genesis)

        self.write_configs(descriptor, identities)
        self.store.save_descriptor(descriptor)
        return descriptor

    @staticmethod
    def block_producer(
        descriptor: NetworkDescriptor, identities: dict[str, NodeIdentity]
    ) -> Optional[str]:
        """Address of the first signer node: its signer account, else its own key."""
        signers = descriptor.nodes_by_role(Role.SIGNER)
        if not signers:
            return None
        association = descriptor.association_for(signers[0].name)
        if association is not None:
            return association.address
        return identities[signers[0].name].address

    def write_configs(
        self,
        descriptor: NetworkDescriptor,
        identities: Optional[dict[str, NodeIdentity]] = None,
        only: Optional[set[str]] = None,
    ) -> list[str]:
        """Render and persist configs; ``only`` limits which nodes are written."""
        keys = KeyManager(self.store, descriptor.name)
        identities = dict(identities or {})
        for node in descriptor.nodes:
            if node.name not in identities:
                identities[node.name] = keys.identity_for(node.name, node.ip, node.peer_port)

        bootnodes = [identities[n.name].enode for n in descriptor.nodes_by_role(Role.BOOTSTRAP)]
        written = []
        for node in descriptor.nodes:
            if only is not None and node.name not in only:
                continue
            text = self.config_generator.render(
                node,
                descriptor.spec,
                bootnodes,
                node_address=identities[node.name].address,
            )
            self.store.write_text(descriptor.name, f"{node.name}/{NODE_CONFIG_FILE}", text)
            written.append(node.name)
        return written

    # Lifecycle

    def start(
        self,
        image: str = DEFAULT_IMAGE,
        *,
        auto_create_network: bool = True,
        fail_if_network_absent: bool = False,
        settle_delay: float = NODE_SETTLE_DELAY,
    ) -> list[str]:
        """Launch every node in bootstrap, signer, query, relay order.

        Returns:
            Container names in launch order.

        Raises:
            NetworkStateError: If the network was never created or is
                destroyed, or the runtime network is absent and may not be created.
        """
        descriptor = self._require_descriptor()
        if descriptor.state not in STARTABLE_STATES:
            raise NetworkStateError(
                f"Cannot start network '{descriptor.name}' in state {descriptor.state.value}",
                network=descriptor.name,
                state=descriptor.state.value,
            )
        name = descriptor.name
        console.print(f"[bold]Starting network {name}...[/bold]")

        self.runtime.remove_all(name)

        if not self.runtime.network_exists(name):
            if fail_if_network_absent or not auto_create_network:
                raise NetworkStateError(
                    f"Docker network '{name}' does not exist", network=name, code="NETWORK_ABSENT"
                )
            console.print(f"[yellow]Network {name} not found, creating it...[/yellow]")
            self.runtime.ensure_network(name, descriptor.spec.subnet, auto_resolve=False)

        keys = self.keys()
        order = descriptor.start_order()
        started = []
        for index, node in enumerate(order):
            identity = keys.identity_for(node.name, node.ip, node.peer_port)
            started.append(
                self.runtime.launch_node(name, node, identity, image, self.store.network_path(name))
            )
            if index < len(order) - 1 and settle_delay > 0:
                self._sleep(settle_delay)

        self._set_state(NetworkState.RUNNING)
        console.print(f"[green]✓ All nodes started for network {name}[/green]")
        return started

    def stop(self) -> list[str]:
        """Stop and remove the network's containers. Files survive."""
        if self.descriptor is None or self.descriptor.state is NetworkState.DESTROYED:
            return []
        name = self.descriptor.name
        stopped = self.runtime.stop_all(name)
        self.runtime.remove_all(name)
        if self.descriptor.state is NetworkState.RUNNING:
            self._set_state(NetworkState.STOPPED)
        return stopped

    def destroy(self) -> None:
        """Remove containers, the runtime network and every persisted file."""
        if self.descriptor is None or self.descriptor.state is NetworkState.DESTROYED:
            return
        name = self.descriptor.name
        console.print(f"[bold]Destroying network {name}...[/bold]")
        self.runtime.remove_all(name)
        self.runtime.teardown_network(name)
        self.store.remove(name)
        self._set_state(NetworkState.DESTROYED)
        console.print(f"[green]✓ Network {name} destroyed[/green]")

    # Introspection

    def node(self, node_name: str) -> NodeSpec:
        descriptor = self._require_descriptor()
        node = descriptor.node(node_name)
        if node is None:
            raise NodeError(
                ERROR_NODE_NOT_FOUND.format(node=node_name, network=descriptor.name),
                node_ref=node_name,
                code="NODE_NOT_FOUND",
            )
        return node

    def default_node(self) -> NodeSpec:
        """Preferred node for queries: first query node, else signer, else any."""
        descriptor = self._require_descriptor()
        for role in (Role.QUERY, Role.SIGNER, Role.RELAY, Role.BOOTSTRAP):
            nodes = descriptor.nodes_by_role(role)
            if nodes:
                return nodes[0]
        raise NodeError(f"Network '{descriptor.name}' has no nodes")

    def rpc_url(self, node_name: Optional[str] = None) -> str:
        node = self.node(node_name) if node_name else self.default_node()
        return f"http://localhost:{host_rpc_port(node)}"

    async def check_node(self, node: NodeSpec, timeout: float = LIVENESS_TIMEOUT) -> NodeStatus:
        """Liveness of one node; failures are reported, never raised."""
        try:
            return await asyncio.wait_for(self._check_node(node), timeout=timeout)
        except asyncio.TimeoutError:
            return NodeStatus(node.name, False, error=f"Liveness check timed out after {timeout}s")
        except Exception as e:
            logger.debug("Liveness check of %s failed: %s", node.name, e)
            return NodeStatus(node.name, False, error=str(e))

    async def _check_node(self, node: NodeSpec) -> NodeStatus:
        async with self.client_factory(self.rpc_url(node.name), LIVENESS_CONFIG) as client:
            block_number = await client.block_number()
            try:
                peers = await client.peer_count()
            except ClientError:
                peers = len(await client.admin_peers())
            return NodeStatus(node.name, True, block_number=block_number, peers=peers)

    async def connectivity(self, timeout: float = LIVENESS_TIMEOUT) -> list[NodeStatus]:
        """Check every node concurrently; one status per known node."""
        descriptor = self._require_descriptor()
        return list(
            await asyncio.gather(*(self.check_node(node, timeout) for node in descriptor.nodes))
        )

    async def wait_for_sync(
        self,
        max_wait: float = SYNC_WAIT_TIMEOUT,
        poll_interval: float = SYNC_POLL_INTERVAL,
    ) -> bool:
        """Poll until active nodes are within one block of each other.

        Returns:
            True once synced, False when ``max_wait`` elapses.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait
        while True:
            statuses = await self.connectivity()
            heights = [s.block_number for s in statuses if s.is_active and s.block_number is not None]
            if heights and max(heights) - min(heights) <= MAX_BLOCK_SPREAD:
                console.print(f"[green]✓ Nodes in sync at block {max(heights)}[/green]")
                return True
            if loop.time() + poll_interval > deadline:
                console.print(f"[yellow]⚠️  Nodes not in sync after {max_wait}s[/yellow]")
                return False
            await asyncio.sleep(poll_interval)

    def network_info(self, node_name: Optional[str] = None) -> dict[str, Any]:
        """Chain id and height as reported by a node, plus descriptor facts."""
        descriptor = self._require_descriptor()
        client = SyncRpcClient(self.rpc_url(node_name))
        try:
            return {
                "name": descriptor.name,
                "chain_id": client.chain_id(),
                "block_number": client.block_number(),
                "consensus": descriptor.spec.consensus.value,
                "subnet": descriptor.spec.subnet,
                "rpc_url": client.url,
            }
        finally:
            client.close()

    def balance(self, address: str, node_name: Optional[str] = None) -> int:
        """Balance of ``address`` in wei."""
        client = SyncRpcClient(self.rpc_url(node_name))
        try:
            return client.get_balance(address)
        finally:
            client.close()

    def summary(self) -> dict[str, Any]:
        descriptor = self._require_descriptor()
        keys = self.keys()
        nodes = []
        for node in descriptor.nodes:
            identity = keys.load(node.name)
            association = descriptor.association_for(node.name)
            nodes.append(
                {
                    **node.to_dict(),
                    "p2p_port": node.peer_port,
                    "host_rpc_port": host_rpc_port(node),
                    "address": identity.address if identity else None,
                    "enode": identity.enode if identity else None,
                    "signer_account": association.address if association else None,
                }
            )
        return {
            "name": descriptor.name,
            "state": descriptor.state.value,
            "chain_id": descriptor.spec.chain_id,
            "subnet": descriptor.spec.subnet,
            "consensus": descriptor.spec.consensus.value,
            "genesis_signers": self.genesis_signers(),
            "nodes": nodes,
        }

    def genesis_signers(self) -> list[str]:
        """Signer addresses sealed into a Clique genesis; empty for BFT networks."""
        descriptor = self._require_descriptor()
        if descriptor.spec.consensus is not ConsensusKind.AUTHORITY_ROUND:
            return []
        genesis = self.store.load_genesis(descriptor.name)
        return extra_data_signers(genesis) if genesis else []

    # Funding

    def source_key(self) -> Optional[str]:
        """Private key of the first signer node, the default funding source.

        Genesis only credits the block producer. When that producer is a
        signer account, its key is not held locally and the caller must
        name a source key explicitly.

        Raises:
            FundingError: If the producer is not the first signer node's own key.
        """
        descriptor = self._require_descriptor()
        signers = descriptor.nodes_by_role(Role.SIGNER)
        if not signers:
            return None
        identity = self.keys().load(signers[0].name)
        if identity is None:
            return None
        producer = self.block_producer(descriptor, {signers[0].name: identity})
        if producer.lower() != identity.address.lower():
            raise FundingError(
                f"Genesis funds signer account {producer}, whose key besubox does not hold; "
                "pass its private key with --private-key",
                address=producer,
                code="NO_SOURCE",
            )
        return identity.private_key

    def funder(self, client: RpcClient, private_key: Optional[str] = None, **kwargs: Any) -> Funder:
        descriptor = self._require_descriptor()
        key = source_key_for(private_key, None if private_key else self.source_key())
        return Funder(client, key, descriptor.spec.chain_id, **kwargs)

    async def fund_mnemonic(
        self,
        phrase: str,
        amount: int,
        count: int,
        private_key: Optional[str] = None,
        node_name: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Fund ``count`` accounts derived from ``phrase`` with ``amount`` wei each."""
        default = node_name
        if default is None:
            signers = self._require_descriptor().nodes_by_role(Role.SIGNER)
            default = signers[0].name if signers else None
        async with self.client_factory(self.rpc_url(default)) as client:
            return await self.funder(client, private_key).fund_mnemonic(phrase, amount, count)
