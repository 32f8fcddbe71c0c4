"""Shared fixtures for besubox tests.

FakeRuntime keeps networks and containers in memory behind the
ContainerRuntime interface; ScriptedRpc hands out fake RPC clients whose
answers are scripted per node URL.
"""

import random

import pytest

from besubox.commands.errors import ClientError
from besubox.commands.models import Account, ConsensusKind, NetworkSpec, NodeSpec, Role
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.runtime import ContainerRuntime, NetworkRuntimeAdapter
from besubox.commands.storage import NetworkStore

SIGNER_ACCOUNT = "0x" + "a" * 40
ONE_ETHER = "1000000000000000000"


class FakeRuntime(ContainerRuntime):
    """In-memory container backend."""

    def __init__(self):
        self.networks = {}
        self.containers = {}
        self.started = []

    def network_subnets(self):
        return {name: [n["subnet"]] for name, n in self.networks.items()}

    def has_network(self, name):
        return name in self.networks

    def create_network(self, name, subnet, labels):
        self.networks[name] = {"subnet": subnet, "labels": dict(labels)}

    def remove_network(self, name):
        return self.networks.pop(name, None) is not None

    def run_container(self, spec):
        self.containers[spec.name] = {"spec": spec, "running": True}
        self.started.append(spec.name)
        return spec.name

    def list_containers(self, labels, running_only=False):
        return [
            name
            for name, container in self.containers.items()
            if all(container["spec"].labels.get(k) == v for k, v in labels.items())
            and (container["running"] or not running_only)
        ]

    def stop_container(self, name):
        container = self.containers.get(name)
        if container is None or not container["running"]:
            return False
        container["running"] = False
        return True

    def remove_container(self, name):
        return self.containers.pop(name, None) is not None


class FakeRpcClient:
    """RpcClient stand-in bound to one URL of a ScriptedRpc."""

    def __init__(self, script, url):
        self.script = script
        self.url = url

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    def _check(self):
        if self.url in self.script.down:
            raise ClientError("Connection refused", url=self.url)

    async def block_number(self):
        self._check()
        return self.script.blocks.get(self.url, 10)

    async def peer_count(self):
        self._check()
        return self.script.peers

    async def admin_peers(self):
        self._check()
        return [{}] * self.script.peers

    async def chain_id(self):
        return self.script.chain_id

    async def get_balance(self, address, block="latest"):
        return self.script.balances.get(address.lower(), 0)

    async def gas_price(self):
        if self.script.gas_price is None:
            raise ClientError("eth_gasPrice: method not found", code="RPC_ERROR")
        return self.script.gas_price

    async def transaction_count(self, address, block="pending"):
        return len(self.script.sent)

    async def send_raw_transaction(self, raw_transaction):
        if self.script.send_errors:
            message = self.script.send_errors.pop(0)
            if message:
                raise ClientError(f"eth_sendRawTransaction: {message}", code="RPC_ERROR")
        self.script.sent.append(raw_transaction)
        return "0x" + f"{len(self.script.sent):064x}"

    async def get_transaction_receipt(self, tx_hash):
        return {"transactionHash": tx_hash, "status": self.script.receipt_status}


class ScriptedRpc:
    """Client factory with per-URL answers."""

    def __init__(self):
        self.blocks = {}
        self.down = set()
        self.peers = 1
        self.chain_id = 9999
        self.balances = {}
        self.gas_price = 10**9
        self.sent = []
        self.send_errors = []
        self.receipt_status = "0x1"
        self.urls = []

    def __call__(self, url, config=None):
        self.urls.append(url)
        return FakeRpcClient(self, url)


async def no_sleep(_seconds):
    return None


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


@pytest.fixture
def runtime(fake_runtime):
    return NetworkRuntimeAdapter(fake_runtime, rng=random.Random(7))


@pytest.fixture
def store(tmp_path):
    return NetworkStore(tmp_path / "networks")


@pytest.fixture
def rpc():
    return ScriptedRpc()


@pytest.fixture
def scenario_spec():
    return NetworkSpec(
        name="scenario",
        chain_id=9999,
        subnet="10.0.0.0/24",
        consensus=ConsensusKind.AUTHORITY_ROUND,
        signer_accounts=[Account(SIGNER_ACCOUNT, ONE_ETHER)],
    )


@pytest.fixture
def scenario_nodes():
    return [
        NodeSpec(name="bootnode", ip="10.0.0.10", rpc_port=8545, role=Role.BOOTSTRAP),
        NodeSpec(name="miner1", ip="10.0.0.11", rpc_port=8546, role=Role.SIGNER),
    ]


@pytest.fixture
def orchestrator(store, runtime, rpc):
    return NetworkOrchestrator(store, runtime, client_factory=rpc, sleep=lambda _: None)


@pytest.fixture
def created(orchestrator, scenario_spec, scenario_nodes):
    """The two-node clique network, created but not started."""
    orchestrator.create(scenario_spec, scenario_nodes)
    return orchestrator
