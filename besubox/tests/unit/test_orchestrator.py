"""
Unit tests for NetworkOrchestrator against the in-memory runtime.
"""

from dataclasses import replace

import pytest
import toml

from besubox.commands.errors import (
    FundingError,
    NetworkBusyError,
    NetworkStateError,
    NodeError,
    TopologyValidationError,
)
from besubox.commands.genesis import extra_data_signers
from besubox.commands.models import (
    Account,
    ConsensusKind,
    NetworkSpec,
    NetworkState,
    NodeSpec,
    Role,
    SignerAssociation,
)
from besubox.commands.orchestrator import NetworkOrchestrator, associate_signers

SIGNER_ACCOUNT = "0x" + "a" * 40
OTHER_ACCOUNT = "0x" + "b" * 40
BFT_SPEC = NetworkSpec(name="bft", chain_id=2024, subnet="10.0.0.0/24", consensus=ConsensusKind.BFT_V2)


class TestAssociateSigners:
    def test_pairs_in_order(self, scenario_nodes):
        nodes = scenario_nodes + [NodeSpec("miner2", "10.0.0.12", 8548, Role.SIGNER)]
        accounts = [Account(SIGNER_ACCOUNT, "1"), Account(OTHER_ACCOUNT, "1")]
        assert associate_signers(nodes, accounts) == [
            SignerAssociation("miner1", SIGNER_ACCOUNT),
            SignerAssociation("miner2", OTHER_ACCOUNT),
        ]

    def test_keeps_existing_and_drops_stale(self, scenario_nodes):
        nodes = scenario_nodes + [NodeSpec("miner2", "10.0.0.12", 8548, Role.SIGNER)]
        accounts = [Account(SIGNER_ACCOUNT, "1"), Account(OTHER_ACCOUNT, "1")]
        existing = [SignerAssociation("miner2", SIGNER_ACCOUNT), SignerAssociation("gone", OTHER_ACCOUNT)]
        assert associate_signers(nodes, accounts, existing) == [
            SignerAssociation("miner2", SIGNER_ACCOUNT),
            SignerAssociation("miner1", OTHER_ACCOUNT),
        ]

    def test_leaves_signers_without_account(self, scenario_nodes):
        assert associate_signers(scenario_nodes, []) == []


class TestCreate:
    def test_writes_genesis_configs_and_descriptor(self, created, store):
        descriptor = created.descriptor
        assert descriptor.state is NetworkState.CREATED
        assert descriptor.associations == [SignerAssociation("miner1", SIGNER_ACCOUNT)]

        genesis = store.load_genesis("scenario")
        assert genesis["config"]["chainId"] == 9999
        assert extra_data_signers(genesis) == [SIGNER_ACCOUNT]
        assert list(genesis["alloc"]) == [SIGNER_ACCOUNT]

        for node in ("bootnode", "miner1"):
            assert (store.node_path("scenario", node) / "config.toml").exists()
            assert (store.node_path("scenario", node) / "key.priv").exists()

        miner = toml.load(store.node_path("scenario", "miner1") / "config.toml")
        bootnode_enode = store.read_text("scenario", "bootnode/enode")
        assert miner["bootnodes"] == [bootnode_enode]
        assert miner["miner-coinbase"] == store.read_text("scenario", "miner1/address")
        assert store.load_descriptor("scenario").to_dict() == descriptor.to_dict()

    def test_producer_balance_from_initial_balance(self, orchestrator, store, scenario_spec, scenario_nodes):
        spec = replace(scenario_spec, signer_accounts=[])
        orchestrator.create(spec, scenario_nodes, initial_balance="2")
        genesis = store.load_genesis("scenario")
        producer = store.read_text("scenario", "miner1/address")
        assert genesis["alloc"] == {producer: {"balance": str(2 * 10**18)}}

    def test_invalid_topology_has_no_side_effects(self, orchestrator, store, fake_runtime):
        spec = BFT_SPEC
        nodes = [NodeSpec("bootnode", "10.0.0.10", 8545, Role.BOOTSTRAP)] + [
            NodeSpec(f"miner{i}", f"10.0.0.{10 + i}", 8544 + 2 * i, Role.SIGNER) for i in (1, 2, 3)
        ]
        with pytest.raises(TopologyValidationError) as exc:
            orchestrator.create(spec, nodes)

        assert any(f.field == "consensus" for f in exc.value.findings)
        assert not store.network_path("bft").exists()
        assert fake_runtime.networks == {}
        assert orchestrator.descriptor is None

    def test_invalid_initial_balance(self, orchestrator, scenario_spec, scenario_nodes):
        with pytest.raises(TopologyValidationError):
            orchestrator.create(scenario_spec, scenario_nodes, initial_balance="0")

    def test_subnet_is_resolved_and_nodes_rebased(self, orchestrator, fake_runtime, scenario_spec, scenario_nodes):
        fake_runtime.create_network("someone-else", "10.0.0.0/24", {})
        descriptor = orchestrator.create(scenario_spec, scenario_nodes)

        assert descriptor.spec.subnet == "172.25.0.0/24"
        assert [n.ip for n in descriptor.nodes] == ["172.25.0.10", "172.25.0.11"]
        assert fake_runtime.networks["scenario"]["subnet"] == "172.25.0.0/24"

    def test_create_twice(self, created, scenario_spec, scenario_nodes):
        with pytest.raises(NetworkStateError):
            created.create(scenario_spec, scenario_nodes)

    def test_busy_network(self, orchestrator, store, fake_runtime, scenario_spec, scenario_nodes):
        with store.lock("scenario"):
            with pytest.raises(NetworkBusyError):
                orchestrator.create(scenario_spec, scenario_nodes)
        assert "scenario" not in fake_runtime.networks


class TestLifecycle:
    def test_start_launches_bootnode_first(self, created, fake_runtime):
        started = created.start(settle_delay=0)

        assert started == ["scenario-bootnode", "scenario-miner1"]
        assert fake_runtime.started == started
        assert created.state is NetworkState.RUNNING
        miner = fake_runtime.containers["scenario-miner1"]["spec"]
        assert miner.ip == "10.0.0.11"
        assert miner.ports == {"8546/tcp": 18546}

    def test_settle_delay_between_nodes(self, store, runtime, rpc, scenario_spec, scenario_nodes):
        delays = []
        orchestrator = NetworkOrchestrator(store, runtime, client_factory=rpc, sleep=delays.append)
        orchestrator.create(scenario_spec, scenario_nodes)
        orchestrator.start(settle_delay=3)
        assert delays == [3]

    def test_start_recreates_missing_network(self, created, fake_runtime):
        fake_runtime.networks.clear()
        created.start(settle_delay=0)
        assert fake_runtime.networks["scenario"]["subnet"] == "10.0.0.0/24"

    def test_start_fails_if_network_absent(self, created, fake_runtime):
        fake_runtime.networks.clear()
        with pytest.raises(NetworkStateError):
            created.start(fail_if_network_absent=True)
        assert fake_runtime.containers == {}

    def test_stop_is_idempotent(self, created, fake_runtime):
        created.start(settle_delay=0)
        assert sorted(created.stop()) == ["scenario-bootnode", "scenario-miner1"]
        assert created.state is NetworkState.STOPPED
        assert fake_runtime.containers == {}
        assert created.stop() == []
        assert created.store.load_descriptor("scenario").state is NetworkState.STOPPED

    def test_restart_after_stop(self, created, fake_runtime):
        created.start(settle_delay=0)
        created.stop()
        created.start(settle_delay=0)
        assert created.state is NetworkState.RUNNING
        assert len(fake_runtime.containers) == 2

    def test_destroy_is_idempotent(self, created, store, fake_runtime):
        created.start(settle_delay=0)
        created.destroy()

        assert created.state is NetworkState.DESTROYED
        assert not store.network_path("scenario").exists()
        assert fake_runtime.networks == {}
        assert fake_runtime.containers == {}
        created.destroy()

        with pytest.raises(NetworkStateError):
            created.start()

    def test_load_unknown_network(self, store):
        with pytest.raises(NetworkStateError):
            NetworkOrchestrator.load("missing", store)


class TestIntrospection:
    def test_rpc_url(self, created):
        assert created.rpc_url("bootnode") == "http://localhost:18545"
        assert created.rpc_url() == "http://localhost:18546"
        with pytest.raises(NodeError):
            created.rpc_url("ghost")

    def test_summary(self, created, store):
        summary = created.summary()
        miner = summary["nodes"][1]
        assert summary["state"] == "created"
        assert miner["host_rpc_port"] == 18546
        assert miner["signer_account"] == SIGNER_ACCOUNT
        assert miner["address"] == store.read_text("scenario", "miner1/address")
        assert summary["nodes"][0]["signer_account"] is None

    @pytest.mark.asyncio
    async def test_connectivity_reports_down_nodes(self, created, rpc):
        rpc.down.add("http://localhost:18546")
        statuses = await created.connectivity(timeout=1)

        assert [s.node_name for s in statuses] == ["bootnode", "miner1"]
        assert statuses[0].is_active and statuses[0].block_number == 10
        assert not statuses[1].is_active
        assert "Connection refused" in statuses[1].error

    @pytest.mark.asyncio
    async def test_wait_for_sync(self, created, rpc):
        rpc.blocks = {"http://localhost:18545": 12, "http://localhost:18546": 11}
        assert await created.wait_for_sync(max_wait=1, poll_interval=0.01) is True

        rpc.blocks["http://localhost:18546"] = 3
        assert await created.wait_for_sync(max_wait=0.05, poll_interval=0.01) is False

    def test_source_key_refuses_signer_account(self, created):
        with pytest.raises(FundingError) as exc:
            created.source_key()
        assert exc.value.code == "NO_SOURCE"
        assert SIGNER_ACCOUNT in str(exc.value)
        assert "--private-key" in str(exc.value)

    def test_source_key_is_first_signer(self, orchestrator, store, scenario_spec, scenario_nodes):
        orchestrator.create(replace(scenario_spec, signer_accounts=[]), scenario_nodes)
        assert orchestrator.source_key() == store.read_text("scenario", "miner1/key.priv")

    def test_genesis_signers(self, created):
        assert created.summary()["genesis_signers"] == [SIGNER_ACCOUNT]

    def test_bft_has_no_genesis_signers(self, orchestrator):
        nodes = [NodeSpec("bootnode", "10.0.0.10", 8545, Role.BOOTSTRAP)] + [
            NodeSpec(f"miner{i}", f"10.0.0.{10 + i}", 8544 + 2 * i, Role.SIGNER) for i in (1, 2, 3, 4)
        ]
        orchestrator.create(BFT_SPEC, nodes)
        assert orchestrator.summary()["genesis_signers"] == []
