"""
Unit tests for NetworkRuntimeAdapter over the in-memory runtime.
"""

import os

import pytest

from besubox.commands.errors import SubnetConflictError
from besubox.commands.models import NodeIdentity, NodeSpec, Role
from besubox.commands.runtime import host_rpc_port, rebase_ip, rebase_nodes

IDENTITY = NodeIdentity("00", "11", "0x" + "a" * 40, "enode://x@10.0.0.10:30303")


class TestRebase:
    def test_keeps_host_offset(self):
        assert rebase_ip("10.0.0.11", "10.0.0.0/24", "172.25.0.0/24") == "172.25.0.11"

    def test_offset_must_fit(self):
        with pytest.raises(SubnetConflictError):
            rebase_ip("10.0.1.5", "10.0.0.0/16", "172.25.0.0/24")

    def test_same_subnet_is_unchanged(self, scenario_nodes):
        assert rebase_nodes(scenario_nodes, "10.0.0.0/24", "10.0.0.0/24") == scenario_nodes

    def test_nodes_are_copied(self, scenario_nodes):
        moved = rebase_nodes(scenario_nodes, "10.0.0.0/24", "10.10.0.0/24")
        assert [n.ip for n in moved] == ["10.10.0.10", "10.10.0.11"]
        assert scenario_nodes[0].ip == "10.0.0.10"


class TestSubnets:
    def test_overlap_detection(self, runtime, fake_runtime):
        fake_runtime.create_network("other", "10.0.0.0/16", {})
        fake_runtime.create_network("bridge", "172.17.0.0/16", {})

        assert not runtime.subnet_available("10.0.5.0/24")
        assert runtime.subnet_available("10.0.5.0/24", ignore="other")
        assert runtime.subnet_available("172.17.0.0/24")

    def test_candidates_keep_mask(self, runtime):
        candidates = runtime.candidate_subnets("172.25.0.0/24")
        assert candidates[0] == "172.26.0.0/24"
        assert "172.25.0.0/24" not in candidates
        assert all(c.endswith("/24") for c in candidates)

    def test_resolve_picks_first_free_alternative(self, runtime, fake_runtime):
        fake_runtime.create_network("a", "10.0.0.0/24", {})
        fake_runtime.create_network("b", "172.25.0.0/24", {})
        assert runtime.resolve_subnet("10.0.0.0/24") == "172.26.0.0/24"

    def test_resolve_exhausted(self, runtime, fake_runtime):
        fake_runtime.create_network("everything", "0.0.0.0/0", {})
        with pytest.raises(SubnetConflictError):
            runtime.resolve_subnet("10.0.0.0/24")

    def test_ensure_network(self, runtime, fake_runtime):
        assert runtime.ensure_network("dev", "10.0.0.0/24") == "10.0.0.0/24"
        assert fake_runtime.networks["dev"]["labels"]["network"] == "dev"
        # An existing network keeps its subnet
        assert runtime.ensure_network("dev", "10.9.0.0/24") == "10.0.0.0/24"

    def test_ensure_network_without_auto_resolve(self, runtime, fake_runtime):
        fake_runtime.create_network("other", "10.0.0.0/24", {})
        with pytest.raises(SubnetConflictError):
            runtime.ensure_network("dev", "10.0.0.0/24", auto_resolve=False)
        assert runtime.ensure_network("dev", "10.0.0.0/24") != "10.0.0.0/24"

    def test_teardown_is_idempotent(self, runtime):
        runtime.ensure_network("dev", "10.0.0.0/24")
        assert runtime.teardown_network("dev") is True
        assert runtime.teardown_network("dev") is False


class TestContainers:
    def test_container_spec(self, runtime, tmp_path):
        node = NodeSpec("miner1", "10.0.0.11", 8546, Role.SIGNER)
        spec = runtime.container_spec("dev", node, "hyperledger/besu:latest", tmp_path)

        assert spec.name == "dev-miner1"
        assert spec.ports == {"8546/tcp": 18546}
        assert spec.labels == {"network": "dev", "node": "miner1", "role": "miner", "port": "8546"}
        assert spec.volumes == {os.path.abspath(str(tmp_path)): {"bind": "/data", "mode": "rw"}}
        assert "--config-file=/data/miner1/config.toml" in spec.command
        assert "--genesis-file=/data/genesis.json" in spec.command
        assert host_rpc_port(node) == 18546

    def test_stop_and_remove_are_idempotent(self, runtime, fake_runtime, scenario_nodes, tmp_path):
        for node in scenario_nodes:
            runtime.launch_node("dev", node, IDENTITY, "besu", tmp_path)
        fake_runtime.containers["dev-outsider"] = {
            "spec": runtime.container_spec("other", scenario_nodes[0], "besu", tmp_path),
            "running": True,
        }

        assert sorted(runtime.stop_all("dev")) == ["dev-bootnode", "dev-miner1"]
        assert runtime.stop_all("dev") == []
        assert sorted(runtime.remove_all("dev")) == ["dev-bootnode", "dev-miner1"]
        assert runtime.remove_all("dev") == []
        assert "dev-outsider" in fake_runtime.containers

    def test_remove_node(self, runtime, scenario_nodes, tmp_path):
        runtime.launch_node("dev", scenario_nodes[1], IDENTITY, "besu", tmp_path)
        assert runtime.remove_node("dev", scenario_nodes[1]) is True
        assert runtime.remove_node("dev", scenario_nodes[1]) is False
