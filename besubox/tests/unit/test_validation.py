"""
Unit tests for TopologyValidator and the validation helpers.
"""

from dataclasses import replace

import pytest

from besubox.commands.models import (
    Account,
    ConsensusKind,
    FindingCategory,
    NetworkDescriptor,
    NetworkSpec,
    NodeSpec,
    Role,
    SignerAssociation,
)
from besubox.commands.validation import (
    TopologyValidator,
    ether_to_wei,
    fault_tolerance,
    is_reserved_ip,
    is_valid_subnet,
    validate_initial_balance,
)

ACCOUNT_A = "0x" + "a" * 40
ACCOUNT_B = "0x" + "b" * 40


def fields(findings):
    return [f.field for f in findings]


def bft_network(validators):
    spec = NetworkSpec(
        name="bft", chain_id=2024, subnet="172.30.0.0/24", consensus=ConsensusKind.BFT_V2
    )
    nodes = [NodeSpec("bootnode", "172.30.0.20", 8545, Role.BOOTSTRAP)]
    for i in range(validators):
        nodes.append(NodeSpec(f"miner{i + 1}", f"172.30.0.{21 + i}", 8546 + 2 * i, Role.SIGNER))
    return spec, nodes


class TestHelpers:
    def test_subnet_mask_bounds(self):
        assert is_valid_subnet("10.0.0.0/24")
        assert is_valid_subnet("10.0.0.0/8")
        assert not is_valid_subnet("10.0.0.0/31")
        assert not is_valid_subnet("10.0.0.0/7")
        assert not is_valid_subnet("10.0.0/24")

    def test_reserved_addresses(self):
        assert is_reserved_ip("10.0.0.0", "10.0.0.0/24")
        assert is_reserved_ip("10.0.0.1", "10.0.0.0/24")
        assert is_reserved_ip("10.0.0.255", "10.0.0.0/24")
        assert not is_reserved_ip("10.0.0.2", "10.0.0.0/24")

    def test_fault_tolerance(self):
        assert fault_tolerance(4) == 1
        assert fault_tolerance(3) == 0
        assert fault_tolerance(7) == 2

    def test_ether_to_wei(self):
        assert ether_to_wei("1") == 10**18
        assert ether_to_wei("1000.5") == 1000500000000000000000
        with pytest.raises(ValueError):
            ether_to_wei("lots")

    def test_initial_balance(self):
        assert validate_initial_balance(None) == []
        assert validate_initial_balance("100") == []
        assert validate_initial_balance("abc")[0].category is FindingCategory.MALFORMED
        assert validate_initial_balance("0")[0].category is FindingCategory.OUT_OF_RANGE
        assert validate_initial_balance("2000000000")[0].category is FindingCategory.OUT_OF_RANGE


class TestTopologyValidator:
    def test_scenario_is_valid(self, scenario_spec, scenario_nodes):
        assert TopologyValidator().validate(scenario_spec, scenario_nodes) == []

    def test_findings_are_aggregated(self, scenario_spec):
        spec = replace(scenario_spec, name="bad name", chain_id=1, subnet="10.0.0.0/33")
        nodes = [NodeSpec("miner1", "10.0.0.11", 22, Role.SIGNER)]
        findings = TopologyValidator().validate(spec, nodes)
        found = fields(findings)
        assert "name" in found
        assert "chain_id" in found
        assert "subnet" in found
        assert "nodes[0].rpc_port" in found
        assert "nodes" in found

    def test_duplicate_names_and_ips(self, scenario_spec, scenario_nodes):
        nodes = scenario_nodes + [NodeSpec("miner1", "10.0.0.11", 8550, Role.QUERY)]
        findings = TopologyValidator().validate(scenario_spec, nodes)
        categories = {(f.field, f.category) for f in findings}
        assert ("nodes[2].name", FindingCategory.DUPLICATE) in categories
        assert ("nodes[2].ip", FindingCategory.DUPLICATE) in categories

    def test_ip_outside_subnet_and_gateway(self, scenario_spec, scenario_nodes):
        nodes = [
            replace(scenario_nodes[0], ip="10.0.1.10"),
            replace(scenario_nodes[1], ip="10.0.0.1"),
        ]
        messages = [f.message for f in TopologyValidator().validate(scenario_spec, nodes)]
        assert any("not in the configured subnet" in m for m in messages)
        assert any("reserved IP address" in m for m in messages)

    def test_p2p_must_differ_from_rpc(self, scenario_spec, scenario_nodes):
        nodes = [scenario_nodes[0], replace(scenario_nodes[1], p2p_port=8546)]
        findings = TopologyValidator().validate(scenario_spec, nodes)
        assert "nodes[1].p2p_port" in fields(findings)

    def test_clique_requires_account_per_signer(self, scenario_spec, scenario_nodes):
        spec = replace(
            scenario_spec,
            signer_accounts=[Account(ACCOUNT_A, "1"), Account(ACCOUNT_B, "1")],
        )
        findings = TopologyValidator().validate(spec, scenario_nodes)
        assert any(
            f.field == "signer_accounts" and "one signer account per miner" in f.message
            for f in findings
        )

    def test_clique_with_two_signers_is_flagged(self, scenario_spec, scenario_nodes):
        spec = replace(scenario_spec, signer_accounts=[])
        nodes = scenario_nodes + [NodeSpec("miner2", "10.0.0.12", 8548, Role.SIGNER)]
        findings = TopologyValidator().validate(spec, nodes)
        assert any("exactly 2 miners" in f.message for f in findings)

    def test_bft_with_four_validators_is_valid(self):
        spec, nodes = bft_network(4)
        assert TopologyValidator().validate(spec, nodes) == []

    def test_bft_with_three_validators_violates_quorum(self):
        spec, nodes = bft_network(3)
        findings = TopologyValidator().validate(spec, nodes)
        consensus = [f for f in findings if f.field == "consensus"]
        assert consensus
        assert any("at least 4 validator nodes" in f.message for f in consensus)

    def test_account_rules(self, scenario_spec, scenario_nodes):
        spec = replace(
            scenario_spec,
            accounts=[Account(ACCOUNT_A, "5"), Account("0x123", "-1"), Account(ACCOUNT_B, str(10**25))],
        )
        findings = TopologyValidator().validate(spec, scenario_nodes)
        categories = {(f.field, f.category) for f in findings}
        assert ("accounts[0].address", FindingCategory.DUPLICATE) in categories
        assert ("accounts[1].address", FindingCategory.MALFORMED) in categories
        assert ("accounts[1].balance", FindingCategory.MALFORMED) in categories
        assert ("accounts[2].balance", FindingCategory.OUT_OF_RANGE) in categories

    def test_consecutive_miner_ports(self, scenario_spec, scenario_nodes):
        spec = replace(scenario_spec, signer_accounts=[])
        nodes = scenario_nodes + [
            NodeSpec("miner2", "10.0.0.12", 8547, Role.SIGNER),
            NodeSpec("miner3", "10.0.0.13", 8549, Role.SIGNER),
        ]
        findings = TopologyValidator().validate(spec, nodes)
        assert any("consecutive RPC ports" in f.message for f in findings)


class TestUniqueness:
    def test_tracked_network_claims(self, store, scenario_spec, scenario_nodes):
        store.save_descriptor(NetworkDescriptor(spec=scenario_spec, nodes=scenario_nodes))
        other = replace(scenario_spec, name="other")
        findings = TopologyValidator(store).validate(other, scenario_nodes)
        assert {f.field for f in findings} >= {"chain_id", "subnet"}

        same = TopologyValidator(store).validate(scenario_spec, scenario_nodes)
        assert "name" in fields(same)
        assert TopologyValidator(store).validate(scenario_spec, scenario_nodes, existing=True) == []

    def test_runtime_subnet_only_flagged_without_auto_resolve(
        self, runtime, fake_runtime, scenario_spec, scenario_nodes
    ):
        fake_runtime.create_network("someone-else", "10.0.0.0/16", {})
        validator = TopologyValidator(runtime=runtime)
        assert validator.validate(scenario_spec, scenario_nodes) == []
        findings = validator.validate(scenario_spec, scenario_nodes, auto_resolve_subnet=False)
        assert fields(findings) == ["subnet"]


class TestSignerAssociations:
    def test_unassociated_signer_on_update(self, scenario_spec, scenario_nodes):
        nodes = scenario_nodes + [
            NodeSpec("miner2", "10.0.0.12", 8548, Role.SIGNER),
            NodeSpec("miner3", "10.0.0.13", 8550, Role.SIGNER),
        ]
        associations = [SignerAssociation("miner1", ACCOUNT_A)]
        findings = TopologyValidator().validate(
            scenario_spec, nodes, associations=associations, existing=True
        )
        missing = [f for f in findings if f.category is FindingCategory.MISSING_REQUIRED]
        assert {f.message for f in missing} == {
            "Miner node 'miner2' has no matching unused signer account",
            "Miner node 'miner3' has no matching unused signer account",
        }

    def test_unknown_and_stale_associations(self, scenario_spec, scenario_nodes):
        associations = [
            SignerAssociation("miner1", ACCOUNT_B),
            SignerAssociation("bootnode", ACCOUNT_A),
        ]
        findings = TopologyValidator().validate(
            scenario_spec, scenario_nodes, associations=associations, existing=True
        )
        messages = [f.message for f in findings]
        assert any("unknown signer account" in m for m in messages)
        assert any("not a miner node" in m for m in messages)

    def test_clique_signer_account_without_miner(self, scenario_spec, scenario_nodes):
        spec = replace(scenario_spec, signer_accounts=scenario_spec.signer_accounts + [Account(ACCOUNT_B, "1")])
        associations = [SignerAssociation("miner1", ACCOUNT_A)]
        findings = TopologyValidator().validate(spec, scenario_nodes, associations=associations, existing=True)

        assert [(f.field, f.category) for f in findings] == [
            ("signer_accounts[1]", FindingCategory.STRUCTURALLY_INVALID)
        ]
        assert ACCOUNT_B in findings[0].message
