"""
Unit tests for the besubox typed error classes.
"""

from besubox.commands.errors import (
    BesuboxError,
    ClientError,
    ConfigurationError,
    GenesisImmutableError,
    InsufficientFundsError,
    NetworkBusyError,
    NetworkStateError,
    NodeError,
    RuntimeAdapterError,
    SubnetConflictError,
    TimeoutError,
    TopologyValidationError,
    ValidationError,
)
from besubox.commands.models import FindingCategory, ValidationFinding


class TestBesuboxError:
    """Tests for the base BesuboxError class."""

    def test_basic_error(self):
        error = BesuboxError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.code is None
        assert error.details == {}

    def test_error_with_code(self):
        error = BesuboxError("Something went wrong", code="ERR_001")
        assert str(error) == "[ERR_001] Something went wrong"

    def test_to_dict(self):
        error = BesuboxError("Test error", code="TEST_CODE", details={"key": "value"})
        assert error.to_dict() == {
            "type": "BesuboxError",
            "message": "Test error",
            "code": "TEST_CODE",
            "details": {"key": "value"},
        }

    def test_to_dict_minimal(self):
        assert BesuboxError("Test error").to_dict() == {
            "type": "BesuboxError",
            "message": "Test error",
        }


class TestValidationErrors:
    def test_validation_error_defaults(self):
        error = ValidationError("Bad value", field="chain_id", value=1)
        assert error.code == "VALIDATION_FAILED"
        assert error.details == {"field": "chain_id", "value": 1}

    def test_topology_error_joins_findings(self):
        findings = [
            ValidationFinding("name", FindingCategory.DUPLICATE, "Network 'dev' is already tracked"),
            ValidationFinding("nodes", FindingCategory.MISSING_REQUIRED, "At least one bootnode is required"),
        ]
        error = TopologyValidationError(findings)
        assert isinstance(error, ValidationError)
        assert error.code == "TOPOLOGY_INVALID"
        assert "name: Network 'dev' is already tracked" in error.message
        assert "nodes: At least one bootnode is required" in error.message
        assert error.details["findings"][0]["category"] == "duplicate"

    def test_genesis_immutable_has_distinct_code(self):
        error = GenesisImmutableError("Cannot change consensus", field="consensus")
        assert error.code == "GENESIS_IMMUTABLE"
        assert error.details["field"] == "consensus"
        assert not isinstance(error, ValidationError)


class TestStateAndRuntimeErrors:
    def test_busy_is_a_state_error(self):
        error = NetworkBusyError("busy", network="dev")
        assert isinstance(error, NetworkStateError)
        assert error.code == "NETWORK_BUSY"
        assert error.details["network"] == "dev"

    def test_subnet_conflict_is_runtime_error(self):
        error = SubnetConflictError("taken", subnet="10.0.0.0/24")
        assert isinstance(error, RuntimeAdapterError)
        assert error.code == "SUBNET_CONFLICT"
        assert error.subnet == "10.0.0.0/24"

    def test_node_error_with_ref(self):
        error = NodeError("Node not found", node_ref="miner1")
        assert error.node_ref == "miner1"
        assert error.details["node_ref"] == "miner1"


class TestClientErrors:
    def test_timeout_is_client_error(self):
        error = TimeoutError("slow", url="http://localhost:18545", timeout_seconds=5)
        assert isinstance(error, ClientError)
        assert error.code == "TIMEOUT"
        assert error.details == {"url": "http://localhost:18545", "timeout_seconds": 5}

    def test_insufficient_funds_details(self):
        error = InsufficientFundsError("short", address="0xabc", required=10, available=3)
        assert error.code == "INSUFFICIENT_FUNDS"
        assert error.details == {"required": "10", "available": "3", "address": "0xabc"}

    def test_configuration_error(self):
        error = ConfigurationError("Missing file", config_file="network.yml")
        assert error.code == "CONFIGURATION_ERROR"
        assert error.config_file == "network.yml"
