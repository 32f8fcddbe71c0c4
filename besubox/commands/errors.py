"""
Typed error classes for besubox.

This module provides the error hierarchy used across the orchestrator:
- BesuboxError: Base exception for all besubox errors
- ValidationError: Input validation errors
- TopologyValidationError: Aggregated topology findings (one failure, many findings)
- GenesisImmutableError: Updates that would require a new genesis document
- NetworkStateError / NetworkBusyError: Lifecycle and single-writer violations
- RuntimeAdapterError / SubnetConflictError: Container runtime failures
- NodeError: Errors related to a specific node
- ClientError / TimeoutError: JSON-RPC communication errors
- FundingError / InsufficientFundsError: Funding batch errors
- ConfigurationError: Topology file and configuration errors
"""

from typing import Any, Optional


class BesuboxError(Exception):
    """Base exception class for all besubox errors.

    Attributes:
        message: Human-readable error message
        code: Optional error code for programmatic handling
        details: Optional dictionary with additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ValidationError(BesuboxError):
    """Input validation errors.

    Raised when:
    - Function arguments are invalid
    - Configuration values are out of range
    - Required fields are missing
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        self.value = value
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, code=code or "VALIDATION_FAILED", details=details)


class TopologyValidationError(ValidationError):
    """Raised when a topology produces one or more validation findings.

    The message joins every finding as ``field: message`` lines; the
    findings themselves stay available on ``findings``.
    """

    def __init__(
        self,
        findings: list,
        message: str = "Network configuration validation failed",
        details: Optional[dict[str, Any]] = None,
    ):
        self.findings = list(findings)
        lines = "\n".join(f"{f.field}: {f.message}" for f in self.findings)
        details = details or {}
        details["findings"] = [f.to_dict() for f in self.findings]
        super().__init__(
            f"{message}:\n{lines}" if lines else message,
            code="TOPOLOGY_INVALID",
            details=details,
        )


class GenesisImmutableError(BesuboxError):
    """Raised when an update would require regenerating the genesis document.

    Callers should create a new network (new name and chain id) instead.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code="GENESIS_IMMUTABLE", details=details)


class NetworkStateError(BesuboxError):
    """Raised when an operation is not allowed in the network's current state."""

    def __init__(
        self,
        message: str,
        network: Optional[str] = None,
        state: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.network = network
        self.state = state
        details = details or {}
        if network:
            details["network"] = network
        if state:
            details["state"] = state
        super().__init__(message, code=code or "INVALID_STATE", details=details)


class NetworkBusyError(NetworkStateError):
    """Raised when another create/apply holds the network's writer lock."""

    def __init__(
        self,
        message: str,
        network: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, network=network, code="NETWORK_BUSY", details=details)


class RuntimeAdapterError(BesuboxError):
    """Errors raised by the container runtime.

    Raised when:
    - A network or container cannot be created
    - The runtime is unreachable
    - An image cannot be pulled
    """

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.resource = resource
        details = details or {}
        if resource:
            details["resource"] = resource
        super().__init__(message, code=code or "RUNTIME_ERROR", details=details)


class SubnetConflictError(RuntimeAdapterError):
    """Raised when a subnet is claimed and cannot be resolved."""

    def __init__(
        self,
        message: str,
        subnet: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.subnet = subnet
        details = details or {}
        if subnet:
            details["subnet"] = subnet
        super().__init__(message, code="SUBNET_CONFLICT", details=details)


class NodeError(BesuboxError):
    """Errors related to a specific node.

    Raised when:
    - A node name is unknown in the network
    - A node has no identity or configuration on disk
    """

    def __init__(
        self,
        message: str,
        node_ref: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.node_ref = node_ref
        details = details or {}
        if node_ref:
            details["node_ref"] = node_ref
        super().__init__(message, code=code, details=details)


class ClientError(BesuboxError):
    """JSON-RPC communication errors.

    Raised when:
    - HTTP request fails
    - The node returns a JSON-RPC error object
    - The response cannot be decoded
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.url = url
        self.status_code = status_code
        details = details or {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, code=code, details=details)


class TimeoutError(ClientError):
    """Raised when an RPC operation times out."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.timeout_seconds = timeout_seconds
        details = details or {}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, url=url, code="TIMEOUT", details=details)


class FundingError(BesuboxError):
    """Errors raised while funding accounts."""

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.address = address
        details = details or {}
        if address:
            details["address"] = address
        super().__init__(message, code=code or "FUNDING_FAILED", details=details)


class InsufficientFundsError(FundingError):
    """Raised when the funding source cannot cover a transfer batch."""

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        required: Optional[int] = None,
        available: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if required is not None:
            details["required"] = str(required)
        if available is not None:
            details["available"] = str(available)
        super().__init__(
            message, address=address, code="INSUFFICIENT_FUNDS", details=details
        )


class ConfigurationError(BesuboxError):
    """Configuration-related errors.

    Raised when:
    - A topology file is missing or malformed
    - Required configuration values are not set
    - Configuration values conflict with each other
    """

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.config_file = config_file
        details = details or {}
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, code=code or "CONFIGURATION_ERROR", details=details)


# Export all error classes for convenient importing
__all__ = [
    "BesuboxError",
    "ValidationError",
    "TopologyValidationError",
    "GenesisImmutableError",
    "NetworkStateError",
    "NetworkBusyError",
    "RuntimeAdapterError",
    "SubnetConflictError",
    "NodeError",
    "ClientError",
    "TimeoutError",
    "FundingError",
    "InsufficientFundsError",
    "ConfigurationError",
]
