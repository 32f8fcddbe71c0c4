"""
Commands module - All available CLI commands.
"""

from besubox.commands.create import create
from besubox.commands.destroy import destroy
from besubox.commands.errors import (
    BesuboxError,
    ClientError,
    ConfigurationError,
    FundingError,
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
from besubox.commands.fund import fund
from besubox.commands.init import init
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.start import start
from besubox.commands.status import status
from besubox.commands.stop import stop
from besubox.commands.update import update
from besubox.commands.updater import TopologyUpdater

__all__ = [
    # Commands
    "create",
    "start",
    "stop",
    "destroy",
    "status",
    "update",
    "fund",
    "init",
    # Engine
    "NetworkOrchestrator",
    "TopologyUpdater",
    # Error classes
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
