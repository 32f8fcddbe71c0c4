"""
Shared helpers for the CLI commands: console, storage lookup, error
reporting and rich tables.
"""

import asyncio
import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from besubox.commands.crypto import to_checksum_address
from besubox.commands.errors import BesuboxError, TopologyValidationError
from besubox.commands.models import NodeStatus, ValidationFinding
from besubox.commands.runtime import NetworkRuntimeAdapter
from besubox.commands.storage import NetworkStore, resolve_storage_root

console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_async_function(func, *args, **kwargs) -> Any:
    """Run a coroutine function to completion from synchronous code."""
    return asyncio.run(func(*args, **kwargs))


def get_store(ctx: Optional[click.Context] = None) -> NetworkStore:
    ctx = ctx or click.get_current_context(silent=True)
    root = None
    if ctx is not None and isinstance(ctx.obj, dict):
        root = ctx.obj.get("storage_root")
    return NetworkStore(resolve_storage_root(root))


def get_runtime(ctx: Optional[click.Context] = None) -> Optional[NetworkRuntimeAdapter]:
    """Runtime adapter injected through ``ctx.obj``; None selects Docker lazily."""
    ctx = ctx or click.get_current_context(silent=True)
    if ctx is not None and isinstance(ctx.obj, dict):
        return ctx.obj.get("runtime")
    return None


def is_verbose(ctx: Optional[click.Context] = None) -> bool:
    ctx = ctx or click.get_current_context(silent=True)
    return bool(ctx is not None and isinstance(ctx.obj, dict) and ctx.obj.get("verbose"))


def print_findings(findings: list[ValidationFinding]) -> None:
    table = Table(title="Validation findings", box=box.ROUNDED)
    table.add_column("Field", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("Message")
    for finding in findings:
        table.add_row(finding.field, finding.category.value, finding.message)
    console.print(table)


def print_error(error: BesuboxError) -> None:
    if isinstance(error, TopologyValidationError):
        console.print(f"[red]✗ {error.message.splitlines()[0]}[/red]")
        print_findings(error.findings)
        return
    console.print(f"[red]✗ {error}[/red]")
    if is_verbose() and error.details:
        for key, value in error.details.items():
            console.print(f"[red]   {key}: {value}[/red]")


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print besubox errors in red and exit non-zero."""
    try:
        yield
    except BesuboxError as e:
        print_error(e)
        sys.exit(1)


def nodes_table(summary: dict[str, Any]) -> Table:
    table = Table(title=f"Network {summary['name']} ({summary['state']})", box=box.ROUNDED)
    table.add_column("Node", style="cyan")
    table.add_column("Role", style="yellow")
    table.add_column("IP")
    table.add_column("RPC", justify="right")
    table.add_column("Host RPC", justify="right")
    table.add_column("Address", style="green")
    table.add_column("Signer Account")
    for node in summary["nodes"]:
        table.add_row(
            node["name"],
            node["role"],
            node["ip"],
            str(node["rpc_port"]),
            str(node["host_rpc_port"]),
            to_checksum_address(node["address"]) if node["address"] else "N/A",
            to_checksum_address(node["signer_account"]) if node["signer_account"] else "",
        )
    return table


def status_table(statuses: list[NodeStatus]) -> Table:
    table = Table(title="Connectivity", box=box.ROUNDED)
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    table.add_column("Block", justify="right")
    table.add_column("Peers", justify="right")
    table.add_column("Error", style="red")
    for status in statuses:
        table.add_row(
            status.node_name,
            "[green]active[/green]" if status.is_active else "[red]down[/red]",
            "" if status.block_number is None else str(status.block_number),
            "" if status.peers is None else str(status.peers),
            status.error or "",
        )
    return table


def networks_table(store: NetworkStore) -> Table:
    table = Table(title=f"Networks in {store.root}", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("State")
    table.add_column("Chain ID", justify="right")
    table.add_column("Consensus", style="yellow")
    table.add_column("Subnet")
    table.add_column("Nodes", justify="right")
    for descriptor in store.tracked_networks():
        table.add_row(
            descriptor.name,
            descriptor.state.value,
            str(descriptor.spec.chain_id),
            descriptor.spec.consensus.label,
            descriptor.spec.subnet,
            str(len(descriptor.nodes)),
        )
    return table
