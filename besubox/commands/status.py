"""
Status command - tracked networks, node placement and live connectivity.
"""

import sys

import click

from besubox.commands.constants import LIVENESS_TIMEOUT, SYNC_WAIT_TIMEOUT
from besubox.commands.funding import format_ether
from besubox.commands.models import NetworkState
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.utils import (
    console,
    get_runtime,
    get_store,
    handle_errors,
    networks_table,
    nodes_table,
    run_async_function,
    status_table,
)


@click.command()
@click.argument("name", required=False)
@click.option("--wait", is_flag=True, help="Wait until running nodes are in sync")
@click.option("--timeout", type=float, default=SYNC_WAIT_TIMEOUT, show_default=True)
@click.option("--rpc-timeout", type=float, default=LIVENESS_TIMEOUT, show_default=True)
@click.option("--info", is_flag=True, help="Query chain id and block height from a node")
@click.option("--balance", "balance_of", metavar="ADDRESS", help="Print the balance of ADDRESS")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable output")
@click.pass_context
def status(ctx, name, wait, timeout, rpc_timeout, info, balance_of, as_json):
    """Show tracked networks, or the nodes and connectivity of network NAME."""
    with handle_errors():
        store = get_store(ctx)
        if not name:
            if as_json:
                console.print_json(data=[d.to_dict() for d in store.tracked_networks()])
            else:
                console.print(networks_table(store))
            return

        orchestrator = NetworkOrchestrator.load(name, store, get_runtime(ctx))
        summary = orchestrator.summary()
        statuses = []
        running = orchestrator.state is NetworkState.RUNNING
        if running:
            statuses = run_async_function(orchestrator.connectivity, rpc_timeout)
            if info:
                summary["chain"] = orchestrator.network_info()
            if balance_of:
                summary["balance"] = {"address": balance_of, "wei": str(orchestrator.balance(balance_of))}

        if as_json:
            summary["connectivity"] = [s.to_dict() for s in statuses]
            console.print_json(data=summary)
        else:
            console.print(nodes_table(summary))
            if summary["genesis_signers"]:
                console.print(f"Genesis signers: {', '.join(summary['genesis_signers'])}")
            if statuses:
                console.print(status_table(statuses))
            else:
                console.print(f"[yellow]Network {name} is {orchestrator.state.value}, skipping liveness checks[/yellow]")
            if "chain" in summary:
                chain = summary["chain"]
                console.print(
                    f"Chain {chain['chain_id']} at block {chain['block_number']} via {chain['rpc_url']}"
                )
            if "balance" in summary:
                wei = int(summary["balance"]["wei"])
                console.print(f"Balance of {balance_of}: {format_ether(wei)} ({wei} wei)")

        if wait:
            if not running:
                console.print(f"[red]✗ Network {name} is not running[/red]")
                sys.exit(1)
            if not run_async_function(orchestrator.wait_for_sync, timeout):
                sys.exit(1)
