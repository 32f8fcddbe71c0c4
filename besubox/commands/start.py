"""
Start command - launch every node of a created network.
"""

import sys

import click

from besubox.commands.constants import DEFAULT_IMAGE, NODE_SETTLE_DELAY, SYNC_WAIT_TIMEOUT
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.utils import console, get_runtime, get_store, handle_errors, run_async_function


@click.command()
@click.argument("name")
@click.option("--image", default=DEFAULT_IMAGE, show_default=True, help="Node image")
@click.option(
    "--no-create-network",
    is_flag=True,
    help="Fail if the Docker network is missing instead of recreating it",
)
@click.option(
    "--settle-delay",
    type=float,
    default=NODE_SETTLE_DELAY,
    show_default=True,
    help="Seconds to wait between node launches",
)
@click.option("--wait", is_flag=True, help="Wait for the nodes to sync after starting")
@click.option("--timeout", type=float, default=SYNC_WAIT_TIMEOUT, show_default=True)
@click.pass_context
def start(ctx, name, image, no_create_network, settle_delay, wait, timeout):
    """Start all nodes of network NAME."""
    with handle_errors():
        orchestrator = NetworkOrchestrator.load(name, get_store(ctx), get_runtime(ctx))
        started = orchestrator.start(
            image,
            auto_create_network=not no_create_network,
            settle_delay=settle_delay,
        )
        for container in started:
            console.print(f"[cyan]  {container}[/cyan]")
        if wait and not run_async_function(orchestrator.wait_for_sync, timeout):
            sys.exit(1)
