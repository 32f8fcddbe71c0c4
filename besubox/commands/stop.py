"""
Stop command - stop and remove a network's containers, keeping its files.
"""

import click

from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.utils import console, get_runtime, get_store, handle_errors


@click.command()
@click.argument("name")
@click.pass_context
def stop(ctx, name):
    """Stop all nodes of network NAME."""
    with handle_errors():
        orchestrator = NetworkOrchestrator.load(name, get_store(ctx), get_runtime(ctx))
        stopped = orchestrator.stop()
        if stopped:
            console.print(f"[green]✓ Stopped {len(stopped)} containers of {name}[/green]")
        else:
            console.print(f"[yellow]No running containers for {name}[/yellow]")
