"""
Destroy command - remove a network's containers, Docker network and files.
"""

import click

from besubox.commands.errors import NetworkStateError
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.utils import console, get_runtime, get_store, handle_errors


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def destroy(ctx, name, yes):
    """Destroy network NAME and delete its keys, genesis and configs."""
    with handle_errors():
        store = get_store(ctx)
        try:
            orchestrator = NetworkOrchestrator.load(name, store, get_runtime(ctx))
        except NetworkStateError:
            console.print(f"[yellow]Network {name} is not tracked, nothing to destroy[/yellow]")
            return

        if not yes and not click.confirm(
            f"Destroy network {name} and delete all of its data?", default=False
        ):
            console.print("[yellow]Aborted[/yellow]")
            return
        orchestrator.destroy()
