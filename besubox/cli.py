#!/usr/bin/env python3
"""
Besubox CLI
A Python CLI tool for provisioning private Besu networks in Docker containers.
"""

import click

from besubox import __version__
from besubox.commands import (
    create,
    destroy,
    fund,
    init,
    start,
    status,
    stop,
    update,
)
from besubox.commands.utils import configure_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--storage-root",
    envvar="BESUBOX_HOME",
    type=click.Path(file_okay=False),
    help="Directory holding network files (default: ./networks)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, storage_root, verbose):
    """Besubox CLI - Manage private Besu networks in Docker containers."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["storage_root"] = storage_root
    ctx.obj["verbose"] = verbose


cli.add_command(create)
cli.add_command(destroy)
cli.add_command(fund)
cli.add_command(init)
cli.add_command(start)
cli.add_command(status)
cli.add_command(stop)
cli.add_command(update)


def main():
    """Main entry point for the besubox CLI."""
    cli()


if __name__ == "__main__":
    main()
