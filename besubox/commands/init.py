"""
Init command - write a sample topology file.
"""

import sys
from pathlib import Path

import click

from besubox.commands.topology import create_sample_topology
from besubox.commands.utils import console


@click.command()
@click.argument("output", default="network.yml")
@click.option("--name", default="besu-dev", show_default=True, help="Network name")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init(output, name, force):
    """Write a sample topology to OUTPUT (.yml or .json)."""
    if Path(output).exists() and not force:
        console.print(f"[red]✗ {output} already exists, use --force to overwrite[/red]")
        sys.exit(1)
    create_sample_topology(output, name)
