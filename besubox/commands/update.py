"""
Update command - add, remove or reconfigure nodes of an existing network.

Examples::

    besubox update dev --add-file extra-nodes.yml
    besubox update dev --remove rpc2 --set bootnode:ip=172.24.0.50
    besubox update dev --subnet 10.20.0.0/24
"""

import sys
from typing import Any

import click

from besubox.commands.constants import DEFAULT_IMAGE
from besubox.commands.errors import ConfigurationError
from besubox.commands.topology import load_nodes_file
from besubox.commands.updater import TopologyUpdater, parse_update_request
from besubox.commands.utils import console, get_runtime, get_store, handle_errors, print_findings

NODE_FIELDS = ("ip", "rpc_port", "p2p_port")


def parse_node_assignment(value: str) -> dict[str, Any]:
    """Parse ``name:key=value[,key=value]`` into a node update mapping."""
    name, sep, assignments = value.partition(":")
    if not sep or not name.strip() or not assignments.strip():
        raise ConfigurationError(f"Expected NAME:KEY=VALUE, got '{value}'")
    entry: dict[str, Any] = {"name": name.strip()}
    for assignment in assignments.split(","):
        key, eq, field_value = assignment.partition("=")
        key = key.strip().replace("-", "_")
        if not eq or key not in NODE_FIELDS:
            raise ConfigurationError(
                f"Invalid assignment '{assignment}'. Supported keys: {', '.join(NODE_FIELDS)}"
            )
        entry[key] = field_value.strip()
    return entry


def parse_signer_account(value: str) -> dict[str, str]:
    address, sep, balance = value.partition(":")
    if not sep or not address or not balance:
        raise ConfigurationError(f"Expected ADDRESS:WEI, got '{value}'")
    return {"address": address.strip(), "balance": balance.strip()}


@click.command()
@click.argument("name")
@click.option("--add-file", type=click.Path(), help="YAML or JSON file with nodes to add")
@click.option("--remove", multiple=True, help="Node to remove (repeatable)")
@click.option("--set", "assignments", multiple=True, help="NAME:KEY=VALUE node change (repeatable)")
@click.option("--signer-account", multiple=True, help="ADDRESS:WEI signer account for new miners")
@click.option("--subnet", help="Move the network to a new subnet")
@click.option("--chain-id", type=int, hidden=True)
@click.option("--consensus", hidden=True)
@click.option("--gas-limit", hidden=True)
@click.option("--block-time", type=int, hidden=True)
@click.option("--start", "start_after", is_flag=True, help="Start the network after updating")
@click.option("--image", default=DEFAULT_IMAGE, show_default=True, help="Node image")
@click.pass_context
def update(
    ctx,
    name,
    add_file,
    remove,
    assignments,
    signer_account,
    subnet,
    chain_id,
    consensus,
    gas_limit,
    block_time,
    start_after,
    image,
):
    """Apply topology changes to network NAME. Genesis is never modified."""
    with handle_errors():
        updater = TopologyUpdater(get_store(ctx), get_runtime(ctx))

        network_changes = {
            key: value
            for key, value in (
                ("chain_id", chain_id),
                ("consensus", consensus),
                ("gas_limit", gas_limit),
                ("block_time", block_time),
                ("subnet", subnet),
            )
            if value is not None
        }
        if network_changes:
            updater.update_network(name, network_changes)

        data: dict[str, Any] = load_nodes_file(add_file) if add_file else {}
        if remove:
            data["remove"] = list(remove)
        if assignments:
            data["update"] = [parse_node_assignment(a) for a in assignments]
        if signer_account:
            data["signer_accounts"] = data.get("signer_accounts", []) + [
                parse_signer_account(a) for a in signer_account
            ]

        request = parse_update_request(data)
        if request.is_empty():
            if not network_changes:
                console.print("[yellow]Nothing to update[/yellow]")
            return

        result = updater.apply(name, request, start_after_update=start_after, image=image)
        if not result.success:
            print_findings(result.findings)
            sys.exit(1)
