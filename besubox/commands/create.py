"""
Create command - validate a topology and provision a network without starting it.
"""

import click

from besubox.commands.constants import DEFAULT_IMAGE
from besubox.commands.errors import ConfigurationError
from besubox.commands.models import ConsensusKind, NetworkSpec
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.topology import (
    custom_topology,
    load_topology_file,
    multi_signer_topology,
    scalable_topology,
    simple_topology,
)
from besubox.commands.utils import console, get_runtime, get_store, handle_errors, nodes_table

LAYOUTS = ["simple", "multi-signer", "custom", "scalable"]


def build_nodes(layout, subnet, bootnodes, miners, rpc_nodes, validators, total_nodes):
    if layout == "simple":
        return simple_topology(subnet)
    if layout == "multi-signer":
        return multi_signer_topology(subnet, miners, rpc_nodes)
    if layout == "scalable":
        if not total_nodes:
            raise ConfigurationError("--total-nodes is required for the scalable layout")
        return scalable_topology(subnet, total_nodes)
    return custom_topology(subnet, bootnodes, miners, rpc_nodes, validators)


@click.command()
@click.option("--file", "-f", "topology_file", type=click.Path(), help="YAML or JSON topology file")
@click.option("--name", help="Network name (without --file)")
@click.option("--chain-id", type=int, help="Chain ID (without --file)")
@click.option("--subnet", default="172.24.0.0/16", show_default=True, help="Network subnet")
@click.option(
    "--consensus",
    type=click.Choice([kind.value for kind in ConsensusKind]),
    default=ConsensusKind.AUTHORITY_ROUND.value,
    show_default=True,
)
@click.option("--layout", type=click.Choice(LAYOUTS), default="custom", show_default=True)
@click.option("--bootnodes", type=int, default=1, show_default=True)
@click.option("--miners", type=int, default=1, show_default=True)
@click.option("--rpc-nodes", type=int, default=0, show_default=True)
@click.option("--validators", type=int, default=0, show_default=True, help="Validator (relay) nodes")
@click.option("--total-nodes", type=int, help="Node count for the scalable layout")
@click.option("--initial-balance", help="Block producer balance in ether")
@click.option(
    "--no-auto-subnet",
    is_flag=True,
    help="Fail instead of moving to a free subnet when the requested one is taken",
)
@click.option("--start", "start_after", is_flag=True, help="Start the network after creating it")
@click.option("--image", default=DEFAULT_IMAGE, show_default=True, help="Node image")
@click.pass_context
def create(
    ctx,
    topology_file,
    name,
    chain_id,
    subnet,
    consensus,
    layout,
    bootnodes,
    miners,
    rpc_nodes,
    validators,
    total_nodes,
    initial_balance,
    no_auto_subnet,
    start_after,
    image,
):
    """Create a network from a topology file or a role layout."""
    with handle_errors():
        if topology_file:
            topology = load_topology_file(topology_file)
            spec, nodes = topology.spec, topology.nodes
            initial_balance = initial_balance or topology.initial_balance
        else:
            if not name or chain_id is None:
                raise ConfigurationError("--name and --chain-id are required without --file")
            spec = NetworkSpec(
                name=name,
                chain_id=chain_id,
                subnet=subnet,
                consensus=ConsensusKind.parse(consensus),
            )
            nodes = build_nodes(
                layout, subnet, bootnodes, miners, rpc_nodes, validators, total_nodes
            )

        orchestrator = NetworkOrchestrator(get_store(ctx), get_runtime(ctx))
        orchestrator.create(
            spec,
            nodes,
            auto_resolve_subnet=not no_auto_subnet,
            initial_balance=initial_balance,
        )
        console.print(nodes_table(orchestrator.summary()))

        if start_after:
            orchestrator.start(image)
