"""
Fund command - transfer ether from a node key to mnemonic-derived or listed accounts.
"""

import sys

import click

from besubox.commands.constants import DEFAULT_FUND_ACCOUNT_COUNT
from besubox.commands.errors import ConfigurationError
from besubox.commands.models import Account
from besubox.commands.orchestrator import NetworkOrchestrator
from besubox.commands.updater import TopologyUpdater
from besubox.commands.utils import get_runtime, get_store, handle_errors, run_async_function
from besubox.commands.validation import ether_to_wei


def _wei(amount: str) -> int:
    try:
        return ether_to_wei(amount)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def parse_account(value: str) -> Account:
    address, sep, amount = value.partition(":")
    if not sep or not address:
        raise ConfigurationError(f"Expected ADDRESS:ETHER, got '{value}'")
    return Account(address=address.strip(), balance=str(_wei(amount.strip())))


@click.command()
@click.argument("name")
@click.option("--mnemonic", help="BIP-39 phrase whose derived accounts are funded")
@click.option("--amount", help="Ether sent to each derived account")
@click.option("--count", type=int, default=DEFAULT_FUND_ACCOUNT_COUNT, show_default=True)
@click.option(
    "--account",
    "accounts",
    multiple=True,
    help="ADDRESS:ETHER account to record and top up (repeatable)",
)
@click.option("--no-transfer", is_flag=True, help="Only record --account entries, send nothing")
@click.option("--private-key", envvar="BESUBOX_FUNDING_KEY", help="Funding source key")
@click.option("--node", help="Node whose RPC endpoint is used")
@click.pass_context
def fund(ctx, name, mnemonic, amount, count, accounts, no_transfer, private_key, node):
    """Fund accounts on network NAME."""
    with handle_errors():
        store = get_store(ctx)
        if mnemonic:
            if not amount:
                raise ConfigurationError("--amount is required with --mnemonic")
            orchestrator = NetworkOrchestrator.load(name, store, get_runtime(ctx))
            results = run_async_function(
                orchestrator.fund_mnemonic,
                mnemonic,
                _wei(amount),
                count,
                private_key=private_key,
                node_name=node,
            )
            if not all(r.get("success") for r in results):
                sys.exit(1)
        elif accounts:
            updater = TopologyUpdater(store, get_runtime(ctx))
            outcome = run_async_function(
                updater.update_accounts,
                name,
                [parse_account(a) for a in accounts],
                transfer=not no_transfer,
                private_key=private_key,
            )
            if not outcome["success"]:
                sys.exit(1)
        else:
            raise ConfigurationError("Pass --mnemonic with --amount, or one or more --account")
