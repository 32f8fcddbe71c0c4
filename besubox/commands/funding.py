"""
Funding - transfers from a node key to derived or listed accounts.

Two batch shapes are supported:
- ``fund_mnemonic``: N accounts derived from a BIP-39 phrase, each sent a
  fixed amount unless it already holds more than 0.1 ether.
- ``top_up``: explicit accounts brought up to a target balance.

The source balance is checked against the whole batch (plus a 20 gwei gas
estimate per transfer) before anything is sent. An "insufficient funds"
error from any transfer halts the batch; other per-account failures are
logged and the batch continues, since re-running is safe.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from rich.console import Console

from besubox.commands import crypto
from besubox.commands.constants import (
    DEFAULT_FUND_ACCOUNT_COUNT,
    DERIVATION_PATH,
    FALLBACK_GAS_PRICE_GWEI,
    FUNDED_THRESHOLD_WEI,
    RECEIPT_POLL_INTERVAL,
    RECEIPT_WAIT_TIMEOUT,
    TRANSFER_GAS_LIMIT,
    TRANSFER_PAUSE,
    WEI_PER_ETHER,
    WEI_PER_GWEI,
)
from besubox.commands.errors import ClientError, FundingError, InsufficientFundsError
from besubox.commands.models import Account
from besubox.commands.result import fail, ok, summarize
from besubox.commands.rpc import RpcClient, hex_to_int

console = Console()
logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS_MARKER = "insufficient funds"


def gas_estimate(count: int) -> int:
    """Conservative gas budget for ``count`` plain transfers."""
    return TRANSFER_GAS_LIMIT * count * FALLBACK_GAS_PRICE_GWEI * WEI_PER_GWEI


def format_ether(wei: int) -> str:
    whole, fraction = divmod(wei, WEI_PER_ETHER)
    if not fraction:
        return f"{whole} ETH"
    return f"{whole}.{str(fraction).rjust(18, '0').rstrip('0')} ETH"


class Funder:
    """Signs and sends legacy transfers from one source key."""

    def __init__(
        self,
        client: RpcClient,
        source_key: str,
        chain_id: int,
        receipt_timeout: float = RECEIPT_WAIT_TIMEOUT,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
        pause: float = TRANSFER_PAUSE,
        sleep: Callable = asyncio.sleep,
    ):
        self.client = client
        self.source_key = crypto.strip_hex_prefix(source_key.strip())
        self.source_address = crypto.address_from_private_key(self.source_key)
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self.pause = pause
        self._sleep = sleep

    async def resolve_gas_price(self) -> int:
        try:
            return await self.client.gas_price()
        except ClientError as e:
            logger.debug("eth_gasPrice unavailable, using fallback: %s", e)
            return FALLBACK_GAS_PRICE_GWEI * WEI_PER_GWEI

    async def ensure_covered(self, total: int, count: int) -> int:
        """Check the source can pay ``total`` plus gas for ``count`` transfers.

        Returns:
            The source balance in wei.

        Raises:
            InsufficientFundsError: If the balance does not cover the batch.
        """
        balance = await self.client.get_balance(self.source_address)
        required = total + gas_estimate(count)
        console.print(f"[cyan]Source balance: {format_ether(balance)}[/cyan]")
        console.print(f"[cyan]Required for funding: {format_ether(total)}[/cyan]")
        if balance < required:
            raise InsufficientFundsError(
                f"Insufficient source balance. Required: {format_ether(required)}, "
                f"Available: {format_ether(balance)}",
                address=self.source_address,
                required=required,
                available=balance,
            )
        return balance

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        """Poll until the transaction is mined.

        Raises:
            FundingError: On timeout or a reverted transaction.
        """
        waited = 0.0
        while waited <= self.receipt_timeout:
            receipt = await self.client.get_transaction_receipt(tx_hash)
            if receipt:
                if receipt.get("status") is not None and hex_to_int(receipt["status"]) == 0:
                    raise FundingError(f"Transaction {tx_hash} reverted", code="TX_REVERTED")
                return receipt
            await self._sleep(self.poll_interval)
            waited += self.poll_interval
        raise FundingError(
            f"Transaction {tx_hash} not mined after {self.receipt_timeout}s",
            code="RECEIPT_TIMEOUT",
        )

    async def send(self, to: str, value: int, gas_price: int) -> str:
        """Sign, submit and confirm one transfer; returns the transaction hash."""
        nonce = await self.client.transaction_count(self.source_address)
        raw, tx_hash = crypto.sign_transaction(
            self.source_key,
            nonce=nonce,
            gas_price=gas_price,
            gas=TRANSFER_GAS_LIMIT,
            to=to,
            value=value,
            chain_id=self.chain_id,
        )
        submitted = await self.client.send_raw_transaction(raw)
        await self.wait_for_receipt(submitted or tx_hash)
        return submitted or tx_hash

    async def _transfer(self, index: int, address: str, value: int, gas_price: int):
        try:
            tx_hash = await self.send(address, value, gas_price)
        except (ClientError, FundingError) as e:
            console.print(f"[red]✗ Failed to fund account {index + 1}: {address}[/red]")
            console.print(f"[red]   Error: {e.message}[/red]")
            if INSUFFICIENT_FUNDS_MARKER in e.message.lower():
                raise InsufficientFundsError(
                    f"Funding stopped: {e.message}", address=self.source_address
                ) from e
            return fail(e.message, error=e, address=address)
        console.print(
            f"[green]✓ Funded account {index + 1}: {address} ({format_ether(value)}) - TX: {tx_hash}[/green]"
        )
        return ok(address=address, amount=str(value), transaction_hash=tx_hash)

    async def fund_mnemonic(
        self,
        phrase: str,
        amount: int,
        count: int = DEFAULT_FUND_ACCOUNT_COUNT,
        path: str = DERIVATION_PATH,
    ) -> list[dict[str, Any]]:
        """Send ``amount`` wei to each of ``count`` accounts derived from ``phrase``."""
        if amount <= 0 or count <= 0:
            raise FundingError("Amount and account count must be positive", code="VALIDATION_FAILED")
        accounts = crypto.derive_accounts(phrase, count, path)
        console.print(f"[bold]Funding {count} accounts from mnemonic...[/bold]")

        await self.ensure_covered(amount * count, count)
        gas_price = await self.resolve_gas_price()

        results = []
        for index, (address, _) in enumerate(accounts):
            current = await self.client.get_balance(address)
            if current > FUNDED_THRESHOLD_WEI:
                console.print(
                    f"[yellow]Account {index + 1}: {address} already has "
                    f"{format_ether(current)}, skipping[/yellow]"
                )
                results.append(ok(address=address, skipped=True))
                continue
            results.append(await self._transfer(index, address, amount, gas_price))
            if index < len(accounts) - 1:
                await self._sleep(self.pause)

        self._print_summary(results)
        return results

    async def top_up(self, accounts: list[Account]) -> list[dict[str, Any]]:
        """Bring each account up to its listed balance."""
        deltas = []
        for account in accounts:
            current = await self.client.get_balance(account.address)
            deltas.append((account.address, max(0, int(account.balance) - current)))

        pending = [(address, delta) for address, delta in deltas if delta > 0]
        if pending:
            await self.ensure_covered(sum(d for _, d in pending), len(pending))
        gas_price = await self.resolve_gas_price() if pending else 0

        results = []
        for index, (address, delta) in enumerate(deltas):
            if delta == 0:
                results.append(ok(address=address, skipped=True))
                continue
            results.append(await self._transfer(index, address, delta, gas_price))
            if index < len(deltas) - 1:
                await self._sleep(self.pause)

        self._print_summary(results)
        return results

    @staticmethod
    def _print_summary(results: list[dict[str, Any]]) -> None:
        counts = summarize(results)
        console.print(
            f"\n[bold]Funding Summary: {counts['succeeded']}/{counts['total']} accounts funded or already funded[/bold]"
        )


def source_key_for(private_key: Optional[str], fallback: Optional[str]) -> str:
    """Pick the explicit source key, else the fallback node key."""
    key = private_key or fallback
    if not key:
        raise FundingError("No funding source key available", code="NO_SOURCE")
    return key
