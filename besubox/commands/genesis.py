"""
GenesisBuilder - builds the immutable genesis document of a network.

The document is built once at creation and never regenerated. Clique
networks encode their signer set in ``extraData``::

    0x | 32 zero bytes | signer addresses (20 bytes each) | 65 zero bytes

BFT networks keep the padding-only ``extraData`` and list the validators
in the consensus section instead.
"""

import logging
from typing import Any, Optional

from besubox.commands.constants import (
    ADDRESS_BYTES,
    DEFAULT_BLOCK_TIME,
    DEFAULT_PRODUCER_BALANCE,
    EPOCH_LENGTH,
    EXTRA_DATA_SEAL_BYTES,
    EXTRA_DATA_VANITY_BYTES,
)
from besubox.commands.crypto import strip_hex_prefix
from besubox.commands.errors import ValidationError
from besubox.commands.models import ConsensusKind, NetworkSpec, SignerAssociation

logger = logging.getLogger(__name__)

VANITY = "00" * EXTRA_DATA_VANITY_BYTES
SEAL = "00" * EXTRA_DATA_SEAL_BYTES


def _with_prefix(address: str) -> str:
    return "0x" + strip_hex_prefix(address)


def encode_extra_data(signers: list[str]) -> str:
    """Clique extraData for an ordered list of signer addresses."""
    body = "".join(strip_hex_prefix(address).lower() for address in signers)
    return f"0x{VANITY}{body}{SEAL}"


def extra_data_signers(genesis: dict[str, Any]) -> list[str]:
    """Decode the signer addresses embedded in a Clique genesis ``extraData``.

    Raises:
        ValidationError: If the payload does not follow the vanity/signers/seal layout.
    """
    payload = strip_hex_prefix(genesis.get("extraData", ""))
    padding = len(VANITY) + len(SEAL)
    body_length = len(payload) - padding
    if body_length < 0 or body_length % (ADDRESS_BYTES * 2):
        raise ValidationError(
            f"extraData has unexpected length {len(payload) // 2} bytes",
            field="extraData",
        )
    body = payload[len(VANITY) : len(VANITY) + body_length]
    step = ADDRESS_BYTES * 2
    return ["0x" + body[i : i + step] for i in range(0, body_length, step)]


class GenesisBuilder:
    """Pure, deterministic genesis construction."""

    def build(
        self,
        spec: NetworkSpec,
        associations: Optional[list[SignerAssociation]] = None,
        producer_address: Optional[str] = None,
        default_balance: str = DEFAULT_PRODUCER_BALANCE,
    ) -> dict[str, Any]:
        """Build the genesis document.

        Args:
            spec: Network parameters; signer accounts are taken in order.
            associations: Signer associations. Only used to make sure every
                associated address also appears in the signer set.
            producer_address: Designated block producer, credited with
                ``default_balance`` unless already allocated.
            default_balance: Producer balance in wei.

        Returns:
            The genesis document as a plain dict.
        """
        signers = [_with_prefix(a.address) for a in spec.signer_accounts]
        if not signers and producer_address:
            signers = [_with_prefix(producer_address)]
        known = {s.lower() for s in signers}
        for association in associations or []:
            if _with_prefix(association.address).lower() not in known:
                raise ValidationError(
                    f"Signer association for {association.node} references "
                    f"{association.address}, which is not a signer account",
                    field="signer_accounts",
                )

        block_time = spec.block_time or DEFAULT_BLOCK_TIME
        config: dict[str, Any] = {"chainId": spec.chain_id, "londonBlock": 0}

        if spec.consensus is ConsensusKind.AUTHORITY_ROUND:
            config["clique"] = {"period": block_time, "epoch": EPOCH_LENGTH}
            extra_data = encode_extra_data(signers)
        else:
            config[spec.consensus.value] = {
                "blockperiodseconds": block_time,
                "epochlength": EPOCH_LENGTH,
                "validators": signers,
            }
            extra_data = f"0x{VANITY}{SEAL}"

        genesis = {
            "config": config,
            "extraData": extra_data,
            "gasLimit": spec.gas_limit,
            "difficulty": "0x1",
            "alloc": self._build_alloc(spec, producer_address, default_balance),
        }
        logger.debug(
            "Built %s genesis for chain %s with %d signers",
            spec.consensus.value,
            spec.chain_id,
            len(signers),
        )
        return genesis

    @staticmethod
    def _build_alloc(spec, producer_address, default_balance) -> dict[str, dict[str, str]]:
        alloc: dict[str, dict[str, str]] = {}
        seen: set[str] = set()

        def credit(address: str, balance: str) -> None:
            address = _with_prefix(address)
            if address.lower() in seen:
                return
            seen.add(address.lower())
            alloc[address] = {"balance": balance}

        for account in spec.signer_accounts:
            credit(account.address, account.balance)
        for account in spec.accounts:
            credit(account.address, account.balance)
        if producer_address:
            credit(producer_address, default_balance)
        return alloc
