"""
Cryptographic helpers: secp256k1 keys, keccak addresses, enode URIs,
BIP-32/BIP-44 derivation and signed legacy transactions.
"""

import hashlib
import hmac
from typing import Union

from Crypto.Hash import keccak
from ecdsa import SECP256k1, MalformedPointError, SigningKey, VerifyingKey
from ecdsa.util import sigdecode_strings, sigencode_strings_canonize
from mnemonic import Mnemonic

from besubox.commands.errors import ValidationError

SECP256K1_ORDER = SECP256k1.order
HARDENED_OFFSET = 0x80000000


def keccak256(data: bytes) -> bytes:
    digest = keccak.new(digest_bits=256)
    digest.update(data)
    return digest.digest()


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def generate_private_key() -> SigningKey:
    return SigningKey.generate(curve=SECP256k1)


def load_private_key(private_key_hex: str) -> SigningKey:
    try:
        secret = bytes.fromhex(strip_hex_prefix(private_key_hex.strip()))
        return SigningKey.from_string(secret, curve=SECP256k1)
    except (ValueError, MalformedPointError) as e:
        raise ValidationError("Invalid private key", field="private_key") from e


def public_key_hex(private_key: SigningKey) -> str:
    """Uncompressed public key, hex, without the 04 prefix."""
    return private_key.get_verifying_key().to_string().hex()


def address_from_public_key(public_key: Union[str, bytes]) -> str:
    """Last 20 bytes of keccak-256 over the 64-byte public key."""
    if isinstance(public_key, str):
        public_key = bytes.fromhex(strip_hex_prefix(public_key))
    if len(public_key) == 65 and public_key[0] == 4:
        public_key = public_key[1:]
    return "0x" + keccak256(public_key)[-20:].hex()


def address_from_private_key(private_key: Union[str, SigningKey]) -> str:
    if isinstance(private_key, str):
        private_key = load_private_key(private_key)
    return address_from_public_key(public_key_hex(private_key))


def to_checksum_address(address: str) -> str:
    """EIP-55 mixed-case encoding."""
    lowered = strip_hex_prefix(address).lower()
    hashed = keccak256(lowered.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if int(hashed[i], 16) >= 8 else c for i, c in enumerate(lowered)
    )


def build_enode(public_key: str, ip: str, port: int) -> str:
    return f"enode://{strip_hex_prefix(public_key)}@{ip}:{port}"


# BIP-39 / BIP-32


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    mnemo = Mnemonic("english")
    normalized = " ".join(phrase.split())
    if not mnemo.check(normalized):
        raise ValidationError("Invalid mnemonic phrase", field="mnemonic")
    return Mnemonic.to_seed(normalized, passphrase=passphrase)


def _parse_path(path: str) -> list[int]:
    parts = path.strip().split("/")
    if not parts or parts[0] != "m":
        raise ValidationError(f"Derivation path must start with 'm': {path}", field="path")
    indexes = []
    for part in parts[1:]:
        hardened = part.endswith("'")
        digits = part[:-1] if hardened else part
        if not digits.isdigit():
            raise ValidationError(f"Invalid derivation path segment: {part}", field="path")
        indexes.append(int(digits) + (HARDENED_OFFSET if hardened else 0))
    return indexes


def derive_private_key(seed: bytes, path: str) -> str:
    """Derive a child private key (hex) from a BIP-32 seed along ``path``."""
    digest = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
    key, chain_code = digest[:32], digest[32:]
    for index in _parse_path(path):
        if index >= HARDENED_OFFSET:
            data = b"\x00" + key + index.to_bytes(4, "big")
        else:
            public_key = SigningKey.from_string(key, curve=SECP256k1).get_verifying_key()
            data = public_key.to_string("compressed") + index.to_bytes(4, "big")
        digest = hmac.new(chain_code, data, hashlib.sha512).digest()
        tweak, chain_code = digest[:32], digest[32:]
        child = (int.from_bytes(tweak, "big") + int.from_bytes(key, "big")) % SECP256K1_ORDER
        key = child.to_bytes(32, "big")
    return key.hex()


def derive_accounts(phrase: str, count: int, base_path: str) -> list[tuple[str, str]]:
    """Return ``count`` (address, private key hex) pairs at ``base_path/i``."""
    seed = mnemonic_to_seed(phrase)
    accounts = []
    for index in range(count):
        private_key = derive_private_key(seed, f"{base_path}/{index}")
        accounts.append((address_from_private_key(private_key), private_key))
    return accounts


# RLP and legacy (EIP-155) transactions


def _int_to_bytes(value: int) -> bytes:
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _length_prefix(length: int, offset: int) -> bytes:
    if length < 56:
        return bytes([offset + length])
    encoded = _int_to_bytes(length)
    return bytes([offset + 55 + len(encoded)]) + encoded


def rlp_encode(item) -> bytes:
    if isinstance(item, int):
        item = _int_to_bytes(item)
    if isinstance(item, (bytes, bytearray)):
        item = bytes(item)
        if len(item) == 1 and item[0] < 0x80:
            return item
        return _length_prefix(len(item), 0x80) + item
    if isinstance(item, (list, tuple)):
        payload = b"".join(rlp_encode(element) for element in item)
        return _length_prefix(len(payload), 0xC0) + payload
    raise TypeError(f"Cannot RLP-encode {type(item).__name__}")


def _recovery_id(signing_key: SigningKey, signature: tuple[bytes, bytes], digest: bytes) -> int:
    """Index of the signer among the keys recoverable from ``signature``."""
    expected = signing_key.get_verifying_key().to_string()
    candidates = VerifyingKey.from_public_key_recovery_with_digest(
        signature, digest, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_strings
    )
    for index, candidate in enumerate(candidates):
        if candidate.to_string() == expected:
            return index
    raise ValidationError("Signature does not recover to the signing key", field="signature")


def sign_transaction(
    private_key: str,
    *,
    nonce: int,
    gas_price: int,
    gas: int,
    to: str,
    value: int,
    chain_id: int,
    data: bytes = b"",
) -> tuple[str, str]:
    """Sign a legacy EIP-155 transaction.

    Returns:
        (raw transaction hex, transaction hash hex), both 0x-prefixed.
    """
    recipient = bytes.fromhex(strip_hex_prefix(to))
    fields = [nonce, gas_price, gas, recipient, value, data]
    message_hash = keccak256(rlp_encode(fields + [chain_id, 0, 0]))
    signing_key = load_private_key(private_key)
    r_bytes, s_bytes = signing_key.sign_digest_deterministic(
        message_hash, hashfunc=hashlib.sha256, sigencode=sigencode_strings_canonize
    )
    recovery_id = _recovery_id(signing_key, (r_bytes, s_bytes), message_hash)
    r = int.from_bytes(r_bytes, "big")
    s = int.from_bytes(s_bytes, "big")
    v = recovery_id + chain_id * 2 + 35
    raw = rlp_encode(fields + [v, r, s])
    return "0x" + raw.hex(), "0x" + keccak256(raw).hex()
