"""
Unit tests for the crypto helpers and KeyManager identities.
"""

import pytest

from besubox.commands import crypto
from besubox.commands.errors import ValidationError
from besubox.commands.keys import KeyManager

ONE_KEY = "0" * 63 + "1"
ABANDON = " ".join(["abandon"] * 11 + ["about"])


class TestCrypto:
    def test_keccak_empty(self):
        assert crypto.keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_address_of_private_key_one(self):
        assert crypto.address_from_private_key(ONE_KEY) == "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"

    def test_checksum_address(self):
        address = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
        assert crypto.to_checksum_address(address) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

    def test_invalid_private_key(self):
        with pytest.raises(ValidationError):
            crypto.load_private_key("not-hex")
        with pytest.raises(ValidationError):
            crypto.load_private_key("00" * 32)

    def test_build_enode(self):
        public_key = crypto.public_key_hex(crypto.load_private_key(ONE_KEY))
        enode = crypto.build_enode(public_key, "10.0.0.10", 30303)
        assert enode == f"enode://{public_key}@10.0.0.10:30303"
        assert len(public_key) == 128

    def test_rlp_encoding(self):
        assert crypto.rlp_encode(b"dog") == b"\x83dog"
        assert crypto.rlp_encode([b"cat", b"dog"]) == b"\xc8\x83cat\x83dog"
        assert crypto.rlp_encode(0) == b"\x80"
        assert crypto.rlp_encode(15) == b"\x0f"
        assert crypto.rlp_encode(1024) == b"\x82\x04\x00"
        assert crypto.rlp_encode([]) == b"\xc0"

    def test_sign_transaction_eip155(self):
        raw, tx_hash = crypto.sign_transaction(
            "46" * 32,
            nonce=9,
            gas_price=20 * 10**9,
            gas=21000,
            to="0x" + "35" * 20,
            value=10**18,
            chain_id=1,
        )
        assert raw == (
            "0xf86c098504a817c800825208943535353535353535353535353535353535353535880de0b6b3a7640000"
            "8025a028ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276a067cbe9d8997f761a"
            "ecb703304b3800ccf555c9f3dc64214b297fb1966a3b6d83"
        )
        assert tx_hash == "0x" + crypto.keccak256(bytes.fromhex(raw[2:])).hex()

    def test_mnemonic_derivation(self):
        accounts = crypto.derive_accounts(ABANDON, 2, "m/44'/60'/0'/0")
        assert len(accounts) == 2
        assert crypto.to_checksum_address(accounts[0][0]) == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
        assert accounts[0][0] != accounts[1][0]

    def test_invalid_mnemonic(self):
        with pytest.raises(ValidationError):
            crypto.mnemonic_to_seed("abandon abandon abandon")

    def test_invalid_derivation_path(self):
        seed = crypto.mnemonic_to_seed(ABANDON)
        with pytest.raises(ValidationError):
            crypto.derive_private_key(seed, "44'/60'")
        with pytest.raises(ValidationError):
            crypto.derive_private_key(seed, "m/44x")


class TestKeyManager:
    def test_generates_and_persists_identity(self, store):
        keys = KeyManager(store, "dev")
        identity = keys.identity_for("miner1", "10.0.0.11", 30303)

        assert identity.address == crypto.address_from_private_key(identity.private_key)
        assert identity.enode == f"enode://{identity.public_key}@10.0.0.11:30303"
        assert store.read_text("dev", "miner1/key.priv") == identity.private_key
        assert keys.load("miner1") == identity

    def test_ip_change_rederives_enode_only(self, store):
        keys = KeyManager(store, "dev")
        original = keys.identity_for("bootnode", "10.0.0.10")
        moved = keys.identity_for("bootnode", "10.0.0.99")

        assert moved.private_key == original.private_key
        assert moved.address == original.address
        assert moved.enode.endswith("@10.0.0.99:30303")
        assert store.read_text("dev", "bootnode/enode") == moved.enode

    def test_partial_bundle_is_rebuilt(self, store):
        store.write_text("dev", "miner1/key.priv", "0x" + ONE_KEY + "\n")
        identity = KeyManager(store, "dev").load("miner1")
        assert identity.private_key == ONE_KEY
        assert identity.address == "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"
        assert identity.enode == ""
