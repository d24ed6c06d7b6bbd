"""
Tests for the account model and configuration state.
"""
import threading
from unittest.mock import MagicMock

import pytest

from ledgerkit.accounts import Account, AccountKey, State, hex_to_address
from ledgerkit.crypto import HashAlgorithm, InMemorySigner, SignatureAlgorithm, generate_private_key


class TestHexToAddress:
    """Tests for address parsing."""

    def test_full_address(self):
        assert hex_to_address("f8d6e0586b0a20c7") == bytes.fromhex("f8d6e0586b0a20c7")

    def test_prefix_and_padding(self):
        assert hex_to_address("0x1") == b"\x00" * 7 + b"\x01"
        assert hex_to_address("0x01cf") == b"\x00" * 6 + b"\x01\xcf"

    def test_too_long(self):
        with pytest.raises(ValueError, match="at most 8 bytes"):
            hex_to_address("00" * 9)

    def test_not_hex(self):
        with pytest.raises(ValueError, match="Invalid address"):
            hex_to_address("0xzz")


class TestAccount:
    """Tests for Account and AccountKey."""

    def test_default_key_is_first(self, make_account):
        account = make_account("alice", b"\x00" * 7 + b"\x01")
        second = AccountKey(1, InMemorySigner(generate_private_key(seed=b"second")))
        account.keys.append(second)
        assert account.key is account.keys[0]

    def test_no_keys(self):
        account = Account("empty", b"\x00" * 8)
        with pytest.raises(ValueError, match="has no keys"):
            _ = account.key

    def test_invalid_address_length(self):
        with pytest.raises(ValueError, match="8 bytes"):
            Account("short", b"\x01\x02")

    def test_negative_key_index(self):
        with pytest.raises(ValueError, match="non-negative"):
            AccountKey(-1, InMemorySigner(generate_private_key(seed=b"k")))

    def test_signer_hash_must_match_key(self):
        signer = InMemorySigner(generate_private_key(seed=b"k"), HashAlgorithm.SHA3_256)
        with pytest.raises(ValueError, match="Signer hashes with SHA3_256"):
            AccountKey(0, signer, hash_algo=HashAlgorithm.SHA2_256)

    def test_signer_curve_must_match_key(self):
        signer = InMemorySigner(generate_private_key(SignatureAlgorithm.ECDSA_P256, seed=b"k"))
        with pytest.raises(ValueError, match="does not match ECDSA_secp256k1"):
            AccountKey(0, signer, sig_algo=SignatureAlgorithm.ECDSA_secp256k1)

    def test_external_signer_without_hash(self):
        """Signers that only expose a public key are accepted."""
        inner = InMemorySigner(generate_private_key(SignatureAlgorithm.ECDSA_secp256k1, seed=b"hsm"))
        external = MagicMock(spec=["public_key", "sign"])
        external.public_key = inner.public_key
        key = AccountKey(0, external, SignatureAlgorithm.ECDSA_secp256k1, HashAlgorithm.SHA2_256)
        assert key.hash_algo is HashAlgorithm.SHA2_256

    def test_algorithms_accept_names(self):
        signer = InMemorySigner(generate_private_key(seed=b"k"), HashAlgorithm.SHA2_256)
        key = AccountKey(0, signer, "ECDSA_P256", "SHA2_256")
        assert key.sig_algo is SignatureAlgorithm.ECDSA_P256
        assert key.hash_algo is HashAlgorithm.SHA2_256

    def test_repr_hides_keys(self, make_account):
        account = make_account("alice", bytes.fromhex("01cf0e2f2f715450"))
        assert repr(account) == "Account(name='alice', address=0x01cf0e2f2f715450)"


class TestState:
    """Tests for the in-memory configuration state."""

    def test_lookup(self, make_account):
        alice = make_account("alice", b"\x00" * 7 + b"\x01")
        bob = make_account("bob", b"\x00" * 7 + b"\x02")
        state = State([alice, bob])

        assert state.by_name("alice") is alice
        assert state.by_name("mallory") is None
        assert state.account_by_address(bob.address) is bob
        assert state.account_by_address(b"\x00" * 8) is None
        assert state.all_accounts() == [alice, bob]

    def test_add_or_update_replaces_by_name(self, make_account):
        alice = make_account("alice", b"\x00" * 7 + b"\x01")
        state = State([alice])

        moved = make_account("alice", b"\x00" * 7 + b"\x09")
        state.add_or_update_account(moved)
        assert state.all_accounts() == [moved]

        bob = make_account("bob", b"\x00" * 7 + b"\x02")
        state.add_or_update_account(bob)
        assert [a.name for a in state.all_accounts()] == ["alice", "bob"]

    def test_remove_account(self, make_account):
        state = State([make_account("alice", b"\x00" * 7 + b"\x01")])
        state.remove_account("alice")
        assert state.all_accounts() == []

        with pytest.raises(ValueError, match="does not exist"):
            state.remove_account("alice")

    def test_readers_never_see_partial_list(self, make_account):
        """Concurrent writers swap whole account lists."""
        state = State()
        accounts = [make_account(f"acct{i}", i.to_bytes(8, "big"), seed=b"shared") for i in range(20)]

        def writer(chunk):
            for account in chunk:
                state.add_or_update_account(account)

        threads = [threading.Thread(target=writer, args=(accounts[i::4],)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(a.name for a in state.all_accounts()) == sorted(a.name for a in accounts)
