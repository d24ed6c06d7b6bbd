"""
Account and key model, plus the in-memory configuration state.

Role resolution looks accounts up here; accounts are shared by reference
with the roles that use them.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .crypto import HashAlgorithm, SignatureAlgorithm, Signer, decode_public_key

logger = logging.getLogger(__name__)

ADDRESS_LENGTH = 8


def hex_to_address(value: str) -> bytes:
    """
    Convert a hex string into an 8-byte address.

    Shorter values are left-padded with zeros.

    Raises:
        ValueError: If the value is not hex or longer than 8 bytes
    """
    raw = value[2:] if value.startswith("0x") else value
    if len(raw) % 2:
        raw = "0" + raw
    try:
        address = bytes.fromhex(raw)
    except ValueError:
        raise ValueError(f"Invalid address: {value}")
    if len(address) > ADDRESS_LENGTH:
        raise ValueError(f"Address must be at most {ADDRESS_LENGTH} bytes, got {len(address)}")
    return address.rjust(ADDRESS_LENGTH, b"\x00")


@dataclass
class AccountKey:
    """
    Signing key metadata of an account.

    Attributes:
        index: Index of the key on the account
        signer: Signer producing signatures with this key
        sig_algo: Signature algorithm of the key
        hash_algo: Hash algorithm used when signing

    Raises:
        ValueError: If the index is negative, or the signer's public key or
            hash algorithm does not match the declared algorithms
    """
    index: int
    signer: Signer
    sig_algo: SignatureAlgorithm = SignatureAlgorithm.ECDSA_P256
    hash_algo: HashAlgorithm = HashAlgorithm.SHA3_256

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"Key index must be non-negative, got {self.index}")
        self.sig_algo = SignatureAlgorithm(self.sig_algo)
        self.hash_algo = HashAlgorithm(self.hash_algo)

        # external signers may not expose their hash algorithm
        signer_hash = getattr(self.signer, "hash_algo", None)
        if signer_hash is not None and HashAlgorithm(signer_hash) is not self.hash_algo:
            raise ValueError(
                f"Signer hashes with {HashAlgorithm(signer_hash).value}, "
                f"but key {self.index} declares {self.hash_algo.value}"
            )
        try:
            decode_public_key(self.signer.public_key, self.sig_algo)
        except ValueError as e:
            raise ValueError(
                f"Signer public key does not match {self.sig_algo.value} for key {self.index}: {e}"
            ) from e


@dataclass
class Account:
    """
    A named account from the configuration.

    Attributes:
        name: Name unique within the configuration
        address: 8-byte account address
        keys: Ordered signing keys; the first one is the default key
    """
    name: str
    address: bytes
    keys: List[AccountKey] = field(default_factory=list)

    def __post_init__(self):
        if len(self.address) != ADDRESS_LENGTH:
            raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.address)}")

    @property
    def key(self) -> AccountKey:
        """Default signing key of the account."""
        if not self.keys:
            raise ValueError(f"Account {self.name} has no keys")
        return self.keys[0]

    def __repr__(self) -> str:
        return f"Account(name={self.name!r}, address=0x{self.address.hex()})"


class State:
    """
    In-memory configuration state holding the known accounts.

    Readers always see a complete account list: mutations build a new
    tuple and swap it in under a lock.
    """

    def __init__(self, accounts: Optional[Iterable[Account]] = None):
        self._accounts: Tuple[Account, ...] = tuple(accounts or ())
        self._lock = threading.RLock()

    def all_accounts(self) -> List[Account]:
        """Return all configured accounts in configuration order."""
        return list(self._accounts)

    def by_name(self, name: str) -> Optional[Account]:
        """
        Look up an account by name.

        Returns:
            The account, or None if no account has that name
        """
        for account in self._accounts:
            if account.name == name:
                return account
        return None

    def account_by_address(self, address: bytes) -> Optional[Account]:
        """Look up an account by its 8-byte address."""
        for account in self._accounts:
            if account.address == address:
                return account
        return None

    def add_or_update_account(self, account: Account) -> None:
        """Add an account, replacing any existing account with the same name."""
        with self._lock:
            accounts = list(self._accounts)
            for i, existing in enumerate(accounts):
                if existing.name == account.name:
                    accounts[i] = account
                    break
            else:
                accounts.append(account)
            self._accounts = tuple(accounts)
        logger.debug(f"Stored account {account.name} (0x{account.address.hex()})")

    def remove_account(self, name: str) -> None:
        """
        Remove an account from the configuration.

        Raises:
            ValueError: If no account has that name
        """
        with self._lock:
            if self.by_name(name) is None:
                raise ValueError(f"account named {name} does not exist in configuration")
            self._accounts = tuple(a for a in self._accounts if a.name != name)
        logger.debug(f"Removed account {name}")
