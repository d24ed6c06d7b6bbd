"""
In-process ledger engine backing the embedded gateway.

The engine keeps the whole ledger in memory and advances synchronously: each
accepted transaction is executed at once and sealed in a new block holding a
single collection. Script semantics are delegated to a pluggable runtime.

Errors are reported as EmulatorError carrying a status code, the engine's
native error type; the embedded gateway unwraps them.
"""
import copy
import dataclasses
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import cbor2

from ..arguments import TypedValue
from ..crypto import (
    HashAlgorithm, SignatureAlgorithm, encode_public_key, generate_private_key, verify_signature
)
from ..transaction import TransactionEnvelope, envelope_message, payload_message

logger = logging.getLogger(__name__)

SERVICE_ADDRESS = bytes.fromhex("f8d6e0586b0a20c7")
DEFAULT_MAX_GAS_LIMIT = 9999
ZERO_ID = b"\x00" * 32


class EmulatorError(Exception):
    """Native error of the in-process engine."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ScriptError(Exception):
    """Raised by a runtime when a script or transaction fails to execute."""
    pass


@dataclass
class EngineKey:
    index: int
    public_key: bytes
    sig_algo: SignatureAlgorithm
    hash_algo: HashAlgorithm
    weight: int = 1000
    sequence_number: int = 0
    revoked: bool = False


@dataclass
class EngineAccount:
    address: bytes
    keys: List[EngineKey] = field(default_factory=list)
    balance: int = 0

    def key(self, index: int) -> Optional[EngineKey]:
        for key in self.keys:
            if key.index == index:
                return key
        return None


@dataclass
class EngineBlock:
    id: bytes
    parent_id: bytes
    height: int
    timestamp: datetime
    collection_ids: List[bytes] = field(default_factory=list)


@dataclass
class EngineEvent:
    type: str
    transaction_id: bytes
    transaction_index: int
    event_index: int
    payload: Dict[str, Any]


@dataclass
class EngineResult:
    transaction_id: bytes
    block_id: bytes
    error_message: str = ""
    events: List[EngineEvent] = field(default_factory=list)


@dataclass
class Ledger:
    """Complete engine state; a deep copy of it is a snapshot."""
    accounts: Dict[bytes, EngineAccount] = field(default_factory=dict)
    blocks: List[EngineBlock] = field(default_factory=list)
    transactions: Dict[bytes, TransactionEnvelope] = field(default_factory=dict)
    results: Dict[bytes, EngineResult] = field(default_factory=dict)
    collections: Dict[bytes, List[bytes]] = field(default_factory=dict)
    events: Dict[bytes, List[EngineEvent]] = field(default_factory=dict)
    account_counter: int = 0


class ScriptRuntime(Protocol):
    """Executes transaction and script code against the ledger."""

    def execute_transaction(
        self, envelope: TransactionEnvelope, ledger: Ledger
    ) -> List[Dict[str, Any]]:
        """Run a transaction; return emitted events as ``{"type", "payload"}`` maps."""
        ...

    def execute_script(
        self, script: bytes, arguments: Sequence[TypedValue], ledger: Ledger
    ) -> TypedValue:
        """Run a read-only script and return its typed result value."""
        ...


class NullRuntime:
    """Runtime with no script semantics: no events, scripts return Void."""

    def execute_transaction(self, envelope, ledger):
        return []

    def execute_script(self, script, arguments, ledger):
        return {"type": "Void"}


def _digest(*parts: Any) -> bytes:
    return hashlib.sha3_256(cbor2.dumps(list(parts), canonical=True)).digest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _detach(envelope: TransactionEnvelope) -> TransactionEnvelope:
    """Copy an envelope without the caller's roles (and their signers)."""
    return dataclasses.replace(
        envelope,
        arguments=copy.deepcopy(envelope.arguments),
        authorizers=list(envelope.authorizers),
        proposal_key=dataclasses.replace(envelope.proposal_key),
        payload_signatures=dict(envelope.payload_signatures),
        envelope_signatures=dict(envelope.envelope_signatures),
        roles=None,
    )


class Emulator:
    """
    In-memory ledger engine.

    Args:
        service_public_key: Raw public key of the service account; a random
            key is generated when omitted
        sig_algo: Signature algorithm of the service key
        hash_algo: Hash algorithm of the service key
        runtime: Script runtime, NullRuntime by default
        max_gas_limit: Largest gas limit accepted for a transaction
        clock: Source of block timestamps
    """

    def __init__(
        self,
        service_public_key: Optional[bytes] = None,
        sig_algo: SignatureAlgorithm = SignatureAlgorithm.ECDSA_P256,
        hash_algo: HashAlgorithm = HashAlgorithm.SHA3_256,
        runtime: Optional[ScriptRuntime] = None,
        max_gas_limit: int = DEFAULT_MAX_GAS_LIMIT,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.runtime = runtime or NullRuntime()
        self.max_gas_limit = max_gas_limit
        self._clock = clock

        if service_public_key is None:
            logger.info("No service key given, generating a random emulator service key")
            service_public_key = encode_public_key(generate_private_key(sig_algo).public_key())

        self._ledger = Ledger()
        self._ledger.accounts[SERVICE_ADDRESS] = EngineAccount(
            address=SERVICE_ADDRESS,
            keys=[EngineKey(0, service_public_key, SignatureAlgorithm(sig_algo), HashAlgorithm(hash_algo))],
        )
        self._commit_block([])

    @property
    def service_address(self) -> bytes:
        return SERVICE_ADDRESS

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # -- state capture ------------------------------------------------------

    def snapshot(self) -> Ledger:
        """Return a deep copy of the full ledger state."""
        return copy.deepcopy(self._ledger)

    def restore(self, ledger: Ledger) -> None:
        """Replace the live ledger state with a copy of the given one."""
        self._ledger = copy.deepcopy(ledger)

    # -- accounts -----------------------------------------------------------

    def create_account(
        self, public_keys: Sequence[Tuple[bytes, SignatureAlgorithm, HashAlgorithm]]
    ) -> bytes:
        """Register a new account holding the given keys and return its address."""
        self._ledger.account_counter += 1
        address = self._ledger.account_counter.to_bytes(8, "big")
        keys = [
            EngineKey(i, public_key, SignatureAlgorithm(sig_algo), HashAlgorithm(hash_algo))
            for i, (public_key, sig_algo, hash_algo) in enumerate(public_keys)
        ]
        self._ledger.accounts[address] = EngineAccount(address=address, keys=keys)
        logger.debug(f"Created emulator account 0x{address.hex()} with {len(keys)} keys")
        return address

    def get_account(self, address: bytes) -> EngineAccount:
        account = self._ledger.accounts.get(address)
        if account is None:
            raise EmulatorError(EmulatorError.NOT_FOUND, f"account with address {address.hex()} does not exist")
        return account

    # -- blocks -------------------------------------------------------------

    def latest_block(self) -> EngineBlock:
        return self._ledger.blocks[-1]

    def block_by_height(self, height: int) -> EngineBlock:
        if not 0 <= height < len(self._ledger.blocks):
            raise EmulatorError(EmulatorError.NOT_FOUND, f"block at height {height} not found")
        return self._ledger.blocks[height]

    def block_by_id(self, block_id: bytes) -> EngineBlock:
        for block in self._ledger.blocks:
            if block.id == block_id:
                return block
        raise EmulatorError(EmulatorError.NOT_FOUND, f"block with ID {block_id.hex()} not found")

    def events_for_block_ids(
        self, event_type: str, block_ids: Sequence[bytes]
    ) -> List[Tuple[bytes, List[EngineEvent]]]:
        """Return ``(block_id, events)`` pairs for the given blocks, filtered by type."""
        batches = []
        for block_id in block_ids:
            events = [e for e in self._ledger.events.get(block_id, []) if e.type == event_type]
            batches.append((block_id, events))
        return batches

    def collection(self, collection_id: bytes) -> List[bytes]:
        tx_ids = self._ledger.collections.get(collection_id)
        if tx_ids is None:
            raise EmulatorError(EmulatorError.NOT_FOUND, f"collection {collection_id.hex()} not found")
        return list(tx_ids)

    def _commit_block(self, collection_ids: List[bytes]) -> EngineBlock:
        blocks = self._ledger.blocks
        parent_id = blocks[-1].id if blocks else ZERO_ID
        height = len(blocks)
        timestamp = self._clock()
        block = EngineBlock(
            id=_digest(parent_id, height, collection_ids, timestamp.isoformat()),
            parent_id=parent_id,
            height=height,
            timestamp=timestamp,
            collection_ids=list(collection_ids),
        )
        blocks.append(block)
        return block

    # -- transactions -------------------------------------------------------

    def transaction(self, tx_id: bytes) -> TransactionEnvelope:
        tx = self._ledger.transactions.get(tx_id)
        if tx is None:
            raise EmulatorError(EmulatorError.NOT_FOUND, f"transaction {tx_id.hex()} not found")
        return _detach(tx)

    def transaction_result(self, tx_id: bytes) -> EngineResult:
        result = self._ledger.results.get(tx_id)
        if result is None:
            raise EmulatorError(EmulatorError.NOT_FOUND, f"transaction result {tx_id.hex()} not found")
        return result

    def _check_signature(self, address: bytes, key_index: int, message: bytes, signature: bytes) -> None:
        account = self._ledger.accounts.get(address)
        key = account.key(key_index) if account else None
        if key is None or key.revoked:
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT,
                f"signature from unknown or revoked key {key_index} of account {address.hex()}"
            )
        if not verify_signature(key.public_key, key.sig_algo, key.hash_algo, message, signature):
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT,
                f"invalid signature for account {address.hex()} key {key_index}"
            )

    def _validate(self, tx: TransactionEnvelope, tx_id: bytes) -> EngineKey:
        if tx_id in self._ledger.transactions:
            raise EmulatorError(EmulatorError.ALREADY_EXISTS, f"transaction {tx_id.hex()} already exists")
        if not tx.is_prepared:
            raise EmulatorError(EmulatorError.INVALID_ARGUMENT, "transaction is missing required fields")
        if tx.gas_limit > self.max_gas_limit:
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT,
                f"gas limit {tx.gas_limit} exceeds maximum of {self.max_gas_limit}"
            )
        if not any(b.id == tx.reference_block_id for b in self._ledger.blocks):
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT,
                f"reference block {tx.reference_block_id.hex()} not found"
            )
        missing = tx.missing_signatures()
        if missing:
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT, f"missing signatures: {', '.join(missing)}"
            )

        payload = payload_message(tx)
        for (address, index), sig in tx.payload_signatures.items():
            self._check_signature(address, index, payload, sig)
        envelope = envelope_message(tx)
        for (address, index), sig in tx.envelope_signatures.items():
            self._check_signature(address, index, envelope, sig)

        pk = tx.proposal_key
        key = self.get_account(pk.address).key(pk.key_index)
        if key is None:
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT,
                f"proposal key {pk.key_index} does not exist on account {pk.address.hex()}"
            )
        if key.sequence_number != pk.sequence_number:
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT,
                f"invalid proposal key: address {pk.address.hex()}, index {pk.key_index}, "
                f"sequence number {pk.sequence_number} (expected {key.sequence_number})"
            )
        return key

    def submit(self, envelope: TransactionEnvelope) -> bytes:
        """
        Validate, execute and seal a signed transaction.

        Returns:
            Transaction identifier

        Raises:
            EmulatorError: If the transaction is rejected or the runtime fails
                with anything other than a ScriptError
        """
        tx = _detach(envelope)
        tx_id = tx.id()
        self._validate(tx, tx_id)

        accounts_before = copy.deepcopy(self._ledger.accounts)
        error_message = ""
        try:
            raw_events = list(self.runtime.execute_transaction(tx, self._ledger))
        except ScriptError as e:
            logger.info(f"Transaction {tx_id.hex()} failed: {e}")
            self._ledger.accounts = accounts_before
            raw_events = []
            error_message = str(e)
        except Exception as e:
            self._ledger.accounts = accounts_before
            logger.error(f"Runtime error while executing transaction {tx_id.hex()}: {e}")
            raise EmulatorError(
                EmulatorError.INVALID_ARGUMENT, f"transaction execution failed: {e}"
            ) from e

        pk = tx.proposal_key
        self._ledger.accounts[pk.address].key(pk.key_index).sequence_number += 1

        collection_id = _digest("collection", [tx_id])
        block = self._commit_block([collection_id])
        events = [
            EngineEvent(
                type=raw["type"],
                transaction_id=tx_id,
                transaction_index=0,
                event_index=i,
                payload=raw.get("payload", {}),
            )
            for i, raw in enumerate(raw_events)
        ]
        self._ledger.collections[collection_id] = [tx_id]
        self._ledger.events[block.id] = events
        self._ledger.transactions[tx_id] = tx
        self._ledger.results[tx_id] = EngineResult(tx_id, block.id, error_message, events)
        logger.debug(f"Sealed transaction {tx_id.hex()} in block {block.height}")
        return tx_id

    def execute_script(self, script: bytes, arguments: Sequence[TypedValue]) -> TypedValue:
        """Run a read-only script against the latest state."""
        try:
            return self.runtime.execute_script(script, list(arguments), copy.deepcopy(self._ledger))
        except ScriptError as e:
            raise EmulatorError(EmulatorError.INVALID_ARGUMENT, f"script execution failed: {e}") from e
        except Exception as e:
            logger.error(f"Runtime error while executing script: {e}")
            raise EmulatorError(EmulatorError.INVALID_ARGUMENT, f"script execution failed: {e}") from e
