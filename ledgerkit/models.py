"""
Canonical data models returned by gateways.
"""
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from .crypto import HashAlgorithm, SignatureAlgorithm


class TransactionStatus(IntEnum):
    """Lifecycle status of a submitted transaction."""
    UNKNOWN = 0
    PENDING = 1
    FINALIZED = 2
    EXECUTED = 3
    SEALED = 4
    EXPIRED = 5

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionStatus.SEALED, TransactionStatus.EXPIRED)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class AccountKeyRecord(_Record):
    """Key of an account as stored on the ledger"""
    index: int
    public_key: bytes
    sig_algo: SignatureAlgorithm
    hash_algo: HashAlgorithm
    weight: int = 1000
    sequence_number: int = 0
    revoked: bool = False


class AccountRecord(_Record):
    """Account state at the latest block"""
    address: bytes
    balance: int = 0
    keys: List[AccountKeyRecord] = []

    def key(self, index: int) -> Optional[AccountKeyRecord]:
        for key in self.keys:
            if key.index == index:
                return key
        return None


class Block(_Record):
    """Block header plus payload references"""
    id: bytes
    parent_id: bytes
    height: int
    timestamp: datetime
    collection_ids: List[bytes] = []


class Event(_Record):
    """Event emitted by a transaction"""
    type: str
    transaction_id: bytes
    transaction_index: int
    event_index: int
    payload: Dict[str, Any]


class BlockEvents(_Record):
    """Events of one type emitted in one block"""
    block_id: bytes
    height: int
    block_timestamp: datetime
    events: List[Event] = []


class TransactionResult(_Record):
    """Execution result of a transaction"""
    status: TransactionStatus
    error_message: str = ""
    events: List[Event] = []
    block_id: Optional[bytes] = None

    @property
    def failed(self) -> bool:
        return bool(self.error_message)


class Collection(_Record):
    """Ordered transaction identifiers batched together"""
    id: bytes
    transaction_ids: List[bytes] = []
