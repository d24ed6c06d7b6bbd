"""
Translation of backend records into canonical models.

Remote records arrive as decoded wire maps, embedded records as engine
dataclasses. Both end up as the frozen models in ``ledgerkit.models``.
"""
import copy
from typing import List, Sequence, Tuple

from ..arguments import decode_argument
from ..models import (
    AccountKeyRecord, AccountRecord, Block, BlockEvents, Collection, Event,
    TransactionResult, TransactionStatus
)
from .codec import Message, timestamp_from_wire
from .emulator import EngineAccount, EngineBlock, EngineEvent, EngineResult


# -- remote wire records ------------------------------------------------------

def account_from_wire(message: Message) -> AccountRecord:
    return AccountRecord(
        address=message["address"],
        balance=int(message.get("balance", 0)),
        keys=[
            AccountKeyRecord(
                index=int(key["index"]),
                public_key=key["public_key"],
                sig_algo=key["sig_algo"],
                hash_algo=key["hash_algo"],
                weight=int(key.get("weight", 1000)),
                sequence_number=int(key.get("sequence_number", 0)),
                revoked=bool(key.get("revoked", False)),
            )
            for key in message.get("keys", [])
        ],
    )


def block_from_wire(message: Message) -> Block:
    return Block(
        id=message["id"],
        parent_id=message["parent_id"],
        height=int(message["height"]),
        timestamp=timestamp_from_wire(message["timestamp"]),
        collection_ids=list(message.get("collection_ids", [])),
    )


def event_from_wire(message: Message) -> Event:
    return Event(
        type=message["type"],
        transaction_id=message["transaction_id"],
        transaction_index=int(message["transaction_index"]),
        event_index=int(message["event_index"]),
        payload=decode_argument(message["payload"]),
    )


def block_events_from_wire(message: Message) -> BlockEvents:
    return BlockEvents(
        block_id=message["block_id"],
        height=int(message["block_height"]),
        block_timestamp=timestamp_from_wire(message["block_timestamp"]),
        events=[event_from_wire(e) for e in message.get("events", [])],
    )


def empty_block_events(block: Block) -> BlockEvents:
    """Batch for a block in which no matching events were emitted."""
    return BlockEvents(block_id=block.id, height=block.height, block_timestamp=block.timestamp)


def result_from_wire(message: Message) -> TransactionResult:
    return TransactionResult(
        status=TransactionStatus(int(message.get("status", 0))),
        error_message=message.get("error_message", ""),
        events=[event_from_wire(e) for e in message.get("events", [])],
        block_id=message.get("block_id") or None,
    )


def collection_from_wire(message: Message) -> Collection:
    return Collection(
        id=message["id"],
        transaction_ids=list(message.get("transaction_ids", [])),
    )


# -- embedded engine records ----------------------------------------------------

def account_from_engine(account: EngineAccount) -> AccountRecord:
    return AccountRecord(
        address=account.address,
        balance=account.balance,
        keys=[
            AccountKeyRecord(
                index=key.index,
                public_key=key.public_key,
                sig_algo=key.sig_algo,
                hash_algo=key.hash_algo,
                weight=key.weight,
                sequence_number=key.sequence_number,
                revoked=key.revoked,
            )
            for key in account.keys
        ],
    )


def block_from_engine(block: EngineBlock) -> Block:
    return Block(
        id=block.id,
        parent_id=block.parent_id,
        height=block.height,
        timestamp=block.timestamp,
        collection_ids=list(block.collection_ids),
    )


def event_from_engine(event: EngineEvent) -> Event:
    return Event(
        type=event.type,
        transaction_id=event.transaction_id,
        transaction_index=event.transaction_index,
        event_index=event.event_index,
        payload=copy.deepcopy(event.payload),
    )


def block_events_from_engine(
    block: EngineBlock,
    batches: Sequence[Tuple[bytes, List[EngineEvent]]]
) -> BlockEvents:
    """
    Build the event batch of one block.

    Only a batch whose block ID matches the block is used; otherwise the
    block gets an empty event list.
    """
    events: List[Event] = []
    for block_id, batch in batches:
        if block_id == block.id:
            events = [event_from_engine(e) for e in batch]
            break
    return BlockEvents(
        block_id=block.id,
        height=block.height,
        block_timestamp=block.timestamp,
        events=events,
    )


def result_from_engine(result: EngineResult) -> TransactionResult:
    # the engine seals synchronously, so every known result is sealed
    return TransactionResult(
        status=TransactionStatus.SEALED,
        error_message=result.error_message,
        events=[event_from_engine(e) for e in result.events],
        block_id=result.block_id,
    )


def collection_from_engine(collection_id: bytes, transaction_ids: Sequence[bytes]) -> Collection:
    return Collection(id=collection_id, transaction_ids=list(transaction_ids))
