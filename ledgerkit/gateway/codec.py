"""
Wire codec for the remote access API.

Every request and response is a CBOR map (canonical encoding) carried in a
``google.protobuf.BytesValue`` message. CBOR keeps byte strings byte-exact,
so identifiers and signatures need no hex round trip.
"""
from datetime import datetime, timezone
from typing import Any, Dict

import cbor2
from google.protobuf import wrappers_pb2
from google.protobuf.timestamp_pb2 import Timestamp

from ..arguments import decode_argument, encode_argument
from ..transaction import ProposalKey, TransactionEnvelope

Message = Dict[str, Any]


def encode_message(message: Message) -> bytes:
    """Serialize a request/response map for the gRPC channel."""
    return wrappers_pb2.BytesValue(value=cbor2.dumps(message, canonical=True)).SerializeToString()


def decode_message(data: bytes) -> Message:
    """
    Deserialize a request/response map received over the gRPC channel.

    Raises:
        ValueError: If the payload is not a CBOR map
    """
    wrapper = wrappers_pb2.BytesValue.FromString(data)
    if not wrapper.value:
        return {}
    try:
        message = cbor2.loads(wrapper.value)
    except cbor2.CBORDecodeError as e:
        raise ValueError(f"Malformed CBOR message: {e}")
    if not isinstance(message, dict):
        raise ValueError(f"Expected a CBOR map, got {type(message).__name__}")
    return message


def timestamp_to_wire(value: datetime) -> Message:
    ts = Timestamp()
    ts.FromDatetime(value)
    return {"seconds": ts.seconds, "nanos": ts.nanos}


def timestamp_from_wire(value: Message) -> datetime:
    ts = Timestamp(seconds=int(value.get("seconds", 0)), nanos=int(value.get("nanos", 0)))
    return ts.ToDatetime(tzinfo=timezone.utc)


def _signatures_to_wire(signatures) -> list:
    return [
        {"address": address, "key_index": index, "signature": sig}
        for (address, index), sig in signatures.items()
    ]


def _signatures_from_wire(items) -> dict:
    return {(item["address"], int(item["key_index"])): item["signature"] for item in items}


def transaction_to_wire(envelope: TransactionEnvelope) -> Message:
    """Encode an envelope as a wire map."""
    pk = envelope.proposal_key
    return {
        "script": envelope.script,
        "arguments": [encode_argument(arg) for arg in envelope.arguments],
        "reference_block_id": envelope.reference_block_id,
        "gas_limit": envelope.gas_limit,
        "proposal_key": {
            "address": pk.address,
            "key_index": pk.key_index,
            "sequence_number": pk.sequence_number,
        },
        "payer": envelope.payer,
        "authorizers": list(envelope.authorizers),
        "payload_signatures": _signatures_to_wire(envelope.payload_signatures),
        "envelope_signatures": _signatures_to_wire(envelope.envelope_signatures),
    }


def transaction_from_wire(message: Message) -> TransactionEnvelope:
    """Decode a wire map into an envelope without roles."""
    pk = message["proposal_key"]
    return TransactionEnvelope(
        script=message["script"],
        arguments=[decode_argument(arg) for arg in message.get("arguments", [])],
        payer=message["payer"],
        authorizers=list(message.get("authorizers", [])),
        proposal_key=ProposalKey(
            address=pk["address"],
            key_index=int(pk["key_index"]),
            sequence_number=pk.get("sequence_number"),
        ),
        gas_limit=message.get("gas_limit"),
        reference_block_id=message.get("reference_block_id"),
        payload_signatures=_signatures_from_wire(message.get("payload_signatures", [])),
        envelope_signatures=_signatures_from_wire(message.get("envelope_signatures", [])),
    )
