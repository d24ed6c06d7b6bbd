"""
Tests for the remote wire codec.
"""
from datetime import datetime, timezone

import cbor2
import pytest
from google.protobuf import wrappers_pb2

from ledgerkit.gateway.codec import (
    decode_message, encode_message, timestamp_from_wire, timestamp_to_wire,
    transaction_from_wire, transaction_to_wire
)
from ledgerkit.transaction import ProposalKey, TransactionEnvelope


def test_messages_are_bytes_value_wrapped():
    data = encode_message({"b": 1, "a": b"\x00\x01"})
    wrapper = wrappers_pb2.BytesValue.FromString(data)
    assert cbor2.loads(wrapper.value) == {"a": b"\x00\x01", "b": 1}
    assert decode_message(data) == {"a": b"\x00\x01", "b": 1}


def test_encoding_is_canonical():
    assert encode_message({"b": 1, "a": 2}) == encode_message({"a": 2, "b": 1})


def test_empty_payload_decodes_to_empty_map():
    assert decode_message(b"") == {}


@pytest.mark.parametrize("payload", [cbor2.dumps([1, 2]), b"\xff\xff"])
def test_malformed_payload(payload):
    data = wrappers_pb2.BytesValue(value=payload).SerializeToString()
    with pytest.raises(ValueError):
        decode_message(data)


def test_timestamps():
    moment = datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=timezone.utc)
    wire = timestamp_to_wire(moment)
    assert wire["nanos"] == 999999000
    assert timestamp_from_wire(wire) == moment


def test_transaction_wire_format():
    envelope = TransactionEnvelope(
        script=b"tx",
        arguments=[{"type": "UInt8", "value": "1"}],
        payer=b"\x00" * 7 + b"\x02",
        authorizers=[b"\x00" * 7 + b"\x01", b"\x00" * 7 + b"\x03"],
        proposal_key=ProposalKey(b"\x00" * 7 + b"\x01", 0, 5),
        gas_limit=100,
        reference_block_id=b"\x0a" * 32,
        payload_signatures={(b"\x00" * 7 + b"\x03", 0): b"c" * 64, (b"\x00" * 7 + b"\x01", 0): b"a" * 64},
        envelope_signatures={(b"\x00" * 7 + b"\x02", 0): b"b" * 64},
    )
    wire = transaction_to_wire(envelope)
    assert wire["proposal_key"] == {"address": b"\x00" * 7 + b"\x01", "key_index": 0, "sequence_number": 5}
    assert [s["signature"] for s in wire["payload_signatures"]] == [b"c" * 64, b"a" * 64]

    decoded = transaction_from_wire(decode_message(encode_message({"transaction": wire}))["transaction"])
    assert decoded == envelope
    assert list(decoded.payload_signatures) == list(envelope.payload_signatures)
    assert decoded.id() == envelope.id()
    assert decoded.roles is None
