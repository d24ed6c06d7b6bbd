"""
Tests for the transaction builder, signature requirements and envelope encoding.
"""
import pytest

from ledgerkit.exceptions import ArgumentParseError, IncompleteEnvelopeError, RoleError
from ledgerkit.roles import TransactionRoles
from ledgerkit.transaction import (
    DOMAIN_TAG, SignatureKind, build_transaction, envelope_message, payload_message,
    signature_requirements
)

SCRIPT = "transaction { prepare(signer: AuthAccount) {} }"


@pytest.fixture
def people(make_account):
    return {
        name: make_account(name, (i + 1).to_bytes(8, "big"))
        for i, name in enumerate(["alice", "bob", "carol"])
    }


def _prepare(envelope):
    envelope.reference_block_id = b"\x01" * 32
    envelope.gas_limit = envelope.gas_limit or 100
    envelope.proposal_key.sequence_number = 0
    return envelope


class TestBuildTransaction:
    """Tests for build_transaction."""

    def test_stages_unsigned_envelope(self, people):
        alice, bob = people["alice"], people["bob"]
        roles = TransactionRoles(proposer=alice, payer=bob, authorizers=[alice])
        envelope = build_transaction(roles, SCRIPT, [{"type": "String", "value": "hi"}])

        assert envelope.script == SCRIPT.encode()
        assert envelope.arguments == [{"type": "String", "value": "hi"}]
        assert envelope.payer == bob.address
        assert envelope.authorizers == [alice.address]
        assert envelope.proposal_key.address == alice.address
        assert envelope.proposal_key.key_index == 0
        assert envelope.proposal_key.sequence_number is None
        assert envelope.reference_block_id is None
        assert envelope.gas_limit is None
        assert envelope.payload_signatures == {}
        assert envelope.envelope_signatures == {}
        assert not envelope.is_prepared
        assert envelope.roles is roles

    def test_requires_proposer_and_payer(self, people):
        with pytest.raises(RoleError, match="proposer"):
            build_transaction(TransactionRoles(payer=people["bob"]), SCRIPT)
        with pytest.raises(RoleError, match="payer"):
            build_transaction(TransactionRoles(proposer=people["bob"]), SCRIPT)

    def test_authorizer_count_checked_when_declared(self, people):
        roles = TransactionRoles(proposer=people["alice"], payer=people["alice"])
        with pytest.raises(RoleError, match="requires 1 authorizers"):
            build_transaction(roles, SCRIPT, required_authorizers=1)
        assert build_transaction(roles, "transaction {}", required_authorizers=0).authorizers == []

    def test_invalid_gas_limit(self, people):
        roles = TransactionRoles(proposer=people["alice"], payer=people["alice"])
        with pytest.raises(ValueError, match="gas limit"):
            build_transaction(roles, SCRIPT, gas_limit=0)

    def test_invalid_argument(self, people):
        roles = TransactionRoles(proposer=people["alice"], payer=people["alice"])
        with pytest.raises(ArgumentParseError):
            build_transaction(roles, SCRIPT, [{"value": 1}])


class TestSignatureRequirements:
    """Tests for signature requirement computation."""

    def test_single_signer(self, people):
        alice = people["alice"]
        reqs = signature_requirements(TransactionRoles(alice, alice, [alice]))
        assert [(r.address, r.kind) for r in reqs] == [
            (alice.address, SignatureKind.PAYLOAD),
            (alice.address, SignatureKind.ENVELOPE),
        ]
        assert reqs[0].role == "authorizer"

    def test_order_and_dedup(self, people):
        alice, bob, carol = people["alice"], people["bob"], people["carol"]
        roles = TransactionRoles(proposer=alice, payer=alice, authorizers=[carol, bob, carol])
        reqs = signature_requirements(roles)

        payload = [r.account.name for r in reqs if r.kind is SignatureKind.PAYLOAD]
        envelope = [r.account.name for r in reqs if r.kind is SignatureKind.ENVELOPE]
        assert payload == ["carol", "bob", "alice"]
        assert envelope == ["alice"]
        assert reqs[-1].kind is SignatureKind.ENVELOPE

    def test_proposer_not_repeated_when_authorizer(self, people):
        alice, bob = people["alice"], people["bob"]
        reqs = signature_requirements(TransactionRoles(proposer=bob, payer=alice, authorizers=[bob]))
        assert [(r.role, r.account.name) for r in reqs] == [("authorizer", "bob"), ("payer", "alice")]

    def test_requires_proposer_and_payer(self, people):
        with pytest.raises(RoleError):
            signature_requirements(TransactionRoles(proposer=people["alice"]))


class TestEnvelope:
    """Tests for envelope messages, identifiers and completeness."""

    def test_messages_require_preparation(self, people):
        alice = people["alice"]
        envelope = build_transaction(TransactionRoles(alice, alice, [alice]), SCRIPT)
        with pytest.raises(ValueError, match="not been prepared"):
            payload_message(envelope)

    def test_payload_and_envelope_messages_differ(self, people):
        alice = people["alice"]
        envelope = _prepare(build_transaction(TransactionRoles(alice, alice, [alice]), SCRIPT))
        payload = payload_message(envelope)
        assert payload.startswith(DOMAIN_TAG)
        assert len(DOMAIN_TAG) == 32
        assert envelope_message(envelope) != payload

    def test_envelope_message_covers_payload_signatures(self, people):
        alice = people["alice"]
        envelope = _prepare(build_transaction(TransactionRoles(alice, alice, [alice]), SCRIPT))
        before = envelope_message(envelope)
        envelope.payload_signatures[(alice.address, 0)] = b"\x00" * 64
        assert envelope_message(envelope) != before
        assert payload_message(envelope) == payload_message(envelope)

    def test_id_changes_with_signatures(self, people):
        alice = people["alice"]
        envelope = _prepare(build_transaction(TransactionRoles(alice, alice, [alice]), SCRIPT))
        unsigned = envelope.id()
        envelope.envelope_signatures[(alice.address, 0)] = b"\x01" * 64
        assert len(unsigned) == 32
        assert envelope.id() != unsigned

    def test_missing_signatures_by_key(self, people):
        alice, bob = people["alice"], people["bob"]
        envelope = _prepare(build_transaction(TransactionRoles(alice, bob, [alice]), SCRIPT))
        assert envelope.missing_signatures() == [
            "authorizer alice key 0 (payload)",
            "payer bob key 0 (envelope)",
        ]

    def test_missing_signatures_without_roles(self, people):
        alice, bob = people["alice"], people["bob"]
        envelope = _prepare(build_transaction(TransactionRoles(alice, bob, [bob]), SCRIPT))
        envelope.roles = None
        missing = envelope.missing_signatures()
        assert missing == [
            f"proposer 0x{alice.address.hex()} key 0 (payload)",
            f"authorizer 0x{bob.address.hex()} (payload)",
            f"payer 0x{bob.address.hex()} (envelope)",
        ]

    def test_assert_complete(self, people):
        alice = people["alice"]
        envelope = build_transaction(TransactionRoles(alice, alice, [alice]), SCRIPT)
        with pytest.raises(IncompleteEnvelopeError, match="not been prepared"):
            envelope.assert_complete()

        _prepare(envelope)
        with pytest.raises(IncompleteEnvelopeError) as exc_info:
            envelope.assert_complete()
        assert len(exc_info.value.missing) == 2

        envelope.payload_signatures[(alice.address, 0)] = b"p" * 64
        envelope.envelope_signatures[(alice.address, 0)] = b"e" * 64
        envelope.assert_complete()
