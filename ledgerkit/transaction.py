"""
Transaction envelopes and the transaction builder.

The builder stages an unsigned envelope from resolved roles, script and
arguments. Network-dependent fields (reference block, proposal key sequence
number) and signatures are filled in later by the signing pipeline.
"""
import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import cbor2

from .accounts import Account
from .arguments import TypedValue, encode_argument
from .exceptions import IncompleteEnvelopeError, RoleError
from .roles import TransactionRoles

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 9999

# Domain separation tag, right-padded to 32 bytes
DOMAIN_TAG = b"LEDGERKIT-V0.0-transaction".ljust(32, b"\x00")

SignatureKey = Tuple[bytes, int]


class SignatureKind(str, Enum):
    """Which message a signature covers."""
    PAYLOAD = "payload"
    ENVELOPE = "envelope"


@dataclass(frozen=True)
class SignatureRequirement:
    """
    A signature the envelope needs before it can be submitted.

    Requirements compare and hash on (address, key_index, kind) only, so an
    account holding several roles is asked for each kind of signature once.
    """
    address: bytes
    key_index: int
    kind: SignatureKind
    role: str = field(compare=False)
    account: Account = field(compare=False, repr=False)


@dataclass
class ProposalKey:
    """Key whose sequence number orders the transaction against replay."""
    address: bytes
    key_index: int
    sequence_number: Optional[int] = None


@dataclass
class TransactionEnvelope:
    """
    A transaction and its signatures.

    Signature maps are keyed by (address, key index) and keep insertion order.
    """
    script: bytes
    arguments: List[TypedValue]
    payer: bytes
    authorizers: List[bytes]
    proposal_key: ProposalKey
    gas_limit: Optional[int] = None
    reference_block_id: Optional[bytes] = None
    payload_signatures: Dict[SignatureKey, bytes] = field(default_factory=dict)
    envelope_signatures: Dict[SignatureKey, bytes] = field(default_factory=dict)
    roles: Optional[TransactionRoles] = field(default=None, repr=False, compare=False)

    @property
    def is_prepared(self) -> bool:
        """Whether the network-dependent fields are populated."""
        return (
            self.reference_block_id is not None
            and self.gas_limit is not None
            and self.proposal_key.sequence_number is not None
        )

    def id(self) -> bytes:
        """Transaction identifier: SHA3-256 over payload and all signatures."""
        return transaction_id(self)

    def missing_signatures(self) -> List[str]:
        """
        Describe every required signature that is not present.

        With roles attached, requirements are checked per key. Envelopes
        decoded from the wire have no roles and are checked per address.
        """
        if self.roles is not None:
            missing = []
            for req in signature_requirements(self.roles):
                sigs = (self.payload_signatures if req.kind is SignatureKind.PAYLOAD
                        else self.envelope_signatures)
                if (req.address, req.key_index) not in sigs:
                    missing.append(
                        f"{req.role} {req.account.name} key {req.key_index} ({req.kind.value})"
                    )
            return missing

        missing = []
        pk = self.proposal_key
        if (pk.address, pk.key_index) not in self.payload_signatures:
            missing.append(f"proposer 0x{pk.address.hex()} key {pk.key_index} (payload)")
        signed = {address for address, _ in self.payload_signatures}
        for address in dict.fromkeys(self.authorizers):
            if address not in signed and address != pk.address:
                missing.append(f"authorizer 0x{address.hex()} (payload)")
        if not any(address == self.payer for address, _ in self.envelope_signatures):
            missing.append(f"payer 0x{self.payer.hex()} (envelope)")
        return missing

    def assert_complete(self) -> None:
        """
        Raises:
            IncompleteEnvelopeError: If the envelope is unprepared or lacks a signature
        """
        if not self.is_prepared:
            raise IncompleteEnvelopeError(
                [], "transaction envelope has not been prepared with network state"
            )
        missing = self.missing_signatures()
        if missing:
            raise IncompleteEnvelopeError(missing)


def signature_requirements(roles: TransactionRoles) -> List[SignatureRequirement]:
    """
    Compute who must sign what, in signing order.

    Payload signatures come from each distinct authorizer in declaration
    order, then from the proposer if not already covered. The payer alone
    signs the envelope.
    """
    if roles.proposer is None or roles.payer is None:
        raise RoleError("proposer and payer are required to compute signers")

    requirements: List[SignatureRequirement] = []
    seen = set()
    payload_signers = [("authorizer", a) for a in roles.authorizers]
    payload_signers.append(("proposer", roles.proposer))
    for role, account in payload_signers:
        req = SignatureRequirement(
            account.address, account.key.index, SignatureKind.PAYLOAD, role, account
        )
        if req in seen:
            continue
        seen.add(req)
        requirements.append(req)

    requirements.append(SignatureRequirement(
        roles.payer.address, roles.payer.key.index, SignatureKind.ENVELOPE, "payer", roles.payer
    ))
    return requirements


def _payload_list(envelope: TransactionEnvelope) -> List[Any]:
    if not envelope.is_prepared:
        raise ValueError("transaction envelope has not been prepared with network state")
    pk = envelope.proposal_key
    return [
        envelope.script,
        [encode_argument(arg) for arg in envelope.arguments],
        envelope.reference_block_id,
        envelope.gas_limit,
        pk.address,
        pk.key_index,
        pk.sequence_number,
        envelope.payer,
        list(envelope.authorizers),
    ]


def _signature_list(signatures: Dict[SignatureKey, bytes]) -> List[List[Any]]:
    return [[address, index, sig] for (address, index), sig in signatures.items()]


def payload_message(envelope: TransactionEnvelope) -> bytes:
    """Message signed by the proposer and authorizers."""
    return DOMAIN_TAG + cbor2.dumps(_payload_list(envelope), canonical=True)


def envelope_message(envelope: TransactionEnvelope) -> bytes:
    """Message signed by the payer: payload plus payload signatures."""
    return DOMAIN_TAG + cbor2.dumps(
        [_payload_list(envelope), _signature_list(envelope.payload_signatures)],
        canonical=True
    )


def transaction_id(envelope: TransactionEnvelope) -> bytes:
    """Identifier of a fully populated envelope."""
    encoded = cbor2.dumps(
        [
            _payload_list(envelope),
            _signature_list(envelope.payload_signatures),
            _signature_list(envelope.envelope_signatures),
        ],
        canonical=True
    )
    return hashlib.sha3_256(encoded).digest()


def build_transaction(
    roles: TransactionRoles,
    script: Union[bytes, str],
    arguments: Sequence[TypedValue] = (),
    gas_limit: Optional[int] = None,
    required_authorizers: Optional[int] = None
) -> TransactionEnvelope:
    """
    Stage an unsigned transaction envelope.

    Args:
        roles: Resolved transaction roles
        script: Transaction script source
        arguments: Already parsed typed argument values
        gas_limit: Gas limit; the signing pipeline applies the default if None
        required_authorizers: Number of authorizers the script declares, when known

    Returns:
        Envelope without reference block, sequence number or signatures

    Raises:
        RoleError: If proposer or payer is missing, or the authorizer count
            does not match what the script declares
        ArgumentParseError: If an argument is not a typed value
    """
    if roles.proposer is None:
        raise RoleError("proposer account is required")
    if roles.payer is None:
        raise RoleError("payer account is required")
    if required_authorizers is not None and len(roles.authorizers) != required_authorizers:
        raise RoleError(
            f"script requires {required_authorizers} authorizers, got {len(roles.authorizers)}"
        )
    if gas_limit is not None and gas_limit <= 0:
        raise ValueError(f"gas limit must be positive, got {gas_limit}")

    if isinstance(script, str):
        script = script.encode("utf-8")
    args = list(arguments)
    for arg in args:
        encode_argument(arg)

    envelope = TransactionEnvelope(
        script=script,
        arguments=args,
        payer=roles.payer.address,
        authorizers=[a.address for a in roles.authorizers],
        proposal_key=ProposalKey(roles.proposer.address, roles.proposer.key.index),
        gas_limit=gas_limit,
        roles=roles,
    )
    logger.debug(
        f"Built transaction with proposer {roles.proposer.name}, payer {roles.payer.name}, "
        f"{len(args)} arguments"
    )
    return envelope
