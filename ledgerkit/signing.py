"""
Signing pipeline: prepares a staged envelope against live network state,
collects every required signature and hands the result to a gateway.
"""
import logging
import threading
from typing import Optional, Tuple

from .exceptions import RoleError, SigningError
from .gateway.base import Gateway
from .models import TransactionResult
from .roles import TransactionRoles
from .transaction import (
    DEFAULT_GAS_LIMIT, SignatureKind, TransactionEnvelope, envelope_message,
    payload_message, signature_requirements
)

logger = logging.getLogger(__name__)


class SigningPipeline:
    """
    Fill in network-dependent fields of an envelope and sign it.

    Args:
        gateway: Gateway used to read the proposer account and latest block
        default_gas_limit: Gas limit applied when the envelope has none
    """

    def __init__(self, gateway: Gateway, default_gas_limit: int = DEFAULT_GAS_LIMIT):
        self.gateway = gateway
        self.default_gas_limit = default_gas_limit

    def prepare(self, envelope: TransactionEnvelope) -> TransactionEnvelope:
        """
        Set reference block, gas limit and proposal key sequence number.

        The sequence number is read once here; a concurrent transaction from
        the same key can make it stale before submission, which the backend
        reports as a GatewayError.

        Raises:
            SigningError: If the proposal key does not exist on the proposer account
            GatewayError: If the gateway cannot serve the account or block
        """
        pk = envelope.proposal_key
        account = self.gateway.get_account(pk.address)
        key = account.key(pk.key_index)
        if key is None or key.revoked:
            name = self._account_name(envelope, pk.address)
            raise SigningError("key not found on network account", "proposer", name, pk.key_index)

        block = self.gateway.get_latest_block()
        envelope.reference_block_id = block.id
        if envelope.gas_limit is None:
            envelope.gas_limit = self.default_gas_limit
        pk.sequence_number = key.sequence_number

        logger.debug(
            f"Prepared transaction at reference block {block.height} "
            f"with proposer sequence number {key.sequence_number}"
        )
        return envelope

    @staticmethod
    def _account_name(envelope: TransactionEnvelope, address: bytes) -> str:
        roles = envelope.roles
        if roles is not None:
            for account in [roles.proposer, roles.payer, *roles.authorizers]:
                if account is not None and account.address == address:
                    return account.name
        return f"0x{address.hex()}"

    def sign(
        self,
        envelope: TransactionEnvelope,
        roles: Optional[TransactionRoles] = None
    ) -> TransactionEnvelope:
        """
        Collect payload signatures, then the payer's envelope signature.

        Any signatures already on the envelope are discarded first. Payload
        signatures are added in authorizer order with the proposer last;
        the envelope signature is computed only after all of them.

        Args:
            envelope: Prepared envelope
            roles: Roles to sign for; defaults to the roles attached by the builder

        Raises:
            RoleError: If no roles are available
            SigningError: If a signer fails; the envelope is left without signatures
        """
        roles = roles or envelope.roles
        if roles is None:
            raise RoleError("transaction roles are required for signing")

        envelope.payload_signatures.clear()
        envelope.envelope_signatures.clear()
        payload = None
        for req in signature_requirements(roles):
            if req.kind is SignatureKind.PAYLOAD:
                if payload is None:
                    payload = payload_message(envelope)
                message, target = payload, envelope.payload_signatures
            else:
                message, target = envelope_message(envelope), envelope.envelope_signatures

            try:
                signature = req.account.key.signer.sign(message)
            except Exception as e:
                envelope.payload_signatures.clear()
                envelope.envelope_signatures.clear()
                logger.error(f"Signing failed for {req.role} {req.account.name}: {e}")
                raise SigningError(str(e), req.role, req.account.name, req.key_index) from e

            target[(req.address, req.key_index)] = signature
            logger.debug(
                f"Added {req.kind.value} signature from {req.role} {req.account.name} "
                f"key {req.key_index}"
            )
        return envelope

    def run(self, envelope: TransactionEnvelope) -> TransactionEnvelope:
        """Prepare and sign an envelope."""
        return self.sign(self.prepare(envelope))


def send_transaction(envelope: TransactionEnvelope, gateway: Gateway) -> bytes:
    """
    Prepare, sign and submit a transaction without waiting for its result.

    Returns:
        Transaction identifier
    """
    SigningPipeline(gateway).run(envelope)
    return gateway.send_signed_transaction(envelope)


def sign_and_submit(
    envelope: TransactionEnvelope,
    gateway: Gateway,
    wait_for_seal: bool = True,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None
) -> Tuple[TransactionEnvelope, TransactionResult]:
    """
    Run the full transaction flow against a gateway.

    Args:
        envelope: Staged envelope from build_transaction
        gateway: Gateway to submit to
        wait_for_seal: Poll until the transaction is sealed or expired
        timeout: Maximum time to wait for the seal, in seconds
        cancel: Event that aborts waiting when set

    Returns:
        The submitted envelope and its result

    Raises:
        SigningError: If a required key fails to sign; nothing is submitted
        IncompleteEnvelopeError: If a required signature is missing
        GatewayError: If the backend rejects the transaction or the wait fails
    """
    tx_id = send_transaction(envelope, gateway)
    logger.info(f"Transaction {tx_id.hex()} submitted, waiting for result")
    result = gateway.get_transaction_result(
        tx_id, wait_for_seal=wait_for_seal, timeout=timeout, cancel=cancel
    )
    if result.failed:
        logger.warning(f"Transaction {tx_id.hex()} failed: {result.error_message}")
    return envelope, result
