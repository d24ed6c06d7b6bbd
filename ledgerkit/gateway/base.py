"""
Gateway capability set.

A gateway is any object providing the operations below. The remote and
embedded gateways share no base class; code that builds and submits
transactions is written against this protocol only.
"""
import threading
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ..arguments import TypedValue
from ..models import AccountRecord, Block, BlockEvents, Collection, TransactionResult
from ..transaction import TransactionEnvelope


@runtime_checkable
class Gateway(Protocol):
    """
    Operations every backend provides.

    Every operation may raise GatewayError wrapping the backend-native cause.
    """

    @property
    def secure(self) -> bool:
        """Whether the connection to the backend is TLS protected."""
        ...

    def ping(self) -> None:
        """Check that the backend is reachable."""
        ...

    def get_account(self, address: bytes) -> AccountRecord:
        """Fetch an account at the latest block."""
        ...

    def send_signed_transaction(self, envelope: TransactionEnvelope) -> bytes:
        """
        Submit a signed envelope.

        Returns:
            Transaction identifier

        Raises:
            IncompleteEnvelopeError: If a required signature is missing
            GatewayError: If the backend rejects the transaction
        """
        ...

    def get_transaction(self, tx_id: bytes) -> TransactionEnvelope:
        """Fetch a submitted transaction."""
        ...

    def get_transaction_result(
        self,
        tx_id: bytes,
        wait_for_seal: bool = False,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None
    ) -> TransactionResult:
        """
        Fetch a transaction result, optionally polling until it is sealed.

        Raises:
            TransactionCancelledError: If cancel is set while waiting
            GatewayTimeoutError: If timeout elapses while waiting
        """
        ...

    def execute_script(self, script: bytes, arguments: Sequence[TypedValue]) -> TypedValue:
        """Run a read-only script against the latest state."""
        ...

    def get_latest_block(self) -> Block:
        """Fetch the latest sealed block."""
        ...

    def get_block_by_id(self, block_id: bytes) -> Block:
        ...

    def get_block_by_height(self, height: int) -> Block:
        ...

    def get_events(self, event_type: str, start_height: int, end_height: int) -> List[BlockEvents]:
        """
        Fetch events of one type for an inclusive height range.

        Returns:
            One batch per height, height ascending, empty when nothing matched
        """
        ...

    def get_collection(self, collection_id: bytes) -> Collection:
        ...

    def close(self) -> None:
        ...
