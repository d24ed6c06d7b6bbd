"""
Embedded gateway backed by the in-process emulator.

Besides the shared gateway operations it can capture and restore named
snapshots of the full ledger state. Snapshots exist only here; code that
needs them must be written against EmbeddedGateway itself.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..accounts import Account, AccountKey
from ..arguments import TypedValue
from ..config import default_poll_interval
from ..models import AccountRecord, Block, BlockEvents, Collection, TransactionResult
from ..transaction import TransactionEnvelope
from . import polling, translate
from .emulator import DEFAULT_MAX_GAS_LIMIT, Emulator, EmulatorError, Ledger, ScriptRuntime
from .exceptions import GatewayResponseError, SnapshotNotFoundError

logger = logging.getLogger(__name__)


@contextmanager
def _unwrap_errors():
    """Convert emulator errors into gateway errors with a flat message."""
    try:
        yield
    except EmulatorError as e:
        raise GatewayResponseError(e.message, e.code) from e


class EmbeddedGateway:
    """
    Gateway serving every operation from an in-process emulator.

    Args:
        service_account: Account whose default key controls the emulator
            service account; a random key is used when omitted
        runtime: Script runtime for the emulator
        max_gas_limit: Largest gas limit the emulator accepts
        clock: Source of block timestamps
        poll_interval: Delay between result polls in seconds
    """

    def __init__(
        self,
        service_account: Optional[Account] = None,
        runtime: Optional[ScriptRuntime] = None,
        max_gas_limit: int = DEFAULT_MAX_GAS_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
        poll_interval: Optional[float] = None
    ):
        options = {"runtime": runtime, "max_gas_limit": max_gas_limit}
        if clock is not None:
            options["clock"] = clock
        if service_account is not None:
            key = service_account.key
            options.update(
                service_public_key=key.signer.public_key,
                sig_algo=key.sig_algo,
                hash_algo=key.hash_algo,
            )

        self._emulator = Emulator(**options)
        self._snapshots: Dict[str, Ledger] = {}
        self._snapshot_lock = threading.RLock()
        self.poll_interval = poll_interval if poll_interval is not None else default_poll_interval()
        logger.debug("Initialized embedded gateway")

    @property
    def secure(self) -> bool:
        return False

    @property
    def service_address(self) -> bytes:
        return self._emulator.service_address

    def ping(self) -> None:
        pass

    def get_account(self, address: bytes) -> AccountRecord:
        with _unwrap_errors():
            return translate.account_from_engine(self._emulator.get_account(address))

    def create_account(self, keys: Sequence[AccountKey]) -> bytes:
        """
        Create an emulator account controlled by the given keys.

        Returns:
            Address of the new account
        """
        return self._emulator.create_account(
            [(key.signer.public_key, key.sig_algo, key.hash_algo) for key in keys]
        )

    def send_signed_transaction(self, envelope: TransactionEnvelope) -> bytes:
        envelope.assert_complete()
        with _unwrap_errors():
            tx_id = self._emulator.submit(envelope)
        logger.info(f"Submitted transaction {tx_id.hex()} to embedded emulator")
        return tx_id

    def get_transaction(self, tx_id: bytes) -> TransactionEnvelope:
        with _unwrap_errors():
            return self._emulator.transaction(tx_id)

    def _fetch_result(self, tx_id: bytes) -> TransactionResult:
        with _unwrap_errors():
            return translate.result_from_engine(self._emulator.transaction_result(tx_id))

    def get_transaction_result(
        self,
        tx_id: bytes,
        wait_for_seal: bool = False,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None
    ) -> TransactionResult:
        if not wait_for_seal:
            return self._fetch_result(tx_id)
        return polling.wait_for_seal(self._fetch_result, tx_id, self.poll_interval, timeout, cancel)

    def execute_script(self, script: bytes, arguments: Sequence[TypedValue]) -> TypedValue:
        if isinstance(script, str):
            script = script.encode("utf-8")
        with _unwrap_errors():
            return self._emulator.execute_script(script, arguments)

    def get_latest_block(self) -> Block:
        return translate.block_from_engine(self._emulator.latest_block())

    def get_block_by_id(self, block_id: bytes) -> Block:
        with _unwrap_errors():
            return translate.block_from_engine(self._emulator.block_by_id(block_id))

    def get_block_by_height(self, height: int) -> Block:
        with _unwrap_errors():
            return translate.block_from_engine(self._emulator.block_by_height(height))

    def get_events(self, event_type: str, start_height: int, end_height: int) -> List[BlockEvents]:
        if start_height > end_height:
            raise ValueError(f"start height {start_height} is after end height {end_height}")
        results = []
        with _unwrap_errors():
            for height in range(start_height, end_height + 1):
                block = self._emulator.block_by_height(height)
                batches = self._emulator.events_for_block_ids(event_type, [block.id])
                results.append(translate.block_events_from_engine(block, batches))
        return results

    def get_collection(self, collection_id: bytes) -> Collection:
        with _unwrap_errors():
            tx_ids = self._emulator.collection(collection_id)
        return translate.collection_from_engine(collection_id, tx_ids)

    # -- snapshots ------------------------------------------------------------

    def create_snapshot(self, name: str) -> None:
        """Capture the full ledger state under a name, replacing any previous one."""
        with self._snapshot_lock:
            self._snapshots[name] = self._emulator.snapshot()
        logger.info(f"Created snapshot {name}")

    def load_snapshot(self, name: str) -> None:
        """
        Replace the live ledger state with a named snapshot.

        Raises:
            SnapshotNotFoundError: If no snapshot has that name; state is left unchanged
        """
        with self._snapshot_lock:
            ledger = self._snapshots.get(name)
            if ledger is None:
                raise SnapshotNotFoundError(name)
            self._emulator.restore(ledger)
        logger.info(f"Loaded snapshot {name}")

    def list_snapshots(self) -> List[str]:
        with self._snapshot_lock:
            return sorted(self._snapshots)

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
