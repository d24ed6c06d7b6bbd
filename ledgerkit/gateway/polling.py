"""
Bounded polling for sealed transaction results.
"""
import logging
import threading
import time
from typing import Callable, Optional

from ..models import TransactionResult
from ._rate_limited_log import rate_limited_log
from .exceptions import GatewayTimeoutError, TransactionCancelledError

logger = logging.getLogger(__name__)


def wait_for_seal(
    fetch: Callable[[bytes], TransactionResult],
    tx_id: bytes,
    poll_interval: float,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None
) -> TransactionResult:
    """
    Poll a transaction result until it reaches a terminal status.

    Only ``fetch`` is retried. Cancellation is checked before and after
    every poll, so once the event is set no further poll is issued.

    Args:
        fetch: Single-attempt result lookup
        tx_id: Transaction identifier
        poll_interval: Delay between polls in seconds
        timeout: Overall deadline in seconds, None for no deadline
        cancel: Event the caller sets to stop waiting

    Returns:
        The first sealed or expired result observed

    Raises:
        TransactionCancelledError: If cancel is set while waiting
        GatewayTimeoutError: If the deadline passes before sealing
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    attempts = 0

    while True:
        if cancel is not None and cancel.is_set():
            raise TransactionCancelledError(
                f"waiting for transaction {tx_id.hex()} cancelled after {attempts} polls", attempts
            )

        result = fetch(tx_id)
        attempts += 1
        if result.status.is_terminal:
            logger.debug(f"Transaction {tx_id.hex()} reached {result.status.name} after {attempts} polls")
            return result

        if cancel is not None and cancel.is_set():
            raise TransactionCancelledError(
                f"waiting for transaction {tx_id.hex()} cancelled after {attempts} polls", attempts
            )

        delay = poll_interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise GatewayTimeoutError(
                    f"transaction {tx_id.hex()} not sealed after {timeout}s "
                    f"(last status {result.status.name})"
                )
            delay = min(poll_interval, remaining)

        rate_limited_log(
            f"Waiting for transaction {tx_id.hex()} to be sealed (status {result.status.name})",
            level="info",
            interval=30,
            logger_instance=logger,
        )
        if cancel is not None:
            cancel.wait(delay)
        else:
            time.sleep(delay)
