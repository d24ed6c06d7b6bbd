"""
Exceptions for the Gateway module.

Backend-native failures (gRPC status errors, emulator errors) are converted
into these types before they leave a gateway.
"""
from typing import Optional

from ..exceptions import LedgerKitError


class GatewayError(LedgerKitError):
    """Base exception for Gateway-related errors."""
    pass


class GatewayConnectionError(GatewayError):
    """Raised when connection to the backend fails."""
    pass


class GatewayResponseError(GatewayError):
    """Raised when the backend rejects a request."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)


class GatewayTimeoutError(GatewayError):
    """Raised when a Gateway operation times out."""
    pass


class TransactionCancelledError(GatewayError):
    """Raised when waiting for a transaction result is cancelled by the caller."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class SnapshotNotFoundError(GatewayError):
    """Raised when loading an embedded snapshot that was never created."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"could not find snapshot with name {name}")
