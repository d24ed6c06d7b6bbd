"""
Exceptions for the LedgerKit SDK.
"""
from typing import Iterable, Optional


class LedgerKitError(Exception):
    """Base exception for all LedgerKit errors."""
    pass


class RoleError(LedgerKitError):
    """Raised when transaction roles are invalid or incomplete."""
    pass


class AccountNotFoundError(RoleError):
    """Raised when a role refers to an account missing from the configuration."""

    def __init__(self, role: str, name: str):
        self.role = role
        self.name = name
        super().__init__(f"{role} account: [{name}] doesn't exist in configuration")


class RoleConflictError(RoleError):
    """Raised when signer is combined with proposer, payer or authorizer."""
    pass


class ArgumentParseError(LedgerKitError):
    """Raised when transaction or script arguments cannot be parsed."""
    pass


class SigningError(LedgerKitError):
    """Raised when a required key fails to produce a signature."""

    def __init__(self, message: str, role: str, account: str, key_index: int):
        self.role = role
        self.account = account
        self.key_index = key_index
        super().__init__(f"{role} account [{account}] key {key_index}: {message}")


class IncompleteEnvelopeError(LedgerKitError):
    """Raised when an envelope is submitted without every required signature."""

    def __init__(self, missing: Iterable[str], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(
            message or f"transaction envelope is missing signatures: {', '.join(self.missing)}"
        )
