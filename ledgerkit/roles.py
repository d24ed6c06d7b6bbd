"""
Role resolution for transactions.

Turns the account names given for signer, proposer, payer and authorizers
into a TransactionRoles assignment. This is a pure lookup against the
configuration state; no network access happens here.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .accounts import Account, State
from .exceptions import AccountNotFoundError, RoleConflictError

logger = logging.getLogger(__name__)


@dataclass
class TransactionRoles:
    """
    Accounts taking part in a transaction.

    The same account may appear in several roles, and several times among
    the authorizers.
    """
    proposer: Optional[Account] = None
    payer: Optional[Account] = None
    authorizers: List[Account] = field(default_factory=list)


def _lookup(state: State, role: str, name: str) -> Account:
    account = state.by_name(name)
    if account is None:
        raise AccountNotFoundError(role, name)
    return account


def resolve_roles(
    state: State,
    signer: Optional[str] = None,
    proposer: Optional[str] = None,
    payer: Optional[str] = None,
    authorizers: Sequence[str] = ()
) -> TransactionRoles:
    """
    Resolve account names into transaction roles.

    Args:
        state: Configuration state to look accounts up in
        signer: Account acting as proposer, payer and sole authorizer
        proposer: Proposer account name
        payer: Payer account name
        authorizers: Authorizer account names, order preserved

    Returns:
        Resolved roles; proposer and payer stay None when not given

    Raises:
        RoleConflictError: If signer is combined with any other role
        AccountNotFoundError: If a name is not in the configuration
    """
    if signer:
        if proposer or payer or authorizers:
            raise RoleConflictError(
                "signer cannot be combined with payer/proposer/authorizer"
            )
        account = _lookup(state, "signer", signer)
        logger.debug(f"Resolved signer {signer} for all transaction roles")
        return TransactionRoles(proposer=account, payer=account, authorizers=[account])

    roles = TransactionRoles()
    if proposer:
        roles.proposer = _lookup(state, "proposer", proposer)
    if payer:
        roles.payer = _lookup(state, "payer", payer)
    roles.authorizers = [_lookup(state, "authorizer", name) for name in authorizers]
    return roles
