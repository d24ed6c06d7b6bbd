"""
LedgerKit SDK: build, sign and submit ledger transactions against a live
network or an in-process emulator.
"""
from .version import __version__
from .accounts import Account, AccountKey, State, hex_to_address
from .arguments import decode_argument, encode_argument, parse_arguments_json
from .config import DEFAULT_NETWORKS, Network, network_by_name
from .crypto import HashAlgorithm, InMemorySigner, SignatureAlgorithm, generate_private_key
from .exceptions import (
    AccountNotFoundError, ArgumentParseError, IncompleteEnvelopeError, LedgerKitError,
    RoleConflictError, RoleError, SigningError
)
from .gateway import EmbeddedGateway, Gateway, GatewayError, RemoteGateway, new_gateway
from .models import TransactionResult, TransactionStatus
from .roles import TransactionRoles, resolve_roles
from .signing import SigningPipeline, send_transaction, sign_and_submit
from .transaction import DEFAULT_GAS_LIMIT, TransactionEnvelope, build_transaction

__all__ = [
    "__version__",
    "Account", "AccountKey", "State", "hex_to_address",
    "decode_argument", "encode_argument", "parse_arguments_json",
    "DEFAULT_NETWORKS", "Network", "network_by_name",
    "HashAlgorithm", "InMemorySigner", "SignatureAlgorithm", "generate_private_key",
    "AccountNotFoundError", "ArgumentParseError", "IncompleteEnvelopeError", "LedgerKitError",
    "RoleConflictError", "RoleError", "SigningError",
    "EmbeddedGateway", "Gateway", "GatewayError", "RemoteGateway", "new_gateway",
    "TransactionResult", "TransactionStatus",
    "TransactionRoles", "resolve_roles",
    "SigningPipeline", "send_transaction", "sign_and_submit",
    "DEFAULT_GAS_LIMIT", "TransactionEnvelope", "build_transaction",
]
