"""
Gateway module for the LedgerKit SDK.

A gateway is the single point of contact with a ledger: either a live network
reached over gRPC (RemoteGateway) or an in-process emulator (EmbeddedGateway).
Both satisfy the Gateway protocol and raise only GatewayError subclasses.
"""
import logging
from typing import Any, Optional

from ..accounts import Account
from ..config import Network
from .base import Gateway
from .embedded import EmbeddedGateway
from .exceptions import (
    GatewayConnectionError, GatewayError, GatewayResponseError, GatewayTimeoutError,
    SnapshotNotFoundError, TransactionCancelledError
)
from .remote import RemoteGateway

__all__ = ['Gateway', 'EmbeddedGateway', 'RemoteGateway', 'new_gateway',
           'GatewayError', 'GatewayConnectionError', 'GatewayResponseError',
           'GatewayTimeoutError', 'TransactionCancelledError', 'SnapshotNotFoundError']

logger = logging.getLogger(__name__)


def new_gateway(
    network: Network,
    service_account: Optional[Account] = None,
    **options: Any
) -> Gateway:
    """
    Create the gateway matching a network definition.

    Args:
        network: Network to connect to
        service_account: Service account for an embedded network; ignored
            for remote networks
        **options: Extra keyword arguments for the gateway constructor

    Returns:
        EmbeddedGateway for the embedded network, RemoteGateway otherwise
    """
    if network.is_embedded:
        logger.debug(f"Using embedded gateway for network {network.name}")
        return EmbeddedGateway(service_account=service_account, **options)
    logger.debug(f"Using remote gateway {network.host} for network {network.name}")
    return RemoteGateway(network.host, secure=network.secure, **options)
