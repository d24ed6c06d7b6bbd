"""
Remote gateway talking to a live network access node over gRPC.

Each gateway operation is a single unary call on the
``ledgerkit.access.AccessAPI`` service. Requests and responses are CBOR maps
wrapped in protobuf BytesValue messages (see ``codec``).
"""
import logging
import os
import threading
from typing import Dict, List, Optional, Sequence, Tuple

import grpc

from ..arguments import TypedValue, decode_argument, encode_argument
from ..config import default_api_key, default_poll_interval, default_timeout
from ..models import AccountRecord, Block, BlockEvents, Collection, TransactionResult
from ..transaction import TransactionEnvelope
from . import polling, translate
from .codec import Message, decode_message, encode_message, transaction_from_wire, transaction_to_wire
from .exceptions import (
    GatewayConnectionError, GatewayError, GatewayResponseError, GatewayTimeoutError
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "ledgerkit.access.AccessAPI"

# 16 MB, enough for large scripts and event ranges
MAX_MESSAGE_LENGTH = 16 * 1024 * 1024


def unwrap_rpc_error(error: Exception, method: str) -> GatewayError:
    """
    Flatten a gRPC error into a gateway error.

    Args:
        error: Error raised by the gRPC call
        method: Name of the RPC, for the message

    Returns:
        GatewayError subclass carrying the status details as plain text
    """
    code = None
    details = str(error)
    if hasattr(error, "code") and callable(error.code):
        code = error.code()
    details_method = getattr(error, "details", None)
    if callable(details_method):
        details = details_method() or details

    if code == grpc.StatusCode.DEADLINE_EXCEEDED:
        return GatewayTimeoutError(f"{method} timed out: {details}")
    if code == grpc.StatusCode.UNAVAILABLE:
        return GatewayConnectionError(f"access node unavailable: {details}")
    code_name = getattr(code, "name", None) or "UNKNOWN"
    return GatewayResponseError(f"{method} failed: {details}", code_name)


class RemoteGateway:
    """
    Gateway to a live network over gRPC.

    Args:
        host: Access node address as "host:port"
        secure: Whether to use TLS
        api_key: Optional API key sent as bearer authorization metadata
        timeout: Per-call timeout in seconds
        poll_interval: Delay between result polls in seconds

    Raises:
        ValueError: If host is not a "host:port" address
    """

    def __init__(
        self,
        host: str,
        secure: bool = False,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None
    ):
        self._validate_host(host)
        self.host = host
        self._secure = secure
        self.api_key = api_key or default_api_key()
        self.timeout = timeout or default_timeout()
        self.poll_interval = poll_interval if poll_interval is not None else default_poll_interval()

        self.channel = self._create_channel(host, secure)
        self._metadata = self._create_metadata()
        logger.debug(f"Initialized remote gateway for {host}")

    @staticmethod
    def _validate_host(host: str) -> None:
        hostname, sep, port = host.rpartition(":")
        if not sep or not hostname or not port.isdigit():
            raise ValueError(f"Invalid access node address '{host}', expected host:port")

    def _create_channel(self, target: str, secure: bool) -> grpc.Channel:
        """
        Create a gRPC channel with optional custom CA.

        LEDGERKIT_GATEWAY_CA points to a PEM file replacing the system roots;
        with LEDGERKIT_GATEWAY_STRICT_CA=1 a CA that fails to load is an error.
        """
        options = [
            ('grpc.keepalive_time_ms', 30000),
            ('grpc.keepalive_timeout_ms', 10000),
            ('grpc.max_send_message_length', MAX_MESSAGE_LENGTH),
            ('grpc.max_receive_message_length', MAX_MESSAGE_LENGTH),
        ]

        if not secure:
            logger.debug(f"Creating insecure gRPC channel to {target}")
            return grpc.insecure_channel(target, options=options)

        ca_path = os.environ.get("LEDGERKIT_GATEWAY_CA")
        strict_ca = os.environ.get("LEDGERKIT_GATEWAY_STRICT_CA") == "1"
        if ca_path:
            try:
                with open(ca_path, 'rb') as f:
                    ca_data = f.read()
                creds = grpc.ssl_channel_credentials(root_certificates=ca_data)
                logger.info(f"Using custom CA certificate from {ca_path}")
            except OSError as e:
                logger.warning(f"Failed to load custom CA certificate from {ca_path}: {e}")
                if strict_ca:
                    raise ValueError(f"Failed to load custom CA certificate from {ca_path}: {e}")
                creds = grpc.ssl_channel_credentials()
        else:
            creds = grpc.ssl_channel_credentials()

        return grpc.secure_channel(target, creds, options=options)

    def _create_metadata(self) -> Optional[Tuple[Tuple[str, str], ...]]:
        if not self.api_key:
            return None
        return (('authorization', f'Bearer {self.api_key}'),)

    def _call(self, method: str, request: Message) -> Message:
        rpc = self.channel.unary_unary(
            f"/{SERVICE_NAME}/{method}",
            request_serializer=encode_message,
            response_deserializer=decode_message,
        )
        try:
            return rpc(request, timeout=self.timeout, metadata=self._metadata)
        except grpc.RpcError as e:
            error = unwrap_rpc_error(e, method)
            logger.debug(f"{method} failed: {error}")
            raise error from e

    @property
    def secure(self) -> bool:
        return self._secure

    def ping(self) -> None:
        self._call("Ping", {})

    def get_account(self, address: bytes) -> AccountRecord:
        response = self._call("GetAccountAtLatestBlock", {"address": address})
        return translate.account_from_wire(response["account"])

    def send_signed_transaction(self, envelope: TransactionEnvelope) -> bytes:
        envelope.assert_complete()
        response = self._call("SendTransaction", {"transaction": transaction_to_wire(envelope)})
        tx_id = response["id"]
        logger.info(f"Submitted transaction {tx_id.hex()} to {self.host}")
        return tx_id

    def get_transaction(self, tx_id: bytes) -> TransactionEnvelope:
        response = self._call("GetTransaction", {"id": tx_id})
        return transaction_from_wire(response["transaction"])

    def _fetch_result(self, tx_id: bytes) -> TransactionResult:
        return translate.result_from_wire(self._call("GetTransactionResult", {"id": tx_id}))

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
        response = self._call("ExecuteScriptAtLatestBlock", {
            "script": script,
            "arguments": [encode_argument(arg) for arg in arguments],
        })
        return decode_argument(response["value"])

    def get_latest_block(self) -> Block:
        response = self._call("GetLatestBlock", {"is_sealed": True})
        return translate.block_from_wire(response["block"])

    def get_block_by_id(self, block_id: bytes) -> Block:
        response = self._call("GetBlockByID", {"id": block_id})
        return translate.block_from_wire(response["block"])

    def get_block_by_height(self, height: int) -> Block:
        response = self._call("GetBlockByHeight", {"height": height})
        return translate.block_from_wire(response["block"])

    def get_events(self, event_type: str, start_height: int, end_height: int) -> List[BlockEvents]:
        if start_height > end_height:
            raise ValueError(f"start height {start_height} is after end height {end_height}")
        response = self._call("GetEventsForHeightRange", {
            "type": event_type,
            "start_height": start_height,
            "end_height": end_height,
        })

        by_height: Dict[int, BlockEvents] = {}
        for item in response.get("results", []):
            batch = translate.block_events_from_wire(item)
            if start_height <= batch.height <= end_height:
                by_height[batch.height] = batch

        results = []
        for height in range(start_height, end_height + 1):
            block = self.get_block_by_height(height)
            # access nodes may omit heights without matching events
            batch = by_height.get(height)
            if batch is None or batch.block_id != block.id:
                if batch is not None:
                    logger.warning(
                        f"Dropping events at height {height}: block {batch.block_id.hex()} "
                        f"is not the sealed block {block.id.hex()}"
                    )
                batch = translate.empty_block_events(block)
            results.append(batch)
        return results

    def get_collection(self, collection_id: bytes) -> Collection:
        response = self._call("GetCollectionByID", {"id": collection_id})
        return translate.collection_from_wire(response["collection"])

    def close(self) -> None:
        """Close the gRPC channel."""
        channel = getattr(self, "channel", None)
        if channel is not None:
            channel.close()
            logger.debug("gRPC channel closed.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
