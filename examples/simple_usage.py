#!/usr/bin/env python3
"""
Simple example of using the LedgerKit SDK.
"""
import logging
import os

from ledgerkit import (
    Account, AccountKey, InMemorySigner, State, build_transaction, hex_to_address,
    network_by_name, new_gateway, resolve_roles, sign_and_submit
)
from ledgerkit.crypto import private_key_from_hex

SCRIPT = """
transaction(greeting: String) {
    prepare(signer: AuthAccount) {
        log(greeting)
    }
}
"""


def main():
    """
    Demonstrate sending a transaction to a network.

    This example shows how to:
    1. Configure an account from a private key
    2. Resolve roles and build a transaction
    3. Sign, submit and wait for the sealed result
    """
    logging.basicConfig(level=logging.INFO)

    # Read configuration from environment. Remote networks must run a node
    # that serves the ledgerkit access API, such as a local emulator.
    network_name = os.environ.get("LEDGERKIT_NETWORK", "emulator")
    address = os.environ.get("ACCOUNT_ADDRESS", "f8d6e0586b0a20c7")
    private_key = os.environ.get("PRIVATE_KEY")

    if not private_key:
        print("ERROR: PRIVATE_KEY environment variable is required")
        return

    signer = InMemorySigner(private_key_from_hex(private_key))
    state = State([Account("emulator-account", hex_to_address(address), [AccountKey(0, signer)])])

    roles = resolve_roles(state, signer="emulator-account")
    envelope = build_transaction(roles, SCRIPT, [{"type": "String", "value": "Hello"}])

    with new_gateway(network_by_name(network_name)) as gateway:
        envelope, result = sign_and_submit(envelope, gateway, timeout=60)

    print(f"Transaction ID: {envelope.id().hex()}")
    print(f"Status: {result.status.name}")
    if result.failed:
        print(f"Error: {result.error_message}")


if __name__ == "__main__":
    main()
