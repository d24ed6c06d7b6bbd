#!/usr/bin/env python3
"""
Example of testing against the embedded emulator with snapshots.
"""
import logging

from ledgerkit import (
    Account, AccountKey, EmbeddedGateway, InMemorySigner, State, build_transaction,
    generate_private_key, resolve_roles, sign_and_submit
)
from ledgerkit.gateway.emulator import SERVICE_ADDRESS


def main():
    logging.basicConfig(level=logging.INFO)

    service = Account(
        "emulator-account", SERVICE_ADDRESS, [AccountKey(0, InMemorySigner(generate_private_key()))]
    )
    gateway = EmbeddedGateway(service_account=service, poll_interval=0)

    # Accounts created on the emulator need a matching configuration entry
    alice_key = AccountKey(0, InMemorySigner(generate_private_key()))
    alice = Account("alice", gateway.create_account([alice_key]), [alice_key])
    state = State([service, alice])

    gateway.create_snapshot("clean")

    roles = resolve_roles(state, proposer="alice", payer="emulator-account", authorizers=["alice"])
    envelope, result = sign_and_submit(build_transaction(roles, "transaction {}"), gateway)
    print(f"Sealed {envelope.id().hex()} at height {gateway.get_latest_block().height}")

    gateway.load_snapshot("clean")
    print(f"Back at height {gateway.get_latest_block().height}, snapshots: {gateway.list_snapshots()}")


if __name__ == "__main__":
    main()
