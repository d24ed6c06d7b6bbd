"""
Pytest fixtures for the LedgerKit SDK tests.
"""
import time
from datetime import datetime, timezone

import pytest

from ledgerkit.accounts import Account, AccountKey, State
from ledgerkit.crypto import HashAlgorithm, InMemorySigner, SignatureAlgorithm, generate_private_key
from ledgerkit.gateway import EmbeddedGateway
from ledgerkit.gateway._rate_limited_log import reset_rate_limits
from ledgerkit.gateway.emulator import SERVICE_ADDRESS

FIXED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# Make time.sleep instantaneous so result polling doesn't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_log_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def make_account():
    """Factory for accounts with one deterministic key."""

    def _make(
        name,
        address,
        seed=None,
        sig_algo=SignatureAlgorithm.ECDSA_P256,
        hash_algo=HashAlgorithm.SHA3_256
    ):
        private_key = generate_private_key(sig_algo, seed=(seed or name.encode()))
        key = AccountKey(0, InMemorySigner(private_key, hash_algo), sig_algo, hash_algo)
        return Account(name, address, [key])

    return _make


@pytest.fixture
def service_account(make_account):
    return make_account("emulator-account", SERVICE_ADDRESS, seed=b"service")


@pytest.fixture
def gateway(service_account):
    """Embedded gateway with a fixed clock and no polling delay."""
    with EmbeddedGateway(
        service_account=service_account, clock=lambda: FIXED_TIME, poll_interval=0
    ) as gw:
        yield gw


@pytest.fixture
def register(gateway, make_account):
    """Create an emulator account and return the matching configured Account."""

    def _register(name, **kwargs):
        account = make_account(name, b"\x00" * 8, **kwargs)
        account.address = gateway.create_account(account.keys)
        return account

    return _register


@pytest.fixture
def alice(register):
    return register("alice")


@pytest.fixture
def bob(register):
    return register("bob", sig_algo=SignatureAlgorithm.ECDSA_secp256k1,
                    hash_algo=HashAlgorithm.SHA2_256)


@pytest.fixture
def carol(register):
    return register("carol")


@pytest.fixture
def state(service_account, alice, bob, carol):
    return State([service_account, alice, bob, carol])
