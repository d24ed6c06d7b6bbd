"""
Tests for network definitions and environment settings.
"""
import pytest
from pydantic import ValidationError

from ledgerkit.config import (
    DEFAULT_NETWORKS, EMBEDDED_HOST, Network, default_api_key, default_poll_interval,
    default_timeout, network_by_name
)


class TestNetworks:
    """Tests for network lookup."""

    def test_defaults(self):
        assert network_by_name("embedded").is_embedded
        emulator = network_by_name("emulator")
        assert emulator.host == "127.0.0.1:3569"
        assert not emulator.is_embedded
        assert set(DEFAULT_NETWORKS) == {"embedded", "emulator"}

    def test_custom_networks(self):
        networks = {"local": Network(name="local", host=EMBEDDED_HOST)}
        assert network_by_name("local", networks).is_embedded
        with pytest.raises(ValueError, match="does not exist"):
            network_by_name("emulator", networks)

    def test_unknown(self):
        with pytest.raises(ValueError, match="network with name nowhere"):
            network_by_name("nowhere")

    def test_frozen(self):
        with pytest.raises(ValidationError):
            DEFAULT_NETWORKS["emulator"].host = "elsewhere:1"


class TestEnvironment:
    """Tests for environment-driven defaults."""

    def test_defaults(self, monkeypatch):
        for name in ("LEDGERKIT_GATEWAY_TIMEOUT", "LEDGERKIT_POLL_INTERVAL", "LEDGERKIT_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        assert default_timeout() == 5.0
        assert default_poll_interval() == 1.0
        assert default_api_key() is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("LEDGERKIT_GATEWAY_TIMEOUT", "30")
        monkeypatch.setenv("LEDGERKIT_POLL_INTERVAL", "0.2")
        monkeypatch.setenv("LEDGERKIT_API_KEY", "k")
        assert default_timeout() == 30.0
        assert default_poll_interval() == 0.2
        assert default_api_key() == "k"

    def test_invalid_value_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("LEDGERKIT_GATEWAY_TIMEOUT", "soon")
        assert default_timeout() == 5.0
        assert "Ignoring invalid LEDGERKIT_GATEWAY_TIMEOUT" in caplog.text
