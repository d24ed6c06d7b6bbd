"""
Network targets and environment-driven settings.
"""
import logging
import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

EMBEDDED_HOST = "embedded"


class Network(BaseModel):
    """A network a gateway can target"""
    model_config = ConfigDict(frozen=True)

    name: str
    host: str
    secure: bool = False

    @property
    def is_embedded(self) -> bool:
        return self.host == EMBEDDED_HOST


# Remote networks must serve the ledgerkit.access.AccessAPI service
DEFAULT_NETWORKS: Dict[str, Network] = {
    "embedded": Network(name="embedded", host=EMBEDDED_HOST),
    "emulator": Network(name="emulator", host="127.0.0.1:3569"),
}


def network_by_name(name: str, networks: Optional[Dict[str, Network]] = None) -> Network:
    """
    Look up a configured network.

    Raises:
        ValueError: If the network is unknown
    """
    networks = networks if networks is not None else DEFAULT_NETWORKS
    network = networks.get(name)
    if network is None:
        raise ValueError(f"network with name {name} does not exist in configuration")
    return network


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def default_timeout() -> float:
    """Per-call gateway timeout in seconds (LEDGERKIT_GATEWAY_TIMEOUT, default 5)."""
    return _float_env("LEDGERKIT_GATEWAY_TIMEOUT", 5.0)


def default_poll_interval() -> float:
    """Delay between sealed-result polls in seconds (LEDGERKIT_POLL_INTERVAL, default 1)."""
    return _float_env("LEDGERKIT_POLL_INTERVAL", 1.0)


def default_api_key() -> Optional[str]:
    return os.environ.get("LEDGERKIT_API_KEY") or None
