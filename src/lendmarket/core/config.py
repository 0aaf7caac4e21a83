"""
LendMarket Configuration

Supports testnet and mainnet with separate configurations. All values are
read from environment variables at import time; protocol rules such as the
maximum loan period live in ``constants`` and are not configurable.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(env_var: str, default: str) -> bool:
    """Parse a 0/1 style boolean flag from the environment."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"{env_var} must be a boolean flag, got {raw!r}")


def _parse_log_level(env_var: str, default: str) -> str:
    level = os.getenv(env_var, default).strip().upper()
    if level not in _VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"{env_var} must be one of {', '.join(_VALID_LOG_LEVELS)}, got {level!r}"
        )
    return level


def _parse_network(raw: str) -> NetworkType:
    try:
        return NetworkType(raw.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"LENDMARKET_NETWORK must be 'testnet' or 'mainnet', got {raw!r}"
        ) from exc


# Get network type from environment variable
NETWORK = os.getenv("LENDMARKET_NETWORK", "testnet")  # Default to testnet for safety
NETWORK_TYPE = _parse_network(NETWORK)

LOG_LEVEL = _parse_log_level("LENDMARKET_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LENDMARKET_LOG_FILE", "").strip()
STATE_FILE = os.getenv(
    "LENDMARKET_STATE_FILE",
    os.path.join(os.getcwd(), "data", "lending_state.json"),
)
FEE_TOKEN = os.getenv("LENDMARKET_FEE_TOKEN", "").strip().lower()
METRICS_ENABLED = _parse_bool("LENDMARKET_METRICS_ENABLED", "1")


class TestnetConfig:
    """Testnet Configuration (for local testing before mainnet)"""

    NETWORK_TYPE = NetworkType.TESTNET
    ENVIRONMENT = "testnet"

    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    STATE_FILE = STATE_FILE
    FEE_TOKEN = FEE_TOKEN
    METRICS_ENABLED = METRICS_ENABLED


class MainnetConfig:
    """Mainnet Configuration (production)"""

    NETWORK_TYPE = NetworkType.MAINNET
    ENVIRONMENT = "production"

    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    STATE_FILE = STATE_FILE
    FEE_TOKEN = FEE_TOKEN
    METRICS_ENABLED = METRICS_ENABLED


# Select config based on network
if NETWORK_TYPE is NetworkType.MAINNET:
    Config = MainnetConfig
    if not FEE_TOKEN:
        raise ConfigurationError(
            "CRITICAL: LENDMARKET_FEE_TOKEN must be set to the upfront-fee token address on mainnet."
        )
else:
    Config = TestnetConfig
    if not FEE_TOKEN:
        logger.warning(
            "LENDMARKET_FEE_TOKEN not set; engines must be given a fee token explicitly",
            extra={"event": "config.fee_token_missing", "network": NETWORK_TYPE.value},
        )

# Export config
__all__ = [
    "Config",
    "ConfigurationError",
    "NetworkType",
    "TestnetConfig",
    "MainnetConfig",
    "LOG_LEVEL",
    "LOG_FILE",
    "STATE_FILE",
    "FEE_TOKEN",
    "METRICS_ENABLED",
]
