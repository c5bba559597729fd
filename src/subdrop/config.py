"""
subdrop/config.py

Configuration constants and data classes for subdrop.
"""

import os
from dataclasses import dataclass
from pathlib import Path


# Token precision (matches the usual 18-decimal fungible token)
TOKEN_DECIMALS = 18

# Amount sent to each eligible recipient (1 whole token)
TOKEN_AMOUNT = 1 * 10 ** TOKEN_DECIMALS

# Recipients processed per chunk of the distribution loop
DEFAULT_BATCH_SIZE = 50

# Fixed conversion rate for the token sale (tokens per native unit)
DEFAULT_SALE_RATE = 1000

# Destination of swept native currency from the token sale
SALE_TREASURY_ADDRESS = "0x4Be0F5A6c0b1B3e0dB4C15bD1b6A2Ad94Bb1f5c2"

# Notification history kept in memory by each hub
NOTIFICATION_HISTORY_SIZE = 1000

# REST API defaults
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8545

# Default state directory for the file backend
DEFAULT_STATE_DIR = Path.home() / ".subdrop" / "state"

# Environment variable prefix
ENV_PREFIX = "SUBDROP_"


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


@dataclass
class EngineConfig:
    """
    Configuration for a DistributionEngine.

    Usage:
        config = EngineConfig(batch_size=25)
        engine = DistributionEngine(ledger, "0xEngine", "0xOwner", config)
    """

    # Tokens sent per drop
    token_amount: int = TOKEN_AMOUNT

    # Initial chunk size (owner may change it later)
    batch_size: int = DEFAULT_BATCH_SIZE

    # Bounded notification history
    history_size: int = NOTIFICATION_HISTORY_SIZE

    def __post_init__(self):
        if self.token_amount <= 0:
            raise ValueError(f"token_amount must be positive, got {self.token_amount}")
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int):
            raise ValueError(f"batch_size must be an integer, got {self.batch_size!r}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create configuration from SUBDROP_* environment variables."""
        return cls(
            token_amount=int(_env("TOKEN_AMOUNT", str(TOKEN_AMOUNT))),
            batch_size=int(_env("BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            history_size=int(_env("HISTORY_SIZE", str(NOTIFICATION_HISTORY_SIZE))),
        )


@dataclass
class SaleConfig:
    """Configuration for the fixed-rate TokenSale."""

    rate: int = DEFAULT_SALE_RATE
    treasury_address: str = SALE_TREASURY_ADDRESS

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")
        if not self.treasury_address:
            raise ValueError("treasury_address is required")

    @classmethod
    def from_env(cls) -> "SaleConfig":
        """Create configuration from SUBDROP_* environment variables."""
        return cls(
            rate=int(_env("SALE_RATE", str(DEFAULT_SALE_RATE))),
            treasury_address=_env("SALE_TREASURY", SALE_TREASURY_ADDRESS),
        )


@dataclass
class NodeConfig:
    """Configuration for the local development node."""

    engine_address: str = "0xSubdropEngine"
    owner_address: str = "0xSubdropOwner"
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT
    state_dir: Path = DEFAULT_STATE_DIR
    enable_metrics: bool = True
    save_interval: float = 30.0  # seconds

    @classmethod
    def from_env(cls) -> "NodeConfig":
        """Create configuration from SUBDROP_* environment variables."""
        return cls(
            engine_address=_env("ENGINE_ADDRESS", "0xSubdropEngine"),
            owner_address=_env("OWNER_ADDRESS", "0xSubdropOwner"),
            api_host=_env("API_HOST", DEFAULT_API_HOST),
            api_port=int(_env("API_PORT", str(DEFAULT_API_PORT))),
            state_dir=Path(_env("STATE_DIR", str(DEFAULT_STATE_DIR))),
            enable_metrics=_env("ENABLE_METRICS", "1").lower() in ("1", "true", "yes"),
            save_interval=float(_env("SAVE_INTERVAL", "30")),
        )
