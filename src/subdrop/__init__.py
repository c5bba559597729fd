"""
subdrop - Token subdrops with a distributor leaderboard

Any account can drop a fixed amount of a fungible token to a list of
candidate recipients. Every recipient that is a new holder (zero balance),
has not received a drop from the same sender before, and is not the sender
earns the sender one point of subdrop score. Senders are ranked on a
leaderboard.

Usage:
    from subdrop import DistributionEngine, InMemoryTokenLedger, TOKEN_AMOUNT

    ledger = InMemoryTokenLedger()
    engine = DistributionEngine(ledger, "0xEngine", owner="0xOwner")

    ledger.mint("0xSender", 10 * TOKEN_AMOUNT)
    ledger.approve("0xSender", "0xEngine", 10 * TOKEN_AMOUNT)

    preview = engine.preview_distribution("0xSender", ["0xA", "0xB"])
    result = engine.distribute("0xSender", ["0xA", "0xB"])

    engine.top_droppers(10)

Admin Usage:
    engine.admin.set_batch_size("0xOwner", 100)
    engine.admin.reset_sender_record("0xOwner", "0xSender", "0xA")

REST API Usage:
    from subdrop.api import SubdropAPI

    api = SubdropAPI(engine, host="0.0.0.0", port=8545)
    await api.start()
"""

from .config import (
    TOKEN_AMOUNT,
    TOKEN_DECIMALS,
    DEFAULT_BATCH_SIZE,
    EngineConfig,
    SaleConfig,
    NodeConfig,
)
from .errors import (
    SubdropError,
    InvalidInputError,
    InsufficientBalanceError,
    InsufficientAllowanceError,
    TransferFailedError,
    UnauthorizedError,
    ReentrancyError,
)
from .ledger import TokenLedger, InMemoryTokenLedger
from .protocol import (
    DistributionEngine,
    DistributionResult,
    DistributionPreview,
    AdminControls,
    EligibilityFilter,
    Leaderboard,
    RankedDropper,
    ScoreLedger,
    NotificationHub,
    TokenSale,
    SubdropStateStore,
    MemoryBackend,
    FileBackend,
)
from .metrics import MetricsCollector

__version__ = "0.1.0"

__all__ = [
    # Config
    "TOKEN_AMOUNT",
    "TOKEN_DECIMALS",
    "DEFAULT_BATCH_SIZE",
    "EngineConfig",
    "SaleConfig",
    "NodeConfig",
    # Errors
    "SubdropError",
    "InvalidInputError",
    "InsufficientBalanceError",
    "InsufficientAllowanceError",
    "TransferFailedError",
    "UnauthorizedError",
    "ReentrancyError",
    # Ledger
    "TokenLedger",
    "InMemoryTokenLedger",
    # Core
    "DistributionEngine",
    "DistributionResult",
    "DistributionPreview",
    "AdminControls",
    "EligibilityFilter",
    "Leaderboard",
    "RankedDropper",
    "ScoreLedger",
    "NotificationHub",
    "TokenSale",
    # Persistence
    "SubdropStateStore",
    "MemoryBackend",
    "FileBackend",
    # Metrics
    "MetricsCollector",
]
