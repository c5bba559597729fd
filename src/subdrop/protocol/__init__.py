"""
subdrop/protocol/

Distribution, scoring and administration for subdrop.
"""

from .events import (
    Notification,
    NotificationHub,
    DropDistributed,
    ScoreUpdated,
    BatchSizeChanged,
    FundsWithdrawn,
    SenderRecordReset,
    OwnershipTransferred,
    TokensPurchased,
    NativeWithdrawn,
)
from .atomic import AtomicSection
from .scores import ScoreLedger
from .leaderboard import Leaderboard, RankedDropper
from .eligibility import EligibilityFilter
from .admin import AdminControls
from .distribution import DistributionEngine, DistributionResult, DistributionPreview
from .sale import TokenSale
from .storage import (
    StorageBackend,
    MemoryBackend,
    FileBackend,
    SubdropStateStore,
    StateStoreError,
)

__all__ = [
    # Notifications
    "Notification",
    "NotificationHub",
    "DropDistributed",
    "ScoreUpdated",
    "BatchSizeChanged",
    "FundsWithdrawn",
    "SenderRecordReset",
    "OwnershipTransferred",
    "TokensPurchased",
    "NativeWithdrawn",
    # Core
    "AtomicSection",
    "ScoreLedger",
    "Leaderboard",
    "RankedDropper",
    "EligibilityFilter",
    "AdminControls",
    "DistributionEngine",
    "DistributionResult",
    "DistributionPreview",
    # Currency conversion
    "TokenSale",
    # Persistence
    "StorageBackend",
    "MemoryBackend",
    "FileBackend",
    "SubdropStateStore",
    "StateStoreError",
]
