"""
subdrop/ledger/

Token ledger collaborators for subdrop.
"""

from .base import TokenLedger
from .memory import InMemoryTokenLedger, LedgerCheckpoint

__all__ = [
    "TokenLedger",
    "InMemoryTokenLedger",
    "LedgerCheckpoint",
]
