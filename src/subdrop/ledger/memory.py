"""
subdrop/ledger/memory.py

In-memory token ledger with ERC-20 style semantics.

Used by the local node and the test suite. Supports checkpoint/rollback so
that a failed subdrop call leaves balances untouched, and transfer hooks so
that callers can observe (or interfere with) every applied transfer.

Rollback is journal based: while a thread holds an open checkpoint, every
balance, allowance and supply change it makes is recorded, and rollback
applies the inverse of those entries only. Changes made by other threads in
the meantime (another component sharing the ledger, a mint or approve from
outside any call) are left alone.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from .base import TokenLedger

logger = logging.getLogger("subdrop.ledger.memory")


@dataclass(frozen=True)
class LedgerCheckpoint:
    """Position in the calling thread's journal."""
    thread_id: int
    position: int


# Journal entries: (kind, key, delta)
#   ("balance", account, delta)
#   ("allowance", (owner, spender), delta)
#   ("supply", None, delta)
JournalEntry = Tuple[str, object, int]


class InMemoryTokenLedger(TokenLedger):
    """
    Process-local fungible-token ledger.

    Usage:
        ledger = InMemoryTokenLedger(symbol="DROP")
        ledger.mint("0xAlice", 10 * 10**18)
        ledger.approve("0xAlice", "0xEngine", 5 * 10**18)
        ledger.transfer_from("0xEngine", "0xAlice", "0xBob", 10**18)
    """

    def __init__(self, symbol: str = "DROP", decimals: int = 18):
        self.symbol = symbol
        self.decimals = decimals

        self._balances: Dict[str, int] = defaultdict(int)
        self._allowances: Dict[Tuple[str, str], int] = defaultdict(int)
        self._total_supply = 0

        # Guards the tables; never held while hooks run
        self._lock = threading.RLock()
        self._local = threading.local()

        # Called with (source, destination, amount) after each applied transfer
        self._on_transfer: List[Callable[[str, str, int], None]] = []

    # ========================================================================
    # CAPABILITY SET
    # ========================================================================

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        with self._lock:
            return self._allowances.get((owner, spender), 0)

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        with self._lock:
            if not self._move(sender, to, amount):
                return False
        self._notify(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        with self._lock:
            allowed = self._allowances.get((owner, spender), 0)
            if amount > allowed:
                logger.debug(f"transfer_from rejected: allowance {allowed} < {amount}")
                return False
            if not self._move(owner, to, amount):
                return False
            self._adjust("allowance", (owner, spender), -amount)
        self._notify(owner, to, amount)
        return True

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def mint(self, account: str, amount: int) -> None:
        """Create new tokens for an account."""
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        with self._lock:
            self._adjust("balance", account, amount)
            self._adjust("supply", None, amount)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set the allowance `spender` may move on behalf of `owner`."""
        if amount < 0 or not spender:
            return False
        with self._lock:
            current = self._allowances.get((owner, spender), 0)
            self._adjust("allowance", (owner, spender), amount - current)
        return True

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def add_transfer_hook(self, callback: Callable[[str, str, int], None]) -> None:
        """Register a callback invoked after every applied transfer."""
        self._on_transfer.append(callback)

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    def checkpoint(self) -> LedgerCheckpoint:
        journal = self._journal()
        self._local.depth = getattr(self._local, "depth", 0) + 1
        return LedgerCheckpoint(thread_id=threading.get_ident(), position=len(journal))

    def commit(self, checkpoint: LedgerCheckpoint) -> None:
        self._close(checkpoint)

    def rollback(self, checkpoint: LedgerCheckpoint) -> None:
        if checkpoint.thread_id != threading.get_ident():
            raise RuntimeError("Checkpoint belongs to another thread")

        journal = self._journal()
        undone = journal[checkpoint.position:]
        del journal[checkpoint.position:]

        with self._lock:
            for kind, key, delta in reversed(undone):
                self._apply(kind, key, -delta)

        self._close(checkpoint)
        logger.debug(f"Ledger rolled back {len(undone)} journal entries")

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _journal(self) -> List[JournalEntry]:
        journal = getattr(self._local, "journal", None)
        if journal is None:
            journal = self._local.journal = []
        return journal

    def _close(self, checkpoint: LedgerCheckpoint) -> None:
        self._local.depth = max(getattr(self._local, "depth", 0) - 1, 0)
        if self._local.depth == 0:
            self._journal().clear()

    def _adjust(self, kind: str, key: object, delta: int) -> None:
        self._apply(kind, key, delta)
        if getattr(self._local, "depth", 0) > 0:
            self._journal().append((kind, key, delta))

    def _apply(self, kind: str, key: object, delta: int) -> None:
        if kind == "balance":
            self._balances[key] += delta
        elif kind == "allowance":
            self._allowances[key] += delta
        else:
            self._total_supply += delta

    def _move(self, source: str, destination: str, amount: int) -> bool:
        # Caller holds the lock
        if not destination or amount < 0:
            return False
        available = self._balances.get(source, 0)
        if amount > available:
            logger.debug(f"transfer rejected: balance {available} < {amount}")
            return False
        self._adjust("balance", source, -amount)
        self._adjust("balance", destination, amount)
        return True

    def _notify(self, source: str, destination: str, amount: int) -> None:
        # Hook errors propagate: a hook that raises aborts the caller's call
        for callback in list(self._on_transfer):
            callback(source, destination, amount)
