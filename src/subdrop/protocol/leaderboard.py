"""
subdrop/protocol/leaderboard.py

Append-only registry of distributors and the ranking query over it.

Entries are stored in order of first successful score and are never
reordered or compacted. Rankings are computed on demand with a stable sort,
so accounts with equal scores keep their insertion order.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Iterable, List, Set

logger = logging.getLogger("subdrop.protocol.leaderboard")


@dataclass
class RankedDropper:
    """One row of the ranking."""
    rank: int       # 1-based position
    address: str
    score: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class Leaderboard:
    """
    Ordered, deduplicated registry of accounts that have scored.

    Usage:
        board = Leaderboard()
        board.add("0xA")
        top = board.top(score_of=scores.score_of, limit=10)
    """

    def __init__(self):
        self._entries: List[str] = []
        self._members: Set[str] = set()

    def add(self, account: str) -> bool:
        """
        Append an account if it is not already a member.

        Returns:
            True if the account was appended
        """
        if account in self._members:
            return False
        self._entries.append(account)
        self._members.add(account)
        logger.debug(f"Leaderboard entry #{len(self._entries)}: {account}")
        return True

    def contains(self, account: str) -> bool:
        return account in self._members

    def size(self) -> int:
        return len(self._entries)

    def entries(self) -> List[str]:
        """Members in insertion order."""
        return list(self._entries)

    def top(self, score_of: Callable[[str], int], limit: int) -> List[RankedDropper]:
        """
        Rank members by descending score.

        Args:
            score_of: Score lookup for a member
            limit: Maximum rows to return (clamped to the leaderboard size)

        Returns:
            Rows sorted by score, ties in insertion order
        """
        if limit <= 0 or not self._entries:
            return []

        ranked = sorted(
            ((account, score_of(account)) for account in self._entries),
            key=lambda item: item[1],
            reverse=True,
        )
        return [
            RankedDropper(rank=i + 1, address=account, score=score)
            for i, (account, score) in enumerate(ranked[:limit])
        ]

    # ========================================================================
    # SNAPSHOT / SERIALIZATION
    # ========================================================================

    def snapshot(self) -> List[str]:
        return list(self._entries)

    def restore(self, snapshot: List[str]) -> None:
        self.load(snapshot)

    def load(self, entries: Iterable[str]) -> None:
        """Replace the sequence and rebuild the membership set."""
        self._entries = []
        self._members = set()
        for account in entries:
            self.add(account)
