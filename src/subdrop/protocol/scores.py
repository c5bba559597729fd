"""
subdrop/protocol/scores.py

Per-sender subdrop scores and the per-(sender, recipient) sent record.

Invariants:
- Scores are non-negative and never decrease
- A (sender, recipient) pair stays marked as sent until an explicit reset,
  so a sender scores at most once per distinct recipient
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Set

logger = logging.getLogger("subdrop.protocol.scores")


class ScoreLedger:
    """
    Score and sent-record tables.

    Usage:
        scores = ScoreLedger()
        scores.mark_sent("0xSender", "0xRecipient")
        new_score = scores.add_score("0xSender", 1)
    """

    def __init__(self):
        self._scores: Dict[str, int] = {}                      # sender -> score
        self._sent: Dict[str, Set[str]] = defaultdict(set)     # sender -> {recipients}

    # ========================================================================
    # SCORE RECORD
    # ========================================================================

    def score_of(self, account: str) -> int:
        """Get an account's cumulative score (0 if it never scored)."""
        return self._scores.get(account, 0)

    def add_score(self, account: str, drops: int) -> int:
        """
        Credit successful drops to an account.

        Args:
            account: Sender address
            drops: Number of successful drops (must be positive)

        Returns:
            New cumulative score
        """
        if drops <= 0:
            raise ValueError(f"Score increment must be positive, got {drops}")
        new_score = self.score_of(account) + drops
        self._scores[account] = new_score
        return new_score

    def scored_accounts(self) -> List[str]:
        return list(self._scores.keys())

    # ========================================================================
    # SENT RECORD
    # ========================================================================

    def has_sent(self, sender: str, recipient: str) -> bool:
        recipients = self._sent.get(sender)
        return recipients is not None and recipient in recipients

    def mark_sent(self, sender: str, recipient: str) -> None:
        self._sent[sender].add(recipient)

    def clear_sent(self, sender: str, recipient: str) -> bool:
        """
        Clear a sent mark. The sender's score is not touched.

        Returns:
            True if the pair was marked before the reset
        """
        recipients = self._sent.get(sender)
        if not recipients or recipient not in recipients:
            return False
        recipients.discard(recipient)
        if not recipients:
            del self._sent[sender]
        return True

    def sent_count(self) -> int:
        """Total number of (sender, recipient) pairs currently marked."""
        return sum(len(r) for r in self._sent.values())

    # ========================================================================
    # SNAPSHOT / SERIALIZATION
    # ========================================================================

    def snapshot(self) -> Dict[str, Any]:
        return {
            "scores": dict(self._scores),
            "sent": {sender: set(recipients) for sender, recipients in self._sent.items()},
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self._scores = dict(snapshot["scores"])
        self._sent = defaultdict(set, {
            sender: set(recipients) for sender, recipients in snapshot["sent"].items()
        })

    def scores_to_dict(self) -> Dict[str, int]:
        return dict(self._scores)

    def sent_to_dict(self) -> Dict[str, List[str]]:
        return {sender: sorted(recipients) for sender, recipients in self._sent.items()}

    def load(self, scores: Dict[str, int], sent: Dict[str, Iterable[str]]) -> None:
        """Replace both tables from persisted data."""
        for account, score in scores.items():
            if int(score) < 0:
                raise ValueError(f"Negative score for {account}: {score}")
        self._scores = {account: int(score) for account, score in scores.items()}
        self._sent = defaultdict(set, {
            sender: set(recipients) for sender, recipients in sent.items() if recipients
        })
        logger.debug(f"Loaded {len(self._scores)} scores, {self.sent_count()} sent records")
