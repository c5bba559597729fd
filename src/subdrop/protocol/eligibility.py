"""
subdrop/protocol/eligibility.py

Decides whether a (sender, recipient) pair qualifies for a drop.

A pair is eligible when all of the following hold:
- the recipient currently holds no tokens (a "new holder")
- the sender has not already dropped to this recipient
- the recipient is not the sender

All methods are read-only; answers change only when ledger balances or the
sent record change.
"""

from typing import Iterable

from ..ledger.base import TokenLedger
from .scores import ScoreLedger


class EligibilityFilter:
    """Pure eligibility predicate over the token ledger and sent record."""

    def __init__(self, ledger: TokenLedger, scores: ScoreLedger):
        self._ledger = ledger
        self._scores = scores

    def is_new_holder(self, account: str) -> bool:
        """True if the account's token balance is zero."""
        return self._ledger.balance_of(account) == 0

    def is_eligible(self, sender: str, recipient: str) -> bool:
        return (
            recipient != sender
            and not self._scores.has_sent(sender, recipient)
            and self.is_new_holder(recipient)
        )

    def count_preflight(self, sender: str, recipients: Iterable[str]) -> int:
        """
        Upper bound on the drops a distribution can make.

        Counts recipients that are new holders and not yet sent to. The
        sender is not excluded, so the count never under-estimates.
        """
        return sum(
            1 for recipient in recipients
            if not self._scores.has_sent(sender, recipient) and self.is_new_holder(recipient)
        )
