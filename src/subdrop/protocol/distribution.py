"""
subdrop/protocol/distribution.py

Subdrop distribution engine.

Any account can distribute a fixed amount of tokens to a list of candidate
recipients. Each recipient that passes the eligibility filter earns the
sender one point of subdrop score, and senders that have scored are ranked
on a leaderboard.

A distribution runs in two phases inside one atomic section:
1. Pre-flight: the token need is estimated from recipients that are new
   holders and not yet sent to (self-exclusion is deliberately not applied,
   so the estimate is an upper bound). The sender's balance and the
   allowance granted to the engine must both cover it.
2. Execution: recipients are walked in chunks of `batch_size`. Eligibility
   is re-checked per recipient against fresh balances, eligible recipients
   receive `token_amount` via transfer_from, and the sender's score and
   leaderboard membership are updated at the end.

Any failure (including a rejected transfer half way through) rolls back the
whole call: scores, sent records, leaderboard and ledger balances.

Usage:
    ledger = InMemoryTokenLedger()
    engine = DistributionEngine(ledger, "0xEngine", owner="0xOwner")

    ledger.approve("0xSender", "0xEngine", 10 * TOKEN_AMOUNT)
    result = engine.distribute("0xSender", ["0xA", "0xB", "0xC"])
    print(result.drops, engine.score_of("0xSender"))

    for row in engine.top_droppers(10):
        print(row.rank, row.address, row.score)
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from ..config import EngineConfig
from ..errors import (
    InvalidInputError,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    SubdropError,
    TransferFailedError,
)
from ..ledger.base import TokenLedger
from .admin import AdminControls
from .atomic import AtomicSection
from .eligibility import EligibilityFilter
from .events import DropDistributed, Notification, NotificationHub, ScoreUpdated
from .leaderboard import Leaderboard, RankedDropper
from .scores import ScoreLedger

logger = logging.getLogger("subdrop.protocol.distribution")


# ============================================================================
# RESULTS
# ============================================================================

@dataclass
class DistributionResult:
    """Outcome of a committed distribute() call."""
    sender: str
    recipients: List[str] = field(default_factory=list)  # recipients that got a drop, in order
    tokens_distributed: int = 0
    new_score: int = 0
    batches: int = 0

    @property
    def drops(self) -> int:
        return len(self.recipients)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["drops"] = self.drops
        return data


@dataclass
class DistributionPreview:
    """What distribute() would do right now, without doing it."""
    sender: str
    recipients: List[str] = field(default_factory=list)  # recipients that would get a drop
    tokens_needed: int = 0

    @property
    def eligible_count(self) -> int:
        return len(self.recipients)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["eligible_count"] = self.eligible_count
        return data


# ============================================================================
# ENGINE
# ============================================================================

class DistributionEngine:
    """
    Distribution-and-scoring engine.

    Holds the four state tables (scores, sent record, leaderboard, config)
    for one deployment. Owner-only operations live on `engine.admin`.
    """

    def __init__(
        self,
        ledger: TokenLedger,
        address: str,
        owner: str,
        config: Optional[EngineConfig] = None,
        hub: Optional[NotificationHub] = None,
    ):
        """
        Initialize DistributionEngine.

        Args:
            ledger: Token ledger the engine spends through
            address: The engine's own account on the ledger (allowance spender)
            owner: Account allowed to run admin operations
            config: Engine configuration (token amount, initial batch size)
            hub: Notification hub (a private one is created if omitted)
        """
        if not address:
            raise InvalidInputError("address", "engine address is required")
        if not owner:
            raise InvalidInputError("owner", "owner address is required")

        self.ledger = ledger
        self.address = address
        self.config = config or EngineConfig()
        self.hub = hub or NotificationHub(history_size=self.config.history_size)

        self._owner = owner
        self._token_amount = self.config.token_amount
        self._batch_size = self.config.batch_size

        self._scores = ScoreLedger()
        self._leaderboard = Leaderboard()
        self._filter = EligibilityFilter(ledger, self._scores)

        self._section = AtomicSection(
            snapshot=self._snapshot,
            restore=self._restore,
            ledgers=[ledger],
            hub=self.hub,
        )

        # Operational counters (not part of the rolled-back state)
        self._stats: Dict[str, int] = {
            "distributions_ok": 0,
            "distributions_failed": 0,
            "drops_total": 0,
            "tokens_distributed_total": 0,
        }

        self.admin = AdminControls(self)

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def token_amount(self) -> int:
        return self._token_amount

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # ========================================================================
    # DISTRIBUTION
    # ========================================================================

    def distribute(self, sender: str, recipients: Sequence[str]) -> DistributionResult:
        """
        Drop `token_amount` to every eligible recipient.

        Args:
            sender: Distributing account (must have approved the engine)
            recipients: Candidate recipients, processed in order

        Returns:
            DistributionResult for the committed call

        Raises:
            InvalidInputError: Empty recipient list
            InsufficientBalanceError: Sender cannot cover the pre-flight estimate
            InsufficientAllowanceError: Engine allowance cannot cover it
            TransferFailedError: The ledger rejected a drop (nothing is applied)
            ReentrancyError: Called while another operation is in progress
        """
        try:
            recipients = self._validate_recipients(recipients)
            with self._section.run("distribute") as pending:
                result = self._distribute(sender, recipients, pending)
        except SubdropError as e:
            self._stats["distributions_failed"] += 1
            logger.warning(f"Distribution from {sender} rejected: {e}")
            raise

        self._stats["distributions_ok"] += 1
        self._stats["drops_total"] += result.drops
        self._stats["tokens_distributed_total"] += result.tokens_distributed

        logger.info(
            f"Distribution from {sender}: {result.drops}/{len(recipients)} drops "
            f"in {result.batches} batches, score={result.new_score}"
        )
        return result

    def _distribute(
        self,
        sender: str,
        recipients: List[str],
        pending: List[Notification],
    ) -> DistributionResult:
        amount = self._token_amount

        # Pre-flight affordability (upper bound, sender not excluded)
        needed = amount * self._filter.count_preflight(sender, recipients)
        balance = self.ledger.balance_of(sender)
        if balance < needed:
            raise InsufficientBalanceError(sender, needed, balance)
        allowance = self.ledger.allowance(sender, self.address)
        if allowance < needed:
            raise InsufficientAllowanceError(sender, self.address, needed, allowance)

        result = DistributionResult(sender=sender)
        batch_size = self._batch_size

        for start in range(0, len(recipients), batch_size):
            result.batches += 1
            for recipient in recipients[start:start + batch_size]:
                if not self._filter.is_eligible(sender, recipient):
                    continue

                if not self.ledger.transfer_from(self.address, sender, recipient, amount):
                    raise TransferFailedError(sender, recipient, amount, "ledger rejected transfer_from")

                self._scores.mark_sent(sender, recipient)
                result.recipients.append(recipient)
                pending.append(DropDistributed(sender=sender, recipient=recipient, amount=amount))

            logger.debug(
                f"Batch {result.batches} ({start}..{start + batch_size}) "
                f"from {sender}: {result.drops} drops so far"
            )

        result.tokens_distributed = result.drops * amount
        result.new_score = self._scores.score_of(sender)

        if result.drops > 0:
            result.new_score = self._scores.add_score(sender, result.drops)
            if self._leaderboard.add(sender):
                logger.info(f"New leaderboard entrant: {sender}")
            pending.append(ScoreUpdated(sender=sender, new_score=result.new_score))

        return result

    def _validate_recipients(self, recipients: Sequence[str]) -> List[str]:
        if isinstance(recipients, str):
            raise InvalidInputError("recipients", "expected a sequence of addresses, got a string")
        recipients = list(recipients)
        if not recipients:
            raise InvalidInputError("recipients", "recipient list must not be empty")
        return recipients

    # ========================================================================
    # QUERIES
    # ========================================================================

    def score_of(self, account: str) -> int:
        with self._section.read():
            return self._scores.score_of(account)

    def has_sent(self, sender: str, recipient: str) -> bool:
        with self._section.read():
            return self._scores.has_sent(sender, recipient)

    def is_eligible_recipient(self, account: str) -> bool:
        """True if the account currently holds no tokens."""
        with self._section.read():
            return self._filter.is_new_holder(account)

    def preview_distribution(self, sender: str, recipients: Sequence[str]) -> DistributionPreview:
        """
        Exact outcome of distribute(sender, recipients) against current state.

        Unlike the pre-flight estimate this applies self-exclusion, and a
        recipient listed twice is counted once (the first drop makes it a
        holder). Nothing is mutated.
        """
        recipients = self._validate_recipients(recipients)

        with self._section.read():
            preview = DistributionPreview(sender=sender)
            dropped = set()
            for recipient in recipients:
                if recipient in dropped:
                    continue
                if self._filter.is_eligible(sender, recipient):
                    dropped.add(recipient)
                    preview.recipients.append(recipient)
            preview.tokens_needed = preview.eligible_count * self._token_amount
            return preview

    def top_droppers(self, limit: int) -> List[RankedDropper]:
        """Senders by descending score; equal scores keep leaderboard order."""
        with self._section.read():
            return self._leaderboard.top(self._scores.score_of, limit)

    def total_leaderboard_size(self) -> int:
        with self._section.read():
            return self._leaderboard.size()

    def leaderboard_entries(self) -> List[str]:
        """Leaderboard members in insertion order."""
        with self._section.read():
            return self._leaderboard.entries()

    # ========================================================================
    # STATE
    # ========================================================================

    def export_state(self) -> Dict[str, Any]:
        """
        Export the four state tables.

        Returns:
            {"scores": {...}, "sent": {...}, "leaderboard": [...], "config": {...}}
        """
        with self._section.read():
            return {
                "scores": self._scores.scores_to_dict(),
                "sent": self._scores.sent_to_dict(),
                "leaderboard": self._leaderboard.entries(),
                "config": {
                    "batch_size": self._batch_size,
                    "owner": self._owner,
                },
            }

    def import_state(self, tables: Dict[str, Any]) -> None:
        """
        Replace all state tables (e.g. after a restart).

        The saved owner wins over the one passed to the constructor, so an
        ownership transfer survives restarts; a mismatch is logged.
        """
        with self._section.run("import_state"):
            config = tables.get("config", {})
            batch_size = int(config.get("batch_size", self._batch_size))
            if batch_size <= 0:
                raise InvalidInputError("batch_size", f"must be positive, got {batch_size}")

            self._scores.load(tables.get("scores", {}), tables.get("sent", {}))
            self._leaderboard.load(tables.get("leaderboard", []))
            self._batch_size = batch_size
            saved_owner = config.get("owner")
            if saved_owner and saved_owner != self._owner:
                logger.warning(
                    f"Saved owner {saved_owner} replaces configured owner {self._owner}"
                )
            self._owner = saved_owner or self._owner

        logger.info(
            f"Imported state: {self._leaderboard.size()} leaderboard entries, "
            f"batch_size={self._batch_size}"
        )

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "scores": self._scores.snapshot(),
            "leaderboard": self._leaderboard.snapshot(),
            "batch_size": self._batch_size,
            "owner": self._owner,
        }

    def _restore(self, snapshot: Dict[str, Any]) -> None:
        self._scores.restore(snapshot["scores"])
        self._leaderboard.restore(snapshot["leaderboard"])
        self._batch_size = snapshot["batch_size"]
        self._owner = snapshot["owner"]
