"""
Tests for subdrop/protocol/admin.py

Tests owner-restricted configuration and emergency operations.
"""

import pytest

from subdrop.config import EngineConfig, TOKEN_AMOUNT
from subdrop.errors import InvalidInputError, TransferFailedError, UnauthorizedError
from subdrop.ledger.memory import InMemoryTokenLedger
from subdrop.protocol.distribution import DistributionEngine


ENGINE = "0xEngine"
OWNER = "0xOwner"
SENDER = "0xSender"


def create_test_engine(batch_size: int = 50) -> DistributionEngine:
    """Create an engine with a funded, approving SENDER."""
    ledger = InMemoryTokenLedger()
    engine = DistributionEngine(
        ledger,
        ENGINE,
        owner=OWNER,
        config=EngineConfig(batch_size=batch_size),
    )
    ledger.mint(SENDER, 10 * TOKEN_AMOUNT)
    ledger.approve(SENDER, ENGINE, 10 * TOKEN_AMOUNT)
    return engine


# ============================================================================
# BATCH SIZE
# ============================================================================

class TestSetBatchSize:
    """Tests for AdminControls.set_batch_size()."""

    def test_owner_sets_batch_size(self):
        engine = create_test_engine()

        engine.admin.set_batch_size(OWNER, 5)

        assert engine.batch_size == 5
        events = engine.hub.history("BatchSizeChanged")
        assert len(events) == 1
        assert events[0].new_size == 5

    @pytest.mark.parametrize("bad_size", [0, -1])
    def test_non_positive_rejected(self, bad_size):
        engine = create_test_engine(batch_size=20)

        with pytest.raises(InvalidInputError):
            engine.admin.set_batch_size(OWNER, bad_size)

        assert engine.batch_size == 20
        assert engine.hub.history("BatchSizeChanged") == []

    @pytest.mark.parametrize("bad_size", [2.5, "3", True, None])
    def test_non_integer_rejected(self, bad_size):
        engine = create_test_engine(batch_size=20)

        with pytest.raises(InvalidInputError):
            engine.admin.set_batch_size(OWNER, bad_size)

        assert engine.batch_size == 20
        result = engine.distribute(SENDER, ["0xA"])
        assert result.drops == 1

    def test_non_owner_rejected(self):
        engine = create_test_engine(batch_size=20)

        with pytest.raises(UnauthorizedError) as exc_info:
            engine.admin.set_batch_size(SENDER, 5)

        assert exc_info.value.caller == SENDER
        assert engine.batch_size == 20

    def test_new_batch_size_used(self):
        engine = create_test_engine()
        engine.admin.set_batch_size(OWNER, 2)

        result = engine.distribute(SENDER, ["0xA", "0xB", "0xC"])

        assert result.batches == 2


# ============================================================================
# EMERGENCY WITHDRAW
# ============================================================================

class TestEmergencyWithdraw:
    """Tests for AdminControls.emergency_withdraw()."""

    def test_moves_engine_tokens_to_owner(self):
        engine = create_test_engine()
        engine.ledger.mint(ENGINE, 5 * TOKEN_AMOUNT)

        engine.admin.emergency_withdraw(OWNER, 3 * TOKEN_AMOUNT)

        assert engine.ledger.balance_of(OWNER) == 3 * TOKEN_AMOUNT
        assert engine.ledger.balance_of(ENGINE) == 2 * TOKEN_AMOUNT
        events = engine.hub.history("FundsWithdrawn")
        assert [(e.owner, e.amount) for e in events] == [(OWNER, 3 * TOKEN_AMOUNT)]

    def test_more_than_held_fails(self):
        engine = create_test_engine()
        engine.ledger.mint(ENGINE, TOKEN_AMOUNT)

        with pytest.raises(TransferFailedError):
            engine.admin.emergency_withdraw(OWNER, 2 * TOKEN_AMOUNT)

        assert engine.ledger.balance_of(ENGINE) == TOKEN_AMOUNT
        assert engine.hub.history("FundsWithdrawn") == []

    def test_non_owner_rejected(self):
        engine = create_test_engine()
        engine.ledger.mint(ENGINE, TOKEN_AMOUNT)

        with pytest.raises(UnauthorizedError):
            engine.admin.emergency_withdraw(SENDER, TOKEN_AMOUNT)

        assert engine.ledger.balance_of(ENGINE) == TOKEN_AMOUNT

    def test_sender_funds_untouched(self):
        """Withdrawal only reaches tokens held by the engine account."""
        engine = create_test_engine()

        with pytest.raises(TransferFailedError):
            engine.admin.emergency_withdraw(OWNER, TOKEN_AMOUNT)

        assert engine.ledger.balance_of(SENDER) == 10 * TOKEN_AMOUNT


# ============================================================================
# SENT RECORD RESET
# ============================================================================

class TestResetSenderRecord:
    """Tests for AdminControls.reset_sender_record()."""

    def test_reset_keeps_score(self):
        engine = create_test_engine()
        engine.distribute(SENDER, ["0xA"])

        engine.admin.reset_sender_record(OWNER, SENDER, "0xA")

        assert engine.has_sent(SENDER, "0xA") is False
        assert engine.score_of(SENDER) == 1

    def test_reset_allows_redrop(self):
        """Once the recipient is a new holder again, the pair scores again."""
        engine = create_test_engine()
        engine.distribute(SENDER, ["0xA"])
        engine.admin.reset_sender_record(OWNER, SENDER, "0xA")
        engine.ledger.transfer("0xA", "0xElsewhere", TOKEN_AMOUNT)

        result = engine.distribute(SENDER, ["0xA"])

        assert result.drops == 1
        assert engine.score_of(SENDER) == 2
        assert engine.has_sent(SENDER, "0xA") is True

    def test_reset_unknown_pair_is_harmless(self):
        engine = create_test_engine()

        engine.admin.reset_sender_record(OWNER, SENDER, "0xNever")

        assert engine.has_sent(SENDER, "0xNever") is False
        assert len(engine.hub.history("SenderRecordReset")) == 1

    def test_non_owner_rejected(self):
        engine = create_test_engine()
        engine.distribute(SENDER, ["0xA"])

        with pytest.raises(UnauthorizedError):
            engine.admin.reset_sender_record(SENDER, SENDER, "0xA")

        assert engine.has_sent(SENDER, "0xA") is True


# ============================================================================
# OWNERSHIP
# ============================================================================

class TestTransferOwnership:
    """Tests for AdminControls.transfer_ownership()."""

    def test_new_owner_takes_over(self):
        engine = create_test_engine()

        engine.admin.transfer_ownership(OWNER, "0xNewOwner")

        assert engine.owner == "0xNewOwner"
        engine.admin.set_batch_size("0xNewOwner", 7)
        assert engine.batch_size == 7
        with pytest.raises(UnauthorizedError):
            engine.admin.set_batch_size(OWNER, 8)

    def test_blank_owner_rejected(self):
        engine = create_test_engine()

        with pytest.raises(InvalidInputError):
            engine.admin.transfer_ownership(OWNER, "")

        assert engine.owner == OWNER

    def test_non_owner_rejected(self):
        engine = create_test_engine()

        with pytest.raises(UnauthorizedError):
            engine.admin.transfer_ownership(SENDER, SENDER)

        assert engine.owner == OWNER

    def test_notification(self):
        engine = create_test_engine()

        engine.admin.transfer_ownership(OWNER, "0xNewOwner")

        events = engine.hub.history("OwnershipTransferred")
        assert (events[0].previous_owner, events[0].new_owner) == (OWNER, "0xNewOwner")
