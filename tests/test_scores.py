"""
Tests for subdrop/protocol/scores.py and subdrop/protocol/leaderboard.py
"""

import pytest

from subdrop.protocol.leaderboard import Leaderboard, RankedDropper
from subdrop.protocol.scores import ScoreLedger


# ============================================================================
# SCORE LEDGER
# ============================================================================

class TestScoreLedger:
    """Tests for ScoreLedger."""

    def test_unknown_account_scores_zero(self):
        assert ScoreLedger().score_of("0xNobody") == 0

    def test_add_score_accumulates(self):
        scores = ScoreLedger()

        assert scores.add_score("0xA", 2) == 2
        assert scores.add_score("0xA", 3) == 5
        assert scores.scored_accounts() == ["0xA"]

    @pytest.mark.parametrize("drops", [0, -2])
    def test_add_score_rejects_non_positive(self, drops):
        scores = ScoreLedger()

        with pytest.raises(ValueError):
            scores.add_score("0xA", drops)

        assert scores.score_of("0xA") == 0

    def test_sent_record(self):
        scores = ScoreLedger()
        scores.mark_sent("0xS", "0xR")

        assert scores.has_sent("0xS", "0xR") is True
        assert scores.has_sent("0xR", "0xS") is False
        assert scores.has_sent("0xS", "0xOther") is False
        assert scores.sent_count() == 1

    def test_clear_sent(self):
        scores = ScoreLedger()
        scores.mark_sent("0xS", "0xR1")
        scores.mark_sent("0xS", "0xR2")

        assert scores.clear_sent("0xS", "0xR1") is True
        assert scores.clear_sent("0xS", "0xR1") is False
        assert scores.has_sent("0xS", "0xR2") is True
        assert scores.sent_count() == 1

    def test_snapshot_is_independent(self):
        scores = ScoreLedger()
        scores.mark_sent("0xS", "0xR")
        scores.add_score("0xS", 1)
        snapshot = scores.snapshot()

        scores.mark_sent("0xS", "0xR2")
        scores.add_score("0xS", 1)
        scores.restore(snapshot)

        assert scores.score_of("0xS") == 1
        assert scores.has_sent("0xS", "0xR2") is False

    def test_to_dict(self):
        scores = ScoreLedger()
        scores.mark_sent("0xS", "0xB")
        scores.mark_sent("0xS", "0xA")
        scores.add_score("0xS", 2)

        assert scores.scores_to_dict() == {"0xS": 2}
        assert scores.sent_to_dict() == {"0xS": ["0xA", "0xB"]}

    def test_load(self):
        scores = ScoreLedger()
        scores.load({"0xS": 3}, {"0xS": ["0xA"], "0xEmpty": []})

        assert scores.score_of("0xS") == 3
        assert scores.has_sent("0xS", "0xA") is True
        assert scores.sent_to_dict() == {"0xS": ["0xA"]}

    def test_load_rejects_negative_score(self):
        with pytest.raises(ValueError):
            ScoreLedger().load({"0xS": -1}, {})


# ============================================================================
# LEADERBOARD
# ============================================================================

class TestLeaderboard:
    """Tests for Leaderboard."""

    def test_add_deduplicates(self):
        board = Leaderboard()

        assert board.add("0xA") is True
        assert board.add("0xB") is True
        assert board.add("0xA") is False
        assert board.size() == 2
        assert board.entries() == ["0xA", "0xB"]
        assert board.contains("0xB")

    def test_top_ranks_by_score(self):
        board = Leaderboard()
        for account in ("0xA", "0xB", "0xC"):
            board.add(account)
        scores = {"0xA": 1, "0xB": 5, "0xC": 3}

        top = board.top(scores.get, 10)

        assert top == [
            RankedDropper(rank=1, address="0xB", score=5),
            RankedDropper(rank=2, address="0xC", score=3),
            RankedDropper(rank=3, address="0xA", score=1),
        ]

    def test_ties_keep_insertion_order(self):
        board = Leaderboard()
        for account in ("0xC", "0xA", "0xB"):
            board.add(account)

        top = board.top(lambda account: 7, 3)

        assert [row.address for row in top] == ["0xC", "0xA", "0xB"]

    def test_limit_truncates(self):
        board = Leaderboard()
        for i in range(5):
            board.add(f"0x{i}")

        top = board.top(lambda account: int(account[2:]), 2)

        assert [row.address for row in top] == ["0x4", "0x3"]
        assert [row.rank for row in top] == [1, 2]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit(self, limit):
        board = Leaderboard()
        board.add("0xA")

        assert board.top(lambda account: 1, limit) == []

    def test_empty_board(self):
        assert Leaderboard().top(lambda account: 1, 10) == []

    def test_load_rebuilds_membership(self):
        board = Leaderboard()
        board.load(["0xA", "0xB", "0xA"])

        assert board.entries() == ["0xA", "0xB"]
        assert board.add("0xB") is False

    def test_row_to_dict(self):
        row = RankedDropper(rank=1, address="0xA", score=4)

        assert row.to_dict() == {"rank": 1, "address": "0xA", "score": 4}
