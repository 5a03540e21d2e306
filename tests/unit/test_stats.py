"""
Unit tests for solver statistics.
"""

import pytest

from yieldrace.core.competition import (
    Bid,
    Competition,
    CompetitionStatus,
    SolverStatsTracker,
)


def finished_round(intent_id, offers, status=CompetitionStatus.FINISHED, started_at=0.0):
    competition = Competition(intent_id=intent_id, started_at=started_at)
    for i, (solver_id, apy) in enumerate(offers):
        competition, _ = competition.with_bid(
            Bid(solver_id=solver_id, apy=apy, submitted_at=started_at + i)
        )
    return competition.closed(status, started_at + len(offers))


class TestSolverStatsTracker:
    """Tests for SolverStatsTracker."""

    def test_record_finished(self):
        tracker = SolverStatsTracker()

        assert tracker.record(finished_round("i1", [("a", 0.08), ("b", 0.09)]))
        assert tracker.record(finished_round("i2", [("a", 0.10), ("b", 0.06)]))

        a = tracker.get("a")
        assert a.total_bids == 2
        assert a.winning_bids == 1
        assert a.average_apy == pytest.approx(0.09)
        assert a.win_rate == pytest.approx(0.5)
        assert tracker.rounds_recorded == 2

    def test_cancelled_ignored(self):
        tracker = SolverStatsTracker()

        recorded = tracker.record(
            finished_round("i1", [("a", 0.08)], status=CompetitionStatus.CANCELLED)
        )

        assert not recorded
        assert tracker.get("a").total_bids == 0

    def test_bidding_ignored(self):
        tracker = SolverStatsTracker()

        assert not tracker.record(Competition(intent_id="i1", started_at=0.0))

    def test_timeout_counted(self):
        tracker = SolverStatsTracker()

        tracker.record(finished_round("i1", [("a", 0.08)], status=CompetitionStatus.TIMEOUT))

        assert tracker.get("a").winning_bids == 1

    def test_duplicate_ignored(self):
        tracker = SolverStatsTracker()
        competition = finished_round("i1", [("a", 0.08)])

        assert tracker.record(competition)
        assert not tracker.record(competition)
        assert tracker.get("a").total_bids == 1

    def test_unknown_solver_defaults(self):
        stats = SolverStatsTracker().get("nobody")

        assert stats.total_bids == 0
        assert stats.average_apy == 0.0
        assert stats.win_rate == 0.0

    def test_leaderboard(self):
        tracker = SolverStatsTracker()
        tracker.record(finished_round("i1", [("a", 0.08), ("b", 0.09)], started_at=0.0))
        tracker.record(finished_round("i2", [("a", 0.08), ("b", 0.09)], started_at=10.0))
        tracker.record(finished_round("i3", [("a", 0.10), ("c", 0.05)], started_at=20.0))

        assert [s.solver_id for s in tracker.leaderboard()] == ["b", "a", "c"]

    def test_to_dict(self):
        tracker = SolverStatsTracker()
        tracker.record(finished_round("i1", [("a", 0.08)]))

        assert tracker.get("a").to_dict() == {
            "solver_id": "a",
            "total_bids": 1,
            "winning_bids": 1,
            "average_apy": pytest.approx(0.08),
            "win_rate": 1.0,
        }
