"""
Unit tests for termination policies.
"""

import random

import pytest

from yieldrace.core.config import CompetitionConfig
from yieldrace.core.competition import (
    Bid,
    Competition,
    BidCountPolicy,
    ElapsedTimePolicy,
    GraceWindowPolicy,
    build_policy,
)


@pytest.fixture
def competition():
    return Competition(intent_id="i", started_at=10.0)


def with_arrivals(competition, count, at=11.0):
    for i in range(count):
        competition, _ = competition.with_bid(
            Bid(solver_id=f"s{i}", apy=0.08, submitted_at=at)
        )
    return competition


class TestBidCountPolicy:
    """Tests for BidCountPolicy."""

    def test_bound_drawn_in_range(self):
        policy = BidCountPolicy(5, 10)
        rng = random.Random(3)

        bounds = set()
        for _ in range(200):
            policy.begin(rng)
            bounds.add(policy.bound)

        assert bounds == set(range(5, 11))

    def test_met_after_bound(self, competition):
        policy = BidCountPolicy(3, 3)
        policy.begin(random.Random(0))

        assert not policy.is_met(with_arrivals(competition, 2), 0.0)
        assert policy.is_met(with_arrivals(competition, 3), 0.0)

    def test_requires_begin(self, competition):
        with pytest.raises(RuntimeError):
            BidCountPolicy().is_met(competition, 0.0)

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            BidCountPolicy(0, 5)
        with pytest.raises(ValueError):
            BidCountPolicy(6, 5)

    def test_no_deadline(self, competition):
        assert BidCountPolicy().deadline(competition) is None


class TestElapsedTimePolicy:
    """Tests for ElapsedTimePolicy."""

    def test_deadline_from_start(self, competition):
        policy = ElapsedTimePolicy(5.0)

        assert policy.deadline(competition) == 15.0
        assert not policy.is_met(competition, 14.9)
        assert policy.is_met(competition, 15.0)


class TestGraceWindowPolicy:
    """Tests for GraceWindowPolicy."""

    def test_no_deadline_before_first_bid(self, competition):
        policy = GraceWindowPolicy(2.0)

        assert policy.deadline(competition) is None
        assert not policy.is_met(competition, 100.0)

    def test_deadline_from_first_bid(self, competition):
        policy = GraceWindowPolicy(2.0)
        c = with_arrivals(competition, 1, at=12.0)

        assert policy.deadline(c) == 14.0
        assert not policy.is_met(c, 13.0)
        assert policy.is_met(c, 14.0)


class TestBuildPolicy:
    """Tests for build_policy."""

    @pytest.mark.parametrize("name,cls", [
        ("count", BidCountPolicy),
        ("elapsed", ElapsedTimePolicy),
        ("grace", GraceWindowPolicy),
    ])
    def test_build(self, name, cls):
        assert isinstance(build_policy(CompetitionConfig(termination=name)), cls)

    def test_count_uses_configured_range(self):
        policy = build_policy(CompetitionConfig(min_bid_events=2, max_bid_events=4))

        assert (policy.min_events, policy.max_events) == (2, 4)
