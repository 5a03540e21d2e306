"""
Unit tests for bid generation.

Tests cover:
1. Margin and rounding
2. Reproducibility under a seeded random source
3. Optional min_apy floor
"""

import random

import pytest

from yieldrace.core.config import CompetitionConfig
from yieldrace.core.competition import BidGenerator


class ScriptedRandom:
    """Random source returning scripted uniform() values."""

    def __init__(self, values):
        self._values = list(values)

    def uniform(self, a, b):
        return self._values.pop(0)


def fixed_clock():
    return 12.5


class TestBidGenerator:
    """Tests for BidGenerator.generate_bid."""

    def test_exact_bid_from_scripted_source(self):
        """apy = market - margin, confidence taken as drawn."""
        gen = BidGenerator(rng=ScriptedRandom([0.003, 0.9]), clock=fixed_clock)

        bid = gen.generate_bid("navi", "Navi Solver", market_apy=0.10)

        assert bid.solver_id == "navi"
        assert bid.solver_name == "Navi Solver"
        assert bid.apy == pytest.approx(0.097)
        assert bid.confidence == pytest.approx(0.9)
        assert bid.submitted_at == 12.5
        assert bid.protocol == "navi"

    def test_apy_within_margin_range(self):
        gen = BidGenerator(rng=random.Random(1), clock=fixed_clock)

        for _ in range(200):
            bid = gen.generate_bid("a", "A", market_apy=0.10)
            assert 0.095 <= bid.apy <= 0.098
            assert 0.8 <= bid.confidence <= 1.0

    def test_apy_rounded(self):
        """Bids carry 2 decimals on the percentage scale."""
        gen = BidGenerator(rng=random.Random(2), clock=fixed_clock)

        for _ in range(50):
            bid = gen.generate_bid("a", "A", market_apy=0.0873)
            assert bid.apy == round(bid.apy, 4)

    def test_reproducible_with_seed(self):
        a = BidGenerator(rng=random.Random(99), clock=fixed_clock)
        b = BidGenerator(rng=random.Random(99), clock=fixed_clock)

        seq_a = [a.generate_bid("s", "S", 0.12) for _ in range(10)]
        seq_b = [b.generate_bid("s", "S", 0.12) for _ in range(10)]

        assert seq_a == seq_b

    def test_min_apy_not_enforced_by_default(self):
        gen = BidGenerator(rng=ScriptedRandom([0.005, 0.9]), clock=fixed_clock)

        bid = gen.generate_bid("a", "A", market_apy=0.10, min_apy=0.099)

        assert bid.apy == pytest.approx(0.095)

    def test_min_apy_enforced(self):
        config = CompetitionConfig(enforce_min_apy=True)
        gen = BidGenerator(config, rng=ScriptedRandom([0.005, 0.9]), clock=fixed_clock)

        bid = gen.generate_bid("a", "A", market_apy=0.10, min_apy=0.099)

        assert bid.apy == pytest.approx(0.099)

    def test_custom_protocol(self):
        gen = BidGenerator(rng=random.Random(3), clock=fixed_clock)

        bid = gen.generate_bid("aggregator", "Aggregator Bot", 0.1, protocol="cetus")

        assert bid.protocol == "cetus"
