"""
Bid Generator - Plausible solver offers for simulated rounds.

A solver's offer is the market yield minus its take:

    apy = round(market_apy - margin, apy_precision)

where margin is drawn from [margin_min, margin_max]. Confidence is drawn
independently and is informational only.
"""

import random
import time
from typing import Callable, Optional

from yieldrace.core.config import CompetitionConfig
from yieldrace.core.competition.models import Bid


class BidGenerator:
    """
    Produces one Bid per call from an injected random source.

    Pass a seeded random.Random and a fixed clock to get reproducible
    bid sequences.
    """

    def __init__(
        self,
        config: Optional[CompetitionConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CompetitionConfig()
        self.rng = rng or random.Random()
        self.clock = clock

    def generate_bid(
        self,
        solver_id: str,
        solver_name: str,
        market_apy: float,
        min_apy: Optional[float] = None,
        protocol: str = "",
    ) -> Bid:
        """
        Create a bid for a solver.

        Args:
            solver_id: Bidding solver
            solver_name: Display name carried on the bid
            market_apy: Yield a direct deposit would earn (fraction)
            min_apy: Intent floor; only applied when enforce_min_apy is set
            protocol: Protocol tag, defaults to the solver id

        Returns:
            A new Bid
        """
        cfg = self.config

        margin = self.rng.uniform(cfg.margin_min, cfg.margin_max)
        apy = round(market_apy - margin, cfg.apy_precision)
        if cfg.enforce_min_apy and min_apy is not None and apy < min_apy:
            apy = round(min_apy, cfg.apy_precision)

        confidence = self.rng.uniform(cfg.confidence_min, cfg.confidence_max)

        return Bid(
            solver_id=solver_id,
            apy=apy,
            submitted_at=self.clock(),
            confidence=min(max(confidence, 0.0), 1.0),
            solver_name=solver_name,
            protocol=protocol or solver_id,
        )
