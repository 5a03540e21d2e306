"""
Termination Policies - When a bidding round may finish.

A policy is consulted after every bid arrival and, when it exposes a
deadline, once more when that deadline passes. The controller only
finishes a round that holds at least one bid, whatever the policy says.

Policies:
- BidCountPolicy: after N arrival events, N drawn once per round
- ElapsedTimePolicy: once a fixed duration has passed since start
- GraceWindowPolicy: once a grace window has passed since the first bid
"""

import random
from typing import Optional

from yieldrace.core.config import CompetitionConfig
from yieldrace.core.competition.models import Competition


class TerminationPolicy:
    """Base class for round termination rules."""

    name = "base"

    def begin(self, rng: random.Random) -> None:
        """Reset per-round state. Called once at round start."""

    def is_met(self, competition: Competition, now: float) -> bool:
        raise NotImplementedError

    def deadline(self, competition: Competition) -> Optional[float]:
        """Absolute time at which the policy becomes met, if time-based."""
        return None

    def describe(self) -> str:
        return self.name


class BidCountPolicy(TerminationPolicy):
    """Finish after a bounded number of arrival events."""

    name = "count"

    def __init__(self, min_events: int = 5, max_events: int = 10):
        if not 1 <= min_events <= max_events:
            raise ValueError(f"Invalid bid event range [{min_events}, {max_events}]")
        self.min_events = min_events
        self.max_events = max_events
        self.bound: Optional[int] = None

    def begin(self, rng: random.Random) -> None:
        self.bound = rng.randint(self.min_events, self.max_events)

    def is_met(self, competition: Competition, now: float) -> bool:
        if self.bound is None:
            raise RuntimeError("BidCountPolicy used before begin()")
        return competition.arrival_count >= self.bound

    def describe(self) -> str:
        return f"count(N={self.bound})"


class ElapsedTimePolicy(TerminationPolicy):
    """Finish once `duration` has elapsed since the round started."""

    name = "elapsed"

    def __init__(self, duration: float):
        self.duration = duration

    def is_met(self, competition: Competition, now: float) -> bool:
        return now >= competition.started_at + self.duration

    def deadline(self, competition: Competition) -> Optional[float]:
        return competition.started_at + self.duration

    def describe(self) -> str:
        return f"elapsed({self.duration}s)"


class GraceWindowPolicy(TerminationPolicy):
    """Finish once `grace` has elapsed since the first bid arrived."""

    name = "grace"

    def __init__(self, grace: float):
        self.grace = grace

    def is_met(self, competition: Competition, now: float) -> bool:
        first = competition.first_bid_at
        return first is not None and now >= first + self.grace

    def deadline(self, competition: Competition) -> Optional[float]:
        first = competition.first_bid_at
        return None if first is None else first + self.grace

    def describe(self) -> str:
        return f"grace({self.grace}s)"


def build_policy(config: CompetitionConfig) -> TerminationPolicy:
    """Create the termination policy named by the configuration."""
    if config.termination == "count":
        return BidCountPolicy(config.min_bid_events, config.max_bid_events)
    if config.termination == "elapsed":
        return ElapsedTimePolicy(config.elapsed_duration)
    if config.termination == "grace":
        return GraceWindowPolicy(config.grace_window)
    raise ValueError(f"Unknown termination policy: {config.termination}")
