"""
Competition Models - Bids and bidding rounds.

A Competition is an immutable snapshot of one intent's bidding round.
The controller publishes a new snapshot on every state change, so any
reference an observer holds stays consistent.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple


# =============================================================================
# Enums
# =============================================================================


class CompetitionStatus(IntEnum):
    """Status of a bidding round."""
    BIDDING = 0       # Accepting bids
    FINISHED = 1      # Termination policy met, winner chosen
    TIMEOUT = 2       # Round exceeded its maximum duration
    CANCELLED = 3     # Stopped by the caller, no winner

    @property
    def is_terminal(self) -> bool:
        return self is not CompetitionStatus.BIDDING


# =============================================================================
# Bid
# =============================================================================


@dataclass(frozen=True)
class Bid:
    """
    A solver's yield offer for one competition.

    Attributes:
        solver_id: Id of the registered solver
        apy: Offered yield as a fraction (0.085 = 8.5%)
        submitted_at: Monotonic timestamp of the offer
        confidence: Informational score in [0, 1]
        solver_name: Display name of the solver
        protocol: Protocol the solver would route into
    """
    solver_id: str
    apy: float
    submitted_at: float
    confidence: float = 1.0
    solver_name: str = ""
    protocol: str = ""

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    def beats(self, other: "Bid") -> bool:
        """Whether this bid should replace `other` from the same solver."""
        return self.apy > other.apy

    def __repr__(self) -> str:
        return f"Bid({self.solver_id}: {self.apy:.4f} @ {self.submitted_at:.3f})"


def _winner_key(bid: Bid) -> Tuple[float, float, str]:
    return (-bid.apy, bid.submitted_at, bid.solver_id)


def select_winner(bids: Iterable[Bid]) -> Optional[Bid]:
    """
    Select the winning bid.

    Highest apy wins; exact ties go to the earliest submission, then to
    the lowest solver id so the result is stable.

    Returns:
        The winning Bid, or None if there are no bids
    """
    ranked = sorted(bids, key=_winner_key)
    return ranked[0] if ranked else None


def rank_bids(bids: Iterable[Bid]) -> Tuple[Bid, ...]:
    """Order bids best first, using the winner ordering."""
    return tuple(sorted(bids, key=_winner_key))


# =============================================================================
# Competition
# =============================================================================


@dataclass(frozen=True)
class Competition:
    """
    Snapshot of one intent's bidding round.

    Attributes:
        intent_id: Reference to the intent being served
        bids: Current best bid per solver id
        status: Round status
        started_at: Monotonic start time
        ended_at: Monotonic end time, set at termination
        winning_bid: Set only at FINISHED or TIMEOUT
        arrival_count: Bid arrival events processed so far
        first_bid_at: Submission time of the first bid that arrived
        min_apy: Floor the intent asked for
        market_apy: Reference yield of a direct deposit
    """
    intent_id: str
    started_at: float
    bids: Mapping[str, Bid] = field(default_factory=lambda: MappingProxyType({}))
    status: CompetitionStatus = CompetitionStatus.BIDDING
    ended_at: Optional[float] = None
    winning_bid: Optional[Bid] = None
    arrival_count: int = 0
    first_bid_at: Optional[float] = None
    min_apy: float = 0.0
    market_apy: float = 0.0

    @property
    def is_bidding(self) -> bool:
        return self.status is CompetitionStatus.BIDDING

    @property
    def ranked_bids(self) -> Tuple[Bid, ...]:
        """Retained bids, best first."""
        return rank_bids(self.bids.values())

    def leader(self) -> Optional[Bid]:
        """Current best bid, whether or not the round has ended."""
        return select_winner(self.bids.values())

    def with_bid(self, bid: Bid) -> Tuple["Competition", bool]:
        """
        Apply the update-if-better rule for one arrival.

        The arrival is always counted. The bid is retained if the solver
        has no bid yet or if it strictly beats the solver's current one.

        Returns:
            (new snapshot, whether the bid was retained)
        """
        existing = self.bids.get(bid.solver_id)
        retained = existing is None or bid.beats(existing)

        bids = self.bids
        if retained:
            updated = dict(self.bids)
            updated[bid.solver_id] = bid
            bids = MappingProxyType(updated)

        first_bid_at = self.first_bid_at
        if first_bid_at is None:
            first_bid_at = bid.submitted_at

        updated_competition = replace(
            self,
            bids=bids,
            arrival_count=self.arrival_count + 1,
            first_bid_at=first_bid_at,
        )
        return updated_competition, retained

    def closed(self, status: CompetitionStatus, ended_at: float) -> "Competition":
        """
        Produce the terminal snapshot.

        FINISHED and TIMEOUT resolve a winner; CANCELLED leaves it unset.
        """
        if not status.is_terminal:
            raise ValueError("closed() requires a terminal status")

        winner = None
        if status is not CompetitionStatus.CANCELLED:
            winner = select_winner(self.bids.values())

        return replace(
            self,
            status=status,
            ended_at=max(ended_at, self.started_at),
            winning_bid=winner,
        )

    def __repr__(self) -> str:
        return (
            f"Competition(intent={self.intent_id}, status={self.status.name}, "
            f"bids={len(self.bids)}, arrivals={self.arrival_count})"
        )
