"""
Solver Stats - Per-solver results across finished rounds.

Tracks, for each solver:
- total_bids: rounds in which the solver held a bid at the end
- winning_bids: rounds it won
- average_apy: mean of its final bids
- win_rate: winning_bids / total_bids
"""

from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from yieldrace.core.competition.models import Competition, CompetitionStatus
from yieldrace.utils.logger import get_logger

logger = get_logger("stats")


@dataclass
class SolverStats:
    """Aggregated results for one solver."""
    solver_id: str
    total_bids: int = 0
    winning_bids: int = 0
    apy_sum: float = 0.0

    @property
    def average_apy(self) -> float:
        return self.apy_sum / self.total_bids if self.total_bids else 0.0

    @property
    def win_rate(self) -> float:
        return self.winning_bids / self.total_bids if self.total_bids else 0.0

    def to_dict(self) -> dict:
        return {
            "solver_id": self.solver_id,
            "total_bids": self.total_bids,
            "winning_bids": self.winning_bids,
            "average_apy": self.average_apy,
            "win_rate": self.win_rate,
        }


class SolverStatsTracker:
    """
    Accumulates SolverStats from terminal competitions.

    Cancelled rounds are ignored. A round is identified by its intent id,
    start and end times and arrival count, so recording the same snapshot
    twice has no effect.
    """

    def __init__(self):
        self._stats: Dict[str, SolverStats] = {}
        self._seen: Set[Tuple[str, float, float, int]] = set()
        self.rounds_recorded = 0

    def record(self, competition: Competition) -> bool:
        """
        Ingest a terminal competition.

        Returns:
            True if the competition was counted
        """
        if competition.status not in (CompetitionStatus.FINISHED, CompetitionStatus.TIMEOUT):
            return False

        key = (
            competition.intent_id,
            competition.started_at,
            competition.ended_at,
            competition.arrival_count,
        )
        if key in self._seen:
            return False
        self._seen.add(key)

        winner = competition.winning_bid
        for solver_id, bid in competition.bids.items():
            stats = self._stats.setdefault(solver_id, SolverStats(solver_id))
            stats.total_bids += 1
            stats.apy_sum += bid.apy
            if winner is not None and winner.solver_id == solver_id:
                stats.winning_bids += 1

        self.rounds_recorded += 1
        logger.debug(f"Recorded {competition!r}")
        return True

    def attach(self, handle) -> None:
        """Record the round observed by `handle` once it terminates."""
        def on_change(competition: Competition) -> None:
            if competition.status.is_terminal:
                self.record(competition)

        handle.subscribe(on_change)
        if handle.competition.status.is_terminal:
            self.record(handle.competition)

    def get(self, solver_id: str) -> SolverStats:
        return self._stats.get(solver_id, SolverStats(solver_id))

    def leaderboard(self) -> List[SolverStats]:
        """Solvers ordered by wins, then average apy."""
        return sorted(
            self._stats.values(),
            key=lambda s: (-s.winning_bids, -s.average_apy, s.solver_id),
        )
