"""Solver competition engine"""
from yieldrace.core.competition.models import (
    Bid,
    Competition,
    CompetitionStatus,
    select_winner,
    rank_bids,
)
from yieldrace.core.competition.errors import (
    CompetitionError,
    AlreadyRunning,
    RoundClosed,
    NoSolversAvailable,
)
from yieldrace.core.competition.bid_generator import BidGenerator
from yieldrace.core.competition.policy import (
    TerminationPolicy,
    BidCountPolicy,
    ElapsedTimePolicy,
    GraceWindowPolicy,
    build_policy,
)
from yieldrace.core.competition.timer import (
    Timer,
    ScheduleHandle,
    ScheduleSlot,
    AsyncioTimer,
    VirtualTimer,
)
from yieldrace.core.competition.controller import (
    CompetitionController,
    CompetitionHandle,
)
from yieldrace.core.competition.stats import SolverStats, SolverStatsTracker

__all__ = [
    "Bid",
    "Competition",
    "CompetitionStatus",
    "select_winner",
    "rank_bids",
    "CompetitionError",
    "AlreadyRunning",
    "RoundClosed",
    "NoSolversAvailable",
    "BidGenerator",
    "TerminationPolicy",
    "BidCountPolicy",
    "ElapsedTimePolicy",
    "GraceWindowPolicy",
    "build_policy",
    "Timer",
    "ScheduleHandle",
    "ScheduleSlot",
    "AsyncioTimer",
    "VirtualTimer",
    "CompetitionController",
    "CompetitionHandle",
    "SolverStats",
    "SolverStatsTracker",
]
