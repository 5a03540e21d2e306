"""
Competition Controller - Lifecycle of solver bidding rounds.

Runs at most one round at a time:
- start() opens a round for an intent and schedules bid arrivals
- on_bid_arrival() applies the update-if-better rule
- check_termination() closes the round when the policy is met
- cancel() stops the round without a winner

State machine:

    BIDDING --(policy met, >= 1 bid)--> FINISHED
    BIDDING --(round_timeout elapsed)--> TIMEOUT
    BIDDING --(cancel)-----------------> CANCELLED

Every pending timer callback of a round lives in a ScheduleSlot and all
slots are released before a terminal snapshot is published. Callbacks
carry the round number they were scheduled for and do nothing once that
round is over.
"""

import asyncio
import random
import threading
from functools import partial
from typing import Callable, List, Optional

from yieldrace.core.config import CompetitionConfig
from yieldrace.core.competition.bid_generator import BidGenerator
from yieldrace.core.competition.errors import (
    AlreadyRunning,
    NoSolversAvailable,
    RoundClosed,
)
from yieldrace.core.competition.models import Bid, Competition, CompetitionStatus
from yieldrace.core.competition.policy import TerminationPolicy, build_policy
from yieldrace.core.competition.timer import AsyncioTimer, ScheduleSlot, Timer
from yieldrace.core.registry import SolverRegistry
from yieldrace.utils.logger import get_logger

logger = get_logger("controller")

Observer = Callable[[Competition], None]


# =============================================================================
# Competition Handle
# =============================================================================


class CompetitionHandle:
    """
    Observable view of one round.

    Holds the latest immutable Competition snapshot. Observers are called
    with each new snapshot in the order the changes happened. The handle
    keeps its final snapshot after the controller moves on to another
    round.
    """

    def __init__(self, controller: "CompetitionController", competition: Competition):
        self._controller = controller
        self._competition = competition
        self._observers: List[Observer] = []

    @property
    def intent_id(self) -> str:
        return self._competition.intent_id

    @property
    def competition(self) -> Competition:
        return self._competition

    @property
    def is_bidding(self) -> bool:
        return self._competition.is_bidding

    @property
    def winner(self) -> Optional[Bid]:
        return self._competition.winning_bid

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register an observer for future state changes.

        Returns:
            A callable that removes the observer
        """
        with self._controller._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._controller._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def cancel(self) -> bool:
        """Cancel this round if it is still the controller's live round."""
        with self._controller._lock:
            if self._controller._handle is not self:
                return False
            return self._controller.cancel()

    async def wait(self, timeout: Optional[float] = None) -> Competition:
        """
        Wait until the round reaches a terminal state.

        Args:
            timeout: Seconds to wait, None for no limit

        Returns:
            The terminal Competition snapshot

        Raises:
            asyncio.TimeoutError: If the timeout expires first
        """
        loop = asyncio.get_running_loop()
        done: asyncio.Future = loop.create_future()

        def resolve(competition: Competition) -> None:
            if not done.done():
                done.set_result(competition)

        def on_change(competition: Competition) -> None:
            if competition.status.is_terminal:
                loop.call_soon_threadsafe(resolve, competition)

        unsubscribe = self.subscribe(on_change)
        try:
            current = self._competition
            if current.status.is_terminal:
                return current
            return await asyncio.wait_for(done, timeout)
        finally:
            unsubscribe()

    def _publish(self, competition: Competition) -> None:
        self._competition = competition
        for observer in list(self._observers):
            try:
                observer(competition)
            except Exception:
                logger.exception(f"Observer {observer!r} failed for intent {competition.intent_id}")
            if self._competition is not competition:
                # superseded by a change made from inside an observer
                return

    def __repr__(self) -> str:
        return f"CompetitionHandle({self._competition!r})"


# =============================================================================
# Competition Controller
# =============================================================================


class CompetitionController:
    """
    Owns the bidding round for one consumer.

    All state changes happen under a single re-entrant lock, so timer
    callbacks, externally fed bids and cancel() may come from different
    threads.
    """

    def __init__(
        self,
        registry: Optional[SolverRegistry] = None,
        config: Optional[CompetitionConfig] = None,
        timer: Optional[Timer] = None,
        rng: Optional[random.Random] = None,
        generator: Optional[BidGenerator] = None,
        policy: Optional[TerminationPolicy] = None,
    ):
        """
        Initialize the controller.

        Args:
            registry: Solver identities (defaults to the built-in solvers)
            config: Competition parameters
            timer: Clock and scheduler (defaults to the asyncio loop)
            rng: Random source for solver choice, pacing and round bounds
            generator: Bid generator (defaults to one sharing rng and timer)
            policy: Termination policy (defaults to the configured one)
        """
        self.registry = registry if registry is not None else SolverRegistry()
        self.config = config or CompetitionConfig()
        self.timer = timer or AsyncioTimer()
        self.rng = rng or random.Random()
        self.generator = generator or BidGenerator(self.config, self.rng, clock=self.timer.now)
        self.policy = policy or build_policy(self.config)

        self._lock = threading.RLock()
        self._handle: Optional[CompetitionHandle] = None
        self._round = 0

        self._arrivals = ScheduleSlot(self.timer, "arrivals")
        self._deadline = ScheduleSlot(self.timer, "policy-deadline")
        self._timeout = ScheduleSlot(self.timer, "round-timeout")
        self._deadline_at: Optional[float] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def handle(self) -> Optional[CompetitionHandle]:
        """Handle of the current (or last) round."""
        return self._handle

    @property
    def competition(self) -> Optional[Competition]:
        handle = self._handle
        return handle.competition if handle else None

    @property
    def is_bidding(self) -> bool:
        handle = self._handle
        return handle is not None and handle.is_bidding

    @property
    def has_pending_schedule(self) -> bool:
        """Whether any timer callback is still held for the current round."""
        with self._lock:
            return self._arrivals.active or self._deadline.active or self._timeout.active

    # =========================================================================
    # Round Lifecycle
    # =========================================================================

    def start(
        self,
        intent_id: str,
        min_apy: float = 0.0,
        market_apy: float = 0.0,
        simulate: bool = True,
    ) -> CompetitionHandle:
        """
        Open a bidding round for an intent.

        Args:
            intent_id: Intent being served
            min_apy: Floor the intent asks for (fraction)
            market_apy: Yield of a direct deposit (fraction)
            simulate: Schedule generated bid arrivals; pass False when
                bids are pushed through on_bid_arrival by an outside source

        Returns:
            Handle observing the new round, or the live handle if the same
            intent is already bidding

        Raises:
            NoSolversAvailable: If the registry is empty
            AlreadyRunning: If another intent's round is still bidding
        """
        with self._lock:
            if len(self.registry) == 0:
                raise NoSolversAvailable("Cannot start a round with no registered solvers")

            current = self._handle
            if current is not None and current.is_bidding:
                if current.intent_id == intent_id:
                    return current
                raise AlreadyRunning(current.intent_id, intent_id)

            self._round += 1
            round_id = self._round
            self.policy.begin(self.rng)

            competition = Competition(
                intent_id=intent_id,
                started_at=self.timer.now(),
                min_apy=min_apy,
                market_apy=market_apy,
            )
            handle = CompetitionHandle(self, competition)
            self._handle = handle

            try:
                if self.config.round_timeout is not None:
                    self._timeout.arm(self.config.round_timeout, partial(self._on_timeout, round_id))
                self._arm_deadline(round_id, competition)
                if simulate:
                    self._schedule_arrival(round_id)
            except Exception:
                logger.error(f"Failed to schedule round for intent {intent_id}")
                self._close(CompetitionStatus.CANCELLED)
                raise

            logger.info(
                f"Round {round_id} started: intent={intent_id}, market_apy={market_apy:.4f}, "
                f"min_apy={min_apy:.4f}, policy={self.policy.describe()}, solvers={len(self.registry)}"
            )
            return handle

    def on_bid_arrival(self, bid: Bid) -> bool:
        """
        Apply one bid arrival to the live round.

        The solver's bid is inserted if it has none, replaced only if the
        new apy is strictly greater, otherwise discarded. Termination is
        checked afterwards.

        Returns:
            True if the bid was retained

        Raises:
            RoundClosed: If no round is bidding
            ValueError: If the solver is not registered
        """
        with self._lock:
            handle = self._handle
            if handle is None or not handle.is_bidding:
                raise RoundClosed("No round is accepting bids")
            if bid.solver_id not in self.registry:
                raise ValueError(f"Unknown solver: {bid.solver_id}")

            competition, retained = handle.competition.with_bid(bid)
            if retained:
                logger.debug(f"Bid retained for {competition.intent_id}: {bid!r}")
            else:
                existing = competition.bids[bid.solver_id]
                logger.debug(
                    f"Bid discarded for {competition.intent_id}: {bid!r} "
                    f"does not beat {existing.apy:.4f}"
                )

            handle._publish(competition)
            if not handle.is_bidding:
                # an observer cancelled the round
                return retained

            self._arm_deadline(self._round, competition)
            self.check_termination()
            return retained

    def check_termination(self) -> bool:
        """
        Close the round as FINISHED if the policy is met.

        A round with no bids never finishes; it can still time out.

        Returns:
            True if the round is (now) over
        """
        with self._lock:
            handle = self._handle
            if handle is None:
                return False
            if not handle.is_bidding:
                return True

            competition = handle.competition
            if competition.bids and self.policy.is_met(competition, self.timer.now()):
                self._close(CompetitionStatus.FINISHED)
                return True
            return False

    def cancel(self) -> bool:
        """
        Stop the live round without a winner.

        Returns:
            True if a bidding round was cancelled
        """
        with self._lock:
            if not self.is_bidding:
                return False
            self._close(CompetitionStatus.CANCELLED)
            return True

    def _close(self, status: CompetitionStatus) -> None:
        """Release every schedule slot, then publish the terminal snapshot."""
        self._release_schedules()

        round_id = self._round
        handle = self._handle
        final = handle.competition.closed(status, self.timer.now())
        handle._publish(final)

        if final.winning_bid is not None:
            winner = final.winning_bid
            logger.info(
                f"Round {round_id} {status.name}: intent={final.intent_id}, "
                f"winner={winner.solver_id} apy={winner.apy:.4f}, "
                f"bids={len(final.bids)}, arrivals={final.arrival_count}"
            )
        elif status is CompetitionStatus.TIMEOUT:
            logger.warning(f"Round {round_id} TIMEOUT with no bids: intent={final.intent_id}")
        else:
            logger.info(f"Round {round_id} {status.name}: intent={final.intent_id}")

    def _release_schedules(self) -> None:
        self._arrivals.release()
        self._deadline.release()
        self._timeout.release()
        self._deadline_at = None

    # =========================================================================
    # Scheduled Callbacks
    # =========================================================================

    def _schedule_arrival(self, round_id: int) -> None:
        delay = self.rng.uniform(
            self.config.arrival_interval_min,
            self.config.arrival_interval_max,
        )
        self._arrivals.arm(delay, partial(self._on_arrival_due, round_id))

    def _on_arrival_due(self, round_id: int) -> None:
        with self._lock:
            if round_id != self._round or not self.is_bidding:
                return
            self._arrivals.fired()

            try:
                competition = self._handle.competition
                solver = self.registry.choose(self.rng)
                bid = self.generator.generate_bid(
                    solver.id,
                    solver.display_name,
                    competition.market_apy,
                    min_apy=competition.min_apy,
                    protocol=solver.protocol_tag,
                )
                self.on_bid_arrival(bid)
            except Exception:
                logger.exception(f"Simulated arrival failed in round {round_id}")
                if round_id == self._round and self.is_bidding:
                    self._close(CompetitionStatus.CANCELLED)
                raise

            # an observer may already have started the next round
            if round_id == self._round and self.is_bidding:
                self._schedule_arrival(round_id)

    def _arm_deadline(self, round_id: int, competition: Competition) -> None:
        deadline = self.policy.deadline(competition)
        if deadline is None or deadline == self._deadline_at:
            return
        self._deadline_at = deadline
        self._deadline.arm(
            deadline - self.timer.now(),
            partial(self._on_deadline, round_id),
        )

    def _on_deadline(self, round_id: int) -> None:
        with self._lock:
            if round_id != self._round or not self.is_bidding:
                return
            self._deadline.fired()
            self._deadline_at = None
            # the loop may run a timer up to one clock tick early
            if not self.check_termination():
                self._arm_deadline(round_id, self._handle.competition)

    def _on_timeout(self, round_id: int) -> None:
        with self._lock:
            if round_id != self._round or not self.is_bidding:
                return
            self._timeout.fired()
            self._close(CompetitionStatus.TIMEOUT)

    # =========================================================================
    # Scoped Use
    # =========================================================================

    def __enter__(self) -> "CompetitionController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
