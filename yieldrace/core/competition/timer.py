"""
Timers - Clock and schedule-with-cancel primitives for the controller.

The controller never sleeps. It asks a Timer to call it back later and
keeps the returned handle in a ScheduleSlot so every exit path can
release it.

Two implementations:
- AsyncioTimer: wall clock, backed by the running event loop
- VirtualTimer: manually advanced clock for simulations and tests
"""

import asyncio
import heapq
import itertools
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from yieldrace.utils.logger import get_logger

logger = get_logger("timer")


# =============================================================================
# Interfaces
# =============================================================================


class ScheduleHandle:
    """A pending callback that can be cancelled."""

    def cancel(self) -> None:
        raise NotImplementedError

    @property
    def cancelled(self) -> bool:
        raise NotImplementedError


class Timer:
    """Monotonic clock plus one-shot delayed callbacks."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduleHandle:
        raise NotImplementedError


# =============================================================================
# Asyncio Timer
# =============================================================================


class _AsyncioHandle(ScheduleHandle):
    """Handle whose loop TimerHandle may be created after it is returned."""

    def __init__(self, timer: "AsyncioTimer"):
        self._timer = timer
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        self._lock = threading.Lock()

    def _attach(self, handle: asyncio.TimerHandle) -> None:
        with self._lock:
            if self._cancelled:
                handle.cancel()
                return
            self._handle = handle

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handle = self._handle
        if handle is not None:
            self._timer.run_on_loop(handle.cancel)

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioTimer(Timer):
    """
    Timer backed by an asyncio event loop.

    The loop is taken from the constructor argument, or captured the
    first time the timer is used inside a running loop. After that,
    scheduling and cancelling may happen from any thread: calls made off
    the loop thread are handed to the loop with call_soon_threadsafe.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                raise RuntimeError(
                    "AsyncioTimer has no event loop; pass one or use it "
                    "from inside a running loop first"
                ) from None
        return self._loop

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def run_on_loop(self, callback: Callable[[], None]) -> None:
        """Run callback now if on the loop thread, otherwise hand it to the loop."""
        if self._on_loop_thread():
            callback()
        else:
            self.loop.call_soon_threadsafe(callback)

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduleHandle:
        handle = _AsyncioHandle(self)
        loop = self.loop
        when = loop.time() + max(delay, 0.0)
        self.run_on_loop(lambda: handle._attach(loop.call_at(when, callback)))
        return handle


# =============================================================================
# Virtual Timer
# =============================================================================


@dataclass
class _VirtualEntry(ScheduleHandle):
    when: float
    callback: Callable[[], None]
    _cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VirtualTimer(Timer):
    """
    Timer with a manually advanced clock.

    Callbacks fire in due-time order, ties in scheduling order, while
    advance() or run_until_idle() moves the clock forward.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[tuple] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduleHandle:
        entry = _VirtualEntry(when=self._now + max(delay, 0.0), callback=callback)
        with self._lock:
            heapq.heappush(self._queue, (entry.when, next(self._seq), entry))
        return entry

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks not yet fired or cancelled."""
        with self._lock:
            return sum(1 for _, _, e in self._queue if not e.cancelled)

    def _pop_due(self, until: float) -> Optional[_VirtualEntry]:
        with self._lock:
            while self._queue:
                when, _, entry = self._queue[0]
                if when > until:
                    return None
                heapq.heappop(self._queue)
                if not entry.cancelled:
                    return entry
            return None

    def advance(self, delta: float) -> int:
        """
        Move the clock forward, firing every callback that comes due.

        Returns:
            Number of callbacks fired
        """
        target = self._now + delta
        fired = 0
        while True:
            entry = self._pop_due(target)
            if entry is None:
                break
            self._now = max(self._now, entry.when)
            entry.callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit: int = 10_000) -> int:
        """
        Fire callbacks until none remain.

        Args:
            limit: Safety bound on callbacks fired

        Returns:
            Number of callbacks fired

        Raises:
            RuntimeError: If the limit is reached with work still queued
        """
        fired = 0
        while fired < limit:
            entry = self._pop_due(float("inf"))
            if entry is None:
                return fired
            self._now = max(self._now, entry.when)
            entry.callback()
            fired += 1
        raise RuntimeError(f"VirtualTimer still busy after {limit} callbacks")


# =============================================================================
# Schedule Slot
# =============================================================================


class ScheduleSlot:
    """
    Holder for at most one pending callback.

    Arming replaces (and cancels) the previous callback. Releasing
    cancels whatever is pending; a released slot can be armed again.
    """

    def __init__(self, timer: Timer, name: str):
        self.timer = timer
        self.name = name
        self._handle: Optional[ScheduleHandle] = None

    @property
    def active(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.release()
        self._handle = self.timer.call_later(delay, callback)

    def fired(self) -> None:
        """Forget the handle after its callback ran."""
        self._handle = None

    def release(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            logger.debug(f"Released schedule slot {self.name}")
            self._handle = None
