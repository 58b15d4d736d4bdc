"""
Timer Scheduling

The loader never blocks; every recurring pass (resolver tick, queue pump,
watchdog check) is a delayed callback handed to a Scheduler. Two bindings:

- EventLoopScheduler: asyncio's loop.call_later on the running loop
- ManualScheduler: virtual clock advanced by the host (frame loops, tests)

Both run callbacks on the thread that drives them; nothing here is thread-safe.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Tuple

from typing_extensions import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Anything returned by call_later that can be cancelled."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Cooperative timer source used by every loader component."""

    def time(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class EventLoopScheduler:
    """
    Scheduler backed by an asyncio event loop.

    The loop is looked up lazily so a Loader can be constructed before
    ``asyncio.run()`` starts; the first timer binds to the running loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def time(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class _ManualHandle:
    __slots__ = ("when", "callback", "cancelled")

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "scheduled"
        return f"_ManualHandle(when={self.when:.3f}, {state})"


class ManualScheduler:
    """
    Deterministic scheduler with a virtual clock.

    Callbacks run only inside advance()/run_until_idle(), in due-time order,
    ties broken by scheduling order. A callback scheduled while advancing runs
    in the same advance() call if it falls due before the target time.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._counter = itertools.count()
        self._heap: List[Tuple[float, int, _ManualHandle]] = []

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._heap, (handle.when, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) timers."""
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every timer that falls due. Returns callbacks run."""
        target = self._now + seconds
        ran = 0
        while self._heap and self._heap[0][0] <= target:
            when, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle.callback()
            ran += 1
        self._now = target
        return ran

    def run_until_idle(self, limit: float = 3600.0) -> int:
        """Run timers until none are left or the clock moved ``limit`` seconds."""
        deadline = self._now + limit
        ran = 0
        while True:
            live = [entry for entry in self._heap if not entry[2].cancelled]
            if not live:
                break
            next_when = min(entry[0] for entry in live)
            if next_when > deadline:
                logger.debug(f"ManualScheduler: stopping at {self._now:.3f}, timers still pending")
                break
            ran += self.advance(next_when - self._now)
        return ran
