"""
Clocks and deferred callbacks.

Nothing here starts a thread. The owner of a CallbackScheduler drives it by
calling run_due() whenever it handles an event or polls.
"""

import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class MonotonicClock:
    """Clock returning time.monotonic() seconds."""

    def __call__(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def set(self, now: float) -> None:
        self.now = float(now)


class ScheduledCall:
    """Handle for a pending callback."""

    def __init__(self, due: float, callback: Callable[[], None], name: str = ''):
        self.due = due
        self.callback = callback
        self.name = name
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> bool:
        """Cancel the call; returns False if it already fired."""
        if self.fired:
            return False
        self.cancelled = True
        return True

    def fire(self) -> None:
        """Run the callback now unless it already ran or was cancelled."""
        if not self.pending:
            return
        self.fired = True
        self.callback()

    def __repr__(self):
        state = 'cancelled' if self.cancelled else 'fired' if self.fired else 'pending'
        return f"ScheduledCall({self.name or self.callback!r}, due={self.due:.3f}, {state})"


class CallbackScheduler:
    """Cancellable one-shot callbacks evaluated against an injectable clock."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock or MonotonicClock()
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, callback: Callable[[], None],
                 name: str = '') -> ScheduledCall:
        """Schedule callback to run delay seconds from now."""
        call = ScheduledCall(self.clock() + max(0.0, delay), callback, name)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        logger.debug("Scheduled %s in %.3fs", name or callback, delay)
        return call

    def run_due(self, now: Optional[float] = None) -> int:
        """Fire every pending call due at or before now, in due order."""
        if now is None:
            now = self.clock()

        fired = 0
        while self._queue and self._queue[0][0] <= now:
            _, _, call = heapq.heappop(self._queue)
            if call.pending:
                call.fire()
                fired += 1
        return fired

    def cancel_all(self) -> None:
        for _, _, call in self._queue:
            call.cancel()
        self._queue.clear()

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, call in self._queue if call.pending)
