"""
Delivery Contexts
=================

The scheduler's notion of "the interactive context": the single thread
(or event loop) on which the editor runs, on which debounce timers fire
and results are delivered.

Worker threads never call back into the editor directly; they post()
to the context and the context runs the callable on its own thread.

IMPLEMENTATIONS:
================
- PumpedContext:  explicit queue drained by run_pending() (tests, custom
                  UI loops that can call into us once per frame)
- AsyncioContext: an asyncio event loop
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple
import asyncio
import heapq
import itertools
import threading
import time

from .clock import Clock, MonotonicClock


class TimerHandle(ABC):
    """A pending call_later() that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        ...


class DeliveryContext(ABC):
    """Single-threaded execution context owned by the editor."""

    @abstractmethod
    def post(self, fn: Callable[[], None]) -> None:
        """Run fn on the context as soon as possible. Safe from any thread."""

    @abstractmethod
    def call_later(self, delay: float, fn: Callable[[], None]) -> TimerHandle:
        """Run fn on the context after delay seconds."""

    @abstractmethod
    def now(self) -> float:
        """Context time in seconds."""


# =============================================================================
# PUMPED CONTEXT
# =============================================================================

class ScheduledCall(TimerHandle):
    def __init__(self, due: float, fn: Callable[[], None]):
        self.due = due
        self.fn = fn
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class PumpedContext(DeliveryContext):
    """
    Context whose work runs only inside run_pending().

    post() and call_later() may be called from any thread; run_pending()
    must only be called from the thread that owns the context.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or MonotonicClock()
        self._cond = threading.Condition()
        self._posted: Deque[Callable[[], None]] = deque()
        self._timers: List[Tuple[float, int, ScheduledCall]] = []
        self._sequence = itertools.count()

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> float:
        return self._clock.now()

    def post(self, fn: Callable[[], None]) -> None:
        with self._cond:
            self._posted.append(fn)
            self._cond.notify_all()

    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self._clock.now() + max(0.0, delay), fn)
        with self._cond:
            heapq.heappush(self._timers, (call.due, next(self._sequence), call))
            self._cond.notify_all()
        return call

    def pending_timers(self) -> int:
        with self._cond:
            return sum(1 for _, _, call in self._timers if not call.cancelled)

    def next_deadline(self) -> Optional[float]:
        with self._cond:
            self._drop_cancelled()
            return self._timers[0][0] if self._timers else None

    def run_pending(self) -> int:
        """
        Run posted callables, then timers that are due, until neither is
        left. Returns how many callables ran.

        Exceptions raised by a callable propagate to the caller.
        """
        ran = 0
        while True:
            fn = self._next_ready()
            if fn is None:
                return ran
            fn()
            ran += 1

    def run_until(self, predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
        """
        Pump until predicate() holds or timeout (real seconds) elapses.

        Blocks between pumps waiting for work to be posted from workers.
        """
        deadline = time.monotonic() + timeout
        while True:
            self.run_pending()
            if predicate():
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            with self._cond:
                if not self._posted:
                    self._cond.wait(min(remaining, 0.05))

    def _next_ready(self) -> Optional[Callable[[], None]]:
        with self._cond:
            if self._posted:
                return self._posted.popleft()
            self._drop_cancelled()
            if self._timers and self._timers[0][0] <= self._clock.now():
                _, _, call = heapq.heappop(self._timers)
                return call.fn
            return None

    def _drop_cancelled(self) -> None:
        while self._timers and self._timers[0][2].cancelled:
            heapq.heappop(self._timers)


# =============================================================================
# ASYNCIO CONTEXT
# =============================================================================

class AsyncioContext(DeliveryContext):
    """
    Context backed by an asyncio event loop.

    call_later() must be called on the loop's thread (the usual case:
    the editor's handlers run on the loop). post() is thread-safe.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def now(self) -> float:
        return self._loop.time()

    def post(self, fn: Callable[[], None]) -> None:
        self._loop.call_soon_threadsafe(fn)

    def call_later(self, delay: float, fn: Callable[[], None]) -> TimerHandle:
        return _AsyncioTimer(self._loop.call_later(max(0.0, delay), fn))


class _AsyncioTimer(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


__all__ = [
    'AsyncioContext',
    'DeliveryContext',
    'PumpedContext',
    'ScheduledCall',
    'TimerHandle',
]
