"""
Injectable Clocks
=================

All scheduler time reads go through a Clock so that debounce behavior
can be driven deterministically in tests.

- MonotonicClock: live time, immune to wall-clock adjustments
- ManualClock:    time only moves when advance() is called

Values are seconds as floats; only differences are meaningful.
"""

from __future__ import annotations
from typing import List
import threading
import time


class Clock:
    """Source of monotonic time in seconds."""

    def now(self) -> float:
        raise NotImplementedError


class MonotonicClock(Clock):
    def now(self) -> float:
        return time.monotonic()


class ManualClock(Clock):
    """
    Clock for deterministic execution.

    GUARANTEES:
    ===========
    - now() never changes between advance() calls
    - Time never goes backwards
    - Every advance is logged, so a test can assert on the sequence
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._advances: List[float] = []
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move time forward and return the new time."""
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._now += seconds
            self._advances.append(seconds)
            return self._now

    @property
    def advances(self) -> List[float]:
        with self._lock:
            return list(self._advances)


__all__ = ['Clock', 'ManualClock', 'MonotonicClock']
