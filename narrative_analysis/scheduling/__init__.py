"""
Analysis Scheduling Layer

RESPONSIBILITY: Decide WHEN the engine runs and WHICH result is shown
ALLOWED INPUTS: Change notifications, document snapshots
OUTPUTS: AnalysisDelivery records on the interactive context

WHAT THIS LAYER MUST NOT DO:
============================
- Run the engine on the interactive context
- Invoke result callbacks from worker threads
- Deliver a result whose generation is not the latest issued
- Interrupt a running analysis (stale work finishes and is discarded)

LIFECYCLE:
==========
    notify_changed() --> PENDING_DEBOUNCE --(quiet period)--> RUNNING
         ^                    |  (re-armed on every change)       |
         |                    v                                   v
         +------------- snapshot, generation += 1,      completion posted to
                        submit to executor              the context; delivered
                                                        only if still latest

Every cycle increments the generation. A result is delivered at most
once, in registration order, to every callback registered at delivery
time. Each document owns its own scheduler.
"""

from __future__ import annotations
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Set, Tuple, Union
import logging
import threading
import time

from ..contracts.base import Error, ErrorCode
from ..contracts.results import (
    AnalysisDelivery, AnalysisRequest, AnalysisResult, DocumentSnapshot
)
from ..engine import AnalysisEngine
from ..observability import SchedulerObserver
from .clock import Clock, ManualClock, MonotonicClock
from .context import AsyncioContext, DeliveryContext, PumpedContext, TimerHandle

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], Union[DocumentSnapshot, str]]
ResultCallback = Callable[[AnalysisDelivery], None]


# =============================================================================
# CONFIGURATION & STATE
# =============================================================================

@dataclass(frozen=True)
class SchedulerConfig:
    """
    quiet_period: seconds without changes before an analysis starts
    max_workers:  threads in the scheduler's own executor
    """
    quiet_period: float = 1.5
    max_workers: int = 1

    def __post_init__(self):
        if self.quiet_period < 0:
            raise ValueError("quiet_period must be >= 0")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")


class SchedulerState(Enum):
    IDLE = "idle"
    PENDING_DEBOUNCE = "pendingDebounce"
    RUNNING = "running"
    SUSPENDED = "suspended"


# =============================================================================
# SCHEDULER
# =============================================================================

class AnalysisScheduler:
    """
    Debounced, generation-checked background analysis for one document.

    Usage:
        context = PumpedContext()
        scheduler = AnalysisScheduler(lambda: DocumentSnapshot.capture(buffer.text), context)
        scheduler.on_result(lambda delivery: panel.show(delivery.result))
        ...
        scheduler.notify_changed()   # on every edit
        context.run_pending()        # from the editor's loop

    All public methods may be called from any thread. Result callbacks
    only ever run on the context. The snapshot provider runs on the
    context for debounced cycles, and on the calling thread for
    request_immediate_analysis().
    """

    def __init__(
        self,
        snapshot_provider: SnapshotProvider,
        context: DeliveryContext,
        engine: Optional[AnalysisEngine] = None,
        config: Optional[SchedulerConfig] = None,
        executor: Optional[Executor] = None,
        observer: Optional[SchedulerObserver] = None
    ):
        self._config = config or SchedulerConfig()
        self._snapshot_provider = snapshot_provider
        self._context = context
        self._engine = engine or AnalysisEngine()
        self._observer = observer or SchedulerObserver()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._config.max_workers,
            thread_name_prefix="narrative-analysis"
        )

        self._lock = threading.RLock()
        self._generation = 0
        self._last_delivered = 0
        self._timer: Optional[TimerHandle] = None
        self._timer_token = 0
        self._in_flight: Set[int] = set()
        self._suspended = False
        self._changed_while_suspended = False
        self._callbacks: List[ResultCallback] = []
        self._closed = False

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def observer(self) -> SchedulerObserver:
        return self._observer

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            if self._suspended:
                return SchedulerState.SUSPENDED
            if self._timer is not None:
                return SchedulerState.PENDING_DEBOUNCE
            if self._generation in self._in_flight:
                return SchedulerState.RUNNING
            return SchedulerState.IDLE

    @property
    def generation(self) -> int:
        """Latest issued generation (0 before the first cycle)."""
        with self._lock:
            return self._generation

    @property
    def last_delivered_generation(self) -> int:
        with self._lock:
            return self._last_delivered

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def on_result(self, callback: ResultCallback) -> Callable[[], None]:
        """Register callback; returns a function that unregisters it."""
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    def notify_changed(self) -> None:
        """Restart the quiet period. Does not cancel a running analysis."""
        with self._lock:
            self._ensure_open()
            if self._suspended:
                self._changed_while_suspended = True
                return
            self._arm_debounce()

    def request_immediate_analysis(self) -> Optional[int]:
        """
        Skip the quiet period and start a cycle now, taking the snapshot
        on the calling thread.

        Returns the issued generation, or None if no cycle started
        (suspended, or the snapshot provider failed).
        """
        with self._lock:
            self._ensure_open()
            self._cancel_timer()
            if self._suspended:
                self._changed_while_suspended = True
                return None
        return self._start_cycle()

    def cancel_pending(self) -> None:
        """Cancel the pending debounce and invalidate any running analysis."""
        with self._lock:
            self._cancel_timer()
            self._invalidate_in_flight()

    # -------------------------------------------------------------------------
    # Suspension (e.g. while the editor is laying out)
    # -------------------------------------------------------------------------

    def suspend(self) -> None:
        with self._lock:
            if self._suspended:
                return
            self._suspended = True
            if self._cancel_timer():
                self._changed_while_suspended = True
            if self._invalidate_in_flight():
                self._changed_while_suspended = True
            logger.debug("Analysis scheduling suspended")

    def resume(self) -> None:
        with self._lock:
            if not self._suspended:
                return
            self._suspended = False
            changed = self._changed_while_suspended
            self._changed_while_suspended = False
            logger.debug("Analysis scheduling resumed (changed=%s)", changed)
            if changed and not self._closed:
                self._arm_debounce()

    @contextmanager
    def suspended(self) -> Iterator[AnalysisScheduler]:
        self.suspend()
        try:
            yield self
        finally:
            self.resume()

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Cancel timers, invalidate running work, release the executor."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancel_timer()
            self._invalidate_in_flight()
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> AnalysisScheduler:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    # -------------------------------------------------------------------------
    # Internals (caller holds the lock unless noted)
    # -------------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("AnalysisScheduler has been shut down")

    def _arm_debounce(self) -> None:
        self._cancel_timer()
        self._timer_token += 1
        token = self._timer_token
        self._timer = self._context.call_later(
            self._config.quiet_period, lambda: self._debounce_fired(token)
        )
        self._observer.scheduled(self._generation, self._config.quiet_period)

    def _cancel_timer(self) -> bool:
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        self._timer_token += 1
        return True

    def _invalidate_in_flight(self) -> bool:
        if self._generation not in self._in_flight:
            return False
        cancelled = self._generation
        self._generation += 1
        self._observer.cancelled(cancelled)
        logger.debug("Invalidated running analysis generation %d", cancelled)
        return True

    def _debounce_fired(self, token: int) -> None:
        # Runs on the context.
        with self._lock:
            if token != self._timer_token or self._closed:
                return
            self._timer = None
        self._start_cycle()

    def _start_cycle(self) -> Optional[int]:
        # Lock not held while the provider runs: it is editor code.
        try:
            snapshot = self._snapshot_provider()
        except Exception as exc:
            logger.exception("Snapshot provider failed; analysis cycle skipped")
            self._observer.failed(
                self.generation,
                Error.create(ErrorCode.SNAPSHOT_FAILED, str(exc), exception=type(exc).__name__)
            )
            return None
        if isinstance(snapshot, str):
            snapshot = DocumentSnapshot.capture(snapshot)

        # Submit under the lock so shutdown() cannot close the executor
        # between the closed check and the submit.
        with self._lock:
            if self._closed:
                return None
            self._generation += 1
            generation = self._generation
            request = AnalysisRequest.from_snapshot(snapshot, generation, self._context.now())
            try:
                future = self._executor.submit(self._run, request)
            except RuntimeError as exc:
                logger.error("Executor rejected analysis generation %d: %s", generation, exc)
                self._observer.failed(
                    generation,
                    Error.create(ErrorCode.ANALYSIS_FAILED, str(exc), exception=type(exc).__name__)
                )
                return None
            self._in_flight.add(generation)

        self._observer.started(generation, len(request.text))
        logger.debug("Starting analysis generation %d (%d chars)", generation, len(request.text))

        future.add_done_callback(
            lambda f: self._context.post(lambda: self._complete(generation, f))
        )
        return generation

    def _run(self, request: AnalysisRequest) -> Tuple[AnalysisResult, float]:
        # Runs on a worker.
        started = time.perf_counter()
        result = self._engine.analyze_text(request.text, request.outline)
        duration_ms = (time.perf_counter() - started) * 1000.0
        self._observer.timed(duration_ms)
        return result, duration_ms

    def _complete(self, generation: int, future: Future) -> None:
        # Runs on the context.
        if future.cancelled():
            with self._lock:
                self._in_flight.discard(generation)
            return

        error = future.exception()
        with self._lock:
            self._in_flight.discard(generation)
            latest = self._generation
            current = error is None and generation == latest and not self._closed
            if current:
                self._last_delivered = generation
                callbacks = list(self._callbacks)

        if error is not None:
            logger.error("Analysis generation %d failed", generation, exc_info=error)
            self._observer.failed(
                generation,
                Error.create(ErrorCode.ANALYSIS_FAILED, str(error), exception=type(error).__name__)
            )
            return

        if not current:
            logger.debug("Discarding stale result for generation %d (latest %d)", generation, latest)
            self._observer.discarded(
                generation,
                latest,
                Error.create(ErrorCode.STALE_RESULT, "newer generation issued", generation=generation, latest=latest)
            )
            return

        result, duration_ms = future.result()
        delivery = AnalysisDelivery(generation=generation, result=result, duration_ms=duration_ms)
        self._observer.delivered(delivery)
        for callback in callbacks:
            try:
                callback(delivery)
            except Exception as exc:
                logger.exception("Result callback %r failed for generation %d", callback, generation)
                self._observer.failed(
                    generation,
                    Error.create(ErrorCode.CALLBACK_FAILED, str(exc), exception=type(exc).__name__)
                )


__all__ = [
    'AnalysisScheduler',
    'AsyncioContext',
    'Clock',
    'DeliveryContext',
    'ManualClock',
    'MonotonicClock',
    'PumpedContext',
    'SchedulerConfig',
    'SchedulerState',
    'TimerHandle',
]
