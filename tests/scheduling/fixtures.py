"""
Scheduling Fixtures

Deterministic stand-ins for the pieces of the scheduler's environment.

RULES:
======
1. Time only moves when a test advances the ManualClock
2. Work only runs when a test says so (SynchronousExecutor runs it at
   submit, DeferredExecutor when run() is called, in any order)
3. Completions are only delivered when the test pumps the context
"""

from __future__ import annotations
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from narrative_analysis.contracts import AnalysisDelivery, DocumentSnapshot, OutlineEntry
from narrative_analysis.observability import SchedulerObserver
from narrative_analysis.scheduling import (
    AnalysisScheduler, ManualClock, PumpedContext, SchedulerConfig
)


class SynchronousExecutor(Executor):
    """Runs each submission immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0
        self.shut_down = False

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=True, **kwargs):
        self.shut_down = True


class DeferredExecutor(Executor):
    """Holds submissions until the test completes them."""

    def __init__(self):
        self.pending: List[Tuple[Future, Callable[[], object]]] = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, lambda: fn(*args, **kwargs)))
        return future

    def run(self, index: int = 0) -> None:
        future, call = self.pending.pop(index)
        try:
            future.set_result(call())
        except Exception as exc:
            future.set_exception(exc)

    def run_all(self) -> None:
        while self.pending:
            self.run(0)


@dataclass
class FakeDocument:
    """Mutable editor buffer; snapshot() is the scheduler's provider."""
    text: str = ""
    outline: Optional[List[OutlineEntry]] = None
    snapshots: int = 0

    def snapshot(self) -> DocumentSnapshot:
        self.snapshots += 1
        return DocumentSnapshot.capture(self.text, self.outline)

    def edit(self, text: str) -> None:
        self.text = text


class ExplodingEngine:
    def analyze_text(self, text, outline_entries=None):
        raise RuntimeError("engine bug")


@dataclass
class Harness:
    scheduler: AnalysisScheduler
    context: PumpedContext
    clock: ManualClock
    document: FakeDocument
    executor: Executor
    deliveries: List[AnalysisDelivery] = field(default_factory=list)

    @property
    def observer(self) -> SchedulerObserver:
        return self.scheduler.observer

    def advance(self, seconds: float) -> int:
        self.clock.advance(seconds)
        return self.context.run_pending()

    def delivered_generations(self) -> List[int]:
        return [d.generation for d in self.deliveries]


def make_harness(
    text: str = "He decided to leave. He decided to leave.",
    executor: Optional[Executor] = None,
    quiet_period: float = 1.5,
    engine=None,
) -> Harness:
    clock = ManualClock()
    context = PumpedContext(clock)
    document = FakeDocument(text=text)
    executor = executor or SynchronousExecutor()
    scheduler = AnalysisScheduler(
        document.snapshot,
        context,
        engine=engine,
        config=SchedulerConfig(quiet_period=quiet_period),
        executor=executor,
    )
    harness = Harness(scheduler, context, clock, document, executor)
    scheduler.on_result(harness.deliveries.append)
    return harness
