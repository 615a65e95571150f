"""
Analysis Scheduler Tests

Driven by a ManualClock and explicit executors so every interleaving is
reproducible; one threaded and one asyncio test exercise real contexts.

INVARIANTS:
===========
- Exactly one analysis per quiet period, using the latest snapshot
- Only the latest issued generation is ever delivered
- Callbacks run on the context, in registration order, isolated from
  each other's exceptions
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from narrative_analysis.contracts import ErrorCode, FindingKind, OutlineEntry
from narrative_analysis.engine import AnalysisEngine
from narrative_analysis.observability import AuditEventType
from narrative_analysis.scheduling import (
    AnalysisScheduler, AsyncioContext, ManualClock, PumpedContext,
    SchedulerConfig, SchedulerState
)
from tests.scheduling.fixtures import (
    DeferredExecutor, ExplodingEngine, SynchronousExecutor, make_harness
)


# =============================================================================
# DEBOUNCE
# =============================================================================

class TestDebounce:

    def test_initial_state(self):
        h = make_harness()
        assert h.scheduler.state is SchedulerState.IDLE
        assert h.scheduler.generation == 0
        assert h.scheduler.last_delivered_generation == 0

    def test_waits_for_quiet_period(self):
        h = make_harness()
        h.scheduler.notify_changed()
        assert h.scheduler.state is SchedulerState.PENDING_DEBOUNCE

        h.advance(1.0)
        assert h.document.snapshots == 0
        assert h.deliveries == []

        h.advance(0.5)
        assert h.document.snapshots == 1
        assert h.delivered_generations() == [1]
        assert h.scheduler.state is SchedulerState.IDLE
        assert h.scheduler.last_delivered_generation == 1

    def test_two_quick_notifications_run_once(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.advance(0.2)
        h.scheduler.notify_changed()

        # Past the first deadline, short of the second.
        h.advance(1.4)
        assert h.document.snapshots == 0

        h.advance(1.0)
        h.advance(10.0)
        assert h.document.snapshots == 1
        assert h.delivered_generations() == [1]

    def test_latest_snapshot_is_analyzed(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.document.edit("One two three.")
        h.advance(1.5)

        assert h.deliveries[0].result.word_count == 3

    def test_each_quiet_period_gets_its_own_cycle(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.advance(1.5)
        h.scheduler.notify_changed()
        h.advance(1.5)

        assert h.delivered_generations() == [1, 2]

    def test_notify_during_run_schedules_another_cycle(self):
        h = make_harness(executor=DeferredExecutor())
        assert h.scheduler.request_immediate_analysis() == 1
        assert h.scheduler.state is SchedulerState.RUNNING

        h.scheduler.notify_changed()
        assert h.scheduler.state is SchedulerState.PENDING_DEBOUNCE

        h.executor.run()
        h.context.run_pending()
        assert h.delivered_generations() == [1]

        h.advance(1.5)
        assert h.scheduler.state is SchedulerState.RUNNING
        h.executor.run()
        h.context.run_pending()
        assert h.delivered_generations() == [1, 2]

    def test_outline_snapshot_reaches_engine(self):
        h = make_harness(text="He decided to leave. Later, he decided to leave again.")
        chapter = OutlineEntry.create("Chapter 1", level=1, start=0, end=len(h.document.text))
        h.document.outline = [chapter]

        h.scheduler.request_immediate_analysis()
        h.context.run_pending()

        assert h.deliveries[0].result.findings[0].outline_context is chapter


# =============================================================================
# STALE RESULTS
# =============================================================================

class TestStaleResults:

    def test_out_of_order_completion_discards_older(self):
        h = make_harness(executor=DeferredExecutor())
        h.scheduler.request_immediate_analysis()
        h.document.edit("Newer text.")
        h.scheduler.request_immediate_analysis()

        h.executor.run(1)
        h.context.run_pending()
        h.executor.run(0)
        h.context.run_pending()

        assert h.delivered_generations() == [2]
        assert h.deliveries[0].result.word_count == 2
        assert h.scheduler.last_delivered_generation == 2
        assert len(h.observer.metrics.get_metric("stale_results_total")) == 1
        discarded = h.observer.audit.get_entries(AuditEventType.DISCARDED)
        assert [e.generation for e in discarded] == [1]
        assert discarded[0].error.code is ErrorCode.STALE_RESULT

    def test_in_order_completion_still_discards_superseded(self):
        h = make_harness(executor=DeferredExecutor())
        h.scheduler.request_immediate_analysis()
        h.scheduler.request_immediate_analysis()

        h.executor.run_all()
        h.context.run_pending()

        assert h.delivered_generations() == [2]

    def test_request_immediate_cancels_debounce(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.scheduler.request_immediate_analysis()
        h.context.run_pending()
        h.advance(5.0)

        assert h.document.snapshots == 1
        assert h.delivered_generations() == [1]


# =============================================================================
# CANCELLATION & SUSPENSION
# =============================================================================

class TestCancellation:

    def test_cancel_pending_drops_debounce(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.scheduler.cancel_pending()

        assert h.scheduler.state is SchedulerState.IDLE
        h.advance(5.0)
        assert h.document.snapshots == 0

    def test_cancel_pending_invalidates_running_analysis(self):
        h = make_harness(executor=DeferredExecutor())
        h.scheduler.request_immediate_analysis()
        h.scheduler.cancel_pending()

        assert h.scheduler.generation == 2
        assert h.scheduler.state is SchedulerState.IDLE

        h.executor.run()
        h.context.run_pending()
        assert h.deliveries == []
        cancelled = h.observer.audit.get_entries(AuditEventType.CANCELLED)
        assert [e.generation for e in cancelled] == [1]

    def test_cancel_when_idle_is_a_no_op(self):
        h = make_harness()
        h.scheduler.cancel_pending()
        assert h.scheduler.generation == 0


class TestSuspension:

    def test_changes_wait_for_resume(self):
        h = make_harness()
        h.scheduler.suspend()
        h.scheduler.notify_changed()
        assert h.scheduler.state is SchedulerState.SUSPENDED

        h.advance(5.0)
        assert h.document.snapshots == 0

        h.scheduler.resume()
        assert h.scheduler.state is SchedulerState.PENDING_DEBOUNCE
        h.advance(1.5)
        assert h.delivered_generations() == [1]

    def test_resume_without_changes_stays_idle(self):
        h = make_harness()
        h.scheduler.suspend()
        h.scheduler.resume()
        assert h.scheduler.state is SchedulerState.IDLE

    def test_suspend_carries_pending_debounce_over(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.scheduler.suspend()
        h.advance(5.0)
        assert h.document.snapshots == 0

        h.scheduler.resume()
        h.advance(1.5)
        assert h.delivered_generations() == [1]

    def test_suspend_invalidates_running_analysis(self):
        h = make_harness(executor=DeferredExecutor())
        h.scheduler.request_immediate_analysis()
        h.scheduler.suspend()
        h.executor.run()
        h.context.run_pending()
        assert h.deliveries == []

        h.scheduler.resume()
        assert h.scheduler.state is SchedulerState.PENDING_DEBOUNCE
        h.advance(1.5)
        h.executor.run()
        h.context.run_pending()
        assert h.delivered_generations() == [3]

    def test_immediate_request_while_suspended_is_deferred(self):
        h = make_harness()
        h.scheduler.suspend()
        assert h.scheduler.request_immediate_analysis() is None

        h.scheduler.resume()
        assert h.scheduler.state is SchedulerState.PENDING_DEBOUNCE

    def test_suspended_context_manager(self):
        h = make_harness()
        with h.scheduler.suspended():
            h.scheduler.notify_changed()
            assert h.scheduler.state is SchedulerState.SUSPENDED
        assert h.scheduler.state is SchedulerState.PENDING_DEBOUNCE


# =============================================================================
# CALLBACKS & FAILURES
# =============================================================================

class TestCallbacks:

    def test_registration_order_and_isolation(self, caplog):
        h = make_harness()
        order = []

        def failing(delivery):
            order.append("failing")
            raise RuntimeError("boom")

        h.scheduler.on_result(failing)
        h.scheduler.on_result(lambda delivery: order.append("second"))

        h.scheduler.request_immediate_analysis()
        with caplog.at_level(logging.ERROR, logger="narrative_analysis.scheduling"):
            h.context.run_pending()

        assert order == ["failing", "second"]
        assert len(h.deliveries) == 1
        assert "Result callback" in caplog.text
        failed = h.observer.audit.get_entries(AuditEventType.FAILED)
        assert [e.error.code for e in failed] == [ErrorCode.CALLBACK_FAILED]

    def test_unsubscribe(self):
        h = make_harness()
        received = []
        unsubscribe = h.scheduler.on_result(received.append)
        unsubscribe()
        unsubscribe()

        h.scheduler.request_immediate_analysis()
        h.context.run_pending()

        assert received == []
        assert len(h.deliveries) == 1

    def test_delivery_carries_result(self):
        h = make_harness()
        h.scheduler.request_immediate_analysis()
        h.context.run_pending()

        delivery = h.deliveries[0]
        assert delivery.generation == 1
        assert delivery.duration_ms >= 0
        assert [f.kind for f in delivery.result.findings] == [FindingKind.REPEATED_DECISION]

    def test_nothing_delivered_until_context_is_pumped(self):
        h = make_harness()
        h.scheduler.request_immediate_analysis()
        assert h.deliveries == []
        h.context.run_pending()
        assert len(h.deliveries) == 1


class TestFailures:

    def test_snapshot_failure_is_recorded(self, caplog):
        def provider():
            raise OSError("buffer gone")

        executor = SynchronousExecutor()
        scheduler = AnalysisScheduler(provider, PumpedContext(ManualClock()), executor=executor)

        with caplog.at_level(logging.ERROR, logger="narrative_analysis.scheduling"):
            assert scheduler.request_immediate_analysis() is None

        assert scheduler.generation == 0
        assert executor.submitted == 0
        failed = scheduler.observer.audit.get_entries(AuditEventType.FAILED)
        assert failed[0].error.code is ErrorCode.SNAPSHOT_FAILED
        assert "Snapshot provider failed" in caplog.text

    def test_analysis_failure_is_recorded(self):
        h = make_harness(engine=ExplodingEngine())
        h.scheduler.request_immediate_analysis()
        h.context.run_pending()

        assert h.deliveries == []
        assert h.scheduler.state is SchedulerState.IDLE
        assert h.scheduler.last_delivered_generation == 0
        failed = h.observer.audit.get_entries(AuditEventType.FAILED)
        assert failed[0].error.code is ErrorCode.ANALYSIS_FAILED
        assert failed[0].error.message == "engine bug"

    def test_executor_rejecting_work_leaves_scheduler_idle(self, caplog):
        pool = ThreadPoolExecutor(max_workers=1)
        pool.shutdown()
        scheduler = AnalysisScheduler(lambda: "One two.", PumpedContext(ManualClock()), executor=pool)

        with caplog.at_level(logging.ERROR, logger="narrative_analysis.scheduling"):
            assert scheduler.request_immediate_analysis() is None

        assert scheduler.state is SchedulerState.IDLE
        failed = scheduler.observer.audit.get_entries(AuditEventType.FAILED)
        assert [e.error.code for e in failed] == [ErrorCode.ANALYSIS_FAILED]
        assert scheduler.observer.audit.get_entries(AuditEventType.STARTED) == []
        assert "Executor rejected" in caplog.text

    def test_plain_string_snapshot_is_accepted(self):
        context = PumpedContext(ManualClock())
        scheduler = AnalysisScheduler(lambda: "One two.", context, executor=SynchronousExecutor())
        received = []
        scheduler.on_result(received.append)

        scheduler.request_immediate_analysis()
        context.run_pending()

        assert received[0].result.word_count == 2


class TestSnapshotThread:

    def test_immediate_request_snapshots_on_calling_thread(self):
        context = PumpedContext(ManualClock())
        provider_threads = []
        callback_threads = []

        def provider():
            provider_threads.append(threading.get_ident())
            return "He decided to leave."

        scheduler = AnalysisScheduler(provider, context, executor=SynchronousExecutor())
        scheduler.on_result(lambda delivery: callback_threads.append(threading.get_ident()))

        worker = threading.Thread(target=scheduler.request_immediate_analysis)
        worker.start()
        worker.join()
        context.run_pending()

        assert provider_threads == [worker.ident]
        assert callback_threads == [threading.get_ident()]

    def test_debounced_cycle_snapshots_on_context(self):
        clock = ManualClock()
        context = PumpedContext(clock)
        provider_threads = []

        def provider():
            provider_threads.append(threading.get_ident())
            return "He decided to leave."

        scheduler = AnalysisScheduler(provider, context, executor=SynchronousExecutor())
        worker = threading.Thread(target=scheduler.notify_changed)
        worker.start()
        worker.join()

        clock.advance(scheduler.config.quiet_period)
        context.run_pending()

        assert provider_threads == [threading.get_ident()]


class TestShutdown:

    def test_operations_after_shutdown_raise(self):
        h = make_harness()
        h.scheduler.shutdown()
        h.scheduler.shutdown()

        with pytest.raises(RuntimeError):
            h.scheduler.notify_changed()
        with pytest.raises(RuntimeError):
            h.scheduler.request_immediate_analysis()

    def test_shutdown_cancels_debounce(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.scheduler.shutdown()
        h.advance(5.0)
        assert h.document.snapshots == 0

    def test_injected_executor_is_left_running(self):
        h = make_harness()
        h.scheduler.shutdown()
        assert not h.executor.shut_down

    def test_context_manager_shuts_down(self):
        with AnalysisScheduler(lambda: "", PumpedContext(ManualClock())) as scheduler:
            pass
        with pytest.raises(RuntimeError):
            scheduler.notify_changed()


class TestObservability:

    def test_lifecycle_is_audited(self):
        h = make_harness()
        h.scheduler.notify_changed()
        h.advance(1.5)

        report = h.observer.generate_report()
        assert report['by_event_type'] == {'scheduled': 1, 'started': 1, 'delivered': 1}
        assert report['deliveries'] == 1
        assert report['analysis_duration_ms']['count'] == 1

    def test_findings_counted_by_kind(self):
        h = make_harness()
        h.scheduler.request_immediate_analysis()
        h.context.run_pending()

        points = h.observer.metrics.get_metric("findings_total", {'kind': "repeatedDecision"})
        assert [p.value for p in points] == [1]


class TestConfig:

    @pytest.mark.parametrize("kwargs", [
        {'quiet_period': -0.1},
        {'max_workers': 0},
    ])
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            SchedulerConfig(**kwargs)


# =============================================================================
# REAL CONTEXTS
# =============================================================================

class TestThreadedDelivery:

    def test_callbacks_run_on_owning_thread(self):
        worker_threads = []

        class RecordingEngine(AnalysisEngine):
            def analyze_text(self, text, outline_entries=None):
                worker_threads.append(threading.current_thread().name)
                return super().analyze_text(text, outline_entries)

        context = PumpedContext()
        scheduler = AnalysisScheduler(
            lambda: "He decided to leave. He decided to leave.",
            context,
            engine=RecordingEngine(),
            config=SchedulerConfig(quiet_period=0.01),
        )
        callback_threads = []
        scheduler.on_result(lambda delivery: callback_threads.append(threading.get_ident()))
        try:
            scheduler.notify_changed()
            assert context.run_until(lambda: bool(callback_threads), timeout=5.0)
        finally:
            scheduler.shutdown()

        assert callback_threads == [threading.get_ident()]
        assert worker_threads[0].startswith("narrative-analysis")

    def test_burst_of_edits_delivers_once(self):
        context = PumpedContext()
        scheduler = AnalysisScheduler(
            lambda: "A burst.", context, config=SchedulerConfig(quiet_period=0.05)
        )
        deliveries = []
        scheduler.on_result(deliveries.append)
        try:
            for _ in range(20):
                scheduler.notify_changed()
            assert context.run_until(lambda: bool(deliveries), timeout=5.0)
            context.run_until(lambda: False, timeout=0.2)
        finally:
            scheduler.shutdown()

        assert [d.generation for d in deliveries] == [1]


class TestAsyncioDelivery:

    def test_delivers_on_event_loop(self):
        async def scenario():
            loop = asyncio.get_running_loop()
            delivered = loop.create_future()
            scheduler = AnalysisScheduler(
                lambda: "He decided to leave. He decided to leave.",
                AsyncioContext(),
                config=SchedulerConfig(quiet_period=0.01),
            )

            def on_result(delivery):
                if not delivered.done():
                    delivered.set_result((delivery, threading.get_ident()))

            scheduler.on_result(on_result)
            try:
                scheduler.notify_changed()
                return await asyncio.wait_for(delivered, timeout=5.0)
            finally:
                scheduler.shutdown()

        delivery, thread_id = asyncio.run(scenario())

        assert thread_id == threading.get_ident()
        assert delivery.generation == 1
        assert len(delivery.result.findings) == 1
