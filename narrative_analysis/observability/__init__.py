"""
Observability & Audit Layer

RESPONSIBILITY: Audit trail and metrics for analysis scheduling
ALLOWED INPUTS: Scheduler lifecycle events
OUTPUTS: AuditLog, MetricsCollector, audit report

WHAT THIS LAYER MUST NOT DO:
============================
- Modify scheduler behavior
- Filter or interpret events (only record them)
- Make decisions based on logged data
- Block other layer operations beyond a short append

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable records (generations, Error, AnalysisDelivery)
- Append-only: nothing recorded is ever modified or removed
- Provides read-only copies of logs and metrics

Collectors are safe to append to from any thread; the scheduler records
mostly from the interactive context but timing is measured on workers.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from enum import Enum
import threading

from ..contracts.base import Error, Timestamp
from ..contracts.results import AnalysisDelivery


# =============================================================================
# AUDIT LOG
# =============================================================================

class AuditEventType(Enum):
    """Scheduler lifecycle events."""
    SCHEDULED = "scheduled"
    STARTED = "started"
    DELIVERED = "delivered"
    DISCARDED = "discarded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    sequence: int
    event_type: AuditEventType
    generation: int
    timestamp: Timestamp
    error: Optional[Error] = None
    details: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def detail(self, key: str) -> Optional[str]:
        for k, v in self.details:
            if k == key:
                return v
        return None


class AuditLog:
    """
    Append-only audit log.

    Entries are numbered in the order they were recorded.
    """

    def __init__(self):
        self._entries: List[AuditLogEntry] = []
        self._lock = threading.Lock()

    def record(
        self,
        event_type: AuditEventType,
        generation: int,
        error: Optional[Error] = None,
        **details: object
    ) -> AuditLogEntry:
        with self._lock:
            entry = AuditLogEntry(
                sequence=len(self._entries),
                event_type=event_type,
                generation=generation,
                timestamp=Timestamp.now(),
                error=error,
                details=tuple(sorted((k, str(v)) for k, v in details.items()))
            )
            self._entries.append(entry)
        return entry

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None,
        generation: Optional[int] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        with self._lock:
            entries = list(self._entries)

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        if generation is not None:
            entries = [e for e in entries if e.generation == generation]

        return entries

    @property
    def entry_count(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass(frozen=True)
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Append-only time series of metric points.

    Counters record 1 per event; timings record milliseconds.
    """

    def __init__(self):
        self._metrics: Dict[str, List[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._lock = threading.Lock()
        self._register_default_metrics()

    def _register_default_metrics(self):
        defaults = [
            MetricDefinition(
                name="analysis_duration_ms",
                metric_type=MetricType.TIMING,
                description="Engine time per analysis cycle in milliseconds"
            ),
            MetricDefinition(
                name="deliveries_total",
                metric_type=MetricType.COUNTER,
                description="Results delivered to callbacks"
            ),
            MetricDefinition(
                name="stale_results_total",
                metric_type=MetricType.COUNTER,
                description="Results discarded because a newer generation was issued"
            ),
            MetricDefinition(
                name="findings_total",
                metric_type=MetricType.GAUGE,
                description="Findings in the most recently delivered result",
                labels=("kind",)
            ),
            MetricDefinition(
                name="failures_total",
                metric_type=MetricType.COUNTER,
                description="Snapshot, analysis or callback failures",
                labels=("code",)
            ),
        ]

        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        with self._lock:
            self._definitions[definition.name] = definition
            self._metrics.setdefault(definition.name, [])

    def get_definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        label_tuple = tuple(sorted(labels.items())) if labels else ()

        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=label_tuple
        )
        with self._lock:
            self._metrics.setdefault(metric_name, []).append(point)

    def get_metric(
        self,
        metric_name: str,
        labels: Optional[Dict[str, str]] = None
    ) -> List[MetricPoint]:
        """Get metric data points, optionally only those carrying labels."""
        with self._lock:
            points = list(self._metrics.get(metric_name, []))

        if labels:
            wanted = set(labels.items())
            points = [p for p in points if wanted <= set(p.labels)]

        return points

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        """Get the latest value for a metric."""
        points = self.get_metric(metric_name)
        return points[-1] if points else None

    def compute_aggregates(
        self,
        metric_name: str,
        labels: Optional[Dict[str, str]] = None
    ) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        points = self.get_metric(metric_name, labels)

        if not points:
            return {}

        values = [p.value for p in points]

        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }


# =============================================================================
# SCHEDULER OBSERVER (Orchestrates audit + metrics)
# =============================================================================

class SchedulerObserver:
    """
    Records one scheduler's lifecycle.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Every method is a pure append
    """

    def __init__(
        self,
        audit: Optional[AuditLog] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._audit = audit or AuditLog()
        self._metrics = metrics or MetricsCollector()

    @property
    def audit(self) -> AuditLog:
        return self._audit

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def scheduled(self, generation: int, quiet_period: float):
        self._audit.record(AuditEventType.SCHEDULED, generation, quiet_period=quiet_period)

    def started(self, generation: int, text_length: int):
        self._audit.record(AuditEventType.STARTED, generation, text_length=text_length)

    def timed(self, duration_ms: float):
        self._metrics.record("analysis_duration_ms", duration_ms)

    def delivered(self, delivery: AnalysisDelivery):
        result = delivery.result
        self._audit.record(
            AuditEventType.DELIVERED,
            delivery.generation,
            findings=len(result.findings),
            truncated=result.truncated
        )
        self._metrics.record("deliveries_total", 1)
        counts: Dict[str, int] = {}
        for finding in result.findings:
            counts[finding.kind.value] = counts.get(finding.kind.value, 0) + 1
        for kind, count in sorted(counts.items()):
            self._metrics.record("findings_total", count, {"kind": kind})

    def discarded(self, generation: int, latest: int, error: Error):
        self._audit.record(AuditEventType.DISCARDED, generation, error=error, latest=latest)
        self._metrics.record("stale_results_total", 1)

    def cancelled(self, generation: int):
        self._audit.record(AuditEventType.CANCELLED, generation)

    def failed(self, generation: int, error: Error):
        self._audit.record(AuditEventType.FAILED, generation, error=error)
        self._metrics.record("failures_total", 1, {"code": error.code.name})

    def generate_report(self) -> Dict:
        """Summary of everything recorded so far."""
        entries = self._audit.get_entries()

        by_type: Dict[str, int] = {}
        for entry in entries:
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1

        return {
            'total_entries': len(entries),
            'by_event_type': by_type,
            'analysis_duration_ms': self._metrics.compute_aggregates("analysis_duration_ms"),
            'deliveries': len(self._metrics.get_metric("deliveries_total")),
            'stale_results': len(self._metrics.get_metric("stale_results_total")),
            'generated_at': Timestamp.now()
        }


__all__ = [
    'AuditEventType',
    'AuditLog',
    'AuditLogEntry',
    'MetricDefinition',
    'MetricPoint',
    'MetricType',
    'MetricsCollector',
    'SchedulerObserver',
]
