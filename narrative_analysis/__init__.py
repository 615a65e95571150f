"""
Narrative Analysis Engine

Manuscript statistics and decision-belief loop detection for a writing
editor, plus the scheduler that runs them off the interactive thread.
Each layer communicates only through the immutable contracts.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Responsibility: Immutable data crossing layer boundaries
   - Outputs: OutlineEntry, TextRange, Finding, TextMetrics, AnalysisResult

2. TEXT METRICS (metrics/, text/)
   - Responsibility: Word/sentence counts, derived and prose-style statistics
   - MUST NOT: Fail on any input, keep state between calls

3. DECISION-BELIEF LOOPS (loops/, outline/)
   - Responsibility: Detect repeated decisions, unresolved beliefs and
     contradictions; attribute findings to the outline
   - MUST NOT: Retain or synthesize outline entries, use randomness

4. ENGINE (engine.py)
   - Responsibility: analyze_text(text, outline?) -> AnalysisResult
   - MUST NOT: Hold state; it is called concurrently

5. SCHEDULING (scheduling/)
   - Responsibility: Debounce, background execution, stale-result discard
   - MUST NOT: Deliver from worker threads or deliver stale generations

6. OBSERVABILITY (observability/)
   - Responsibility: Audit log and metrics of scheduling
   - MUST NOT: Modify system behavior

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: all results are frozen dataclasses
- Deterministic: identical text and outline give identical findings
- Explicit errors: scheduler failures are recorded as Error data
"""

from .contracts import (
    AnalysisDelivery,
    AnalysisResult,
    DocumentSnapshot,
    Finding,
    FindingKind,
    OutlineEntry,
    SignatureCategory,
    TextMetrics,
    TextRange,
)
from .engine import AnalysisEngine, EngineConfig, analyze_text
from .loops import AnalyzerConfig, DecisionBeliefLoopAnalyzer, find_loops
from .loops.vocabulary import LoopVocabulary
from .metrics import MetricsConfig, StyleVocabulary, TextMetricsCalculator
from .outline import OutlineIndex, extract_outline
from .scheduling import (
    AnalysisScheduler,
    AsyncioContext,
    ManualClock,
    PumpedContext,
    SchedulerConfig,
    SchedulerState,
)
from .text import count_sentences, count_words

__version__ = "0.1.0"

__all__ = [
    'AnalysisDelivery',
    'AnalysisEngine',
    'AnalysisResult',
    'AnalysisScheduler',
    'AnalyzerConfig',
    'AsyncioContext',
    'DecisionBeliefLoopAnalyzer',
    'DocumentSnapshot',
    'EngineConfig',
    'Finding',
    'FindingKind',
    'LoopVocabulary',
    'ManualClock',
    'MetricsConfig',
    'OutlineEntry',
    'OutlineIndex',
    'PumpedContext',
    'SchedulerConfig',
    'SchedulerState',
    'SignatureCategory',
    'StyleVocabulary',
    'TextMetrics',
    'TextMetricsCalculator',
    'TextRange',
    'analyze_text',
    'count_sentences',
    'count_words',
    'extract_outline',
    'find_loops',
]
