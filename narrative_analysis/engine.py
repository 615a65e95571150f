"""
Analysis Engine
===============

Composes the metrics calculator and the loop analyzer into the single
entry point the scheduler (and any other caller) uses.

The engine holds configuration and compiled patterns only. Nothing it
computes is cached or retained, so one engine may serve any number of
concurrent callers without synchronization.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Union

from .contracts.outline import OutlineEntry
from .contracts.results import AnalysisResult
from .loops import AnalyzerConfig, DecisionBeliefLoopAnalyzer
from .metrics import MetricsConfig, TextMetricsCalculator
from .text import count_words


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine configuration.

    max_analysis_length: characters analyzed for sentences and loops;
    longer text is cut to this prefix and the result marked truncated.
    The word count always covers the full text.
    """
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    max_analysis_length: int = 500_000

    def __post_init__(self):
        if self.max_analysis_length < 1:
            raise ValueError("max_analysis_length must be >= 1")


class AnalysisEngine:
    """
    (text, outline?) -> AnalysisResult.

    Usage:
        engine = AnalysisEngine()
        result = engine.analyze_text(manuscript, outline_entries=outline)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._metrics = TextMetricsCalculator(self._config.metrics)
        self._loops = DecisionBeliefLoopAnalyzer(self._config.analyzer)

    @property
    def config(self) -> EngineConfig:
        return self._config

    def analyze_text(
        self,
        text: Union[str, bytes],
        outline_entries: Optional[Sequence[OutlineEntry]] = None
    ) -> AnalysisResult:
        if isinstance(text, bytes):
            text = text.decode('utf-8', errors='replace')
        if not text:
            return AnalysisResult.empty()

        limit = self._config.max_analysis_length
        analyzed = text[:limit]
        cut = len(text) > limit

        metrics = self._metrics.compute(analyzed)
        if cut:
            metrics = replace(metrics, word_count=count_words(text))
        loops = self._loops.analyze(analyzed, outline_entries)

        return AnalysisResult(
            word_count=metrics.word_count,
            sentence_count=metrics.sentence_count,
            findings=loops.findings,
            metrics=metrics,
            truncated=cut or loops.truncated,
        )


def analyze_text(
    text: Union[str, bytes],
    outline_entries: Optional[Sequence[OutlineEntry]] = None,
    config: Optional[EngineConfig] = None
) -> AnalysisResult:
    """One-shot analysis with a fresh engine; nothing is shared between calls."""
    return AnalysisEngine(config).analyze_text(text, outline_entries)


__all__ = ['AnalysisEngine', 'EngineConfig', 'analyze_text']
