"""
Analysis Result Contracts

These contracts define what crosses the engine boundary: the immutable
result handed to the presentation collaborator, and the snapshot/request
types the scheduler moves between the interactive and background contexts.

LIFECYCLE:
==========
- AnalysisResult is constructed once per analysis call and never mutated
- The engine keeps no reference to a result after returning it
- AnalysisRequest carries immutable snapshots only (text, outline tuple)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple
from enum import Enum

from .base import TextRange
from .outline import OutlineEntry


# =============================================================================
# FINDINGS
# =============================================================================

class SignatureCategory(Enum):
    """Coarse category of a tagged sentence."""
    DECISION = "decision"
    BELIEF = "belief"

    @property
    def opposite(self) -> SignatureCategory:
        if self is SignatureCategory.DECISION:
            return SignatureCategory.BELIEF
        return SignatureCategory.DECISION


class FindingKind(Enum):
    """
    Closed taxonomy of decision-belief loop findings.

    REPEATED_DECISION: the same decision is restated without resolution
    UNRESOLVED_BELIEF: the same belief is restated without being tested
    CONTRADICTION:     the statement recurs after the character reversed it
    """
    REPEATED_DECISION = "repeatedDecision"
    UNRESOLVED_BELIEF = "unresolvedBelief"
    CONTRADICTION = "contradiction"

    @staticmethod
    def for_repeat(category: SignatureCategory) -> FindingKind:
        if category is SignatureCategory.DECISION:
            return FindingKind.REPEATED_DECISION
        return FindingKind.UNRESOLVED_BELIEF


@dataclass(frozen=True)
class Finding:
    """
    One detected decision-belief loop occurrence.

    range is the sentence that closes the loop (the later occurrence);
    first_occurrence is the earlier sentence it pairs with. outline_context
    is one of the entries supplied to the analysis call, never a copy.
    """
    range: TextRange
    excerpt: str
    kind: FindingKind
    category: SignatureCategory
    first_occurrence: TextRange
    outline_context: Optional[OutlineEntry] = None

    def to_dict(self) -> dict:
        return {
            'range': self.range.to_dict(),
            'excerpt': self.excerpt,
            'kind': self.kind.value,
            'category': self.category.value,
            'first_occurrence': self.first_occurrence.to_dict(),
            'outline_context': self.outline_context.to_dict() if self.outline_context else None,
        }


# =============================================================================
# METRICS
# =============================================================================

@dataclass(frozen=True)
class TextMetrics:
    """
    Scalar statistics over a text. All counts are >= 0.

    The *_phrases tuples hold up to MetricsConfig.max_examples distinct
    lowercase examples, in order of first appearance.
    """
    word_count: int = 0
    sentence_count: int = 0
    paragraph_count: int = 0
    average_paragraph_length: int = 0
    long_paragraphs: Tuple[int, ...] = field(default_factory=tuple)
    sentence_lengths: Tuple[int, ...] = field(default_factory=tuple)
    sentence_variety_score: int = 0
    reading_grade: Optional[int] = None
    page_count: int = 0
    passive_voice_count: int = 0
    passive_voice_phrases: Tuple[str, ...] = field(default_factory=tuple)
    adverb_count: int = 0
    adverb_phrases: Tuple[str, ...] = field(default_factory=tuple)
    weak_verb_count: int = 0
    weak_verb_phrases: Tuple[str, ...] = field(default_factory=tuple)
    cliche_count: int = 0
    cliche_phrases: Tuple[str, ...] = field(default_factory=tuple)
    filter_word_count: int = 0
    filter_word_phrases: Tuple[str, ...] = field(default_factory=tuple)
    sensory_detail_count: int = 0
    missing_sensory_detail: bool = False
    dialogue_percentage: int = 0

    def to_dict(self) -> dict:
        return {
            'word_count': self.word_count,
            'sentence_count': self.sentence_count,
            'paragraph_count': self.paragraph_count,
            'average_paragraph_length': self.average_paragraph_length,
            'long_paragraphs': list(self.long_paragraphs),
            'sentence_lengths': list(self.sentence_lengths),
            'sentence_variety_score': self.sentence_variety_score,
            'reading_grade': self.reading_grade,
            'page_count': self.page_count,
            'passive_voice_count': self.passive_voice_count,
            'passive_voice_phrases': list(self.passive_voice_phrases),
            'adverb_count': self.adverb_count,
            'adverb_phrases': list(self.adverb_phrases),
            'weak_verb_count': self.weak_verb_count,
            'weak_verb_phrases': list(self.weak_verb_phrases),
            'cliche_count': self.cliche_count,
            'cliche_phrases': list(self.cliche_phrases),
            'filter_word_count': self.filter_word_count,
            'filter_word_phrases': list(self.filter_word_phrases),
            'sensory_detail_count': self.sensory_detail_count,
            'missing_sensory_detail': self.missing_sensory_detail,
            'dialogue_percentage': self.dialogue_percentage,
        }


# =============================================================================
# ENGINE OUTPUT
# =============================================================================

@dataclass(frozen=True)
class AnalysisResult:
    """
    Immutable output of one analysis call.

    An empty findings tuple is a legitimate "no issues found" answer,
    distinct from a result that has not been delivered yet.
    truncated is set when a soft cap limited how much was reported.
    """
    word_count: int
    sentence_count: int
    findings: Tuple[Finding, ...] = field(default_factory=tuple)
    metrics: TextMetrics = field(default_factory=TextMetrics)
    truncated: bool = False

    @property
    def has_findings(self) -> bool:
        return bool(self.findings)

    @staticmethod
    def empty() -> AnalysisResult:
        return AnalysisResult(word_count=0, sentence_count=0)

    def to_dict(self) -> dict:
        return {
            'word_count': self.word_count,
            'sentence_count': self.sentence_count,
            'findings': [f.to_dict() for f in self.findings],
            'metrics': self.metrics.to_dict(),
            'truncated': self.truncated,
        }


# =============================================================================
# SCHEDULER CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class DocumentSnapshot:
    """
    Point-in-time copy of what the editor shows.

    The outline is frozen into a tuple so the background context never
    shares a mutable sequence with the interactive one.
    """
    text: str
    outline: Optional[Tuple[OutlineEntry, ...]] = None

    @staticmethod
    def capture(text: str, outline: Optional[Sequence[OutlineEntry]] = None) -> DocumentSnapshot:
        return DocumentSnapshot(
            text=text,
            outline=tuple(outline) if outline is not None else None
        )


@dataclass(frozen=True)
class AnalysisRequest:
    """
    One scheduling cycle's unit of work.

    generation strictly increases per cycle; only the request matching the
    scheduler's latest issued generation may deliver its result.
    """
    text: str
    outline: Optional[Tuple[OutlineEntry, ...]]
    generation: int
    issued_at: float

    @staticmethod
    def from_snapshot(snapshot: DocumentSnapshot, generation: int, issued_at: float) -> AnalysisRequest:
        return AnalysisRequest(
            text=snapshot.text,
            outline=snapshot.outline,
            generation=generation,
            issued_at=issued_at
        )


@dataclass(frozen=True)
class AnalysisDelivery:
    """A result accepted as current and handed to the interactive context."""
    generation: int
    result: AnalysisResult
    duration_ms: float
