"""
Decision-Belief Loop Layer

RESPONSIBILITY: Detect decisions and beliefs that recur without resolution
ALLOWED INPUTS: Text plus an optional ordered outline
OUTPUTS: Findings in document order (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Fail on any input: empty or non-linguistic text yields zero findings
- Keep state between calls (all scan state is local to analyze())
- Mutate or retain the outline it was given
- Use randomness or wall-clock time

ALGORITHM:
==========
1. Segment the text into sentences (same boundary rule as the metrics)
2. Tag each sentence: signature (decision/belief), reversal, or nothing
3. Scan in order keeping signature -> most recent sentence bearing it
4. On recurrence of a signature:
   - reversal by the same subject in between   -> CONTRADICTION
   - opposite-category statement by the same
     subject in between (the loop was resolved) -> no finding
   - otherwise                                 -> REPEATED_DECISION /
                                                  UNRESOLVED_BELIEF
   A contradiction drops the signature from tracking, so its next
   recurrence starts fresh. Otherwise the recurrence becomes the new
   anchor.
5. Attribute each finding to the outline entry containing its start

SOFT CAPS (degrade completeness, never fail):
- max_findings: stop reporting after this many findings
- max_tracked_signatures: least recently seen signatures are evicted
Either cap sets LoopAnalysis.truncated.
"""

from __future__ import annotations
from bisect import bisect_right
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..contracts.outline import OutlineEntry
from ..contracts.results import Finding, FindingKind, SignatureCategory
from ..outline import OutlineIndex
from ..text import Sentence, segment_sentences
from .signatures import Signature, SignatureExtractor, SentenceTag
from .vocabulary import DEFAULT_VOCABULARY, LoopVocabulary

logger = logging.getLogger(__name__)

# Bucket that holds every subject's sentences.
_ANY_SUBJECT = "*"


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class AnalyzerConfig:
    """
    Configuration for loop detection.

    vocabulary:             cue phrases (replaceable, see LoopVocabulary)
    excerpt_length:         max characters of a finding's excerpt
    max_findings:           soft cap on findings per analysis
    max_tracked_signatures: soft cap on the signature table
    """
    vocabulary: LoopVocabulary = DEFAULT_VOCABULARY
    excerpt_length: int = 120
    max_findings: int = 500
    max_tracked_signatures: int = 10_000

    def __post_init__(self):
        if self.excerpt_length < 1:
            raise ValueError("excerpt_length must be >= 1")
        if self.max_findings < 0:
            raise ValueError("max_findings must be >= 0")
        if self.max_tracked_signatures < 1:
            raise ValueError("max_tracked_signatures must be >= 1")


@dataclass(frozen=True)
class LoopAnalysis:
    """Findings of one analyze() call."""
    findings: Tuple[Finding, ...] = field(default_factory=tuple)
    truncated: bool = False


# =============================================================================
# SCAN STATE (local to one call)
# =============================================================================

class _SentenceIndex:
    """
    Sentence indexes bucketed by key, each bucket ascending.

    Answers "is there an entry strictly between lo and hi?" in O(log n).
    """

    def __init__(self):
        self._buckets: Dict[object, List[int]] = defaultdict(list)

    def add(self, key: object, index: int) -> None:
        self._buckets[key].append(index)

    def any_between(self, keys: Sequence[object], lo: int, hi: int) -> bool:
        for key in keys:
            bucket = self._buckets.get(key)
            if not bucket:
                continue
            pos = bisect_right(bucket, lo)
            if pos < len(bucket) and bucket[pos] < hi:
                return True
        return False


def _subject_keys(subject: str) -> Tuple[str, ...]:
    # An unknown subject matches everyone; a known one matches itself and
    # statements whose subject could not be determined.
    if not subject:
        return (_ANY_SUBJECT,)
    return (subject, "")


# =============================================================================
# ANALYZER
# =============================================================================

class DecisionBeliefLoopAnalyzer:
    """
    Pure (text, outline?) -> findings function object.

    The compiled vocabulary is the only state and it is read-only, so a
    single analyzer can be shared by concurrent callers.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self._config = config or AnalyzerConfig()
        self._extractor = SignatureExtractor(self._config.vocabulary)

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    def analyze(
        self,
        text: str,
        outline_entries: Optional[Sequence[OutlineEntry]] = None
    ) -> LoopAnalysis:
        if not text:
            return LoopAnalysis()

        index = OutlineIndex(outline_entries) if outline_entries else None
        anchors: "OrderedDict[tuple, Sentence]" = OrderedDict()
        reversals = _SentenceIndex()
        statements = _SentenceIndex()
        findings: List[Finding] = []
        truncated = False

        for sentence in segment_sentences(text):
            tag: SentenceTag = self._extractor.tag(sentence.text)

            if tag.is_reversal:
                reversals.add(tag.reversal_subject, sentence.index)
                reversals.add(_ANY_SUBJECT, sentence.index)
                continue

            signature = tag.signature
            if signature is None:
                continue

            first = anchors.pop(signature.key, None)
            kind = self._classify(signature, first, sentence, reversals, statements)

            statements.add((signature.category, signature.subject), sentence.index)
            statements.add((signature.category, _ANY_SUBJECT), sentence.index)
            if kind is not FindingKind.CONTRADICTION:
                anchors[signature.key] = sentence
                if len(anchors) > self._config.max_tracked_signatures:
                    anchors.popitem(last=False)
                    truncated = True

            if kind is None:
                continue
            if len(findings) >= self._config.max_findings:
                truncated = True
                break
            findings.append(self._finding(kind, signature, first, sentence, index))

        if truncated:
            logger.debug(
                "Loop analysis truncated at %d findings / %d signatures",
                len(findings), len(anchors)
            )
        return LoopAnalysis(findings=tuple(findings), truncated=truncated)

    def _classify(
        self,
        signature: Signature,
        anchor: Optional[Sentence],
        sentence: Sentence,
        reversals: _SentenceIndex,
        statements: _SentenceIndex,
    ) -> Optional[FindingKind]:
        if anchor is None:
            return None
        subjects = _subject_keys(signature.subject)
        if reversals.any_between(subjects, anchor.index, sentence.index):
            return FindingKind.CONTRADICTION
        opposite = signature.category.opposite
        if statements.any_between([(opposite, s) for s in subjects], anchor.index, sentence.index):
            return None
        return FindingKind.for_repeat(signature.category)

    def _finding(
        self,
        kind: FindingKind,
        signature: Signature,
        first: Sentence,
        sentence: Sentence,
        index: Optional[OutlineIndex],
    ) -> Finding:
        return Finding(
            range=sentence.range,
            excerpt=sentence.text[:self._config.excerpt_length].rstrip(),
            kind=kind,
            category=signature.category,
            first_occurrence=first.range,
            outline_context=index.entry_at(sentence.range.start) if index else None,
        )


def find_loops(
    text: str,
    outline_entries: Optional[Sequence[OutlineEntry]] = None
) -> Tuple[Finding, ...]:
    """Findings for text with the default vocabulary."""
    return DecisionBeliefLoopAnalyzer().analyze(text, outline_entries).findings


__all__ = [
    'AnalyzerConfig',
    'DecisionBeliefLoopAnalyzer',
    'LoopAnalysis',
    'LoopVocabulary',
    'SignatureCategory',
    'find_loops',
]
