"""
Text Metrics Layer

RESPONSIBILITY: Scalar statistics over manuscript text
ALLOWED INPUTS: Any string (empty, huge, non-linguistic)
OUTPUTS: TextMetrics (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Fail on any input (there is no "invalid text")
- Keep state between calls
- Interpret narrative structure (that is the loop analyzer's job)

All counts are deterministic and computed in time linear in the text.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple
import math
import re

import numpy as np

from ..contracts.results import TextMetrics
from ..text import count_words, segment_sentences, split_paragraphs, tokenize
from .vocabulary import DEFAULT_STYLE_VOCABULARY, StyleVocabulary


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class MetricsConfig:
    """
    Thresholds for the derived statistics.

    long_paragraph_words: paragraphs above this many words are flagged
    words_per_page:       manuscript page estimate (standard ~250 words)
    variety_full_scale:   sentence-length std deviation that scores 100
    words_per_sensory_detail: expected density; fewer sensory words than
                          word_count / this (at least 1) is "missing"
    max_examples:         example phrases kept per style count
    style:                word lists for the style counts
    """
    long_paragraph_words: int = 150
    words_per_page: int = 250
    variety_full_scale: float = 5.0
    words_per_sensory_detail: int = 50
    max_examples: int = 10
    style: StyleVocabulary = field(default_factory=lambda: DEFAULT_STYLE_VOCABULARY)

    def __post_init__(self):
        if self.long_paragraph_words < 1:
            raise ValueError("long_paragraph_words must be >= 1")
        if self.words_per_page < 1:
            raise ValueError("words_per_page must be >= 1")
        if self.variety_full_scale <= 0:
            raise ValueError("variety_full_scale must be positive")
        if self.words_per_sensory_detail < 1:
            raise ValueError("words_per_sensory_detail must be >= 1")
        if self.max_examples < 0:
            raise ValueError("max_examples must be non-negative")


_VOWELS = frozenset('aeiouy')

_QUOTE_MARKS = re.compile(r"[\"“”]")


def count_syllables(word: str) -> int:
    """Vowel-group syllable estimate with a silent-e adjustment (min 1)."""
    word = word.lower()
    count = 0
    previous_was_vowel = False
    for char in word:
        is_vowel = char in _VOWELS
        if is_vowel and not previous_was_vowel:
            count += 1
        previous_was_vowel = is_vowel
    if word.endswith('e') and count > 1:
        count -= 1
    return max(count, 1)


def reading_grade(word_count: int, sentence_count: int, syllable_count: int) -> Optional[int]:
    """
    Flesch-Kincaid grade level, clamped to [0, 18].

    None when there is nothing to grade.
    """
    if word_count <= 0 or sentence_count <= 0:
        return None
    grade = (
        0.39 * (word_count / sentence_count)
        + 11.8 * (syllable_count / word_count)
        - 15.59
    )
    return int(max(0.0, min(18.0, grade)))


def sentence_variety(lengths: Sequence[int], full_scale: float = 5.0) -> int:
    """
    0-100 score from the population std deviation of sentence lengths.

    A deviation of full_scale words or more scores 100.
    """
    if len(lengths) < 2:
        return 0
    deviation = float(np.std(np.asarray(lengths, dtype=float)))
    return min(100, int(deviation / full_scale * 100))


def dialogue_percentage(text: str) -> int:
    """
    Share of words (0-100) that sit between straight or curly double
    quotes. A quote left open at the end of the text does not count.
    """
    total = count_words(text)
    if total == 0:
        return 0
    parts = _QUOTE_MARKS.split(text)
    spoken = sum(count_words(part) for part in parts[1:len(parts) - 1:2])
    return int(spoken / total * 100)


def _examples(found: Iterable[str], limit: int) -> Tuple[str, ...]:
    kept: List[str] = []
    for item in found:
        if len(kept) >= limit:
            break
        if item not in kept:
            kept.append(item)
    return tuple(kept)


def _alternation(words: Iterable[str]) -> str:
    return "|".join(re.escape(w) for w in sorted(words, key=lambda w: (-len(w), w)))


class _StylePatterns:
    """Regexes compiled once per vocabulary."""

    def __init__(self, style: StyleVocabulary):
        participles = r"\w+ed"
        if style.irregular_participles:
            participles += "|" + _alternation(style.irregular_participles)
        self.passive = re.compile(
            r"\b(?:" + _alternation(style.passive_auxiliaries) + r")\s+"
            r"(?:being\s+)?(?:" + participles + r")\b",
            re.IGNORECASE
        )
        self.sensory = (
            re.compile(r"\b(?:" + _alternation(style.sensory_stems) + r")\w*", re.IGNORECASE)
            if style.sensory_stems else None
        )
        self.cliches = [
            (phrase, re.compile(
                r"(?<!\w)" + r"\s+".join(re.escape(w) for w in phrase.split()) + r"(?!\w)"
            ))
            for phrase in style.cliches
        ]


# =============================================================================
# CALCULATOR
# =============================================================================

class TextMetricsCalculator:
    """
    Pure text -> TextMetrics function object.

    Stateless after construction; safe to share between threads.
    """

    def __init__(self, config: Optional[MetricsConfig] = None):
        self._config = config or MetricsConfig()
        self._patterns = _StylePatterns(self._config.style)

    @property
    def config(self) -> MetricsConfig:
        return self._config

    def compute(self, text: str) -> TextMetrics:
        if not text:
            return TextMetrics()

        word_count = count_words(text)
        sentences = segment_sentences(text)
        sentence_count = max(1, len(sentences))
        sentence_lengths = tuple(count_words(s.text) for s in sentences)

        paragraphs = split_paragraphs(text)
        long_paragraphs: List[int] = []
        total_words = 0
        for index, paragraph in enumerate(paragraphs, start=1):
            words = count_words(paragraph)
            total_words += words
            if words > self._config.long_paragraph_words:
                long_paragraphs.append(index)
        average = total_words // len(paragraphs) if paragraphs else 0

        tokens = tokenize(text)
        syllables = sum(count_syllables(token) for token in tokens)

        style = self._config.style
        limit = self._config.max_examples
        adverbs = [t for t in tokens if self._is_adverb(t)]
        weak_verbs = [t for t in tokens if t in style.weak_verbs]
        filter_words = [t for t in tokens if t in style.filter_words]
        passive = [m.group(0).lower() for m in self._patterns.passive.finditer(text)]
        lowered = text.lower()
        cliches = [phrase for phrase, pattern in self._patterns.cliches if pattern.search(lowered)]
        sensory = (
            sum(1 for _ in self._patterns.sensory.finditer(text))
            if self._patterns.sensory is not None else 0
        )
        expected_sensory = max(1, word_count // self._config.words_per_sensory_detail)

        return TextMetrics(
            word_count=word_count,
            sentence_count=sentence_count,
            paragraph_count=len(paragraphs),
            average_paragraph_length=average,
            long_paragraphs=tuple(long_paragraphs),
            sentence_lengths=sentence_lengths,
            sentence_variety_score=sentence_variety(
                sentence_lengths, self._config.variety_full_scale
            ),
            reading_grade=reading_grade(word_count, sentence_count, syllables),
            page_count=self._page_count(word_count),
            passive_voice_count=len(passive),
            passive_voice_phrases=_examples(passive, limit),
            adverb_count=len(adverbs),
            adverb_phrases=_examples(adverbs, limit),
            weak_verb_count=len(weak_verbs),
            weak_verb_phrases=_examples(weak_verbs, limit),
            cliche_count=len(cliches),
            cliche_phrases=_examples(cliches, limit),
            filter_word_count=len(filter_words),
            filter_word_phrases=_examples(filter_words, limit),
            sensory_detail_count=sensory,
            missing_sensory_detail=word_count > 0 and sensory < expected_sensory,
            dialogue_percentage=dialogue_percentage(text),
        )

    def _is_adverb(self, token: str) -> bool:
        return (
            len(token) > 2
            and token.endswith("ly")
            and token not in self._config.style.adverb_exceptions
        )

    def _page_count(self, word_count: int) -> int:
        if word_count == 0:
            return 0
        return max(1, math.ceil(word_count / self._config.words_per_page))


__all__ = [
    'MetricsConfig',
    'StyleVocabulary',
    'TextMetricsCalculator',
    'count_syllables',
    'dialogue_percentage',
    'reading_grade',
    'sentence_variety',
]
