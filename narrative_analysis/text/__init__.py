"""
Text Segmentation
=================

Shared low-level splitting used by both the metrics calculator and the
loop analyzer, so that "a sentence" means the same thing everywhere.

RULES:
- A word is a maximal run of characters that are neither whitespace nor
  control characters.
- A sentence boundary is a run of terminal punctuation (. ! ?), optionally
  followed by closing quotes or brackets, that is followed by whitespace
  or the end of the text. "..." and "?!" are one boundary, not several.
- Abbreviations ("Mr.") are NOT special-cased. This is a heuristic.

All functions are linear in the length of the text.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple
import re

from ..contracts.base import TextRange


_WORD_PATTERN = re.compile(r"[^\s\x00-\x1f\x7f-\x9f]+")

_SENTENCE_BOUNDARY = re.compile(
    r"[.!?]+[\"'”’)\]»]*(?=\s|\Z)"
)

_TOKEN_PATTERN = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")


@dataclass(frozen=True)
class Sentence:
    """A sentence-level unit with whitespace-trimmed offsets."""
    index: int
    range: TextRange
    text: str


def count_words(text: str) -> int:
    return sum(1 for _ in _WORD_PATTERN.finditer(text))


def segment_sentences(text: str) -> Tuple[Sentence, ...]:
    """
    Split text into sentences, keeping each one's [start, end) offsets.

    Leading and trailing whitespace is excluded from every range. Blank
    stretches between boundaries produce no sentence.
    """
    sentences: List[Sentence] = []
    start = 0
    for match in _SENTENCE_BOUNDARY.finditer(text):
        _append_sentence(text, start, match.end(), sentences)
        start = match.end()
    _append_sentence(text, start, len(text), sentences)
    return tuple(sentences)


def _append_sentence(text: str, start: int, end: int, out: List[Sentence]) -> None:
    chunk = text[start:end]
    stripped = chunk.strip()
    if not stripped:
        return
    lead = len(chunk) - len(chunk.lstrip())
    begin = start + lead
    out.append(Sentence(
        index=len(out),
        range=TextRange(begin, begin + len(stripped)),
        text=stripped
    ))


def count_sentences(text: str) -> int:
    """
    Number of sentences in text.

    0 only for the empty string; any other text counts at least one
    sentence, since a trailing fragment without punctuation is a sentence.
    """
    if not text:
        return 0
    return max(1, len(segment_sentences(text)))


def split_paragraphs(text: str) -> List[str]:
    """Non-blank lines, in order."""
    return [line for line in text.splitlines() if line.strip()]


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens with punctuation stripped (apostrophes kept inside words)."""
    return [t.replace('’', "'") for t in _TOKEN_PATTERN.findall(text.lower())]


__all__ = [
    'Sentence',
    'count_sentences',
    'count_words',
    'segment_sentences',
    'split_paragraphs',
    'tokenize',
]
