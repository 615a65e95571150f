"""
Sentence Signatures
===================

Turns one sentence into what the loop scan compares: a normalized
(category, subject, content) signature, a reversal marker, or nothing.

NORMALIZATION:
- lowercase, quotes and punctuation stripped
- stop words, filler words ("again", "later") and -ly adverbs dropped
- the subject is the last pronoun before the cue, else the last two
  content words before it, else "" (unknown, matches any subject)

MATCHING:
Cue and reversal phrases share one alternation, leftmost then longest,
so "never doubted" (belief) is not read as "doubted" (reversal).

TIE-BREAK:
Compound sentences are split into clauses; the first clause (left to
right) that carries a cue followed by content decides the signature.
A sentence yields at most one signature.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import re

from ..contracts.results import SignatureCategory
from ..text import tokenize
from .vocabulary import LoopVocabulary


@dataclass(frozen=True)
class Signature:
    """Normalized content of a decision or belief statement."""
    category: SignatureCategory
    subject: str
    content: Tuple[str, ...]

    @property
    def key(self) -> Tuple[SignatureCategory, str, Tuple[str, ...]]:
        return (self.category, self.subject, self.content)


@dataclass(frozen=True)
class SentenceTag:
    """
    What a sentence contributes to the scan.

    Exactly one of signature / reversal_subject is set for a tagged
    sentence; both are None for an untagged one.
    """
    signature: Optional[Signature] = None
    reversal_subject: Optional[str] = None

    @property
    def is_reversal(self) -> bool:
        return self.reversal_subject is not None


UNTAGGED = SentenceTag()

_QUOTES = re.compile(r"[\"“”«»]")


def _phrase_pattern(phrases: Iterable[str]) -> Optional[re.Pattern]:
    ordered = sorted(set(phrases), key=lambda p: (-len(p), p))
    if not ordered:
        return None
    alternation = "|".join(r"\s+".join(re.escape(w) for w in p.split()) for p in ordered)
    return re.compile(r"(?<![\w'])(?:" + alternation + r")(?![\w'])")


class SignatureExtractor:
    """
    Compiles a vocabulary once and tags sentences with it.

    Holds only compiled, read-only patterns: one extractor can serve
    concurrent analyses.
    """

    def __init__(self, vocabulary: LoopVocabulary):
        self._vocabulary = vocabulary
        # None marks a reversal phrase.
        self._phrase_categories: Dict[str, Optional[SignatureCategory]] = {}
        for phrase in vocabulary.reversal_cues:
            self._phrase_categories[phrase] = None
        for phrase in vocabulary.decision_cues:
            self._phrase_categories[phrase] = SignatureCategory.DECISION
        for phrase in vocabulary.belief_cues:
            self._phrase_categories[phrase] = SignatureCategory.BELIEF
        self._phrase_pattern = _phrase_pattern(self._phrase_categories)

        breaks = [r"[;:()\[\]—–]", r"\s-\s"]
        if vocabulary.clause_conjunctions:
            conjunctions = "|".join(re.escape(c) for c in vocabulary.clause_conjunctions)
            breaks.append(r",\s*(?=(?:" + conjunctions + r")(?![\w']))")
        self._clause_break = re.compile("|".join(breaks))

    @property
    def vocabulary(self) -> LoopVocabulary:
        return self._vocabulary

    def tag(self, sentence: str) -> SentenceTag:
        if self._phrase_pattern is None:
            return UNTAGGED
        lowered = _QUOTES.sub(" ", sentence.lower()).replace("’", "'")

        for match in self._phrase_pattern.finditer(lowered):
            if self._category_of(match) is None:
                prefix = self._clause_break.split(lowered[:match.start()])[-1]
                return SentenceTag(reversal_subject=self.subject_of(prefix))

        for clause in self._clause_break.split(lowered):
            match = self._phrase_pattern.search(clause)
            if match is None:
                continue
            category = self._category_of(match)
            content = self.content_of(clause[match.end():])
            if category is None or not content:
                continue
            return SentenceTag(signature=Signature(
                category=category,
                subject=self.subject_of(clause[:match.start()]),
                content=content
            ))
        return UNTAGGED

    def _category_of(self, match: re.Match) -> Optional[SignatureCategory]:
        return self._phrase_categories[" ".join(match.group(0).split())]

    def content_of(self, fragment: str) -> Tuple[str, ...]:
        return tuple(self._meaningful(tokenize(fragment)))

    def subject_of(self, prefix: str) -> str:
        words = self._meaningful(tokenize(prefix))
        if not words:
            return ""
        pronouns = [w for w in words if w in self._vocabulary.subject_pronouns]
        if pronouns:
            return pronouns[-1]
        return " ".join(words[-2:])

    def _meaningful(self, tokens: List[str]) -> List[str]:
        vocab = self._vocabulary
        kept = []
        for token in tokens:
            if token in vocab.stop_words or token in vocab.filler_words:
                continue
            if self._is_adverb(token):
                continue
            kept.append(token)
        return kept

    def _is_adverb(self, token: str) -> bool:
        return (
            len(token) > 3
            and token.endswith("ly")
            and token not in self._vocabulary.adverb_exceptions
        )
