"""
Loop Vocabulary
===============

The cue lists the loop analyzer matches against. These are product-tunable
vocabulary, not structure: the algorithm only needs to know which phrases
tag a sentence as a decision, a belief or a reversal, and which words carry
no signature content.

A vocabulary is immutable. Tuning produces a new instance through
merged_with() / from_dict() / from_json().
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple, Union
import json


DEFAULT_DECISION_CUES: Tuple[str, ...] = (
    "decided", "decides", "decide", "decision to",
    "chose", "chooses", "choose", "chosen",
    "resolved to", "resolves to", "resolved that",
    "made up his mind", "made up her mind", "made up their minds",
    "made up my mind", "made up our minds",
    "determined to", "committed to", "vowed", "vows", "swore", "swears",
    "opted", "opts", "settled on", "agreed to", "refused to", "elected to",
)

DEFAULT_BELIEF_CUES: Tuple[str, ...] = (
    "believed", "believes", "believe",
    "was convinced", "were convinced", "is convinced", "are convinced",
    "had been convinced", "felt certain", "feels certain", "felt sure", "feels sure",
    "was certain", "is certain", "was sure", "is sure",
    "knew in his heart", "knew in her heart", "had faith",
    "trusted that", "was positive", "never doubted",
)

DEFAULT_REVERSAL_CUES: Tuple[str, ...] = (
    "no longer", "instead", "changed his mind", "changed her mind",
    "changed their minds", "changed their mind", "changed my mind",
    "changed our minds", "reconsidered", "thought better of",
    "gave up on", "backed out", "reversed", "abandoned the idea",
    "stopped believing", "doubted", "began to doubt", "realized he was wrong",
    "realized she was wrong", "realized they were wrong", "second thoughts",
)

DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset({
    "a", "an", "the", "to", "that", "this", "these", "those", "of", "in", "on",
    "at", "for", "with", "by", "from", "into", "onto", "and", "or", "but", "nor",
    "is", "was", "were", "be", "been", "being", "are", "am",
    "would", "will", "should", "could", "must", "might", "may", "can", "shall",
    "had", "has", "have", "having", "do", "did", "does",
    "just", "very", "really", "quite", "then", "than", "as", "if",
})

DEFAULT_FILLER_WORDS: FrozenSet[str] = frozenset({
    "again", "later", "once", "more", "still", "finally", "too", "also",
    "now", "anyway", "eventually", "ever", "even", "yet", "so", "soon",
    "suddenly", "meanwhile", "afterward", "afterwards", "next", "however",
})

DEFAULT_SUBJECT_PRONOUNS: FrozenSet[str] = frozenset({
    "he", "she", "they", "i", "we", "you", "it",
})

DEFAULT_ADVERB_EXCEPTIONS: FrozenSet[str] = frozenset({
    "family", "only", "early", "reply", "supply", "apply", "italy", "july",
    "holy", "ally", "rally", "belly", "fly", "lily", "emily", "kelly", "molly",
    "sally", "billy", "holly", "polly",
})

DEFAULT_CLAUSE_CONJUNCTIONS: Tuple[str, ...] = (
    "but", "yet", "so", "and", "or", "while", "though", "although",
    "whereas",
)


def _normalize_phrase(phrase: str) -> str:
    return " ".join(phrase.lower().split())


def _phrases(values: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for value in values:
        phrase = _normalize_phrase(value)
        if phrase and phrase not in seen:
            seen.append(phrase)
    return tuple(seen)


@dataclass(frozen=True)
class LoopVocabulary:
    """
    Replaceable cue configuration for decision-belief loop detection.

    decision_cues / belief_cues: phrases that tag a clause with a category
    reversal_cues:    phrases that mark a sentence as negating or reversing
                      an earlier decision or belief
    stop_words:       dropped from signatures
    filler_words:     temporal/adverbial words dropped from signatures and
                      subjects ("again", "later")
    subject_pronouns: preferred subject anchors when present before a cue
    clause_conjunctions: words that open a new clause after a comma
    """
    decision_cues: Tuple[str, ...] = DEFAULT_DECISION_CUES
    belief_cues: Tuple[str, ...] = DEFAULT_BELIEF_CUES
    reversal_cues: Tuple[str, ...] = DEFAULT_REVERSAL_CUES
    stop_words: FrozenSet[str] = DEFAULT_STOP_WORDS
    filler_words: FrozenSet[str] = DEFAULT_FILLER_WORDS
    subject_pronouns: FrozenSet[str] = DEFAULT_SUBJECT_PRONOUNS
    adverb_exceptions: FrozenSet[str] = DEFAULT_ADVERB_EXCEPTIONS
    clause_conjunctions: Tuple[str, ...] = DEFAULT_CLAUSE_CONJUNCTIONS

    def __post_init__(self):
        object.__setattr__(self, 'decision_cues', _phrases(self.decision_cues))
        object.__setattr__(self, 'belief_cues', _phrases(self.belief_cues))
        object.__setattr__(self, 'reversal_cues', _phrases(self.reversal_cues))
        object.__setattr__(self, 'clause_conjunctions', _phrases(self.clause_conjunctions))
        for name in ('stop_words', 'filler_words', 'subject_pronouns', 'adverb_exceptions'):
            object.__setattr__(self, name, frozenset(w.lower() for w in getattr(self, name)))
        overlap = set(self.decision_cues) & set(self.belief_cues)
        if overlap:
            raise ValueError(f"cues cannot be both decision and belief: {sorted(overlap)}")
        overlap = (set(self.decision_cues) | set(self.belief_cues)) & set(self.reversal_cues)
        if overlap:
            raise ValueError(f"cues cannot also be reversal cues: {sorted(overlap)}")
        if not self.decision_cues and not self.belief_cues:
            raise ValueError("vocabulary needs at least one decision or belief cue")

    def merged_with(self, **extra: Iterable[str]) -> LoopVocabulary:
        """
        Return a new vocabulary with extra phrases appended per field.

        Example: vocab.merged_with(decision_cues=["pledged to"])
        """
        changes = {}
        for name, values in extra.items():
            current = getattr(self, name)
            if isinstance(current, frozenset):
                changes[name] = current | frozenset(values)
            else:
                changes[name] = tuple(current) + tuple(values)
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            'decision_cues': list(self.decision_cues),
            'belief_cues': list(self.belief_cues),
            'reversal_cues': list(self.reversal_cues),
            'stop_words': sorted(self.stop_words),
            'filler_words': sorted(self.filler_words),
            'subject_pronouns': sorted(self.subject_pronouns),
            'adverb_exceptions': sorted(self.adverb_exceptions),
            'clause_conjunctions': list(self.clause_conjunctions),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Iterable[str]], base: Optional[LoopVocabulary] = None) -> LoopVocabulary:
        """
        Build a vocabulary from a mapping. Missing keys keep the base's
        (default vocabulary's) lists; present keys REPLACE them.
        """
        base = base or LoopVocabulary()
        known = set(base.to_dict())
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown vocabulary fields: {sorted(unknown)}")
        changes = {}
        for name, values in data.items():
            if isinstance(getattr(base, name), frozenset):
                changes[name] = frozenset(values)
            else:
                changes[name] = tuple(values)
        return replace(base, **changes)

    @staticmethod
    def from_json(path: Union[str, Path]) -> LoopVocabulary:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return LoopVocabulary.from_dict(data)


DEFAULT_VOCABULARY = LoopVocabulary()
