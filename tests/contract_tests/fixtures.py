"""
Manuscript Fixtures

Sentence pools and hypothesis strategies for property tests.

RULES:
======
1. Pool sentences are chosen so that loops, reversals and resolutions
   all occur when they are shuffled together
2. Generated outlines obey the outline contract: ordered, non-overlapping
"""

from __future__ import annotations
from typing import List, Tuple

from hypothesis import strategies as st
from hypothesis.strategies import composite

from narrative_analysis.contracts import OutlineEntry


SENTENCE_POOL: Tuple[str, ...] = (
    "He decided to leave.",
    "Later, he decided to leave again.",
    "He changed his mind and stayed.",
    "She believed the tower was cursed.",
    "She still believed the tower was cursed.",
    "She no longer believed the tower was cursed.",
    "Anna chose the northern road.",
    "Anna was convinced the road was safe.",
    "Instead, the caravan turned back.",
    "The rain did not stop.",
    "Wait... what?!",
    "\"Go,\" she said.",
)

MANUSCRIPT = " ".join(SENTENCE_POOL * 3)


@composite
def manuscripts(draw, max_sentences: int = 15) -> str:
    """Text assembled from the pool with varied whitespace."""
    sentences = draw(st.lists(st.sampled_from(SENTENCE_POOL), max_size=max_sentences))
    separators = draw(st.lists(
        st.sampled_from([" ", "  ", "\n", "\n\n", "\t"]),
        min_size=len(sentences), max_size=len(sentences)
    ))
    return "".join(s + sep for s, sep in zip(sentences, separators))


@composite
def outlines_for(draw, text: str) -> List[OutlineEntry]:
    """Ordered, non-overlapping entries over text, possibly with gaps."""
    if not text:
        return []
    cuts = sorted(set(draw(st.lists(
        st.integers(min_value=0, max_value=len(text)), max_size=6
    ))) | {0, len(text)})
    entries = []
    for i, (start, end) in enumerate(zip(cuts, cuts[1:])):
        if draw(st.booleans()):
            entries.append(OutlineEntry.create(f"Section {i}", level=1, start=start, end=end))
    return entries


@composite
def manuscripts_with_outline(draw) -> Tuple[str, List[OutlineEntry]]:
    text = draw(manuscripts())
    return text, draw(outlines_for(text))


# Text without control characters or surrogates.
printable_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cc", "Cs")),
    max_size=200
)
