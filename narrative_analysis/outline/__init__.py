"""
Outline Correlation
===================

Maps flat text offsets onto the manuscript's outline.

OutlineIndex answers "which outline entry contains this offset?" with a
binary search over entry starts. Entries are expected to be sorted and
non-overlapping; the index still answers correctly when a collaborator
hands it nested or unsorted entries, it just stops being O(log n).

extract_outline() is the plain-text fallback used when no structured
outline is available: Markdown headings and "Part/Chapter N" lines.
"""

from __future__ import annotations
from bisect import bisect_right
from typing import Iterator, List, Optional, Sequence, Tuple
import math
import re

from ..contracts.outline import OutlineEntry
from ..text import count_words


class OutlineIndex:
    """
    Read-only lookup structure over one analysis call's outline.

    Holds references to the caller's entries; lookups return those very
    objects, never copies.
    """

    def __init__(self, entries: Sequence[OutlineEntry]):
        ordered = sorted(entries, key=lambda e: e.start)
        self._entries: Tuple[OutlineEntry, ...] = tuple(ordered)
        self._starts: List[int] = [e.start for e in ordered]
        # reach[i] = furthest end among entries[0..i]
        self._reach: List[int] = []
        furthest = 0
        for entry in ordered:
            furthest = max(furthest, entry.end)
            self._reach.append(furthest)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[OutlineEntry]:
        return iter(self._entries)

    def entry_at(self, offset: int) -> Optional[OutlineEntry]:
        """Entry whose [start, end) contains offset, or None."""
        pos = bisect_right(self._starts, offset) - 1
        while pos >= 0 and self._reach[pos] > offset:
            entry = self._entries[pos]
            if entry.contains(offset):
                return entry
            pos -= 1
        return None


# =============================================================================
# PLAIN-TEXT OUTLINE EXTRACTION
# =============================================================================

_HEADING_PATTERNS: Tuple[Tuple[re.Pattern, Optional[int]], ...] = (
    (re.compile(r"^(#{1,6})\s+(\S.*?)\s*#*\s*$"), None),
    (re.compile(r"^((?:part|book)\s+(?:\d+|[ivxlc]+|one|two|three|four|five|six|seven|eight|nine|ten))\b.*$", re.IGNORECASE), 0),
    (re.compile(r"^((?:chapter|ch\.)\s*(?:\d+|[ivxlc]+))\b.*$", re.IGNORECASE), 1),
)


def _match_heading(line: str) -> Optional[Tuple[str, int]]:
    stripped = line.strip()
    if not stripped or len(stripped) > 120:
        return None
    for pattern, level in _HEADING_PATTERNS:
        match = pattern.match(stripped)
        if match is None:
            continue
        if level is None:
            return match.group(2), len(match.group(1))
        if stripped.endswith((".", "!", "?", ",")):
            return None
        return stripped, level
    return None


def extract_outline(text: str, words_per_page: int = 250) -> Tuple[OutlineEntry, ...]:
    """
    Extract an ordered, non-overlapping outline from plain text.

    Each entry spans from its heading line to the next heading (of any
    level) or the end of the text. Page numbers are estimated from the
    words preceding the heading.
    """
    headings: List[Tuple[int, str, int, int]] = []
    offset = 0
    words_before = 0
    last = 0
    for line in text.splitlines(keepends=True):
        found = _match_heading(line)
        if found is not None:
            words_before += count_words(text[last:offset])
            last = offset
            title, level = found
            page = 1 + math.floor(words_before / max(1, words_per_page))
            headings.append((offset, title, level, page))
        offset += len(line)

    entries = []
    for i, (start, title, level, page) in enumerate(headings):
        end = headings[i + 1][0] if i + 1 < len(headings) else len(text)
        entries.append(OutlineEntry.create(title=title, level=level, start=start, end=end, page=page))
    return tuple(entries)


__all__ = ['OutlineIndex', 'extract_outline']
