"""
Outline Contracts

The document-structure collaborator extracts an ordered outline from the
manuscript (part, chapter and heading paragraphs) and hands it to the
engine fresh for every analysis. The engine only reads it.
"""

from __future__ import annotations
from dataclasses import dataclass

from .base import TextRange


@dataclass(frozen=True)
class OutlineEntry:
    """
    Immutable structural unit of a manuscript.

    level: heading depth (0 = part / top level, 1 = chapter, 2+ = headings)
    range: half-open span of text the entry covers
    page:  logical page number at extraction time (1-based)
    """
    title: str
    level: int
    range: TextRange
    page: int = 1

    def __post_init__(self):
        if self.level < 0:
            raise ValueError("OutlineEntry level must be >= 0")
        if self.page < 1:
            raise ValueError("OutlineEntry page must be >= 1")

    @property
    def start(self) -> int:
        return self.range.start

    @property
    def end(self) -> int:
        return self.range.end

    def contains(self, offset: int) -> bool:
        return self.range.contains(offset)

    @staticmethod
    def create(title: str, level: int, start: int, end: int, page: int = 1) -> OutlineEntry:
        return OutlineEntry(title=title, level=level, range=TextRange(start, end), page=page)

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'level': self.level,
            'range': self.range.to_dict(),
            'page': self.page,
        }

    @staticmethod
    def from_dict(data: dict) -> OutlineEntry:
        rng = data['range']
        if isinstance(rng, dict):
            start, end = rng['start'], rng['end']
        else:
            start, end = rng
        return OutlineEntry.create(
            title=str(data.get('title', '')),
            level=int(data.get('level', 0)),
            start=int(start),
            end=int(end),
            page=int(data.get('page', 1)),
        )
