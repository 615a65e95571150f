"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior beyond validation, no side effects.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Abnormal scheduler outcomes.

    The analyzers themselves have no failure mode: any string produces a
    best-effort result. These codes describe what happens AROUND an analysis.
    """
    # Scheduling
    SNAPSHOT_FAILED = auto()
    ANALYSIS_FAILED = auto()
    STALE_RESULT = auto()

    # Delivery
    CALLBACK_FAILED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple(sorted((k, str(v)) for k, v in context.items()))
        )


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


# =============================================================================
# TEXT RANGES (Half-open, character offsets)
# =============================================================================

@dataclass(frozen=True)
class TextRange:
    """
    Half-open [start, end) range of character offsets into a document.

    Offsets are Python string indexes (code points), the same unit used
    by every range the engine reports.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0:
            raise ValueError("TextRange start must be non-negative")
        if self.end < self.start:
            raise ValueError("TextRange end must not precede start")

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def slice(self, text: str) -> str:
        return text[self.start:self.end]

    def to_dict(self) -> dict:
        return {'start': self.start, 'end': self.end}
