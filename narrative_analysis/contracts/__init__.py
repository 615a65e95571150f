"""
Contracts Module

Data types shared by the analyzers, the engine and the scheduler, and
the only types the editor/UI collaborators see.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Ranges are half-open character offsets into the analyzed text
3. Abnormal outcomes are data (Error), not exceptions leaking to callers
4. All timestamps use UTC and are never mutated
"""

from .base import Error, ErrorCode, TextRange, Timestamp
from .outline import OutlineEntry
from .results import (
    AnalysisDelivery,
    AnalysisRequest,
    AnalysisResult,
    DocumentSnapshot,
    Finding,
    FindingKind,
    SignatureCategory,
    TextMetrics,
)

__all__ = [
    'AnalysisDelivery',
    'AnalysisRequest',
    'AnalysisResult',
    'DocumentSnapshot',
    'Error',
    'ErrorCode',
    'Finding',
    'FindingKind',
    'OutlineEntry',
    'SignatureCategory',
    'TextMetrics',
    'TextRange',
    'Timestamp',
]
