"""
Domain Layer

Contains:
- entities: raw, scored and canonical literature records, result diagnostics
"""

from .entities import (
    AggregationResult,
    CanonicalRecord,
    Diagnostics,
    ProviderOutcome,
    RawRecord,
    ScoredRecord,
    SourceName,
    StudyType,
)

__all__ = [
    "RawRecord",
    "ScoredRecord",
    "CanonicalRecord",
    "AggregationResult",
    "Diagnostics",
    "ProviderOutcome",
    "SourceName",
    "StudyType",
]
