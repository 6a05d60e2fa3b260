"""
Domain Entities

Immutable record types for the aggregation pipeline.
"""

from __future__ import annotations

from .record import (
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
