"""
Domain Entities: literature records flowing through the aggregation pipeline.

    RawRecord  ──classify/score──▶  ScoredRecord  ──dedupe──▶  CanonicalRecord
                                                                    │
                                              AggregationResult ◀──┘ (finalize)

All entities are immutable and scoped to a single pipeline invocation.
Source mapping from provider payloads is handled by the infrastructure
adapters.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SourceName(str, Enum):
    """Labels of the built-in provider adapters."""

    PUBMED = "pubmed"
    SEMANTIC_SCHOLAR = "semantic_scholar"
    EUROPE_PMC = "europe_pmc"
    CROSSREF = "crossref"
    OPENALEX = "openalex"
    OPENFDA = "openfda"


class StudyType(str, Enum):
    """
    Study design inferred from title and abstract wording.

    Ordered roughly by position in the evidence hierarchy.
    """

    META_ANALYSIS = "meta_analysis"
    SYSTEMATIC_REVIEW = "systematic_review"
    RANDOMIZED_CONTROLLED_TRIAL = "randomized_controlled_trial"
    CLINICAL_TRIAL = "clinical_trial"
    COHORT = "cohort"
    CASE_CONTROL = "case_control"
    OBSERVATIONAL = "observational"


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One result from one provider, normalized by its adapter."""

    title: str
    source: str
    abstract: str = ""
    authors: tuple[str, ...] = ()
    venue: str = ""
    year: int | None = None
    doi: str | None = None
    pmid: str | None = None
    citation_count: int | None = None
    url: str | None = None

    @property
    def text(self) -> str:
        """Title, abstract and venue joined for lexical matching."""
        return " ".join(part for part in (self.title, self.abstract, self.venue) if part)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["authors"] = list(self.authors)
        return data


@dataclass(frozen=True, slots=True)
class ScoredRecord:
    """A RawRecord with its classifier verdict and ranking signals (all 0-1)."""

    record: RawRecord
    relevance_score: float
    domain_score: float
    evidence_quality: float
    citation_weight: float
    composite_score: float
    admitted: bool
    study_type: StudyType = StudyType.OBSERVATIONAL
    evidence_level: str = "3"
    rejection_reason: str | None = None

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def source(self) -> str:
        return self.record.source

    @property
    def doi(self) -> str | None:
        return self.record.doi

    @property
    def pmid(self) -> str | None:
        return self.record.pmid

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.record.to_dict(),
            "scores": {
                "relevance": round(self.relevance_score, 4),
                "domain": round(self.domain_score, 4),
                "evidence_quality": round(self.evidence_quality, 4),
                "citation_weight": round(self.citation_weight, 4),
                "composite": round(self.composite_score, 4),
            },
            "admitted": self.admitted,
            "rejection_reason": self.rejection_reason,
            "study_type": self.study_type.value,
            "evidence_level": self.evidence_level,
        }


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """
    Representative of a deduplication cluster.

    Owns the union of identifiers seen across the cluster so that the
    finalizer can guarantee identifier uniqueness in the result set.
    """

    representative: ScoredRecord
    dois: frozenset[str] = frozenset()
    pmids: frozenset[str] = frozenset()
    sources: tuple[str, ...] = ()
    member_count: int = 1

    @property
    def title(self) -> str:
        return self.representative.title

    @property
    def source(self) -> str:
        return self.representative.source

    @property
    def composite_score(self) -> float:
        return self.representative.composite_score

    @property
    def admitted(self) -> bool:
        return self.representative.admitted

    @property
    def authors(self) -> tuple[str, ...]:
        return self.representative.record.authors

    @property
    def text(self) -> str:
        return self.representative.record.text

    def to_dict(self) -> dict[str, Any]:
        data = self.representative.to_dict()
        data["cluster"] = {
            "dois": sorted(self.dois),
            "pmids": sorted(self.pmids),
            "sources": list(self.sources),
            "member_count": self.member_count,
        }
        return data


@dataclass(frozen=True, slots=True)
class ProviderOutcome:
    """How one adapter call went, for diagnostics only."""

    name: str
    record_count: int = 0
    elapsed_ms: float = 0.0
    error: str | None = None
    gap_fill: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "record_count": self.record_count,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "error": self.error,
            "gap_fill": self.gap_fill,
        }


@dataclass(frozen=True, slots=True)
class Diagnostics:
    """Request-level diagnostics returned next to the results."""

    providers_queried: tuple[str, ...] = ()
    providers_failed: tuple[str, ...] = ()
    admitted_count: int = 0
    relaxation_level_used: int = 0
    insufficient_evidence: bool = False
    empty_reason: str | None = None
    gap_fill_triggered: bool = False
    raw_record_count: int = 0
    canonical_record_count: int = 0
    provider_outcomes: tuple[ProviderOutcome, ...] = ()
    dedup_stats: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "providers_queried": list(self.providers_queried),
            "providers_failed": list(self.providers_failed),
            "admitted_count": self.admitted_count,
            "relaxation_level_used": self.relaxation_level_used,
            "insufficient_evidence": self.insufficient_evidence,
            "empty_reason": self.empty_reason,
            "gap_fill_triggered": self.gap_fill_triggered,
            "raw_record_count": self.raw_record_count,
            "canonical_record_count": self.canonical_record_count,
            "provider_outcomes": [o.to_dict() for o in self.provider_outcomes],
            "dedup_stats": dict(self.dedup_stats),
        }


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """Final ordered result set plus diagnostics."""

    query: str
    target_count: int
    results: tuple[CanonicalRecord, ...]
    diagnostics: Diagnostics

    def __len__(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "target_count": self.target_count,
            "results": [r.to_dict() for r in self.results],
            "diagnostics": self.diagnostics.to_dict(),
        }
