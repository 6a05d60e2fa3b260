"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from literature_aggregator.application.search import (
    AggregationConfig,
    AggregationPipeline,
    CompositeScorer,
    Deduplicator,
    LexicalRelevanceClassifier,
    QueryExpander,
    ResultFinalizer,
    SourceOrchestrator,
)
from literature_aggregator.domain.entities import CanonicalRecord, RawRecord, ScoredRecord

REFERENCE_YEAR = 2025

# Populations far enough apart (edit distance) that generated titles never
# count as near-duplicates of each other.
POPULATIONS = (
    "adolescents",
    "older adults",
    "pregnant women",
    "veterans",
    "athletes",
    "smokers",
    "university students",
    "nurses",
    "inpatients",
    "twins",
    "retirees",
    "migrants",
    "farmers",
    "teachers",
    "prisoners",
)


# ============================================================
# Configuration Fixtures
# ============================================================


@pytest.fixture
def config():
    """Default, validated configuration."""
    return AggregationConfig.default()


@pytest.fixture
def expander(config):
    return QueryExpander(config)


# ============================================================
# Record Factories
# ============================================================


def clinical_record(
    index: int = 0,
    *,
    source: str = "pubmed",
    doi: str | None = None,
    pmid: str | None = None,
    citation_count: int | None = 10,
    year: int | None = 2022,
) -> RawRecord:
    """An admissible omega-3 / depression record with a distinct title."""
    population = POPULATIONS[index % len(POPULATIONS)]
    return RawRecord(
        title=f"Omega-3 supplementation for depression in {population}",
        source=source,
        abstract=(
            f"Patients ({population}) with depression received omega-3 fatty acid "
            "supplementation. Clinical outcomes improved with treatment."
        ),
        authors=("Smith J", "Doe J"),
        venue="JAMA Psychiatry",
        year=year,
        doi=doi,
        pmid=pmid,
        citation_count=citation_count,
    )


@pytest.fixture
def make_record():
    """Factory for admissible clinical records."""
    return clinical_record


def scored(
    title: str,
    *,
    source: str = "pubmed",
    composite: float = 0.5,
    admitted: bool = True,
    doi: str | None = None,
    pmid: str | None = None,
    abstract: str = "",
    authors: tuple[str, ...] = ("Smith J",),
) -> ScoredRecord:
    """ScoredRecord with hand-picked scores."""
    record = RawRecord(title=title, source=source, abstract=abstract, authors=authors, doi=doi, pmid=pmid)
    return ScoredRecord(
        record=record,
        relevance_score=composite,
        domain_score=composite,
        evidence_quality=composite,
        citation_weight=0.0,
        composite_score=composite,
        admitted=admitted,
    )


def canonical(title: str, **kwargs) -> CanonicalRecord:
    """Single-member CanonicalRecord built from ``scored``."""
    record = scored(title, **kwargs)
    return CanonicalRecord(
        representative=record,
        dois=frozenset({record.doi.lower()}) if record.doi else frozenset(),
        pmids=frozenset({record.pmid}) if record.pmid else frozenset(),
        sources=(record.source,),
    )


# ============================================================
# Fake Provider Adapters
# ============================================================


class FakeAdapter:
    """In-memory ProviderAdapter that records its calls."""

    def __init__(self, name, records=(), *, error=None, delay=0.0, responses=None):
        self.name = name
        self.records = list(records)
        self.error = error
        self.delay = delay
        self.responses = list(responses) if responses is not None else None
        self.calls = []

    async def search(self, query, options):
        self.calls.append((query, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.responses is not None:
            return list(self.responses.pop(0)) if self.responses else []
        return list(self.records)


@pytest.fixture
def fake_adapter():
    return FakeAdapter


@pytest.fixture
def make_pipeline():
    """Build an AggregationPipeline over the given ProviderSpecs."""

    def _make(specs, config=None):
        config = config or AggregationConfig.default()
        expander = QueryExpander(config)
        deduplicator = Deduplicator(config)
        return AggregationPipeline(
            config=config,
            expander=expander,
            orchestrator=SourceOrchestrator(specs, config, expander),
            classifier=LexicalRelevanceClassifier(config),
            scorer=CompositeScorer(config, reference_year=REFERENCE_YEAR),
            deduplicator=deduplicator,
            finalizer=ResultFinalizer(config, deduplicator),
        )

    return _make


# ============================================================
# HTTP Mocks
# ============================================================


def json_response(payload, status_code: int = 200) -> MagicMock:
    """httpx.Response stand-in returning ``payload`` from .json()."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.headers = {}
    return response
