"""Tests for CompositeScorer."""

from __future__ import annotations

import dataclasses
import math

import pytest

from literature_aggregator.application.search import (
    ClassificationPhase,
    ClassificationResult,
    CompositeScorer,
)
from literature_aggregator.domain.entities import RawRecord, StudyType

REFERENCE_YEAR = 2025


@pytest.fixture
def scorer(config):
    return CompositeScorer(config, reference_year=REFERENCE_YEAR)


def _admitted(domain_score=0.5):
    return ClassificationResult(admitted=True, domain_score=domain_score, phase=ClassificationPhase.INCLUSION)


# ============================================================
# Individual dimensions
# ============================================================


class TestSemanticRelevance:
    def test_all_query_tokens_present(self, scorer, expander, make_record):
        expanded = expander.expand("omega-3 depression")
        assert scorer.semantic_relevance(make_record(), expanded) == 1.0

    def test_no_query_tokens_present(self, scorer, expander, make_record):
        expanded = expander.expand("knee osteoarthritis")
        assert scorer.semantic_relevance(make_record(), expanded) == 0.0

    def test_partial_overlap(self, scorer, expander, make_record):
        expanded = expander.expand("depression insomnia")
        assert scorer.semantic_relevance(make_record(), expanded) == pytest.approx(0.5)


class TestStudyType:
    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Omega-3 for depression: a meta-analysis", StudyType.META_ANALYSIS),
            ("Statins in the elderly: a systematic review", StudyType.SYSTEMATIC_REVIEW),
            ("A randomised trial of zinc lozenges", StudyType.RANDOMIZED_CONTROLLED_TRIAL),
            ("Diet and stroke in a prospective cohort", StudyType.COHORT),
            ("Smoking and bladder cancer: a case-control study", StudyType.CASE_CONTROL),
            ("Experience with asthma clinics", StudyType.OBSERVATIONAL),
        ],
    )
    def test_infer_study_type(self, scorer, title, expected):
        assert scorer.infer_study_type(RawRecord(title=title, source="pubmed")) is expected

    def test_evidence_levels(self, scorer):
        assert scorer.evidence_level(StudyType.META_ANALYSIS) == "1a"
        assert scorer.evidence_level(StudyType.RANDOMIZED_CONTROLLED_TRIAL) == "2b"
        assert scorer.evidence_level(StudyType.OBSERVATIONAL) == "3"


class TestEvidenceQuality:
    def test_best_case_clamped_to_one(self, scorer):
        record = RawRecord(title="x", source="pubmed", citation_count=500, year=REFERENCE_YEAR)
        assert scorer.evidence_quality(record, StudyType.META_ANALYSIS) == 1.0

    def test_old_uncited_observational(self, scorer):
        record = RawRecord(title="x", source="pubmed", citation_count=0, year=REFERENCE_YEAR - 20)
        assert scorer.evidence_quality(record, StudyType.OBSERVATIONAL) == pytest.approx(0.2 + 0.1 + 0.05)

    def test_citation_band_is_strict(self, scorer):
        """Exactly 100 citations falls in the >50 band, not the >100 band."""
        at_100 = RawRecord(title="x", source="pubmed", citation_count=100, year=REFERENCE_YEAR - 20)
        at_101 = dataclasses.replace(at_100, citation_count=101)
        cohort = StudyType.COHORT
        assert scorer.evidence_quality(at_101, cohort) - scorer.evidence_quality(at_100, cohort) == pytest.approx(0.05)

    def test_missing_year_counts_as_recent(self, scorer):
        undated = RawRecord(title="x", source="pubmed")
        current = RawRecord(title="x", source="pubmed", year=REFERENCE_YEAR)
        cohort = StudyType.COHORT
        assert scorer.evidence_quality(undated, cohort) == scorer.evidence_quality(current, cohort)


class TestCitationWeight:
    @pytest.mark.parametrize("count", [None, 0, -3])
    def test_missing_or_invalid(self, scorer, count):
        assert scorer.citation_weight(count) == 0.0

    def test_log_scaled(self, scorer):
        assert scorer.citation_weight(100) == pytest.approx(math.log1p(100) / 10)

    def test_clamped(self, scorer):
        assert scorer.citation_weight(10**9) == 1.0


# ============================================================
# Composite
# ============================================================


class TestCompositeScore:
    def test_weighted_sum(self, scorer, expander, config, make_record):
        expanded = expander.expand("omega-3 depression")
        result = scorer.score(make_record(), _admitted(0.8), expanded)

        w = config.weights
        expected = (
            w.semantic_relevance * result.relevance_score
            + w.domain_relevance * result.domain_score
            + w.evidence_quality * result.evidence_quality
            + w.citation_weight * result.citation_weight
        )
        assert result.composite_score == pytest.approx(expected)
        assert result.domain_score == 0.8
        assert result.admitted is True

    def test_source_bonus(self, scorer, expander, make_record):
        expanded = expander.expand("omega-3 depression")
        from_pubmed = scorer.score(make_record(source="pubmed"), _admitted(), expanded)
        from_s2 = scorer.score(make_record(source="semantic_scholar"), _admitted(), expanded)
        assert from_s2.composite_score - from_pubmed.composite_score == pytest.approx(0.1)

    def test_pure_function(self, scorer, expander, make_record):
        expanded = expander.expand("omega-3 depression")
        record = make_record()
        assert scorer.score(record, _admitted(), expanded) == scorer.score(record, _admitted(), expanded)

    def test_rejection_reason_carried(self, scorer, expander, make_record):
        expanded = expander.expand("omega-3 depression")
        rejected = ClassificationResult(
            admitted=False,
            domain_score=0.1,
            phase=ClassificationPhase.EXCLUSION,
            reason="off-domain terms without domain context: graphene",
        )
        result = scorer.score(make_record(), rejected, expanded)
        assert result.admitted is False
        assert result.rejection_reason.startswith("off-domain")
