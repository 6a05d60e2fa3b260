"""Tests for LexicalRelevanceClassifier - exclusion and inclusion phases."""

from __future__ import annotations

import pytest

from literature_aggregator.application.search import ClassificationPhase, LexicalRelevanceClassifier
from literature_aggregator.domain.entities import RawRecord


@pytest.fixture
def classifier(config):
    return LexicalRelevanceClassifier(config)


def _record(title, abstract="", venue=""):
    return RawRecord(title=title, source="pubmed", abstract=abstract, venue=venue)


# ============================================================
# Exclusion phase
# ============================================================


class TestExclusionPhase:
    def test_graphene_transistor_rejected_for_medical_query(self, classifier, expander):
        expanded = expander.expand("treatment of hypertension in adults")
        record = _record("Graphene-based field effect transistor")

        result = classifier.classify(record, expanded)

        assert result.admitted is False
        assert result.phase is ClassificationPhase.EXCLUSION
        assert "graphene" in result.matched_exclusions

    def test_rejected_regardless_of_composite_inputs(self, classifier, expander):
        """A highly cited, recent off-domain record is still excluded."""
        expanded = expander.expand("omega-3 and depression")
        record = RawRecord(
            title="Graphene-based field effect transistor",
            source="semantic_scholar",
            citation_count=50_000,
            year=2024,
            venue="Nature",
        )

        assert classifier.classify(record, expanded).phase is ClassificationPhase.EXCLUSION

    def test_domain_context_overrides_exclusion(self, classifier, expander):
        expanded = expander.expand("mortality prediction")
        record = _record(
            "Machine learning to predict mortality in hospital patients",
            abstract="Clinical outcomes were recorded for each admission.",
        )

        result = classifier.classify(record, expanded)

        assert result.phase is ClassificationPhase.INCLUSION
        assert result.admitted is True
        assert "machine learning" in result.matched_exclusions

    def test_short_exclusion_term_needs_whole_word(self, classifier, expander):
        """'art' must not fire inside 'artery' or 'heart'."""
        expanded = expander.expand("coronary artery disease")
        record = _record("Coronary artery disease treatment in patients with heart failure")

        result = classifier.classify(record, expanded)

        assert result.phase is ClassificationPhase.INCLUSION
        assert result.matched_exclusions == ()


# ============================================================
# Inclusion phase
# ============================================================


class TestInclusionPhase:
    def test_clinical_record_admitted(self, classifier, expander, make_record):
        expanded = expander.expand("omega-3 and depression")

        result = classifier.classify(make_record(), expanded)

        assert result.admitted is True
        assert result.inclusion_points >= 3
        assert result.reason is None

    def test_penalty_vocabulary_rejects(self, classifier, expander):
        expanded = expander.expand("team leadership")
        record = _record("Leadership of clinical teams: patient outcomes and treatment")

        result = classifier.classify(record, expanded)

        assert result.phase is ClassificationPhase.INCLUSION
        assert result.admitted is False
        assert "below threshold" in result.reason

    def test_topic_bonus_admits_borderline_record(self, classifier, expander):
        record = _record("Sodium reduction lowers blood pressure")

        with_topic = classifier.classify(record, expander.expand("hypertension and salt"))
        without_topic = classifier.classify(record, expander.expand("salt intake"))

        assert with_topic.admitted is True
        assert without_topic.admitted is False
        assert with_topic.inclusion_points - without_topic.inclusion_points == 2

    def test_reputable_venue_adds_points(self, classifier, expander):
        expanded = expander.expand("asthma")
        plain = _record("Asthma in children")
        in_lancet = _record("Asthma in children", venue="The Lancet")

        assert classifier.inclusion_points(in_lancet, expanded) == classifier.inclusion_points(plain, expanded) + 2


# ============================================================
# Domain score
# ============================================================


class TestDomainScore:
    @pytest.mark.parametrize(
        "title",
        [
            "Graphene-based field effect transistor",
            "Omega-3 supplementation for depression: randomized controlled trial in patients",
            "",
        ],
    )
    def test_bounded(self, classifier, expander, title):
        expanded = expander.expand("omega-3 depression")
        score = classifier.domain_score(_record(title), expanded)
        assert 0.0 <= score <= 1.0

    def test_clinical_record_scores_higher(self, classifier, expander, make_record):
        expanded = expander.expand("omega-3 depression")
        clinical = classifier.domain_score(make_record(), expanded)
        off_domain = classifier.domain_score(_record("Graphene-based field effect transistor"), expanded)
        assert clinical > off_domain

    def test_computed_for_rejected_records(self, classifier, expander):
        expanded = expander.expand("transistor")
        result = classifier.classify(_record("Graphene-based field effect transistor"), expanded)
        assert result.admitted is False
        assert result.domain_score > 0.0
