"""
CompositeScorer - Weighted multi-factor ranking score.

    composite = w1 * semantic_relevance
              + w2 * domain_relevance
              + w3 * evidence_quality
              + w4 * citation_weight
              + source bonus

Dimensions:
- semantic_relevance: share of query tokens contained in the record text
  (lexical containment, not embeddings)
- domain_relevance: classifier domain score
- evidence_quality: study type + citation band + recency band
- citation_weight: ln(1 + citations) / 10

Every dimension is clamped to [0, 1] before weighting. The score is a pure
function of the record, the classification and the reference year.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from literature_aggregator.domain.entities import RawRecord, ScoredRecord, StudyType

from .text_matching import contains_term, tokenize

if TYPE_CHECKING:
    from .config import AggregationConfig
    from .query_expander import ExpandedQuery
    from .relevance_classifier import ClassificationResult


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class CompositeScorer:
    """
    Turns a classified RawRecord into an immutable ScoredRecord.

    Args:
        config: Static aggregation configuration
        reference_year: Year used for recency banding (defaults to the
            current UTC year; fix it in tests for determinism)
    """

    def __init__(self, config: AggregationConfig, reference_year: int | None = None) -> None:
        self._config = config
        self._reference_year = reference_year

    @property
    def reference_year(self) -> int:
        return self._reference_year or datetime.now(timezone.utc).year

    def score(
        self,
        record: RawRecord,
        classification: ClassificationResult,
        expanded: ExpandedQuery,
    ) -> ScoredRecord:
        weights = self._config.weights
        study_type = self.infer_study_type(record)

        relevance = self.semantic_relevance(record, expanded)
        domain = _clamp(classification.domain_score)
        evidence = self.evidence_quality(record, study_type)
        citations = self.citation_weight(record.citation_count)

        composite = (
            weights.semantic_relevance * relevance
            + weights.domain_relevance * domain
            + weights.evidence_quality * evidence
            + weights.citation_weight * citations
            + self._config.source_bonus(record.source)
        )

        return ScoredRecord(
            record=record,
            relevance_score=relevance,
            domain_score=domain,
            evidence_quality=evidence,
            citation_weight=citations,
            composite_score=composite,
            admitted=classification.admitted,
            study_type=study_type,
            evidence_level=self.evidence_level(study_type),
            rejection_reason=classification.reason if not classification.admitted else None,
        )

    def semantic_relevance(self, record: RawRecord, expanded: ExpandedQuery) -> float:
        """Fraction of distinct query tokens found among the record's tokens."""
        query_tokens = set(tokenize(expanded.normalized, self._config.stop_words))
        if not query_tokens:
            return 0.0
        record_tokens = set(tokenize(record.text))
        return _clamp(len(query_tokens & record_tokens) / len(query_tokens))

    def infer_study_type(self, record: RawRecord) -> StudyType:
        text = f"{record.title} {record.abstract}".lower()
        for study_type, patterns in self._config.study_type_patterns:
            if any(contains_term(text, p) for p in patterns):
                return study_type
        return StudyType.OBSERVATIONAL

    def evidence_level(self, study_type: StudyType) -> str:
        return dict(self._config.evidence_levels).get(study_type, self._config.default_evidence_level)

    def evidence_quality(self, record: RawRecord, study_type: StudyType) -> float:
        cfg = self._config
        score = dict(cfg.study_type_points).get(study_type, cfg.study_type_floor)

        citations = record.citation_count or 0
        for threshold, points in cfg.citation_bands:
            if citations > threshold:
                score += points
                break
        else:
            score += cfg.citation_band_floor

        # Unknown year is treated as current
        age = self.reference_year - (record.year or self.reference_year)
        for max_age, points in cfg.recency_bands:
            if age <= max_age:
                score += points
                break
        else:
            score += cfg.recency_band_floor

        return _clamp(score)

    def citation_weight(self, citation_count: int | None) -> float:
        if not citation_count or citation_count < 0:
            return 0.0
        return _clamp(math.log1p(citation_count) / self._config.citation_log_divisor)
