"""
RelevanceClassifier - Admit or reject records by domain fit.

The classifier is an interface so a learned model can replace the lexical
implementation without touching the orchestrator or the finalizer.

LexicalRelevanceClassifier runs two phases on title + abstract + venue:

    Phase 1 (exclusion)
        off-domain term present?
          ├── no  ─────────────────────────────▶ phase 2
          └── yes ─ domain context term present?
                      ├── yes (override) ──────▶ phase 2
                      └── no  ─────────────────▶ REJECT (exclusion)

    Phase 2 (inclusion)
        points = on-domain band + venue reputation
                 - penalty vocabulary + topic bonuses
        admit iff points >= admission_threshold

The override is evaluated only after an exclusion term matched and only
chooses between "reject" and "continue"; the configuration forbids a term
from appearing in both lists, so the outcome never depends on list order.

A domain score in [0, 1] is computed for every record, admitted or not, so
the composite scorer and the relaxation levels can rank rejected records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from .text_matching import any_term, contains_term, matched_terms, mentions

if TYPE_CHECKING:
    from literature_aggregator.domain.entities import RawRecord

    from .config import AggregationConfig
    from .query_expander import ExpandedQuery

logger = logging.getLogger(__name__)


class ClassificationPhase(Enum):
    """Phase in which the classifier reached its decision."""

    EXCLUSION = "exclusion"
    INCLUSION = "inclusion"


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Verdict for one record."""

    admitted: bool
    domain_score: float
    phase: ClassificationPhase
    inclusion_points: int = 0
    matched_exclusions: tuple[str, ...] = ()
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "admitted": self.admitted,
            "domain_score": round(self.domain_score, 4),
            "phase": self.phase.value,
            "inclusion_points": self.inclusion_points,
            "matched_exclusions": list(self.matched_exclusions),
            "reason": self.reason,
        }


class RelevanceClassifier(Protocol):
    """Anything that can decide whether a record belongs in the result pool."""

    def classify(self, record: RawRecord, expanded: ExpandedQuery) -> ClassificationResult: ...


class LexicalRelevanceClassifier:
    """Keyword-list classifier driven entirely by AggregationConfig."""

    def __init__(self, config: AggregationConfig) -> None:
        self._config = config

    def classify(self, record: RawRecord, expanded: ExpandedQuery) -> ClassificationResult:
        text = record.text.lower()
        domain_score = self.domain_score(record, expanded)

        exclusions = tuple(matched_terms(text, self._config.off_domain_terms))
        if exclusions and not any_term(text, self._config.domain_context_terms):
            reason = f"off-domain terms without domain context: {', '.join(exclusions[:3])}"
            logger.debug(f"Excluded {record.title[:60]!r} ({record.source}): {reason}")
            return ClassificationResult(
                admitted=False,
                domain_score=domain_score,
                phase=ClassificationPhase.EXCLUSION,
                matched_exclusions=exclusions,
                reason=reason,
            )

        points = self.inclusion_points(record, expanded)
        admitted = points >= self._config.admission_threshold
        reason = None
        if not admitted:
            reason = f"inclusion score {points} below threshold {self._config.admission_threshold}"
        return ClassificationResult(
            admitted=admitted,
            domain_score=domain_score,
            phase=ClassificationPhase.INCLUSION,
            inclusion_points=points,
            matched_exclusions=exclusions,
            reason=reason,
        )

    def inclusion_points(self, record: RawRecord, expanded: ExpandedQuery) -> int:
        text = record.text.lower()
        points = 0

        term_count = len(matched_terms(text, self._config.on_domain_terms))
        for min_count, band_points in self._config.on_domain_bands:
            if term_count >= min_count:
                points += band_points
                break

        if any_term(record.venue.lower(), self._config.reputable_venues):
            points += self._config.venue_points

        if any_term(text, self._config.penalty_terms):
            points -= self._config.penalty_points

        for topic in expanded.topics:
            if any_term(text, topic.content_terms):
                points += topic.inclusion_bonus

        return points

    def domain_score(self, record: RawRecord, expanded: ExpandedQuery) -> float:
        """Graded domain relevance in [0, 1]."""
        cfg = self._config
        text = record.text.lower()

        term_count = len(matched_terms(text, cfg.domain_score_terms))
        score = min(term_count / cfg.domain_term_saturation, 1.0) * cfg.domain_term_weight

        if expanded.keywords:
            hits = sum(1 for word in expanded.keywords if mentions(text, word))
            score += hits / len(expanded.keywords) * cfg.domain_query_weight

        venue = record.venue.lower()
        if venue and any(contains_term(venue, v) for v in cfg.domain_score_venues):
            score += cfg.domain_venue_bonus

        if any(any_term(text, topic.content_terms) for topic in expanded.topics):
            score += cfg.domain_topic_bonus

        if any_term(text, cfg.soft_penalty_terms):
            score -= cfg.domain_soft_penalty

        return max(0.0, min(1.0, score))
