"""
AggregationPipeline - End-to-end request handling.

    query ─▶ expand ─▶ gather (fan-out + gap-fill) ─▶ classify + score
                                                          │
          AggregationResult ◀── finalize ◀── dedupe ◀─────┘

Each request gets a fresh set of intermediate values; the collaborators are
stateless apart from the adapters' HTTP clients, so one pipeline instance
can serve concurrent requests.

Only invalid input raises. Provider failures, an empty pool or a short
result set are reported through Diagnostics.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from literature_aggregator.domain.entities import AggregationResult, Diagnostics, ScoredRecord
from literature_aggregator.shared.exceptions import InvalidParameterError

if TYPE_CHECKING:
    from literature_aggregator.container import ApplicationContainer
    from literature_aggregator.domain.entities import RawRecord

    from .composite_scorer import CompositeScorer
    from .config import AggregationConfig
    from .deduplicator import Deduplicator
    from .query_expander import ExpandedQuery, QueryExpander
    from .relevance_classifier import RelevanceClassifier
    from .result_finalizer import ResultFinalizer
    from .source_orchestrator import SourceOrchestrator

logger = logging.getLogger(__name__)

EMPTY_NO_PROVIDER_RESULTS = "no_provider_results"
EMPTY_NO_ADMISSIBLE_RECORDS = "no_admissible_records"


class AggregationPipeline:
    """
    Wires the six stages together.

    Example:
        >>> pipeline = container.pipeline()
        >>> result = await pipeline.run_aggregation("omega-3 and depression", 5)
        >>> result.diagnostics.relaxation_level_used
        0
    """

    def __init__(
        self,
        config: AggregationConfig,
        expander: QueryExpander,
        orchestrator: SourceOrchestrator,
        classifier: RelevanceClassifier,
        scorer: CompositeScorer,
        deduplicator: Deduplicator,
        finalizer: ResultFinalizer,
    ) -> None:
        self._config = config
        self._expander = expander
        self._orchestrator = orchestrator
        self._classifier = classifier
        self._scorer = scorer
        self._deduplicator = deduplicator
        self._finalizer = finalizer

    async def run_aggregation(self, query: str, target_count: int | None = None) -> AggregationResult:
        """
        Run one aggregation request.

        Args:
            query: Natural-language research question
            target_count: Number of results wanted (config default if None)

        Returns:
            AggregationResult with at most ``target_count`` records

        Raises:
            InvalidQueryError: Blank query
            InvalidParameterError: Non-positive target count
        """
        target = self._config.default_target_count if target_count is None else target_count
        if isinstance(target, bool) or not isinstance(target, int) or target < 1:
            raise InvalidParameterError("target_count", target_count, "a positive integer")

        start = time.perf_counter()
        expanded = self._expander.expand(query)
        gathered = await self._orchestrator.gather(expanded)

        scored = [self._score(record, expanded) for record in gathered.records]
        deduped = self._deduplicator.dedupe(scored)
        finalized = self._finalizer.finalize(deduped.canonical, target)

        empty_reason = None
        if not finalized.selected:
            empty_reason = EMPTY_NO_PROVIDER_RESULTS if not gathered.records else EMPTY_NO_ADMISSIBLE_RECORDS

        diagnostics = Diagnostics(
            providers_queried=gathered.providers_queried,
            providers_failed=gathered.providers_failed,
            admitted_count=sum(1 for c in deduped.canonical if c.admitted),
            relaxation_level_used=int(finalized.level_used),
            insufficient_evidence=finalized.insufficient,
            empty_reason=empty_reason,
            gap_fill_triggered=gathered.gap_fill_triggered,
            raw_record_count=len(gathered.records),
            canonical_record_count=len(deduped.canonical),
            provider_outcomes=gathered.outcomes,
            dedup_stats=deduped.stats.to_dict(),
        )

        elapsed = time.perf_counter() - start
        logger.info(
            f"Aggregated {query!r}: {len(gathered.records)} raw -> {len(deduped.canonical)} unique -> "
            f"{len(finalized.selected)}/{target} selected (level {int(finalized.level_used)}, "
            f"failed={list(gathered.providers_failed)}) in {elapsed:.2f}s"
        )
        if finalized.insufficient:
            logger.warning(f"Insufficient evidence for {query!r}: {len(finalized.selected)}/{target} results")

        return AggregationResult(
            query=expanded.normalized,
            target_count=target,
            results=finalized.selected,
            diagnostics=diagnostics,
        )

    def _score(self, record: RawRecord, expanded: ExpandedQuery) -> ScoredRecord:
        classification = self._classifier.classify(record, expanded)
        return self._scorer.score(record, classification, expanded)


async def run_aggregation(
    query: str,
    target_count: int | None = None,
    *,
    container: ApplicationContainer | None = None,
) -> AggregationResult:
    """
    Convenience entry point using the application container.

    Without ``container`` a fresh one is built from the environment for this
    call and its HTTP clients are closed before returning, so each
    ``asyncio.run(run_aggregation(...))`` gets clients bound to its own loop.
    A caller-supplied container is left open.
    """
    if container is not None:
        pipeline: AggregationPipeline = container.pipeline()
        return await pipeline.run_aggregation(query, target_count)

    from literature_aggregator.container import close_adapters, from_env

    owned = from_env()
    try:
        return await owned.pipeline().run_aggregation(query, target_count)
    finally:
        await close_adapters(owned)
