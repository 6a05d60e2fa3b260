"""
Literature Aggregator - Multi-source biomedical evidence retrieval.

Fans a natural-language research question out to several literature
databases, filters records for domain fit, ranks them, removes duplicates
and returns a fixed-size list with diagnostics.

Usage:
    from literature_aggregator import run_aggregation

    result = await run_aggregation("Does omega-3 reduce depression?", 10)
    for record in result.results:
        print(f"{record.composite_score:.2f} {record.title}")

Features:
    - Concurrent provider fan-out with per-provider failure isolation
    - Regulatory source gated on drug / device / safety questions
    - Gap-fill round with a broadened query when results are thin
    - Lexical domain classifier and composite ranking score
    - DOI / PMID / title deduplication with deterministic representatives
    - Progressive relaxation to reach the requested result count
"""

from .application.search import AggregationConfig, AggregationPipeline, run_aggregation
from .domain.entities import AggregationResult, CanonicalRecord, Diagnostics, RawRecord
from .shared.exceptions import AggregatorError, InvalidParameterError, InvalidQueryError

__version__ = "0.3.0"

__all__ = [
    "AggregationConfig",
    "AggregationPipeline",
    "AggregationResult",
    "AggregatorError",
    "CanonicalRecord",
    "Diagnostics",
    "InvalidParameterError",
    "InvalidQueryError",
    "RawRecord",
    "run_aggregation",
]
