"""
Search Application Layer

Pipeline stages:
- QueryExpander: variants, domain tags, provider query shaping
- SourceOrchestrator: concurrent fan-out with failure isolation and gap-fill
- LexicalRelevanceClassifier: domain admission
- CompositeScorer: multi-factor ranking score
- Deduplicator: DOI / PMID / title clustering
- ResultFinalizer: progressive relaxation to a fixed-size list
- AggregationPipeline: all of the above for one request
"""

from .composite_scorer import CompositeScorer
from .config import AggregationConfig, CompositeWeights, TopicProfile
from .deduplicator import DedupResult, DedupStats, Deduplicator
from .pipeline import AggregationPipeline, run_aggregation
from .query_expander import ExpandedQuery, QueryExpander, QueryStyle
from .relevance_classifier import (
    ClassificationPhase,
    ClassificationResult,
    LexicalRelevanceClassifier,
    RelevanceClassifier,
)
from .result_finalizer import FinalizeResult, RelaxationLevel, ResultFinalizer, next_level
from .source_orchestrator import (
    GatherResult,
    ProviderAdapter,
    ProviderRole,
    ProviderSpec,
    SearchOptions,
    SourceOrchestrator,
)

__all__ = [
    # Configuration
    "AggregationConfig",
    "CompositeWeights",
    "TopicProfile",
    # Query expansion
    "ExpandedQuery",
    "QueryExpander",
    "QueryStyle",
    # Orchestration
    "GatherResult",
    "ProviderAdapter",
    "ProviderRole",
    "ProviderSpec",
    "SearchOptions",
    "SourceOrchestrator",
    # Classification and scoring
    "ClassificationPhase",
    "ClassificationResult",
    "CompositeScorer",
    "LexicalRelevanceClassifier",
    "RelevanceClassifier",
    # Deduplication and finalization
    "DedupResult",
    "DedupStats",
    "Deduplicator",
    "FinalizeResult",
    "RelaxationLevel",
    "ResultFinalizer",
    "next_level",
    # Pipeline
    "AggregationPipeline",
    "run_aggregation",
]
