"""
Provider Adapters

Each adapter exposes ``name`` and ``async search(query, options)`` and
returns normalized RawRecords or raises a ProviderError.

Built-in sources:
- pubmed: NCBI Entrez (primary, MeSH-shaped queries)
- semantic_scholar: Semantic Scholar Graph API
- europe_pmc: Europe PMC REST (secondary, boolean queries)
- crossref: CrossRef works (secondary, boolean queries)
- openalex: OpenAlex works (secondary)
- openfda: openFDA drug labels (gated on regulatory queries)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from literature_aggregator.application.search.query_expander import QueryStyle
from literature_aggregator.application.search.source_orchestrator import ProviderRole, ProviderSpec

from .base_client import BaseAPIClient
from .crossref import CrossRefClient
from .europe_pmc import EuropePMCClient
from .openalex import OpenAlexClient
from .openfda import OpenFDAClient, build_label_query
from .pubmed import PubMedClient
from .semantic_scholar import SemanticScholarClient

if TYPE_CHECKING:
    from literature_aggregator.application.search.config import AggregationConfig


def build_default_provider_specs(
    config: AggregationConfig,
    *,
    pubmed: PubMedClient,
    semantic_scholar: SemanticScholarClient,
    europe_pmc: EuropePMCClient,
    crossref: CrossRefClient,
    openalex: OpenAlexClient,
    openfda: OpenFDAClient,
) -> list[ProviderSpec]:
    """Register the built-in adapters with their query style, role and gate."""
    return [
        ProviderSpec(pubmed, style=QueryStyle.MESH_TERMS, role=ProviderRole.PRIMARY),
        ProviderSpec(semantic_scholar, style=QueryStyle.NATURAL_LANGUAGE),
        ProviderSpec(europe_pmc, style=QueryStyle.BOOLEAN_SYNONYMS, role=ProviderRole.SECONDARY),
        ProviderSpec(crossref, style=QueryStyle.BOOLEAN_SYNONYMS, role=ProviderRole.SECONDARY),
        ProviderSpec(openalex, style=QueryStyle.NATURAL_LANGUAGE, role=ProviderRole.SECONDARY),
        ProviderSpec(
            openfda,
            style=QueryStyle.KEYWORDS,
            gate_terms=config.regulatory_gate_terms,
            gate_domains=config.regulatory_gate_domains,
            max_results=5,
        ),
    ]


__all__ = [
    "BaseAPIClient",
    "CrossRefClient",
    "EuropePMCClient",
    "OpenAlexClient",
    "OpenFDAClient",
    "PubMedClient",
    "SemanticScholarClient",
    "build_default_provider_specs",
    "build_label_query",
]
