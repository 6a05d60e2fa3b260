"""
Semantic Scholar Integration

Cross-domain academic search via the Semantic Scholar Graph API.

API Documentation: https://api.semanticscholar.org/api-docs/

Features:
- Cross-domain search (not limited to biomedicine)
- Citation counts for every paper
- External IDs (DOI, PubMed) for deduplication
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

from literature_aggregator.domain.entities import RawRecord, SourceName
from literature_aggregator.shared.exceptions import ParseError

from .base_client import BaseAPIClient
from .parsing import clean_text, coerce_int, coerce_year, optional_str

if TYPE_CHECKING:
    from literature_aggregator.application.search.source_orchestrator import SearchOptions

logger = logging.getLogger(__name__)

# Semantic Scholar API endpoints
S2_API_BASE = "https://api.semanticscholar.org/graph/v1"
S2_SEARCH_URL = f"{S2_API_BASE}/paper/search"

# Fields to request
DEFAULT_FIELDS = [
    "paperId",
    "title",
    "abstract",
    "year",
    "authors",
    "venue",
    "publicationVenue",
    "citationCount",
    "externalIds",  # Contains DOI, PubMed ID, etc.
    "url",
]


class SemanticScholarClient(BaseAPIClient):
    """
    Semantic Scholar API client.

    Usage:
        client = SemanticScholarClient(api_key="...")
        records = await client.search("deep learning medical imaging", SearchOptions(max_results=10))
    """

    name = SourceName.SEMANTIC_SCHOLAR.value

    def __init__(self, api_key: str | None = None, timeout: float = 30.0):
        """
        Initialize client.

        Args:
            api_key: Optional S2 API key (raises the shared rate limit)
            timeout: Request timeout in seconds
        """
        headers = {"Accept": "application/json", "User-Agent": "literature-aggregator/0.3"}
        if api_key:
            headers["x-api-key"] = api_key
        # Unauthenticated pool is strict; stay conservative without a key
        super().__init__(timeout=timeout, min_interval=0.1 if api_key else 1.0, headers=headers)

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]:
        """
        Search papers.

        Args:
            query: Natural-language query
            options: max_results is capped at 100 (API page size)

        Returns:
            Normalized records (papers without a title are dropped)
        """
        params = {
            "query": query,
            "limit": str(min(options.max_results, 100)),
            "fields": ",".join(DEFAULT_FIELDS),
        }
        data = await self._make_request(f"{S2_SEARCH_URL}?{urllib.parse.urlencode(params)}")
        if not isinstance(data, dict):
            raise ParseError("unexpected response shape", source=self.name)

        papers = data.get("data") or []
        records = [r for r in (self._normalize_paper(p) for p in papers) if r is not None]
        logger.debug(f"Semantic Scholar: {len(records)} papers for {query!r}")
        return records

    def _normalize_paper(self, paper: dict[str, Any]) -> RawRecord | None:
        title = clean_text(paper.get("title"))
        if not title:
            return None

        external_ids = paper.get("externalIds") or {}
        venue = paper.get("publicationVenue") or paper.get("venue") or ""
        if isinstance(venue, dict):
            venue = venue.get("name", "")

        authors = tuple(a.get("name", "") for a in paper.get("authors") or [] if a.get("name"))
        url = paper.get("url")
        if not url and paper.get("paperId"):
            url = f"https://www.semanticscholar.org/paper/{paper['paperId']}"

        return RawRecord(
            title=title,
            source=self.name,
            abstract=clean_text(paper.get("abstract")),
            authors=authors,
            venue=str(venue or ""),
            year=coerce_year(paper.get("year")),
            doi=optional_str(external_ids.get("DOI")),
            pmid=optional_str(external_ids.get("PubMed")),
            citation_count=coerce_int(paper.get("citationCount")),
            url=url,
        )
