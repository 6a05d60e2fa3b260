"""
OpenAlex Integration

Open scholarly search via the OpenAlex API.

API Documentation: https://docs.openalex.org/

Features:
- Completely free and open (no API key required)
- Comprehensive coverage (200M+ works)
- Abstracts delivered as inverted indices
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

# OpenAlex API endpoints
OA_API_BASE = "https://api.openalex.org"
OA_WORKS_URL = f"{OA_API_BASE}/works"

# Polite pool email (higher rate limits)
DEFAULT_EMAIL = "literature-aggregator@example.com"

# Authors kept per work
MAX_AUTHORS = 10


class OpenAlexClient(BaseAPIClient):
    """
    OpenAlex API client.

    Usage:
        client = OpenAlexClient(email="your@email.com")
        records = await client.search("CRISPR gene editing", SearchOptions(max_results=10))
    """

    name = SourceName.OPENALEX.value

    def __init__(self, email: str | None = None, timeout: float = 30.0):
        """
        Initialize client.

        Args:
            email: Email for polite pool (higher rate limits)
            timeout: Request timeout in seconds
        """
        self._email = email or DEFAULT_EMAIL
        super().__init__(
            timeout=timeout,
            min_interval=0.1,
            headers={
                "User-Agent": f"literature-aggregator/0.3 (mailto:{self._email})",
                "Accept": "application/json",
            },
        )

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]:
        """
        Search OpenAlex works (title, abstract, fulltext).

        Args:
            query: Search query
            options: max_results is capped at 200 (API page size)
        """
        params = {
            "search": query,
            "per_page": str(min(options.max_results, 200)),
            "mailto": self._email,
        }
        data = await self._make_request(f"{OA_WORKS_URL}?{urllib.parse.urlencode(params)}")
        if not isinstance(data, dict):
            raise ParseError("unexpected response shape", source=self.name)

        works = data.get("results") or []
        return [r for r in (self._normalize_work(w) for w in works) if r is not None]

    def _normalize_work(self, work: dict[str, Any]) -> RawRecord | None:
        title = clean_text(work.get("display_name") or work.get("title"))
        if not title:
            return None

        ids = work.get("ids") or {}
        doi = ids.get("doi") or work.get("doi") or ""
        if doi.startswith("https://doi.org/"):
            doi = doi.replace("https://doi.org/", "")

        pmid = ids.get("pmid") or ""
        if pmid.startswith("https://pubmed.ncbi.nlm.nih.gov/"):
            pmid = pmid.replace("https://pubmed.ncbi.nlm.nih.gov/", "").rstrip("/")

        authors = []
        for authorship in (work.get("authorships") or [])[:MAX_AUTHORS]:
            name = (authorship.get("author") or {}).get("display_name", "")
            if name:
                authors.append(name)

        primary_location = work.get("primary_location") or {}
        source = primary_location.get("source") or {}
        pub_date = work.get("publication_date") or ""

        return RawRecord(
            title=title,
            source=self.name,
            abstract=self._get_abstract(work),
            authors=tuple(authors),
            venue=source.get("display_name") or "",
            year=coerce_year(pub_date[:4] if pub_date else work.get("publication_year")),
            doi=optional_str(doi),
            pmid=optional_str(pmid),
            citation_count=coerce_int(work.get("cited_by_count")),
            url=primary_location.get("landing_page_url") or work.get("id"),
        )

    @staticmethod
    def _get_abstract(work: dict[str, Any]) -> str:
        """
        Rebuild the abstract from OpenAlex's inverted index.

        Format: {"word": [positions], ...}
        """
        abstract_index = work.get("abstract_inverted_index")
        if not isinstance(abstract_index, dict) or not abstract_index:
            return ""

        word_positions = [
            (pos, word)
            for word, positions in abstract_index.items()
            for pos in positions or []
            if isinstance(pos, int)
        ]
        word_positions.sort(key=lambda x: x[0])
        return clean_text(" ".join(word for _, word in word_positions))
