"""
CrossRef API Integration

Work search over CrossRef's metadata API. CrossRef is the DOI registration
agency, so every record it returns carries a DOI.

API Documentation: https://api.crossref.org/swagger-ui/index.html

Rate Limits:
- Polite pool (with email): ~50 req/sec
- Anonymous: ~1 req/sec (strongly discouraged)
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import TYPE_CHECKING, Any

from literature_aggregator.domain.entities import RawRecord, SourceName
from literature_aggregator.shared.exceptions import ParseError

from .base_client import _CONTINUE, BaseAPIClient
from .parsing import clean_text, coerce_int, optional_str

if TYPE_CHECKING:
    import httpx

    from literature_aggregator.application.search.source_orchestrator import SearchOptions

logger = logging.getLogger(__name__)

# CrossRef API endpoint
CROSSREF_API_BASE = "https://api.crossref.org"

# Default contact email (required for polite pool)
DEFAULT_EMAIL = "literature-aggregator@example.com"

# Date fields in order of preference
DATE_FIELDS = ("published-print", "published-online", "published", "issued", "created")


class CrossRefClient(BaseAPIClient):
    """
    CrossRef API client.

    Note:
        Always provide your email for access to the "polite pool" with
        higher rate limits. Without email, requests are severely throttled.
    """

    name = SourceName.CROSSREF.value

    def __init__(self, email: str | None = None, timeout: float = 30.0):
        """
        Initialize CrossRef client.

        Args:
            email: Contact email for polite pool access (strongly recommended)
            timeout: Request timeout in seconds
        """
        self._email = email or DEFAULT_EMAIL
        super().__init__(
            base_url=CROSSREF_API_BASE,
            timeout=timeout,
            min_interval=0.05,
            headers={
                "User-Agent": f"literature-aggregator/0.3 (mailto:{self._email})",
                "Accept": "application/json",
            },
        )

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Add mailto parameter for polite pool access."""
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}mailto={urllib.parse.quote(self._email)}"
        return await super()._execute_request(url, method=method, data=data, headers=headers)

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """404 means nothing matched."""
        if response.status_code == 404:
            logger.debug(f"CrossRef: no works - {url}")
            return {"items": []}
        return _CONTINUE

    def _parse_response(self, response: httpx.Response) -> Any:
        """Extract 'message' key from CrossRef JSON responses."""
        data = super()._parse_response(response)
        if isinstance(data, dict):
            return data.get("message", data)
        return data

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]:
        """
        Search works by relevance.

        Args:
            query: Free-text query (title, author, abstract)
            options: max_results is capped at 1000
        """
        params = {
            "query": query,
            "rows": str(min(options.max_results, 1000)),
            "sort": "relevance",
            "order": "desc",
        }
        data = await self._make_request(f"/works?{urllib.parse.urlencode(params)}")
        if not isinstance(data, dict):
            raise ParseError("unexpected response shape", source=self.name)

        items = data.get("items") or []
        return [r for r in (self._normalize_work(w) for w in items) if r is not None]

    def _normalize_work(self, work: dict[str, Any]) -> RawRecord | None:
        titles = work.get("title") or []
        title = clean_text(titles[0] if isinstance(titles, list) and titles else titles)
        if not title:
            return None

        authors = []
        for author in work.get("author") or []:
            name = " ".join(part for part in (author.get("given"), author.get("family")) if part)
            if not name:
                name = author.get("name", "")
            if name:
                authors.append(name)

        container = work.get("container-title") or []
        venue = container[0] if isinstance(container, list) and container else str(container or "")

        doi = optional_str(work.get("DOI"))
        return RawRecord(
            title=title,
            source=self.name,
            abstract=clean_text(work.get("abstract")),
            authors=tuple(authors),
            venue=venue,
            year=self.extract_publication_year(work),
            doi=doi,
            citation_count=coerce_int(work.get("is-referenced-by-count")),
            url=work.get("URL") or (f"https://doi.org/{doi}" if doi else None),
        )

    @staticmethod
    def extract_publication_year(work: dict[str, Any]) -> int | None:
        """
        Extract the publication year from a CrossRef work.

        CrossRef has multiple date fields with different granularity;
        the first one with date-parts wins.
        """
        for field in DATE_FIELDS:
            date_parts = (work.get(field) or {}).get("date-parts") or [[]]
            if date_parts and date_parts[0] and date_parts[0][0]:
                return coerce_int(date_parts[0][0])
        return None
