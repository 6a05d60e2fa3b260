"""
Europe PMC Integration

Life-science literature search via the Europe PMC REST API. Covers PubMed,
PMC full text, preprints and patents; ``resultType=core`` returns abstracts
and citation counts.

API Documentation: https://europepmc.org/RestfulWebService
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

EUROPE_PMC_API_BASE = "https://www.ebi.ac.uk/europepmc/webservices/rest"
EUROPE_PMC_SEARCH_URL = f"{EUROPE_PMC_API_BASE}/search"


class EuropePMCClient(BaseAPIClient):
    """
    Europe PMC REST client.

    Usage:
        client = EuropePMCClient()
        records = await client.search('statins AND ("heart failure")', SearchOptions(max_results=20))
    """

    name = SourceName.EUROPE_PMC.value

    def __init__(self, timeout: float = 30.0):
        super().__init__(
            timeout=timeout,
            min_interval=0.1,
            headers={
                "Accept": "application/json",
                "User-Agent": "literature-aggregator/0.3",
            },
        )

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]:
        """
        Search Europe PMC (boolean syntax supported).

        Args:
            query: Europe PMC query string
            options: max_results is capped at 1000 (API page size)
        """
        params = {
            "query": query,
            "format": "json",
            "resultType": "core",
            "pageSize": str(min(options.max_results, 1000)),
        }
        data = await self._make_request(f"{EUROPE_PMC_SEARCH_URL}?{urllib.parse.urlencode(params)}")
        if not isinstance(data, dict):
            raise ParseError("unexpected response shape", source=self.name)

        results = (data.get("resultList") or {}).get("result") or []
        logger.debug(f"Europe PMC: hitCount={data.get('hitCount')}, page={len(results)}")
        return [r for r in (self._normalize_result(item) for item in results) if r is not None]

    def _normalize_result(self, item: dict[str, Any]) -> RawRecord | None:
        title = clean_text(item.get("title"))
        if not title:
            return None

        journal_info = item.get("journalInfo") or {}
        venue = (journal_info.get("journal") or {}).get("title") or item.get("journalTitle") or ""
        authors = tuple(
            name.strip() for name in (item.get("authorString") or "").rstrip(".").split(",") if name.strip()
        )

        pmid = optional_str(item.get("pmid"))
        url = f"https://europepmc.org/article/MED/{pmid}" if pmid else None
        if url is None and item.get("source") and item.get("id"):
            url = f"https://europepmc.org/article/{item['source']}/{item['id']}"

        return RawRecord(
            title=title,
            source=self.name,
            abstract=clean_text(item.get("abstractText")),
            authors=authors,
            venue=venue,
            year=coerce_year(item.get("pubYear") or journal_info.get("yearOfPublication")),
            doi=optional_str(item.get("doi")),
            pmid=pmid,
            citation_count=coerce_int(item.get("citedByCount")),
            url=url,
        )
