"""
PubMed Integration - NCBI Entrez esearch + efetch.

The primary provider: its hit count decides whether the orchestrator runs a
gap-fill round. Queries are sent in PubMed syntax (MeSH terms allowed).

Entrez is a blocking client, so every call runs in ``asyncio.to_thread``
behind a shared rate limiter (3 req/s anonymous, 10 req/s with API key).
Transient NCBI errors ("backend failed", "rate limit", ...) are retried with
exponential backoff; anything else surfaces as a ProviderError.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import TYPE_CHECKING, Any

from Bio import Entrez
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from literature_aggregator.domain.entities import RawRecord, SourceName
from literature_aggregator.shared.exceptions import AggregatorError, ParseError, ProviderError, is_retryable_error

from .parsing import clean_text, coerce_year, optional_str

if TYPE_CHECKING:
    from literature_aggregator.application.search.source_orchestrator import SearchOptions

logger = logging.getLogger(__name__)

# Retry settings for transient NCBI errors
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds

DEFAULT_EMAIL = "literature-aggregator@example.com"


class PubMedClient:
    """
    PubMed adapter over Bio.Entrez.

    Usage:
        client = PubMedClient(email="you@example.org", api_key=None)
        records = await client.search("statins OR (Cardiovascular Diseases[MeSH])", SearchOptions(20))
    """

    name = SourceName.PUBMED.value

    def __init__(self, email: str | None = None, api_key: str | None = None):
        """
        Initialize Entrez configuration.

        Args:
            email: Email address required by NCBI Entrez API.
            api_key: Optional NCBI API key for higher rate limits (10/sec vs 3/sec).
        """
        Entrez.email = email or DEFAULT_EMAIL  # type: ignore[assignment]
        if api_key:
            Entrez.api_key = api_key  # type: ignore[assignment]
        # Retries are handled here, not inside Entrez
        Entrez.max_tries = 1

        self._email = email or DEFAULT_EMAIL
        self._api_key = api_key
        self._min_interval = 0.1 if api_key else 0.34
        self._last_request_time = 0.0
        self._rate_lock = asyncio.Lock()

    async def _rate_limit(self) -> None:
        """Ensure minimum interval between Entrez requests."""
        async with self._rate_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.time()

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]:
        try:
            id_list = await self._search_ids(query, options.max_results)
            if not id_list:
                return []
            papers = await self._fetch(id_list)
        except AggregatorError:
            raise
        except Exception as e:
            raise ProviderError(str(e) or type(e).__name__, source=self.name) from e

        if not hasattr(papers, "get"):
            raise ParseError("efetch returned no article set", source=self.name)

        records = []
        for article in papers.get("PubmedArticle", []):
            record = self._parse_pubmed_article(article)
            if record is not None:
                records.append(record)
        logger.debug(f"PubMed: {len(records)}/{len(id_list)} articles parsed")
        return records

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=RETRY_DELAY, min=RETRY_DELAY, max=RETRY_DELAY * 4),
        retry=retry_if_exception(is_retryable_error),
        reraise=True,
    )
    async def _search_ids(self, query: str, retmax: int) -> list[str]:
        await self._rate_limit()
        handle = await asyncio.to_thread(Entrez.esearch, db="pubmed", term=query, retmax=retmax, sort="relevance")
        try:
            record = await asyncio.to_thread(Entrez.read, handle)
        finally:
            handle.close()

        # NCBI warns on query translation issues (phrase not found, ...)
        for warn_type, warn_msgs in (record.get("WarningList") or {}).items():
            if isinstance(warn_msgs, list) and warn_msgs:
                logger.warning(f"NCBI {warn_type}: {warn_msgs}")

        return [str(pmid) for pmid in record.get("IdList", [])]

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=RETRY_DELAY, min=RETRY_DELAY, max=RETRY_DELAY * 4),
        retry=retry_if_exception(is_retryable_error),
        reraise=True,
    )
    async def _fetch(self, id_list: list[str]) -> Any:
        await self._rate_limit()
        handle = await asyncio.to_thread(Entrez.efetch, db="pubmed", id=id_list, retmode="xml")
        try:
            return await asyncio.to_thread(Entrez.read, handle)
        finally:
            handle.close()

    # =========================================================================
    # Parsing
    # =========================================================================

    def _parse_pubmed_article(self, article: dict) -> RawRecord | None:
        """Map one Entrez PubmedArticle onto a RawRecord."""
        medline_citation = article.get("MedlineCitation", {})
        article_data = medline_citation.get("Article", {})
        title = clean_text(article_data.get("ArticleTitle"))
        if not title:
            return None

        pmid = optional_str(medline_citation.get("PMID"))
        journal, year = self._extract_journal_info(article_data)
        return RawRecord(
            title=title,
            source=self.name,
            abstract=self._extract_abstract(article_data),
            authors=self._extract_authors(article_data),
            venue=journal,
            year=year,
            doi=self._extract_doi(article.get("PubmedData", {})),
            pmid=pmid,
            url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/" if pmid else None,
        )

    @staticmethod
    def _extract_authors(article_data: dict) -> tuple[str, ...]:
        authors = []
        for author in article_data.get("AuthorList", []):
            if "LastName" in author:
                authors.append(f"{author['LastName']} {author.get('ForeName', '')}".strip())
            elif "CollectiveName" in author:
                authors.append(str(author["CollectiveName"]))
        return tuple(authors)

    @staticmethod
    def _extract_abstract(article_data: dict) -> str:
        abstract_parts = article_data.get("Abstract", {}).get("AbstractText", "")
        if isinstance(abstract_parts, list):
            return clean_text(" ".join(str(part) for part in abstract_parts))
        return clean_text(abstract_parts)

    @staticmethod
    def _extract_journal_info(article_data: dict) -> tuple[str, int | None]:
        journal_data = article_data.get("Journal", {})
        pub_date = journal_data.get("JournalIssue", {}).get("PubDate", {})

        year = pub_date.get("Year", "")
        if not year and "MedlineDate" in pub_date:
            year_match = re.search(r"(\d{4})", pub_date["MedlineDate"])
            if year_match:
                year = year_match.group(1)

        return str(journal_data.get("Title", "")), coerce_year(year)

    @staticmethod
    def _extract_doi(pubmed_data: dict) -> str | None:
        for aid in pubmed_data.get("ArticleIdList", []):
            if hasattr(aid, "attributes") and aid.attributes.get("IdType") == "doi":
                return optional_str(aid)
        return None

    async def close(self) -> None:
        """Entrez keeps no open connections."""
