"""
openFDA Integration

Regulatory search over FDA drug labels (Structured Product Labeling).
Only consulted for drug, device and safety questions; the orchestrator
gates it on regulatory query terms.

API Documentation: https://open.fda.gov/apis/drug/label/

Query construction:
    Each query term (longer than 2 characters) is OR-ed across the label
    fields below; the per-term groups are AND-ed:

    (openfda.brand_name:"statin" OR ... OR purpose:"statin") AND (...)
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import TYPE_CHECKING, Any

from literature_aggregator.domain.entities import RawRecord, SourceName
from literature_aggregator.shared.exceptions import ParseError

from .base_client import _CONTINUE, BaseAPIClient
from .parsing import clean_text, coerce_year

if TYPE_CHECKING:
    import httpx

    from literature_aggregator.application.search.source_orchestrator import SearchOptions

logger = logging.getLogger(__name__)

OPENFDA_API_BASE = "https://api.fda.gov"
OPENFDA_LABEL_URL = f"{OPENFDA_API_BASE}/drug/label.json"
FDA_LABELING_URL = "https://www.fda.gov/drugs/drug-approvals-and-databases/drug-labeling"

LABEL_SEARCH_FIELDS = (
    "openfda.brand_name",
    "openfda.generic_name",
    "indications_and_usage",
    "active_ingredient",
    "purpose",
)

# Abstract sections: (label field, heading, max characters)
ABSTRACT_SECTIONS = (
    ("purpose", "Purpose", None),
    ("active_ingredient", "Active Ingredient", None),
    ("indications_and_usage", "Indications", 200),
    ("warnings", "Warnings", 200),
    ("contraindications", "Contraindications", 150),
)

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")

# openFDA allows 100 results per request
MAX_LIMIT = 100


def build_label_query(query: str) -> str:
    """Field search expression for the drug label endpoint."""
    cleaned = _WHITESPACE.sub(" ", _NON_WORD.sub(" ", query.lower())).strip()
    terms = [t for t in cleaned.split(" ") if len(t) > 2]
    if not terms:
        return cleaned
    groups = [" OR ".join(f'{field}:"{term}"' for field in LABEL_SEARCH_FIELDS) for term in terms]
    return f"({') AND ('.join(groups)})"


def _first(label: dict[str, Any], key: str) -> str:
    values = label.get(key) or []
    if isinstance(values, list):
        return str(values[0]) if values else ""
    return str(values)


class OpenFDAClient(BaseAPIClient):
    """
    openFDA drug label client.

    Records are labels, not papers: the title names the product, the
    manufacturer stands in for the author and the label sections form the
    abstract.
    """

    name = SourceName.OPENFDA.value

    def __init__(self, api_key: str | None = None, timeout: float = 30.0):
        """
        Initialize client.

        Args:
            api_key: Optional openFDA key (raises the daily request quota)
            timeout: Request timeout in seconds
        """
        self._api_key = api_key
        super().__init__(
            timeout=timeout,
            min_interval=0.25,
            headers={"User-Agent": "literature-aggregator/0.3 (medical-research)"},
        )

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """openFDA answers 404 when nothing matched."""
        if response.status_code == 404:
            logger.debug("openFDA: no matching labels")
            return {"results": []}
        return _CONTINUE

    async def search(self, query: str, options: SearchOptions) -> list[RawRecord]:
        params = {
            "search": build_label_query(query),
            "limit": str(min(options.max_results, MAX_LIMIT)),
        }
        if self._api_key:
            params["api_key"] = self._api_key
        data = await self._make_request(f"{OPENFDA_LABEL_URL}?{urllib.parse.urlencode(params)}")
        if not isinstance(data, dict):
            raise ParseError("unexpected response shape", source=self.name)

        return [self._normalize_label(label) for label in data.get("results") or []]

    def _normalize_label(self, label: dict[str, Any]) -> RawRecord:
        openfda = label.get("openfda") or {}
        brand = _first(openfda, "brand_name") or "Unknown Drug"
        generic = _first(openfda, "generic_name")
        manufacturer = _first(openfda, "manufacturer_name") or "Unknown Manufacturer"

        if generic and generic.lower() != brand.lower():
            title = f"{brand} ({generic}) - FDA Drug Label"
        else:
            title = f"{brand} - FDA Drug Label"

        return RawRecord(
            title=title,
            source=self.name,
            abstract=self._build_abstract(label),
            authors=(manufacturer,),
            venue="FDA Drug Labels Database",
            year=coerce_year(str(label.get("effective_time") or "")[:4]),
            url=FDA_LABELING_URL,
        )

    @staticmethod
    def _build_abstract(label: dict[str, Any]) -> str:
        parts = []
        for key, heading, limit in ABSTRACT_SECTIONS:
            text = clean_text(_first(label, key))
            if not text:
                continue
            if limit is not None and len(text) > limit:
                text = f"{text[:limit]}..."
            parts.append(f"{heading}: {text}")
        return " ".join(parts)
