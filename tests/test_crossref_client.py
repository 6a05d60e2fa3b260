"""
Tests for CrossRef API client.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import json_response

from literature_aggregator.application.search import SearchOptions
from literature_aggregator.infrastructure.sources import CrossRefClient
from literature_aggregator.shared.exceptions import ParseError

WORK = {
    "DOI": "10.1161/STROKEAHA.119.025",
    "title": ["<i>Statins</i> and recurrent stroke"],
    "author": [
        {"given": "Jane", "family": "Doe"},
        {"family": "Roe"},
        {"name": "Stroke Prevention Consortium"},
    ],
    "container-title": ["Stroke"],
    "published-print": {"date-parts": [[2019, 5]]},
    "issued": {"date-parts": [[2018, 12]]},
    "is-referenced-by-count": 42,
    "abstract": "<jats:p>Statins lowered recurrence.</jats:p>",
}


@pytest.fixture
def client():
    client = CrossRefClient(email="lab@example.org")
    client._client = AsyncMock()
    client._min_interval = 0
    return client


# =============================================================================
# Search
# =============================================================================


class TestCrossRefSearch:
    async def test_search_normalizes_works(self, client):
        client._client.get.return_value = json_response(
            {"status": "ok", "message": {"items": [WORK, {"title": []}]}}
        )

        records = await client.search("statins AND stroke", SearchOptions(max_results=20))

        assert len(records) == 1
        record = records[0]
        assert record.title == "Statins and recurrent stroke"
        assert record.authors == ("Jane Doe", "Roe", "Stroke Prevention Consortium")
        assert record.venue == "Stroke"
        assert record.year == 2019
        assert record.doi == "10.1161/STROKEAHA.119.025"
        assert record.citation_count == 42
        assert record.abstract == "Statins lowered recurrence."
        assert record.url == "https://doi.org/10.1161/STROKEAHA.119.025"
        assert record.source == "crossref"

    async def test_request_carries_mailto_and_rows(self, client):
        client._client.get.return_value = json_response({"message": {"items": []}})

        await client.search("statins", SearchOptions(max_results=5000))

        url = client._client.get.call_args[0][0]
        assert url.startswith("https://api.crossref.org/works?query=statins")
        assert "rows=1000" in url
        assert "sort=relevance" in url
        assert url.endswith("mailto=lab%40example.org")

    async def test_not_found_is_empty(self, client):
        client._client.get.return_value = json_response({}, status_code=404)

        assert await client.search("nothing", SearchOptions(max_results=5)) == []

    async def test_unexpected_shape(self, client):
        client._client.get.return_value = json_response({"message": ["not", "a", "dict"]})

        with pytest.raises(ParseError):
            await client.search("statins", SearchOptions(max_results=5))


# =============================================================================
# Field extraction
# =============================================================================


class TestCrossRefFields:
    def test_year_prefers_print_date(self):
        assert CrossRefClient.extract_publication_year(WORK) == 2019

    def test_year_falls_back(self):
        work = {"published-online": {"date-parts": [[None]]}, "created": {"date-parts": [[2020, 1, 2]]}}
        assert CrossRefClient.extract_publication_year(work) == 2020

    def test_year_missing(self):
        assert CrossRefClient.extract_publication_year({}) is None

    def test_default_email(self):
        assert CrossRefClient()._email.endswith("@example.com")
