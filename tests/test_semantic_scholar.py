"""
Tests for Semantic Scholar client.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import json_response

from literature_aggregator.application.search import SearchOptions
from literature_aggregator.infrastructure.sources import SemanticScholarClient
from literature_aggregator.shared.exceptions import ParseError

PAPER = {
    "paperId": "649def34f8be52c8b66281af98ae884c09aef38b",
    "title": "Omega-3 supplementation in late-life depression",
    "abstract": None,
    "year": 2020,
    "authors": [{"authorId": "1", "name": "A. Author"}, {"authorId": "2", "name": ""}],
    "venue": "JAMA Psychiatry",
    "publicationVenue": {"id": "x", "name": "JAMA psychiatry"},
    "citationCount": 12,
    "externalIds": {"DOI": "10.1001/jamapsychiatry.2020.1", "PubMed": "32000001"},
    "url": None,
}


@pytest.fixture
def client():
    client = SemanticScholarClient()
    client._client = AsyncMock()
    client._min_interval = 0
    return client


class TestSemanticScholarInit:
    def test_api_key_header_and_interval(self):
        client = SemanticScholarClient(api_key="secret")
        assert client._client.headers["x-api-key"] == "secret"
        assert client._min_interval == 0.1

    def test_anonymous_is_throttled(self):
        client = SemanticScholarClient()
        assert "x-api-key" not in client._client.headers
        assert client._min_interval == 1.0


class TestSemanticScholarSearch:
    async def test_search(self, client):
        client._client.get.return_value = json_response({"total": 1, "data": [PAPER]})

        records = await client.search("omega-3 depression", SearchOptions(max_results=250))

        url = client._client.get.call_args[0][0]
        assert "limit=100" in url
        assert "externalIds" in url

        record = records[0]
        assert record.source == "semantic_scholar"
        assert record.authors == ("A. Author",)
        assert record.venue == "JAMA psychiatry"
        assert record.abstract == ""
        assert record.doi == "10.1001/jamapsychiatry.2020.1"
        assert record.pmid == "32000001"
        assert record.citation_count == 12
        assert record.url == "https://www.semanticscholar.org/paper/649def34f8be52c8b66281af98ae884c09aef38b"

    async def test_no_data_key(self, client):
        client._client.get.return_value = json_response({"total": 0})

        assert await client.search("nothing", SearchOptions(max_results=5)) == []

    async def test_list_body_rejected(self, client):
        client._client.get.return_value = json_response([PAPER])

        with pytest.raises(ParseError):
            await client.search("omega-3", SearchOptions(max_results=5))
