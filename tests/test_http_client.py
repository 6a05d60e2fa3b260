"""
Tests for BaseAPIClient - retry, status mapping and circuit breaker.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from conftest import json_response

from literature_aggregator.application.search import ProviderSpec, SourceOrchestrator
from literature_aggregator.infrastructure.sources import BaseAPIClient
from literature_aggregator.shared.async_utils import CircuitBreaker
from literature_aggregator.shared.exceptions import (
    NetworkError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)


class _EchoClient(BaseAPIClient):
    name = "echo"

    def __init__(self):
        super().__init__(base_url="https://api.example.org/", min_interval=0)


class _EchoSearchClient(_EchoClient):
    async def search(self, query, options):
        await self._make_request("/search")
        return []


@pytest.fixture
def client():
    client = _EchoClient()
    client._client = AsyncMock()
    return client


def _status_error_response(status_code, reason):
    response = json_response({}, status_code=status_code)
    response.reason_phrase = reason
    response.raise_for_status.side_effect = httpx.HTTPStatusError(reason, request=MagicMock(), response=response)
    return response


# =============================================================================
# Happy path
# =============================================================================


class TestRequest:
    async def test_relative_url_joined_with_base(self, client):
        client._client.get.return_value = json_response({"ok": True})

        assert await client._make_request("/search?q=x") == {"ok": True}
        assert client._client.get.call_args[0][0] == "https://api.example.org/search?q=x"

    async def test_absolute_url_untouched(self, client):
        client._client.get.return_value = json_response([])

        await client._make_request("https://other.example.org/v1")

        assert client._client.get.call_args[0][0] == "https://other.example.org/v1"

    async def test_post_sends_json_body(self, client):
        client._client.post.return_value = json_response({"ok": True})

        await client._make_request("/batch", method="POST", data={"ids": [1, 2]})

        client._client.post.assert_awaited_once()
        assert client._client.post.call_args.kwargs["json"] == {"ids": [1, 2]}

    async def test_invalid_json_raises_parse_error(self, client):
        response = json_response(None)
        response.json.side_effect = ValueError("Expecting value")
        client._client.get.return_value = response

        with pytest.raises(ParseError, match="invalid JSON"):
            await client._make_request("/search")


# =============================================================================
# Error mapping
# =============================================================================


class TestErrors:
    async def test_rate_limit_retried_then_succeeds(self, client):
        limited = json_response({}, status_code=429)
        limited.headers = {"Retry-After": "0"}
        client._client.get.side_effect = [limited, json_response({"ok": True})]

        assert await client._make_request("/search") == {"ok": True}
        assert client._client.get.await_count == 2

    async def test_rate_limit_exhausted(self, client):
        client._MAX_RETRIES = 0
        client._client.get.return_value = json_response({}, status_code=429)

        with pytest.raises(RateLimitError) as exc_info:
            await client._make_request("/search")
        assert exc_info.value.source == "echo"

    async def test_http_error_status(self, client):
        client._client.get.return_value = _status_error_response(503, "Service Unavailable")

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await client._make_request("/search")

        assert exc_info.value.status_code == 503
        assert "HTTP 503" in str(exc_info.value)
        assert client._client.get.await_count == 1

    async def test_transport_error(self, client):
        client._MAX_RETRIES = 0
        client._client.get.side_effect = httpx.ConnectError("connection refused", request=MagicMock())

        with pytest.raises(NetworkError, match="connection refused"):
            await client._make_request("/search")

    async def test_open_circuit_rejects_without_request(self, client):
        client._circuit_breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, name="echo")
        client._client.get.return_value = _status_error_response(500, "Internal Server Error")

        with pytest.raises(ServiceUnavailableError):
            await client._make_request("/search")
        with pytest.raises(RateLimitError, match="Circuit breaker is open"):
            await client._make_request("/search")

        assert client._client.get.await_count == 1

    async def test_breaker_state_carries_over_between_requests(self, config, expander):
        adapter = _EchoSearchClient()
        adapter._client = AsyncMock()
        adapter._client.get.return_value = _status_error_response(500, "Internal Server Error")
        adapter._circuit_breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, name="echo")
        orchestrator = SourceOrchestrator([ProviderSpec(adapter)], config, expander)
        expanded = expander.expand("omega-3 and depression")

        first = await orchestrator.gather(expanded)
        second = await orchestrator.gather(expanded)

        assert first.providers_failed == second.providers_failed == ("echo",)
        assert "HTTP 500" in first.outcomes[0].error
        assert "Circuit breaker is open" in second.outcomes[0].error
        assert adapter._client.get.await_count == 1


class TestLifecycle:
    async def test_context_manager_closes_client(self):
        client = _EchoClient()
        client._client = AsyncMock()

        async with client:
            pass

        client._client.aclose.assert_awaited_once()

    def test_retry_after_fallback(self):
        response = json_response({}, status_code=429)
        response.headers = {"Retry-After": "soon"}
        assert BaseAPIClient._get_retry_after(response, attempt=1) == 4.0
