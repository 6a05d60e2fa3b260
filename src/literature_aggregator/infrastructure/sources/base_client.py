"""
Base API Client - Common HTTP request pattern with retry, rate limiting, and circuit breaker.

Shared by the JSON-over-HTTP provider adapters:
- Automatic retry on 429 (rate limit) with Retry-After support
- Retry of transport errors with exponential backoff
- Rate limiting (configurable interval between requests)
- Circuit breaker for fault tolerance

Failures are raised as ProviderError subclasses so the orchestrator can
record them; an adapter never reports an outage as an empty result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from typing_extensions import Self

from literature_aggregator.shared.async_utils import CircuitBreaker
from literature_aggregator.shared.exceptions import (
    NetworkError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)


class BaseAPIClient:
    """
    Base class for provider adapters that talk to a JSON API.

    Subclasses set ``name`` (the provider label) and can override:
    - ``_execute_request()``: Add service-specific params/headers
    - ``_handle_expected_status()``: Short-circuit on e.g. 404 = no matches
    - ``_parse_response()``: Custom body extraction

    Example:
        class MyClient(BaseAPIClient):
            name = "my_api"

            def __init__(self):
                super().__init__(base_url="https://api.example.com", min_interval=0.1)

            async def search(self, query, options):
                data = await self._make_request(f"/search?q={query}")
                return [self._normalize(item) for item in data["items"]]
    """

    name: str = "api"
    _MAX_RETRIES: int = 3

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        min_interval: float = 0.1,
        headers: dict[str, str] | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        """
        Initialize base client.

        Args:
            base_url: Base URL for the API (optional, can pass full URLs)
            timeout: Request timeout in seconds
            min_interval: Minimum seconds between requests (rate limiting)
            headers: Default headers for all requests
            circuit_breaker: Optional circuit breaker for fault tolerance.
                             If None, a default one is created (threshold=10, recovery=60s).
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._min_interval = min_interval
        self._last_request_time = 0.0
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers or {},
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=10, recovery_timeout=60.0, name=self.name
        )

    async def _rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request_time = time.time()

    def _build_url(self, url: str) -> str:
        """Build full URL from path or full URL."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}{url}"

    async def _make_request(
        self,
        url: str,
        *,
        method: str = "GET",
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Make HTTP request with retry on 429 and circuit breaker protection.

        Args:
            url: Full URL or path (appended to base_url)
            method: HTTP method (GET or POST)
            data: JSON body for POST requests
            headers: Additional headers for this request

        Returns:
            Parsed JSON body, or whatever ``_handle_expected_status`` returned

        Raises:
            RateLimitError: 429 after all retries, or circuit open
            ServiceUnavailableError: Any other error status
            NetworkError: Transport failure after all retries
            ParseError: Body is not valid JSON
        """
        full_url = self._build_url(url)

        for attempt in range(self._MAX_RETRIES + 1):
            await self._rate_limit()
            try:
                async with self._circuit_breaker:
                    response = await self._execute_request(full_url, method=method, data=data, headers=headers)

                    # Expected error codes (e.g., 404 = no matches)
                    expected = self._handle_expected_status(response, full_url)
                    if expected is not _CONTINUE:
                        return expected

                    if response.status_code == 429:
                        retry_after = self._get_retry_after(response, attempt)
                        if attempt < self._MAX_RETRIES:
                            logger.warning(
                                f"{self.name}: Rate limited (429), "
                                f"retry {attempt + 1}/{self._MAX_RETRIES} in {retry_after:.1f}s"
                            )
                            await asyncio.sleep(retry_after)
                            continue
                        raise RateLimitError(source=self.name, retry_after=retry_after)

                    response.raise_for_status()
                    return self._parse_response(response)

            except httpx.HTTPStatusError as e:
                raise ServiceUnavailableError(
                    e.response.reason_phrase or "HTTP error",
                    source=self.name,
                    status_code=e.response.status_code,
                ) from e
            except httpx.RequestError as e:
                if attempt < self._MAX_RETRIES:
                    logger.warning(f"{self.name} request error (attempt {attempt + 1}): {e}")
                    await asyncio.sleep(2 ** (attempt + 1))
                    continue
                raise NetworkError(str(e) or type(e).__name__, source=self.name) from e

        raise NetworkError("retries exhausted", source=self.name)

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute the actual HTTP request. Override for custom behavior."""
        if method == "POST" and data:
            return await self._client.post(url, json=data, headers=headers or {})
        return await self._client.get(url, headers=headers or {})

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """
        Handle expected non-200 status codes that shouldn't raise.

        Return a value to short-circuit (e.g., an empty payload for 404).
        Return the sentinel _CONTINUE to continue normal processing.
        """
        return _CONTINUE

    def _parse_response(self, response: httpx.Response) -> Any:
        """Parse response body. Override for custom extraction logic."""
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"invalid JSON body: {e}", source=self.name) from e

    @staticmethod
    def _get_retry_after(response: httpx.Response, attempt: int) -> float:
        """Extract Retry-After from response headers, with exponential backoff fallback."""
        try:
            return float(response.headers.get("Retry-After", 2 ** (attempt + 1)))
        except (ValueError, TypeError):
            return float(2 ** (attempt + 1))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


# Sentinel object to indicate "continue normal processing" from _handle_expected_status
_CONTINUE = object()
