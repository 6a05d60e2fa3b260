"""Tests for async_utils.py - CircuitBreaker and run_with_timeout."""

import asyncio

import pytest

from literature_aggregator.shared.async_utils import CircuitBreaker, run_with_timeout
from literature_aggregator.shared.exceptions import ProviderTimeoutError, RateLimitError

# ============================================================
# CircuitBreaker
# ============================================================


async def _fail(breaker):
    with pytest.raises(ValueError):
        async with breaker:
            raise ValueError("boom")


class TestCircuitBreaker:
    async def test_starts_closed(self):
        breaker = CircuitBreaker()
        assert breaker.state == "closed"
        assert breaker.is_open is False

    async def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, name="s2")
        await _fail(breaker)
        assert breaker.state == "closed"
        await _fail(breaker)
        assert breaker.state == "open"

        with pytest.raises(RateLimitError, match="s2: Circuit breaker is open"):
            async with breaker:
                pass

    async def test_success_decrements_failures(self):
        breaker = CircuitBreaker(failure_threshold=2)
        await _fail(breaker)
        async with breaker:
            pass
        await _fail(breaker)
        assert breaker.state == "closed"

    async def test_half_open_recovers(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0.01)
        await _fail(breaker)
        await asyncio.sleep(0.02)

        async with breaker:
            assert breaker.state == "half_open"
        assert breaker.state == "closed"

    async def test_half_open_call_limit(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0.01, half_open_max_calls=1)
        await _fail(breaker)
        await asyncio.sleep(0.02)

        async with breaker:
            with pytest.raises(RateLimitError, match="half-open"):
                async with breaker:
                    pass


# ============================================================
# run_with_timeout
# ============================================================


class TestRunWithTimeout:
    async def test_returns_result_and_elapsed(self):
        async def work():
            return [1, 2, 3]

        result, elapsed_ms = await run_with_timeout(work(), 1.0)

        assert result == [1, 2, 3]
        assert elapsed_ms >= 0

    async def test_timeout_raises_provider_error(self):
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await run_with_timeout(asyncio.sleep(1), 0.01, source="openalex")

        assert exc_info.value.source == "openalex"
        assert exc_info.value.timeout == 0.01

    async def test_other_errors_propagate(self):
        async def broken():
            raise KeyError("data")

        with pytest.raises(KeyError):
            await run_with_timeout(broken(), 1.0)
