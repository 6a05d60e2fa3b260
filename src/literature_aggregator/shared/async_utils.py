"""
Async Utilities for Provider Calls.

Python 3.12+ features used:
- Type parameter syntax for generic functions
- asyncio.timeout context manager (3.11+)

Provides:
- Circuit breaker shared by the HTTP adapters
- Timed execution that reports elapsed time and converts timeouts into
  ProviderTimeoutError
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .exceptions import ProviderTimeoutError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for fault tolerance.

    States:
    - CLOSED: Normal operation
    - OPEN: Failing, reject requests immediately
    - HALF_OPEN: Testing if service recovered

    Example:
        breaker = CircuitBreaker(failure_threshold=5)

        async with breaker:
            result = await risky_api_call()
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3
    name: str = "circuit"

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default="closed")
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting requests)."""
        if self._state == "open":
            if self._last_failure_time is not None:
                if time.monotonic() - self._last_failure_time > self.recovery_timeout:
                    return False  # Move to half-open
            return True
        return False

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise RateLimitError(
                    "Circuit breaker is open",
                    source=self.name,
                    retry_after=self.recovery_timeout,
                )

            if self._state == "open":
                self._state = "half_open"
                self._half_open_calls = 0

            if self._state == "half_open":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise RateLimitError(
                        "Circuit breaker is half-open (max calls reached)",
                        source=self.name,
                        retry_after=self.recovery_timeout / 2,
                    )
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if exc_val is not None:
                self._failure_count += 1
                self._last_failure_time = time.monotonic()

                if self._failure_count >= self.failure_threshold:
                    self._state = "open"
                    logger.warning(f"{self.name}: circuit breaker opened after {self._failure_count} failures")
            else:
                if self._state == "half_open":
                    self._state = "closed"
                    self._failure_count = 0
                    logger.info(f"{self.name}: circuit breaker closed (recovered)")
                elif self._state == "closed":
                    self._failure_count = max(0, self._failure_count - 1)


# =============================================================================
# Timed Execution
# =============================================================================


async def run_with_timeout(
    coro: Awaitable[T],
    timeout: float,
    *,
    source: str | None = None,
) -> tuple[T, float]:
    """
    Await ``coro`` under a time budget.

    Args:
        coro: Awaitable to execute
        timeout: Budget in seconds
        source: Provider name used in the timeout error

    Returns:
        Tuple of (result, elapsed milliseconds)

    Raises:
        ProviderTimeoutError: If the budget is exhausted
    """
    start = time.perf_counter()
    try:
        async with asyncio.timeout(timeout):
            result = await coro
    except TimeoutError as e:
        raise ProviderTimeoutError(timeout, source=source) from e
    return result, (time.perf_counter() - start) * 1000
