"""
Shared building blocks for the Literature Aggregator.

Provides:
- Unified exception hierarchy
- Async utilities for provider calls (circuit breaker, timed execution)
"""

from .async_utils import CircuitBreaker, run_with_timeout
from .exceptions import (
    AggregatorError,
    ConfigurationError,
    DataError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InvalidParameterError,
    InvalidQueryError,
    NetworkError,
    ParseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
    is_retryable_error,
)

__all__ = [
    # Errors
    "AggregatorError",
    "ConfigurationError",
    "DataError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InvalidParameterError",
    "InvalidQueryError",
    "NetworkError",
    "ParseError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ServiceUnavailableError",
    "ValidationError",
    "is_retryable_error",
    # Async
    "CircuitBreaker",
    "run_with_timeout",
]
