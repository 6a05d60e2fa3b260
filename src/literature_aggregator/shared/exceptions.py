"""
Unified Exception Hierarchy for the Literature Aggregator.

Only validation errors ever cross the pipeline boundary. Provider errors are
raised by adapters and absorbed by the source orchestrator, which records
them in the request diagnostics.

Exception Hierarchy:
    AggregatorError (base)
    ├── ProviderError
    │   ├── RateLimitError
    │   ├── NetworkError
    │   ├── ProviderTimeoutError
    │   └── ServiceUnavailableError
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    ├── DataError
    │   └── ParseError
    └── ConfigurationError
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = auto()  # Recoverable, can continue
    ERROR = auto()  # Failed but can retry
    CRITICAL = auto()  # Cannot continue
    TRANSIENT = auto()  # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""

    PROVIDER = "provider"
    VALIDATION = "validation"
    DATA = "data"
    CONFIGURATION = "config"
    NETWORK = "network"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context attached to an error."""

    source: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None


class AggregatorError(Exception):
    """
    Base exception for all aggregator errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.PROVIDER,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.source:
            result["source"] = self.context.source
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(AggregatorError):
    """Base class for failures of an external literature source."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
        retryable: bool = True,
        category: ErrorCategory = ErrorCategory.PROVIDER,
    ) -> None:
        ctx = context or ErrorContext()
        if source and not ctx.source:
            ctx = replace(ctx, source=source)
        prefix = f"{ctx.source}: " if ctx.source else ""
        super().__init__(
            f"{prefix}{message}",
            context=ctx,
            severity=ErrorSeverity.ERROR,
            category=category,
            retryable=retryable,
        )

    @property
    def source(self) -> str | None:
        return self.context.source


class RateLimitError(ProviderError):
    """Raised when a provider rate limit is exceeded or a circuit is open."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        source: str | None = None,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = replace(
            ctx,
            suggestion=ctx.suggestion or "Wait and retry the request",
            retry_after=retry_after,
        )
        super().__init__(message, source=source, context=ctx, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class NetworkError(ProviderError):
    """Raised for network connectivity issues."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            source=source,
            context=context,
            retryable=True,
            category=ErrorCategory.NETWORK,
        )


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds its time budget."""

    def __init__(
        self,
        timeout: float,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            f"timed out after {timeout:.1f}s",
            source=source,
            context=context,
            retryable=True,
            category=ErrorCategory.NETWORK,
        )
        self.timeout = timeout
        self.severity = ErrorSeverity.TRANSIENT


class ServiceUnavailableError(ProviderError):
    """Raised when the external service answers with an error status."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        source: str | None = None,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message, source=source, context=context, retryable=True)
        self.status_code = status_code
        self.severity = ErrorSeverity.TRANSIENT


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(AggregatorError):
    """Base class for validation errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when the search query is empty or malformed."""

    def __init__(
        self,
        query: str | None,
        reason: str = "Query is required",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = replace(
            ctx,
            input_value=query,
            suggestion=ctx.suggestion or "Provide a non-empty natural-language query",
        )
        super().__init__(f"Invalid query: {reason}", context=ctx)
        self.query = query


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = replace(ctx, input_value=value, suggestion=f"Expected {expected}")
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )
        self.param_name = param_name


# =============================================================================
# Data Errors
# =============================================================================


class DataError(AggregatorError):
    """Base class for data-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.DATA,
            retryable=False,
        )


class ParseError(DataError):
    """Raised when a provider response cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        if source and not ctx.source:
            ctx = replace(ctx, source=source)
        full_msg = f"Parse error: {message}"
        if ctx.source:
            full_msg = f"Parse error ({ctx.source}): {message}"
        super().__init__(full_msg, context=ctx)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(AggregatorError):
    """Raised for invalid static configuration."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error is transient."""
    if isinstance(error, AggregatorError):
        return error.retryable

    error_str = str(error).lower()
    transient_patterns = [
        "rate limit",
        "too many requests",
        "temporarily unavailable",
        "service unavailable",
        "backend failed",
        "connection reset",
        "timeout",
        "database is not supported",  # NCBI transient
    ]
    return any(pattern in error_str for pattern in transient_patterns)
