"""
Structured error types for querybench.

Every failure the benchmark can report is a ``BenchError`` carrying a
category, a retryable flag, structured context and an optional chained
cause. The scheduler relies on this: a probe run that raises a
``BenchError`` is recorded as a failed run, anything else is a bug and
propagates.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        BenchError                                │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError            DatabaseError        ValidationError  │
        │  (retryable=True)          (DATABASE)           (VALIDATION)     │
        │       │                        │                     │           │
        │  DatabaseConnectionError   QueryError            EmptyDataset    │
        │                            StatementAcquisitionFailed            │
        │                            RowExtractionFailed                   │
        │                            ResourceCloseFailed                   │
        │                                                                  │
        │  AggregationError          ConfigError          OrchestrationError│
        │  (INTERNAL)                (CONFIG)             (ORCHESTRATION)  │
        │       │                        │                     │           │
        │  DivisionByZero            MissingConfigError    BenchmarkAborted│
        │  InvalidUnitMismatch       InvalidConfigError                    │
        │  UnsupportedUnitConversion                                       │
        │  AggregateFrozen                                                 │
        └─────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Catch ``AggregationError`` generically to paper over bad input
    ✅ DO: Check the guard condition before calling (e.g. zero denominators)

    ❌ DON'T: Raise ``ResourceCloseFailed``
    ✅ DO: Build it for the log line and carry on

Usage:
    from querybench.core.errors import StatementAcquisitionFailed

    raise StatementAcquisitionFailed("no statement", cause=exc).with_context(
        strategy="connection_reuse", attempts=3
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification in logs and reports."""

    NETWORK = "NETWORK"           # Connection refused, DNS, socket resets
    DATABASE = "DATABASE"         # Statement, query, extraction failures
    VALIDATION = "VALIDATION"     # Bad or missing data
    CONFIG = "CONFIG"             # Missing or invalid settings
    ORCHESTRATION = "ORCHESTRATION"  # Scheduler decisions
    INTERNAL = "INTERNAL"         # Programmer errors in aggregation code
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in ``to_dict()``; anything without a
    dedicated field lands in ``metadata``.

    Examples:
        >>> ctx = ErrorContext(strategy="pooled_template", operation="get_ids")
        >>> ctx.to_dict()
        {'strategy': 'pooled_template', 'operation': 'get_ids'}
    """

    strategy: str | None = None
    operation: str | None = None
    loop: int | None = None
    run: int | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["strategy", "operation", "loop", "run", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class BenchError(Exception):
    """
    Base exception for all querybench errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override both per instance.

    Examples:
        >>> error = BenchError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BenchError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Failed").with_context(strategy="connection_reuse")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TransientError(BenchError):
    """Temporary error that may succeed if attempted again."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """The connection provider could not hand out a connection."""

    default_category = ErrorCategory.DATABASE


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(BenchError):
    """Database statement, query or result error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(DatabaseError):
    """Executing a SQL query failed."""

    pass


class StatementAcquisitionFailed(DatabaseError):
    """
    No statement could be prepared, even after refreshing the connection.

    Raised by the strict final attempt of a bounded retry loop; ``attempts``
    holds the per-attempt outcomes that led here.
    """

    def __init__(self, message: str, *, attempts: list[Any] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.attempts = list(attempts or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["attempts"] = len(self.attempts)
        return result


class RowExtractionFailed(DatabaseError):
    """A result row could not be mapped into a record."""

    def __init__(self, message: str, *, row: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.row = row


class ResourceCloseFailed(DatabaseError):
    """
    Closing a cursor, result or connection failed.

    Recoverable by definition: built for the log line, never raised.
    """

    def __init__(self, resource: str, *, cause: Exception | None = None):
        self.resource = resource
        super().__init__(f"Failed to close {resource}", cause=cause)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(BenchError):
    """Data validation error. Never retryable."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class EmptyDataset(ValidationError):
    """The benchmark tables hold nothing to probe."""

    pass


# =============================================================================
# AGGREGATION GUARDS
# =============================================================================


class AggregationError(BenchError):
    """Misuse of the latency aggregation API."""

    default_category = ErrorCategory.INTERNAL
    default_retryable = False


class DivisionByZero(AggregationError):
    """A percentage or average was requested over a zero denominator."""

    pass


class InvalidUnitMismatch(AggregationError):
    """Aggregates with different (or no inferable) units were combined."""

    pass


class UnsupportedUnitConversion(AggregationError):
    """A conversion from a coarser to a finer time unit was requested."""

    def __init__(self, source: Any, target: Any):
        self.source = source
        self.target = target
        super().__init__(f"Not allowed to go from {source} to {target}")


class AggregateFrozen(AggregationError):
    """An emitted (frozen) aggregate was mutated."""

    pass


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(BenchError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class OrchestrationError(BenchError):
    """Scheduler error."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class BenchmarkAborted(OrchestrationError):
    """A strategy failed too often within one loop."""

    def __init__(self, message: str, *, loop_result: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.loop_result = loop_result
        self.completed: Any = None


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BenchError",
    "TransientError",
    "DatabaseConnectionError",
    "DatabaseError",
    "QueryError",
    "StatementAcquisitionFailed",
    "RowExtractionFailed",
    "ResourceCloseFailed",
    "ValidationError",
    "EmptyDataset",
    "AggregationError",
    "DivisionByZero",
    "InvalidUnitMismatch",
    "UnsupportedUnitConversion",
    "AggregateFrozen",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "OrchestrationError",
    "BenchmarkAborted",
]
