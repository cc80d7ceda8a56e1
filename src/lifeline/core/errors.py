"""
Structured error types for the LifeLine data-access layer.

Every failure that leaves the adapters is a ``LifelineError`` subclass that
carries a category, a retry flag and structured context, so callers and log
aggregation can route on type instead of parsing messages.

Manifesto:
    - **Typed hierarchy:** one error type per failure mode of the adapters
    - **Explicit retry semantics:** each error knows whether a retry can help
    - **Safe context:** statement previews only, never parameter values
    - **Error chaining:** the driver exception is kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        LifelineError                          │
        │          (category, retryable, context, cause)               │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  TransientError          DatabaseError          ConfigError   │
        │  (retryable=True)        (DATABASE)             (CONFIG)      │
        │       │                       │                               │
        │  DatabaseConnectionError  QueryError                          │
        │  HealthCheckError         TransactionError                    │
        │                           DisconnectError                     │
        │                           MigrationError                      │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = QueryError("syntax error").with_context(statement="SELEC 1")
    >>> error.to_dict()["context"]
    {'statement': 'SELEC 1'}

Tags:
    error-handling, exception-hierarchy, retry-logic, lifeline-core
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NETWORK = "NETWORK"           # Connection, timeout, DNS
    DATABASE = "DATABASE"         # Query, transaction, pool
    STORAGE = "STORAGE"           # Disk, schema files
    CONFIG = "CONFIG"             # Missing or invalid settings
    MIGRATION = "MIGRATION"       # Schema file application
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only ``statement`` previews and parameter *presence* are ever recorded.
    Parameter values may contain patient data and must stay out of logs.

    Attributes:
        backend: Adapter backend name (``"sqlite"``, ``"postgresql"``)
        operation: Adapter operation that failed (``"query"``, ``"connect"``)
        statement: First characters of the SQL statement
        params: ``"present"`` or ``"none"``
        migration: Schema file name, for migration failures
        metadata: Additional key-value pairs
    """

    backend: str | None = None
    operation: str | None = None
    statement: str | None = None
    params: str | None = None
    migration: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Flatten the set fields and metadata into one mapping."""
        fields = ("backend", "operation", "statement", "params", "migration")
        data = {name: getattr(self, name) for name in fields if getattr(self, name) is not None}
        data.update(self.metadata)
        return data


class LifelineError(Exception):
    """
    Base exception for all data-access errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.

    Examples:
        >>> err = LifelineError("boom")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.retryable
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

    def with_context(self, **kwargs: Any) -> LifelineError:
        """Attach context fields and return ``self`` so it can be raised inline.

        Known ``ErrorContext`` fields are set directly; anything else lands
        in ``metadata``.
        """
        known = set(ErrorContext.__dataclass_fields__) - {"metadata"}
        for key, value in kwargs.items():
            if key in known:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs and ``--json`` CLI output."""
        payload: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            payload["context"] = context
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(LifelineError):
    """Temporary error that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """Initial connect failure or pool checkout timeout."""

    default_category = ErrorCategory.DATABASE


class HealthCheckError(TransientError):
    """Round-trip health query against the database failed."""

    default_category = ErrorCategory.DATABASE


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(LifelineError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(DatabaseError):
    """SQL statement failed. Never retried automatically."""

    pass


class TransactionError(DatabaseError):
    """BEGIN, COMMIT or ROLLBACK itself failed."""

    pass


class DisconnectError(DatabaseError):
    """Closing the connection or pool failed."""

    pass


class MigrationError(DatabaseError):
    """
    A schema file failed to apply.

    ``applied`` lists the migrations committed earlier in the same run;
    they stay applied.
    """

    default_category = ErrorCategory.MIGRATION

    def __init__(
        self,
        message: str,
        *,
        migration: str | None = None,
        applied: list[str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.migration = migration
        self.applied = applied or []
        if migration is not None:
            self.context.migration = migration

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["applied"] = list(self.applied)
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(LifelineError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

# SQLSTATE codes PostgreSQL uses for duplicate objects (psycopg ``sqlstate``).
_ALREADY_EXISTS_CODES = frozenset({"42P07", "42710", "42701", "42P06", "42P04"})


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, LifelineError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def is_already_exists_error(error: BaseException) -> bool:
    """True when *error* reports a table, index or column that already exists.

    Walks the ``__cause__`` chain so wrapped driver errors are recognised.
    """
    current: BaseException | None = error
    while current is not None:
        code = getattr(current, "sqlstate", None) or getattr(current, "pgcode", None)
        if code in _ALREADY_EXISTS_CODES:
            return True
        message = str(current).lower()
        if "already exists" in message:
            return True
        # "duplicate column name" yes, "duplicate key value" (a data conflict) no
        if "duplicate" in message and "duplicate key" not in message:
            return True
        current = current.__cause__
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LifelineError",
    "TransientError",
    "DatabaseConnectionError",
    "HealthCheckError",
    "DatabaseError",
    "QueryError",
    "TransactionError",
    "DisconnectError",
    "MigrationError",
    "ConfigError",
    "is_retryable",
    "is_already_exists_error",
]
