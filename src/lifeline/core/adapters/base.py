"""Database adapter base class.

Manifesto:
    The platform runs on SQLite in development and PostgreSQL in
    production.  Both engines sit behind one five-operation contract
    (``connect``, ``disconnect``, ``query``, ``transaction``,
    ``health_check``) so no caller ever branches on backend type.

Features:
    - Abstract lifecycle, query, transaction and health-check operations
    - ``TransactionHandle`` passed to transactional work callbacks
    - Shared slow-query reporting and ``QueryError`` construction
    - Context-manager protocol for connection lifecycle

Tags:
    lifeline-core, database, abstract-base, adapter-pattern
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar

from lifeline.core.dialect import Dialect, get_dialect
from lifeline.core.errors import QueryError
from lifeline.core.logging import Logger, get_logger
from lifeline.core.translator import params_marker, statement_preview

from .types import DatabaseConfig, DatabaseType, HealthStatus, PoolStats, QueryResult

T = TypeVar("T")


class TransactionHandle(Protocol):
    """What a ``transaction()`` work callback receives.

    Every statement issued through the handle runs on the transaction's
    connection, with the same placeholder translation as ``query()``.
    """

    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult: ...

    def execute_script(self, sql: str) -> None: ...


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Provides common functionality and defines the interface
    that all adapters must implement.
    """

    def __init__(self, config: DatabaseConfig, *, logger: Logger | None = None):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type)
        self._logger: Logger = logger or get_logger(f"lifeline.db.{config.db_type.value}")

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> Any:
        """Establish the connection; returns the handle or pool."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection or pool."""
        ...

    @abstractmethod
    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        """Execute one ``$n``-style statement."""
        ...

    @abstractmethod
    def transaction(self, work: Callable[[TransactionHandle], T]) -> T:
        """Run *work* inside BEGIN/COMMIT, rolling back if it raises."""
        ...

    @abstractmethod
    def health_check(self) -> HealthStatus:
        """Round-trip a trivial query; raise ``HealthCheckError`` on failure."""
        ...

    def pool_stats(self) -> PoolStats | None:
        """Pool telemetry, or ``None`` for adapters without a pool."""
        return None

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _log(self, level: str, message: str, **fields: Any) -> None:
        self._logger.log(level, message, {"backend": self.db_type.value, **fields})

    def _report_duration(self, statement: str, started: float) -> float:
        """Log a slow-query warning when *statement* exceeded the threshold."""
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms > self._config.slow_query_ms:
            self._log(
                "warning",
                "db.query.slow",
                query=statement_preview(statement),
                duration_ms=round(duration_ms, 1),
            )
        return duration_ms

    def _query_error(
        self, statement: str, params: Sequence[Any] | None, cause: Exception
    ) -> QueryError:
        """Log and build the ``QueryError`` for a failed statement."""
        preview = statement_preview(statement)
        marker = params_marker(params)
        self._log("error", "db.query.failed", error=str(cause), query=preview, params=marker)
        error = QueryError(f"{self.db_type.value} query failed: {cause}", cause=cause)
        error.with_context(
            backend=self.db_type.value,
            operation="query",
            statement=preview,
            params=marker,
        )
        return error

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
    "TransactionHandle",
]
