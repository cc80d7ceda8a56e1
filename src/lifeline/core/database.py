"""
LifeLine Database - the single entry point for persistence.

Application code talks to one ``Database`` object.  It picks the adapter
for the configured backend once, at construction, and forwards every call
unchanged, so request handlers never know whether they run on SQLite or
PostgreSQL.

Manifesto:
    - **Explicit lifecycle:** construct at start-up, ``connect()`` before
      serving, ``disconnect()`` on shutdown.  No module-level singleton.
    - **Degraded start:** a PostgreSQL ``connect()`` that exhausts its
      retries returns ``None``; check ``is_connected()`` before relying on
      persistence.
    - **One result shape:** ``QueryResult(rows, row_count, last_row_id)``
      for both backends.

Architecture:
    ::

        DatabaseSettings ──► DatabaseConfig ──► Database(config)
                                                    │
                                          get_adapter(config)
                                                    │
                                 ┌──────────────────┴──────────────────┐
                                 ▼                                     ▼
                           SQLiteAdapter                       PostgreSQLAdapter

Examples:
    >>> from lifeline.core.database import Database
    >>> from lifeline.core.adapters import DatabaseConfig, DatabaseType
    >>> db = Database(DatabaseConfig(db_type=DatabaseType.SQLITE, path=":memory:"))
    >>> _ = db.connect()
    >>> db.query("SELECT $1 AS answer", [42]).rows
    [{'answer': 42}]
    >>> db.disconnect()

Tags:
    database, facade, lifecycle, lifeline-core
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from lifeline.core.adapters import DatabaseAdapter, DatabaseConfig, get_adapter
from lifeline.core.adapters.base import TransactionHandle
from lifeline.core.adapters.types import DatabaseType, HealthStatus, PoolStats, QueryResult
from lifeline.core.dialect import Dialect
from lifeline.core.logging import Logger

T = TypeVar("T")


class Database:
    """Facade over the adapter selected for ``config.db_type``."""

    def __init__(
        self,
        config: DatabaseConfig,
        logger: Logger | None = None,
        *,
        adapter: DatabaseAdapter | None = None,
    ):
        self._config = config
        self._adapter = adapter or get_adapter(config, logger=logger)

    @classmethod
    def from_settings(cls, settings: Any = None, logger: Logger | None = None) -> Database:
        """Build from ``DatabaseSettings`` (read from the environment when omitted)."""
        if settings is None:
            from lifeline.core.settings import DatabaseSettings

            settings = DatabaseSettings()
        return cls(settings.to_config(), logger=logger)

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def db_type(self) -> DatabaseType:
        return self._adapter.db_type

    @property
    def dialect(self) -> Dialect:
        """Dialect of the active backend, for portable DDL fragments."""
        return self._adapter.dialect

    def connect(self) -> Any:
        return self._adapter.connect()

    def disconnect(self) -> None:
        self._adapter.disconnect()

    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        return self._adapter.query(statement, params)

    def transaction(self, work: Callable[[TransactionHandle], T]) -> T:
        return self._adapter.transaction(work)

    def health_check(self) -> HealthStatus:
        return self._adapter.health_check()

    def is_connected(self) -> bool:
        return self._adapter.is_connected

    def get_pool_stats(self) -> PoolStats | None:
        """Pool telemetry; ``None`` on backends without a pool."""
        return self._adapter.pool_stats()

    def __enter__(self) -> Database:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def __repr__(self) -> str:
        state = "connected" if self.is_connected() else "disconnected"
        return f"Database({self.db_type.value}, {state})"


__all__ = ["Database"]
