"""Database types, configuration and the normalized result shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


@dataclass
class DatabaseConfig:
    """
    Configuration for a database adapter.

    Different fields are used by different database types.  Durations are
    seconds unless the name says otherwise.
    """

    # Common
    db_type: DatabaseType = DatabaseType.SQLITE
    slow_query_ms: float = 1000.0

    # SQLite
    path: str = "./data/lifeline.db"

    # PostgreSQL
    host: str = "localhost"
    port: int = 5432
    database: str = "lifeline_db"
    username: str | None = "postgres"
    password: str | None = None
    ssl: bool = False

    # Connection pool
    pool_size: int = 20
    idle_timeout: float = 30.0
    connect_timeout: float = 2.0

    # Reconnect / shutdown
    max_retries: int = 5
    retry_delay: float = 5.0
    disconnect_timeout: float = 10.0

    # Extra options (driver-specific)
    options: dict[str, Any] = field(default_factory=dict)

    def connect_kwargs(self) -> dict[str, Any]:
        """Connection keywords handed to the pool for ``psycopg.connect``.

        ``sslmode`` is ``require`` with ``ssl`` on and ``disable`` otherwise.
        """
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.username,
            "password": self.password,
            "connect_timeout": max(1, int(round(self.connect_timeout))),
            "sslmode": "require" if self.ssl else "disable",
        }
        kwargs.update(self.options)
        return kwargs


@dataclass
class QueryResult:
    """Backend-independent result of ``query()``.

    ``last_row_id`` is only set for mutating statements on SQLite.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_row_id: int | None = None

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None


class HealthStatus(BaseModel):
    """Outcome of a successful ``health_check()``."""

    status: str = "healthy"
    current_time: Any = None
    version: str = ""


class PoolStats(BaseModel):
    """Read-only snapshot of the connection pool.

    Fields
    ──────
    total_count   : Open connections, idle plus in use
    idle_count    : Connections parked in the pool
    waiting_count : Callers blocked waiting for a free slot
    max_size      : Configured upper bound
    """

    total_count: int = 0
    idle_count: int = 0
    waiting_count: int = 0
    max_size: int = 0

    @property
    def in_use_count(self) -> int:
        return self.total_count - self.idle_count


__all__ = [
    "DatabaseType",
    "DatabaseConfig",
    "QueryResult",
    "HealthStatus",
    "PoolStats",
]
