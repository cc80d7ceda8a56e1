"""
Shared pytest fixtures and configuration for lifeline tests.

This module provides:
- A recording logger capability for asserting on emitted events
- Fake psycopg connections and a fake psycopg_pool pool for PostgreSQL adapter tests
- SQLite-backed Database fixtures on temporary files

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.

    def test_slow_query(recording_logger):
        ...
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
from psycopg_pool import PoolClosed, PoolTimeout

# Ensure lifeline package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lifeline.core.adapters.types import DatabaseConfig, DatabaseType
from lifeline.core.database import Database


# =============================================================================
# Logging
# =============================================================================


class RecordingLogger:
    """``Logger`` capability that keeps every event in memory."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def log(self, level: str, message: str, fields: dict[str, Any] | None = None) -> None:
        self.records.append((level, message, dict(fields or {})))

    def events(self, level: str | None = None) -> list[str]:
        return [m for lvl, m, _ in self.records if level is None or lvl == level]

    def find(self, message: str) -> list[dict[str, Any]]:
        return [f for _, m, f in self.records if m == message]


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


# =============================================================================
# Fake PostgreSQL driver objects
# =============================================================================

HEALTH_ROW = (datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc), "PostgreSQL 16.2")

# handler(sql, params) -> (columns, rows, rowcount); may raise
Handler = Callable[[str, Any], tuple[list[str] | None, list[tuple], int]]


def default_handler(sql: str, params: Any) -> tuple[list[str] | None, list[tuple], int]:
    if sql.startswith("SELECT NOW()"):
        return ["current_time", "version"], [HEALTH_ROW], 1
    if sql in ("BEGIN", "COMMIT", "ROLLBACK"):
        return None, [], -1
    if sql.lstrip().upper().startswith("SELECT"):
        return ["value"], [(1,)], 1
    return None, [], 1


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._rows: list[tuple] = []
        self.description = None
        self.rowcount = -1
        self.closed = False

    def execute(self, sql: str, params: Any = None) -> None:
        self._conn.statements.append((sql, params))
        columns, rows, rowcount = self._conn.handler(sql, params)
        self.description = [(c,) for c in columns] if columns is not None else None
        self._rows = list(rows)
        self.rowcount = rowcount

    def fetchall(self) -> list[tuple]:
        rows, self._rows = self._rows, []
        return rows

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Minimal psycopg connection double: cursor(), close(), closed, autocommit."""

    def __init__(self, handler: Handler = default_handler):
        self.handler = handler
        self.statements: list[tuple[str, Any]] = []
        self.autocommit = False
        self.closed = 0
        self.close_calls = 0

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def close(self) -> None:
        self.close_calls += 1
        self.closed = 1

    def sql(self) -> list[str]:
        return [s for s, _ in self.statements]


class FakeConnectionFactory:
    """Connect factory that hands out ``FakeConnection`` objects and records them."""

    def __init__(self, handler: Handler = default_handler, failures: int = 0, error: Exception | None = None):
        self.handler = handler
        self.failures = failures
        self.error = error or ConnectionRefusedError("could not connect to server")
        self.calls = 0
        self.connections: list[FakeConnection] = []

    def __call__(self) -> FakeConnection:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        conn = FakeConnection(self.handler)
        self.connections.append(conn)
        return conn

    def pool(self, conninfo: str = "", **options: Any) -> "FakePool":
        """``pool_factory`` for ``PostgreSQLAdapter``; remembers the last pool."""
        self.last_pool = FakePool(self, conninfo, **options)
        return self.last_pool


class FakePool:
    """In-process stand-in for ``psycopg_pool.ConnectionPool``.

    Implements the calls the adapter makes: ``open``, ``getconn``,
    ``putconn``, ``get_stats`` and ``close``.  Checkout never blocks; an
    exhausted pool raises ``PoolTimeout`` straight away.
    """

    def __init__(
        self,
        factory: FakeConnectionFactory,
        conninfo: str = "",
        *,
        kwargs: dict[str, Any] | None = None,
        min_size: int = 4,
        max_size: int | None = None,
        max_idle: float = 600.0,
        timeout: float = 30.0,
        name: str | None = None,
        open: bool = True,
    ):
        self.factory = factory
        self.conninfo = conninfo
        self.kwargs = dict(kwargs or {})
        self.min_size = min_size
        self.max_size = max_size or min_size
        self.max_idle = max_idle
        self.timeout = timeout
        self.name = name
        self.idle: list[FakeConnection] = []
        self.in_use: list[FakeConnection] = []
        self.waiting = 0
        self.closed = False
        self.close_timeout: float | None = None
        if open:
            self.open()

    def _new_connection(self) -> FakeConnection:
        conn = self.factory()
        conn.autocommit = self.kwargs.get("autocommit", False)
        return conn

    def open(self, wait: bool = False, timeout: float = 30.0) -> None:
        try:
            while len(self.idle) < self.min_size:
                self.idle.append(self._new_connection())
        except Exception as e:
            raise PoolTimeout(f"pool initialization incomplete after {timeout} sec") from e

    def getconn(self, timeout: float | None = None) -> FakeConnection:
        if self.closed:
            raise PoolClosed(f"the pool {self.name!r} is already closed")
        if self.idle:
            conn = self.idle.pop()
        elif len(self.in_use) < self.max_size:
            conn = self._new_connection()
        else:
            raise PoolTimeout(f"couldn't get a connection after {timeout:.2f} sec")
        self.in_use.append(conn)
        return conn

    def putconn(self, conn: FakeConnection) -> None:
        self.in_use.remove(conn)
        if self.closed or conn.closed:
            conn.close()
        else:
            self.idle.append(conn)

    def get_stats(self) -> dict[str, int]:
        return {
            "pool_min": self.min_size,
            "pool_max": self.max_size,
            "pool_size": len(self.idle) + len(self.in_use),
            "pool_available": len(self.idle),
            "requests_waiting": self.waiting,
        }

    def close(self, timeout: float = 5.0) -> None:
        self.closed = True
        self.close_timeout = timeout
        idle, self.idle = self.idle, []
        for conn in idle:
            conn.close()


@pytest.fixture
def fake_factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()


@pytest.fixture
def pg_config() -> DatabaseConfig:
    return DatabaseConfig(
        db_type=DatabaseType.POSTGRESQL,
        host="db.internal",
        database="lifeline_test",
        username="lifeline",
        password="secret",
        pool_size=4,
        connect_timeout=0.5,
        retry_delay=0.0,
        disconnect_timeout=0.5,
    )


# =============================================================================
# SQLite fixtures
# =============================================================================


@pytest.fixture
def sqlite_config(tmp_path: Path) -> DatabaseConfig:
    return DatabaseConfig(db_type=DatabaseType.SQLITE, path=str(tmp_path / "data" / "lifeline.db"))


@pytest.fixture
def sqlite_db(sqlite_config: DatabaseConfig, recording_logger: RecordingLogger) -> Generator[Database, None, None]:
    """Connected SQLite ``Database``; disconnected after the test."""
    db = Database(sqlite_config, logger=recording_logger)
    db.connect()
    yield db
    if db.is_connected():
        db.disconnect()
