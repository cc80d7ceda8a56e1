"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from lifeline.core.errors import (
    DatabaseConnectionError,
    DisconnectError,
    HealthCheckError,
    QueryError,
    TransactionError,
)
from lifeline.core.logging import Logger
from lifeline.core.translator import is_read_statement, split_statements

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType, HealthStatus, QueryResult

T = TypeVar("T")

HEALTH_QUERY = "SELECT datetime('now') AS current_time, sqlite_version() AS version"


class _SQLiteHandle:
    """Transaction handle bound to the adapter's single connection."""

    def __init__(self, adapter: SQLiteAdapter, conn: sqlite3.Connection):
        self._adapter = adapter
        self._conn = conn

    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        return self._adapter._execute(self._conn, statement, params)

    def execute_script(self, sql: str) -> None:
        # executescript() would COMMIT the open transaction first
        for statement in split_statements(sql):
            self._adapter._execute(self._conn, statement, ())


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with one connection per adapter.
    The connection runs in autocommit mode (``isolation_level=None``) so
    ``transaction()`` controls BEGIN/COMMIT explicitly.  Suitable for:
    - Development and testing
    - Single-process deployments
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        timeout: float = 5.0,
        config: DatabaseConfig | None = None,
        logger: Logger | None = None,
        **kwargs: Any,
    ):
        if config is None:
            config = DatabaseConfig(
                db_type=DatabaseType.SQLITE,
                path=path,
                options=kwargs,
            )
        super().__init__(config, logger=logger)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection | None:
        return self._conn

    def connect(self) -> sqlite3.Connection:
        """Open the database file, creating its directory if needed."""
        if self._conn is not None:
            return self._conn

        path = self._config.path or ":memory:"
        uri = path.startswith("file:")

        try:
            if path != ":memory:" and not uri:
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                check_same_thread=False,
                isolation_level=None,
                uri=uri,
            )
            conn.row_factory = sqlite3.Row

            # Enable foreign keys
            conn.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            self._log("error", "db.connect.failed", error=str(e), path=path)
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ).with_context(backend="sqlite", operation="connect") from e

        self._conn = conn
        self._connected = True
        try:
            status = self.health_check()
        except HealthCheckError as e:
            self._close_quietly()
            raise DatabaseConnectionError(
                f"SQLite health check failed after connect: {e}",
                cause=e,
            ).with_context(backend="sqlite", operation="connect") from e

        self._log("info", "db.connected", path=path, version=status.version)
        return conn

    def disconnect(self) -> None:
        """Close the connection; a no-op with a warning when never connected."""
        if self._conn is None:
            self._log("warning", "db.disconnect.skipped", reason="not connected")
            return
        try:
            self._conn.close()
        except sqlite3.Error as e:
            self._log("error", "db.disconnect.failed", error=str(e))
            raise DisconnectError(f"Failed to close SQLite: {e}", cause=e) from e
        finally:
            self._conn = None
            self._connected = False
        self._log("info", "db.disconnected")

    def _close_quietly(self) -> None:
        conn, self._conn = self._conn, None
        self._connected = False
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error as e:
                self._log("warning", "db.disconnect.failed", error=str(e))

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise QueryError("SQLite not connected").with_context(
                backend="sqlite", operation="query"
            )
        return self._conn

    def _execute(
        self, conn: sqlite3.Connection, statement: str, params: Sequence[Any] | None
    ) -> QueryResult:
        sql, bound = self._dialect.translate(statement, params)
        started = time.perf_counter()
        try:
            cursor = conn.execute(sql, bound)
            if is_read_statement(statement):
                rows = [dict(row) for row in cursor.fetchall()]
                result = QueryResult(rows=rows, row_count=len(rows))
            else:
                result = QueryResult(
                    rows=[],
                    row_count=max(cursor.rowcount, 0),
                    last_row_id=cursor.lastrowid,
                )
        except sqlite3.Error as e:
            raise self._query_error(statement, params, e) from e
        self._report_duration(statement, started)
        return result

    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        """Execute query and normalize the result.

        Statements starting with ``SELECT`` return their rows; anything else
        returns the number of changed rows and the last inserted row id.
        """
        return self._execute(self._require_connection(), statement, params)

    def transaction(self, work: Callable[[_SQLiteHandle], T]) -> T:
        """Run *work* between BEGIN and COMMIT on the single connection."""
        conn = self._require_connection()
        try:
            conn.execute("BEGIN TRANSACTION")
        except sqlite3.Error as e:
            raise TransactionError(f"BEGIN failed: {e}", cause=e).with_context(
                backend="sqlite", operation="begin"
            ) from e

        try:
            result = work(_SQLiteHandle(self, conn))
        except BaseException as exc:
            self._rollback(conn, exc)
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn, e)
            raise TransactionError(f"COMMIT failed: {e}", cause=e).with_context(
                backend="sqlite", operation="commit"
            ) from e
        return result

    def _rollback(self, conn: sqlite3.Connection, reason: BaseException) -> None:
        self._log("error", "db.transaction.rolled_back", error=str(reason))
        # some errors (e.g. SQLITE_FULL) already ended the transaction
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            self._log("error", "db.transaction.rollback_failed", error=str(e))

    def health_check(self) -> HealthStatus:
        """Round-trip ``datetime('now')`` and ``sqlite_version()``."""
        if self._conn is None:
            raise HealthCheckError("SQLite not connected").with_context(
                backend="sqlite", operation="health_check"
            )
        try:
            row = self._conn.execute(HEALTH_QUERY).fetchone()
        except sqlite3.Error as e:
            self._log("error", "db.health_check.failed", error=str(e))
            raise HealthCheckError(f"SQLite health check failed: {e}", cause=e).with_context(
                backend="sqlite", operation="health_check"
            ) from e
        return HealthStatus(current_time=row["current_time"], version=row["version"])


__all__ = [
    "SQLiteAdapter",
]
