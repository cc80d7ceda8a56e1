"""PostgreSQL database adapter.

Manifesto:
    Production runs against a networked PostgreSQL server that may not be
    reachable the moment the process starts.  ``connect()`` therefore
    retries on a fixed delay and, once retries are exhausted, returns
    ``None`` instead of crashing the process.

Architecture:
    ::

        connect()
          └─ retry_call(ConstantBackoff(max_retries, retry_delay))
               └─ psycopg_pool.ConnectionPool(max_size=pool_size, max_idle=idle_timeout)
                    └─ health_check()  ─ SELECT NOW(), version()

        query() / transaction()
          └─ pool.getconn(timeout) → cursor.execute(%(pN)s, {pN: ...}) → pool.putconn()

        disconnect()
          └─ poll pool.get_stats() until idle (disconnect_timeout) → pool.close()

Tags:
    lifeline-core, database, postgresql, psycopg, connection-pool
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from lifeline.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    HealthCheckError,
    QueryError,
    TransactionError,
)
from lifeline.core.logging import Logger
from lifeline.core.retry import ConstantBackoff, retry_call
from lifeline.core.translator import rows_from_cursor

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType, HealthStatus, PoolStats, QueryResult

T = TypeVar("T")

HEALTH_QUERY = "SELECT NOW() AS current_time, version() AS version"

DRAIN_POLL_INTERVAL = 0.05


class _PostgreSQLHandle:
    """Transaction handle bound to one checked-out pool connection."""

    def __init__(self, adapter: PostgreSQLAdapter, conn: Any):
        self._adapter = adapter
        self._conn = conn

    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        return self._adapter._execute(self._conn, statement, params)

    def execute_script(self, sql: str) -> None:
        # no params: psycopg sends the whole file as one simple-protocol query
        self._adapter._execute(self._conn, sql, ())


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Uses psycopg connections managed by a ``psycopg_pool.ConnectionPool``.
    Pooled connections run in autocommit mode; ``transaction()`` issues
    BEGIN/COMMIT/ROLLBACK itself.

    Args:
        pool_factory: Callable with the ``psycopg_pool.ConnectionPool``
            signature.  Defaults to ``ConnectionPool`` itself.
        sleep: Sleep function used between connect retries.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "lifeline_db",
        username: str | None = "postgres",
        password: str | None = None,
        *,
        pool_size: int = 20,
        ssl: bool = False,
        config: DatabaseConfig | None = None,
        logger: Logger | None = None,
        pool_factory: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        **kwargs: Any,
    ):
        if config is None:
            config = DatabaseConfig(
                db_type=DatabaseType.POSTGRESQL,
                host=host,
                port=port,
                database=database,
                username=username,
                password=password,
                pool_size=pool_size,
                ssl=ssl,
                options=kwargs,
            )
        super().__init__(config, logger=logger)
        self._pool_factory = pool_factory
        self._sleep = sleep
        self._pool: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _default_pool_factory(self) -> Callable[..., Any]:
        try:
            from psycopg_pool import ConnectionPool
        except ImportError:
            raise ConfigError(
                "psycopg is required for PostgreSQL. "
                "Install with: pip install 'psycopg[binary]' psycopg-pool"
            ) from None
        return ConnectionPool

    def _open_pool(self) -> Any:
        config = self._config
        pool = self._pool_factory(
            "",
            kwargs={**config.connect_kwargs(), "autocommit": True},
            min_size=1,
            max_size=config.pool_size,
            max_idle=config.idle_timeout,
            timeout=config.connect_timeout,
            name="lifeline",
            open=False,
        )
        try:
            # waits for min_size connections; PoolTimeout when the server is unreachable
            pool.open(wait=True, timeout=config.connect_timeout)
        except Exception as e:
            self._close_pool(pool)
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ).with_context(backend="postgresql", operation="connect") from e

        self._pool = pool
        try:
            status = self.health_check()
        except Exception:
            self._pool = None
            self._close_pool(pool)
            raise
        self._connected = True
        self._log(
            "info",
            "db.connected",
            host=config.host,
            database=config.database,
            max_pool=config.pool_size,
            version=status.version,
        )
        return pool

    def connect(self) -> Any:
        """Open the pool, retrying on failure.

        Returns:
            The pool, or ``None`` once every attempt has failed.  The adapter
            then stays disconnected and callers must check ``is_connected``.

        Raises:
            ConfigError: psycopg is not installed; never retried.
        """
        if self._pool is not None and self._connected:
            return self._pool
        if self._pool_factory is None:
            self._pool_factory = self._default_pool_factory()

        strategy = ConstantBackoff(
            max_retries=self._config.max_retries,
            delay=self._config.retry_delay,
        )

        def on_retry(retry: int, error: Exception, delay: float) -> None:
            self._log(
                "warning",
                "db.connect.retry",
                retry=retry,
                max_retries=strategy.max_retries,
                delay_s=delay,
                error=str(error),
            )

        pool = retry_call(self._open_pool, strategy, on_retry=on_retry, sleep=self._sleep)
        if pool is None:
            self._log(
                "error",
                "db.connect.exhausted",
                attempts=strategy.max_retries + 1,
                host=self._config.host,
                database=self._config.database,
            )
        return pool

    def disconnect(self) -> None:
        """Drain and close the pool.

        Waits up to ``disconnect_timeout`` for checked-out connections to
        come back, then closes the pool.  Connections still checked out are
        closed by the pool when they are returned.  Close failures are
        logged, never raised; the adapter always ends disconnected.
        """
        pool = self._pool
        if pool is None:
            self._log("warning", "db.disconnect.skipped", reason="not connected")
            return

        timeout = self._config.disconnect_timeout
        self._log("info", "db.disconnecting", timeout_s=timeout)
        try:
            if not self._wait_for_idle(pool, timeout):
                self._log(
                    "warning",
                    "db.disconnect.timeout",
                    timeout_s=timeout,
                    in_use=self._stats(pool).in_use_count,
                )
        finally:
            self._pool = None
            self._connected = False
            self._close_pool(pool, timeout=timeout)
        self._log("info", "db.disconnected")

    def _wait_for_idle(self, pool: Any, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while self._stats(pool).in_use_count > 0:
            if time.monotonic() >= deadline:
                return False
            time.sleep(DRAIN_POLL_INTERVAL)
        return True

    def _close_pool(self, pool: Any, timeout: float = 1.0) -> None:
        try:
            pool.close(timeout=timeout)
        except Exception as e:
            self._log("error", "db.disconnect.close_failed", error=str(e))

    def _stats(self, pool: Any) -> PoolStats:
        stats = pool.get_stats()
        return PoolStats(
            total_count=stats.get("pool_size", 0),
            idle_count=stats.get("pool_available", 0),
            waiting_count=stats.get("requests_waiting", 0),
            max_size=stats.get("pool_max", self._config.pool_size),
        )

    def pool_stats(self) -> PoolStats | None:
        return self._stats(self._pool) if self._pool is not None else None

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _require_pool(self) -> Any:
        if self._pool is None:
            raise QueryError("PostgreSQL not connected").with_context(
                backend="postgresql", operation="query"
            )
        return self._pool

    def _acquire(self, pool: Any) -> Any:
        """Check a connection out, waiting up to ``connect_timeout``."""
        timeout = self._config.connect_timeout
        try:
            return pool.getconn(timeout=timeout)
        except Exception as e:
            self._log("error", "db.pool.checkout_failed", timeout_s=timeout, error=str(e))
            raise DatabaseConnectionError(
                f"Timed out after {timeout}s waiting for a pooled connection: {e}",
                cause=e,
            ).with_context(backend="postgresql", operation="acquire") from e

    def _execute(self, conn: Any, statement: str, params: Sequence[Any] | None) -> QueryResult:
        sql, bound = self._dialect.translate(statement, params)
        started = time.perf_counter()
        cursor = conn.cursor()
        try:
            if bound is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, bound)
            rows = rows_from_cursor(cursor)
            row_count = cursor.rowcount if cursor.rowcount >= 0 else len(rows)
        except Exception as e:
            raise self._query_error(statement, params, e) from e
        finally:
            cursor.close()
        self._report_duration(statement, started)
        return QueryResult(rows=rows, row_count=row_count)

    def query(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        """Run one statement on a pooled connection."""
        pool = self._require_pool()
        conn = self._acquire(pool)
        try:
            return self._execute(conn, statement, params)
        finally:
            pool.putconn(conn)

    def _control(self, conn: Any, command: str) -> None:
        cursor = conn.cursor()
        try:
            cursor.execute(command)
        finally:
            cursor.close()

    def transaction(self, work: Callable[[_PostgreSQLHandle], T]) -> T:
        """Run *work* inside BEGIN/COMMIT on one pooled connection.

        The exception raised by *work* propagates unchanged after ROLLBACK.
        ``TransactionError`` is reserved for BEGIN and COMMIT failures.
        """
        pool = self._require_pool()
        conn = self._acquire(pool)
        try:
            try:
                self._control(conn, "BEGIN")
            except Exception as e:
                raise TransactionError(f"BEGIN failed: {e}", cause=e).with_context(
                    backend="postgresql", operation="begin"
                ) from e

            try:
                result = work(_PostgreSQLHandle(self, conn))
            except BaseException as exc:
                self._rollback(conn, exc)
                raise

            try:
                self._control(conn, "COMMIT")
            except Exception as e:
                self._rollback(conn, e)
                raise TransactionError(f"COMMIT failed: {e}", cause=e).with_context(
                    backend="postgresql", operation="commit"
                ) from e
            return result
        finally:
            pool.putconn(conn)

    def _rollback(self, conn: Any, reason: BaseException) -> None:
        self._log("error", "db.transaction.rolled_back", error=str(reason))
        try:
            self._control(conn, "ROLLBACK")
        except Exception as e:
            self._log("error", "db.transaction.rollback_failed", error=str(e))

    def health_check(self) -> HealthStatus:
        """Round-trip ``NOW()`` and ``version()`` on a pooled connection."""
        pool = self._pool
        if pool is None:
            raise HealthCheckError("PostgreSQL not connected").with_context(
                backend="postgresql", operation="health_check"
            )
        try:
            conn = self._acquire(pool)
            try:
                cursor = conn.cursor()
                try:
                    cursor.execute(HEALTH_QUERY)
                    rows = rows_from_cursor(cursor)
                finally:
                    cursor.close()
            finally:
                pool.putconn(conn)
        except Exception as e:
            self._log("error", "db.health_check.failed", error=str(e))
            raise HealthCheckError(
                f"PostgreSQL health check failed: {e}",
                cause=e,
            ).with_context(backend="postgresql", operation="health_check") from e

        row = rows[0] if rows else {}
        return HealthStatus(
            current_time=row.get("current_time"),
            version=str(row.get("version", "")),
        )


__all__ = [
    "PostgreSQLAdapter",
]
