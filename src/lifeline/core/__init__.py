"""LifeLine Core -- one data-access layer over SQLite and PostgreSQL.

Manifesto:
    The platform stores patient, contact and alert data in a local SQLite
    file during development and in a pooled PostgreSQL server in
    production.  Application code must not care which: it writes every
    statement once, with ``$1``-style placeholders, and receives the same
    result shape from either engine.

    - **One contract:** connect, disconnect, query, transaction, health_check
    - **Explicit lifecycle:** a constructed ``Database``, never a singleton
    - **Forward-only schema:** ``*.sql`` files tracked in a ledger table
    - **Structured failures:** typed errors, structlog events, no params in logs

Architecture::

    Layer 1 -- Errors, Logging, Settings
        errors.py          LifelineError hierarchy with categories
        logging.py         Logger capability + structlog configuration
        settings.py        DB_* environment settings (pydantic-settings)

    Layer 2 -- SQL Helpers
        translator.py      $n placeholder rewriting, statement splitting
        dialect.py         Per-backend DDL fragments and translation
        retry.py           Fixed-delay retry for reconnects

    Layer 3 -- Database Access
        adapters/          SQLite and PostgreSQL adapters, connection pool
        database.py        Database facade
        migrations/        MigrationManager (status / migrate / rollback)

Tags:
    lifeline-core, database, adapters, migrations
"""

from lifeline.core.adapters import (
    DatabaseAdapter,
    DatabaseConfig,
    DatabaseType,
    HealthStatus,
    PoolStats,
    PostgreSQLAdapter,
    QueryResult,
    SQLiteAdapter,
    get_adapter,
)
from lifeline.core.database import Database
from lifeline.core.dialect import Dialect, get_dialect
from lifeline.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    DisconnectError,
    ErrorCategory,
    HealthCheckError,
    LifelineError,
    MigrationError,
    QueryError,
    TransactionError,
)
from lifeline.core.logging import Logger, NullLogger, configure_logging, get_logger
from lifeline.core.migrations import (
    MigrationManager,
    MigrationRecord,
    MigrationResult,
    MigrationStatus,
)
from lifeline.core.retry import ConstantBackoff, retry_call
from lifeline.core.settings import DatabaseSettings, LoggingSettings

__all__ = [
    # Facade
    "Database",
    # Adapters
    "DatabaseAdapter",
    "DatabaseConfig",
    "DatabaseType",
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "get_adapter",
    "QueryResult",
    "HealthStatus",
    "PoolStats",
    "Dialect",
    "get_dialect",
    # Migrations
    "MigrationManager",
    "MigrationRecord",
    "MigrationResult",
    "MigrationStatus",
    # Errors
    "ErrorCategory",
    "LifelineError",
    "DatabaseConnectionError",
    "DatabaseError",
    "QueryError",
    "TransactionError",
    "DisconnectError",
    "HealthCheckError",
    "MigrationError",
    "ConfigError",
    # Cross-cutting
    "Logger",
    "NullLogger",
    "configure_logging",
    "get_logger",
    "ConstantBackoff",
    "retry_call",
    "DatabaseSettings",
    "LoggingSettings",
]
