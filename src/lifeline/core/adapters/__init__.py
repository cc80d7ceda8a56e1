"""Database adapters -- one interface over SQLite and PostgreSQL.

Manifesto:
    The same application code must run against a local SQLite file in
    development and a pooled PostgreSQL server in production.  Each adapter
    implements the same five operations and returns the same
    ``QueryResult`` shape, so switching backends is a configuration change.

    The PostgreSQL driver is **import-guarded**: psycopg and psycopg_pool
    are only required at ``connect()`` time, not at import time.

Architecture::

    DatabaseAdapter (base.py)        Abstract base: connect/disconnect/query/
        |                            transaction/health_check
        |-- SQLiteAdapter            stdlib sqlite3, single connection
        |-- PostgreSQLAdapter        psycopg behind psycopg_pool, retrying connect

    AdapterRegistry (registry.py)    DatabaseType -> adapter class
    DatabaseConfig (types.py)        Connection parameters dataclass
    QueryResult / HealthStatus / PoolStats (types.py)

Modules
-------
base            Abstract DatabaseAdapter and TransactionHandle protocol
types           DatabaseType, DatabaseConfig and result shapes
registry        AdapterRegistry + get_adapter() factory
sqlite          SQLite adapter
postgresql      PostgreSQL adapter (requires psycopg + psycopg-pool)

Guardrails:
    ❌ ``adapter.query("SELECT * FROM users WHERE id=" + user_input)``
    ✅ ``adapter.query("SELECT * FROM users WHERE id = $1", [user_input])``
    ❌ ``adapter = PostgreSQLAdapter(...)`` in application code
    ✅ ``adapter = get_adapter(settings.to_config())``

Tags:
    lifeline-core, database, adapters, multi-backend, import-guarded,
    registry-pattern, postgresql, sqlite
"""

from lifeline.core.dialect import Dialect, get_dialect

from .base import DatabaseAdapter, TransactionHandle
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType, HealthStatus, PoolStats, QueryResult

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    "QueryResult",
    "HealthStatus",
    "PoolStats",
    # Abstractions
    "Dialect",
    "get_dialect",
    "DatabaseAdapter",
    "TransactionHandle",
    # Implementations
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
