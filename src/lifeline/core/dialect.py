"""SQL dialect abstraction for the two supported backends.

Each adapter owns a ``Dialect`` that knows how to turn a caller's ``$n``
statement into something its driver executes, and how to spell the few
DDL fragments that differ between engines (the migration ledger's
auto-increment key, ``NOW()``).  Code above the adapters uses these
fragments instead of branching on backend type.

Architecture::

    caller SQL:   SELECT * FROM users WHERE id = $1
                              │
            ┌─────────────────┴──────────────────┐
            ▼                                    ▼
    SQLiteDialect.translate            PostgreSQLDialect.translate
    ... WHERE id = ?1   (1,)           ... WHERE id = %(p1)s  {"p1": 1}

Examples:
    >>> from lifeline.core.dialect import get_dialect
    >>> get_dialect("sqlite").translate("SELECT $1", [7])
    ('SELECT ?1', (7,))
    >>> get_dialect("postgresql").auto_increment()
    'SERIAL PRIMARY KEY'

Tags:
    dialect, sql, portability, lifeline-core
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from lifeline.core.translator import to_pyformat, to_sqlite


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def translate(self, statement: str, params: Sequence[Any] | None) -> tuple[str, Any]:
        """Rewrite a ``$n`` statement and its params for the driver."""
        ...

    def now(self) -> str:
        """SQL expression for the current timestamp."""
        ...

    def auto_increment(self) -> str:
        """Column type for an auto-incrementing primary key."""
        ...

    def timestamp_default_now(self) -> str:
        """DDL ``DEFAULT`` clause for a timestamp column."""
        ...


class SQLiteDialect:
    """SQLite dialect: numbered ``?n`` placeholders, ``datetime('now')``."""

    @property
    def name(self) -> str:
        return "sqlite"

    def translate(self, statement: str, params: Sequence[Any] | None) -> tuple[str, Any]:
        if not params:
            return statement, ()
        return to_sqlite(statement), tuple(params)

    def now(self) -> str:
        return "datetime('now')"

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def timestamp_default_now(self) -> str:
        return "DEFAULT CURRENT_TIMESTAMP"


class PostgreSQLDialect:
    """PostgreSQL dialect: psycopg ``%(pn)s`` placeholders, ``NOW()``."""

    @property
    def name(self) -> str:
        return "postgresql"

    def translate(self, statement: str, params: Sequence[Any] | None) -> tuple[str, Any]:
        return to_pyformat(statement, params)

    def now(self) -> str:
        return "NOW()"

    def auto_increment(self) -> str:
        return "SERIAL PRIMARY KEY"

    def timestamp_default_now(self) -> str:
        return "DEFAULT CURRENT_TIMESTAMP"


_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: Any) -> Dialect:
    """Get a dialect by database type name or ``DatabaseType`` member.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
