"""Query translation between the shared ``$n`` syntax and driver placeholders.

Callers write every statement once, with PostgreSQL-style positional
placeholders (``$1``, ``$2``, ...).  This module rewrites them for the
driver that actually executes the statement and normalizes cursor output
into plain row dictionaries.

    ===========  ======================  ==========================
    Backend      Driver paramstyle       ``WHERE id = $1`` becomes
    ===========  ======================  ==========================
    SQLite       ``?NNN`` (numbered)     ``WHERE id = ?1``
    PostgreSQL   ``%(name)s`` pyformat   ``WHERE id = %(p1)s``
    ===========  ======================  ==========================

Both targets are numbered, so a placeholder may repeat or appear out of
order.  Rewriting always runs from the highest number down, which keeps
``$1`` from matching the front of ``$10``.

The module also carries the textual helpers the migration manager needs:
:func:`split_statements` and :func:`statement_preview`.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

PLACEHOLDER_RE = re.compile(r"\$(\d+)\b")

PREVIEW_LENGTH = 100


def placeholder_numbers(statement: str) -> list[int]:
    """Distinct placeholder numbers in *statement*, highest first."""
    return sorted({int(n) for n in PLACEHOLDER_RE.findall(statement)}, reverse=True)


def _rewrite(statement: str, target: str) -> str:
    """Replace every ``$n`` with ``target.format(n=n)``, highest ``n`` first."""
    for number in placeholder_numbers(statement):
        statement = re.sub(
            rf"\${number}\b",
            lambda _m, n=number: target.format(n=n),
            statement,
        )
    return statement


def to_sqlite(statement: str) -> str:
    """Rewrite ``$n`` placeholders into SQLite's numbered ``?n`` form."""
    return _rewrite(statement, "?{n}")


def to_pyformat(
    statement: str, params: Sequence[Any] | None
) -> tuple[str, dict[str, Any] | None]:
    """Rewrite ``$n`` placeholders into psycopg named ``%(pn)s`` parameters.

    Without params the statement passes through unchanged, because psycopg
    only interprets ``%`` when a parameter mapping is supplied.  With params,
    literal ``%`` signs are doubled first.
    """
    if not params:
        return statement, None
    escaped = statement.replace("%", "%%")
    rewritten = _rewrite(escaped, "%(p{n})s")
    return rewritten, {f"p{i}": value for i, value in enumerate(params, start=1)}


def is_read_statement(statement: str) -> bool:
    """True for statements that start with ``SELECT``."""
    return statement.lstrip().upper().startswith("SELECT")


def statement_preview(statement: str, length: int = PREVIEW_LENGTH) -> str:
    """The first *length* characters of *statement*, safe for logs."""
    return statement.strip()[:length]


def params_marker(params: Sequence[Any] | None) -> str:
    """``"present"`` or ``"none"``; parameter values are never logged."""
    return "present" if params else "none"


def rows_from_cursor(cursor: Any) -> list[dict[str, Any]]:
    """Fetch every remaining row of a DB-API cursor as column→value dicts."""
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]


def split_statements(sql: str) -> list[str]:
    """Split a schema file into individual statements.

    Lines whose first non-blank characters are ``--`` are dropped, the rest
    is split on ``;`` and empty fragments are discarded.  Each statement is
    returned without its terminator.

    This is purely textual: a ``;`` inside a string literal or a block
    comment splits the statement in the wrong place.
    """
    cleaned = "\n".join(
        line for line in sql.splitlines() if not line.strip().startswith("--")
    )
    statements = []
    for fragment in cleaned.split(";"):
        fragment = fragment.strip()
        if fragment:
            statements.append(fragment)
    return statements


__all__ = [
    "PLACEHOLDER_RE",
    "placeholder_numbers",
    "to_sqlite",
    "to_pyformat",
    "is_read_statement",
    "statement_preview",
    "params_marker",
    "rows_from_cursor",
    "split_statements",
]
