"""SQL migration manager.

Reads ``.sql`` files from the schema directory, tracks applied migrations
in the ``migrations`` table, and applies pending ones in filename order.
Works through the ``Database`` facade, so the same files run on SQLite and
PostgreSQL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lifeline.core.database import Database
from lifeline.core.errors import MigrationError, is_already_exists_error
from lifeline.core.logging import Logger, get_logger
from lifeline.core.translator import split_statements

DEFAULT_SCHEMA_DIR = Path("database/schemas")

LEDGER_TABLE = "migrations"


@dataclass
class MigrationRecord:
    """Record of a single applied migration."""

    id: int
    name: str
    executed_at: Any


@dataclass
class MigrationResult:
    """Result of a ``migrate()`` run.

    ``skipped`` lists files whose objects already existed; they are recorded
    in the ledger without having run.
    """

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied or self.skipped)


@dataclass
class MigrationStatus:
    """Applied and pending migrations, in the order they run."""

    executed: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    total: int = 0

    @property
    def up_to_date(self) -> bool:
        return not self.pending


class MigrationManager:
    """Applies SQL migrations from a schema directory.

    Parameters
    ----------
    db
        The ``Database`` facade.  It is connected on first use if needed.
    schema_dir
        Directory containing lexicographically ordered ``.sql`` files.
        Defaults to ``./database/schemas``.

    Example::

        from lifeline.core.database import Database
        from lifeline.core.migrations import MigrationManager

        db = Database.from_settings()
        manager = MigrationManager(db)
        result = manager.migrate()
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(
        self,
        db: Database,
        schema_dir: Path | str | None = None,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._db = db
        self._schema_dir = Path(schema_dir) if schema_dir else DEFAULT_SCHEMA_DIR
        self._logger: Logger = logger or get_logger(__name__)

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def status(self) -> MigrationStatus:
        """Report applied and pending migrations.

        A missing schema directory is created and reports nothing pending.
        """
        self._ensure_ready()
        executed = [r.name for r in self.get_applied()]
        applied = set(executed)
        pending = [name for name in self._discover_migrations() if name not in applied]
        return MigrationStatus(
            executed=executed,
            pending=pending,
            total=len(executed) + len(pending),
        )

    def migrate(self) -> MigrationResult:
        """Apply all pending migrations in filename order.

        Each file runs in its own transaction together with its ledger
        insert.  Files whose objects already exist are recorded and
        reported under ``skipped``.

        Raises:
            MigrationError: A file failed.  Migrations applied earlier in
                this run stay committed and are listed on the error.
        """
        pending = self.status().pending
        result = MigrationResult()
        if not pending:
            self._log("info", "migration.up_to_date")
            return result

        self._log("info", "migration.started", pending=len(pending))
        for name in pending:
            sql = self._read(name, result)
            try:
                self._db.transaction(lambda tx, name=name, sql=sql: self._apply(tx, name, sql))
            except Exception as exc:
                if not is_already_exists_error(exc):
                    self._log("error", "migration.failed", migration=name, error=str(exc))
                    raise MigrationError(
                        f"Migration {name} failed: {exc}",
                        migration=name,
                        applied=list(result.applied),
                        cause=exc,
                    ) from exc

                self._log(
                    "warning",
                    "migration.skipped",
                    migration=name,
                    reason="objects already exist",
                    error=str(exc),
                )
                self._record_migration(name)
                result.skipped.append(name)
                continue

            result.applied.append(name)
            self._log("info", "migration.applied", migration=name)

        self._log(
            "info",
            "migration.completed",
            applied=len(result.applied),
            skipped=len(result.skipped),
        )
        return result

    def rollback(self) -> str | None:
        """Remove the last migration record (does NOT reverse SQL).

        Returns the name of the removed record, or ``None`` if no
        migrations exist.

        .. warning::
            This only removes the tracking record. It does **not** execute
            any ``DROP`` or ``ALTER`` statements.
        """
        self._ensure_ready()
        last = self._db.query(
            f"SELECT id, name FROM {LEDGER_TABLE} ORDER BY id DESC LIMIT 1"
        ).first()
        if last is None:
            self._log("info", "migration.rollback.empty")
            return None

        self._db.query(f"DELETE FROM {LEDGER_TABLE} WHERE id = $1", [last["id"]])
        self._log(
            "warning",
            "migration.rolled_back",
            migration=last["name"],
            note="ledger record removed; schema changes were not reverted",
        )
        return last["name"]

    def get_applied(self) -> list[MigrationRecord]:
        """Return already-applied migrations in application order."""
        rows = self._db.query(
            f"SELECT id, name, executed_at FROM {LEDGER_TABLE} ORDER BY id"
        ).rows
        return [
            MigrationRecord(id=row["id"], name=row["name"], executed_at=row["executed_at"])
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _log(self, level: str, message: str, **fields: Any) -> None:
        self._logger.log(level, message, fields)

    def _ensure_ready(self) -> None:
        """Connect if needed and create the ledger table."""
        if not self._db.is_connected():
            self._db.connect()
        if not self._db.is_connected():
            raise MigrationError("Database is not available")
        self._ensure_migrations_table()

    def _ensure_migrations_table(self) -> None:
        """Create the ``migrations`` table if it doesn't exist."""
        dialect = self._db.dialect
        self._db.query(
            f"""
            CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
                id {dialect.auto_increment()},
                name VARCHAR(255) UNIQUE NOT NULL,
                executed_at TIMESTAMP {dialect.timestamp_default_now()}
            )
            """
        )

    def _discover_migrations(self) -> list[str]:
        """Return sorted ``.sql`` file names, creating the directory if missing."""
        if not self._schema_dir.exists():
            self._schema_dir.mkdir(parents=True, exist_ok=True)
            self._log("info", "migration.schema_dir_created", path=str(self._schema_dir))
            return []
        return sorted(p.name for p in self._schema_dir.glob("*.sql") if p.is_file())

    def _read(self, name: str, result: MigrationResult) -> str:
        try:
            return (self._schema_dir / name).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._log("error", "migration.failed", migration=name, error=str(exc))
            raise MigrationError(
                f"Cannot read migration {name}: {exc}",
                migration=name,
                applied=list(result.applied),
                cause=exc,
            ) from exc

    def _apply(self, tx: Any, name: str, sql: str) -> None:
        if split_statements(sql):
            tx.execute_script(sql)
        tx.query(f"INSERT INTO {LEDGER_TABLE} (name) VALUES ($1)", [name])

    def _record_migration(self, name: str) -> None:
        """Insert a ledger record outside any transaction."""
        self._db.query(f"INSERT INTO {LEDGER_TABLE} (name) VALUES ($1)", [name])
