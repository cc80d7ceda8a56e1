"""
Tests for the ``lifeline-db`` CLI.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from lifeline.cli import utils
from lifeline.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def sqlite_env(tmp_path: Path, monkeypatch):
    """Point the CLI at a temporary SQLite database."""
    for name in ("DB_PASSWORD", "LIFELINE_ENV", "DB_ENVIRONMENT", "DB_SCHEMA_DIR"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DB_TYPE", "sqlite")
    monkeypatch.setenv("DB_SQLITE_PATH", str(tmp_path / "data" / "cli.db"))
    monkeypatch.setenv("LIFELINE_LOG_FORMAT", "json")
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    d = tmp_path / "schemas"
    d.mkdir()
    (d / "01_users.sql").write_text(
        "CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT UNIQUE NOT NULL);",
        encoding="utf-8",
    )
    (d / "02_patients.sql").write_text(
        "CREATE TABLE patients (id INTEGER PRIMARY KEY, user_id INTEGER REFERENCES users (id));",
        encoding="utf-8",
    )
    return d


def invoke_json(*args: str) -> dict:
    result = runner.invoke(app, [*args, "--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "lifeline-db" in result.output
        for command in ("migrate", "rollback", "status", "health"):
            assert command in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "lifeline-db" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)


class TestStatusCommand:
    def test_fresh(self, schema_dir):
        data = invoke_json("status", "--schema-dir", str(schema_dir))
        assert data == {"executed": [], "pending": ["01_users.sql", "02_patients.sql"], "total": 2}

    def test_schema_dir_from_env(self, schema_dir, monkeypatch):
        monkeypatch.setenv("DB_SCHEMA_DIR", str(schema_dir))
        assert invoke_json("status")["total"] == 2

    def test_table_output(self, schema_dir):
        result = runner.invoke(app, ["status", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 0
        assert "Pending" in result.stdout
        assert "02_patients.sql" in result.stdout


class TestMigrateCommand:
    def test_migrate_then_status(self, schema_dir):
        data = invoke_json("migrate", "--schema-dir", str(schema_dir))
        assert data == {"applied": ["01_users.sql", "02_patients.sql"], "skipped": []}

        status = invoke_json("status", "--schema-dir", str(schema_dir))
        assert status["executed"] == ["01_users.sql", "02_patients.sql"]
        assert status["pending"] == []

    def test_up_to_date_message(self, schema_dir):
        runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        result = runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 0
        assert "up to date" in result.stdout

    def test_failure_exits_non_zero(self, schema_dir):
        (schema_dir / "02_patients.sql").write_text("CREATE TABEL nope (id INTEGER);", encoding="utf-8")
        result = runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 1
        assert "02_patients.sql" in result.output

        status = invoke_json("status", "--schema-dir", str(schema_dir))
        assert status["executed"] == ["01_users.sql"]

    def test_always_disconnects(self, schema_dir):
        (schema_dir / "01_users.sql").write_text("NOT SQL;", encoding="utf-8")
        with patch("lifeline.cli.db.shutdown", wraps=utils.shutdown) as mock_shutdown:
            result = runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 1
        mock_shutdown.assert_called_once()
        db = mock_shutdown.call_args.args[0]
        assert db.is_connected() is False

    @pytest.mark.parametrize("command", ["migrate", "rollback", "status"])
    def test_unexpected_error_still_disconnects(self, schema_dir, command):
        connected_at_shutdown: list[bool] = []
        databases = []

        def spy(db):
            connected_at_shutdown.append(db.is_connected())
            databases.append(db)
            utils.shutdown(db)

        with patch(
            "lifeline.core.migrations.runner.MigrationManager._ensure_migrations_table",
            side_effect=RuntimeError("ledger unavailable"),
        ), patch("lifeline.cli.db.shutdown", side_effect=spy):
            result = runner.invoke(app, [command, "--schema-dir", str(schema_dir)])

        assert result.exit_code == 1
        assert isinstance(result.exception, RuntimeError)
        assert connected_at_shutdown == [True]
        assert databases[0].is_connected() is False

    def test_undecodable_schema_file(self, schema_dir):
        (schema_dir / "02_patients.sql").write_bytes(b"SELECT '\xff\xfe';")
        result = runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "02_patients.sql" in result.output

        status = invoke_json("status", "--schema-dir", str(schema_dir))
        assert status["executed"] == ["01_users.sql"]


class TestRollbackCommand:
    def test_rollback_latest(self, schema_dir):
        runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        assert invoke_json("rollback", "--schema-dir", str(schema_dir)) == {"rolled_back": "02_patients.sql"}
        status = invoke_json("status", "--schema-dir", str(schema_dir))
        assert status["pending"] == ["02_patients.sql"]

    def test_rollback_empty(self, schema_dir):
        assert invoke_json("rollback", "--schema-dir", str(schema_dir)) == {"rolled_back": None}

    def test_rollback_warns_schema_not_reverted(self, schema_dir):
        runner.invoke(app, ["migrate", "--schema-dir", str(schema_dir)])
        result = runner.invoke(app, ["rollback", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 0
        assert "not reverted" in result.stdout


class TestHealthCommand:
    def test_sqlite_health(self, schema_dir):
        data = invoke_json("health", "--schema-dir", str(schema_dir))
        assert data["backend"] == "sqlite"
        assert data["status"] == "healthy"
        assert data["version"]
        assert "pool" not in data


class TestConfigErrors:
    def test_invalid_backend(self, monkeypatch, schema_dir):
        monkeypatch.setenv("DB_TYPE", "oracle")
        result = runner.invoke(app, ["status", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 2
        assert "Config error" in result.output

    def test_production_requires_password(self, monkeypatch, schema_dir):
        monkeypatch.setenv("DB_TYPE", "postgresql")
        monkeypatch.setenv("LIFELINE_ENV", "production")
        result = runner.invoke(app, ["status", "--schema-dir", str(schema_dir)])
        assert result.exit_code == 2
        assert "DB_PASSWORD" in result.output
