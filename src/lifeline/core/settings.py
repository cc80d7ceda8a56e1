"""Environment-driven settings for the data-access layer.

``DatabaseSettings`` reads the ``DB_*`` variables (and a ``.env`` file) that
deployment tooling already sets for the API service, validates them once at
startup and converts them into the plain :class:`DatabaseConfig` the
adapters consume.  Adapters never read the environment themselves.

Examples:
    >>> from lifeline.core.settings import DatabaseSettings
    >>> settings = DatabaseSettings(type="sqlite", sqlite_path="/tmp/x.db")
    >>> settings.to_config().db_type.value
    'sqlite'

Tags:
    settings, configuration, pydantic, environment, lifeline-core
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lifeline.core.adapters.types import DatabaseConfig, DatabaseType


class DatabaseSettings(BaseSettings):
    """Database configuration from ``DB_*`` environment variables.

    Fields
    ──────
    type               : ``sqlite`` or ``postgresql`` (``postgres`` accepted)
    host/port/name     : PostgreSQL server location
    user/password/ssl  : PostgreSQL credentials and TLS flag
    max_pool           : Upper bound on pooled connections
    idle_timeout       : Seconds an idle pooled connection is kept
    connection_timeout : Seconds to wait for a new connection or a free slot
    sqlite_path        : Database file for the embedded backend
    max_retries        : Reconnect attempts after the first failure
    retry_delay        : Seconds between reconnect attempts
    disconnect_timeout : Seconds to drain in-flight queries on shutdown
    slow_query_ms      : Threshold for slow-query warnings
    schema_dir         : Directory of ``*.sql`` migration files
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("LIFELINE_ENV", "DB_ENVIRONMENT", "environment"),
    )

    # ── Backend ──────────────────────────────────────────────────
    type: DatabaseType = Field(default=DatabaseType.SQLITE)

    # ── PostgreSQL ───────────────────────────────────────────────
    host: str = "localhost"
    port: int = 5432
    name: str = "lifeline_db"
    user: str = "postgres"
    password: str | None = None
    ssl: bool = False

    # ── Pool ─────────────────────────────────────────────────────
    max_pool: int = Field(default=20, ge=1)
    idle_timeout: float = Field(default=30.0, ge=0)
    connection_timeout: float = Field(default=2.0, gt=0)

    # ── SQLite ───────────────────────────────────────────────────
    sqlite_path: Path = Path("./data/lifeline.db")

    # ── Resilience ───────────────────────────────────────────────
    max_retries: int = Field(default=5, ge=0)
    retry_delay: float = Field(default=5.0, ge=0)
    disconnect_timeout: float = Field(default=10.0, ge=0)
    slow_query_ms: float = Field(default=1000.0, ge=0)

    # ── Migrations ───────────────────────────────────────────────
    schema_dir: Path = Path("./database/schemas")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "postgres":
                return DatabaseType.POSTGRESQL.value
        return value

    @model_validator(mode="after")
    def _require_password_in_production(self) -> DatabaseSettings:
        if (
            self.environment.lower() == "production"
            and self.type is DatabaseType.POSTGRESQL
            and not self.password
        ):
            raise ValueError("Missing required environment variables: DB_PASSWORD")
        return self

    def to_config(self) -> DatabaseConfig:
        """Build the adapter-facing configuration."""
        return DatabaseConfig(
            db_type=self.type,
            path=str(self.sqlite_path),
            host=self.host,
            port=self.port,
            database=self.name,
            username=self.user,
            password=self.password,
            ssl=self.ssl,
            pool_size=self.max_pool,
            idle_timeout=self.idle_timeout,
            connect_timeout=self.connection_timeout,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            disconnect_timeout=self.disconnect_timeout,
            slow_query_ms=self.slow_query_ms,
        )


class LoggingSettings(BaseSettings):
    """``LIFELINE_LOG_*`` settings for :func:`lifeline.core.logging.configure_logging`."""

    model_config = SettingsConfigDict(
        env_prefix="LIFELINE_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "auto"  # json, console, auto

    @property
    def json_format(self) -> bool | None:
        if self.format == "json":
            return True
        if self.format == "console":
            return False
        return None


__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
]
