"""Database adapter registry and factory.

Manifesto:
    Consumers should never hard-code adapter class names.  The registry
    maps ``DatabaseType`` strings to adapter classes and the ``get_adapter()``
    factory builds a configured, not yet connected, instance from a
    ``DatabaseConfig``.

Features:
    - ``AdapterRegistry`` with pre-registered SQLite and PostgreSQL adapters
    - ``register()`` for test doubles and custom adapters
    - ``get_adapter()`` factory: config → adapter

Tags:
    lifeline-core, database, registry, factory
"""

from __future__ import annotations

from typing import Any

from lifeline.core.errors import ConfigError
from lifeline.core.logging import Logger

from .base import DatabaseAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType


class AdapterRegistry:
    """
    Registry for database adapter classes.

    Pre-registered adapters:
    - ``sqlite`` -> :class:`SQLiteAdapter`
    - ``postgresql`` / ``postgres`` -> :class:`PostgreSQLAdapter`
    """

    def __init__(self):
        self._factories: dict[str, type[DatabaseAdapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register default adapters."""
        self._factories["sqlite"] = SQLiteAdapter
        self._factories["postgresql"] = PostgreSQLAdapter
        self._factories["postgres"] = PostgreSQLAdapter  # Alias

    def register(self, name: str, adapter_class: type[DatabaseAdapter]) -> None:
        """Register an adapter class."""
        self._factories[name.lower()] = adapter_class

    def create(
        self,
        config: DatabaseConfig,
        *,
        logger: Logger | None = None,
        **kwargs: Any,
    ) -> DatabaseAdapter:
        """Create an adapter for ``config.db_type``."""
        db_type = config.db_type
        name = (db_type.value if isinstance(db_type, DatabaseType) else str(db_type)).lower()
        if name not in self._factories:
            raise ConfigError(f"Unknown database adapter: {name}")
        return self._factories[name](config=config, logger=logger, **kwargs)

    def list_adapters(self) -> list[str]:
        """List registered adapter names."""
        return sorted(self._factories.keys())


# Global registry
adapter_registry = AdapterRegistry()


def get_adapter(
    config: DatabaseConfig,
    *,
    logger: Logger | None = None,
    **kwargs: Any,
) -> DatabaseAdapter:
    """
    Get a database adapter for a config.

    Usage:
        adapter = get_adapter(DatabaseConfig(db_type=DatabaseType.SQLITE, path="data.db"))
        adapter = get_adapter(settings.to_config(), logger=get_logger("lifeline.db"))
    """
    return adapter_registry.create(config, logger=logger, **kwargs)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
