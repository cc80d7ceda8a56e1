"""Schema migration manager for the LifeLine database.

Manifesto:
    Database schemas must evolve safely across deployments.  Manual DDL
    execution is error-prone and unrepeatable.  The migration manager
    applies ``*.sql`` files in filename order, each in its own
    transaction, tracking what has already been applied in the
    ``migrations`` ledger table.

Modules
-------
runner    MigrationManager with status() / migrate() / rollback()

Tags:
    lifeline-core, migrations, schema, database, idempotent, DDL
"""

from lifeline.core.migrations.runner import (
    MigrationManager,
    MigrationRecord,
    MigrationResult,
    MigrationStatus,
)

__all__ = [
    "MigrationManager",
    "MigrationRecord",
    "MigrationResult",
    "MigrationStatus",
]
