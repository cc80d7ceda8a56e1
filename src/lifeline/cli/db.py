"""
CLI: ``lifeline-db migrate|rollback|status|health`` — database commands.

Every command disconnects before exiting, including on failure.
"""

from __future__ import annotations

from pathlib import Path

import typer

from lifeline.cli.utils import (
    console,
    fail,
    open_manager,
    output_json,
    print_dict,
    print_names,
    shutdown,
)
from lifeline.core.errors import HealthCheckError, LifelineError

SchemaDirOption = typer.Option(
    None,
    "--schema-dir",
    "-s",
    help="Directory of *.sql migration files (default: DB_SCHEMA_DIR)",
)
JsonOption = typer.Option(False, "--json", help="JSON output")


def migrate(
    schema_dir: Path | None = SchemaDirOption,
    json_out: bool = JsonOption,
) -> None:
    """Apply pending migrations in filename order."""
    db, manager = open_manager(schema_dir)
    try:
        result = manager.migrate()
    except LifelineError as e:
        applied = getattr(e, "applied", [])
        if applied and not json_out:
            print_names(applied, title="Applied before failure")
        fail(e)
    finally:
        shutdown(db)

    if json_out:
        output_json(result)
        return
    if not result.changed:
        console.print("[green]Database is up to date.[/green]")
        return
    print_names(result.applied, title="Applied")
    if result.skipped:
        print_names(result.skipped, title="Skipped (objects already exist)", style="yellow")


def rollback(
    schema_dir: Path | None = SchemaDirOption,
    json_out: bool = JsonOption,
) -> None:
    """Remove the latest ledger record. Schema changes are NOT reverted."""
    db, manager = open_manager(schema_dir)
    try:
        name = manager.rollback()
    except LifelineError as e:
        fail(e)
    finally:
        shutdown(db)

    if json_out:
        output_json({"rolled_back": name})
        return
    if name is None:
        console.print("[dim]No migrations to roll back.[/dim]")
        return
    console.print(f"Removed ledger record for [bold]{name}[/bold].")
    console.print("[yellow]Schema changes were not reverted; undo them manually.[/yellow]")


def status(
    schema_dir: Path | None = SchemaDirOption,
    json_out: bool = JsonOption,
) -> None:
    """Show executed and pending migrations."""
    db, manager = open_manager(schema_dir)
    try:
        report = manager.status()
    except LifelineError as e:
        fail(e)
    finally:
        shutdown(db)

    if json_out:
        output_json(report)
        return
    print_names(report.executed, title="Executed")
    print_names(report.pending, title="Pending", style="yellow")
    console.print(
        f"\n[bold]{len(report.executed)}[/bold] of [bold]{report.total}[/bold] applied"
    )


def health(
    schema_dir: Path | None = SchemaDirOption,
    json_out: bool = JsonOption,
) -> None:
    """Check database connectivity, version and pool usage."""
    db, _manager = open_manager(schema_dir)
    try:
        db.connect()
        if not db.is_connected():
            raise HealthCheckError("Database is not available")
        result = db.health_check()
        stats = db.get_pool_stats()
    except LifelineError as e:
        fail(e)
    finally:
        shutdown(db)

    data = {"backend": db.db_type.value, **result.model_dump()}
    if stats is not None:
        data["pool"] = stats.model_dump()
    if json_out:
        output_json(data)
        return
    print_dict(data, title="Database Health")
