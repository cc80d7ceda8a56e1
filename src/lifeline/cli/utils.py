"""
CLI utility helpers — settings loading, output formatting and shutdown.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from lifeline.core.database import Database
from lifeline.core.errors import LifelineError
from lifeline.core.logging import get_logger
from lifeline.core.migrations import MigrationManager
from lifeline.core.settings import DatabaseSettings

console = Console()
err_console = Console(stderr=True)


# ── Settings / database helpers ──────────────────────────────────────────


def load_settings() -> DatabaseSettings:
    """Read ``DB_*`` settings, exiting with code 2 when they are invalid."""
    try:
        return DatabaseSettings()
    except ValidationError as e:
        for error in e.errors():
            loc = ".".join(str(part) for part in error["loc"]) or "settings"
            err_console.print(f"[bold red]Config error[/bold red] {loc}: {error['msg']}")
        raise typer.Exit(code=2) from None


def open_manager(schema_dir: Path | None) -> tuple[Database, MigrationManager]:
    """Build the database facade and a migration manager for CLI commands."""
    settings = load_settings()
    db = Database.from_settings(settings, logger=get_logger("lifeline.db"))
    manager = MigrationManager(
        db,
        schema_dir or settings.schema_dir,
        logger=get_logger("lifeline.migrations"),
    )
    return db, manager


def shutdown(db: Database) -> None:
    """Disconnect if connected; report but never raise close failures."""
    if not db.is_connected():
        return
    try:
        db.disconnect()
    except LifelineError as e:
        err_console.print(f"[yellow]Warning[/yellow]: {e.message}")


def fail(error: Exception, *, code: int = 1) -> NoReturn:
    """Print *error* to stderr and exit with *code*."""
    if isinstance(error, LifelineError):
        err_console.print(
            f"[bold red]Error[/bold red] ({error.category.value}): {error.message}"
        )
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")
    raise typer.Exit(code=code)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_json(data: Any) -> None:
    console.print_json(json.dumps(_to_dict(data), default=str))


def print_names(names: list[str], *, title: str, style: str = "green") -> None:
    """Render a list of migration names as a one-column Rich table."""
    if not names:
        console.print(f"[dim]{title}: none[/dim]")
        return
    table = Table(title=title, show_lines=False, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("migration", style=style, overflow="fold")
    for index, name in enumerate(names, start=1):
        table.add_row(str(index), name)
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
