"""
Root Typer application for the ``lifeline-db`` CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from lifeline.cli import db
from lifeline.core.logging import configure_logging
from lifeline.core.settings import LoggingSettings

app = Typer(
    name="lifeline-db",
    help="lifeline-db — schema migrations and health checks for the LifeLine database.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("lifeline-db")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"lifeline-db {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level (default: LIFELINE_LOG_LEVEL or INFO).",
    ),
) -> None:
    """lifeline-db CLI — apply, inspect and roll back schema migrations."""
    settings = LoggingSettings()
    configure_logging(
        level=log_level or settings.level,
        json_format=settings.json_format,
    )


# ── Commands ─────────────────────────────────────────────────────────────

app.command("migrate")(db.migrate)
app.command("rollback")(db.rollback)
app.command("status")(db.status)
app.command("health")(db.health)


if __name__ == "__main__":  # pragma: no cover
    app()
