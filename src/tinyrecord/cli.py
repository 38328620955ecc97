"""
Typer application for ad-hoc database inspection.

    tinyrecord query "SELECT * FROM contact WHERE name = :name" -p name=test
    tinyrecord count contact --where "name = :name" -p name=test --dsn sqlite:///app.db
    tinyrecord --version

Without ``--dsn`` the ``default`` connection from ``TINYRECORD_*`` settings
is used.
"""

from __future__ import annotations

import json
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from tinyrecord.connection import Database
from tinyrecord.errors import TinyRecordError
from tinyrecord.logging import configure_logging
from tinyrecord.settings import get_settings

app = typer.Typer(
    name="tinyrecord",
    help="tinyrecord — query a database from the command line.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("tinyrecord")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"tinyrecord {v}")
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
) -> None:
    """tinyrecord CLI — run queries against a configured connection."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        stream=sys.stderr,
    )


# ── Helpers ──────────────────────────────────────────────────────────────


def _open(dsn: str | None) -> Database:
    if dsn:
        return Database(dsn, options={"raise_errors": True})
    return Database.from_settings()


def _parse_params(values: list[str] | None) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected name=value, got {item!r}", param_hint="--param")
        params[key.lstrip(":")] = value
    return params


def _fail(error: TinyRecordError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({type(error).__name__}): {error.message}")
    raise typer.Exit(code=1)


def _print_rows(rows: list[dict[str, Any]], *, as_json: bool, title: str = "") -> None:
    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return
    if not rows:
        console.print("[dim]No rows.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for column in rows[0]:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def query(
    sql: str = typer.Argument(..., help="SQL to run; use :name placeholders"),
    dsn: str | None = typer.Option(None, "--dsn", "-d", help="Data-source descriptor"),
    param: list[str] | None = typer.Option(None, "--param", "-p", help="Parameter as name=value"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Run a query and print the rows."""
    params = _parse_params(param)
    db = _open(dsn)
    try:
        rows = db.command().set_sql(sql).query_all(params)
    except TinyRecordError as e:
        _fail(e)
    finally:
        db.close()
    _print_rows(rows, as_json=json_out, title="Rows")


@app.command()
def count(
    table: str = typer.Argument(..., help="Table name"),
    dsn: str | None = typer.Option(None, "--dsn", "-d", help="Data-source descriptor"),
    where: str = typer.Option("", "--where", "-w", help="WHERE condition"),
    param: list[str] | None = typer.Option(None, "--param", "-p", help="Parameter as name=value"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Count the rows of a table."""
    params = _parse_params(param)
    db = _open(dsn)
    try:
        total = db.factory(f"@{table}").count(where, params)
    except TinyRecordError as e:
        _fail(e)
    finally:
        db.close()
    if json_out:
        console.print_json(json.dumps({"table": table, "count": total}))
    else:
        console.print(f"[cyan]{table}[/cyan]: {total}")


__all__ = [
    "app",
]
