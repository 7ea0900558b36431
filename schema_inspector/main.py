"""schema-inspector CLI - Main entry point."""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .errors import SchemaInspectorError
from .inspectors import Client, SchemaInspector, create_inspector

app = typer.Typer(
    name="schema-inspector",
    help="Inspect tables, columns and keys of a SQL database",
    add_completion=False,
)

console = Console()

UrlOption = typer.Option(None, "--url", "-u", help="SQLAlchemy database URL (default: SCHEMA_INSPECTOR_DATABASE_URL)")
ClientOption = typer.Option(None, "--client", "-c", help="Engine identifier (default: from the URL)")
SchemaOption = typer.Option(None, "--schema", "-s", help="Schema to inspect (Postgres, CockroachDB, SQL Server, SQLite)")
JsonOption = typer.Option(False, "--json", help="Print JSON instead of a table")


def _inspector_options(client: Client, schema: Optional[str]) -> Dict[str, Any]:
    """Constructor options for an engine, filled from the CLI and settings."""
    if client in (Client.POSTGRES, Client.COCKROACHDB):
        return {"search_path": schema or settings.postgres_search_path}
    if client == Client.MSSQL:
        return {"schema": schema, "default_schema": settings.mssql_default_schema}
    if client == Client.SQLITE and schema:
        return {"schema": schema}
    return {}


@contextmanager
def open_inspector(url: Optional[str], client: Optional[str], schema: Optional[str]):
    """Connect to ``url`` and yield an inspector; the engine is disposed on exit."""
    url = url or settings.database_url
    if not url:
        console.print("[red]No database URL. Pass --url or set SCHEMA_INSPECTOR_DATABASE_URL.[/red]")
        raise typer.Exit(1)

    try:
        engine = create_engine(url)
    except (SQLAlchemyError, ImportError) as e:
        console.print(f"[red]Cannot create engine: {e}[/red]")
        raise typer.Exit(1)

    try:
        with engine.connect() as connection:
            resolved = Client.from_string(client or settings.client or connection.dialect.name)
            yield create_inspector(connection, resolved, **_inspector_options(resolved, schema))
    except SchemaInspectorError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    except SQLAlchemyError as e:
        console.print(f"[red]Database error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        engine.dispose()


def _echo_json(data: Any):
    typer.echo(json.dumps(data, indent=2, default=str))


def _print_rows(title: str, headers: List[str], rows: List[Dict[str, Any]]):
    table = Table(title=title)
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*["" if row.get(h) is None else str(row.get(h)) for h in headers])
    console.print(table)


@app.command()
def tables(
    url: Optional[str] = UrlOption,
    client: Optional[str] = ClientOption,
    schema: Optional[str] = SchemaOption,
    as_json: bool = JsonOption,
):
    """List tables."""
    with open_inspector(url, client, schema) as inspector:
        names = inspector.tables()
    if as_json:
        _echo_json(names)
        return
    if not names:
        console.print("[yellow]No tables found.[/yellow]")
        return
    for name in names:
        console.print(name)


@app.command()
def table(
    name: Optional[str] = typer.Argument(None, help="Table name; all tables when omitted"),
    url: Optional[str] = UrlOption,
    client: Optional[str] = ClientOption,
    schema: Optional[str] = SchemaOption,
    as_json: bool = JsonOption,
):
    """Show table details."""
    with open_inspector(url, client, schema) as inspector:
        info = inspector.table_info(name)
    if name is not None and info is None:
        console.print(f"[red]Table not found: {name}[/red]")
        raise typer.Exit(1)

    rows = [t.to_dict() for t in (info if name is None else [info])]
    if as_json:
        _echo_json(rows if name is None else rows[0])
        return
    headers = list(rows[0].keys()) if rows else ["name", "schema", "comment"]
    _print_rows("Tables", headers, rows)


@app.command()
def columns(
    table_name: Optional[str] = typer.Argument(None, metavar="TABLE", help="Restrict to one table"),
    url: Optional[str] = UrlOption,
    client: Optional[str] = ClientOption,
    schema: Optional[str] = SchemaOption,
    as_json: bool = JsonOption,
):
    """List columns with their types and keys."""
    with open_inspector(url, client, schema) as inspector:
        if table_name is not None and not inspector.has_table(table_name):
            console.print(f"[red]Table not found: {table_name}[/red]")
            raise typer.Exit(1)
        info = inspector.column_info(table_name)

    rows = [c.to_dict() for c in info]
    if as_json:
        _echo_json(rows)
        return
    _print_rows(
        f"Columns of {table_name}" if table_name else "Columns",
        ["table", "name", "data_type", "is_nullable", "default_value", "is_primary_key", "foreign_key_table"],
        rows,
    )


@app.command()
def column(
    table_name: str = typer.Argument(..., metavar="TABLE", help="Table name"),
    column_name: str = typer.Argument(..., metavar="COLUMN", help="Column name"),
    url: Optional[str] = UrlOption,
    client: Optional[str] = ClientOption,
    schema: Optional[str] = SchemaOption,
    as_json: bool = JsonOption,
):
    """Show everything known about one column."""
    with open_inspector(url, client, schema) as inspector:
        info = inspector.column_info(table_name, column_name)
    if info is None:
        console.print(f"[red]Column not found: {table_name}.{column_name}[/red]")
        raise typer.Exit(1)

    data = info.to_dict()
    if as_json:
        _echo_json(data)
        return
    console.print(f"[bold]Column: {table_name}.{column_name}[/bold]")
    for key, value in data.items():
        console.print(f"  {key}: {value}")


@app.command("foreign-keys")
def foreign_keys(
    table_name: Optional[str] = typer.Argument(None, metavar="TABLE", help="Restrict to one table"),
    url: Optional[str] = UrlOption,
    client: Optional[str] = ClientOption,
    schema: Optional[str] = SchemaOption,
    as_json: bool = JsonOption,
):
    """List foreign keys."""
    with open_inspector(url, client, schema) as inspector:
        keys = inspector.foreign_keys(table_name)

    rows = [fk.to_dict() for fk in keys]
    if as_json:
        _echo_json(rows)
        return
    if not rows:
        console.print("[yellow]No foreign keys found.[/yellow]")
        return
    _print_rows(
        "Foreign Keys",
        ["table", "column", "foreign_key_table", "foreign_key_column", "on_update", "on_delete"],
        rows,
    )


@app.command()
def primary(
    table_name: str = typer.Argument(..., metavar="TABLE", help="Table name"),
    url: Optional[str] = UrlOption,
    client: Optional[str] = ClientOption,
    schema: Optional[str] = SchemaOption,
):
    """Show the primary key column(s) of a table."""
    with open_inspector(url, client, schema) as inspector:
        keys = inspector.primary_keys(table_name)
    if not keys:
        console.print(f"[yellow]No primary key on {table_name}.[/yellow]")
        return
    console.print(", ".join(keys))


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Database URL: {'Configured' if settings.database_url else 'Not set'}")
    console.print(f"  Client: {settings.client or 'From URL'}")
    console.print(f"  Postgres search path: {', '.join(settings.postgres_search_path)}")
    console.print(f"  SQL Server schema: {settings.mssql_default_schema}")
    console.print(f"  Log level: {settings.log_level}")


@app.callback()
def main():
    """
    schema-inspector - Inspect tables, columns and keys of a SQL database.

    Examples:

        schema-inspector tables --url sqlite:///app.db

        schema-inspector columns users --url postgresql+psycopg://localhost/app

        schema-inspector foreign-keys --json
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True))],
    )


if __name__ == "__main__":
    app()
