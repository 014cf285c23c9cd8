"""
Database management commands.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ._runtime import load_config

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)

ALEMBIC_INI = "alembic.ini"


def _alembic_config(database_url: str):
    from alembic.config import Config

    alembic_cfg = Config(ALEMBIC_INI)
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    return alembic_cfg


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Initialize the database schema.

    Creates all tables. Use --drop to reset the database.
    """
    from hirescout.persistence.db import dispose_engines_async, drop_db_async, init_db_async

    config = load_config(config_path)

    if drop_existing and not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
        raise typer.Abort()

    async def setup() -> None:
        try:
            if drop_existing:
                console.print("[yellow]Dropping existing tables...[/yellow]")
                await drop_db_async(config.database.url)
            console.print("Creating database schema...")
            await init_db_async(config.database.url, echo=config.database.echo)
        finally:
            await dispose_engines_async()

    asyncio.run(setup())
    console.print("[green]OK[/green] Database initialized")


@app.command("migrate")
def run_migrations(
    revision: str = typer.Option(
        "head",
        "--revision",
        "-r",
        help="Target revision (default: head)",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Run database migrations."""
    from alembic import command

    config = load_config(config_path)
    console.print(f"Running migrations to: {revision}")

    try:
        command.upgrade(_alembic_config(config.database.url), revision)
        console.print("[green]OK[/green] Migrations complete")
    except Exception as e:
        err_console.print(f"[red]Migration failed:[/red] {e}")
        raise typer.Exit(1)


@app.command("downgrade")
def downgrade_database(
    revision: str = typer.Argument(..., help="Target revision"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Downgrade database to a specific revision."""
    from alembic import command

    if not typer.confirm(f"Downgrade to revision '{revision}'? This may lose data."):
        raise typer.Abort()

    config = load_config(config_path)
    console.print(f"Downgrading to: {revision}")

    try:
        command.downgrade(_alembic_config(config.database.url), revision)
        console.print("[green]OK[/green] Downgrade complete")
    except Exception as e:
        err_console.print(f"[red]Downgrade failed:[/red] {e}")
        raise typer.Exit(1)


@app.command("current")
def show_current(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show current database revision."""
    from alembic import command

    config = load_config(config_path)
    console.print("[bold]Current database revision:[/bold]")
    command.current(_alembic_config(config.database.url), verbose=True)
