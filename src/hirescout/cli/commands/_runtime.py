"""
Shared runtime for CLI commands.

Loads config, configures logging, opens the database and translates domain
errors into a red message and exit status 1.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console

from hirescout.core.config import AppConfig, ConfigError, load_app_config
from hirescout.core.errors import HireScoutError, InsufficientCreditsError
from hirescout.core.logging import setup_logging
from hirescout.core.services import Services
from hirescout.persistence.db import dispose_engines_async, get_async_engine

T = TypeVar("T")

err_console = Console(stderr=True)


def load_config(config_path: Path | None = None) -> AppConfig:
    try:
        config = load_app_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )
    return config


def run_with_services(
    action: Callable[[Services], Awaitable[T]],
    config_path: Path | None = None,
) -> T:
    """Run ``action`` against a fresh service container and database engine."""
    config = load_config(config_path)

    async def runner() -> T:
        await get_async_engine(
            config.database.url, echo=config.database.echo, pool_size=config.database.pool_size
        )
        services = Services(config)
        try:
            return await action(services)
        finally:
            await services.close()
            await dispose_engines_async()

    try:
        return asyncio.run(runner())
    except InsufficientCreditsError as e:
        err_console.print(f"[red]{e}[/red] [dim](used {e.credits_used} of {e.credits_limit})[/dim]")
        raise typer.Exit(1)
    except HireScoutError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def fmt(value: Any) -> str:
    if value is None or value == "":
        return "-"
    return str(value)
