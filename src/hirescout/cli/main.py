"""
HireScout CLI - Main entry point.

Runs job searches, manages scraper runs and enriches companies with
contacts from the terminal, and serves the HTTP API.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from hirescout import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Hiring-signal lead generation: concurrent job searches and cache-first enrichment",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """HireScout - hiring-signal lead generation."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import db, enrich, org, search  # noqa: E402

app.add_typer(org.app, name="org", help="Manage organizations and credits")
app.add_typer(search.app, name="search", help="Run searches and manage scraper runs")
app.add_typer(enrich.app, name="enrich", help="Enrich companies with contacts")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize HireScout database and configuration.

    Creates required directories, a default configs/app.yaml
    and the database schema.
    """
    import asyncio

    from rich.progress import Progress, SpinnerColumn, TextColumn

    from hirescout.core.config import load_app_config
    from hirescout.persistence.db import dispose_engines_async, init_db_async

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Creating directories...", total=None)

        for dir_path in (Path("configs"), Path("data"), Path("logs")):
            dir_path.mkdir(parents=True, exist_ok=True)

        progress.update(task, description="Creating default configuration...")

        app_config_path = Path("configs/app.yaml")
        if not app_config_path.exists() or force:
            _create_default_app_config(app_config_path)

        progress.update(task, description="Initializing database...")

        config = load_app_config(app_config_path)

        async def setup() -> None:
            try:
                await init_db_async(config.database.url)
            finally:
                await dispose_engines_async()

        asyncio.run(setup())

        progress.update(task, description="Done!")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - HireScout initialized successfully![/bold green]\n\n"
        "Created:\n"
        "  - [cyan]configs/app.yaml[/cyan] - Application configuration\n"
        "  - [cyan]data/[/cyan] - Database storage\n"
        "  - [cyan]logs/[/cyan] - Log files\n\n"
        "Next steps:\n"
        "  1. Set [yellow]APIFY_API_TOKEN[/yellow] and [yellow]APOLLO_API_KEY[/yellow] in .env\n"
        "  2. Create an org: [yellow]hirescout org create <name>[/yellow]\n"
        "  3. Create a search: [yellow]hirescout search create <name> -s \"title|location\"[/yellow]\n"
        "  4. Run it: [yellow]hirescout search run <search-id> --org <org-id>[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Create default app.yaml configuration."""
    default_config = """\
# HireScout Configuration
# Values of the form ${VAR} are read from the environment

data_dir: data

# Database settings
database:
  url: sqlite:///data/hirescout.db
  echo: false

# Logging settings
logging:
  level: INFO
  file: logs/hirescout.log
  json_format: true
  rich_console: true

# Search runs
orchestrator:
  run_budget_seconds: 300
  scraper_timeout_seconds: 240
  stale_after_minutes: 10
  default_max_rows: 50

# Contact enrichment
enrichment:
  cache_stale_days: 30
  max_pages: 5
  company_concurrency: 3
  webhook_url: ${APOLLO_PHONE_WEBHOOK_URL}

# Credit defaults for new organizations
credits:
  default_search_limit: 30
  default_enrichment_limit: 200
  billing_cycle_days: 30

apify:
  api_token: ${APIFY_API_TOKEN}

apollo:
  api_key: ${APOLLO_API_KEY}

api:
  host: 127.0.0.1
  port: 8000
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show configuration and shared cache status."""
    from rich.table import Table

    from .commands._runtime import run_with_services

    async def action(services):
        async with services.session_factory() as session:
            return services.config, await services.gateway.cache_stats(session)

    config, stats = run_with_services(action, config_path)

    console.print()
    console.print("[bold]HireScout Status[/bold]")
    console.print()

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Database", config.database.url)
    table.add_row("Job source", "[green]configured[/green]" if config.apify.api_token else "[red]missing APIFY_API_TOKEN[/red]")
    table.add_row("Contact provider", "[green]configured[/green]" if config.apollo.api_key else "[red]missing APOLLO_API_KEY[/red]")
    table.add_row("Phone webhook", config.enrichment.webhook_url or "[dim]not set[/dim]")
    table.add_row("Cached companies", f"{stats['totalCompanies']} ({stats['staleCompanies']} stale)")
    table.add_row("Cached employees", str(stats["totalEmployees"]))
    console.print(table)


# =============================================================================
# Serve Command
# =============================================================================


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from config)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from hirescout.api import create_app

    from .commands._runtime import load_config

    config = load_config(config_path)
    bind_host = host or config.api.host
    bind_port = port or config.api.port

    console.print(f"[bold]HireScout API[/bold] on [cyan]http://{bind_host}:{bind_port}[/cyan]")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_config=None)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
