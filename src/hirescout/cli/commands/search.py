"""
Search commands: create searches, run them and manage their runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from ._runtime import fmt, run_with_services

console = Console()

app = typer.Typer(
    help="Run searches and manage scraper runs",
    no_args_is_help=True,
)

ORG_OPTION = typer.Option(..., "--org", "-o", envvar="HIRESCOUT_ORG_ID", help="Organization id")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to app.yaml")


def _parse_scraper(value: str) -> dict[str, Any]:
    """Parse ``title[|location[|experience level]]``."""
    parts = [part.strip() for part in value.split("|")]
    if not parts[0]:
        raise typer.BadParameter(f"Scraper needs a job title: {value!r}")
    return {
        "jobTitle": parts[0],
        "location": parts[1] if len(parts) > 1 and parts[1] else None,
        "experienceLevel": parts[2] if len(parts) > 2 and parts[2] else None,
    }


@app.command("create")
def create_search(
    name: str = typer.Argument(..., help="Search name"),
    scrapers: list[str] = typer.Option(
        ...,
        "--scraper",
        "-s",
        help='Scraper config as "title|location|experience level" (repeatable)',
    ),
    org_id: str = ORG_OPTION,
    max_rows: Optional[int] = typer.Option(None, "--max-rows", help="Postings per scraper"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Create a search with one or more scraper configs.

    Examples:
        hirescout search create "Platform hiring" -s "DevOps Engineer|Remote" -s "SRE|Remote"
    """
    from hirescout.persistence.repo import SearchRepository

    configs = [_parse_scraper(value) for value in scrapers]

    async def action(services):
        async with services.session_factory() as session:
            search = await SearchRepository(session).create(
                org_id, name, scrapers=configs, max_rows=max_rows
            )
            return search.id

    search_id = run_with_services(action, config_path)
    console.print(f"[green]OK[/green] Created search [cyan]{search_id}[/cyan] with {len(configs)} scraper(s)")


@app.command("run")
def run_search(
    search_id: str = typer.Argument(..., help="Search id"),
    org_id: str = ORG_OPTION,
    scraper_index: Optional[int] = typer.Option(
        None,
        "--index",
        "-i",
        help="Run only this scraper config (re-run a failed one)",
    ),
    user_id: Optional[str] = typer.Option(None, "--user", help="User id recorded in credit history"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Run the scraper configs of a search concurrently.

    Examples:
        hirescout search run <search-id> --org <org-id>
        hirescout search run <search-id> --org <org-id> --index 1
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    async def action(services):
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("[cyan]Running scrapers...[/cyan]", total=None)
            return await services.scheduler.run_search(
                org_id, search_id, scraper_index=scraper_index, user_id=user_id
            )

    result = run_with_services(action, config_path)
    _show_run_summary(result)


def _show_run_summary(result) -> None:
    table = Table(title="Scraper Results")

    table.add_column("#", justify="right")
    table.add_column("Run", style="cyan")
    table.add_column("Jobs", justify="right")
    table.add_column("Companies", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Leads", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Error", style="red")

    for r in result.scraper_results:
        error = "cancelled" if r.cancelled else fmt(r.error)
        table.add_row(
            str(r.scraper_index),
            r.scraper_run_id[:8],
            str(r.jobs_found),
            str(r.companies_found),
            str(r.new_companies),
            str(r.leads_created),
            f"{r.duration}s" if r.duration is not None else "-",
            error,
        )

    table.add_section()
    table.add_row(
        "",
        "[bold]Total[/bold]",
        str(result.total_jobs_found),
        str(result.total_companies_found),
        str(result.total_new_companies),
        str(result.total_leads_created),
        "",
        f"{len(result.failed)} failed" if result.failed else "",
    )

    console.print(table)
    if result.reaped_runs:
        console.print(f"[yellow]Reaped {len(result.reaped_runs)} stale run(s) before starting[/yellow]")
    console.print(f"Credits used: [bold]{result.credits_used}[/bold]")


@app.command("runs")
def list_runs(
    search_id: str = typer.Argument(..., help="Search id"),
    org_id: str = ORG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """List the runs of a search, newest first."""

    async def action(services):
        return await services.runs.list_runs(org_id, search_id)

    data = run_with_services(action, config_path)

    if not data["runs"]:
        console.print("[dim]No runs yet.[/dim]")
        return

    status_styles = {
        "completed": "green",
        "failed": "red",
        "running": "yellow",
        "queued": "blue",
        "cancelled": "dim",
    }

    for day, runs in data["runsByDate"].items():
        table = Table(title=day, show_header=True, header_style="bold magenta")
        table.add_column("Run", style="cyan")
        table.add_column("#", justify="right")
        table.add_column("Title")
        table.add_column("Status", justify="center")
        table.add_column("Jobs", justify="right")
        table.add_column("New", justify="right")
        table.add_column("Duration", justify="right")
        table.add_column("Error", style="red")

        for run in runs:
            style = status_styles.get(run["status"], "white")
            table.add_row(
                run["id"][:8],
                str(run["scraperIndex"]),
                fmt((run["scraperConfig"] or {}).get("jobTitle")),
                f"[{style}]{run['status']}[/{style}]",
                str(run["jobsFound"]),
                str(run["newCompanies"]),
                f"{run['duration']}s" if run["duration"] is not None else "-",
                fmt(run["errorMessage"]),
            )
        console.print(table)

    console.print(f"[dim]{data['totalRuns']} run(s)[/dim]")


@app.command("cancel")
def cancel_run(
    search_id: str = typer.Argument(..., help="Search id"),
    run_id: str = typer.Argument(..., help="Run id"),
    org_id: str = ORG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Cancel a queued run before its executor starts."""

    async def action(services):
        return await services.runs.cancel_run(org_id, search_id, run_id)

    run_with_services(action, config_path)
    console.print(f"[green]OK[/green] Cancelled run {run_id}")


@app.command("cleanup")
def cleanup_runs(
    search_id: str = typer.Argument(..., help="Search id"),
    org_id: str = ORG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Fail queued/running runs that outlived the staleness threshold."""

    async def action(services):
        return await services.runs.cleanup(org_id, search_id)

    data = run_with_services(action, config_path)
    if data["cleanedUp"]:
        console.print(f"[yellow]Marked {data['cleanedUp']} stale run(s) as failed[/yellow]")
        for run_id in data["runIds"]:
            console.print(f"  - {run_id}")
    else:
        console.print("[green]No stale runs[/green]")
