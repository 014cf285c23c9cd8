"""
Enrichment commands: enrich companies with contacts and inspect the shared cache.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from hirescout.core.enrichment import EnrichmentRequest

from ._runtime import fmt, run_with_services

console = Console()

app = typer.Typer(
    help="Enrich companies with employees and leads",
    no_args_is_help=True,
)

ORG_OPTION = typer.Option(..., "--org", "-o", envvar="HIRESCOUT_ORG_ID", help="Organization id")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to app.yaml")


@app.command("run")
def enrich_companies(
    company_ids: Optional[list[str]] = typer.Argument(None, help="Company ids (default: all org companies)"),
    org_id: str = ORG_OPTION,
    titles: Optional[list[str]] = typer.Option(None, "--title", "-t", help="Job title filter (repeatable)"),
    seniorities: Optional[list[str]] = typer.Option(
        None, "--seniority", "-s", help="Seniority filter (repeatable)"
    ),
    fetch_all: bool = typer.Option(False, "--all", help="Fetch every page, ignoring filters"),
    reveal_phones: bool = typer.Option(False, "--phones", help="Request phone numbers via webhook"),
    search_id: Optional[str] = typer.Option(None, "--search", help="Search id recorded on the transaction"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User id recorded in credit history"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Enrich companies with employees and create one lead per employee.

    Examples:
        hirescout enrich run --org <org-id>
        hirescout enrich run <company-id> --org <org-id> -t CTO -s c_suite
    """
    request = EnrichmentRequest(
        company_ids=company_ids or None,
        titles=titles or None,
        seniorities=seniorities or None,
        fetch_all=fetch_all,
        reveal_phone_numbers=reveal_phones,
        search_id=search_id,
    )

    async def action(services):
        with console.status("[cyan]Enriching companies...[/cyan]"):
            return await services.pipeline.enrich(org_id, user_id, request)

    summary = run_with_services(action, config_path)

    table = Table(title="Enrichment Results")
    table.add_column("Company", style="cyan")
    table.add_column("Source", justify="center")
    table.add_column("Found", justify="right")
    table.add_column("New Employees", justify="right")
    table.add_column("New Leads", justify="right", style="green")
    table.add_column("Error", style="red")

    for r in summary.results:
        table.add_row(
            r.company_name,
            "cache" if r.cache_hit else "apollo",
            str(r.employees_found),
            str(r.employees_created),
            str(r.leads_created),
            fmt(r.error),
        )
    console.print(table)

    for company in summary.skipped:
        console.print(f"[yellow]Skipped[/yellow] {company.name}: no domain available")

    console.print(
        f"\nLeads created: [bold]{summary.total_leads_created}[/bold]  "
        f"Credits used: [bold]{summary.credits_used}[/bold]  "
        f"Cache hits: {summary.cache_hits}  Fetches: {summary.apollo_fetches}"
    )
    if summary.reveal_phone_numbers:
        console.print(f"[dim]{len(summary.phone_lead_ids)} lead(s) waiting for phone numbers[/dim]")


@app.command("preview")
def preview(
    company_ids: Optional[list[str]] = typer.Argument(None, help="Company ids (default: all org companies)"),
    org_id: str = ORG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Show domain and cache status per company without spending credits."""

    async def action(services):
        return await services.pipeline.preview(org_id, company_ids or None)

    data = run_with_services(action, config_path)

    table = Table(title="Enrichment Preview")
    table.add_column("Company", style="cyan")
    table.add_column("Domain")
    table.add_column("Cached", justify="center")
    table.add_column("Cached Employees", justify="right")
    table.add_column("Stale", justify="center")
    table.add_column("Org Employees", justify="right")

    for company in data["companies"]:
        status = company["cacheStatus"] or {}
        cached = status.get("exists", False)
        table.add_row(
            company["name"],
            fmt(company["domain"]),
            "[green]yes[/green]" if cached else "[dim]no[/dim]",
            str(status.get("employeesCount", 0)) if cached else "-",
            ("[yellow]yes[/yellow]" if status.get("isStale") else "no") if cached else "-",
            str(company["orgEmployeesCount"]),
        )
    console.print(table)

    totals = data["totals"]
    console.print(
        f"{totals['companiesWithDomains']}/{totals['totalCompanies']} with domains, "
        f"{totals['companiesInCache']} cached, {totals['companiesNeedingFetch']} need a fetch"
    )
    console.print(f"Credits remaining: [bold]{data['creditsRemaining']}[/bold]")


@app.command("cache-stats")
def cache_stats(config_path: Optional[Path] = CONFIG_OPTION) -> None:
    """Show shared enrichment cache statistics."""

    async def action(services):
        async with services.session_factory() as session:
            return await services.gateway.cache_stats(session)

    stats = run_with_services(action, config_path)

    table = Table(title="Enrichment Cache", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Companies", str(stats["totalCompanies"]))
    table.add_row("Fresh", str(stats["freshCompanies"]))
    table.add_row("Stale", str(stats["staleCompanies"]))
    table.add_row("Employees", str(stats["totalEmployees"]))
    console.print(table)


@app.command("refresh")
def refresh(
    domain: str = typer.Argument(..., help="Company domain, e.g. acme.io"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Mark a cached company as stale so the next enrichment refetches it."""

    async def action(services):
        async with services.session_factory() as session:
            return await services.gateway.mark_for_refresh(session, domain)

    if run_with_services(action, config_path):
        console.print(f"[green]OK[/green] {domain} will be refetched on next enrichment")
    else:
        console.print(f"[yellow]{domain} is not in the cache[/yellow]")
