"""
Organization commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from hirescout.core.errors import NotFoundError

from ._runtime import run_with_services

console = Console()

app = typer.Typer(
    help="Manage organizations and their credits",
    no_args_is_help=True,
)


@app.command("create")
def create_org(
    name: str = typer.Argument(..., help="Organization name"),
    credits_limit: Optional[int] = typer.Option(
        None, "--credits", help="Search credit limit (default from config)"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Create an organization."""
    from hirescout.persistence.repo import OrganizationRepository

    async def action(services):
        limit = credits_limit if credits_limit is not None else services.config.credits.default_search_limit
        async with services.session_factory() as session:
            org = await OrganizationRepository(session).create(name, credits_limit=limit)
            return org.id, limit

    org_id, limit = run_with_services(action, config_path)
    console.print(f"[green]OK[/green] Created organization [cyan]{org_id}[/cyan] with {limit} search credits")


@app.command("credits")
def show_credits(
    org_id: str = typer.Option(..., "--org", "-o", envvar="HIRESCOUT_ORG_ID", help="Organization id"),
    limit: int = typer.Option(20, "--limit", "-n", help="History rows to show"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show credit balances and recent credit history."""
    from hirescout.persistence.repo import CreditRepository, OrganizationRepository

    async def action(services):
        async with services.session_factory() as session:
            org = await OrganizationRepository(session).get(org_id)
            if org is None:
                raise NotFoundError(f"Organization not found: {org_id}")
            credits = CreditRepository(session)
            usage = await credits.get_or_create_usage(
                org_id,
                default_limit=services.config.credits.default_enrichment_limit,
                cycle_days=services.config.credits.billing_cycle_days,
            )
            history = await credits.get_history(org_id, limit=limit)
            return org, usage, history

    org, usage, history = run_with_services(action, config_path)

    console.print(f"[bold]{org.name}[/bold]")
    console.print(f"Search credits: {org.credits_used}/{org.credits_limit}")
    console.print(
        f"Enrichment credits: {usage.enrichment_used}/{usage.enrichment_limit} "
        f"[dim](cycle ends {usage.billing_cycle_end:%Y-%m-%d})[/dim]"
    )

    if not history:
        return

    table = Table(title="Credit History", show_header=True, header_style="bold magenta")
    table.add_column("When")
    table.add_column("Type", style="cyan")
    table.add_column("Transaction")
    table.add_column("Used", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("Description")

    for entry in history:
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            entry.credit_type,
            entry.transaction_type,
            str(entry.credits_used),
            str(entry.balance_after),
            entry.description or "-",
        )
    console.print(table)
