"""
Search run orchestrator.

Coordinates one run invocation of a search: pre-flight checks, stale run
recovery, queued run creation, concurrent scraper fan-out, join and the
single credit debit.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from hirescout.core.clients.base import JobSource
from hirescout.core.config.models import AppConfig, CreditType, ScraperConfig
from hirescout.core.errors import InsufficientCreditsError, NotFoundError, ValidationError
from hirescout.core.logging import get_contextual_logger
from hirescout.persistence.db import SessionFactory, get_async_session
from hirescout.persistence.repo import (
    CompanyRepository,
    CreditRepository,
    JobRepository,
    OrganizationRepository,
    RunRepository,
    SearchRepository,
)

from .executor import ScraperExecutor, ScraperResult
from .ingest import ResultIngester
from .reaper import StaleRunReaper

BUDGET_EXCEEDED_MESSAGE = "Run budget exceeded before the scraper finished"


def resolve_scraper_configs(filters: dict[str, Any] | None) -> list[ScraperConfig]:
    """Resolve the scraper configs stored in a search's filters.

    ``filters.scrapers`` wins; otherwise a single legacy config is derived
    from ``jobTitles`` joined with " OR " and the first of ``locations``.
    """
    filters = filters or {}
    configs: list[ScraperConfig] = []

    for index, raw in enumerate(filters.get("scrapers") or []):
        if not isinstance(raw, dict) or not raw.get("jobTitle"):
            continue
        try:
            configs.append(ScraperConfig.model_validate(raw))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid scraper config at index {index}: {e}") from e

    if configs:
        return configs

    titles = [t for t in filters.get("jobTitles") or [] if t]
    if titles:
        locations = filters.get("locations") or []
        configs.append(ScraperConfig(
            job_title=" OR ".join(titles),
            location=locations[0] if locations else None,
        ))
    return configs


@dataclass
class SearchRunResult:
    """Aggregated outcome of one run invocation."""

    search_id: str
    scraper_results: list[ScraperResult] = field(default_factory=list)
    credits_used: int = 0
    reaped_runs: list[str] = field(default_factory=list)

    @property
    def successful(self) -> list[ScraperResult]:
        return [r for r in self.scraper_results if r.succeeded]

    @property
    def failed(self) -> list[ScraperResult]:
        return [r for r in self.scraper_results if r.error is not None]

    @property
    def total_jobs_found(self) -> int:
        return sum(r.jobs_found for r in self.successful)

    @property
    def total_companies_found(self) -> int:
        return sum(r.companies_found for r in self.successful)

    @property
    def total_new_companies(self) -> int:
        return sum(r.new_companies for r in self.successful)

    @property
    def total_leads_created(self) -> int:
        return sum(r.leads_created for r in self.successful)

    def to_dict(self) -> dict[str, Any]:
        return {
            "searchId": self.search_id,
            "scrapersRun": len(self.scraper_results),
            "totalJobsFound": self.total_jobs_found,
            "totalCompaniesFound": self.total_companies_found,
            "totalNewCompanies": self.total_new_companies,
            "totalLeadsCreated": self.total_leads_created,
            "creditsUsed": self.credits_used,
            "reapedRuns": self.reaped_runs,
            "scraperResults": [r.to_dict() for r in self.scraper_results],
        }


class RunScheduler:
    """Runs the scraper configs of a search concurrently.

    Coordinates:
    - Pre-flight validation (search, configs, organization credits)
    - Stale run reaping
    - Queued run rows, created before any execution starts
    - Fan-out of one executor per config and a join on all of them
    - Search counters and exactly one credit debit per invocation
    """

    def __init__(
        self,
        job_source: JobSource,
        config: AppConfig | None = None,
        *,
        ingester: ResultIngester | None = None,
        reaper: StaleRunReaper | None = None,
        session_factory: SessionFactory = get_async_session,
    ) -> None:
        """Initialize the scheduler.

        Args:
            job_source: Job source collaborator shared by all executors
            config: Application config (defaults when omitted)
            ingester: Result ingester (one without profile enrichment if omitted)
            reaper: Stale run reaper (built from config if omitted)
            session_factory: Async session context manager factory
        """
        self.config = config or AppConfig()
        self.session_factory = session_factory
        self.ingester = ingester or ResultIngester()
        self.reaper = reaper or StaleRunReaper(
            self.config.orchestrator.stale_after_minutes, session_factory=session_factory
        )
        self.executor = ScraperExecutor(
            job_source,
            self.ingester,
            self.config.orchestrator,
            session_factory=session_factory,
        )

    async def run_search(
        self,
        org_id: str,
        search_id: str,
        scraper_index: int | None = None,
        user_id: str | None = None,
    ) -> SearchRunResult:
        """Execute the targeted scraper configs of a search and join on them.

        Raises:
            NotFoundError: Search or scraper index does not exist
            ValidationError: No scraper config resolves, or unknown organization
            InsufficientCreditsError: Search credits already exhausted
        """
        log = get_contextual_logger("orchestrator.runner", org_id=org_id, search_id=search_id)

        # Pre-flight: nothing is written until every check passes
        async with self.session_factory() as session:
            search = await SearchRepository(session).get(org_id, search_id)
            if search is None:
                raise NotFoundError(f"Search not found: {search_id}")

            configs = resolve_scraper_configs(search.filters)
            if not configs:
                raise ValidationError("No scraper configs found for this search")

            if scraper_index is not None:
                if not 0 <= scraper_index < len(configs):
                    raise NotFoundError(f"Scraper index {scraper_index} not found")
                targets = [(scraper_index, configs[scraper_index])]
            else:
                targets = list(enumerate(configs))

            org = await OrganizationRepository(session).get(org_id)
            if org is None:
                raise ValidationError(f"Organization not found: {org_id}")
            if org.credits_used >= org.credits_limit:
                raise InsufficientCreditsError(
                    "Search credits exhausted",
                    credits_used=org.credits_used,
                    credits_limit=org.credits_limit,
                )
            rows = search.max_rows or self.config.orchestrator.default_max_rows

        result = SearchRunResult(search_id=search_id)
        result.reaped_runs = await self.reaper.reap(search_id)

        async with self.session_factory() as session:
            runs = RunRepository(session)
            run_ids = [
                (await runs.create_queued(search_id, org_id, index, scraper.to_dict())).id
                for index, scraper in targets
            ]
            snapshot = await CompanyRepository(session).name_map(org_id, search_id)

        log.info(f"Starting {len(targets)} scraper(s) with {len(snapshot)} known companies")

        tasks = [
            asyncio.create_task(
                self.executor.execute(
                    org_id,
                    search_id,
                    run_id,
                    index,
                    scraper,
                    MappingProxyType(dict(snapshot)),
                    rows=rows,
                )
            )
            for run_id, (index, scraper) in zip(run_ids, targets)
        ]
        budget = self.config.orchestrator.run_budget_seconds
        _, overdue = await asyncio.wait(tasks, timeout=budget)
        for task in overdue:
            task.cancel()
        await asyncio.gather(*overdue, return_exceptions=True)

        for run_id, (index, _), task in zip(run_ids, targets, tasks):
            if task in overdue:
                message = f"{BUDGET_EXCEEDED_MESSAGE} ({budget}s)"
                log.error(f"Scraper {index}: {message}")
                await self._fail_run(run_id, message)
                outcome = ScraperResult(index, run_id, error=message)
            elif task.exception() is not None:
                error = task.exception()
                log.error(f"Scraper {index} raised unexpectedly: {error}")
                outcome = ScraperResult(index, run_id, error=str(error) or error.__class__.__name__)
            else:
                outcome = task.result()
            result.scraper_results.append(outcome)

        await self._finalize(org_id, search_id, user_id, run_ids, result)

        log.info(
            f"Run finished: {len(result.successful)} succeeded, {len(result.failed)} failed, "
            f"{result.total_new_companies} new companies"
        )
        return result

    async def _fail_run(self, run_id: str, message: str) -> None:
        # A run cancelled before it started stays queued for the reaper
        async with self.session_factory() as session:
            await RunRepository(session).fail(run_id, message)

    async def _finalize(
        self,
        org_id: str,
        search_id: str,
        user_id: str | None,
        run_ids: list[str],
        result: SearchRunResult,
    ) -> None:
        async with self.session_factory() as session:
            results_count = await CompanyRepository(session).count_for_search(org_id, search_id)
            jobs_count = await JobRepository(session).count_for_search(org_id, search_id)
            await SearchRepository(session).record_run(search_id, results_count, jobs_count)

            new_companies = result.total_new_companies
            if new_companies <= 0:
                return

            credits = CreditRepository(session)
            used, limit = await credits.debit_search_credits(org_id, new_companies)
            await credits.record_history(
                org_id,
                credit_type=CreditType.SEARCH.value,
                transaction_type="scraper_run",
                credits_used=new_companies,
                balance_after=limit - used,
                user_id=user_id,
                description=f"Search run: {new_companies} new companies",
                search_id=search_id,
                meta={
                    "scrapersRun": len(result.scraper_results),
                    "runIds": run_ids,
                },
            )
            result.credits_used = new_companies
