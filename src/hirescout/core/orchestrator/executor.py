"""
Single-scraper execution with a hard timeout and run state transitions.

queued -> running -> completed | failed, or queued -> (cancelled) -> skip.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Mapping

from hirescout.core.clients.base import JobQuery, JobSource
from hirescout.core.config.models import OrchestratorConfig, ScraperConfig
from hirescout.core.errors import ExternalTimeoutError
from hirescout.core.logging import get_contextual_logger
from hirescout.persistence.db import SessionFactory, get_async_session
from hirescout.persistence.repo import RunRepository

from .ingest import ResultIngester


@dataclass
class ScraperResult:
    """Outcome of one scraper execution."""

    scraper_index: int
    scraper_run_id: str
    jobs_found: int = 0
    companies_found: int = 0
    new_companies: int = 0
    leads_created: int = 0
    duration: int | None = None
    error: str | None = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.cancelled

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "scraperIndex": self.scraper_index,
            "scraperRunId": self.scraper_run_id,
            "jobsFound": self.jobs_found,
            "companiesFound": self.companies_found,
            "newCompanies": self.new_companies,
            "leadsCreated": self.leads_created,
            "duration": self.duration,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.cancelled:
            data["cancelled"] = True
        return data


class ScraperExecutor:
    """Runs one scraper config end-to-end.

    Failures are recorded on the run row and returned in the result; they
    never propagate to the caller or to sibling executors.
    """

    def __init__(
        self,
        job_source: JobSource,
        ingester: ResultIngester,
        config: OrchestratorConfig | None = None,
        session_factory: SessionFactory = get_async_session,
    ):
        self.job_source = job_source
        self.ingester = ingester
        self.config = config or OrchestratorConfig()
        self.session_factory = session_factory

    async def execute(
        self,
        org_id: str,
        search_id: str,
        run_id: str,
        scraper_index: int,
        scraper: ScraperConfig,
        company_snapshot: Mapping[str, str],
        rows: int | None = None,
    ) -> ScraperResult:
        log = get_contextual_logger(
            "orchestrator.executor",
            org_id=org_id,
            search_id=search_id,
            run_id=run_id,
            scraper_index=scraper_index,
        )
        result = ScraperResult(scraper_index=scraper_index, scraper_run_id=run_id)

        # Single cooperative cancellation check
        async with self.session_factory() as session:
            if not await RunRepository(session).mark_running(run_id):
                log.info("Run is no longer queued, skipping")
                result.cancelled = True
                return result

        query = JobQuery(
            title=scraper.job_title,
            location=scraper.location,
            experience_level=scraper.experience_level,
            rows=rows or self.config.default_max_rows,
        )
        started = time.monotonic()

        try:
            postings = await self._search(query)
            log.info(f"Job source returned {len(postings)} postings")

            async with self.session_factory() as session:
                ingested = await self.ingester.ingest(
                    session, org_id, search_id, postings, company_snapshot, log=log
                )
                result.jobs_found = ingested.jobs_found
                result.companies_found = ingested.companies_found
                result.new_companies = ingested.new_companies
                result.leads_created = ingested.leads_created
                result.duration = _elapsed(started)

                await RunRepository(session).complete(
                    run_id,
                    jobs_found=result.jobs_found,
                    companies_found=result.companies_found,
                    new_companies=result.new_companies,
                    leads_created=result.leads_created,
                    duration=result.duration,
                )

        except Exception as e:
            result.duration = _elapsed(started)
            result.error = str(e) or e.__class__.__name__
            log.error(f"Scraper failed after {result.duration}s: {result.error}")

            async with self.session_factory() as session:
                await RunRepository(session).fail(run_id, result.error, result.duration)

        return result

    async def _search(self, query: JobQuery) -> list:
        timeout = self.config.scraper_timeout_seconds
        try:
            return await asyncio.wait_for(self.job_source.search_jobs(query), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ExternalTimeoutError(f"Job source timed out after {timeout}s") from e


def _elapsed(started: float) -> int:
    return int(round(time.monotonic() - started))
