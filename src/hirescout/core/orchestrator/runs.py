"""Run queries, cancellation and manual cleanup."""

from __future__ import annotations

from typing import Any

from hirescout.core.config.models import RunStatus
from hirescout.core.errors import NotFoundError, ValidationError
from hirescout.core.logging import get_logger
from hirescout.persistence.db import SessionFactory, get_async_session
from hirescout.persistence.models import ScraperRun
from hirescout.persistence.repo import RunRepository, SearchRepository

from .reaper import StaleRunReaper

logger = get_logger("orchestrator.runs")


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


def run_to_dict(run: ScraperRun) -> dict[str, Any]:
    return {
        "id": run.id,
        "searchId": run.search_id,
        "scraperIndex": run.scraper_index,
        "scraperConfig": run.scraper_config,
        "status": run.status,
        "jobsFound": run.jobs_found,
        "companiesFound": run.companies_found,
        "newCompanies": run.new_companies,
        "leadsCreated": run.leads_created,
        "duration": run.duration,
        "errorMessage": run.error_message,
        "startedAt": _iso(run.started_at),
        "completedAt": _iso(run.completed_at),
        "createdAt": _iso(run.created_at),
    }


class RunService:
    """Read and manage the ScraperRun rows of a search."""

    def __init__(
        self,
        reaper: StaleRunReaper | None = None,
        session_factory: SessionFactory = get_async_session,
    ):
        self.session_factory = session_factory
        self.reaper = reaper or StaleRunReaper(session_factory=session_factory)

    async def _require_search(self, session: Any, org_id: str, search_id: str) -> None:
        if await SearchRepository(session).get(org_id, search_id) is None:
            raise NotFoundError(f"Search not found: {search_id}")

    async def list_runs(self, org_id: str, search_id: str) -> dict[str, Any]:
        """Runs newest-first, plus a YYYY-MM-DD grouping."""
        async with self.session_factory() as session:
            await self._require_search(session, org_id, search_id)
            runs = [run_to_dict(r) for r in await RunRepository(session).list_for_search(org_id, search_id)]

        by_date: dict[str, list[dict[str, Any]]] = {}
        for run in runs:
            by_date.setdefault((run["createdAt"] or "")[:10], []).append(run)

        return {"runs": runs, "runsByDate": by_date, "totalRuns": len(runs)}

    async def get_run(self, org_id: str, search_id: str, run_id: str) -> dict[str, Any]:
        async with self.session_factory() as session:
            run = await RunRepository(session).get_for_search(org_id, search_id, run_id)
            if run is None:
                raise NotFoundError(f"Scraper run not found: {run_id}")
            return run_to_dict(run)

    async def cancel_run(self, org_id: str, search_id: str, run_id: str) -> dict[str, Any]:
        """Cancel a queued run. Running or terminal runs are rejected."""
        async with self.session_factory() as session:
            runs = RunRepository(session)
            run = await runs.get_for_search(org_id, search_id, run_id)
            if run is None:
                raise NotFoundError(f"Scraper run not found: {run_id}")

            status = run.status
            if status != RunStatus.QUEUED.value or not await runs.cancel(run_id):
                if status == RunStatus.QUEUED.value:
                    # Started between the read and the conditional update
                    status = RunStatus.RUNNING.value
                raise ValidationError(
                    f"Cannot cancel scraper run with status: {status}. "
                    "Only queued runs can be cancelled."
                )

        logger.info(f"Cancelled scraper run {run_id}", extra={"search_id": search_id, "run_id": run_id})
        return {"id": run_id, "status": RunStatus.CANCELLED.value}

    async def cleanup(self, org_id: str, search_id: str) -> dict[str, Any]:
        async with self.session_factory() as session:
            await self._require_search(session, org_id, search_id)

        reaped = await self.reaper.reap(search_id)
        return {"cleanedUp": len(reaped), "runIds": reaped}
