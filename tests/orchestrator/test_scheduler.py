# tests/orchestrator/test_scheduler.py
"""
Tests for RunScheduler, ScraperExecutor and StaleRunReaper

Coverage:
- Pre-flight validation (search, configs, index, org, credits)
- Concurrent fan-out with shared company dedup
- Partial failure and timeouts isolated per scraper
- Overall run budget enforced on the join
- Exactly one credit debit per invocation
- Queued-run cancellation honoured by the executor
- Stale run reaping
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import make_posting
from hirescout.core.config.models import OrchestratorConfig
from hirescout.core.errors import (
    ExternalAPIError,
    InsufficientCreditsError,
    NotFoundError,
    ValidationError,
)
from hirescout.core.orchestrator import (
    ResultIngester,
    RunScheduler,
    ScraperExecutor,
    StaleRunReaper,
    resolve_scraper_configs,
)
from hirescout.core.orchestrator.reaper import TIMEOUT_MESSAGE
from hirescout.core.orchestrator.runner import BUDGET_EXCEEDED_MESSAGE
from hirescout.persistence.db import get_async_session
from hirescout.persistence.models import Company, CreditHistory, Job, Organization, ScraperRun, Search, utcnow
from hirescout.persistence.repo import OrganizationRepository, RunRepository, SearchRepository


async def _fetch_all(model, **filters):
    async with get_async_session() as session:
        return (await session.execute(select(model).filter_by(**filters))).scalars().all()


async def _get(model, id_):
    async with get_async_session() as session:
        return await session.get(model, id_)


@pytest.fixture
def scheduler(app_config, job_source):
    return RunScheduler(job_source, app_config)


# ============================================================================
# TEST: Scraper config resolution
# ============================================================================

class TestResolveScraperConfigs:

    def test_scrapers_list_wins(self):
        configs = resolve_scraper_configs({
            "scrapers": [{"jobTitle": "SRE", "location": "Remote"}, {"jobTitle": ""}],
            "jobTitles": ["Ignored"],
        })

        assert [c.job_title for c in configs] == ["SRE"]
        assert configs[0].location == "Remote"

    def test_legacy_job_titles(self):
        configs = resolve_scraper_configs({"jobTitles": ["SRE", "DevOps"], "locations": ["Berlin", "Paris"]})

        assert len(configs) == 1
        assert configs[0].job_title == "SRE OR DevOps"
        assert configs[0].location == "Berlin"

    def test_nothing_configured(self):
        assert resolve_scraper_configs({}) == []
        assert resolve_scraper_configs(None) == []


# ============================================================================
# TEST: Pre-flight
# ============================================================================

class TestPreflight:

    @pytest.mark.asyncio
    async def test_unknown_search(self, scheduler, org):
        with pytest.raises(NotFoundError):
            await scheduler.run_search(org.id, "missing")

    @pytest.mark.asyncio
    async def test_search_without_configs(self, scheduler, org):
        async with get_async_session() as session:
            empty = await SearchRepository(session).create(org.id, "Empty")

        with pytest.raises(ValidationError):
            await scheduler.run_search(org.id, empty.id)
        assert await _fetch_all(ScraperRun, search_id=empty.id) == []

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, scheduler, org, search):
        with pytest.raises(NotFoundError):
            await scheduler.run_search(org.id, search.id, scraper_index=2)
        assert await _fetch_all(ScraperRun, search_id=search.id) == []

    @pytest.mark.asyncio
    async def test_exhausted_credits_rejected_before_any_work(self, scheduler, job_source, org, search):
        async with get_async_session() as session:
            org_row = await OrganizationRepository(session).get(org.id)
            org_row.credits_used = org_row.credits_limit

        with pytest.raises(InsufficientCreditsError) as exc_info:
            await scheduler.run_search(org.id, search.id)

        assert exc_info.value.credits_used == 30
        assert job_source.queries == []
        assert await _fetch_all(ScraperRun, search_id=search.id) == []


# ============================================================================
# TEST: Fan-out / fan-in
# ============================================================================

class TestRunSearch:

    @pytest.mark.asyncio
    async def test_shared_company_across_scrapers(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme"), make_posting("d2", "Initech")])
        # Finishes after the first scraper has committed Acme
        job_source.add("SRE", [make_posting("s1", "acme", title="SRE")], delay=0.3)

        result = await scheduler.run_search(org.id, search.id, user_id="user-1")

        companies = await _fetch_all(Company, org_id=org.id, search_id=search.id)
        assert sorted(c.name for c in companies) == ["Acme", "Initech"]

        acme = next(c for c in companies if c.name == "Acme")
        jobs = await _fetch_all(Job, company_id=acme.id)
        assert {j.external_id for j in jobs} == {"d1", "s1"}

        assert result.total_new_companies == 2
        assert result.credits_used == 2
        assert len(result.successful) == 2

        search_row = await _get(Search, search.id)
        assert search_row.results_count == 2
        assert search_row.jobs_count == 3
        assert search_row.last_run_at is not None

    @pytest.mark.asyncio
    async def test_rows_and_query_forwarded(self, scheduler, job_source, org, search):
        await scheduler.run_search(org.id, search.id, scraper_index=1)

        assert len(job_source.queries) == 1
        query = job_source.queries[0]
        assert query.title == "SRE"
        assert query.location == "Remote"
        assert query.rows == 25

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme")])
        job_source.add("SRE", ExternalAPIError("API error: 502 - bad gateway"))

        result = await scheduler.run_search(org.id, search.id)

        assert len(result.successful) == 1
        assert len(result.failed) == 1
        assert result.failed[0].error == "API error: 502 - bad gateway"

        runs = {r.scraper_index: r for r in await _fetch_all(ScraperRun, search_id=search.id)}
        assert runs[0].status == "completed"
        assert runs[0].new_companies == 1
        assert runs[1].status == "failed"
        assert runs[1].error_message == "API error: 502 - bad gateway"
        assert runs[1].completed_at is not None

    @pytest.mark.asyncio
    async def test_timeout_fails_only_that_scraper(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme")])
        job_source.add("SRE", [make_posting("s1", "Globex")], delay=3)

        result = await scheduler.run_search(org.id, search.id)

        failed = result.failed
        assert len(failed) == 1
        assert failed[0].scraper_index == 1
        assert "timed out" in failed[0].error
        assert result.total_new_companies == 1

    @pytest.mark.asyncio
    async def test_run_budget_cancels_unfinished_scrapers(self, app_config, job_source, org, search):
        class StallingIngester(ResultIngester):
            async def ingest(self, session, org_id, search_id, postings, company_map, log=None):
                if any(p.company_name == "Slowco" for p in postings):
                    await asyncio.sleep(30)
                return await super().ingest(session, org_id, search_id, postings, company_map, log)

        config = app_config.model_copy(update={
            "orchestrator": OrchestratorConfig(run_budget_seconds=2, scraper_timeout_seconds=1),
        })
        scheduler = RunScheduler(job_source, config, ingester=StallingIngester())
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme")])
        job_source.add("SRE", [make_posting("s1", "Slowco")])

        result = await scheduler.run_search(org.id, search.id)

        assert len(result.successful) == 1
        assert result.failed[0].scraper_index == 1
        assert result.failed[0].error.startswith(BUDGET_EXCEEDED_MESSAGE)
        assert result.credits_used == 1

        runs = {r.scraper_index: r for r in await _fetch_all(ScraperRun, search_id=search.id)}
        assert runs[0].status == "completed"
        assert runs[1].status == "failed"
        assert runs[1].error_message.startswith(BUDGET_EXCEEDED_MESSAGE)

    @pytest.mark.asyncio
    async def test_single_debit_and_history_row(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme"), make_posting("d2", "Globex")])
        job_source.add("SRE", [make_posting("s1", "Initech")])

        await scheduler.run_search(org.id, search.id, user_id="user-1")

        org_row = await _get(Organization, org.id)
        assert org_row.credits_used == 3

        history = await _fetch_all(CreditHistory, org_id=org.id)
        assert len(history) == 1
        entry = history[0]
        assert entry.credit_type == "search"
        assert entry.transaction_type == "scraper_run"
        assert entry.credits_used == 3
        assert entry.balance_after == 27
        assert entry.user_id == "user-1"
        assert entry.search_id == search.id
        assert len(entry.meta["runIds"]) == 2

    @pytest.mark.asyncio
    async def test_no_new_companies_no_debit(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme")])
        await scheduler.run_search(org.id, search.id, scraper_index=0)

        result = await scheduler.run_search(org.id, search.id, scraper_index=0)

        assert result.credits_used == 0
        assert result.total_new_companies == 0
        assert (await _get(Organization, org.id)).credits_used == 1
        assert len(await _fetch_all(CreditHistory, org_id=org.id)) == 1

    @pytest.mark.asyncio
    async def test_all_failed_still_recounts(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", ExternalAPIError("down"))
        job_source.add("SRE", ExternalAPIError("down"))

        result = await scheduler.run_search(org.id, search.id)

        assert len(result.failed) == 2
        assert result.credits_used == 0
        assert (await _get(Search, search.id)).last_run_at is not None

    @pytest.mark.asyncio
    async def test_result_dict(self, scheduler, job_source, org, search):
        job_source.add("DevOps Engineer", [make_posting("d1", "Acme")])

        data = (await scheduler.run_search(org.id, search.id)).to_dict()

        assert data["searchId"] == search.id
        assert data["scrapersRun"] == 2
        assert data["totalJobsFound"] == 1
        assert data["totalNewCompanies"] == 1
        assert data["creditsUsed"] == 1
        assert [r["scraperIndex"] for r in data["scraperResults"]] == [0, 1]


# ============================================================================
# TEST: Executor cancellation
# ============================================================================

class TestExecutor:

    @pytest.mark.asyncio
    async def test_cancelled_run_is_skipped(self, app_config, job_source, org, search):
        async with get_async_session() as session:
            runs = RunRepository(session)
            run = await runs.create_queued(search.id, org.id, 0, {"jobTitle": "SRE"})
        async with get_async_session() as session:
            assert await RunRepository(session).cancel(run.id)

        executor = ScraperExecutor(job_source, ResultIngester(), app_config.orchestrator)
        configs = resolve_scraper_configs(search.filters)
        result = await executor.execute(org.id, search.id, run.id, 0, configs[0], {})

        assert result.cancelled
        assert not result.succeeded
        assert job_source.queries == []
        assert (await _get(ScraperRun, run.id)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_completed_run_records_counts(self, app_config, job_source, org, search):
        job_source.add("DevOps Engineer", [
            make_posting("d1", "Acme", poster_full_name="Jane Doe", poster_profile_url="https://linkedin.com/in/jane"),
        ])
        async with get_async_session() as session:
            run = await RunRepository(session).create_queued(search.id, org.id, 0, {"jobTitle": "DevOps Engineer"})

        executor = ScraperExecutor(job_source, ResultIngester(), app_config.orchestrator)
        configs = resolve_scraper_configs(search.filters)
        result = await executor.execute(org.id, search.id, run.id, 0, configs[0], {})

        row = await _get(ScraperRun, run.id)
        assert result.succeeded
        assert row.status == "completed"
        assert row.jobs_found == 1
        assert row.companies_found == 1
        assert row.new_companies == 1
        assert row.leads_created == 1
        assert row.duration is not None


# ============================================================================
# TEST: Stale run reaper
# ============================================================================

class TestStaleRunReaper:

    @pytest.mark.asyncio
    async def test_reaps_only_old_active_runs(self, org, search):
        old = utcnow() - timedelta(minutes=30)
        async with get_async_session() as session:
            runs = RunRepository(session)
            stale_running = await runs.create_queued(search.id, org.id, 0, {})
            stale_queued = await runs.create_queued(search.id, org.id, 1, {})
            fresh = await runs.create_queued(search.id, org.id, 2, {})
            finished = await runs.create_queued(search.id, org.id, 3, {})
            stale_running.status = "running"
            stale_running.started_at = old
            stale_queued.started_at = old
            finished.status = "completed"
            finished.started_at = old

        reaper = StaleRunReaper(stale_after_minutes=10)
        reaped = await reaper.reap(search.id)

        assert set(reaped) == {stale_running.id, stale_queued.id}
        row = await _get(ScraperRun, stale_running.id)
        assert row.status == "failed"
        assert row.error_message == TIMEOUT_MESSAGE
        assert row.completed_at is not None
        assert (await _get(ScraperRun, fresh.id)).status == "queued"
        assert (await _get(ScraperRun, finished.id)).status == "completed"

        # Second pass is a no-op
        assert await reaper.reap(search.id) == []

    @pytest.mark.asyncio
    async def test_run_search_reaps_before_starting(self, scheduler, org, search):
        async with get_async_session() as session:
            orphan = await RunRepository(session).create_queued(search.id, org.id, 0, {})
            orphan.status = "running"
            orphan.started_at = utcnow() - timedelta(hours=1)

        result = await scheduler.run_search(org.id, search.id)

        assert result.reaped_runs == [orphan.id]
        assert (await _get(ScraperRun, orphan.id)).status == "failed"
