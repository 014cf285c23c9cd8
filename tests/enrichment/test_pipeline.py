# tests/enrichment/test_pipeline.py
"""
Tests for CompanyEnrichmentPipeline

Coverage:
- Mixed batch: cache hit, cache miss, domain-less company
- Employee upsert (shortlisted on create, upgrade-only afterwards)
- One lead per employee, credits = leads actually created
- Phone reveal queues pending leads
- Per-company failures reported, never raised
- Companies sharing a domain: one fetch per batch, one cache row across batches
- Read-only preview
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import make_person
from hirescout.core.enrichment import CompanyEnrichmentPipeline, EnrichmentCacheGateway, EnrichmentRequest
from hirescout.core.errors import ExternalAPIError, InsufficientCreditsError, ValidationError
from hirescout.persistence.db import get_async_session
from hirescout.persistence.models import (
    Company,
    CreditHistory,
    CreditUsage,
    Employee,
    EnrichmentTransaction,
    GlobalCompany,
    GlobalEmployee,
    Lead,
    utcnow,
)
from hirescout.persistence.repo import CompanyRepository, EnrichmentCacheRepository, LeadRepository


@pytest.fixture
def pipeline(app_config, contact_provider):
    return CompanyEnrichmentPipeline(EnrichmentCacheGateway(contact_provider, app_config.enrichment), app_config)


async def _company(org, name, domain=None):
    async with get_async_session() as session:
        return await CompanyRepository(session).create(org.id, None, name, domain=domain)


async def _seed_cache(domain, people):
    async with get_async_session() as session:
        repo = EnrichmentCacheRepository(session)
        company = await repo.upsert_company(domain, employees_count=len(people), fetched_at=utcnow())
        await repo.upsert_employees(company.id, people)


async def _all(model, **filters):
    async with get_async_session() as session:
        return (await session.execute(select(model).filter_by(**filters))).scalars().all()


# ============================================================================
# TEST: Batch enrichment
# ============================================================================

class TestEnrich:

    @pytest.mark.asyncio
    async def test_mixed_batch(self, pipeline, contact_provider, org):
        cached = await _company(org, "Acme", "acme.io")
        fetched = await _company(org, "Globex", "globex.com")
        bare = await _company(org, "Initech")
        await _seed_cache("acme.io", [make_person("a1", email="a1@acme.io")])
        contact_provider.people["globex.com"] = [
            make_person("g1", email="g1@globex.com"),
            make_person("g2", email="g2@globex.com"),
        ]

        summary = await pipeline.enrich(
            org.id,
            "user-1",
            EnrichmentRequest(company_ids=[cached.id, fetched.id, bare.id]),
        )
        data = summary.to_dict()

        assert data["companiesProcessed"] == 2
        assert data["companiesSkipped"] == 1
        assert data["skippedCompanies"] == [{"id": bare.id, "name": "Initech", "reason": "No domain available"}]
        assert data["cacheHits"] == 1
        assert data["apolloFetches"] == 1
        assert data["totalEmployeesCreated"] == 3
        assert data["totalLeadsCreated"] == 3
        assert data["totalCreditsUsed"] == 3
        assert contact_provider.search_calls == ["globex.com"]

        employees = await _all(Employee, org_id=org.id)
        assert len(employees) == 3
        assert all(e.is_shortlisted for e in employees)

        companies = {c.id: c for c in await _all(Company, org_id=org.id)}
        assert companies[cached.id].is_enriched
        assert companies[fetched.id].is_enriched
        assert companies[cached.id].enriched_at is not None
        assert not companies[bare.id].is_enriched

    @pytest.mark.asyncio
    async def test_single_debit_history_and_transaction(self, pipeline, org):
        acme = await _company(org, "Acme", "acme.io")
        await _seed_cache("acme.io", [make_person("a1", email="a@acme.io"), make_person("a2", email="b@acme.io")])

        await pipeline.enrich(
            org.id, "user-1", EnrichmentRequest(company_ids=[acme.id], search_id="search-1")
        )

        usage = (await _all(CreditUsage, org_id=org.id))[0]
        assert usage.enrichment_used == 2

        history = await _all(CreditHistory, org_id=org.id)
        assert len(history) == 1
        assert history[0].credit_type == "enrichment"
        assert history[0].transaction_type == "leads_company_enrich"
        assert history[0].credits_used == 2
        assert history[0].balance_after == 198
        assert history[0].search_id == "search-1"

        transactions = await _all(EnrichmentTransaction, org_id=org.id)
        assert len(transactions) == 1
        assert transactions[0].company_ids == [acme.id]
        assert transactions[0].credits_used == 2
        assert transactions[0].cache_hit is True
        assert transactions[0].apollo_calls_made == 0

    @pytest.mark.asyncio
    async def test_rerun_creates_no_leads_and_no_debit(self, pipeline, org):
        acme = await _company(org, "Acme", "acme.io")
        await _seed_cache("acme.io", [make_person("a1", email="a@acme.io")])
        request = EnrichmentRequest(company_ids=[acme.id])

        await pipeline.enrich(org.id, None, request)
        second = await pipeline.enrich(org.id, None, request)

        assert second.total_leads_created == 0
        assert second.credits_used == 0
        assert len(await _all(Lead, org_id=org.id)) == 1
        assert len(await _all(CreditHistory, org_id=org.id)) == 1
        # Every batch is audited, including empty ones
        assert len(await _all(EnrichmentTransaction, org_id=org.id)) == 2

    @pytest.mark.asyncio
    async def test_existing_lead_is_upgraded(self, pipeline, org):
        acme = await _company(org, "Acme", "acme.io")
        await _seed_cache("acme.io", [make_person("a1")])
        await pipeline.enrich(org.id, None, EnrichmentRequest(company_ids=[acme.id]))

        await _seed_cache("acme.io", [make_person("a1", email="a1@acme.io", job_title="CTO")])
        await pipeline.enrich(org.id, None, EnrichmentRequest(company_ids=[acme.id]))

        lead = (await _all(Lead, org_id=org.id))[0]
        employee = (await _all(Employee, org_id=org.id))[0]
        assert lead.email == "a1@acme.io"
        assert lead.job_title == "CTO"
        assert employee.email == "a1@acme.io"

    @pytest.mark.asyncio
    async def test_defaults_to_lead_referenced_companies(self, pipeline, org):
        acme = await _company(org, "Acme", "acme.io")
        await _company(org, "Unreferenced", "unreferenced.io")
        await _seed_cache("acme.io", [make_person("a1", email="a@acme.io")])
        async with get_async_session() as session:
            await LeadRepository(session).insert_if_absent({
                "org_id": org.id,
                "company_id": acme.id,
                "linkedin_url": "https://linkedin.com/in/poster",
                "status": "new",
            })

        summary = await pipeline.enrich(org.id, None, EnrichmentRequest())

        assert [r.company_id for r in summary.results] == [acme.id]

    @pytest.mark.asyncio
    async def test_company_failure_is_reported(self, pipeline, contact_provider, org):
        acme = await _company(org, "Acme", "acme.io")
        globex = await _company(org, "Globex", "globex.com")
        await _seed_cache("acme.io", [make_person("a1", email="a@acme.io")])
        contact_provider.failures["globex.com"] = ExternalAPIError("API error: 503")

        summary = await pipeline.enrich(org.id, None, EnrichmentRequest(company_ids=[acme.id, globex.id]))
        data = summary.to_dict()

        assert data["totalLeadsCreated"] == 1
        assert data["errors"] == ["Globex: API error: 503"]
        failed = next(r for r in data["results"] if r["companyId"] == globex.id)
        assert failed["error"] == "API error: 503"


# ============================================================================
# TEST: Companies sharing a domain
# ============================================================================

class TestSharedDomain:

    @pytest.fixture
    def slow_provider(self, contact_provider):
        contact_provider.search_delay = 0.05
        contact_provider.people["acme.com"] = [make_person("a1", email="a1@acme.com")]
        return contact_provider

    @pytest.mark.asyncio
    async def test_one_fetch_per_domain_in_a_batch(self, pipeline, slow_provider, org):
        acme = await _company(org, "Acme", "acme.com")
        acme_inc = await _company(org, "Acme Inc", "ACME.com")

        summary = await pipeline.enrich(org.id, "user-1", EnrichmentRequest(company_ids=[acme.id, acme_inc.id]))
        data = summary.to_dict()

        assert "errors" not in data
        assert slow_provider.search_calls == ["acme.com"]
        assert data["apolloFetches"] == 1
        assert data["cacheHits"] == 1
        assert [r["companyId"] for r in data["results"]] == [acme.id, acme_inc.id]
        assert data["totalLeadsCreated"] == 2

        companies = await _all(Company, org_id=org.id)
        assert all(c.is_enriched for c in companies)

    @pytest.mark.asyncio
    async def test_concurrent_batches_share_one_cache_row(self, pipeline, slow_provider, org):
        acme = await _company(org, "Acme", "acme.com")
        acme_inc = await _company(org, "Acme Inc", "acme.com")

        # Both batches miss the cache and write the same domain
        first, second = await asyncio.gather(
            pipeline.enrich(org.id, "user-1", EnrichmentRequest(company_ids=[acme.id])),
            pipeline.enrich(org.id, "user-2", EnrichmentRequest(company_ids=[acme_inc.id])),
        )

        assert first.errors == []
        assert second.errors == []
        assert first.total_leads_created == 1
        assert second.total_leads_created == 1
        assert len(await _all(GlobalCompany, domain="acme.com")) == 1
        assert len(await _all(GlobalEmployee, apollo_id="a1")) == 1
        assert len(await _all(CreditUsage, org_id=org.id)) == 1
        assert (await _all(CreditUsage, org_id=org.id))[0].enrichment_used == 2


# ============================================================================
# TEST: Pre-flight
# ============================================================================

class TestPreflight:

    @pytest.mark.asyncio
    async def test_nothing_to_enrich(self, pipeline, org):
        with pytest.raises(ValidationError, match="No companies found to enrich"):
            await pipeline.enrich(org.id, None, EnrichmentRequest())

    @pytest.mark.asyncio
    async def test_exhausted_pool(self, pipeline, contact_provider, org):
        acme = await _company(org, "Acme", "acme.io")
        async with get_async_session() as session:
            session.add(CreditUsage(
                org_id=org.id,
                enrichment_limit=10,
                enrichment_used=10,
                billing_cycle_start=utcnow(),
                billing_cycle_end=utcnow() + timedelta(days=10),
            ))

        with pytest.raises(InsufficientCreditsError):
            await pipeline.enrich(org.id, None, EnrichmentRequest(company_ids=[acme.id]))
        assert contact_provider.search_calls == []

    @pytest.mark.asyncio
    async def test_expired_cycle_is_reset(self, pipeline, org):
        acme = await _company(org, "Acme", "acme.io")
        await _seed_cache("acme.io", [make_person("a1", email="a@acme.io")])
        async with get_async_session() as session:
            session.add(CreditUsage(
                org_id=org.id,
                enrichment_limit=10,
                enrichment_used=10,
                billing_cycle_start=utcnow() - timedelta(days=40),
                billing_cycle_end=utcnow() - timedelta(days=10),
            ))

        summary = await pipeline.enrich(org.id, None, EnrichmentRequest(company_ids=[acme.id]))

        assert summary.credits_used == 1
        assert (await _all(CreditUsage, org_id=org.id))[0].enrichment_used == 1

    @pytest.mark.asyncio
    async def test_phones_need_webhook(self, app_config, contact_provider, org):
        config = app_config.model_copy(
            update={"enrichment": app_config.enrichment.model_copy(update={"webhook_url": None})}
        )
        pipeline = CompanyEnrichmentPipeline(EnrichmentCacheGateway(contact_provider), config)
        acme = await _company(org, "Acme", "acme.io")

        with pytest.raises(ValidationError):
            await pipeline.enrich(
                org.id, None, EnrichmentRequest(company_ids=[acme.id], reveal_phone_numbers=True)
            )


# ============================================================================
# TEST: Phone reveal
# ============================================================================

class TestPhoneReveal:

    @pytest.mark.asyncio
    async def test_missing_phone_marks_lead_pending(self, pipeline, contact_provider, org):
        acme = await _company(org, "Acme", "acme.io")
        await _seed_cache("acme.io", [
            make_person("a1", email="a1@acme.io"),
            make_person("a2", email="a2@acme.io", phone="+15550100"),
        ])

        summary = await pipeline.enrich(
            org.id, None, EnrichmentRequest(company_ids=[acme.id], reveal_phone_numbers=True)
        )
        data = summary.to_dict()

        leads = {lead.meta["apolloId"]: lead for lead in await _all(Lead, org_id=org.id)}
        assert leads["a1"].meta["phonePending"] is True
        assert leads["a2"].meta["phonePending"] is False
        assert data["phoneEnrichment"] == {
            "requested": True,
            "leadsQueued": 1,
            "started": True,
            "leadIds": [leads["a1"].id],
        }
        assert contact_provider.bulk_calls[0]["webhook_url"] == "https://hooks.example.com/apollo/phones"

    @pytest.mark.asyncio
    async def test_no_phone_section_without_reveal(self, pipeline, org):
        acme = await _company(org, "Acme", "acme.io")
        await _seed_cache("acme.io", [make_person("a1", email="a1@acme.io")])

        data = (await pipeline.enrich(org.id, None, EnrichmentRequest(company_ids=[acme.id]))).to_dict()

        assert "phoneEnrichment" not in data


# ============================================================================
# TEST: Preview
# ============================================================================

class TestPreview:

    @pytest.mark.asyncio
    async def test_preview_reports_without_writing(self, pipeline, contact_provider, org):
        cached = await _company(org, "Acme", "acme.io")
        missing = await _company(org, "Globex", "globex.com")
        bare = await _company(org, "Initech")
        await _seed_cache("acme.io", [make_person("a1"), make_person("a2")])

        data = await pipeline.preview(org.id, [cached.id, missing.id, bare.id])

        assert data["totals"] == {
            "totalCompanies": 3,
            "companiesWithDomains": 2,
            "companiesWithoutDomains": 1,
            "companiesInCache": 1,
            "companiesNeedingFetch": 1,
            "estimatedEmployeesInCache": 2,
        }
        assert data["creditsRemaining"] == 30
        by_id = {c["id"]: c for c in data["companies"]}
        assert by_id[cached.id]["cacheStatus"]["exists"] is True
        assert by_id[bare.id]["cacheStatus"] is None
        assert by_id[bare.id]["hasDomain"] is False

        assert contact_provider.search_calls == []
        assert await _all(CreditUsage, org_id=org.id) == []
