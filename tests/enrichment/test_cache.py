# tests/enrichment/test_cache.py
"""
Tests for EnrichmentCacheGateway

Coverage:
- Cache hit serves without external calls
- Miss / stale entries fetch and write back
- Filtered fetches keep the recorded employee total
- Bulk match only for people lacking a verified email (or phone)
- Stale cache fallback when the provider fails
"""

from datetime import timedelta

import pytest

from conftest import FakeContactProvider, make_person
from hirescout.core.config.models import EnrichmentConfig
from hirescout.core.enrichment.cache import EnrichmentCacheGateway, is_cache_stale
from hirescout.core.errors import ExternalAPIError, ValidationError
from hirescout.persistence.db import get_async_session
from hirescout.persistence.models import GlobalCompany, utcnow
from hirescout.persistence.repo import EnrichmentCacheRepository


async def _seed_cache(domain, people, fetched_days_ago=1, employees_count=None):
    async with get_async_session() as session:
        repo = EnrichmentCacheRepository(session)
        company = await repo.upsert_company(
            domain,
            name=domain,
            employees_count=employees_count if employees_count is not None else len(people),
            fetched_at=utcnow() - timedelta(days=fetched_days_ago),
        )
        await repo.upsert_employees(company.id, people)


async def _lookup(gateway, domain, **kwargs):
    async with get_async_session() as session:
        return await gateway.get_or_fetch(session, domain, **kwargs)


class TestStaleness:

    def test_never_fetched_is_stale(self):
        assert is_cache_stale(GlobalCompany(domain="acme.io", stale_after_days=30))

    def test_threshold(self):
        now = utcnow()
        company = GlobalCompany(
            domain="acme.io",
            stale_after_days=30,
            employees_last_fetched_at=now - timedelta(days=29),
        )
        assert not is_cache_stale(company, now)
        assert is_cache_stale(company, now + timedelta(days=2))


class TestGetOrFetch:

    @pytest.mark.asyncio
    async def test_fresh_cache_is_served_without_calls(self, db):
        provider = FakeContactProvider()
        await _seed_cache("acme.io", [make_person("p1", email="p1@acme.io", email_status="verified")])

        lookup = await _lookup(EnrichmentCacheGateway(provider), "ACME.io")

        assert lookup.cache_hit
        assert [p.apollo_id for p in lookup.employees] == ["p1"]
        assert provider.search_calls == []
        assert provider.bulk_calls == []

    @pytest.mark.asyncio
    async def test_miss_fetches_and_writes_back(self, db):
        provider = FakeContactProvider()
        provider.people["acme.io"] = [make_person("p1"), make_person("p2")]
        provider.totals["acme.io"] = 250
        gateway = EnrichmentCacheGateway(provider)

        lookup = await _lookup(gateway, "acme.io", company_name="Acme")

        assert not lookup.cache_hit
        assert lookup.total_available == 250
        async with get_async_session() as session:
            status = await gateway.cache_status(session, "acme.io")
        assert status.exists
        assert status.employees_count == 250
        assert not status.is_stale

        second = await _lookup(gateway, "acme.io")
        assert second.cache_hit
        assert provider.search_calls == ["acme.io"]

    @pytest.mark.asyncio
    async def test_stale_entry_is_refetched(self, db):
        provider = FakeContactProvider()
        provider.people["acme.io"] = [make_person("p1", email="new@acme.io")]
        await _seed_cache("acme.io", [make_person("p1")], fetched_days_ago=45)

        lookup = await _lookup(EnrichmentCacheGateway(provider), "acme.io")

        assert not lookup.cache_hit
        assert provider.search_calls == ["acme.io"]

    @pytest.mark.asyncio
    async def test_filtered_fetch_keeps_total(self, db):
        provider = FakeContactProvider()
        provider.people["acme.io"] = [make_person("p1", job_title="CTO")]
        await _seed_cache("acme.io", [], fetched_days_ago=45, employees_count=300)
        gateway = EnrichmentCacheGateway(provider)

        await _lookup(gateway, "acme.io", titles=["CTO"])

        async with get_async_session() as session:
            status = await gateway.cache_status(session, "acme.io")
        assert status.employees_count == 300
        assert not status.is_stale

    @pytest.mark.asyncio
    async def test_cache_filters_by_title_and_seniority(self, db):
        await _seed_cache("acme.io", [
            make_person("p1", job_title="Chief Technology Officer", seniority="c_suite", email="a@acme.io"),
            make_person("p2", job_title="Founder", seniority="founder", email="b@acme.io"),
            make_person("p3", job_title="Engineer", seniority="senior", email="c@acme.io"),
        ])
        gateway = EnrichmentCacheGateway(FakeContactProvider())

        by_seniority = await _lookup(gateway, "acme.io", seniorities=["c_suite"])
        by_title = await _lookup(gateway, "acme.io", titles=["engineer"])

        assert {p.apollo_id for p in by_seniority.employees} == {"p1", "p2"}
        assert by_seniority.total_available == 2
        assert [p.apollo_id for p in by_title.employees] == ["p3"]

    @pytest.mark.asyncio
    async def test_provider_failure_serves_stale_cache(self, db):
        provider = FakeContactProvider()
        provider.failures["acme.io"] = ExternalAPIError("API error: 500")
        await _seed_cache("acme.io", [make_person("p1", email="p1@acme.io")], fetched_days_ago=45)

        lookup = await _lookup(EnrichmentCacheGateway(provider), "acme.io")

        assert lookup.cache_hit
        assert [p.apollo_id for p in lookup.employees] == ["p1"]

    @pytest.mark.asyncio
    async def test_provider_failure_without_cache_raises(self, db):
        provider = FakeContactProvider()
        provider.failures["acme.io"] = ExternalAPIError("API error: 500")

        with pytest.raises(ExternalAPIError):
            await _lookup(EnrichmentCacheGateway(provider), "acme.io")

    @pytest.mark.asyncio
    async def test_miss_without_provider(self, db):
        with pytest.raises(ValidationError):
            await _lookup(EnrichmentCacheGateway(None), "acme.io")


class TestBulkEnrichment:

    @pytest.mark.asyncio
    async def test_only_unverified_people_are_matched(self, db):
        provider = FakeContactProvider()
        provider.enriched["p2"] = make_person("p2", email="p2@acme.io", email_status="verified")
        await _seed_cache("acme.io", [
            make_person("p1", email="p1@acme.io", email_status="verified"),
            make_person("p2"),
            make_person("p3", email="guess@acme.io", email_status="guessed"),
        ])

        lookup = await _lookup(EnrichmentCacheGateway(provider), "acme.io")

        assert provider.bulk_calls[0]["ids"] == ["p2", "p3"]
        assert lookup.bulk_requested == 2
        assert lookup.bulk_matched == 1
        merged = {p.apollo_id: p for p in lookup.employees}
        assert merged["p2"].email == "p2@acme.io"
        # Unmatched person keeps the cached value
        assert merged["p3"].email == "guess@acme.io"

        async with get_async_session() as session:
            cached = await EnrichmentCacheRepository(session).list_employees(
                (await EnrichmentCacheRepository(session).get_company("acme.io")).id
            )
        assert {row.apollo_id: row.email for row in cached}["p2"] == "p2@acme.io"

    @pytest.mark.asyncio
    async def test_phone_reveal_requests_people_without_phone(self, db):
        provider = FakeContactProvider()
        await _seed_cache("acme.io", [
            make_person("p1", email="p1@acme.io", phone="+15550100"),
            make_person("p2", email="p2@acme.io"),
        ])

        await _lookup(
            EnrichmentCacheGateway(provider),
            "acme.io",
            reveal_phones=True,
            webhook_url="https://hooks.example.com/phones",
        )

        assert provider.bulk_calls == [{
            "ids": ["p2"],
            "reveal_phone_number": True,
            "webhook_url": "https://hooks.example.com/phones",
        }]

    @pytest.mark.asyncio
    async def test_enriched_null_never_downgrades(self, db):
        provider = FakeContactProvider()
        provider.enriched["p1"] = make_person("p1", email="p1@acme.io", linkedin_url=None)
        await _seed_cache("acme.io", [make_person("p1", linkedin_url="https://linkedin.com/in/p1")])

        lookup = await _lookup(EnrichmentCacheGateway(provider), "acme.io")

        assert lookup.employees[0].linkedin_url == "https://linkedin.com/in/p1"
        assert lookup.employees[0].email == "p1@acme.io"


class TestCacheMaintenance:

    @pytest.mark.asyncio
    async def test_mark_for_refresh_and_stats(self, db):
        await _seed_cache("acme.io", [make_person("p1", email="a@acme.io")])
        await _seed_cache("globex.com", [make_person("p2", email="b@globex.com")])
        gateway = EnrichmentCacheGateway(None, EnrichmentConfig())

        async with get_async_session() as session:
            assert await gateway.mark_for_refresh(session, "ACME.IO")
            assert not await gateway.mark_for_refresh(session, "unknown.org")

        async with get_async_session() as session:
            stats = await gateway.cache_stats(session)

        assert stats == {
            "totalCompanies": 2,
            "totalEmployees": 2,
            "staleCompanies": 1,
            "freshCompanies": 1,
        }
