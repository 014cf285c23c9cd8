# tests/enrichment/test_companies.py
"""Tests for company profile helpers and batch profile enrichment"""

import pytest

from conftest import FakeProfileSource
from hirescout.core.clients.base import CompanyProfile
from hirescout.core.enrichment.companies import (
    CompanyProfileEnricher,
    CompanyToEnrich,
    company_slug,
    extract_domain,
    format_employee_size,
    normalize_linkedin_url,
    profile_to_fields,
)
from hirescout.core.fetch.retries import RetryConfig
from hirescout.persistence.db import get_async_session
from hirescout.persistence.models import Company
from hirescout.persistence.repo import CompanyRepository

NO_RETRY = RetryConfig(max_attempts=1, wait=0)


class TestHelpers:

    def test_normalize_linkedin_url(self):
        assert normalize_linkedin_url("https://linkedin.com/company/Acme/?trk=x") == (
            "https://www.linkedin.com/company/acme"
        )

    def test_company_slug(self):
        assert company_slug("https://de.linkedin.com/company/Acme-Inc/about") == "acme-inc"
        assert company_slug("https://example.com/acme") is None

    @pytest.mark.parametrize("url,expected", [
        ("https://www.acme.io/careers", "acme.io"),
        ("acme.io", "acme.io"),
        ("http://jobs.globex.com", "jobs.globex.com"),
        (None, None),
        ("", None),
    ])
    def test_extract_domain(self, url, expected):
        assert extract_domain(url) == expected

    @pytest.mark.parametrize("count,expected", [
        (None, None),
        (0, None),
        (10, "1-10 employees"),
        (11, "11-50 employees"),
        (200, "51-200 employees"),
        (7500, "5001-10000 employees"),
        (25000, "10000+ employees"),
    ])
    def test_format_employee_size(self, count, expected):
        assert format_employee_size(count) == expected

    def test_profile_to_fields(self):
        fields = profile_to_fields(CompanyProfile(
            url="https://www.linkedin.com/company/acme",
            name="Acme",
            website_url="https://acme.io",
            city="Berlin",
            country="DE",
            tagline="Rockets",
            employee_count=42,
        ))

        assert fields["domain"] == "acme.io"
        assert fields["location"] == "Berlin, DE"
        assert fields["description"] == "Rockets"
        assert fields["size"] == "11-50 employees"


class TestCompanyProfileEnricher:

    async def _company(self, org, name, **fields):
        async with get_async_session() as session:
            return await CompanyRepository(session).create(org.id, None, name, **fields)

    async def _run(self, enricher, companies):
        async with get_async_session() as session:
            return await enricher.enrich(session, companies)

    @pytest.mark.asyncio
    async def test_matches_by_slug_and_keeps_existing_values(self, org):
        acme = await self._company(org, "Acme", industry="Aerospace")
        source = FakeProfileSource([
            CompanyProfile(
                url="https://fr.linkedin.com/company/acme?trk=1",
                name="Acme",
                website_url="https://acme.io",
                industry="Software",
            ),
        ])

        result = await self._run(
            CompanyProfileEnricher(source, retry=NO_RETRY),
            [CompanyToEnrich(acme.id, "Acme", "https://www.linkedin.com/company/acme/")],
        )

        assert result.enriched == [acme.id]
        async with get_async_session() as session:
            row = await session.get(Company, acme.id)
        assert row.domain == "acme.io"
        assert row.industry == "Aerospace"

    @pytest.mark.asyncio
    async def test_empty_scrape_reports_batch_as_unmatched(self, org):
        acme = await self._company(org, "Acme")
        source = FakeProfileSource([CompanyProfile(url="", name="")])

        result = await self._run(
            CompanyProfileEnricher(source, retry=NO_RETRY),
            [CompanyToEnrich(acme.id, "Acme", "https://www.linkedin.com/company/acme")],
        )

        assert result.enriched == []
        assert result.unmatched == [acme.id]
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_batches_and_skips_missing_urls(self, org):
        source = FakeProfileSource()
        companies = [
            CompanyToEnrich(f"c{i}", f"Company {i}", f"https://www.linkedin.com/company/c{i}")
            for i in range(5)
        ]
        companies.append(CompanyToEnrich("c-none", "No URL", ""))

        await self._run(CompanyProfileEnricher(source, retry=NO_RETRY, batch_size=2), companies)

        assert [len(call) for call in source.calls] == [2, 2, 1]
