# tests/conftest.py
"""Shared fixtures - real SQLite database, fake external collaborators"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
import pytest_asyncio

from hirescout.core.clients.base import (
    CompanyProfile,
    CompanyProfileSource,
    ContactProvider,
    JobPosting,
    JobQuery,
    JobSource,
    PeoplePage,
    PersonRecord,
)
from hirescout.core.config.models import AppConfig
from hirescout.persistence.db import dispose_engines_async, get_async_session, init_db_async
from hirescout.persistence.repo import OrganizationRepository, SearchRepository


# ============================================================================
# FAKE COLLABORATORS
# ============================================================================

class FakeJobSource(JobSource):
    """Answers per job title with postings, an exception, or after a delay"""

    def __init__(self):
        self.responses: dict[str, list[JobPosting] | Exception] = {}
        self.delays: dict[str, float] = {}
        self.queries: list[JobQuery] = []

    def add(self, title: str, postings: list[JobPosting] | Exception, delay: float = 0.0) -> None:
        self.responses[title] = postings
        self.delays[title] = delay

    async def search_jobs(self, query: JobQuery) -> list[JobPosting]:
        self.queries.append(query)
        await asyncio.sleep(self.delays.get(query.title, 0.0))
        response = self.responses.get(query.title, [])
        if isinstance(response, Exception):
            raise response
        return list(response)


class FakeContactProvider(ContactProvider):
    """Serves people per domain, optionally after a delay, and enriches them from a lookup table"""

    def __init__(self):
        self.people: dict[str, list[PersonRecord]] = {}
        self.totals: dict[str, int] = {}
        self.enriched: dict[str, PersonRecord] = {}
        self.failures: dict[str, Exception] = {}
        self.search_delay = 0.0
        self.search_calls: list[str] = []
        self.bulk_calls: list[dict[str, Any]] = []

    async def search_people(self, domain, titles=None, seniorities=None, fetch_all=False) -> PeoplePage:
        self.search_calls.append(domain)
        await asyncio.sleep(self.search_delay)
        if domain in self.failures:
            raise self.failures[domain]
        people = list(self.people.get(domain, []))
        return PeoplePage(people=people, total_entries=self.totals.get(domain, len(people)))

    async def bulk_match(self, apollo_ids, reveal_phone_number=False, webhook_url=None) -> list[PersonRecord]:
        self.bulk_calls.append({
            "ids": list(apollo_ids),
            "reveal_phone_number": reveal_phone_number,
            "webhook_url": webhook_url,
        })
        return [self.enriched[i] for i in apollo_ids if i in self.enriched]


class FakeProfileSource(CompanyProfileSource):
    def __init__(self, profiles: list[CompanyProfile] | None = None):
        self.profiles = profiles or []
        self.calls: list[list[str]] = []

    async def scrape_profiles(self, linkedin_urls: list[str]) -> list[CompanyProfile]:
        self.calls.append(list(linkedin_urls))
        return list(self.profiles)


def make_posting(
    external_id: str,
    company: str | None,
    title: str = "DevOps Engineer",
    **fields: Any,
) -> JobPosting:
    return JobPosting(
        title=title,
        company_name=company,
        external_id=external_id,
        job_url=f"https://www.linkedin.com/jobs/view/{external_id}",
        **fields,
    )


def make_person(apollo_id: str, **fields: Any) -> PersonRecord:
    fields.setdefault("first_name", apollo_id.title())
    fields.setdefault("last_name", "Doe")
    return PersonRecord(apollo_id=apollo_id, **fields)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh SQLite database per test, bound to the global session factory"""
    url = f"sqlite:///{tmp_path / 'hirescout.db'}"
    await init_db_async(url)
    yield url
    await dispose_engines_async()


@pytest.fixture
def app_config(db) -> AppConfig:
    return AppConfig.model_validate({
        "database": {"url": db},
        "logging": {"file": None, "rich_console": False},
        "orchestrator": {
            "run_budget_seconds": 10,
            "scraper_timeout_seconds": 1,
            "stale_after_minutes": 10,
            "default_max_rows": 25,
        },
        "enrichment": {
            "company_delay_ms": 0,
            "page_delay_ms": 0,
            "webhook_url": "https://hooks.example.com/apollo/phones",
        },
        "credits": {"default_search_limit": 30, "default_enrichment_limit": 200},
        "apify": {"api_token": None},
        "apollo": {"api_key": None},
    })


@pytest.fixture
def job_source() -> FakeJobSource:
    return FakeJobSource()


@pytest.fixture
def contact_provider() -> FakeContactProvider:
    return FakeContactProvider()


@pytest_asyncio.fixture
async def org(db):
    async with get_async_session() as session:
        org = await OrganizationRepository(session).create("Acme Recruiting", credits_limit=30)
    return org


@pytest_asyncio.fixture
async def search(org):
    async with get_async_session() as session:
        search = await SearchRepository(session).create(
            org.id,
            "Platform hiring",
            scrapers=[
                {"jobTitle": "DevOps Engineer", "location": "Remote"},
                {"jobTitle": "SRE", "location": "Remote"},
            ],
        )
    return search
