"""
Cache-first employee lookup backed by the shared enrichment cache.

A fresh cache entry for a domain is served without any external call.
A missing or stale entry is fetched from the contact provider and written
back. People lacking a verified email (or a phone, when phones are
requested) are then enriched in bulk and merged over the cached values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from hirescout.core.clients.apollo import expand_seniorities
from hirescout.core.clients.base import ContactProvider, PersonRecord
from hirescout.core.config.models import EnrichmentConfig
from hirescout.core.errors import ExternalAPIError, ValidationError
from hirescout.core.logging import get_logger
from hirescout.persistence.models import GlobalCompany, GlobalEmployee, utcnow
from hirescout.persistence.repo import EnrichmentCacheRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger("enrichment.cache")


def is_cache_stale(company: GlobalCompany, now: datetime | None = None) -> bool:
    if company.employees_last_fetched_at is None:
        return True
    expires = company.employees_last_fetched_at + timedelta(days=company.stale_after_days)
    return (now or utcnow()) >= expires


def person_from_row(row: GlobalEmployee) -> PersonRecord:
    return PersonRecord(
        apollo_id=row.apollo_id,
        first_name=row.first_name,
        last_name=row.last_name,
        job_title=row.job_title,
        email=row.email,
        email_status=row.email_status,
        phone=row.phone,
        linkedin_url=row.linkedin_url,
        location=row.location,
        seniority=row.seniority,
        departments=list(row.departments or []),
    )


@dataclass
class CacheStatus:
    exists: bool
    employees_count: int = 0
    is_stale: bool = True
    last_fetched_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "exists": self.exists,
            "employeesCount": self.employees_count,
            "isStale": self.is_stale,
            "lastFetchedAt": self.last_fetched_at.isoformat() if self.last_fetched_at else None,
        }


@dataclass
class EmployeeLookup:
    """Employees of one domain plus how they were obtained."""

    employees: list[PersonRecord] = field(default_factory=list)
    total_available: int = 0
    cache_hit: bool = False
    bulk_requested: int = 0
    bulk_matched: int = 0


class EnrichmentCacheGateway:
    """Cache-first employee source for a company domain."""

    def __init__(self, provider: ContactProvider | None, config: EnrichmentConfig | None = None):
        self.provider = provider
        self.config = config or EnrichmentConfig()

    def _require_provider(self) -> ContactProvider:
        if self.provider is None:
            raise ValidationError("APOLLO_API_KEY is not configured")
        return self.provider

    async def cache_status(self, session: AsyncSession, domain: str) -> CacheStatus:
        company = await EnrichmentCacheRepository(session).get_company(domain)
        if company is None:
            return CacheStatus(exists=False)
        return CacheStatus(
            exists=True,
            employees_count=company.employees_count,
            is_stale=is_cache_stale(company),
            last_fetched_at=company.employees_last_fetched_at,
        )

    async def get_or_fetch(
        self,
        session: AsyncSession,
        domain: str,
        *,
        company_name: str | None = None,
        linkedin_url: str | None = None,
        titles: list[str] | None = None,
        seniorities: list[str] | None = None,
        fetch_all: bool = False,
        reveal_phones: bool = False,
        webhook_url: str | None = None,
        force_refresh: bool = False,
    ) -> EmployeeLookup:
        """Return the employees of ``domain``, fetching only on a cache miss.

        Raises:
            ExternalAPIError: The contact search failed and no cache entry exists
        """
        repo = EnrichmentCacheRepository(session)
        domain = domain.strip().lower()
        filtered = bool(titles or seniorities)
        cached = await repo.get_company(domain)

        if cached is not None and not force_refresh and not is_cache_stale(cached):
            lookup = await self._from_cache(repo, cached, titles, seniorities)
            logger.info(f"{domain}: cache hit, {len(lookup.employees)} employees")
        else:
            try:
                page = await self._require_provider().search_people(domain, titles, seniorities, fetch_all)
            except ExternalAPIError as e:
                if cached is None:
                    raise
                logger.warning(f"{domain}: contact search failed, serving stale cache: {e}")
                lookup = await self._from_cache(repo, cached, titles, seniorities)
            else:
                company = await repo.upsert_company(
                    domain,
                    name=company_name,
                    linkedin_url=linkedin_url,
                    # A filtered fetch only refreshes the timestamp
                    employees_count=None if filtered else page.total_entries,
                    fetched_at=utcnow(),
                    stale_after_days=self.config.cache_stale_days,
                )
                await repo.upsert_employees(company.id, page.people)
                lookup = EmployeeLookup(
                    employees=list(page.people),
                    total_available=page.total_entries,
                    cache_hit=False,
                )

        await self._enrich(repo, lookup, reveal_phones, webhook_url)
        return lookup

    async def _from_cache(
        self,
        repo: EnrichmentCacheRepository,
        cached: GlobalCompany,
        titles: list[str] | None,
        seniorities: list[str] | None,
    ) -> EmployeeLookup:
        rows = await repo.list_employees(
            cached.id,
            titles=titles,
            seniorities=expand_seniorities(seniorities) if seniorities else None,
        )
        employees = [person_from_row(row) for row in rows]
        total = len(employees) if titles or seniorities else max(cached.employees_count, len(employees))
        return EmployeeLookup(employees=employees, total_available=total, cache_hit=True)

    async def _enrich(
        self,
        repo: EnrichmentCacheRepository,
        lookup: EmployeeLookup,
        reveal_phones: bool,
        webhook_url: str | None,
    ) -> None:
        pending = [
            person.apollo_id
            for person in lookup.employees
            if not person.has_verified_email or (reveal_phones and not person.phone)
        ]
        lookup.bulk_requested = len(pending)
        if not pending:
            return

        enriched = await self._require_provider().bulk_match(
            pending,
            reveal_phone_number=reveal_phones,
            webhook_url=webhook_url,
        )
        lookup.bulk_matched = len(enriched)
        if not enriched:
            return

        await repo.apply_enrichment(enriched)
        by_id = {person.apollo_id: person for person in enriched}
        lookup.employees = [person.merged_with(by_id.get(person.apollo_id)) for person in lookup.employees]

    async def mark_for_refresh(self, session: AsyncSession, domain: str) -> bool:
        return await EnrichmentCacheRepository(session).mark_for_refresh(domain)

    async def cache_stats(self, session: AsyncSession) -> dict[str, int]:
        repo = EnrichmentCacheRepository(session)
        companies = await repo.all_companies()
        now = utcnow()
        stale = sum(1 for company in companies if is_cache_stale(company, now))
        return {
            "totalCompanies": len(companies),
            "totalEmployees": await repo.count_employees(),
            "staleCompanies": stale,
            "freshCompanies": len(companies) - stale,
        }
