"""
Company enrichment pipeline.

Turns the employees of existing companies into Employee and Lead rows:
cache-first lookup per company, employee upsert, one lead per employee,
a single credit debit per batch and one audit row per batch. A read-only
preview reports what an enrichment would cost without touching anything.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from hirescout.core.config.models import AppConfig, CreditType
from hirescout.core.errors import InsufficientCreditsError, ValidationError
from hirescout.core.logging import get_contextual_logger, get_logger
from hirescout.persistence.db import SessionFactory, get_async_session
from hirescout.persistence.models import Company, Employee, utcnow
from hirescout.persistence.repo import (
    CompanyRepository,
    CreditRepository,
    EmployeeRepository,
    LeadRepository,
    OrganizationRepository,
)

from .cache import EmployeeLookup, EnrichmentCacheGateway

logger = get_logger("enrichment.pipeline")

NO_DOMAIN_REASON = "No domain available"
TRANSACTION_TYPE = "leads_company_enrich"


# =============================================================================
# Request / Result Types
# =============================================================================


@dataclass
class EnrichmentRequest:
    company_ids: list[str] | None = None
    titles: list[str] | None = None
    seniorities: list[str] | None = None
    fetch_all: bool = False
    reveal_phone_numbers: bool = False
    search_id: str | None = None

    @property
    def filters(self) -> dict[str, list[str]] | None:
        if not self.titles and not self.seniorities:
            return None
        return {"titles": self.titles or [], "seniorities": self.seniorities or []}


@dataclass
class CompanyTarget:
    """Detached view of a company row handed to a per-company task."""

    id: str
    name: str
    domain: str | None
    linkedin_url: str | None
    is_enriched: bool = False

    @classmethod
    def from_row(cls, company: Company) -> "CompanyTarget":
        return cls(company.id, company.name, company.domain, company.linkedin_url, company.is_enriched)


@dataclass
class CompanyEnrichmentResult:
    company_id: str
    company_name: str
    employees_found: int = 0
    employees_created: int = 0
    leads_created: int = 0
    total_available: int = 0
    cache_hit: bool = False
    fetched: bool = False
    error: str | None = None
    phone_lead_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "companyId": self.company_id,
            "companyName": self.company_name,
            "employeesFound": self.employees_found,
            "employeesCreated": self.employees_created,
            "leadsCreated": self.leads_created,
            "cacheHit": self.cache_hit,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class EnrichmentSummary:
    """Aggregated outcome of one enrichment batch."""

    results: list[CompanyEnrichmentResult] = field(default_factory=list)
    skipped: list[CompanyTarget] = field(default_factory=list)
    credits_used: int = 0
    reveal_phone_numbers: bool = False

    @property
    def cache_hits(self) -> int:
        return sum(1 for r in self.results if r.cache_hit)

    @property
    def apollo_fetches(self) -> int:
        return sum(1 for r in self.results if r.fetched)

    @property
    def total_employees_found(self) -> int:
        return sum(r.total_available for r in self.results)

    @property
    def total_employees_created(self) -> int:
        return sum(r.employees_created for r in self.results)

    @property
    def total_leads_created(self) -> int:
        return sum(r.leads_created for r in self.results)

    @property
    def phone_lead_ids(self) -> list[str]:
        return [lead_id for r in self.results for lead_id in r.phone_lead_ids]

    @property
    def errors(self) -> list[str]:
        return [f"{r.company_name}: {r.error}" for r in self.results if r.error]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "companiesProcessed": len(self.results),
            "companiesSkipped": len(self.skipped),
            "totalEmployeesFound": self.total_employees_found,
            "totalEmployeesCreated": self.total_employees_created,
            "totalLeadsCreated": self.total_leads_created,
            "totalCreditsUsed": self.credits_used,
            "cacheHits": self.cache_hits,
            "apolloFetches": self.apollo_fetches,
            "results": [r.to_dict() for r in self.results],
        }
        if self.reveal_phone_numbers:
            lead_ids = self.phone_lead_ids
            data["phoneEnrichment"] = {
                "requested": True,
                "leadsQueued": len(lead_ids),
                "started": bool(lead_ids),
                "leadIds": lead_ids,
            }
        if self.errors:
            data["errors"] = self.errors
        if self.skipped:
            data["skippedCompanies"] = [
                {"id": c.id, "name": c.name, "reason": NO_DOMAIN_REASON} for c in self.skipped
            ]
        return data


# =============================================================================
# Pipeline
# =============================================================================


class CompanyEnrichmentPipeline:
    """Enriches a batch of companies with employees and leads."""

    def __init__(
        self,
        gateway: EnrichmentCacheGateway,
        config: AppConfig | None = None,
        session_factory: SessionFactory = get_async_session,
    ):
        self.gateway = gateway
        self.config = config or AppConfig()
        self.session_factory = session_factory

    async def _load_targets(
        self,
        session: Any,
        org_id: str,
        company_ids: list[str] | None,
    ) -> list[CompanyTarget]:
        companies = CompanyRepository(session)
        ids = company_ids or await companies.ids_referenced_by_leads(org_id)
        return [CompanyTarget.from_row(c) for c in await companies.get_many(org_id, ids)]

    async def enrich(
        self,
        org_id: str,
        user_id: str | None,
        request: EnrichmentRequest,
    ) -> EnrichmentSummary:
        """Enrich the requested companies (all lead-referenced ones if none).

        Raises:
            ValidationError: Nothing to enrich, or phones requested without a webhook URL
            InsufficientCreditsError: The enrichment pool is exhausted
        """
        settings = self.config.enrichment
        webhook_url = settings.webhook_url if request.reveal_phone_numbers else None
        if request.reveal_phone_numbers and not webhook_url:
            raise ValidationError("enrichment.webhook_url must be configured to reveal phone numbers")

        async with self.session_factory() as session:
            targets = await self._load_targets(session, org_id, request.company_ids)
            if not targets:
                raise ValidationError("No companies found to enrich")

            usage = await CreditRepository(session).get_or_create_usage(
                org_id,
                default_limit=self.config.credits.default_enrichment_limit,
                cycle_days=self.config.credits.billing_cycle_days,
            )
            if usage.enrichment_remaining <= 0:
                raise InsufficientCreditsError(
                    "Enrichment credits exhausted",
                    credits_used=usage.enrichment_used,
                    credits_limit=usage.enrichment_limit,
                )

        summary = EnrichmentSummary(reveal_phone_numbers=request.reveal_phone_numbers)
        eligible = [t for t in targets if t.domain]
        summary.skipped = [t for t in targets if not t.domain]
        logger.info(
            f"Enriching {len(eligible)} companies, skipping {len(summary.skipped)} without domain",
            extra={"org_id": org_id},
        )

        # One task per domain; companies sharing a domain run in order so
        # only the first of them can trigger a paid contact search
        by_domain: dict[str, list[CompanyTarget]] = {}
        for target in eligible:
            by_domain.setdefault((target.domain or "").strip().lower(), []).append(target)

        semaphore = asyncio.Semaphore(settings.company_concurrency)
        groups = await asyncio.gather(
            *(self._process_domain(semaphore, org_id, group, request, webhook_url) for group in by_domain.values())
        )
        by_id = {result.company_id: result for group in groups for result in group}
        summary.results = [by_id[target.id] for target in eligible]

        await self._settle(org_id, user_id, request, targets, summary)

        logger.info(
            f"Enrichment done: {summary.total_employees_created} employees, "
            f"{summary.total_leads_created} leads, {summary.credits_used} credits, "
            f"{summary.cache_hits} cache hits, {summary.apollo_fetches} fetches",
            extra={"org_id": org_id},
        )
        return summary

    async def _process_domain(
        self,
        semaphore: asyncio.Semaphore,
        org_id: str,
        targets: list[CompanyTarget],
        request: EnrichmentRequest,
        webhook_url: str | None,
    ) -> list[CompanyEnrichmentResult]:
        async with semaphore:
            return [await self._process(org_id, target, request, webhook_url) for target in targets]

    async def _process(
        self,
        org_id: str,
        target: CompanyTarget,
        request: EnrichmentRequest,
        webhook_url: str | None,
    ) -> CompanyEnrichmentResult:
        log = get_contextual_logger("enrichment.pipeline", org_id=org_id, company_id=target.id)
        result = CompanyEnrichmentResult(company_id=target.id, company_name=target.name)

        try:
            async with self.session_factory() as session:
                lookup = await self.gateway.get_or_fetch(
                    session,
                    target.domain or "",
                    company_name=target.name,
                    linkedin_url=target.linkedin_url,
                    titles=request.titles,
                    seniorities=request.seniorities,
                    fetch_all=request.fetch_all,
                    reveal_phones=request.reveal_phone_numbers,
                    webhook_url=webhook_url,
                )
                await session.commit()

                result.cache_hit = lookup.cache_hit
                result.fetched = not lookup.cache_hit
                result.total_available = lookup.total_available
                result.employees_found = len(lookup.employees)

                await self._upsert_contacts(session, org_id, target, lookup, request, result, log)
                await CompanyRepository(session).mark_enriched(target.id)

            log.info(
                f"{target.name}: {result.employees_created} employees, "
                f"{result.leads_created} leads (cache hit: {result.cache_hit})"
            )
        except Exception as e:
            result.error = str(e) or e.__class__.__name__
            log.error(f"{target.name}: enrichment failed: {result.error}")

        # Pace the provider between companies
        await asyncio.sleep(self.config.enrichment.company_delay_ms / 1000)

        return result

    async def _upsert_contacts(
        self,
        session: Any,
        org_id: str,
        target: CompanyTarget,
        lookup: EmployeeLookup,
        request: EnrichmentRequest,
        result: CompanyEnrichmentResult,
        log: Any,
    ) -> None:
        employees = EmployeeRepository(session)
        leads = LeadRepository(session)
        enriched_at = utcnow().isoformat()

        for person in lookup.employees:
            try:
                employee, created = await employees.upsert_person(
                    org_id,
                    target.id,
                    person,
                    meta={
                        "source": "global_cache",
                        "departments": person.departments,
                        "enrichedAt": enriched_at,
                        "cacheHit": lookup.cache_hit,
                        "fetchAll": request.fetch_all,
                    },
                )
                values = _lead_values(employee)

                lead = await leads.find_by_employee(org_id, employee.id)
                lead_id = None
                phone_pending = request.reveal_phone_numbers and not employee.phone
                if lead is None:
                    lead_id = await leads.insert_if_absent({
                        "org_id": org_id,
                        "company_id": target.id,
                        "employee_id": employee.id,
                        "search_id": request.search_id,
                        "status": "new",
                        "meta": {
                            "apolloId": person.apollo_id,
                            "seniority": person.seniority,
                            "department": person.department,
                            "departments": person.departments,
                            "source": "enrichment",
                            "enrichedAt": enriched_at,
                            "phonePending": phone_pending,
                        },
                        **values,
                    })
                else:
                    await leads.upgrade(lead, values)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                log.warning(f"Skipping contact {person.apollo_id}: {e}")
                continue

            if created:
                result.employees_created += 1
            if lead_id is not None:
                result.leads_created += 1
                if phone_pending:
                    result.phone_lead_ids.append(lead_id)

    async def _settle(
        self,
        org_id: str,
        user_id: str | None,
        request: EnrichmentRequest,
        targets: list[CompanyTarget],
        summary: EnrichmentSummary,
    ) -> None:
        credits_used = summary.total_leads_created

        async with self.session_factory() as session:
            credits = CreditRepository(session)
            if credits_used > 0:
                used, limit = await credits.debit_enrichment_credits(org_id, credits_used)
                await credits.record_history(
                    org_id,
                    credit_type=CreditType.ENRICHMENT.value,
                    transaction_type=TRANSACTION_TYPE,
                    credits_used=credits_used,
                    balance_after=limit - used,
                    user_id=user_id,
                    description="Enrichment credit usage for leads/company enrich",
                    search_id=request.search_id,
                    meta={"filters": request.filters},
                )
                summary.credits_used = credits_used

            await credits.record_enrichment_transaction(
                org_id=org_id,
                user_id=user_id,
                company_ids=[t.id for t in targets],
                credits_used=credits_used,
                employee_count=summary.total_employees_created,
                cache_hit=summary.cache_hits > summary.apollo_fetches,
                apollo_calls_made=summary.apollo_fetches,
                meta={
                    "transactionType": TRANSACTION_TYPE,
                    "filters": request.filters,
                    "fetchAll": request.fetch_all,
                    "searchId": request.search_id,
                },
            )

    async def preview(self, org_id: str, company_ids: list[str] | None = None) -> dict[str, Any]:
        """Report domain and cache status per company without writing anything."""
        async with self.session_factory() as session:
            targets = await self._load_targets(session, org_id, company_ids)
            counts = await EmployeeRepository(session).count_by_company(org_id, [t.id for t in targets])

            companies: list[dict[str, Any]] = []
            in_cache = needing_fetch = estimated = 0
            for target in targets:
                status = None
                if target.domain:
                    cache = await self.gateway.cache_status(session, target.domain)
                    status = cache.to_dict()
                    if cache.exists:
                        in_cache += 1
                        estimated += cache.employees_count
                    else:
                        needing_fetch += 1

                companies.append({
                    "id": target.id,
                    "name": target.name,
                    "domain": target.domain,
                    "hasDomain": bool(target.domain),
                    "isEnriched": bool(target.is_enriched),
                    "cacheStatus": status,
                    "orgEmployeesCount": counts.get(target.id, 0),
                })

            org = await OrganizationRepository(session).get(org_id)
            credits_remaining = (
                org.credits_limit - org.credits_used
                if org is not None
                else self.config.credits.default_search_limit
            )
            # Preview never writes
            await session.rollback()

        with_domain = sum(1 for t in targets if t.domain)
        return {
            "companies": companies,
            "totals": {
                "totalCompanies": len(targets),
                "companiesWithDomains": with_domain,
                "companiesWithoutDomains": len(targets) - with_domain,
                "companiesInCache": in_cache,
                "companiesNeedingFetch": needing_fetch,
                "estimatedEmployeesInCache": estimated,
            },
            "creditsRemaining": credits_remaining,
        }


def _lead_values(employee: Employee) -> dict[str, Any]:
    return {
        "first_name": employee.first_name,
        "last_name": employee.last_name,
        "email": employee.email,
        "phone": employee.phone,
        "job_title": employee.job_title,
        "linkedin_url": employee.linkedin_url,
    }
