"""
Repository pattern for database operations.

Provides clean abstractions over the async session for every aggregate the
orchestrator and the enrichment pipeline touch. All writes are additive:
inserts skip on conflict, updates only ever upgrade a field to a non-null
value, and counters move through single atomic UPDATE statements.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite

from hirescout.core.config.models import ACTIVE_RUN_STATUSES, RunStatus

from .models import (
    Company,
    CreditHistory,
    CreditUsage,
    Employee,
    EnrichmentTransaction,
    GlobalCompany,
    GlobalEmployee,
    Job,
    Lead,
    Organization,
    ScraperRun,
    Search,
    utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hirescout.core.clients.base import PersonRecord


def _insert(session: AsyncSession, model: type) -> Any:
    """Dialect-specific INSERT supporting ON CONFLICT DO NOTHING."""
    if session.bind is not None and session.bind.dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


def _upgrade(obj: Any, values: dict[str, Any]) -> list[str]:
    """Copy non-null values onto ``obj``; returns the changed field names."""
    changed = []
    for key, value in values.items():
        if value is None or value == "" or value == []:
            continue
        if getattr(obj, key) != value:
            setattr(obj, key, value)
            changed.append(key)
    return changed


# =============================================================================
# Organization & Credit Repository
# =============================================================================


class OrganizationRepository:
    """Repository for Organization rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, org_id: str) -> Organization | None:
        return await self.session.get(Organization, org_id)

    async def create(self, name: str, credits_limit: int = 30, org_id: str | None = None) -> Organization:
        org = Organization(name=name, credits_limit=credits_limit)
        if org_id:
            org.id = org_id
        self.session.add(org)
        await self.session.flush()
        return org


class CreditRepository:
    """Credit counters and their audit trail."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def debit_search_credits(self, org_id: str, amount: int) -> tuple[int, int]:
        """Atomically add ``amount`` to the org's used search credits.

        Returns:
            (credits_used, credits_limit) after the increment
        """
        stmt = (
            update(Organization)
            .where(Organization.id == org_id)
            .values(credits_used=Organization.credits_used + amount)
            .returning(Organization.credits_used, Organization.credits_limit)
            .execution_options(synchronize_session=False)
        )
        used, limit = (await self.session.execute(stmt)).one()
        return used, limit

    async def get_or_create_usage(
        self,
        org_id: str,
        default_limit: int = 200,
        cycle_days: int = 30,
    ) -> CreditUsage:
        """Load the org's enrichment pool, creating or rolling it over as needed."""
        stmt = select(CreditUsage).where(CreditUsage.org_id == org_id)
        usage = (await self.session.execute(stmt)).scalar_one_or_none()
        now = utcnow()

        if usage is None:
            # Concurrent batches of one org may both get here; the loser re-reads
            await self.session.execute(
                _insert(self.session, CreditUsage)
                .values(
                    org_id=org_id,
                    enrichment_limit=default_limit,
                    enrichment_used=0,
                    billing_cycle_start=now,
                    billing_cycle_end=now + timedelta(days=cycle_days),
                )
                .on_conflict_do_nothing()
            )
            usage = (await self.session.execute(stmt)).scalar_one()
        elif usage.billing_cycle_end <= now:
            usage.enrichment_used = 0
            usage.billing_cycle_start = now
            usage.billing_cycle_end = now + timedelta(days=cycle_days)
            await self.session.flush()

        return usage

    async def debit_enrichment_credits(self, org_id: str, amount: int) -> tuple[int, int]:
        """Atomically add ``amount`` to the org's used enrichment credits.

        Returns:
            (enrichment_used, enrichment_limit) after the increment
        """
        stmt = (
            update(CreditUsage)
            .where(CreditUsage.org_id == org_id)
            .values(enrichment_used=CreditUsage.enrichment_used + amount)
            .returning(CreditUsage.enrichment_used, CreditUsage.enrichment_limit)
            .execution_options(synchronize_session=False)
        )
        used, limit = (await self.session.execute(stmt)).one()
        return used, limit

    async def record_history(
        self,
        org_id: str,
        credit_type: str,
        transaction_type: str,
        credits_used: int,
        balance_after: int,
        user_id: str | None = None,
        description: str | None = None,
        search_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> CreditHistory:
        entry = CreditHistory(
            org_id=org_id,
            user_id=user_id,
            credit_type=credit_type,
            transaction_type=transaction_type,
            credits_used=credits_used,
            balance_after=balance_after,
            description=description,
            search_id=search_id,
            meta=meta,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def get_history(self, org_id: str, limit: int = 50) -> Sequence[CreditHistory]:
        stmt = (
            select(CreditHistory)
            .where(CreditHistory.org_id == org_id)
            .order_by(CreditHistory.created_at.desc())
            .limit(limit)
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def record_enrichment_transaction(self, **values: Any) -> EnrichmentTransaction:
        transaction = EnrichmentTransaction(**values)
        self.session.add(transaction)
        await self.session.flush()
        return transaction


# =============================================================================
# Search Repository
# =============================================================================


class SearchRepository:
    """Repository for Search rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, org_id: str, search_id: str) -> Search | None:
        stmt = select(Search).where(Search.id == search_id, Search.org_id == org_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        org_id: str,
        name: str,
        scrapers: list[dict[str, Any]] | None = None,
        filters: dict[str, Any] | None = None,
        max_rows: int | None = None,
    ) -> Search:
        filters = dict(filters or {})
        if scrapers is not None:
            filters["scrapers"] = scrapers
        search = Search(org_id=org_id, name=name, filters=filters, max_rows=max_rows)
        self.session.add(search)
        await self.session.flush()
        return search

    async def record_run(self, search_id: str, results_count: int, jobs_count: int) -> None:
        """Store recounted totals and stamp the run time."""
        await self.session.execute(
            update(Search)
            .where(Search.id == search_id)
            .values(
                results_count=results_count,
                jobs_count=jobs_count,
                last_run_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )


# =============================================================================
# Run Repository
# =============================================================================


class RunRepository:
    """Repository for ScraperRun lifecycle operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_queued(
        self,
        search_id: str,
        org_id: str,
        scraper_index: int,
        scraper_config: dict[str, Any],
    ) -> ScraperRun:
        run = ScraperRun(
            search_id=search_id,
            org_id=org_id,
            scraper_index=scraper_index,
            scraper_config=scraper_config,
            status=RunStatus.QUEUED.value,
            started_at=utcnow(),
        )
        self.session.add(run)
        await self.session.flush()
        return run

    async def get(self, run_id: str) -> ScraperRun | None:
        return await self.session.get(ScraperRun, run_id)

    async def get_for_search(self, org_id: str, search_id: str, run_id: str) -> ScraperRun | None:
        stmt = select(ScraperRun).where(
            ScraperRun.id == run_id,
            ScraperRun.search_id == search_id,
            ScraperRun.org_id == org_id,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_for_search(self, org_id: str, search_id: str, limit: int = 200) -> Sequence[ScraperRun]:
        stmt = (
            select(ScraperRun)
            .where(ScraperRun.search_id == search_id, ScraperRun.org_id == org_id)
            .order_by(ScraperRun.created_at.desc(), ScraperRun.scraper_index)
            .limit(limit)
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def mark_running(self, run_id: str) -> bool:
        """queued -> running. Returns False when the run is no longer queued."""
        result = await self.session.execute(
            update(ScraperRun)
            .where(ScraperRun.id == run_id, ScraperRun.status == RunStatus.QUEUED.value)
            .values(status=RunStatus.RUNNING.value, started_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def complete(
        self,
        run_id: str,
        jobs_found: int,
        companies_found: int,
        new_companies: int,
        leads_created: int,
        duration: int,
    ) -> None:
        await self._finish(
            run_id,
            status=RunStatus.COMPLETED.value,
            jobs_found=jobs_found,
            companies_found=companies_found,
            new_companies=new_companies,
            leads_created=leads_created,
            duration=duration,
        )

    async def fail(self, run_id: str, error_message: str, duration: int | None = None) -> None:
        await self._finish(
            run_id,
            status=RunStatus.FAILED.value,
            error_message=error_message,
            duration=duration,
        )

    async def _finish(self, run_id: str, **values: Any) -> None:
        # Only running rows may finish; a terminal row is never transitioned again
        await self.session.execute(
            update(ScraperRun)
            .where(ScraperRun.id == run_id, ScraperRun.status == RunStatus.RUNNING.value)
            .values(completed_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )

    async def cancel(self, run_id: str) -> bool:
        """queued -> cancelled. Returns False when the run was not queued."""
        result = await self.session.execute(
            update(ScraperRun)
            .where(ScraperRun.id == run_id, ScraperRun.status == RunStatus.QUEUED.value)
            .values(status=RunStatus.CANCELLED.value, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def reap_stale(self, search_id: str, cutoff: datetime, message: str) -> list[str]:
        """Fail queued/running runs of ``search_id`` started before ``cutoff``.

        Returns:
            Ids of the runs transitioned to failed
        """
        stmt = select(ScraperRun.id).where(
            ScraperRun.search_id == search_id,
            ScraperRun.status.in_(ACTIVE_RUN_STATUSES),
            ScraperRun.started_at < cutoff,
        )
        stale_ids = list((await self.session.execute(stmt)).scalars().all())
        if not stale_ids:
            return []

        await self.session.execute(
            update(ScraperRun)
            .where(
                ScraperRun.id.in_(stale_ids),
                ScraperRun.status.in_(ACTIVE_RUN_STATUSES),
            )
            .values(
                status=RunStatus.FAILED.value,
                error_message=message,
                completed_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return stale_ids


# =============================================================================
# Company Repository
# =============================================================================


class CompanyRepository:
    """Repository for Company rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, org_id: str, company_id: str) -> Company | None:
        stmt = select(Company).where(Company.id == company_id, Company.org_id == org_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def get_many(self, org_id: str, company_ids: Iterable[str]) -> Sequence[Company]:
        ids = list(company_ids)
        if not ids:
            return []
        stmt = (
            select(Company)
            .where(Company.org_id == org_id, Company.id.in_(ids))
            .order_by(Company.name)
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def name_map(self, org_id: str, search_id: str) -> dict[str, str]:
        """Snapshot of lower(name) -> company id for one org+search."""
        stmt = select(Company.name, Company.id).where(
            Company.org_id == org_id,
            Company.search_id == search_id,
        )
        rows = (await self.session.execute(stmt)).all()
        return {name.lower(): company_id for name, company_id in rows}

    async def find_by_name(self, org_id: str, search_id: str, name: str) -> Company | None:
        stmt = (
            select(Company)
            .where(
                Company.org_id == org_id,
                Company.search_id == search_id,
                func.lower(Company.name) == name.lower(),
            )
            .order_by(Company.created_at)
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create(self, org_id: str, search_id: str | None, name: str, **fields: Any) -> Company:
        company = Company(org_id=org_id, search_id=search_id, name=name, **fields)
        self.session.add(company)
        await self.session.flush()
        return company

    async def count_for_search(self, org_id: str, search_id: str) -> int:
        stmt = select(func.count(Company.id)).where(
            Company.org_id == org_id,
            Company.search_id == search_id,
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def ids_referenced_by_leads(self, org_id: str) -> list[str]:
        stmt = (
            select(Lead.company_id)
            .where(Lead.org_id == org_id, Lead.company_id.is_not(None))
            .distinct()
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def apply_profile(self, company_id: str, values: dict[str, Any]) -> list[str]:
        """Fill empty fields from a scraped profile; existing values stay."""
        company = await self.session.get(Company, company_id)
        if company is None:
            return []
        changed = []
        for key, value in values.items():
            if value is not None and getattr(company, key) in (None, ""):
                setattr(company, key, value)
                changed.append(key)
        await self.session.flush()
        return changed

    async def mark_enriched(self, company_id: str) -> None:
        await self.session.execute(
            update(Company)
            .where(Company.id == company_id)
            .values(is_enriched=True, enriched_at=utcnow())
            .execution_options(synchronize_session=False)
        )


# =============================================================================
# Job Repository
# =============================================================================


class JobRepository:
    """Repository for Job rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_if_absent(self, values: dict[str, Any]) -> str | None:
        """Insert a job, skipping on (org_id, external_id) conflict.

        Returns:
            The new job id, or None when the job already existed
        """
        stmt = (
            _insert(self.session, Job)
            .values(**values)
            .on_conflict_do_nothing()
            .returning(Job.id)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def count_for_search(self, org_id: str, search_id: str) -> int:
        stmt = select(func.count(Job.id)).where(Job.org_id == org_id, Job.search_id == search_id)
        return (await self.session.execute(stmt)).scalar_one()

    async def list_for_company(self, company_id: str) -> Sequence[Job]:
        stmt = select(Job).where(Job.company_id == company_id).order_by(Job.created_at)
        return (await self.session.execute(stmt)).scalars().all()


# =============================================================================
# Employee Repository
# =============================================================================


class EmployeeRepository:
    """Repository for Employee rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, org_id: str, company_id: str, apollo_id: str) -> Employee | None:
        stmt = select(Employee).where(
            Employee.org_id == org_id,
            Employee.company_id == company_id,
            Employee.apollo_id == apollo_id,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_by_linkedin(self, org_id: str, company_id: str, linkedin_url: str) -> Employee | None:
        stmt = (
            select(Employee)
            .where(
                Employee.org_id == org_id,
                Employee.company_id == company_id,
                Employee.linkedin_url == linkedin_url,
            )
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def upsert_person(
        self,
        org_id: str,
        company_id: str,
        person: PersonRecord,
        meta: dict[str, Any] | None = None,
    ) -> tuple[Employee, bool]:
        """Match on (org, company, external id); upgrade or create shortlisted.

        Returns:
            (employee, created)
        """
        values = {
            "first_name": person.first_name,
            "last_name": person.last_name,
            "full_name": person.full_name,
            "job_title": person.job_title,
            "email": person.email,
            "phone": person.phone,
            "linkedin_url": person.linkedin_url,
            "location": person.location,
            "seniority": person.seniority,
            "department": person.department,
        }

        employee = await self.find(org_id, company_id, person.apollo_id)
        if employee is not None:
            _upgrade(employee, values)
            await self.session.flush()
            return employee, False

        employee = Employee(
            org_id=org_id,
            company_id=company_id,
            apollo_id=person.apollo_id,
            is_shortlisted=True,
            meta=meta,
            **values,
        )
        self.session.add(employee)
        await self.session.flush()
        return employee, True

    async def create_contact(self, org_id: str, company_id: str, **values: Any) -> Employee:
        employee = Employee(org_id=org_id, company_id=company_id, **values)
        self.session.add(employee)
        await self.session.flush()
        return employee

    async def find_by_apollo_id(self, apollo_id: str) -> Sequence[Employee]:
        stmt = select(Employee).where(Employee.apollo_id == apollo_id)
        return (await self.session.execute(stmt)).scalars().all()

    async def count_by_company(self, org_id: str, company_ids: Iterable[str]) -> dict[str, int]:
        ids = list(company_ids)
        if not ids:
            return {}
        stmt = (
            select(Employee.company_id, func.count(Employee.id))
            .where(Employee.org_id == org_id, Employee.company_id.in_(ids))
            .group_by(Employee.company_id)
        )
        return {company_id: count for company_id, count in (await self.session.execute(stmt)).all()}


# =============================================================================
# Lead Repository
# =============================================================================


class LeadRepository:
    """Repository for Lead rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, lead_id: str) -> Lead | None:
        return await self.session.get(Lead, lead_id)

    async def find_by_employee(self, org_id: str, employee_id: str) -> Lead | None:
        stmt = select(Lead).where(Lead.org_id == org_id, Lead.employee_id == employee_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_by_linkedin(self, org_id: str, linkedin_url: str) -> Lead | None:
        stmt = select(Lead).where(Lead.org_id == org_id, Lead.linkedin_url == linkedin_url)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def insert_if_absent(self, values: dict[str, Any]) -> str | None:
        """Insert a lead, skipping on (org, employee) or (org, linkedin) conflict.

        Returns:
            The new lead id, or None when an equivalent lead already existed
        """
        stmt = (
            _insert(self.session, Lead)
            .values(**values)
            .on_conflict_do_nothing()
            .returning(Lead.id)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def upgrade(self, lead: Lead, values: dict[str, Any], meta: dict[str, Any] | None = None) -> list[str]:
        changed = _upgrade(lead, values)
        if meta:
            # JSON columns are not mutation-tracked; assign a fresh dict
            lead.meta = {**(lead.meta or {}), **meta}
            changed.append("meta")
        await self.session.flush()
        return changed

    async def list_for_apollo_id(self, apollo_id: str) -> Sequence[Lead]:
        """Leads whose employee carries the given external contact id."""
        stmt = (
            select(Lead)
            .join(Employee, Lead.employee_id == Employee.id)
            .where(Employee.apollo_id == apollo_id)
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def count_for_org(self, org_id: str) -> int:
        stmt = select(func.count(Lead.id)).where(Lead.org_id == org_id)
        return (await self.session.execute(stmt)).scalar_one()


# =============================================================================
# Enrichment Cache Repository
# =============================================================================


class EnrichmentCacheRepository:
    """Shared, cross-org employee cache keyed by company domain."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_company(self, domain: str) -> GlobalCompany | None:
        stmt = select(GlobalCompany).where(GlobalCompany.domain == domain.lower())
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def upsert_company(
        self,
        domain: str,
        name: str | None = None,
        linkedin_url: str | None = None,
        employees_count: int | None = None,
        fetched_at: datetime | None = None,
        stale_after_days: int = 30,
    ) -> GlobalCompany:
        """Create or refresh a cache company.

        ``employees_count`` is only rewritten when given, so filtered fetches
        refresh the timestamp without shrinking the recorded total. Another
        session may create the same domain concurrently; the insert skips on
        conflict and the row is re-read before it is refreshed.
        """
        company = await self.get_company(domain)
        if company is None:
            await self.session.execute(
                _insert(self.session, GlobalCompany)
                .values(domain=domain.lower(), stale_after_days=stale_after_days)
                .on_conflict_do_nothing()
            )
            company = await self.get_company(domain)
            assert company is not None

        _upgrade(company, {"name": name, "linkedin_url": linkedin_url})
        if employees_count is not None:
            company.employees_count = employees_count
        if fetched_at is not None:
            company.employees_last_fetched_at = fetched_at
            company.stale_after_days = stale_after_days
        await self.session.flush()
        return company

    async def upsert_employees(self, global_company_id: str, people: Iterable[PersonRecord]) -> int:
        """Insert or upgrade cached people by external id. Returns rows touched."""
        people = list(people)
        if not people:
            return 0

        ids = [person.apollo_id for person in people]
        stmt = select(GlobalEmployee).where(GlobalEmployee.apollo_id.in_(ids))
        existing = {row.apollo_id: row for row in (await self.session.execute(stmt)).scalars().all()}
        now = utcnow()

        missing = {p.apollo_id: p for p in people if p.apollo_id not in existing}
        if missing:
            # Skip people a concurrent session inserted first; they are upgraded below
            await self.session.execute(
                _insert(self.session, GlobalEmployee).on_conflict_do_nothing(),
                [
                    {
                        "apollo_id": apollo_id,
                        "global_company_id": global_company_id,
                        "last_updated_at": now,
                        **_person_values(person),
                    }
                    for apollo_id, person in missing.items()
                ],
            )
            stmt = select(GlobalEmployee).where(GlobalEmployee.apollo_id.in_(list(missing)))
            existing.update({row.apollo_id: row for row in (await self.session.execute(stmt)).scalars().all()})

        for person in people:
            row = existing.get(person.apollo_id)
            if row is None:
                continue
            row.global_company_id = global_company_id
            if _upgrade(row, _person_values(person)):
                row.last_updated_at = now

        await self.session.flush()
        return len(people)

    async def apply_enrichment(self, people: Iterable[PersonRecord]) -> int:
        """Upgrade cached people with enriched values. Returns rows changed."""
        changed = 0
        now = utcnow()
        for person in people:
            stmt = select(GlobalEmployee).where(GlobalEmployee.apollo_id == person.apollo_id)
            row = (await self.session.execute(stmt)).scalar_one_or_none()
            if row is not None and _upgrade(row, _person_values(person)):
                row.last_updated_at = now
                changed += 1
        await self.session.flush()
        return changed

    async def list_employees(
        self,
        global_company_id: str,
        titles: list[str] | None = None,
        seniorities: list[str] | None = None,
    ) -> Sequence[GlobalEmployee]:
        stmt = select(GlobalEmployee).where(GlobalEmployee.global_company_id == global_company_id)
        if titles:
            stmt = stmt.where(or_(*(GlobalEmployee.job_title.ilike(f"%{title}%") for title in titles)))
        if seniorities:
            stmt = stmt.where(GlobalEmployee.seniority.in_(seniorities))
        stmt = stmt.order_by(GlobalEmployee.last_name, GlobalEmployee.first_name)
        return (await self.session.execute(stmt)).scalars().all()

    async def mark_for_refresh(self, domain: str) -> bool:
        result = await self.session.execute(
            update(GlobalCompany)
            .where(GlobalCompany.domain == domain.lower())
            .values(stale_after_days=0)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def all_companies(self) -> Sequence[GlobalCompany]:
        return (await self.session.execute(select(GlobalCompany))).scalars().all()

    async def count_employees(self) -> int:
        return (await self.session.execute(select(func.count(GlobalEmployee.id)))).scalar_one()

    async def update_phone(self, apollo_id: str, phone: str) -> None:
        await self.session.execute(
            update(GlobalEmployee)
            .where(GlobalEmployee.apollo_id == apollo_id)
            .values(phone=phone, last_updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )


def _person_values(person: PersonRecord) -> dict[str, Any]:
    return {
        "first_name": person.first_name,
        "last_name": person.last_name,
        "full_name": person.full_name,
        "job_title": person.job_title,
        "email": person.email,
        "email_status": person.email_status,
        "phone": person.phone,
        "linkedin_url": person.linkedin_url,
        "location": person.location,
        "seniority": person.seniority,
        "departments": person.departments or None,
    }
