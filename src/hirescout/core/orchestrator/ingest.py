"""
Result ingestion: merge one batch of job postings into the shared dataset.

Companies are deduplicated by case-insensitive name within an org+search,
jobs by external id, and poster leads by profile URL. Every write is
committed individually so sibling executors observe it on their next
authoritative re-check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from sqlalchemy.exc import SQLAlchemyError

from hirescout.core.enrichment.companies import CompanyProfileEnricher, CompanyToEnrich
from hirescout.core.logging import get_logger
from hirescout.persistence.repo import (
    CompanyRepository,
    EmployeeRepository,
    JobRepository,
    LeadRepository,
)

if TYPE_CHECKING:
    import logging

    from sqlalchemy.ext.asyncio import AsyncSession

    from hirescout.core.clients.base import JobPosting


logger = get_logger("orchestrator.ingest")

POSTER_SOURCE = "linkedin_job_poster"
POSTER_TITLE = "Job Poster"


def split_full_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


@dataclass
class IngestResult:
    """Counts and the updated company map for one ingested batch."""

    company_map: dict[str, str]
    jobs_found: int = 0
    companies_found: int = 0
    new_companies: int = 0
    jobs_inserted: int = 0
    leads_created: int = 0
    new_company_ids: list[str] = field(default_factory=list)
    skipped_errors: int = 0


class ResultIngester:
    """Dedups and merges companies, jobs and poster leads from one batch."""

    def __init__(self, profile_enricher: CompanyProfileEnricher | None = None):
        self.profile_enricher = profile_enricher

    async def ingest(
        self,
        session: AsyncSession,
        org_id: str,
        search_id: str,
        postings: list[JobPosting],
        company_map: Mapping[str, str],
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> IngestResult:
        """Ingest ``postings`` against a snapshot of known companies.

        Args:
            session: Session owned by the calling executor
            org_id: Owning organization
            search_id: Search the batch belongs to
            postings: Raw job postings from the job source
            company_map: Read-only snapshot of lower(name) -> company id
            log: Contextual logger of the calling executor

        Returns:
            IngestResult with a private, updated copy of the company map
        """
        log = log or logger
        result = IngestResult(company_map=dict(company_map), jobs_found=len(postings))

        grouped: dict[str, list[JobPosting]] = {}
        for posting in postings:
            name = (posting.company_name or "").strip()
            if not name:
                continue
            grouped.setdefault(name.lower(), []).append(posting)
        result.companies_found = len(grouped)

        to_profile = await self._merge_companies(session, org_id, search_id, grouped, result, log)

        # Awaited in the critical path: the host may stop right after responding
        if to_profile and self.profile_enricher is not None:
            try:
                await self.profile_enricher.enrich(session, to_profile)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                log.warning(f"Could not store company profiles: {e}")

        await self._insert_jobs(session, org_id, search_id, grouped, result, log)
        await self._insert_poster_leads(session, org_id, search_id, grouped, result, log)

        log.info(
            f"Ingested {result.jobs_found} jobs: {result.companies_found} companies "
            f"({result.new_companies} new), {result.jobs_inserted} jobs stored, "
            f"{result.leads_created} leads"
        )
        return result

    async def _merge_companies(
        self,
        session: AsyncSession,
        org_id: str,
        search_id: str,
        grouped: dict[str, list[JobPosting]],
        result: IngestResult,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> list[CompanyToEnrich]:
        companies = CompanyRepository(session)
        to_profile: list[CompanyToEnrich] = []

        for key, group in grouped.items():
            if key in result.company_map:
                continue

            first = next((p for p in group if p.company_url), group[0])
            try:
                # A sibling executor may have inserted it since the snapshot
                existing = await companies.find_by_name(org_id, search_id, key)
                if existing is not None:
                    result.company_map[key] = existing.id
                    continue

                company = await companies.create(
                    org_id,
                    search_id,
                    (first.company_name or "").strip(),
                    linkedin_url=first.company_url,
                    linkedin_id=first.company_id,
                    logo_url=first.company_logo,
                    meta={"source": "linkedin_jobs", "jobCount": len(group)},
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                result.skipped_errors += 1
                log.warning(f"Skipping company {first.company_name!r} and its {len(group)} jobs: {e}")
                continue

            result.company_map[key] = company.id
            result.new_companies += 1
            result.new_company_ids.append(company.id)
            if company.linkedin_url:
                to_profile.append(CompanyToEnrich(company.id, company.name, company.linkedin_url))

        return to_profile

    async def _insert_jobs(
        self,
        session: AsyncSession,
        org_id: str,
        search_id: str,
        grouped: dict[str, list[JobPosting]],
        result: IngestResult,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        jobs = JobRepository(session)

        for key, group in grouped.items():
            company_id = result.company_map.get(key)
            if company_id is None:
                continue
            for posting in group:
                external_id = posting.dedup_key
                if not external_id:
                    log.debug(f"Skipping posting without id: {posting.title}")
                    continue
                try:
                    job_id = await jobs.insert_if_absent({
                        "org_id": org_id,
                        "company_id": company_id,
                        "search_id": search_id,
                        "external_id": external_id,
                        "title": posting.title or "Untitled",
                        "job_url": posting.job_url,
                        "location": posting.location,
                        "salary": posting.salary,
                        "contract_type": posting.contract_type,
                        "experience_level": posting.experience_level,
                        "work_type": posting.work_type,
                        "sector": posting.sector,
                        "description": posting.description,
                        "posted_time": posting.posted_time,
                        "published_at": posting.published_at,
                        "applications_count": posting.applications_count,
                        "apply_url": posting.apply_url,
                        "poster_name": posting.poster_full_name,
                        "poster_url": posting.poster_profile_url,
                    })
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    result.skipped_errors += 1
                    log.warning(f"Skipping job {external_id}: {e}")
                    continue
                if job_id is not None:
                    result.jobs_inserted += 1

    async def _insert_poster_leads(
        self,
        session: AsyncSession,
        org_id: str,
        search_id: str,
        grouped: dict[str, list[JobPosting]],
        result: IngestResult,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        employees = EmployeeRepository(session)
        leads = LeadRepository(session)
        seen: set[str] = set()

        for key, group in grouped.items():
            company_id = result.company_map.get(key)
            if company_id is None:
                continue
            for posting in group:
                url = posting.poster_profile_url
                if not url or not posting.poster_full_name or url in seen:
                    continue
                seen.add(url)

                first_name, last_name = split_full_name(posting.poster_full_name)
                try:
                    employee = await employees.find_by_linkedin(org_id, company_id, url)
                    if employee is None:
                        employee = await employees.create_contact(
                            org_id,
                            company_id,
                            first_name=first_name,
                            last_name=last_name or None,
                            full_name=posting.poster_full_name,
                            job_title=POSTER_TITLE,
                            linkedin_url=url,
                            meta={"source": POSTER_SOURCE},
                        )
                    lead_id = await leads.insert_if_absent({
                        "org_id": org_id,
                        "company_id": company_id,
                        "employee_id": employee.id,
                        "search_id": search_id,
                        "first_name": first_name,
                        "last_name": last_name or None,
                        "job_title": POSTER_TITLE,
                        "linkedin_url": url,
                        "status": "new",
                        "meta": {
                            "source": POSTER_SOURCE,
                            "jobTitle": posting.title,
                            "jobUrl": posting.job_url,
                        },
                    })
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    result.skipped_errors += 1
                    log.warning(f"Skipping poster lead {url}: {e}")
                    continue
                if lead_id is not None:
                    result.leads_created += 1
