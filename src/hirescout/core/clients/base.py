"""
Collaborator interfaces and the records they exchange.

Defines the contract for the three external services the core depends on:
the job source, the contact-enrichment provider and the company profile
scraper. Implementations live beside this module; tests substitute fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Job Source
# =============================================================================


@dataclass
class JobQuery:
    """Query sent to the job source for one scraper config."""

    title: str
    location: str | None = None
    experience_level: str | None = None
    rows: int = 50


@dataclass
class JobPosting:
    """A single job posting returned by the job source."""

    title: str
    company_name: str | None
    external_id: str | None = None
    job_url: str | None = None
    location: str | None = None
    company_url: str | None = None
    company_id: str | None = None
    company_logo: str | None = None
    posted_time: str | None = None
    published_at: str | None = None
    description: str | None = None
    applications_count: str | None = None
    contract_type: str | None = None
    experience_level: str | None = None
    work_type: str | None = None
    sector: str | None = None
    salary: str | None = None
    poster_full_name: str | None = None
    poster_profile_url: str | None = None
    apply_url: str | None = None

    @property
    def dedup_key(self) -> str | None:
        """External id of the posting, falling back to its URL."""
        return self.external_id or self.job_url

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "JobPosting":
        """Build a posting from a LinkedIn jobs dataset item."""
        def text(key: str) -> str | None:
            value = item.get(key)
            if value is None or value == "":
                return None
            return str(value)

        return cls(
            title=text("title") or "",
            company_name=text("companyName"),
            external_id=text("id"),
            job_url=text("jobUrl") or text("link"),
            location=text("location"),
            company_url=text("companyUrl"),
            company_id=text("companyId"),
            company_logo=text("companyLogo"),
            posted_time=text("postedTime"),
            published_at=text("publishedAt"),
            description=text("description"),
            applications_count=text("applicationsCount"),
            contract_type=text("contractType"),
            experience_level=text("experienceLevel"),
            work_type=text("workType"),
            sector=text("sector"),
            salary=text("salary"),
            poster_full_name=text("posterFullName"),
            poster_profile_url=text("posterProfileUrl"),
            apply_url=text("applyUrl"),
        )


class JobSource(ABC):
    """Returns job postings for a title/location query."""

    @abstractmethod
    async def search_jobs(self, query: JobQuery) -> list[JobPosting]:
        """Run one search.

        Raises:
            ExternalAPIError: On an error response
            ExternalTimeoutError: When the source does not answer in time
        """

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "JobSource":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# =============================================================================
# Contact Enrichment Provider
# =============================================================================


@dataclass
class PersonRecord:
    """Lightweight employee record shared by the cache and the provider."""

    apollo_id: str
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    email: str | None = None
    email_status: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    location: str | None = None
    seniority: str | None = None
    departments: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str | None:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or None

    @property
    def department(self) -> str | None:
        return self.departments[0] if self.departments else None

    @property
    def has_verified_email(self) -> bool:
        """An email counts as verified unless the provider flagged it otherwise."""
        return bool(self.email) and self.email_status in (None, "verified")

    def merged_with(self, enriched: "PersonRecord | None") -> "PersonRecord":
        """Overlay enriched values; a present value is never replaced by null."""
        if enriched is None:
            return self
        return PersonRecord(
            apollo_id=self.apollo_id,
            first_name=enriched.first_name or self.first_name,
            last_name=enriched.last_name or self.last_name,
            job_title=enriched.job_title or self.job_title,
            email=enriched.email or self.email,
            email_status=enriched.email_status if enriched.email else self.email_status,
            phone=enriched.phone or self.phone,
            linkedin_url=enriched.linkedin_url or self.linkedin_url,
            location=enriched.location or self.location,
            seniority=enriched.seniority or self.seniority,
            departments=enriched.departments or self.departments,
        )


@dataclass
class PeoplePage:
    """Result of a contact search for one company."""

    people: list[PersonRecord]
    total_entries: int


class ContactProvider(ABC):
    """Searches and enriches contacts at a company domain."""

    @abstractmethod
    async def search_people(
        self,
        domain: str,
        titles: list[str] | None = None,
        seniorities: list[str] | None = None,
        fetch_all: bool = False,
    ) -> PeoplePage:
        """List people employed at ``domain``."""

    @abstractmethod
    async def bulk_match(
        self,
        apollo_ids: list[str],
        reveal_phone_number: bool = False,
        webhook_url: str | None = None,
    ) -> list[PersonRecord]:
        """Enrich people by external id.

        Phones, when requested, arrive later through ``webhook_url``.
        """

    async def close(self) -> None:
        pass


# =============================================================================
# Company Profile Source
# =============================================================================


@dataclass
class CompanyProfile:
    """Public company profile scraped from LinkedIn."""

    url: str
    name: str
    website_url: str | None = None
    logo_url: str | None = None
    industry: str | None = None
    employee_count: int | None = None
    city: str | None = None
    country: str | None = None
    description: str | None = None
    tagline: str | None = None
    follower_count: int | None = None
    tags: list[str] = field(default_factory=list)
    urn: str | None = None

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "CompanyProfile":
        headquarter = item.get("headquarter") or {}
        industries = item.get("industry") or []
        return cls(
            url=item.get("url") or "",
            name=item.get("name") or "",
            website_url=item.get("websiteUrl") or None,
            logo_url=item.get("avatar") or None,
            industry=industries[0] if industries else None,
            employee_count=item.get("employeeCount") or None,
            city=headquarter.get("city") or None,
            country=headquarter.get("country") or None,
            description=item.get("description") or None,
            tagline=item.get("tagline") or None,
            follower_count=item.get("followerCount"),
            tags=list(item.get("hashtag") or []),
            urn=item.get("urn"),
        )


class CompanyProfileSource(ABC):
    """Scrapes company profiles by LinkedIn URL."""

    @abstractmethod
    async def scrape_profiles(self, linkedin_urls: list[str]) -> list[CompanyProfile]:
        """Return the profiles that could be scraped, in any order."""

    async def close(self) -> None:
        pass
