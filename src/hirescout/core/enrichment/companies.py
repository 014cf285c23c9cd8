"""
Company profile enrichment for newly discovered companies.

Scrapes LinkedIn company pages in batches and fills empty company fields
(domain, website, logo, industry, size, location, description).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable
from urllib.parse import urlsplit, urlunsplit

from hirescout.core.clients.base import CompanyProfile, CompanyProfileSource
from hirescout.core.errors import ExternalAPIError
from hirescout.core.fetch.retries import RetryConfig, retry_async
from hirescout.core.logging import get_logger
from hirescout.persistence.repo import CompanyRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger("enrichment.companies")

MAX_BATCH_SIZE = 50

_SLUG_PATTERN = re.compile(r"linkedin\.com/company/([^/?#]+)", re.IGNORECASE)

_SIZE_BUCKETS = [
    (10, "1-10 employees"),
    (50, "11-50 employees"),
    (200, "51-200 employees"),
    (500, "201-500 employees"),
    (1000, "501-1000 employees"),
    (5000, "1001-5000 employees"),
    (10000, "5001-10000 employees"),
]


class EmptyScrapeError(ExternalAPIError):
    """The scraper returned no usable profiles for a non-empty batch."""


@dataclass
class CompanyToEnrich:
    company_id: str
    name: str
    linkedin_url: str


@dataclass
class ProfileEnrichmentResult:
    enriched: list[str] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def normalize_linkedin_url(url: str) -> str:
    """Lower-case, www host, no query and no trailing slash."""
    parts = urlsplit(url.strip())
    if not parts.netloc:
        return url.split("?")[0].rstrip("/").lower()
    cleaned = urlunsplit((parts.scheme or "https", "www.linkedin.com", parts.path, "", ""))
    return cleaned.rstrip("/").lower()


def company_slug(url: str) -> str | None:
    match = _SLUG_PATTERN.search(url)
    return match.group(1).lower() if match else None


def extract_domain(website_url: str | None) -> str | None:
    if not website_url:
        return None
    if not website_url.startswith("http"):
        website_url = f"https://{website_url}"
    host = urlsplit(website_url).hostname or ""
    host = host.removeprefix("www.")
    return host or None


def format_employee_size(count: int | None) -> str | None:
    if not count:
        return None
    for upper, label in _SIZE_BUCKETS:
        if count <= upper:
            return label
    return "10000+ employees"


def profile_to_fields(profile: CompanyProfile) -> dict[str, object]:
    location = ", ".join(part for part in (profile.city, profile.country) if part) or None
    return {
        "domain": extract_domain(profile.website_url),
        "website_url": profile.website_url,
        "logo_url": profile.logo_url,
        "industry": profile.industry,
        "size": format_employee_size(profile.employee_count),
        "location": location,
        "description": profile.description or profile.tagline,
    }


class CompanyProfileEnricher:
    """Fills company rows from scraped LinkedIn profiles."""

    def __init__(
        self,
        source: CompanyProfileSource,
        retry: RetryConfig | None = None,
        batch_size: int = MAX_BATCH_SIZE,
    ):
        self.source = source
        self.retry = retry or RetryConfig(max_attempts=2, wait=5.0)
        self.batch_size = batch_size

    async def _scrape(self, urls: list[str]) -> list[CompanyProfile]:
        profiles = await self.source.scrape_profiles(urls)
        valid = [p for p in profiles if p.name and p.url]
        if urls and not valid:
            raise EmptyScrapeError(f"Scraper returned no valid company data for {len(urls)} URLs")
        return valid

    async def enrich(
        self,
        session: AsyncSession,
        companies: Iterable[CompanyToEnrich],
    ) -> ProfileEnrichmentResult:
        """Scrape and apply profiles for ``companies``.

        Batch failures are logged and reported in the result, never raised.
        """
        result = ProfileEnrichmentResult()
        pending = [c for c in companies if c.linkedin_url]
        repo = CompanyRepository(session)

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            urls = [c.linkedin_url for c in batch]

            try:
                profiles = await retry_async(self._scrape, urls, config=self.retry)
            except ExternalAPIError as e:
                logger.warning(f"Company profile batch of {len(batch)} failed: {e}")
                result.errors.append(str(e))
                result.unmatched.extend(c.company_id for c in batch)
                continue

            by_url = {normalize_linkedin_url(p.url): p for p in profiles}
            by_slug = {company_slug(p.url): p for p in profiles if company_slug(p.url)}

            for company in batch:
                profile = by_url.get(normalize_linkedin_url(company.linkedin_url))
                if profile is None:
                    profile = by_slug.get(company_slug(company.linkedin_url))
                if profile is None:
                    result.unmatched.append(company.company_id)
                    continue

                changed = await repo.apply_profile(company.company_id, profile_to_fields(profile))
                logger.debug(f"{company.name}: filled {', '.join(changed) or 'nothing'}")
                result.enriched.append(company.company_id)

        if pending:
            logger.info(
                f"Company profiles: {len(result.enriched)} enriched, "
                f"{len(result.unmatched)} unmatched of {len(pending)}"
            )
        return result
