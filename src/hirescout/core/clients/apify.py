"""
Apify-backed job source and company profile scraper.

Both actors are started through the synchronous run endpoint, which blocks
until the actor finishes and returns the dataset items in the response.
"""

from __future__ import annotations

from typing import Any

import httpx

from hirescout.core.config.models import ApifyConfig
from hirescout.core.errors import ExternalAPIError, ValidationError
from hirescout.core.logging import get_logger

from .base import CompanyProfile, CompanyProfileSource, JobPosting, JobQuery, JobSource
from .http import JsonApiClient

logger = get_logger("clients.apify")

PROXY_SETTINGS = {
    "useApifyProxy": True,
    "apifyProxyGroups": ["RESIDENTIAL"],
}


class ApifyActorClient(JsonApiClient):
    """Runs Apify actors and returns their dataset items."""

    def __init__(self, config: ApifyConfig, transport: httpx.AsyncBaseTransport | None = None):
        if not config.api_token:
            raise ValidationError("APIFY_API_TOKEN is not configured")
        super().__init__(config.base_url, timeout=config.timeout_seconds, transport=transport)
        self.config = config

    async def run_actor(self, actor_id: str, actor_input: dict[str, Any]) -> list[dict[str, Any]]:
        """Run an actor to completion and return its dataset items."""
        logger.debug(f"Running actor {actor_id}")
        items = await self.post_json(
            f"/acts/{actor_id}/run-sync-get-dataset-items",
            actor_input,
            params={
                "token": self.config.api_token,
                "timeout": int(self.config.timeout_seconds),
            },
        )
        if not isinstance(items, list):
            raise ExternalAPIError(f"Unexpected dataset payload from actor {actor_id}")
        logger.debug(f"Actor {actor_id} returned {len(items)} items")
        return items


class ApifyJobSource(JobSource):
    """LinkedIn jobs search through an Apify actor."""

    def __init__(self, config: ApifyConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.client = ApifyActorClient(config, transport=transport)
        self.actor_id = config.jobs_actor_id

    async def search_jobs(self, query: JobQuery) -> list[JobPosting]:
        actor_input: dict[str, Any] = {
            "title": query.title,
            "rows": query.rows,
            "proxy": PROXY_SETTINGS,
        }
        if query.location:
            actor_input["location"] = query.location
        if query.experience_level:
            actor_input["experienceLevel"] = query.experience_level

        logger.info(f"Searching jobs: '{query.title}' in '{query.location or 'anywhere'}'")
        items = await self.client.run_actor(self.actor_id, actor_input)
        return [JobPosting.from_dict(item) for item in items if isinstance(item, dict)]

    async def close(self) -> None:
        await self.client.close()


class ApifyCompanyProfileSource(CompanyProfileSource):
    """LinkedIn company profile scraper through an Apify actor."""

    def __init__(self, config: ApifyConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.client = ApifyActorClient(config, transport=transport)
        self.actor_id = config.company_actor_id

    async def scrape_profiles(self, linkedin_urls: list[str]) -> list[CompanyProfile]:
        if not linkedin_urls:
            return []
        items = await self.client.run_actor(
            self.actor_id,
            {
                "action": "get-companies",
                "keywords": linkedin_urls,
                "isUrl": True,
                "isName": False,
                "limit": len(linkedin_urls),
            },
        )
        return [CompanyProfile.from_dict(item) for item in items if isinstance(item, dict)]

    async def close(self) -> None:
        await self.client.close()
