"""
Apollo contact search and bulk enrichment client.

Search pages through ``/mixed_people/api_search`` (no emails, no credits);
bulk match reveals contact details for up to 10 people per request.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from hirescout.core.config.models import ApolloConfig, EnrichmentConfig
from hirescout.core.errors import ExternalAPIError, ValidationError
from hirescout.core.logging import get_logger

from .base import ContactProvider, PeoplePage, PersonRecord
from .http import JsonApiClient

logger = get_logger("clients.apollo")

# UI seniority buckets expanded into the provider's vocabulary
SENIORITY_MAP: dict[str, list[str]] = {
    "c_suite": ["c_suite", "founder", "owner"],
    "vp": ["vp"],
    "director": ["director"],
    "manager": ["manager"],
    "senior": ["senior"],
    "entry": ["entry", "intern"],
}


def expand_seniorities(seniorities: list[str] | None) -> list[str]:
    expanded: list[str] = []
    for seniority in seniorities or []:
        for value in SENIORITY_MAP.get(seniority, [seniority]):
            if value not in expanded:
                expanded.append(value)
    return expanded


def pick_phone(phone_numbers: list[dict[str, Any]] | None) -> str | None:
    """Verified sanitized number, else first sanitized number, else first raw number."""
    phone_numbers = phone_numbers or []
    for phone in phone_numbers:
        if phone.get("status") == "verified" and phone.get("sanitized_number"):
            return phone["sanitized_number"]
    for phone in phone_numbers:
        if phone.get("sanitized_number"):
            return phone["sanitized_number"]
    for phone in phone_numbers:
        if phone.get("raw_number"):
            return phone["raw_number"]
    return None


def person_from_payload(person: dict[str, Any]) -> PersonRecord | None:
    """Map a provider person object onto a PersonRecord."""
    if not person or not person.get("id"):
        return None

    location = ", ".join(
        part for part in (person.get("city"), person.get("state"), person.get("country")) if part
    )

    return PersonRecord(
        apollo_id=str(person["id"]),
        first_name=person.get("first_name") or None,
        last_name=person.get("last_name") or person.get("last_name_obfuscated") or None,
        job_title=person.get("title") or None,
        email=person.get("email") or None,
        email_status=person.get("email_status") or None,
        phone=pick_phone(person.get("phone_numbers")) or person.get("sanitized_phone") or None,
        linkedin_url=person.get("linkedin_url") or None,
        location=location or None,
        seniority=person.get("seniority") or None,
        departments=list(person.get("departments") or []),
    )


class ApolloClient(ContactProvider):
    """ContactProvider backed by the Apollo REST API."""

    def __init__(
        self,
        config: ApolloConfig,
        enrichment: EnrichmentConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not config.api_key:
            raise ValidationError("APOLLO_API_KEY is not configured")
        self.settings = enrichment or EnrichmentConfig()
        self.http = JsonApiClient(
            config.base_url,
            timeout=config.timeout_seconds,
            headers={"X-Api-Key": config.api_key},
            transport=transport,
        )

    async def search_people(
        self,
        domain: str,
        titles: list[str] | None = None,
        seniorities: list[str] | None = None,
        fetch_all: bool = False,
    ) -> PeoplePage:
        per_page = self.settings.per_page
        max_pages = None if fetch_all else self.settings.max_pages

        body: dict[str, Any] = {"q_organization_domains_list": [domain]}
        if titles:
            body["person_titles"] = titles
        if seniorities:
            body["person_seniorities"] = expand_seniorities(seniorities)

        people: list[PersonRecord] = []
        total_entries = 0
        page = 1

        while max_pages is None or page <= max_pages:
            data = await self.http.post_json(
                "/mixed_people/api_search",
                {**body, "per_page": per_page, "page": page},
            )
            if page == 1:
                pagination = data.get("pagination") or {}
                total_entries = int(pagination.get("total_entries") or data.get("total_entries") or 0)
                logger.info(f"{domain}: {total_entries} employees available")

            page_people = [p for p in map(person_from_payload, data.get("people") or []) if p]
            people.extend(page_people)

            total_pages = -(-total_entries // per_page)
            if page >= total_pages or not page_people:
                break
            page += 1
            await asyncio.sleep(self.settings.page_delay_ms / 1000)

        logger.info(f"{domain}: retrieved {len(people)} of {total_entries} employees")
        return PeoplePage(people=people, total_entries=total_entries)

    async def bulk_match(
        self,
        apollo_ids: list[str],
        reveal_phone_number: bool = False,
        webhook_url: str | None = None,
    ) -> list[PersonRecord]:
        if not apollo_ids:
            return []
        if reveal_phone_number and not webhook_url:
            raise ValidationError("A webhook URL is required to reveal phone numbers")

        size = self.settings.bulk_batch_size
        batches = [apollo_ids[i:i + size] for i in range(0, len(apollo_ids), size)]

        async def match_batch(batch: list[str], number: int) -> list[PersonRecord]:
            body: dict[str, Any] = {
                "details": [{"id": apollo_id} for apollo_id in batch],
                "reveal_personal_emails": False,
            }
            if reveal_phone_number:
                body["reveal_phone_number"] = True
                body["webhook_url"] = webhook_url
            try:
                data = await self.http.post_json("/people/bulk_match", body)
            except ExternalAPIError as e:
                # A failed batch keeps the cached values for its people
                logger.warning(f"Bulk match batch {number}/{len(batches)} failed: {e}")
                return []
            return [p for p in map(person_from_payload, data.get("matches") or []) if p]

        enriched: list[PersonRecord] = []
        step = self.settings.bulk_concurrency
        for start in range(0, len(batches), step):
            results = await asyncio.gather(
                *(
                    match_batch(batch, start + offset + 1)
                    for offset, batch in enumerate(batches[start:start + step])
                )
            )
            for batch_result in results:
                enriched.extend(batch_result)

        logger.info(f"Bulk match enriched {len(enriched)} of {len(apollo_ids)} people")
        return enriched

    async def close(self) -> None:
        await self.http.close()
