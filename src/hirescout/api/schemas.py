"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hirescout.core.enrichment import EnrichmentRequest


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RunSearchBody(CamelModel):
    scraper_index: int | None = Field(default=None, alias="scraperIndex", ge=0)


class EnrichFilters(CamelModel):
    titles: list[str] = Field(default_factory=list)
    seniorities: list[str] = Field(default_factory=list)


class EnrichCompaniesBody(CamelModel):
    company_ids: list[str] | None = Field(default=None, alias="companyIds")
    filters: EnrichFilters | None = None
    fetch_all: bool = Field(default=False, alias="fetchAll")
    reveal_phone_numbers: bool = Field(default=False, alias="revealPhoneNumbers")
    search_id: str | None = Field(default=None, alias="searchId")

    def to_request(self) -> EnrichmentRequest:
        filters = self.filters or EnrichFilters()
        return EnrichmentRequest(
            company_ids=self.company_ids or None,
            titles=filters.titles or None,
            seniorities=filters.seniorities or None,
            fetch_all=self.fetch_all,
            reveal_phone_numbers=self.reveal_phone_numbers,
            search_id=self.search_id,
        )
