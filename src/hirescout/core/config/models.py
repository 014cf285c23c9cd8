"""
Pydantic configuration models for HireScout.

These models provide type-safe configuration with validation for:
- Application settings (database, logging)
- Run orchestration budgets and staleness
- Enrichment pacing and cache freshness
- External collaborator credentials
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class RunStatus(str, Enum):
    """Lifecycle states of a ScraperRun."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_RUN_STATUSES = (RunStatus.QUEUED.value, RunStatus.RUNNING.value)


class LeadStatus(str, Enum):
    """Sales status of a lead."""

    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    REJECTED = "rejected"


class CreditType(str, Enum):
    """Credit pools an organization draws from."""

    SEARCH = "search"
    ENRICHMENT = "enrichment"


# =============================================================================
# Scraper Config
# =============================================================================


class ScraperConfig(BaseModel):
    """One (title, location, experience-level) search unit."""

    job_title: str = Field(..., alias="jobTitle", min_length=1)
    location: str | None = Field(default=None)
    experience_level: str | None = Field(default=None, alias="experienceLevel")

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict[str, str | None]:
        return self.model_dump(by_alias=True)


# =============================================================================
# Application Config
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/hirescout.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Log SQL statements",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size (ignored for SQLite)",
    )


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR",
    )
    file: Path | None = Field(
        default=Path("logs/hirescout.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


class OrchestratorConfig(BaseModel):
    """Search run fan-out settings."""

    run_budget_seconds: int = Field(
        default=300,
        ge=1,
        description="Overall time budget of one run invocation; scrapers still running at the deadline are failed",
    )
    scraper_timeout_seconds: int = Field(
        default=240,
        ge=1,
        description="Hard timeout of a single scraper's job-source call",
    )
    stale_after_minutes: int = Field(
        default=10,
        ge=1,
        description="Queued/running runs older than this are reaped as failed",
    )
    default_max_rows: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Job postings requested per scraper when the search sets none",
    )

    @model_validator(mode="after")
    def _timeout_within_budget(self) -> "OrchestratorConfig":
        if self.scraper_timeout_seconds >= self.run_budget_seconds:
            raise ValueError("scraper_timeout_seconds must be smaller than run_budget_seconds")
        return self


class EnrichmentConfig(BaseModel):
    """Contact enrichment pacing and cache settings."""

    cache_stale_days: int = Field(default=30, ge=0)
    max_pages: int = Field(
        default=10,
        ge=1,
        description="Contact search page cap (ignored when fetching all)",
    )
    per_page: int = Field(default=100, ge=1, le=100)
    page_delay_ms: int = Field(default=200, ge=0)
    company_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Pause between companies to respect provider rate limits",
    )
    company_concurrency: int = Field(default=3, ge=1, le=20)
    bulk_batch_size: int = Field(default=10, ge=1, le=10)
    bulk_concurrency: int = Field(default=5, ge=1)
    webhook_url: str | None = Field(
        default=None,
        description="Public URL receiving asynchronous phone deliveries",
    )


class CreditsConfig(BaseModel):
    """Default credit allowances."""

    default_search_limit: int = Field(default=30, ge=0)
    default_enrichment_limit: int = Field(default=200, ge=0)
    billing_cycle_days: int = Field(default=30, ge=1)


class ApifyConfig(BaseModel):
    """Job-source and company-profile scraper credentials."""

    api_token: str | None = Field(default_factory=lambda: os.environ.get("APIFY_API_TOKEN"))
    base_url: str = Field(default="https://api.apify.com/v2")
    jobs_actor_id: str = Field(default="BHzefUZlZRKWxkTck")
    company_actor_id: str = Field(default="od6RadQV98FOARtrp")
    timeout_seconds: float = Field(default=230.0, gt=0)


class ApolloConfig(BaseModel):
    """Contact-enrichment provider credentials."""

    api_key: str | None = Field(default_factory=lambda: os.environ.get("APOLLO_API_KEY"))
    base_url: str = Field(default="https://api.apollo.io/api/v1")
    timeout_seconds: float = Field(default=30.0, gt=0)


class ApiConfig(BaseModel):
    """HTTP server settings."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)


class AppConfig(BaseModel):
    """Root application configuration.

    Loaded from configs/app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    credits: CreditsConfig = Field(default_factory=CreditsConfig)
    apify: ApifyConfig = Field(default_factory=ApifyConfig)
    apollo: ApolloConfig = Field(default_factory=ApolloConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
