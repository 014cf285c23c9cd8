"""
SQLAlchemy ORM models for HireScout.

Defines the complete database schema including:
- Organizations and their credit counters/audit trail
- Searches and their per-scraper run records
- Companies, Jobs, Employees and Leads discovered for an org
- The shared enrichment cache (GlobalCompany / GlobalEmployee)
- EnrichmentTransactions summarizing enrichment batches
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
        list[Any]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


# =============================================================================
# Organization & Credits
# =============================================================================


class Organization(Base, TimestampMixin):
    """Tenant owning searches, companies and leads."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Search-run credits
    credits_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    credits_limit: Mapped[int] = mapped_column(Integer, default=30, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization(id='{self.id}', name='{self.name}')>"


class CreditUsage(Base, TimestampMixin):
    """Per-org enrichment credit pool with a rolling billing cycle."""

    __tablename__ = "credit_usage"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    enrichment_limit: Mapped[int] = mapped_column(Integer, default=200, nullable=False)
    enrichment_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    billing_cycle_start: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    billing_cycle_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    @property
    def enrichment_remaining(self) -> int:
        return max(0, self.enrichment_limit - self.enrichment_used)


class CreditHistory(Base):
    """Immutable audit row, one per top-level credit-consuming invocation."""

    __tablename__ = "credit_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    credit_type: Mapped[str] = mapped_column(String(50), nullable=False)  # search, enrichment
    transaction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)


# =============================================================================
# Search & Runs
# =============================================================================


class Search(Base, TimestampMixin):
    """A saved job search made of one or more scraper configs."""

    __tablename__ = "searches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # {"scrapers": [{"jobTitle", "location", "experienceLevel"}], "jobTitles", "locations"}
    filters: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    max_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False)
    results_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    jobs_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    runs: Mapped[list["ScraperRun"]] = relationship(
        "ScraperRun",
        back_populates="search",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Search(id='{self.id}', name='{self.name}')>"


class ScraperRun(Base):
    """Execution record of one scraper config within a search run."""

    __tablename__ = "scraper_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    search_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("searches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    org_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    scraper_index: Mapped[int] = mapped_column(Integer, nullable=False)
    scraper_config: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    # queued, running, completed, failed, cancelled
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="queued", index=True)

    # Statistics
    jobs_found: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    companies_found: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    new_companies: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    leads_created: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timing
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    search: Mapped["Search"] = relationship("Search", back_populates="runs")

    __table_args__ = (
        Index("ix_scraper_run_search_status", "search_id", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed", "cancelled")

    def __repr__(self) -> str:
        return f"<ScraperRun(id='{self.id}', index={self.scraper_index}, status='{self.status}')>"


# =============================================================================
# Companies & Jobs
# =============================================================================


class Company(Base, TimestampMixin):
    """Hiring company discovered by a search."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    search_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("searches.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Dedup is (org_id, search_id, lower(name)); not enforced by the database
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    linkedin_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    size: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_enriched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    enriched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    jobs: Mapped[list["Job"]] = relationship("Job", back_populates="company")

    __table_args__ = (
        Index("ix_company_org_search", "org_id", "search_id"),
    )

    def __repr__(self) -> str:
        return f"<Company(id='{self.id}', name='{self.name}')>"


class Job(Base, TimestampMixin):
    """Job posting that surfaced a company."""

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(String(36), nullable=False)
    company_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    search_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    job_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    salary: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contract_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    experience_level: Mapped[str | None] = mapped_column(String(100), nullable=True)
    work_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sector: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    posted_time: Mapped[str | None] = mapped_column(String(100), nullable=True)
    published_at: Mapped[str | None] = mapped_column(String(100), nullable=True)
    applications_count: Mapped[str | None] = mapped_column(String(100), nullable=True)
    apply_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    poster_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    poster_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    company: Mapped["Company | None"] = relationship("Company", back_populates="jobs")

    __table_args__ = (
        UniqueConstraint("org_id", "external_id", name="uq_job_org_external"),
    )

    def __repr__(self) -> str:
        return f"<Job(id='{self.id}', external_id='{self.external_id}')>"


# =============================================================================
# Employees & Leads
# =============================================================================


class Employee(Base, TimestampMixin):
    """Contact working at a company, scoped to an org."""

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(String(36), nullable=False)
    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    apollo_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    seniority: Mapped[str | None] = mapped_column(String(100), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_shortlisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("org_id", "company_id", "apollo_id", name="uq_employee_org_company_apollo"),
        Index("ix_employee_org_company", "org_id", "company_id"),
    )


class Lead(Base, TimestampMixin):
    """Sales lead derived from an employee or a job poster."""

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    company_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
    )
    employee_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
    )
    search_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # new, contacted, qualified, rejected
    status: Mapped[str] = mapped_column(String(50), default="new", nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("org_id", "employee_id", name="uq_lead_org_employee"),
        UniqueConstraint("org_id", "linkedin_url", name="uq_lead_org_linkedin"),
    )


# =============================================================================
# Shared Enrichment Cache
# =============================================================================


class GlobalCompany(Base, TimestampMixin):
    """Cross-org company record keyed by lower-case domain."""

    __tablename__ = "global_companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    employees_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    employees_last_fetched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    stale_after_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)


class GlobalEmployee(Base, TimestampMixin):
    """Cross-org contact record keyed by external contact id."""

    __tablename__ = "global_employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    apollo_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    global_company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("global_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    seniority: Mapped[str | None] = mapped_column(String(100), nullable=True)
    departments: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)

    last_updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class EnrichmentTransaction(Base):
    """Audit row summarizing one enrichment batch."""

    __tablename__ = "enrichment_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    org_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    company_ids: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)

    credits_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    employee_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cache_hit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    apollo_calls_made: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
