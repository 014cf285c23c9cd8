"""Database persistence layer."""

from .db import dispose_engines_async, get_async_engine, get_async_session, init_db_async
from .models import (
    Base,
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
)
from .repo import (
    CompanyRepository,
    CreditRepository,
    EmployeeRepository,
    EnrichmentCacheRepository,
    JobRepository,
    LeadRepository,
    OrganizationRepository,
    RunRepository,
    SearchRepository,
)

__all__ = [
    "dispose_engines_async",
    "get_async_engine",
    "get_async_session",
    "init_db_async",
    "Base",
    "Company",
    "CreditHistory",
    "CreditUsage",
    "Employee",
    "EnrichmentTransaction",
    "GlobalCompany",
    "GlobalEmployee",
    "Job",
    "Lead",
    "Organization",
    "ScraperRun",
    "Search",
    "CompanyRepository",
    "CreditRepository",
    "EmployeeRepository",
    "EnrichmentCacheRepository",
    "JobRepository",
    "LeadRepository",
    "OrganizationRepository",
    "RunRepository",
    "SearchRepository",
]
