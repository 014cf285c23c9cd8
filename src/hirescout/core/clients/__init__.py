"""External collaborator clients."""

from .base import (
    CompanyProfile,
    CompanyProfileSource,
    ContactProvider,
    JobPosting,
    JobQuery,
    JobSource,
    PeoplePage,
    PersonRecord,
)
from .http import JsonApiClient, RateLimitError

__all__ = [
    "CompanyProfile",
    "CompanyProfileSource",
    "ContactProvider",
    "JobPosting",
    "JobQuery",
    "JobSource",
    "JsonApiClient",
    "PeoplePage",
    "PersonRecord",
    "RateLimitError",
]
