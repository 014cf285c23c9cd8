"""Enrichment - company profiles, cache-first contacts, leads and phones."""

from .cache import CacheStatus, EmployeeLookup, EnrichmentCacheGateway, is_cache_stale
from .companies import CompanyProfileEnricher, CompanyToEnrich, ProfileEnrichmentResult
from .phones import PhoneWebhookHandler
from .pipeline import (
    CompanyEnrichmentPipeline,
    CompanyEnrichmentResult,
    EnrichmentRequest,
    EnrichmentSummary,
)

__all__ = [
    "CacheStatus",
    "CompanyEnrichmentPipeline",
    "CompanyEnrichmentResult",
    "CompanyProfileEnricher",
    "CompanyToEnrich",
    "EmployeeLookup",
    "EnrichmentCacheGateway",
    "EnrichmentRequest",
    "EnrichmentSummary",
    "PhoneWebhookHandler",
    "ProfileEnrichmentResult",
    "is_cache_stale",
]
