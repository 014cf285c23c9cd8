"""Configuration loading and validation."""

from .models import (
    # Enums
    RunStatus,
    LeadStatus,
    CreditType,
    ACTIVE_RUN_STATUSES,
    # Config models
    ScraperConfig,
    AppConfig,
    DatabaseConfig,
    LoggingConfig,
    OrchestratorConfig,
    EnrichmentConfig,
    CreditsConfig,
    ApifyConfig,
    ApolloConfig,
    ApiConfig,
)
from .loader import ConfigError, load_app_config

__all__ = [
    # Enums
    "RunStatus",
    "LeadStatus",
    "CreditType",
    "ACTIVE_RUN_STATUSES",
    # Config models
    "ScraperConfig",
    "AppConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "EnrichmentConfig",
    "CreditsConfig",
    "ApifyConfig",
    "ApolloConfig",
    "ApiConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
]
