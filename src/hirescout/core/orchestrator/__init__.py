"""Orchestrator - concurrent scraper runs, ingestion and stale run recovery."""

from .executor import ScraperExecutor, ScraperResult
from .ingest import IngestResult, ResultIngester
from .reaper import TIMEOUT_MESSAGE, StaleRunReaper
from .runner import RunScheduler, SearchRunResult, resolve_scraper_configs
from .runs import RunService, run_to_dict

__all__ = [
    "IngestResult",
    "ResultIngester",
    "RunScheduler",
    "RunService",
    "ScraperExecutor",
    "ScraperResult",
    "SearchRunResult",
    "StaleRunReaper",
    "TIMEOUT_MESSAGE",
    "resolve_scraper_configs",
    "run_to_dict",
]
