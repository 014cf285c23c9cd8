"""CLI command modules."""

from . import db, enrich, org, search

__all__ = [
    "db",
    "enrich",
    "org",
    "search",
]
