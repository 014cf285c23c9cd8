"""
Error taxonomy for HireScout.

Precondition errors (ValidationError, NotFoundError, InsufficientCreditsError)
reject a request before any work is scheduled. External errors are captured
per unit (one scraper, one company) and reported in the results instead of
aborting the batch.
"""

from __future__ import annotations


class HireScoutError(Exception):
    """Base exception for all HireScout errors."""


class ValidationError(HireScoutError):
    """Request is malformed or cannot be satisfied by the stored data."""


class NotFoundError(HireScoutError):
    """Referenced search, run, organization or scraper index does not exist."""


class InsufficientCreditsError(HireScoutError):
    """Organization has no credits left for the requested operation."""

    def __init__(self, message: str, credits_used: int | None = None, credits_limit: int | None = None):
        super().__init__(message)
        self.credits_used = credits_used
        self.credits_limit = credits_limit


class ExternalAPIError(HireScoutError):
    """An external collaborator answered with an error."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class ExternalTimeoutError(ExternalAPIError):
    """An external collaborator did not answer in time."""
