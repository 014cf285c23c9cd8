"""Fetch utilities - retries."""

from .retries import RetryConfig, retry_async

__all__ = [
    "RetryConfig",
    "retry_async",
]
