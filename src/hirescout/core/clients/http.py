"""
Shared JSON-over-HTTP client built on httpx.

Provides:
- Persistent connection pooling per collaborator
- Uniform mapping of transport failures onto the error taxonomy
- Rate limit detection
"""

from __future__ import annotations

from typing import Any

import httpx

from hirescout.core.errors import ExternalAPIError, ExternalTimeoutError
from hirescout.core.logging import get_logger

logger = get_logger("clients.http")


class RateLimitError(ExternalAPIError):
    """Rate limit hit (429)."""

    def __init__(self, message: str, url: str | None = None, retry_after: float | None = None):
        super().__init__(message, url=url, status_code=429)
        self.retry_after = retry_after


class JsonApiClient:
    """Thin async JSON client for one external API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL every path is joined onto
            timeout: Request timeout in seconds
            headers: Default headers for all requests
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers = {
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
            **(headers or {}),
        }
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=self.default_headers,
                transport=self._transport,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                ),
            )
        return self._client

    def _check_rate_limit(self, response: httpx.Response) -> None:
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            retry_seconds = None
            if retry_after:
                try:
                    retry_seconds = float(retry_after)
                except ValueError:
                    pass
            raise RateLimitError(
                "Rate limit exceeded",
                url=str(response.url),
                retry_after=retry_seconds,
            )

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        json_data: Any = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            ExternalTimeoutError: If the request timed out
            RateLimitError: On HTTP 429
            ExternalAPIError: On any other transport error or non-2xx status
        """
        client = await self._ensure_client()
        url = f"{self.base_url}{path}"

        try:
            response = await client.request(
                method,
                path,
                json=json_data,
                params=params,
                timeout=httpx.Timeout(timeout) if timeout else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            raise ExternalTimeoutError(f"Request timed out: {e}", url=url, cause=e) from e
        except httpx.TransportError as e:
            raise ExternalAPIError(f"Transport error: {e}", url=url, cause=e) from e

        self._check_rate_limit(response)

        if not response.is_success:
            body = response.text[:500]
            logger.error(f"{method} {path} failed with {response.status_code}: {body}")
            raise ExternalAPIError(
                f"API error: {response.status_code} - {body}",
                url=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExternalAPIError(f"Invalid JSON from {path}", url=url, cause=e) from e

    async def post_json(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self.request_json("POST", path, json_data=json_data, **kwargs)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
