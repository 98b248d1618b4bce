"""
HTTP transport shared by the REST-backed market data providers.

Wraps an ``httpx.AsyncClient`` with exponential-backoff retries and maps
transport failures, status codes and undecodable bodies onto the provider
error taxonomy.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from pricepulse import __version__
from pricepulse.core.exceptions import (
    MalformedResponseError,
    ProviderUnavailableError,
    RateLimitError,
    RequestRejectedError,
)
from pricepulse.core.patterns import ExponentialBackoffRetry, RetryConfig

from .base import MarketDataProvider


class HttpMarketDataProvider(MarketDataProvider):
    """Base class for providers reached over HTTP."""

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(name)
        if not base_url:
            raise ValueError("base_url cannot be empty")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = RetryConfig(max_attempts=max_retries + 1, base_delay=backoff_factor)
        self._headers = {"User-Agent": f"pricepulse/{__version__}", **(headers or {})}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client and cleanup resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Execute a request with retries and return the decoded JSON body."""
        retry = ExponentialBackoffRetry(self.retry_config)
        return await retry.execute(self._request_once, method, url, **kwargs)

    async def _request_once(self, method: str, url: str, **kwargs: Any) -> Any:
        client = self._ensure_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                f"Request to {self.name} timed out", self.name, details={"url": url}
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(
                f"Could not reach {self.name}: {exc}", self.name, details={"url": url}
            ) from exc

        self._raise_for_status(response, url)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"{self.name} returned a body that is not valid JSON", self.name, details={"url": url}
            ) from exc

    def _raise_for_status(self, response: httpx.Response, url: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        message = _error_message(response) or f"HTTP {status}"
        logger.bind(source=self.name).warning(f"{self.name} responded {status} for {url}: {message}")
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"{self.name} rate limit exceeded: {message}",
                self.name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if 400 <= status < 500:
            raise RequestRejectedError(f"{self.name} rejected request: {message}", self.name, status)
        raise ProviderUnavailableError(f"{self.name} error: {message}", self.name, status_code=status)


def _error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None
    if isinstance(payload, dict):
        for key in ("error", "msg", "message"):
            value = payload.get(key)
            if value:
                return str(value)
    return None
