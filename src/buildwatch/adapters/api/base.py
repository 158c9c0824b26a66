"""
Shared HTTP utilities for build server clients.

The helper wraps a long-lived :class:`httpx.AsyncClient` with retry logic for
transient transport failures and converts every failure into :class:`APIError`
so the stream layer only has one error type to surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Mapping, MutableMapping, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ...core.errors import APIError
from ...core.logging import get_logger

DEFAULT_TIMEOUT = 15.0
DEFAULT_ATTEMPTS = 3


@dataclass(slots=True)
class BaseAPIClient:
    """
    Base asynchronous HTTP client with retry support.

    Parameters
    ----------
    base_url:
        Root URL for the upstream service.
    timeout:
        Request timeout in seconds.
    default_headers:
        Headers automatically attached to every request.
    auth:
        Optional ``httpx`` authentication flow.
    max_attempts:
        Attempts per request before a transport failure is reported.
    backoff:
        Multiplier for the exponential wait between attempts; ``0`` disables waiting.
    transport:
        Optional ``httpx`` transport, mainly for :class:`httpx.MockTransport` in tests.
    """

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    default_headers: MutableMapping[str, str] = field(default_factory=dict)
    auth: Optional[httpx.Auth] = field(default=None, repr=False)
    max_attempts: int = DEFAULT_ATTEMPTS
    backoff: float = 1.0
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    logger: LoggerAdapter = field(init=False, repr=False)
    _client: Optional[httpx.AsyncClient] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"base_url": self.base_url},
        )

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=dict(self.default_headers),
                auth=self.auth,
                transport=self.transport,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the pooled connection; safe to call more than once."""

        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise APIError(f"HTTP {exc.response.status_code} error for {exc.request.method} {exc.request.url}: {exc.response.text}") from exc

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self.logger.debug("HTTP request", extra={"method": method, "url": url, "params": kwargs.get("params")})

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=self.backoff, min=0, max=8),
            stop=stop_after_attempt(max(1, self.max_attempts)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._ensure_client().request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            self.logger.error("HTTP request failed", extra={"method": method, "url": url, "error": str(exc)})
            raise APIError(f"HTTP error while calling {method} {url}: {exc}") from exc

        self._raise_for_status(response)
        self.logger.debug("HTTP response", extra={"status_code": response.status_code, "url": str(response.url)})
        return response

    async def _get_json(self, url: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = await self._request("GET", url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(f"Failed to decode JSON from {response.url}: {exc}") from exc
