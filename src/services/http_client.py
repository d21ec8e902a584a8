"""Async HTTP client wrapper with configurable error handling and retry logic.

The record client talks to a single JSON backend, so this wrapper binds a base
URL and default headers once and exposes verb helpers that take paths:

    client = AsyncHttpClient(
        base_url="https://records.example.com/api",
        headers={"Authorization": "Bearer secret"},
        retry_config=RetryConfig(max_attempts=3),
    )
    response = await client.post("/tables/task_c/records/query", json={...})

Retries are opt-in and meant for idempotent reads; a fresh ``httpx.AsyncClient``
is opened per call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

import httpx

from config import settings

logger = logging.getLogger(__name__)


class ErrorStrategy(Enum):
    """Strategy for handling HTTP errors.

    - RAISE: Re-raise exceptions (default)
    - LOG_AND_RETURN_NONE: Log error and return None
    """

    RAISE = "raise"
    LOG_AND_RETURN_NONE = "log_and_return_none"


@dataclass
class ErrorConfig:
    """Configuration for error handling behavior.

    Args:
        strategy: How to handle HTTP errors
        log_level: Logging level for errors (default: ERROR)
        include_response_body: Whether to log response body on errors
    """

    strategy: ErrorStrategy = ErrorStrategy.RAISE
    log_level: int = logging.ERROR
    include_response_body: bool = False


@dataclass
class RetryConfig:
    """Configuration for retry logic with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including initial attempt)
        retry_status_codes: HTTP status codes that should trigger a retry
        backoff_factor: Multiplier for exponential backoff (delay = backoff_factor * 2^attempt)
        max_backoff: Maximum backoff delay in seconds
        retry_exceptions: Exception types that should trigger a retry
    """

    max_attempts: int = 3
    retry_status_codes: set[int] = field(default_factory=lambda: {500, 502, 503, 504})
    backoff_factor: float = 2.0
    max_backoff: float = 60.0
    retry_exceptions: tuple[type[Exception], ...] = (
        httpx.ConnectError,
        httpx.ReadTimeout,
        httpx.PoolTimeout,
    )

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay after the given zero-based attempt."""
        return min(self.backoff_factor * (2**attempt), self.max_backoff)


class AsyncHttpClient:
    """Async JSON client bound to one base URL.

    Args:
        base_url: Prefix joined to every request path
        headers: Headers sent with every request (merged under per-call headers)
        timeout: Request timeout in seconds (default: settings.http.timeout)
        connect_timeout: Connection timeout in seconds (default: settings.http.connect_timeout)
        error_config: Error handling configuration
        retry_config: Retry configuration (None = no retries)
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        error_config: ErrorConfig | None = None,
        retry_config: RetryConfig | None = None,
    ):
        """Initialize the async HTTP client."""
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.timeout = timeout if timeout is not None else settings.http.timeout
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.http.connect_timeout
        )
        self.error_config = error_config or ErrorConfig()
        self.retry_config = retry_config

    def url_for(self, path: str) -> str:
        """Join a request path onto the base URL."""
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(self, path: str, **kwargs) -> httpx.Response | None:
        """Perform an async GET request."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> httpx.Response | None:
        """Perform an async POST request."""
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> httpx.Response | None:
        """Perform an async PATCH request."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> httpx.Response | None:
        """Perform an async DELETE request.

        httpx's ``delete`` helper takes no body, so this goes through
        ``request`` and accepts ``json=`` like the other verbs.
        """
        return await self.request("DELETE", path, **kwargs)

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response | None:
        """Execute an HTTP request with error handling and optional retries.

        Returns:
            Response object, or None if error_strategy is LOG_AND_RETURN_NONE

        Raises:
            httpx.HTTPError: If error_strategy is RAISE and request fails
        """
        url = self.url_for(path)
        headers = {**self.headers, **kwargs.pop("headers", {})}
        if self.retry_config is None:
            try:
                return await self._send(method, url, headers, **kwargs)
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                return self._handle_error(e, method, url)
        return await self._send_with_retry(method, url, headers, **kwargs)

    async def _send(
        self, method: str, url: str, headers: dict[str, str], **kwargs
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout)
        ) as client:
            response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response

    async def _send_with_retry(
        self, method: str, url: str, headers: dict[str, str], **kwargs
    ) -> httpx.Response | None:
        """Execute an HTTP request with retry logic and exponential backoff."""
        assert self.retry_config is not None
        last_exception: Exception | None = None

        for attempt in range(self.retry_config.max_attempts):
            try:
                return await self._send(method, url, headers, **kwargs)
            except httpx.HTTPStatusError as e:
                last_exception = e
                if e.response.status_code not in self.retry_config.retry_status_codes:
                    return self._handle_error(e, method, url)
                reason = f"status {e.response.status_code}"
            except self.retry_config.retry_exceptions as e:
                last_exception = e
                reason = type(e).__name__
            except httpx.RequestError as e:
                last_exception = e
                break

            if attempt + 1 >= self.retry_config.max_attempts:
                break
            delay = self.retry_config.delay_for(attempt)
            logger.warning(
                "HTTP %s %s failed with %s, retrying in %.1fs (attempt %s/%s)",
                method,
                url,
                reason,
                delay,
                attempt + 1,
                self.retry_config.max_attempts,
            )
            await asyncio.sleep(delay)

        assert last_exception is not None
        return self._handle_error(last_exception, method, url)

    def _handle_error(self, error: Exception, method: str, url: str) -> httpx.Response | None:
        """Handle HTTP errors according to configured strategy."""
        if self.error_config.strategy == ErrorStrategy.RAISE:
            raise error

        error_msg = f"HTTP {method} {url} failed: {error}"
        if isinstance(error, httpx.HTTPStatusError) and self.error_config.include_response_body:
            error_msg += f"\nResponse body: {error.response.text}"
        logger.log(self.error_config.log_level, error_msg)
        return None
