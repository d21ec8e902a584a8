"""Unit tests for the async HTTP client wrapper with error handling and retries."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from config import settings
from services.http_client import AsyncHttpClient, ErrorConfig, ErrorStrategy, RetryConfig

BASE_URL = "http://test.example/api"


def _build_response(
    status_code: int,
    *,
    json_data: object | None = None,
    method: str = "GET",
    url: str = BASE_URL,
) -> httpx.Response:
    """Create a synthetic httpx response with a bound request."""
    request = httpx.Request(method, url)
    return httpx.Response(status_code=status_code, json=json_data, request=request)


def _status_error(status_code: int, method: str = "GET") -> httpx.HTTPStatusError:
    response = _build_response(status_code, json_data={"error": "fail"}, method=method)
    return httpx.HTTPStatusError("error", request=response.request, response=response)


class StubAsyncClient:
    """Async client stub returning configured responses."""

    def __init__(self, responses: list[httpx.Response | Exception] | None = None) -> None:
        """Initialize the stub with a sequence of responses or exceptions.

        Args:
            responses: List of responses or exceptions to return in order.
                      Each call consumes one item from the list.
        """
        self.responses = responses or []
        self.call_count = 0
        self.calls: list[tuple[str, str, dict]] = []

    async def __aenter__(self) -> "StubAsyncClient":
        """Enter the async context manager."""
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Exit the async context manager."""
        pass

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Return the next configured response or raise the next configured error."""
        self.calls.append((method, url, kwargs))
        if self.call_count >= len(self.responses):
            return _build_response(200, json_data={}, method=method, url=url)

        response_or_error = self.responses[self.call_count]
        self.call_count += 1

        if isinstance(response_or_error, Exception):
            raise response_or_error
        return response_or_error


@pytest.fixture
def no_sleep(monkeypatch) -> list[float]:
    """Record backoff delays instead of sleeping."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


def test_client_default_timeout_from_settings(monkeypatch) -> None:
    """AsyncHttpClient uses settings.http timeouts by default."""
    monkeypatch.setattr(settings.http, "timeout", 42, raising=False)
    monkeypatch.setattr(settings.http, "connect_timeout", 7, raising=False)

    client = AsyncHttpClient(BASE_URL)
    assert client.timeout == 42
    assert client.connect_timeout == 7


def test_client_custom_timeout_override() -> None:
    """AsyncHttpClient accepts custom timeout overrides."""
    client = AsyncHttpClient(BASE_URL, timeout=120, connect_timeout=15)
    assert client.timeout == 120
    assert client.connect_timeout == 15


def test_url_for_joins_paths() -> None:
    """Paths join onto the base URL with exactly one slash."""
    client = AsyncHttpClient(BASE_URL + "/")
    assert client.url_for("/tables/task_c") == "http://test.example/api/tables/task_c"
    assert client.url_for("tables/task_c") == "http://test.example/api/tables/task_c"


@pytest.mark.asyncio
async def test_post_success_merges_headers(monkeypatch) -> None:
    """Default and per-call headers are both sent."""
    response = _build_response(200, json_data={"ok": True}, method="POST")
    stub = StubAsyncClient(responses=[response])
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(BASE_URL, headers={"Authorization": "Bearer a"})
    result = await client.post("/query", json={"q": 1}, headers={"X-Trace": "t"})

    assert result is not None
    assert result.json() == {"ok": True}
    method, url, kwargs = stub.calls[0]
    assert (method, url) == ("POST", f"{BASE_URL}/query")
    assert kwargs["headers"] == {"Authorization": "Bearer a", "X-Trace": "t"}
    assert kwargs["json"] == {"q": 1}


@pytest.mark.asyncio
async def test_delete_sends_json_body(monkeypatch) -> None:
    """DELETE requests carry a JSON body."""
    stub = StubAsyncClient()
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    await AsyncHttpClient(BASE_URL).delete("/records", json={"RecordIds": [1]})

    method, _, kwargs = stub.calls[0]
    assert method == "DELETE"
    assert kwargs["json"] == {"RecordIds": [1]}


@pytest.mark.asyncio
async def test_error_strategy_raise(monkeypatch) -> None:
    """RAISE strategy re-raises exceptions."""
    stub = StubAsyncClient(responses=[_status_error(500)])
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(BASE_URL, error_config=ErrorConfig(strategy=ErrorStrategy.RAISE))

    with pytest.raises(httpx.HTTPStatusError):
        await client.get("/")


@pytest.mark.asyncio
async def test_error_strategy_log_and_return_none(monkeypatch, caplog) -> None:
    """LOG_AND_RETURN_NONE logs the error and returns None."""
    stub = StubAsyncClient(responses=[_status_error(404)])
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(
        BASE_URL, error_config=ErrorConfig(strategy=ErrorStrategy.LOG_AND_RETURN_NONE)
    )

    with caplog.at_level(logging.ERROR):
        result = await client.get("/items")

    assert result is None
    assert f"HTTP GET {BASE_URL}/items failed" in caplog.text


@pytest.mark.asyncio
async def test_no_retry_by_default(monkeypatch) -> None:
    """Without a retry config a failure is final."""
    stub = StubAsyncClient(responses=[_status_error(500)])
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(
        BASE_URL, error_config=ErrorConfig(strategy=ErrorStrategy.LOG_AND_RETURN_NONE)
    )
    result = await client.get("/")

    assert result is None
    assert stub.call_count == 1


@pytest.mark.asyncio
async def test_retry_on_server_error_then_succeeds(monkeypatch, no_sleep) -> None:
    """Retryable status codes are retried with exponential backoff."""
    success = _build_response(200, json_data={"ok": True})
    stub = StubAsyncClient(responses=[_status_error(503), _status_error(502), success])
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(BASE_URL, retry_config=RetryConfig(max_attempts=3, backoff_factor=1.0))
    result = await client.get("/")

    assert result is not None
    assert result.status_code == 200
    assert stub.call_count == 3
    assert no_sleep == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_skips_non_retryable_status(monkeypatch, no_sleep) -> None:
    """Client errors are not retried."""
    stub = StubAsyncClient(responses=[_status_error(400)])
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(BASE_URL, retry_config=RetryConfig(max_attempts=3))

    with pytest.raises(httpx.HTTPStatusError):
        await client.get("/")
    assert stub.call_count == 1
    assert no_sleep == []


@pytest.mark.asyncio
async def test_retry_exhaustion_raises_last_error(monkeypatch, no_sleep) -> None:
    """After the final attempt the last error propagates."""
    request = httpx.Request("GET", BASE_URL)
    errors = [httpx.ConnectError("down", request=request) for _ in range(2)]
    stub = StubAsyncClient(responses=errors)
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: stub)

    client = AsyncHttpClient(BASE_URL, retry_config=RetryConfig(max_attempts=2))

    with pytest.raises(httpx.ConnectError):
        await client.get("/")
    assert stub.call_count == 2
    assert len(no_sleep) == 1


def test_retry_delay_is_capped() -> None:
    """Backoff never exceeds max_backoff."""
    config = RetryConfig(backoff_factor=2.0, max_backoff=10.0)
    assert config.delay_for(0) == 2.0
    assert config.delay_for(1) == 4.0
    assert config.delay_for(5) == 10.0
