"""Resilient Image Client — retry, backoff and error mapping against a mock transport.

Tests cover:
    - First result's regular URL returned; empty results -> None
    - 429 and 5xx retried; exhaustion raises ImageLookupError
    - Other 4xx fail immediately without retry
    - Non-JSON body raises ImageLookupError(bad_response)
"""

import httpx
import pytest

from purchase_tool.core.errors import ImageLookupError
from purchase_tool.infrastructure.image_client import ResilientImageClient


def _client(handler, max_retries=2):
    return ResilientImageClient(
        base_url="https://images.test",
        access_key="test-key",
        max_retries=max_retries,
        base_delay_ms=0,
        transport=httpx.MockTransport(handler),
    )


def _photo(url):
    return {"results": [{"urls": {"regular": url, "full": url + "?full"}}]}


async def test_returns_first_regular_url():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=_photo("https://cdn/widget.jpg"))

    client = _client(handler)
    assert await client.lookup_image("Widget") == "https://cdn/widget.jpg"
    assert seen[0].url.params["query"] == "Widget"
    assert seen[0].url.params["per_page"] == "1"
    assert seen[0].headers["authorization"] == "Client-ID test-key"
    await client.aclose()


async def test_falls_back_to_full_url():
    def handler(request):
        return httpx.Response(200, json={"results": [{"urls": {"full": "https://cdn/f.jpg"}}]})

    client = _client(handler)
    assert await client.lookup_image("x") == "https://cdn/f.jpg"
    await client.aclose()


async def test_no_results_is_none():
    client = _client(lambda request: httpx.Response(200, json={"results": []}))
    assert await client.lookup_image("nothing") is None
    await client.aclose()


async def test_rate_limit_then_success_retries():
    responses = [
        httpx.Response(429, headers={"Retry-After": "0"}),
        httpx.Response(200, json=_photo("https://cdn/ok.jpg")),
    ]
    calls = []

    def handler(request):
        calls.append(request)
        return responses[len(calls) - 1]

    client = _client(handler)
    assert await client.lookup_image("Widget") == "https://cdn/ok.jpg"
    assert len(calls) == 2
    await client.aclose()


async def test_server_errors_exhaust_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    client = _client(handler, max_retries=2)
    with pytest.raises(ImageLookupError) as exc_info:
        await client.lookup_image("Widget")
    assert exc_info.value.reason == "server_error"
    assert len(calls) == 3
    await client.aclose()


async def test_connection_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler, max_retries=1)
    with pytest.raises(ImageLookupError) as exc_info:
        await client.lookup_image("Widget")
    assert exc_info.value.reason == "connection_error"
    assert len(calls) == 2
    await client.aclose()


async def test_client_error_fails_immediately():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={"errors": ["OAuth error"]})

    client = _client(handler)
    with pytest.raises(ImageLookupError) as exc_info:
        await client.lookup_image("Widget")
    assert exc_info.value.reason == "client_error"
    assert exc_info.value.http_status == 503
    assert len(calls) == 1
    await client.aclose()


async def test_non_json_body_is_bad_response():
    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ImageLookupError) as exc_info:
        await client.lookup_image("Widget")
    assert exc_info.value.reason == "bad_response"
    await client.aclose()


def test_backoff_stays_within_jitter_bounds():
    client = ResilientImageClient(
        "https://images.test", "k", base_delay_ms=100, max_delay_ms=1_000,
    )
    for attempt in range(6):
        expected = min(1_000, (2 ** attempt) * 100)
        assert expected * 0.75 <= client._backoff(attempt) <= expected * 1.25


async def test_malformed_result_entries_are_bad_response():
    bodies = [
        {"results": ["not-a-dict"]},
        {"results": [{"urls": "https://cdn/x.jpg"}]},
        {"results": {"0": {}}},
        ["not", "an", "object"],
    ]
    for body in bodies:
        client = _client(lambda request, body=body: httpx.Response(200, json=body))
        with pytest.raises(ImageLookupError) as exc_info:
            await client.lookup_image("Widget")
        assert exc_info.value.reason == "bad_response"
        await client.aclose()


async def test_non_string_urls_are_skipped():
    body = {"results": [{"urls": {"regular": 42, "full": "", "small": "https://cdn/s.jpg"}}]}
    client = _client(lambda request: httpx.Response(200, json=body))
    assert await client.lookup_image("Widget") == "https://cdn/s.jpg"
    await client.aclose()
