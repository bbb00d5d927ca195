"""Resilient Image Client — wraps httpx.AsyncClient with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection, read timeout): max_retries retries with backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to ImageLookupError (core/errors.py)
    - No hit for the query is not an error: returns None
    - Malformed replies (wrong shapes, non-string URLs) raise ImageLookupError("bad_response")

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the creation workflow
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - Transport injectable: tests drive the client with httpx.MockTransport
"""

import asyncio
import random
import logging

import httpx

from purchase_tool.core.errors import ImageLookupError

logger = logging.getLogger(__name__)

SEARCH_PATH = "/search/photos"


class _Retry(Exception):
    """Internal signal: the attempt failed transiently and may be retried."""

    def __init__(self, reason: str, detail: str, retry_after_ms: int | None = None):
        super().__init__(detail)
        self.reason = reason
        self.detail = detail
        self.retry_after_ms = retry_after_ms


class ResilientImageClient:
    """Searches an Unsplash-compatible API for one image URL per query."""

    def __init__(
        self,
        base_url: str,
        access_key: str,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={
                "Authorization": f"Client-ID {access_key}",
                "Accept-Version": "v1",
            },
            transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def lookup_image(self, query: str) -> str | None:
        """Return the first matching image URL, or None when nothing matches."""
        for attempt in range(self.max_retries + 1):
            try:
                url = await self._search(query)
                logger.info(
                    "Image lookup success", extra={"attempt": attempt + 1},
                )
                return url
            except _Retry as e:
                if attempt >= self.max_retries:
                    raise ImageLookupError(
                        f"giving up after {self.max_retries} retries: {e.detail}",
                        e.reason, retry_after_ms=e.retry_after_ms,
                    )
                delay = e.retry_after_ms or self._backoff(attempt)
                logger.warning(
                    f"Image lookup {e.reason}, retry after {delay}ms "
                    f"(attempt {attempt + 1})",
                )
                await asyncio.sleep(delay / 1000)
        return None

    async def _search(self, query: str) -> str | None:
        try:
            response = await self.client.get(
                SEARCH_PATH, params={"query": query, "per_page": 1},
            )
        except httpx.TimeoutException as e:
            raise _Retry("timeout", str(e) or "request timed out")
        except httpx.TransportError as e:
            raise _Retry("connection_error", str(e) or type(e).__name__)

        if response.status_code == 429:
            raise _Retry(
                "rate_limit", "rate limit exceeded",
                self._extract_retry_after(response),
            )
        if response.status_code >= 500:
            raise _Retry("server_error", f"HTTP {response.status_code}")
        if response.status_code >= 400:
            raise ImageLookupError(
                f"HTTP {response.status_code}", "client_error",
            )
        return self._first_url(response)

    def _first_url(self, response: httpx.Response) -> str | None:
        try:
            payload = response.json()
        except ValueError:
            raise ImageLookupError("response is not JSON", "bad_response")
        if not isinstance(payload, dict):
            raise ImageLookupError("response is not an object", "bad_response")
        results = payload.get("results")
        if not results:
            return None
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise ImageLookupError("unexpected results shape", "bad_response")
        urls = results[0].get("urls")
        if not isinstance(urls, dict):
            raise ImageLookupError("result has no urls object", "bad_response")
        for size in ("regular", "full", "small"):
            url = urls.get(size)
            if isinstance(url, str) and url:
                return url
        return None

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Retry-After header (seconds) -> milliseconds."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None

    async def aclose(self) -> None:
        await self.client.aclose()
