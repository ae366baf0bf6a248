# src/collectors/fetcher.py
"""Async HTTP fetching with retry/backoff shared by every strategy."""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from config.settings import COLLECTION_CONFIG, RATE_LIMITING_CONFIG
from src.pipeline.errors import FetchError
from src.utils.logger import get_logger

RETRY_STATUSES = (429, 500, 502, 503, 504)

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
FEED_ACCEPT = (
    "application/rss+xml, application/atom+xml, application/feed+json, "
    "application/xml;q=0.9, text/xml;q=0.9, */*;q=0.5"
)


@dataclass
class FetchResult:
    url: str
    status_code: int
    content: bytes
    text: str
    content_type: str = ""


class Fetcher:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    Use as an async context manager; a client passed in by the caller is
    reused and left open, otherwise one is created and closed on exit.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        backoff_max: Optional[float] = None,
        jitter_max: Optional[float] = None,
        max_bytes: Optional[int] = None,
        user_agent: Optional[str] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self.timeout = timeout if timeout is not None else COLLECTION_CONFIG["request_timeout"]
        self.max_retries = (
            max_retries if max_retries is not None else RATE_LIMITING_CONFIG["max_retries"]
        )
        self.backoff_base = (
            backoff_base if backoff_base is not None else RATE_LIMITING_CONFIG["backoff_base"]
        )
        self.backoff_max = (
            backoff_max if backoff_max is not None else RATE_LIMITING_CONFIG["backoff_max"]
        )
        self.jitter_max = (
            jitter_max if jitter_max is not None else RATE_LIMITING_CONFIG["jitter_max"]
        )
        self.max_bytes = (
            max_bytes if max_bytes is not None else COLLECTION_CONFIG["max_response_bytes"]
        )
        self.user_agent = user_agent or COLLECTION_CONFIG["user_agent"]
        self._sleep = sleep
        self.module_logger = get_logger().create_module_logger("collectors.fetcher")

    async def __aenter__(self) -> "Fetcher":
        if self._client is None:
            headers = {
                "User-Agent": self.user_agent,
                "Accept-Language": "en-US,en;q=0.5",
                "Accept-Encoding": "gzip, deflate",
            }
            kwargs: Dict[str, Any] = {
                "headers": headers,
                "follow_redirects": True,
                "timeout": self.timeout,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _backoff_delay(self, attempt: int) -> float:
        jitter = random.uniform(0, self.jitter_max) if self.jitter_max > 0 else 0.0
        return min(self.backoff_max, (self.backoff_base * (2**attempt)) + jitter)

    async def fetch(self, url: str, *, accept: str = HTML_ACCEPT) -> FetchResult:
        """
        GET ``url`` following redirects.

        Retries 429/5xx responses and connect/read timeouts with exponential
        backoff. Raises ``FetchError`` on network failure, on an HTTP status
        >= 400 once retries are exhausted, or when the body exceeds
        ``max_bytes``.
        """
        if self._client is None:
            raise RuntimeError("Fetcher must be used inside 'async with'")

        for attempt in range(0, self.max_retries + 1):
            try:
                response = await self._client.get(
                    url, headers={"Accept": accept}, timeout=self.timeout
                )
            except (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError) as exc:
                if attempt < self.max_retries:
                    await self._sleep(self._backoff_delay(attempt))
                    continue
                self._log_failure("fetch.retry_exhausted", url, error=str(exc))
                raise FetchError(url, f"network error: {exc.__class__.__name__}") from exc
            except httpx.HTTPError as exc:
                self._log_failure("fetch.exception", url, error=str(exc))
                raise FetchError(url, f"network error: {exc.__class__.__name__}") from exc

            if response.status_code in RETRY_STATUSES and attempt < self.max_retries:
                await self._sleep(self._backoff_delay(attempt))
                continue

            if response.status_code >= 400:
                self._log_failure("fetch.http_error", url, status_code=response.status_code)
                raise FetchError(url, status_code=response.status_code)

            declared = response.headers.get("content-length")
            if (declared and declared.isdigit() and int(declared) > self.max_bytes) or len(
                response.content
            ) > self.max_bytes:
                self._log_failure("fetch.too_large", url, bytes=len(response.content))
                raise FetchError(url, "response too large")

            return FetchResult(
                url=str(response.url),
                status_code=response.status_code,
                content=response.content,
                text=response.text,
                content_type=response.headers.get("content-type", "").lower(),
            )

        raise FetchError(url, "retries exhausted")  # pragma: no cover - loop always returns

    def _log_failure(self, event: str, url: str, **details: Any) -> None:
        self.module_logger.warning({"event": f"collector.{event}", "url": url, "details": details})


__all__ = ["FEED_ACCEPT", "FetchResult", "Fetcher", "HTML_ACCEPT", "RETRY_STATUSES"]
