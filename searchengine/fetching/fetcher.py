import asyncio
import random
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from loguru import logger

from searchengine.monitoring.metrics import (
    FAILED_REQUESTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
)
from searchengine.utils.config_loader import Config
from searchengine.utils.url_utils import normalize_url


REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})


@dataclass
class FetchResult:
    url: str
    status_code: int
    content: str
    content_type: str = ""
    redirect_count: int = 0

    @property
    def is_html(self) -> bool:
        return not self.content_type or "html" in self.content_type


class FetchError(Exception):
    """A URL could not be turned into a 2xx response."""

    def __init__(self, url: str, cause: str, status_code: Optional[int] = None, reason: str = "http_status"):
        super().__init__(f"{url}: {cause}")
        self.url = url
        self.cause = cause
        self.status_code = status_code
        self.reason = reason


class Fetcher:
    """
    GETs pages with the crawler's identity headers.

    Redirects are followed by hand so every hop is counted against
    ``max_redirects`` and loops are detected.
    """

    def __init__(
        self,
        user_agent: str,
        referrer: str,
        *,
        timeout: float = 10.0,
        max_redirects: int = 10,
        delay_min: float = 0.5,
        delay_max: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.user_agent = user_agent
        self.referrer = referrer
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.delay_min = delay_min
        self.delay_max = max(delay_min, delay_max)
        self.client = client
        self._owns_client = False

    @classmethod
    def from_config(cls, config: Config, client: Optional[httpx.AsyncClient] = None) -> "Fetcher":
        return cls(
            config.user_agent,
            config.referrer,
            timeout=config.request_timeout,
            max_redirects=config.max_redirects,
            delay_min=config.politeness_delay_min,
            delay_max=config.politeness_delay_max,
            client=client,
        )

    async def __aenter__(self) -> "Fetcher":
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout=self.timeout),
                follow_redirects=False,
            )
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_client and self.client is not None:
            await self.client.aclose()
            self.client = None
            self._owns_client = False

    # --------------------------
    #  HTTP fetch with metrics
    # --------------------------
    async def fetch(self, url: str) -> FetchResult:
        if self.client is None:
            raise RuntimeError("HTTP client is not initialized")

        REQUEST_COUNT.inc()
        start = time.perf_counter()
        try:
            return await self._follow(url)
        except FetchError as exc:
            FAILED_REQUESTS.labels(reason=exc.reason).inc()
            raise
        finally:
            REQUEST_LATENCY.observe(time.perf_counter() - start)

    async def _follow(self, url: str) -> FetchResult:
        current = url
        visited = {url}
        redirects = 0

        while True:
            resp = await self._get(current)
            status_code = resp.status_code

            if status_code in REDIRECT_STATUS_CODES:
                location = resp.headers.get("Location")
                if not location:
                    raise FetchError(
                        current, f"HTTP {status_code} without Location header", status_code, reason="redirect"
                    )
                target = normalize_url(current, location)
                if target is None:
                    raise FetchError(
                        current, f"unusable redirect target '{location}'", status_code, reason="redirect"
                    )
                if redirects >= self.max_redirects:
                    raise FetchError(
                        url, f"more than {self.max_redirects} redirects", status_code, reason="redirect"
                    )
                if target in visited:
                    raise FetchError(url, f"redirect loop at {target}", status_code, reason="redirect")

                logger.debug(f"[Fetcher] {current} redirected ({status_code}) to {target}")
                visited.add(target)
                current = target
                redirects += 1
                continue

            if not 200 <= status_code < 300:
                raise FetchError(current, f"HTTP {status_code}", status_code)

            return FetchResult(
                url=current,
                status_code=status_code,
                content=resp.text or "",
                content_type=(resp.headers.get("Content-Type") or "").lower(),
                redirect_count=redirects,
            )

    async def _get(self, url: str) -> httpx.Response:
        try:
            return await self.client.get(
                url,
                follow_redirects=False,
                headers={
                    "User-Agent": self.user_agent,
                    "Referer": self.referrer,
                    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
                },
            )
        except httpx.TimeoutException as exc:
            raise FetchError(url, f"timed out ({exc.__class__.__name__})", reason="timeout") from exc
        except httpx.HTTPError as exc:
            raise FetchError(url, f"transport error: {exc}", reason="transport") from exc

    async def polite_delay(self) -> None:
        delay = random.uniform(self.delay_min, self.delay_max)
        if delay > 0:
            await asyncio.sleep(delay)
