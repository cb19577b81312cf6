import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import httpx
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from searchengine.fetching.fetcher import Fetcher
from searchengine.storage.base import SiteStatistics, StorageError
from searchengine.storage.models.site_model import SiteStatus


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host settings out of the tests."""

    for key in [
        "DATABASE_URL",
        "CRAWLER_USER_AGENT",
        "CRAWLER_WORKERS",
        "MAX_REDIRECTS",
        "MAX_DEPTH",
        "MAX_PAGES",
        "MORPHOLOGY_BACKEND",
        "LOG_LEVEL",
        "SEARCHENGINE_CONFIG",
        "SEARCHENGINE_ENV_FILE",
    ]:
        monkeypatch.delenv(key, raising=False)

    yield

    for key in list(os.environ.keys()):
        if key.startswith("TEST_"):
            monkeypatch.delenv(key, raising=False)


class MemoryStorage:
    """IndexStorage kept in dicts; ``fail_on`` names operations that raise."""

    def __init__(self):
        self.sites: Dict[int, dict] = {}
        self.pages: Dict[int, dict] = {}
        self.lemmas: Dict[tuple, dict] = {}
        self.index: Dict[tuple, int] = {}
        self.status_history: list = []
        self.fail_on: set = set()
        self._ids = 0

    def _next_id(self) -> int:
        self._ids += 1
        return self._ids

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed: simulated outage")

    async def ensure_site(self, url: str, name: str) -> int:
        self._check("ensure_site")
        for site_id, site in self.sites.items():
            if site["url"] == url:
                return site_id
        site_id = self._next_id()
        self.sites[site_id] = {
            "url": url,
            "name": name,
            "status": SiteStatus.QUEUED,
            "error": None,
            "status_time": None,
        }
        return site_id

    async def clear_site_data(self, site_id: int) -> None:
        self._check("clear_site_data")
        page_ids = {pid for pid, page in self.pages.items() if page["site_id"] == site_id}
        self.index = {key: v for key, v in self.index.items() if key[0] not in page_ids}
        self.pages = {pid: page for pid, page in self.pages.items() if pid not in page_ids}
        self.lemmas = {key: v for key, v in self.lemmas.items() if key[0] != site_id}

    async def upsert_site_status(self, site_id: int, status: SiteStatus, error: Optional[str] = None) -> None:
        self._check("upsert_site_status")
        site = self.sites[site_id]
        site["status"] = status
        site["error"] = error
        site["status_time"] = datetime.now(timezone.utc)
        self.status_history.append((site_id, status, error))

    async def persist_page(self, site_id: int, url: str, status_code: int, html: str) -> int:
        self._check("persist_page")
        page_id = self._next_id()
        self.pages[page_id] = {"site_id": site_id, "url": url, "code": status_code, "content": html}
        return page_id

    async def page_already_stored(self, site_id: int, url: str) -> bool:
        return any(p["site_id"] == site_id and p["url"] == url for p in self.pages.values())

    async def delete_page(self, site_id: int, url: str) -> bool:
        for page_id, page in list(self.pages.items()):
            if page["site_id"] == site_id and page["url"] == url:
                for (pid, lemma_id), count in list(self.index.items()):
                    if pid != page_id:
                        continue
                    for key, lemma in list(self.lemmas.items()):
                        if lemma["id"] == lemma_id:
                            lemma["frequency"] -= count
                            if lemma["frequency"] <= 0:
                                del self.lemmas[key]
                    del self.index[(pid, lemma_id)]
                del self.pages[page_id]
                return True
        return False

    async def upsert_lemma_frequency(self, site_id: int, lemma: str, delta: int) -> int:
        self._check("upsert_lemma_frequency")
        row = self.lemmas.get((site_id, lemma))
        if row is None:
            row = self.lemmas[(site_id, lemma)] = {"id": self._next_id(), "frequency": 0}
        row["frequency"] += delta
        return row["id"]

    async def insert_page_lemma_index(self, page_id: int, lemma_id: int, count: int) -> None:
        assert (page_id, lemma_id) not in self.index
        self.index[(page_id, lemma_id)] = count

    async def site_statistics(self):
        self._check("site_statistics")
        return [
            SiteStatistics(
                site_id=site_id,
                url=site["url"],
                name=site["name"],
                status=site["status"],
                status_time=site["status_time"],
                error=site["error"],
                pages=sum(1 for p in self.pages.values() if p["site_id"] == site_id),
                lemmas=sum(1 for key in self.lemmas if key[0] == site_id),
            )
            for site_id, site in self.sites.items()
        ]

    # helpers for assertions
    def site_by_url(self, url: str) -> dict:
        return next(site for site in self.sites.values() if site["url"] == url)

    def frequencies(self, site_id: int) -> Dict[str, int]:
        return {key[1]: row["frequency"] for key, row in self.lemmas.items() if key[0] == site_id}


@pytest.fixture
def storage():
    return MemoryStorage()


class MockSite:
    """Serves a dict of path -> HTML (or httpx.Response) and counts requests."""

    def __init__(self, pages: dict):
        self.pages = pages
        self.requests: Dict[str, int] = {}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests[path] = self.requests.get(path, 0) + 1
        page = self.pages.get(path)
        if page is None:
            return httpx.Response(404, html="<html><body>not found</body></html>")
        if isinstance(page, httpx.Response):
            return page
        return httpx.Response(200, html=page)

    def fetcher(self, **kwargs) -> Fetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return make_fetcher(client, **kwargs)


def make_fetcher(client: httpx.AsyncClient, **kwargs) -> Fetcher:
    kwargs.setdefault("delay_min", 0)
    kwargs.setdefault("delay_max", 0)
    return Fetcher("TestBot/1.0", "http://www.google.com", client=client, **kwargs)
