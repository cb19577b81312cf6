"""Persistence boundary of the indexer.

The crawl/index core only talks to storage through :class:`IndexStorage`;
every implementation reports failures as :class:`StorageError` so a site run
can tell them apart from fetch problems.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from searchengine.storage.models.site_model import SiteStatus


class StorageError(Exception):
    """A persistence operation failed."""


@dataclass
class SiteStatistics:
    site_id: int
    url: str
    name: str
    status: SiteStatus
    status_time: Optional[datetime]
    error: Optional[str]
    pages: int
    lemmas: int


class IndexStorage(Protocol):
    async def ensure_site(self, url: str, name: str) -> int: ...

    async def clear_site_data(self, site_id: int) -> None: ...

    async def upsert_site_status(
        self, site_id: int, status: SiteStatus, error: Optional[str] = None
    ) -> None: ...

    async def persist_page(self, site_id: int, url: str, status_code: int, html: str) -> int: ...

    async def page_already_stored(self, site_id: int, url: str) -> bool: ...

    async def delete_page(self, site_id: int, url: str) -> bool: ...

    async def upsert_lemma_frequency(self, site_id: int, lemma: str, delta: int) -> int: ...

    async def insert_page_lemma_index(self, page_id: int, lemma_id: int, count: int) -> None: ...

    async def site_statistics(self) -> List[SiteStatistics]: ...
