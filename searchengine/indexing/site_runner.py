import asyncio
from typing import Optional

from loguru import logger

from searchengine.crawling.scheduler import CrawlReport, CrawlScheduler
from searchengine.fetching.fetcher import Fetcher, FetchError, FetchResult
from searchengine.indexing.index_builder import IndexBuilder
from searchengine.monitoring.metrics import PAGES_SAVED, SITE_RUNS
from searchengine.storage.base import IndexStorage, StorageError
from searchengine.storage.models.site_model import SiteStatus
from searchengine.utils.config_loader import SiteConfig


STOPPED_BY_USER = "Indexing stopped by user"
NO_PAGES_INDEXED = "No pages could be indexed"


class SiteRunController:
    """
    One full crawl-and-index cycle of a single site.

    The site always ends the run as INDEXED or FAILED; ``run`` itself only
    lets ``asyncio.CancelledError`` escape, after recording the failure.
    """

    def __init__(
        self,
        site: SiteConfig,
        storage: IndexStorage,
        fetcher: Fetcher,
        index_builder: IndexBuilder,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        workers: int = 8,
        max_depth: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        self.site = site
        self.storage = storage
        self.fetcher = fetcher
        self.index_builder = index_builder
        self.cancel_event = cancel_event or asyncio.Event()
        self.workers = workers
        self.max_depth = max_depth
        self.max_pages = max_pages

        self.site_id: Optional[int] = None
        self.status = SiteStatus.QUEUED
        self.report: Optional[CrawlReport] = None
        self.log = logger.bind(site=site.url)

    async def run(self) -> None:
        self.log.info(f"[SiteRun] Indexing {self.site.url}")
        try:
            self.site_id = await self.storage.ensure_site(self.site.url, self.site.name)
            await self.storage.clear_site_data(self.site_id)
            await self._set_status(SiteStatus.INDEXING)

            scheduler = CrawlScheduler(
                self.fetcher,
                self._handle_page,
                failure_handler=self._handle_failure,
                cancel_event=self.cancel_event,
                workers=self.workers,
                max_depth=self.max_depth,
                max_pages=self.max_pages,
            )
            self.report = await scheduler.crawl(self.site.url)
        except asyncio.CancelledError:
            self.log.warning(f"[SiteRun] Run of {self.site.url} cancelled")
            await self._finish(SiteStatus.FAILED, STOPPED_BY_USER)
            raise
        except Exception as exc:
            self.log.exception(f"[SiteRun] Indexing of {self.site.url} failed")
            await self._finish(SiteStatus.FAILED, str(exc) or exc.__class__.__name__)
            return

        if self.report.cancelled:
            await self._finish(SiteStatus.FAILED, STOPPED_BY_USER)
        elif self.report.pages_saved == 0:
            await self._finish(SiteStatus.FAILED, self.report.last_error or NO_PAGES_INDEXED)
        else:
            await self._finish(SiteStatus.INDEXED, None)

    async def _handle_page(self, result: FetchResult) -> None:
        page_id = await self.storage.persist_page(
            self.site_id, result.url, result.status_code, result.content
        )
        await self.index_builder.index_page(self.site_id, page_id, result.content)
        PAGES_SAVED.labels(site=self.site.url).inc()

    async def _handle_failure(self, url: str, error: FetchError) -> None:
        # the site keeps INDEXING; the latest page error stays visible until the run ends
        await self.storage.upsert_site_status(
            self.site_id, SiteStatus.INDEXING, f"Error while processing page {url}: {error.cause}"
        )

    async def _set_status(self, status: SiteStatus, error: Optional[str] = None) -> None:
        await self.storage.upsert_site_status(self.site_id, status, error)
        self.status = status

    async def _finish(self, status: SiteStatus, error: Optional[str]) -> None:
        self.status = status
        SITE_RUNS.labels(status=status.value).inc()
        if self.site_id is None:
            self.log.error(f"[SiteRun] {self.site.url} finished as {status.value} before it was stored: {error}")
            return
        try:
            await self.storage.upsert_site_status(self.site_id, status, error)
        except StorageError:
            self.log.exception(f"[SiteRun] Could not record {status.value} for {self.site.url}")
            return
        self.log.info(f"[SiteRun] {self.site.url} -> {status.value}" + (f" ({error})" if error else ""))
