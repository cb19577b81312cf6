import asyncio
from typing import Callable, Dict, Optional

from loguru import logger

from searchengine.fetching.fetcher import Fetcher, FetchError
from searchengine.indexing.index_builder import IndexBuilder
from searchengine.indexing.site_runner import STOPPED_BY_USER, SiteRunController
from searchengine.indexing.statistics import (
    DetailedStatisticsItem,
    IndexingResult,
    StatisticsData,
    StatisticsResponse,
    TotalStatistics,
)
from searchengine.monitoring.metrics import INDEXING_ACTIVE
from searchengine.morphology.lemmatizer import Lemmatizer
from searchengine.storage.base import IndexStorage, StorageError
from searchengine.storage.models.site_model import SiteStatus
from searchengine.utils.config_loader import Config, SiteConfig
from searchengine.utils.url_utils import canonical_url, get_domain, is_same_domain


ALREADY_RUNNING = "Indexing is already running"
NOT_RUNNING = "Indexing is not running"
ALREADY_STOPPING = "Indexing is already being stopped"
NO_SITES = "No sites are configured for indexing"
OUTSIDE_SITES = "Page is outside the sites specified in the configuration file"


class IndexingOrchestrator:
    """
    Process-wide owner of the indexing job.

    Holds the in-progress flag, the cancellation event shared by every crawl
    worker of the current run, the background task and the site runs in
    flight. At most one run exists at a time; control methods never raise.
    """

    def __init__(
        self,
        config: Config,
        storage: IndexStorage,
        lemmatizer: Lemmatizer,
        *,
        fetcher_factory: Optional[Callable[[], Fetcher]] = None,
    ):
        self.config = config
        self.storage = storage
        self.index_builder = IndexBuilder(lemmatizer, storage)
        self.fetcher_factory = fetcher_factory or (lambda: Fetcher.from_config(config))

        self._in_progress = False
        self._cancel_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.active_runs: Dict[str, SiteRunController] = {}

    @property
    def is_indexing(self) -> bool:
        return self._in_progress

    # --------------------------
    #  Full indexing lifecycle
    # --------------------------
    async def start_indexing(self) -> IndexingResult:
        if self._in_progress:
            logger.warning("[Orchestrator] Start requested while indexing is running")
            return IndexingResult(result=False, error=ALREADY_RUNNING)
        if not self.config.sites:
            return IndexingResult(result=False, error=NO_SITES)

        # flag is set before the first await so a concurrent start sees it
        self._in_progress = True
        self._cancel_event = asyncio.Event()
        INDEXING_ACTIVE.set(1)
        self._task = asyncio.create_task(self._run_all_sites(self._cancel_event), name="indexing-run")
        logger.info(f"[Orchestrator] Indexing started for {len(self.config.sites)} sites")
        return IndexingResult(result=True)

    async def stop_indexing(self) -> IndexingResult:
        if not self._in_progress:
            logger.warning("[Orchestrator] Stop requested while indexing is not running")
            return IndexingResult(result=False, error=NOT_RUNNING)
        if self._cancel_event.is_set():
            return IndexingResult(result=False, error=ALREADY_STOPPING)

        logger.info("[Orchestrator] Stopping indexing...")
        self._cancel_event.set()

        task = self._task
        try:
            if task is not None and not task.done():
                done, _ = await asyncio.wait({task}, timeout=self.config.drain_timeout)
                if not done:
                    logger.warning(
                        f"[Orchestrator] Workers did not drain within {self.config.drain_timeout}s; abandoning them"
                    )
                    task.cancel()
                    await asyncio.gather(task, return_exceptions=True)

            await self._fail_unfinished_sites()
        finally:
            # an interrupted stop still tears the run down and frees the flag
            if task is not None and not task.done():
                task.cancel()
            self._reset()
        logger.info("[Orchestrator] Indexing stopped")
        return IndexingResult(result=True)

    async def wait(self) -> None:
        """Wait for the current run, if any, to finish."""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _run_all_sites(self, cancel_event: asyncio.Event) -> None:
        try:
            async with self.fetcher_factory() as fetcher:
                for site in self.config.sites:
                    if cancel_event.is_set():
                        logger.info(f"[Orchestrator] Stopped before indexing {site.url}")
                        break

                    run = SiteRunController(
                        site,
                        self.storage,
                        fetcher,
                        self.index_builder,
                        cancel_event=cancel_event,
                        workers=self.config.crawler_workers,
                        max_depth=self.config.max_depth,
                        max_pages=self.config.max_pages,
                    )
                    self.active_runs[site.url] = run
                    try:
                        await run.run()
                    finally:
                        if self.active_runs.get(site.url) is run:
                            del self.active_runs[site.url]
        except Exception:
            logger.exception("[Orchestrator] Indexing run failed")
        finally:
            # a stop in progress resets the state itself once sites are marked
            if not cancel_event.is_set():
                self._reset()
                logger.info("[Orchestrator] Indexing finished")

    async def _fail_unfinished_sites(self) -> None:
        try:
            for site in await self.storage.site_statistics():
                if site.status == SiteStatus.INDEXING:
                    await self.storage.upsert_site_status(site.site_id, SiteStatus.FAILED, STOPPED_BY_USER)
                    logger.info(f"[Orchestrator] {site.url} marked FAILED after stop")
        except StorageError:
            logger.exception("[Orchestrator] Could not mark unfinished sites as failed")

    def _reset(self) -> None:
        self._in_progress = False
        self._task = None
        self.active_runs.clear()
        INDEXING_ACTIVE.set(0)

    # --------------------------
    #  Single page
    # --------------------------
    def site_for_url(self, url: str) -> Optional[SiteConfig]:
        domain = get_domain(url)
        if not domain:
            return None
        for site in self.config.sites:
            if get_domain(site.url) == domain:
                return site
        return None

    async def index_single_page(self, url: str, site_id: Optional[int] = None) -> IndexingResult:
        """Fetch one page of a configured site and (re)index it."""
        site = self.site_for_url(url)
        if site is None:
            return IndexingResult(result=False, error=OUTSIDE_SITES)

        page_url = canonical_url(url)
        try:
            stored_site_id = await self.storage.ensure_site(site.url, site.name)
            if site_id is not None and site_id != stored_site_id:
                return IndexingResult(result=False, error=f"Page does not belong to site {site_id}")

            async with self.fetcher_factory() as fetcher:
                result = await fetcher.fetch(page_url)

            if not is_same_domain(result.url, site.url):
                return IndexingResult(result=False, error=OUTSIDE_SITES)
            if not result.is_html:
                return IndexingResult(result=False, error=f"Not an HTML page: {result.content_type}")

            if await self.storage.page_already_stored(stored_site_id, result.url):
                await self.storage.delete_page(stored_site_id, result.url)
            page_id = await self.storage.persist_page(
                stored_site_id, result.url, result.status_code, result.content
            )
            await self.index_builder.index_page(stored_site_id, page_id, result.content)
        except FetchError as exc:
            logger.warning(f"[Orchestrator] Single page fetch failed: {exc}")
            return IndexingResult(result=False, error=f"Page could not be fetched: {exc.cause}")
        except StorageError as exc:
            logger.exception(f"[Orchestrator] Single page indexing failed for {url}")
            return IndexingResult(result=False, error=str(exc))

        logger.info(f"[Orchestrator] Indexed single page {result.url}")
        return IndexingResult(result=True)

    # --------------------------
    #  Statistics
    # --------------------------
    async def get_statistics(self) -> StatisticsResponse:
        try:
            stored = {site.url: site for site in await self.storage.site_statistics()}
        except StorageError as exc:
            logger.exception("[Orchestrator] Statistics query failed")
            return StatisticsResponse(result=False, error=str(exc))

        detailed = []
        for site in self.config.sites:
            row = stored.get(site.url)
            if row is None:
                detailed.append(
                    DetailedStatisticsItem(url=site.url, name=site.name, status=SiteStatus.QUEUED.value)
                )
                continue
            detailed.append(
                DetailedStatisticsItem(
                    url=row.url,
                    name=row.name,
                    status=row.status.value,
                    status_time=row.status_time,
                    error=row.error,
                    pages=row.pages,
                    lemmas=row.lemmas,
                )
            )

        total = TotalStatistics(
            sites=len(detailed),
            pages=sum(item.pages for item in detailed),
            lemmas=sum(item.lemmas for item in detailed),
            indexing=self._in_progress,
        )
        return StatisticsResponse(
            result=True,
            statistics=StatisticsData(total=total, detailed=detailed),
        )
