import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

from loguru import logger

from searchengine.crawling.visited import VisitedRegistry
from searchengine.fetching.fetcher import Fetcher, FetchError, FetchResult
from searchengine.monitoring.metrics import CRAWL_WORKERS_ACTIVE
from searchengine.parsing.link_extractor import extract_links
from searchengine.utils.filters import is_valid_link
from searchengine.utils.url_utils import canonical_url, get_domain


PageHandler = Callable[[FetchResult], Awaitable[None]]
FailureHandler = Callable[[str, FetchError], Awaitable[None]]


@dataclass
class CrawlTask:
    url: str
    depth: int = 0


@dataclass
class CrawlReport:
    pages_saved: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False

    @property
    def last_error(self) -> Optional[str]:
        return self.failures[-1][1] if self.failures else None


class CrawlScheduler:
    """
    Crawls one site with a fixed number of worker coroutines.

    Every URL goes through ``VisitedRegistry.claim`` before it is queued, so a
    page is fetched at most once per run no matter how many pages link to it.
    A page's links are only queued after ``page_handler`` has stored it.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        page_handler: PageHandler,
        *,
        failure_handler: Optional[FailureHandler] = None,
        cancel_event: Optional[asyncio.Event] = None,
        workers: int = 8,
        max_depth: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.page_handler = page_handler
        self.failure_handler = failure_handler
        self.cancel_event = cancel_event or asyncio.Event()
        self.worker_count = max(1, workers)
        self.max_depth = max_depth
        self.max_pages = max_pages

        self.visited = VisitedRegistry()
        self.queue: asyncio.Queue[CrawlTask] = asyncio.Queue()
        self.report = CrawlReport()
        self.base_domain = ""
        self._reserved_pages = 0
        self._fatal: Optional[BaseException] = None

    def _stopping(self) -> bool:
        return self.cancel_event.is_set() or self._fatal is not None

    async def crawl(self, seed_url: str) -> CrawlReport:
        seed = canonical_url(seed_url)
        self.base_domain = get_domain(seed)

        if self.cancel_event.is_set():
            self.report.cancelled = True
            return self.report

        self.visited.claim(seed)
        self.queue.put_nowait(CrawlTask(seed, 0))

        workers = [
            asyncio.create_task(self._worker(i), name=f"crawl-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"[Scheduler] Crawling {seed} with {self.worker_count} workers")

        try:
            await self.queue.join()
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        if self._fatal is not None:
            raise self._fatal

        self.report.cancelled = self.cancel_event.is_set()
        logger.info(
            f"[Scheduler] Finished {seed}: pages={self.report.pages_saved}, "
            f"failures={len(self.report.failures)}, claimed={len(self.visited)}, "
            f"cancelled={self.report.cancelled}"
        )
        return self.report

    # --------------------------
    #  Worker loop
    # --------------------------
    async def _worker(self, worker_id: int) -> None:
        while True:
            task = await self.queue.get()
            try:
                # queued work left behind by a stop or a fatal error is drained unfetched
                if self._stopping():
                    continue
                CRAWL_WORKERS_ACTIVE.inc()
                try:
                    await self._process(task)
                finally:
                    CRAWL_WORKERS_ACTIVE.dec()
            except Exception as exc:
                logger.exception(f"[Scheduler] Worker-{worker_id} aborted the crawl at {task.url}")
                if self._fatal is None:
                    self._fatal = exc
            finally:
                self.queue.task_done()

    async def _process(self, task: CrawlTask) -> None:
        try:
            result = await self.fetcher.fetch(task.url)
        except FetchError as exc:
            logger.warning(f"[Scheduler] Fetch failed: {exc}")
            self.report.failures.append((task.url, str(exc)))
            if self.failure_handler is not None:
                await self.failure_handler(task.url, exc)
            return

        if result.url != task.url and not self.visited.claim(result.url):
            logger.debug(f"[Scheduler] {task.url} redirects to already claimed {result.url}")
            return

        if not is_valid_link(self.base_domain, result.url):
            logger.info(f"[Scheduler] {task.url} redirects to {result.url}, outside the crawlable site")
            return

        if not result.is_html:
            logger.info(f"[Scheduler] Skipping non-HTML {result.url} ({result.content_type})")
            return

        if self.max_pages is not None:
            if self._reserved_pages >= self.max_pages:
                return
            self._reserved_pages += 1

        await self.page_handler(result)
        self.report.pages_saved += 1

        await self.fetcher.polite_delay()

        if self._stopping():
            return
        if self.max_depth is not None and task.depth >= self.max_depth:
            return

        links = await asyncio.to_thread(extract_links, result.content, result.url)
        queued = 0
        for link in sorted(links):
            if self._stopping():
                break
            if not is_valid_link(self.base_domain, link):
                continue
            if self.visited.claim(link):
                self.queue.put_nowait(CrawlTask(link, task.depth + 1))
                queued += 1

        logger.debug(f"[Scheduler] {result.url}: {len(links)} links, {queued} queued")
