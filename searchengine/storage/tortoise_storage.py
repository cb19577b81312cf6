import functools
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger
from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from searchengine.storage.base import SiteStatistics, StorageError
from searchengine.storage.models import IndexEntry, Lemma, Page, Site, SiteStatus


def _storage_errors(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (BaseORMException, OSError) as exc:
            raise StorageError(f"{func.__name__} failed: {exc}") from exc

    return wrapper


class TortoiseStorage:
    """IndexStorage backed by the Tortoise models (PostgreSQL in production)."""

    @_storage_errors
    async def ensure_site(self, url: str, name: str) -> int:
        site, created = await Site.get_or_create(url=url, defaults={"name": name})
        if not created and name and site.name != name:
            site.name = name
            await site.save(update_fields=["name"])
        return site.id

    @_storage_errors
    async def clear_site_data(self, site_id: int) -> None:
        async with in_transaction() as conn:
            page_ids = await Page.filter(site_id=site_id).using_db(conn).values_list("id", flat=True)
            if page_ids:
                await IndexEntry.filter(page_id__in=list(page_ids)).using_db(conn).delete()
            await Lemma.filter(site_id=site_id).using_db(conn).delete()
            deleted = await Page.filter(site_id=site_id).using_db(conn).delete()
        logger.info(f"[Storage] Cleared site {site_id}: {deleted} pages removed")

    @_storage_errors
    async def upsert_site_status(
        self, site_id: int, status: SiteStatus, error: Optional[str] = None
    ) -> None:
        await Site.filter(id=site_id).update(
            status=status,
            last_error=error,
            status_time=datetime.now(timezone.utc),
        )

    @_storage_errors
    async def persist_page(self, site_id: int, url: str, status_code: int, html: str) -> int:
        page = await Page.create(site_id=site_id, path=url, code=status_code, content=html)
        return page.id

    @_storage_errors
    async def page_already_stored(self, site_id: int, url: str) -> bool:
        return await Page.filter(site_id=site_id, path=url).exists()

    @_storage_errors
    async def delete_page(self, site_id: int, url: str) -> bool:
        """Remove a page and take its lemma counts back out of the site totals."""
        async with in_transaction() as conn:
            page = await Page.filter(site_id=site_id, path=url).using_db(conn).first()
            if page is None:
                return False

            entries = await IndexEntry.filter(page_id=page.id).using_db(conn).values("lemma_id", "rank")
            for entry in entries:
                await Lemma.filter(id=entry["lemma_id"]).using_db(conn).update(
                    frequency=F("frequency") - int(entry["rank"])
                )
            await IndexEntry.filter(page_id=page.id).using_db(conn).delete()
            await Lemma.filter(site_id=site_id, frequency__lte=0).using_db(conn).delete()
            await page.delete(using_db=conn)
        return True

    @_storage_errors
    async def upsert_lemma_frequency(self, site_id: int, lemma: str, delta: int) -> int:
        existing = await Lemma.filter(site_id=site_id, lemma=lemma).first()
        if existing is None:
            try:
                created = await Lemma.create(site_id=site_id, lemma=lemma, frequency=delta)
                return created.id
            except IntegrityError:
                # another worker inserted the row between our read and insert
                existing = await Lemma.get(site_id=site_id, lemma=lemma)

        await Lemma.filter(id=existing.id).update(frequency=F("frequency") + delta)
        return existing.id

    @_storage_errors
    async def insert_page_lemma_index(self, page_id: int, lemma_id: int, count: int) -> None:
        await IndexEntry.create(page_id=page_id, lemma_id=lemma_id, rank=float(count))

    @_storage_errors
    async def site_statistics(self) -> List[SiteStatistics]:
        stats = []
        for site in await Site.all().order_by("id"):
            stats.append(
                SiteStatistics(
                    site_id=site.id,
                    url=site.url,
                    name=site.name,
                    status=SiteStatus(site.status),
                    status_time=site.status_time,
                    error=site.last_error,
                    pages=await Page.filter(site_id=site.id).count(),
                    lemmas=await Lemma.filter(site_id=site.id).count(),
                )
            )
        return stats
