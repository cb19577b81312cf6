import asyncio
from typing import Dict

from loguru import logger

from searchengine.monitoring.metrics import LEMMAS_INDEXED
from searchengine.morphology.lemmatizer import Lemmatizer
from searchengine.parsing.html_normalizer import normalize
from searchengine.storage.base import IndexStorage


class IndexBuilder:
    def __init__(self, lemmatizer: Lemmatizer, storage: IndexStorage):
        self.lemmatizer = lemmatizer
        self.storage = storage

    async def lemma_frequencies(self, content: str) -> Dict[str, int]:
        """Lemma counts of an HTML document; lemmatization runs off the event loop."""
        text = normalize(content)
        if not text:
            return {}
        return await asyncio.to_thread(self.lemmatizer.lemmas_of, text)

    async def index_page(self, site_id: int, page_id: int, content: str) -> Dict[str, int]:
        """
        Add one stored page to the site's inverted index.

        Each lemma's page-local count becomes the rank of its index row and is
        added to the site-wide lemma frequency.
        """
        frequencies = await self.lemma_frequencies(content)

        for lemma, count in frequencies.items():
            lemma_id = await self.storage.upsert_lemma_frequency(site_id, lemma, count)
            await self.storage.insert_page_lemma_index(page_id, lemma_id, count)

        LEMMAS_INDEXED.inc(len(frequencies))
        logger.debug(f"[IndexBuilder] Page {page_id}: {len(frequencies)} lemmas indexed")
        return frequencies
