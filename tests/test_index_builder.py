import pytest

from searchengine.indexing.index_builder import IndexBuilder
from searchengine.morphology.analyzers import SuffixRuleAnalyzer
from searchengine.morphology.lemmatizer import Lemmatizer

PAGE_ONE = """<html><body>
<h1>Леопард</h1>
<p>Леопарда видели в Осетии</p>
<!-- леопард -->
</body></html>"""
PAGE_TWO = "<html><body><p>Осетия и леопард</p></body></html>"


@pytest.fixture
def builder(storage):
    return IndexBuilder(Lemmatizer(SuffixRuleAnalyzer()), storage)


@pytest.mark.asyncio
async def test_index_page_writes_rows_and_site_frequencies(builder, storage):
    site_id = await storage.ensure_site("https://example.com", "Example")
    page_id = await storage.persist_page(site_id, "https://example.com/", 200, PAGE_ONE)

    frequencies = await builder.index_page(site_id, page_id, PAGE_ONE)

    # the commented-out word is not counted
    assert frequencies["леопард"] == 2
    assert frequencies["осетия"] == 1
    assert "в" not in frequencies
    assert storage.frequencies(site_id) == frequencies
    lemma_id = storage.lemmas[(site_id, "леопард")]["id"]
    assert storage.index[(page_id, lemma_id)] == 2


@pytest.mark.asyncio
async def test_site_frequency_is_sum_of_page_counts_in_any_order(storage):
    totals = []
    for order in ((PAGE_ONE, PAGE_TWO), (PAGE_TWO, PAGE_ONE)):
        builder = IndexBuilder(Lemmatizer(SuffixRuleAnalyzer()), storage)
        site_id = await storage.ensure_site(f"https://example{len(totals)}.com", "")
        for number, html in enumerate(order):
            page_id = await storage.persist_page(site_id, f"https://example.com/{number}", 200, html)
            await builder.index_page(site_id, page_id, html)
        totals.append(storage.frequencies(site_id))

    assert totals[0] == totals[1]
    assert totals[0]["леопард"] == 3
    assert totals[0]["осетия"] == 2


@pytest.mark.asyncio
async def test_empty_page_indexes_nothing(builder, storage):
    site_id = await storage.ensure_site("https://example.com", "")

    assert await builder.index_page(site_id, 1, "<html><body></body></html>") == {}
    assert storage.lemmas == {}
