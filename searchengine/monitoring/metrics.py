from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    generate_latest,
    Counter,
    Gauge,
    Histogram,
)

# -------------------------
# Fetch Metrics
# -------------------------

REQUEST_COUNT = Counter(
    "searchengine_requests_total",
    "Total HTTP requests issued by the fetcher",
)

FAILED_REQUESTS = Counter(
    "searchengine_failed_requests_total",
    "Fetches that ended in a FetchError",
    ["reason"],
)

REQUEST_LATENCY = Histogram(
    "searchengine_request_latency_seconds",
    "Time to fetch a page, redirects included",
)

# -------------------------
# Crawl / Index Metrics
# -------------------------

PAGES_SAVED = Counter(
    "searchengine_pages_saved_total",
    "Pages persisted during site runs",
    ["site"],
)

LEMMAS_INDEXED = Counter(
    "searchengine_lemmas_indexed_total",
    "Page/lemma index rows written",
)

CRAWL_WORKERS_ACTIVE = Gauge(
    "searchengine_crawl_workers_active",
    "Crawl workers currently processing a URL",
)

SITE_RUNS = Counter(
    "searchengine_site_runs_total",
    "Finished site runs by final status",
    ["status"],
)

INDEXING_ACTIVE = Gauge(
    "searchengine_indexing_active",
    "1 while a full indexing run is in progress",
)


# -------------------------
# /metrics endpoint
# -------------------------

async def metrics_handler(request):
    data = generate_latest()

    # aiohttp refuses a charset inside content_type
    ctype = CONTENT_TYPE_LATEST.split(";")[0]

    return web.Response(
        body=data,
        content_type=ctype
    )
