from aiohttp import web
from loguru import logger

from searchengine.indexing.orchestrator import IndexingOrchestrator
from searchengine.indexing.statistics import IndexingResult
from searchengine.monitoring.metrics import metrics_handler

ORCHESTRATOR_KEY = web.AppKey("orchestrator", IndexingOrchestrator)


def _result_response(result: IndexingResult) -> web.Response:
    status = 200 if result.result else 400
    return web.json_response(result.model_dump(exclude_none=True), status=status)


async def start_indexing_handler(request: web.Request) -> web.Response:
    result = await request.app[ORCHESTRATOR_KEY].start_indexing()
    return _result_response(result)


async def stop_indexing_handler(request: web.Request) -> web.Response:
    result = await request.app[ORCHESTRATOR_KEY].stop_indexing()
    return _result_response(result)


async def index_page_handler(request: web.Request) -> web.Response:
    params = dict(request.query)
    if request.can_read_body:
        params.update(await request.post())

    url = (params.get("url") or "").strip()
    if not url:
        return _result_response(IndexingResult(result=False, error="Parameter 'url' is required"))

    site_id = None
    raw_site_id = params.get("siteId")
    if raw_site_id:
        try:
            site_id = int(raw_site_id)
        except ValueError:
            return _result_response(IndexingResult(result=False, error="Parameter 'siteId' must be an integer"))

    result = await request.app[ORCHESTRATOR_KEY].index_single_page(url, site_id)
    return _result_response(result)


async def statistics_handler(request: web.Request) -> web.Response:
    response = await request.app[ORCHESTRATOR_KEY].get_statistics()
    status = 200 if response.result else 500
    return web.json_response(response.model_dump(mode="json", exclude_none=True), status=status)


def create_app(orchestrator: IndexingOrchestrator) -> web.Application:
    app = web.Application()
    app[ORCHESTRATOR_KEY] = orchestrator
    app.router.add_get("/api/startIndexing", start_indexing_handler)
    app.router.add_get("/api/stopIndexing", stop_indexing_handler)
    app.router.add_post("/api/indexPage", index_page_handler)
    app.router.add_get("/api/statistics", statistics_handler)
    app.router.add_get("/metrics", metrics_handler)
    return app


async def start_api_server(orchestrator: IndexingOrchestrator, port: int = 8080):
    app = create_app(orchestrator)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info(f"Control API listening on port {port}")

    return runner, site
