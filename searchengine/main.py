import asyncio
import signal

from loguru import logger

# -------------------------------
# UVLOOP (used when installed)
# -------------------------------
try:
    import uvloop
    uvloop.install()
except ImportError:
    logger.warning("uvloop not available, using default asyncio loop.")

# -------------------------------
# INTERNAL IMPORTS
# -------------------------------
from searchengine.api.server import start_api_server
from searchengine.indexing.orchestrator import IndexingOrchestrator
from searchengine.morphology.lemmatizer import Lemmatizer
from searchengine.storage.postgres_init import close_storage, init_storage
from searchengine.storage.tortoise_storage import TortoiseStorage
from searchengine.utils.config_loader import load_config
from searchengine.utils.logger import setup_logger


# -------------------------------
# MAIN APPLICATION
# -------------------------------
async def main() -> None:
    config = load_config()
    setup_logger(config.log_level, config.log_path)

    logger.info("Starting search indexer...")
    logger.info(f"Configured sites: {', '.join(site.url for site in config.sites) or 'none'}")

    # ---- Database ----
    await init_storage(config.database_url)

    # ---- Morphology ----
    lemmatizer = Lemmatizer.from_config(config)

    orchestrator = IndexingOrchestrator(config, TortoiseStorage(), lemmatizer)

    # ---- Control API + /metrics ----
    api_runner, _ = await start_api_server(orchestrator, port=config.api_port)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_event.set)

    logger.info("Search indexer started successfully.")

    try:
        await shutdown_event.wait()
    except asyncio.CancelledError:
        pass
    finally:
        if orchestrator.is_indexing:
            await orchestrator.stop_indexing()

        await api_runner.shutdown()
        await api_runner.cleanup()

        await close_storage()
        logger.info("Search indexer stopped.")


# -------------------------------
# ENTRYPOINT
# -------------------------------
def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
