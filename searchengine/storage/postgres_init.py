from loguru import logger
from tortoise import Tortoise, connections

from searchengine.utils.db_utils import to_tortoise_url

MODELS_MODULE = "searchengine.storage.models"


async def init_storage(database_url: str, *, generate_schemas: bool = True) -> None:
    """
    Connect Tortoise to the index database and create/verify its tables.
    """
    db_url = to_tortoise_url(database_url)

    logger.info("Initializing index database and ORM models...")
    await Tortoise.init(
        db_url=db_url,
        modules={"models": [MODELS_MODULE]},
    )

    if generate_schemas:
        await Tortoise.generate_schemas(safe=True)
        logger.info("Index tables created or verified.")


async def close_storage() -> None:
    await connections.close_all()
