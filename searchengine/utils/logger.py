import os
import sys

from loguru import logger

_logger_initialized = False
_sink_ids: list[int] = []

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | site={extra[site]} | {message}"


def setup_logger(log_level: str = "INFO", log_path: str | None = "logs/indexer.log"):
    """Configure loguru sinks once per process and return the base logger.

    Components bind ``site=<url>`` while a site run is active; records logged
    outside a run show ``site=-``.
    """
    global _logger_initialized, _sink_ids

    if not _logger_initialized:
        logger.remove()
        logger.configure(extra={"site": "-"})

        sink_ids = []
        if log_path:
            log_dir = os.path.dirname(log_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            sink_ids.append(
                logger.add(
                    log_path,
                    rotation="10 MB",
                    retention="7 days",
                    level=log_level,
                    format=LOG_FORMAT,
                    enqueue=True,
                )
            )
        sink_ids.append(
            logger.add(
                sys.stderr,
                colorize=True,
                level=log_level,
                format=LOG_FORMAT,
            )
        )

        _sink_ids = sink_ids
        _logger_initialized = True

    return logger
