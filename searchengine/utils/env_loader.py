from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import find_dotenv, load_dotenv
from loguru import logger


PathLike = Union[str, Path]

ENV_FILE_VARIABLE = "SEARCHENGINE_ENV_FILE"


def load_environment(dotenv_path: PathLike | None = None, *, override: bool = False) -> Optional[Path]:
    """Load indexer settings from a .env file into the process environment.

    The file is ``dotenv_path`` when given, else the file named by
    ``SEARCHENGINE_ENV_FILE``, else the nearest ``.env`` above the working
    directory. Variables that are already set win unless ``override`` is true.

    Returns the path that was loaded, or None when there was nothing to load.
    """
    path = dotenv_path or os.getenv(ENV_FILE_VARIABLE) or find_dotenv(usecwd=True)
    if not path:
        return None

    path = Path(path)
    if not path.is_file():
        logger.debug(f"[Env] No env file at {path}")
        return None

    load_dotenv(dotenv_path=path, override=override)
    return path
