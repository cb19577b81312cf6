import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchengine.utils.env_loader import load_environment


DEFAULT_USER_AGENT = "CustomSearchBot"
DEFAULT_REFERRER = "http://www.google.com"
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "../../config/config.yaml")

DEFAULT_EXCLUDED_POS_TAGS = ["CONJ", "INTJ", "PREP", "PRCL"]
DEFAULT_STOP_WORDS = [
    "и", "в", "не", "на", "с", "что", "по", "как", "то", "же",
    "да", "или", "если", "но", "вот", "так", "также", "ах", "ох", "давай", "пускай",
]


class SiteConfig(BaseModel):
    url: str
    name: str = ""

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        return value[:-1] if value.endswith("/") else value


class Config(BaseSettings):
    database_url: str = "postgresql://localhost:5432/searchengine"
    sites: List[SiteConfig] = []

    user_agent: str = DEFAULT_USER_AGENT
    referrer: str = DEFAULT_REFERRER
    request_timeout: float = 10.0
    crawler_workers: int = 8
    max_redirects: int = 10
    politeness_delay_min: float = 0.5
    politeness_delay_max: float = 5.0
    drain_timeout: float = 60.0
    max_depth: Optional[int] = None
    max_pages: Optional[int] = None

    morphology_backend: str = "pymorphy"
    excluded_pos_tags: List[str] = DEFAULT_EXCLUDED_POS_TAGS
    stop_words: List[str] = DEFAULT_STOP_WORDS

    api_port: int = 8080
    log_level: str = "INFO"
    log_path: Optional[str] = "logs/indexer.log"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("morphology_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in ("pymorphy", "rules"):
            raise ValueError(f"unknown morphology backend '{value}'")
        return value


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    config_path = path or os.getenv("SEARCHENGINE_CONFIG") or DEFAULT_CONFIG_PATH
    if not os.path.exists(config_path):
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_override(settings: Dict[str, Any], key: str, env_name: str) -> None:
    value = os.getenv(env_name)
    if value:
        settings[key] = value


def load_config(path: Optional[str] = None) -> Config:
    """Build the indexer configuration.

    Precedence for every setting: environment -> YAML file -> default.
    """
    load_environment()
    file_data = _load_yaml_config(path)

    settings: Dict[str, Any] = dict(file_data.get("indexer") or {})
    if "sites" in file_data:
        settings["sites"] = file_data.get("sites") or []

    _env_override(settings, "database_url", "DATABASE_URL")
    _env_override(settings, "user_agent", "CRAWLER_USER_AGENT")
    _env_override(settings, "crawler_workers", "CRAWLER_WORKERS")
    _env_override(settings, "max_redirects", "MAX_REDIRECTS")
    _env_override(settings, "max_depth", "MAX_DEPTH")
    _env_override(settings, "max_pages", "MAX_PAGES")
    _env_override(settings, "morphology_backend", "MORPHOLOGY_BACKEND")
    _env_override(settings, "log_level", "LOG_LEVEL")

    return Config(**settings)
