from __future__ import annotations

from typing import Set

from bs4 import BeautifulSoup
from loguru import logger

from searchengine.utils.url_utils import normalize_url


def extract_links(html: str | None, base_url: str) -> Set[str]:
    """
    Absolute URLs of every ``<a href>`` on the page.

    Relative hrefs are resolved against ``base_url`` (or the document's
    ``<base href>``), non-http(s) and malformed links are dropped.
    """
    links: Set[str] = set()
    if not html:
        return links

    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception as exc:
        logger.debug(f"[LinkExtractor] Unparseable HTML at {base_url}: {exc}")
        return links

    base_tag = soup.find("base", href=True)
    if base_tag is not None and isinstance(base_tag["href"], str):
        base_url = normalize_url(base_url, base_tag["href"]) or base_url

    for tag in soup.find_all("a", href=True):
        href = tag["href"]
        if not isinstance(href, str):
            continue
        normalized = normalize_url(base_url, href)
        if normalized:
            links.add(normalized)

    return links
