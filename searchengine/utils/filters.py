import re
from urllib.parse import urlparse

from searchengine.utils.url_utils import get_domain

# Resources that are never HTML pages worth indexing
BLOCKED_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".mp4", ".mp3", ".pdf",
    ".doc", ".docx", ".xls", ".xlsx", ".zip", ".rar", ".exe", ".apk", ".iso", ".tar",
    ".gz", ".7z", ".css", ".js", ".xml", ".json",
)

# Page.path column width
MAX_URL_LENGTH = 2048


def is_valid_link(base_domain: str, url: str) -> bool:
    """Whether ``url`` is a crawlable page of the site hosted at ``base_domain``."""
    if len(url) > MAX_URL_LENGTH:
        return False

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False

    if not parsed.netloc:
        return False

    combined_path = parsed.path
    if parsed.query:
        combined_path = f"{combined_path}?{parsed.query}"
    combined_path = combined_path.lower()

    if any(re.search(re.escape(ext) + r"(?:$|[?#&])", combined_path) for ext in BLOCKED_EXTENSIONS):
        return False

    # www.example.com and example.com are the same site, other subdomains are not
    if get_domain(url) != base_domain:
        return False

    return True
