from urllib.parse import urlparse, urlunparse, urljoin
import re


def _clean_tracking_params(query: str) -> str:
    clean_query = re.sub(r"(utm_[^=&]+|sessionid|fbclid|gclid|yclid)=[^&]*", "", query, flags=re.IGNORECASE)
    clean_query = re.sub(r"&&+", "&", clean_query).strip("&")
    return clean_query


def normalize_url(base_url: str, link: str) -> str | None:
    """Resolve ``link`` against ``base_url`` into a canonical absolute URL.

    Returns None for non-http(s) schemes, links without a host and anything
    urllib refuses to parse.
    """
    try:
        raw_link = link.strip()
        if not raw_link:
            return None
        if raw_link.startswith("//"):
            base_scheme = urlparse(base_url).scheme or "http"
            raw_link = f"{base_scheme}:{raw_link}"

        url = urljoin(base_url, raw_link)
        parsed = urlparse(url)

        if parsed.scheme not in ("http", "https"):
            return None
        if not parsed.netloc:
            return None
        # .port raises ValueError on a malformed port
        _ = parsed.port

        clean_query = _clean_tracking_params(parsed.query)
        parsed = parsed._replace(query=clean_query, fragment="")

        path = parsed.path or "/"
        path = re.sub(r"/{2,}", "/", path)

        parsed = parsed._replace(path=path, netloc=parsed.netloc.lower())
        return urlunparse(parsed)

    except ValueError:
        return None


def canonical_url(url: str) -> str:
    """Canonical form of an absolute URL, falling back to the input."""
    return normalize_url(url, url) or url


def is_same_domain(url1: str, url2: str) -> bool:
    return get_domain(url1) == get_domain(url2)


def get_domain(url: str) -> str:
    """Host part of ``url`` in lower case, without port and ``www.`` prefix."""
    try:
        netloc = urlparse(url).netloc.lower()
    except ValueError:
        return ""
    host = netloc.rsplit("@", 1)[-1].split(":", 1)[0]
    if host.startswith("www."):
        host = host[4:]
    return host
