from typing import Iterator, Set

from searchengine.utils.url_utils import canonical_url


class VisitedRegistry:
    """
    URLs claimed during one site run.

    ``claim`` is the only dedup gate of the crawler. It never awaits, so on
    the event loop the membership test and the insert happen as one step and
    two workers can never both win the same URL.
    """

    def __init__(self) -> None:
        self._claimed: Set[str] = set()

    def claim(self, url: str) -> bool:
        """Mark ``url`` as owned by the caller; False if it was already claimed."""
        key = canonical_url(url)
        if key in self._claimed:
            return False
        self._claimed.add(key)
        return True

    def is_claimed(self, url: str) -> bool:
        return canonical_url(url) in self._claimed

    def __len__(self) -> int:
        return len(self._claimed)

    def __iter__(self) -> Iterator[str]:
        return iter(self._claimed)
