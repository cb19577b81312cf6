from .site_model import Site, SiteStatus
from .page_model import Page
from .lemma_model import Lemma
from .index_model import IndexEntry

__all__ = [
    "Site",
    "SiteStatus",
    "Page",
    "Lemma",
    "IndexEntry",
]
