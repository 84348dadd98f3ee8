"""Chart repository storage and index."""

from .index import Index, IndexEntry
from .repo import CHARTS_DIR, INDEX_FILE, LocalRepo, Repo

__all__ = ["Index", "IndexEntry", "LocalRepo", "Repo", "CHARTS_DIR", "INDEX_FILE"]
