"""
Site SDK
Base interface for external release catalog sites.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models.release import BrowseResults, ReleaseInfo


class SiteAdapter(ABC):
    """
    Contract for catalog sites. Pages are 1-based and BrowseResults.pages is
    authoritative. Adapters log in on demand, re-authenticate once when a
    request is rejected, and raise SiteError on failure. They never retry
    network calls beyond that.
    """
    name = "UnnamedSite"
    categories: Dict[int, str] = {}
    last_error = ""

    @abstractmethod
    def browse(self, page: int = 1) -> BrowseResults:
        """Return the newest releases, one page at a time."""
        raise NotImplementedError

    @abstractmethod
    def search(self, query: str, categories: Optional[List[int]] = None, page: int = 1) -> BrowseResults:
        """Return releases matching a query, optionally limited to categories."""
        raise NotImplementedError

    @abstractmethod
    def download(self, release_id: int) -> bytes:
        """Return the raw torrent file of a release."""
        raise NotImplementedError

    @abstractmethod
    def get_info(self, release_id: int) -> ReleaseInfo:
        """Return authoritative details of a release."""
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "categories": [{"id": cid, "name": label} for cid, label in self.categories.items()],
        }
