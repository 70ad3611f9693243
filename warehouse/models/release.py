"""
Release Model
Represents a release listed on an external catalog site
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import re


# Binary units, as used by the catalog sites ("1.5 GB" means 1.5 GiB).
SIZE_UNITS = ["KB", "MB", "GB", "TB"]


@dataclass
class Release:
    """Catalog release as returned by browse/search"""
    id: int
    name: str
    category_id: int
    size: int  # bytes
    added: Optional[str] = None  # ISO date string
    downloads: int = 0
    seeders: int = 0
    leechers: int = 0

    @staticmethod
    def parse_size(value: str) -> int:
        """
        Convert a size to bytes
        Handles: "1.5 GB", "500 MB"
        """
        text = str(value)
        match = re.match(r'\s*([\d.]+)\s*([KMGT]B)', text.upper())
        if not match:
            raise ValueError(f"Unable to parse size {text!r}.")
        index = SIZE_UNITS.index(match.group(2))
        return int(float(match.group(1)) * 1024 ** (index + 1))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "categoryId": self.category_id,
            "added": self.added,
            "size": self.size,
            "downloads": self.downloads,
            "seeders": self.seeders,
            "leechers": self.leechers,
        }


@dataclass
class ReleaseInfo:
    """Authoritative details of a single release"""
    name: str
    size: int  # bytes, approximate
    seeders: int = 0
    leechers: int = 0
    downloads: int = 0


@dataclass
class BrowseResults:
    """One page of releases plus the total number of pages"""
    releases: List[Release] = field(default_factory=list)
    pages: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "torrents": [release.to_dict() for release in self.releases],
            "pages": self.pages,
        }
