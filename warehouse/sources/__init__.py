from .base import SiteAdapter
from .registry import SITE_CLASSES, build_sites, get_site
from .torrentleech import TorrentLeechSite

__all__ = [
    "SITE_CLASSES",
    "SiteAdapter",
    "TorrentLeechSite",
    "build_sites",
    "get_site",
]
