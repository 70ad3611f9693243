"""
Site registry
Builds the name -> adapter map once at startup from configured credentials.
"""
from typing import Dict, Iterable, Mapping, Type
import logging

from ..core.errors import ConfigurationError, NotFoundError
from .base import SiteAdapter
from .torrentleech import TorrentLeechSite

logger = logging.getLogger(__name__)

SITE_CLASSES: Dict[str, Type[SiteAdapter]] = {
    TorrentLeechSite.name: TorrentLeechSite,
}


def build_sites(site_configs: Iterable[Mapping], timeout: float = 25.0) -> Dict[str, SiteAdapter]:
    """
    Create one adapter per configured site.
    Every entry needs name, username and password; with a non-empty sites
    list every known site must be configured.
    """
    configs = list(site_configs or [])
    if not configs:
        return {}

    by_name: Dict[str, Mapping] = {}
    for entry in configs:
        name = str(entry.get("name") or "").strip()
        if name not in SITE_CLASSES:
            raise ConfigurationError(f'Unknown site "{name}" in configuration.')
        if not entry.get("username") or not entry.get("password"):
            raise ConfigurationError(f'Missing credentials for site "{name}".')
        by_name[name] = entry

    sites: Dict[str, SiteAdapter] = {}
    for name, site_class in SITE_CLASSES.items():
        entry = by_name.get(name)
        if entry is None:
            raise ConfigurationError(f'Unable to find credentials for site "{name}".')
        sites[name] = site_class(str(entry["username"]), str(entry["password"]), timeout=timeout)
        logger.info("Registered site %s.", name)
    return sites


def get_site(sites: Mapping[str, SiteAdapter], name: str) -> SiteAdapter:
    site = sites.get(name)
    if site is None:
        raise NotFoundError("No such site.")
    return site
