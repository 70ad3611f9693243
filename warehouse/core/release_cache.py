"""
Release Cache
Per-site set of release ids that have already been evaluated
"""
from typing import Dict, Iterable, Set
import threading


class ReleaseCache:
    """Grows for the lifetime of the process; entries are never removed"""

    def __init__(self, site_names: Iterable[str] = ()):
        self._seen: Dict[str, Set[int]] = {}
        self._lock = threading.RLock()
        for name in site_names:
            self._seen.setdefault(name, set())

    def seen(self, site_name: str, release_id: int) -> bool:
        with self._lock:
            return release_id in self._seen.get(site_name, ())

    def record(self, site_name: str, release_id: int):
        with self._lock:
            self._seen.setdefault(site_name, set()).add(release_id)

    def is_cold(self, site_name: str) -> bool:
        """True until the first release of a site has been recorded"""
        with self._lock:
            return not self._seen.get(site_name)

    def size(self, site_name: str) -> int:
        with self._lock:
            return len(self._seen.get(site_name, ()))
