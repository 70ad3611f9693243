"""
Disk Reclaimer
Removes the oldest queued torrents when free disk space drops below a floor
"""
from typing import Callable, List, Optional
import logging
import math
import shutil

from ..models.queued_torrent import QueuedTorrent
from ..utils.sizes import format_size

logger = logging.getLogger(__name__)

RECLAIM_FIELDS = ["id", "name", "addedDate", "totalSize"]


def disk_free_bytes(path: str) -> int:
    return shutil.disk_usage(path).free


class DiskReclaimer:
    def __init__(
        self,
        downloads,
        path: str,
        min_bytes: int,
        free_space: Optional[Callable[[str], int]] = None,
    ):
        self.downloads = downloads
        self.path = path
        self.min_bytes = int(min_bytes)
        self._free_space = free_space or disk_free_bytes

    def run_once(self) -> List[QueuedTorrent]:
        """Returns the removed torrents"""
        free = self._free_space(self.path)
        deficit = math.floor(self.min_bytes - free)
        if deficit <= 0:
            return []

        torrents = self.downloads.list_all(fields=RECLAIM_FIELDS)
        if not torrents:
            logger.warning("Running out of disk space (%s available) without any queued torrents.",
                           format_size(free))
            return []

        torrents.sort(key=lambda t: t.added_date or 0)
        batch: List[QueuedTorrent] = []
        for torrent in torrents:
            if deficit <= 0:
                break
            batch.append(torrent)
            deficit -= torrent.total_size or 0

        self.downloads.remove([t.id for t in batch], delete_data=True)
        for torrent in batch:
            logger.info('Deleted torrent "%s" (%s).', torrent.name, format_size(torrent.total_size))
        logger.info("Deleted %d torrent(s) to free disk space (%s available).",
                    len(batch), format_size(self._free_space(self.path)))
        return batch
