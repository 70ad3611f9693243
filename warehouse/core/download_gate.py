"""
Download Gate
Size ceiling checks and manual queueing of releases into the download daemon
"""
from typing import Optional
import logging

from ..models.queued_torrent import QueuedTorrent
from ..models.records import DownloadRecord, User
from ..models.release import ReleaseInfo
from ..sources.base import SiteAdapter
from ..utils.sizes import format_size
from .errors import AlreadyQueuedError, SizeLimitError
from .sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


class DownloadGate:
    def __init__(self, store: SqliteStore, downloads, size_limit: int):
        self.store = store
        self.downloads = downloads
        self.size_limit = int(size_limit)

    def check_size(self, user: User, site: SiteAdapter, release_id: int) -> Optional[ReleaseInfo]:
        """Reject releases above the ceiling for non-admins; admins are not checked"""
        if user.is_admin:
            return None
        info = site.get_info(release_id)
        if info.size > self.size_limit:
            raise SizeLimitError(
                f"The size of the release ({format_size(info.size)}) exceeds "
                f"the system limit of {format_size(self.size_limit)}."
            )
        return info

    def queue_manual_download(self, user: User, site: SiteAdapter, release_id: int) -> QueuedTorrent:
        self.check_size(user, site, release_id)
        data = site.download(release_id)

        before = {t.id for t in self.downloads.list_all(fields=["id"])}
        torrent = self.downloads.submit(data)
        if torrent.id in before:
            raise AlreadyQueuedError()

        queued = self.downloads.list_all(ids=[torrent.id], fields=["id", "name", "totalSize"])
        name = torrent.name
        size = None
        if queued:
            name = queued[0].name or name
            size = queued[0].total_size
        self.store.add_download(DownloadRecord(user_id=user.id, name=name, size=size, manual=True))
        logger.info('User %s queued "%s" (%s) from %s.', user.name, name, format_size(size), site.name)
        return torrent
