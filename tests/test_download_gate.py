import unittest

from fakes import GIB, FakeDaemon, FakeSite

from warehouse.core.download_gate import DownloadGate
from warehouse.core.errors import AlreadyQueuedError, SizeLimitError
from warehouse.core.sqlite_store import SqliteStore
from warehouse.models.release import ReleaseInfo


class TestDownloadGate(unittest.TestCase):
    def setUp(self):
        self.store = SqliteStore(":memory:")
        self.user = self.store.create_user("alice", b"s" * 32, b"p" * 64, False)
        self.admin = self.store.create_user("root", b"s" * 32, b"p" * 64, True)
        self.daemon = FakeDaemon()
        self.site = FakeSite()
        self.site.info[1] = ReleaseInfo(name="Exact", size=GIB)
        self.site.info[2] = ReleaseInfo(name="Over", size=GIB + 1)
        self.gate = DownloadGate(self.store, self.daemon, GIB)

    def tearDown(self):
        self.store.close()

    def test_size_ceiling_for_users(self):
        self.assertEqual(self.gate.check_size(self.user, self.site, 1).size, GIB)
        with self.assertRaises(SizeLimitError) as ctx:
            self.gate.check_size(self.user, self.site, 2)
        self.assertEqual(
            str(ctx.exception),
            "The size of the release (1.00 GiB) exceeds the system limit of 1.00 GiB.",
        )

    def test_admins_skip_the_size_check(self):
        self.assertIsNone(self.gate.check_size(self.admin, self.site, 1))
        self.assertIsNone(self.gate.check_size(self.admin, self.site, 2))
        self.assertEqual(self.site.info_requests, [])

    def test_manual_download_is_recorded(self):
        self.daemon.sizes[b"torrent-1"] = 12345
        torrent = self.gate.queue_manual_download(self.user, self.site, 1)
        self.assertEqual(torrent.name, "torrent-1")
        downloads = self.store.find_downloads(self.user.id)
        self.assertEqual(len(downloads), 1)
        self.assertTrue(downloads[0].manual)
        self.assertEqual(downloads[0].size, 12345)

    def test_already_queued(self):
        self.gate.queue_manual_download(self.user, self.site, 1)
        with self.assertRaises(AlreadyQueuedError) as ctx:
            self.gate.queue_manual_download(self.user, self.site, 1)
        self.assertEqual(str(ctx.exception), "This torrent had already been added.")
        self.assertEqual(self.store.download_stats(self.user.id)[0], 1)

    def test_rejected_release_is_not_downloaded(self):
        with self.assertRaises(SizeLimitError):
            self.gate.queue_manual_download(self.user, self.site, 2)
        self.assertEqual(self.site.downloaded, [])
        self.assertEqual(self.daemon.submitted, [])


if __name__ == "__main__":
    unittest.main()
