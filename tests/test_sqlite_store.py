import unittest
from datetime import timedelta

from warehouse.core.errors import DuplicateKeyError
from warehouse.core.sqlite_store import SqliteStore
from warehouse.models.records import DownloadRecord, utc_now


class TestSqliteStore(unittest.TestCase):
    def setUp(self):
        self.store = SqliteStore(":memory:")
        self.user = self.store.create_user("alice", b"s" * 32, b"p" * 64, False)

    def tearDown(self):
        self.store.close()

    def test_duplicate_user_name(self):
        with self.assertRaises(DuplicateKeyError):
            self.store.create_user("alice", b"s" * 32, b"p" * 64, True)

    def test_duplicate_session_token(self):
        self.store.insert_session(self.user.id, b"t" * 32, "10.0.0.1", "ua")
        with self.assertRaises(DuplicateKeyError):
            self.store.insert_session(self.user.id, b"t" * 32, "10.0.0.2", "ua")

    def test_find_session_matches_user_agent(self):
        self.store.insert_session(self.user.id, b"t" * 32, "10.0.0.1", None)
        self.assertIsNotNone(self.store.find_session(b"t" * 32, None))
        self.assertIsNone(self.store.find_session(b"t" * 32, "other"))

    def test_sessions_ordered_by_last_access(self):
        now = utc_now()
        a = self.store.insert_session(self.user.id, b"a" * 32, "ip", "ua")
        b = self.store.insert_session(self.user.id, b"b" * 32, "ip", "ua")
        self.store.touch_session(a.id, now + timedelta(minutes=5))
        self.store.touch_session(b.id, now - timedelta(minutes=5))
        ordered = [s.id for s in self.store.find_sessions_by_user(self.user.id)]
        self.assertEqual(ordered, [b.id, a.id])

    def test_record_subscription_match(self):
        first = self.store.create_subscription(self.user.id, "Show", None)
        second = self.store.create_subscription(self.user.id, "Other", "TV")
        when = utc_now()
        self.assertEqual(self.store.record_subscription_match([first.id, second.id], when), 2)
        self.store.record_subscription_match([first.id], when)
        self.assertEqual(self.store.get_subscription(first.id).matches, 2)
        self.assertEqual(self.store.get_subscription(second.id).matches, 1)
        self.assertEqual(self.store.get_subscription(second.id).last_match, when)

    def test_delete_subscription_honors_owner(self):
        sub = self.store.create_subscription(self.user.id, "Show", None)
        self.assertFalse(self.store.delete_subscription(sub.id, self.user.id + 1))
        self.assertTrue(self.store.delete_subscription(sub.id, self.user.id))
        self.assertFalse(self.store.delete_subscription(sub.id))

    def test_download_stats(self):
        self.assertEqual(self.store.download_stats(self.user.id), (0, 0))
        self.store.add_download(DownloadRecord(self.user.id, "A", 100, True))
        self.store.add_download(DownloadRecord(self.user.id, "B", None, False))
        self.store.add_download(DownloadRecord(self.user.id, "C", 50, False))
        self.assertEqual(self.store.download_stats(self.user.id), (3, 150))
        self.assertEqual([d.name for d in self.store.find_downloads(self.user.id)], ["A", "B", "C"])

    def test_delete_user_by_name(self):
        self.assertTrue(self.store.delete_user_by_name("alice"))
        self.assertFalse(self.store.delete_user_by_name("alice"))
        self.assertIsNone(self.store.get_user(self.user.id))


if __name__ == "__main__":
    unittest.main()
