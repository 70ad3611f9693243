import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from warehouse.core.configuration import Configuration
from warehouse.core.errors import ConfigurationError, NotFoundError
from warehouse.sources.registry import build_sites, get_site
from warehouse.sources.torrentleech import TorrentLeechSite


class TestConfiguration(unittest.TestCase):
    def test_defaults(self):
        config = Configuration()
        self.assertEqual(config.listen_port, 8080)
        self.assertEqual(config.max_sessions_per_user, 3)
        self.assertEqual(config.session_max_age, 2592000)
        self.assertEqual(config.transmission["port"], 9091)

    def test_nested_settings_are_merged(self):
        config = Configuration({"transmission": {"host": "nas"}, "freeDiskSpace": {"min": 2}, "torrentSizeLimit": 1.5})
        self.assertEqual(config.transmission["host"], "nas")
        self.assertEqual(config.transmission["port"], 9091)
        self.assertEqual(config.free_disk_space_min_bytes, 2 * 1024 ** 3)
        self.assertEqual(config.free_disk_space["path"], "/")
        self.assertEqual(config.torrent_size_limit, int(1.5 * 1024 ** 3))

    def test_load_from_environment(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text(json.dumps({"listenPort": 9000, "externalHostname": "warehouse.example"}), encoding="utf-8")
            with patch.dict(os.environ, {"WAREHOUSE_CONFIG": str(path)}):
                config = Configuration.load()
            self.assertEqual(config.listen_port, 9000)
            self.assertEqual(config.external_hostname, "warehouse.example")
            self.assertEqual(config.path, path)

    def test_missing_and_malformed_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ConfigurationError):
                Configuration.load(Path(tmp) / "missing.json")
            broken = Path(tmp) / "broken.json"
            broken.write_text("{not json", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                Configuration.load(broken)
            listing = Path(tmp) / "list.json"
            listing.write_text("[]", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                Configuration.load(listing)

    def test_invalid_number(self):
        with self.assertRaises(ConfigurationError):
            Configuration({"listenPort": "eighty"}).listen_port


class TestSiteRegistry(unittest.TestCase):
    def test_no_sites_configured(self):
        self.assertEqual(build_sites([]), {})

    def test_builds_configured_sites(self):
        sites = build_sites([{"name": "torrentleech.org", "username": "u", "password": "p"}], timeout=3.0)
        site = get_site(sites, "torrentleech.org")
        self.assertIsInstance(site, TorrentLeechSite)
        self.assertEqual(site.timeout, 3.0)
        with self.assertRaises(NotFoundError):
            get_site(sites, "elsewhere.org")

    def test_configuration_errors(self):
        with self.assertRaises(ConfigurationError):
            build_sites([{"name": "elsewhere.org", "username": "u", "password": "p"}])
        with self.assertRaises(ConfigurationError):
            build_sites([{"name": "torrentleech.org", "username": "u"}])


if __name__ == "__main__":
    unittest.main()
