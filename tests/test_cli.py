import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from warehouse.cli import main
from warehouse.core.accounts import AccountService
from warehouse.core.sqlite_store import SqliteStore


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        tmp = Path(self._tmp.name)
        self.db_path = tmp / "warehouse.sqlite3"
        self.config_path = tmp / "configuration.json"
        self.config_path.write_text(json.dumps({"databasePath": str(self.db_path)}), encoding="utf-8")
        patcher = patch("warehouse.cli.configure_logging")
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self._tmp.cleanup()

    def _run(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = main(["-C", str(self.config_path), *argv])
        return code, stdout.getvalue(), stderr.getvalue()

    def _authenticate(self, name, password):
        store = SqliteStore(self.db_path)
        try:
            return AccountService(store).authenticate(name, password)
        finally:
            store.close()

    def test_create_prints_generated_password(self):
        code, out, _ = self._run("-c", "alice")
        self.assertEqual(code, 0)
        password = out.strip().rsplit(": ", 1)[1]
        self.assertEqual(len(password), 32)
        user = self._authenticate("alice", password)
        self.assertIsNotNone(user)
        self.assertFalse(user.is_admin)

    def test_create_administrator(self):
        code, out, _ = self._run("-c", "root", "-a")
        self.assertEqual(code, 0)
        self.assertTrue(self._authenticate("root", out.strip().rsplit(": ", 1)[1]).is_admin)

    def test_create_duplicate_user(self):
        self.assertEqual(self._run("-c", "alice")[0], 0)
        code, _, err = self._run("-c", "alice")
        self.assertEqual(code, 1)
        self.assertIn("Username already in use.", err)

    def test_admin_flag_requires_create(self):
        code, _, err = self._run("-d", "alice", "-a")
        self.assertEqual(code, 1)
        self.assertIn("-a/--admin", err)

    def test_reset_password(self):
        _, out, _ = self._run("-c", "alice")
        old_password = out.strip().rsplit(": ", 1)[1]

        code, out, _ = self._run("-r", "alice")
        self.assertEqual(code, 0)
        new_password = out.strip().rsplit(": ", 1)[1]
        self.assertEqual(len(new_password), 32)
        self.assertIsNone(self._authenticate("alice", old_password))
        self.assertIsNotNone(self._authenticate("alice", new_password))

    def test_delete_user(self):
        self._run("-c", "alice")
        code, out, _ = self._run("-d", "alice")
        self.assertEqual(code, 0)
        self.assertIn('Deleted user "alice".', out)

    def test_unknown_users(self):
        for flag in ("-d", "-r"):
            code, out, err = self._run(flag, "nobody")
            self.assertEqual(code, 1, flag)
            self.assertEqual(out, "")
            self.assertIn("nobody", err)

    def test_missing_configuration(self):
        self.config_path = Path(self._tmp.name) / "missing.json"
        code, _, err = self._run("-c", "alice")
        self.assertEqual(code, 1)
        self.assertIn("does not exist", err)


if __name__ == "__main__":
    unittest.main()
