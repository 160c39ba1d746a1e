import os
import unittest
from unittest.mock import patch

from spendsmart.core.config import DEFAULT_DATABASE_URL, Settings


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings.load()
        self.assertEqual(s.database_url, DEFAULT_DATABASE_URL)
        self.assertEqual(s.undo_seconds, 5.0)
        self.assertEqual(s.due_scan_minutes, 60)
        self.assertEqual((s.upcoming_days, s.overdue_grace_days), (30, 7))
        with self.assertRaises(RuntimeError):
            s.require_bot_token()

    def test_overrides(self):
        env = {"BOT_TOKEN": "1:abc", "UNDO_SECONDS": "2.5", "DUE_SCAN_MINUTES": "15", "LOG_LEVEL": "debug"}
        with patch.dict(os.environ, env, clear=True):
            s = Settings.load()
        self.assertEqual(s.require_bot_token(), "1:abc")
        self.assertEqual(s.undo_seconds, 2.5)
        self.assertEqual(s.due_scan_minutes, 15)
        self.assertEqual(s.log_level, "DEBUG")

    def test_bad_numbers(self):
        for env in ({"UNDO_SECONDS": "soon"}, {"UNDO_SECONDS": "-1"}, {"DUE_SCAN_MINUTES": "1.5"}):
            with self.subTest(env=env), patch.dict(os.environ, env, clear=True):
                with self.assertRaises(RuntimeError):
                    Settings.load()


if __name__ == "__main__":
    unittest.main()
