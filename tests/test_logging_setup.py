import io
import json
import logging
import os
import unittest
from unittest.mock import patch

from book_sync.logging_setup import get_logger, log_event, with_extras


class LoggingSetupTests(unittest.TestCase):
    def test_records_go_to_stderr_not_stdout(self) -> None:
        err, out = io.StringIO(), io.StringIO()
        with patch("sys.stderr", err), patch("sys.stdout", out):
            adapter = get_logger("book_sync.tests.stream")
            log_event(adapter, logging.WARNING, "update rejected", id="b7")

        self.assertIn("update rejected | extras={\"id\": \"b7\"}", err.getvalue())
        self.assertEqual(out.getvalue(), "")
        self.assertFalse(adapter.logger.propagate)

    def test_package_level_env_wins(self) -> None:
        with patch.dict(os.environ, {"BOOK_SYNC_LOG_LEVEL": "warning", "LOG_LEVEL": "DEBUG"}):
            adapter = get_logger("book_sync.tests.level")
        self.assertEqual(adapter.logger.level, logging.WARNING)

    def test_with_extras_encodes_json(self) -> None:
        adapter = with_extras(get_logger("book_sync.tests.extras"), id="b1", score=0.9, path=None)
        self.assertEqual(json.loads(adapter.extra["extras"]), {"id": "b1", "path": None, "score": 0.9})

    def test_log_event_carries_extras(self) -> None:
        adapter = get_logger("book_sync.tests.event")
        with self.assertLogs("book_sync.tests.event", level="INFO") as captured:
            log_event(adapter, logging.INFO, "Batch finished", updated=2)
            log_event(adapter, logging.INFO, "No extras")

        first, second = captured.records
        self.assertEqual(first.getMessage(), "Batch finished")
        self.assertEqual(json.loads(first.extras), {"updated": 2})
        self.assertEqual(second.extras, "{}")


if __name__ == "__main__":
    unittest.main()
