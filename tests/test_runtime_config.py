import tempfile
import unittest
from pathlib import Path

from book_sync.runtime_config import load_runtime_config


class RuntimeConfigTests(unittest.TestCase):
    def test_missing_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg = load_runtime_config(Path(tmp) / "absent.toml")
        self.assertEqual(cfg.reconcile.threshold, 0.80)
        self.assertEqual(cfg.plan.threshold, 0.85)
        self.assertEqual(cfg.reconcile.batch_size, 10)
        self.assertEqual(cfg.store.backend, "rest")
        self.assertTrue(cfg.catalog.skip_duplicates)

    def test_thresholds_accept_percentages(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "runtime.toml"
            path.write_text("[reconcile]\nthreshold = 75\n[plan]\nthreshold = 0.9\n", encoding="utf-8")
            cfg = load_runtime_config(path)
        self.assertAlmostEqual(cfg.reconcile.threshold, 0.75)
        self.assertAlmostEqual(cfg.plan.threshold, 0.9)

    def test_invalid_values_fall_back(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "runtime.toml"
            path.write_text(
                "[reconcile]\nbatch_size = -3\nthreshold = 250\n"
                "[store]\nbackend = \"mongo\"\n"
                "[plan]\nis_public = \"yes\"\n",
                encoding="utf-8",
            )
            cfg = load_runtime_config(path)
        self.assertEqual(cfg.reconcile.batch_size, 10)
        self.assertEqual(cfg.reconcile.threshold, 0.80)
        self.assertEqual(cfg.store.backend, "rest")
        self.assertTrue(cfg.plan.is_public)

    def test_malformed_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "runtime.toml"
            path.write_text("[reconcile\nthreshold = ", encoding="utf-8")
            cfg = load_runtime_config(path)
        self.assertEqual(cfg.reconcile.threshold, 0.80)


if __name__ == "__main__":
    unittest.main()
