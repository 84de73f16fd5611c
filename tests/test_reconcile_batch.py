import json
import tempfile
import unittest
from pathlib import Path

from book_sync.matching.normalize import normalize
from book_sync.models import CatalogEntry, SourceRecord
from book_sync.reconcile.driver import next_offset, reconcile_batch


def _entry(name: str) -> CatalogEntry:
    slug = name.lower().replace(" ", "-")
    return CatalogEntry(title=name, url=f"https://files.example/{slug}", size="4 MB", normalized=normalize(name))


class _FakeRepo:
    def __init__(self, records, *, fail_ids=None, missing_ids=None):
        self.records = list(records)
        self.fail_ids = set(fail_ids or [])
        self.missing_ids = set(missing_ids or [])
        self.updates = []

    def _eligible(self):
        return sorted((r for r in self.records if r.is_eligible), key=lambda r: (r.title, r.id))

    def count_eligible(self):
        return len(self._eligible())

    def page_eligible(self, offset, limit):
        return self._eligible()[offset:offset + limit]

    def update_one(self, record_id, file_url, updated_at):
        if record_id in self.fail_ids:
            raise RuntimeError("write timed out")
        if record_id in self.missing_ids:
            return False
        self.updates.append({"id": record_id, "file_url": file_url, "updated_at": updated_at})
        return True

    def list_all(self, *, eligible_only=False):
        return self._eligible() if eligible_only else list(self.records)


class _BrokenRepo(_FakeRepo):
    def count_eligible(self):
        raise ConnectionError("store unreachable")


CATALOG = [
    _entry("Intro to Algebra, 2nd Ed.pdf"),
    _entry("Chemistry Principles.pdf"),
    _entry("Harry Potter Sorcerer Secrets.pdf"),
]


class ReconcileBatchTests(unittest.TestCase):
    def _run(self, repo, **kwargs):
        lines = []
        kwargs.setdefault("reports_dir", None)
        report = reconcile_batch(repo, CATALOG, echo=lines.append, **kwargs)
        return report, lines

    def test_dry_run_never_writes(self) -> None:
        repo = _FakeRepo([SourceRecord(id="b1", title="Introduction to Algebra")])

        report, lines = self._run(repo, dry_run=True, threshold=0.8)

        self.assertEqual(repo.updates, [])
        self.assertEqual(report.mode, "dry-run")
        self.assertEqual(report.statistics["updated"], 1)
        self.assertEqual(report.results["updated"][0]["status"], "simulated")
        self.assertEqual(report.results["updated"][0]["url"], CATALOG[0].url)
        self.assertIsNone(repo.records[0].file_url)
        self.assertIn("DRY RUN: no changes will be written", lines)

    def test_live_run_writes_matched_url(self) -> None:
        repo = _FakeRepo([SourceRecord(id="b1", title="Introduction to Algebra")])

        report, _ = self._run(repo, threshold=0.8)

        self.assertEqual(len(repo.updates), 1)
        self.assertEqual(repo.updates[0]["id"], "b1")
        self.assertEqual(repo.updates[0]["file_url"], CATALOG[0].url)
        self.assertTrue(repo.updates[0]["updated_at"])
        self.assertEqual(report.statistics["success_rate"], "100.0%")
        self.assertEqual(repo.records[0].file_url, CATALOG[0].url)

    def test_near_miss_is_not_found_and_needs_review(self) -> None:
        repo = _FakeRepo([SourceRecord(id="b2", title="Harry Potter Sorcerer Stone")])

        report, lines = self._run(repo, threshold=0.8)

        self.assertEqual(repo.updates, [])
        self.assertEqual(report.statistics["not_found"], 1)
        row = report.results["not_found"][0]
        self.assertEqual(row["closest_match"], "Harry Potter Sorcerer Secrets.pdf")
        self.assertEqual(len(report.needs_review), 1)
        self.assertTrue(any(line.startswith("  No match found") for line in lines))

    def test_record_failures_do_not_stop_batch(self) -> None:
        repo = _FakeRepo(
            [
                SourceRecord(id="a", title="Introduction to Algebra"),
                SourceRecord(id="c", title="Chemistry Principles"),
                SourceRecord(id="z", title="   "),
            ],
            fail_ids={"a"},
        )
        report, _ = self._run(repo, threshold=0.8)

        self.assertEqual(report.statistics["processed"], 3)
        self.assertEqual(report.statistics["updated"], 1)
        self.assertEqual(report.statistics["errors"], 2)
        errors = {e["id"]: e["error"] for e in report.results["errors"]}
        self.assertIn("write timed out", errors["a"])
        self.assertIn("z", errors)
        self.assertEqual([u["id"] for u in repo.updates], ["c"])

    def test_update_matching_no_row_is_an_error(self) -> None:
        repo = _FakeRepo([SourceRecord(id="gone", title="Chemistry Principles")], missing_ids={"gone"})

        report, _ = self._run(repo, threshold=0.8)

        self.assertEqual(report.statistics["updated"], 0)
        self.assertEqual(report.results["errors"][0]["id"], "gone")

    def test_empty_batch_reports_zero_percent(self) -> None:
        repo = _FakeRepo([])

        report, lines = self._run(repo)

        self.assertEqual(report.statistics["processed"], 0)
        self.assertEqual(report.statistics["success_rate"], "0%")
        self.assertIsNone(report.batch["next_offset"])
        self.assertIn("All eligible books processed.", lines)

    def test_store_failure_propagates(self) -> None:
        with self.assertRaises(ConnectionError):
            self._run(_BrokenRepo([]))

    def test_live_batches_resume_without_gaps(self) -> None:
        repo = _FakeRepo(
            [
                SourceRecord(id="1", title="Algebra Fundamentals"),
                SourceRecord(id="2", title="Basket Weaving"),
                SourceRecord(id="3", title="Chemistry Principles"),
            ]
        )
        catalog = [_entry("Algebra Fundamentals.pdf"), _entry("Chemistry Principles.pdf")]

        first = reconcile_batch(repo, catalog, start=0, limit=2, threshold=0.8, reports_dir=None, echo=lambda _: None)
        self.assertEqual(first.batch["next_offset"], 1)

        second = reconcile_batch(
            repo, catalog, start=first.batch["next_offset"], limit=2, threshold=0.8,
            reports_dir=None, echo=lambda _: None,
        )
        self.assertEqual([r["id"] for r in second.results["updated"]], ["3"])
        self.assertIsNone(second.batch["next_offset"])
        self.assertEqual(sorted(u["id"] for u in repo.updates), ["1", "3"])

    def test_report_file_written(self) -> None:
        repo = _FakeRepo([SourceRecord(id="b1", title="Introduction to Algebra")])
        with tempfile.TemporaryDirectory() as tmpdir:
            self._run(repo, dry_run=True, reports_dir=tmpdir)
            files = list(Path(tmpdir).glob("reconcile_dry-run_*.json"))
            self.assertEqual(len(files), 1)
            payload = json.loads(files[0].read_text(encoding="utf-8"))

        self.assertEqual(payload["mode"], "dry-run")
        self.assertEqual(payload["statistics"]["updated"], 1)
        self.assertEqual(payload["batch"]["offset"], 0)
        self.assertIn("not_found", payload["results"])


class NextOffsetTests(unittest.TestCase):
    def test_dry_run_advances_by_window(self) -> None:
        self.assertEqual(next_offset(0, 10, 10, 4, 50, True), 10)
        self.assertIsNone(next_offset(40, 10, 10, 4, 50, True))

    def test_live_skips_only_rows_left_eligible(self) -> None:
        self.assertEqual(next_offset(0, 10, 10, 4, 50, False), 6)
        self.assertIsNone(next_offset(0, 10, 3, 3, 3, False))
        self.assertIsNone(next_offset(5, 10, 0, 0, 5, False))


if __name__ == "__main__":
    unittest.main()
