import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from sqlalchemy import create_engine, text

from book_sync.store import StoreConfigError, get_books_repo
from book_sync.store.books_repo import SqlBooksRepo
from book_sync.store.client import checked_table_name, get_rest_session
from book_sync.store.export import load_records_export
from book_sync.store.rest_repo import RestBooksRepo


def _response(*, status=200, payload=None, headers=None):
    r = Mock()
    r.status_code = status
    r.json.return_value = payload
    r.headers = headers or {}
    r.text = json.dumps(payload)
    r.raise_for_status.return_value = None
    return r


class SqlBooksRepoTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite://")
        with self.engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE books (id TEXT PRIMARY KEY, title TEXT, author TEXT, file_url TEXT, updated_at TEXT)"
            ))
            conn.execute(
                text("INSERT INTO books (id, title, author, file_url) VALUES (:id, :title, :author, :file_url)"),
                [
                    {"id": "3", "title": "Chemistry", "author": None, "file_url": None},
                    {"id": "1", "title": "Algebra", "author": "Doe", "file_url": ""},
                    {"id": "2", "title": "Biology", "author": None, "file_url": "https://files.example/bio.pdf"},
                ],
            )
        self.repo = SqlBooksRepo(self.engine)

    def test_eligible_rows_ordered_by_title(self) -> None:
        self.assertEqual(self.repo.count_eligible(), 2)
        page = self.repo.page_eligible(0, 10)
        self.assertEqual([r.id for r in page], ["1", "3"])
        self.assertIsNone(page[0].file_url)
        self.assertEqual(page[0].author, "Doe")
        self.assertEqual([r.id for r in self.repo.page_eligible(1, 1)], ["3"])

    def test_update_one(self) -> None:
        self.assertTrue(self.repo.update_one("1", "https://files.example/alg.pdf", "2024-03-01T00:00:00+00:00"))
        self.assertFalse(self.repo.update_one("missing", "x", "2024-03-01T00:00:00+00:00"))
        self.assertEqual(self.repo.count_eligible(), 1)
        self.assertEqual(len(self.repo.list_all()), 3)
        self.assertEqual([r.id for r in self.repo.list_all(eligible_only=True)], ["3"])

    def test_rejects_unsafe_table_name(self) -> None:
        with self.assertRaises(StoreConfigError):
            SqlBooksRepo(self.engine, table="books; DROP TABLE books")
        self.assertEqual(checked_table_name("books"), "books")


class RestBooksRepoTests(unittest.TestCase):
    def _repo(self, session, **kwargs):
        return RestBooksRepo(session, base_url="https://db.example", table="books", timeout=5, **kwargs)

    def test_count_reads_content_range(self) -> None:
        session = Mock()
        session.head.return_value = _response(headers={"Content-Range": "0-0/42"})

        self.assertEqual(self._repo(session).count_eligible(), 42)
        _, kwargs = session.head.call_args
        self.assertEqual(kwargs["params"]["or"], "(file_url.is.null,file_url.eq.)")
        self.assertEqual(kwargs["headers"]["Prefer"], "count=exact")

    def test_page_uses_eligible_filter_and_title_order(self) -> None:
        session = Mock()
        session.get.return_value = _response(payload=[{"id": 7, "title": " Algebra ", "author": "nan", "file_url": None}])

        page = self._repo(session).page_eligible(20, 10)

        self.assertEqual(page[0].id, "7")
        self.assertEqual(page[0].title, "Algebra")
        self.assertIsNone(page[0].author)
        args, kwargs = session.get.call_args
        self.assertEqual(args[0], "https://db.example/rest/v1/books")
        self.assertEqual(kwargs["params"]["order"], "title.asc,id.asc")
        self.assertEqual(kwargs["params"]["offset"], "20")
        self.assertEqual(kwargs["params"]["limit"], "10")

    def test_update_one_reports_whether_a_row_changed(self) -> None:
        session = Mock()
        session.patch.side_effect = [_response(payload=[{"id": "1"}]), _response(payload=[])]
        repo = self._repo(session)

        self.assertTrue(repo.update_one("1", "https://files.example/a.pdf", "ts"))
        self.assertFalse(repo.update_one("2", "https://files.example/b.pdf", "ts"))
        _, kwargs = session.patch.call_args_list[0]
        self.assertEqual(kwargs["params"], {"id": "eq.1"})
        self.assertEqual(kwargs["json"], {"file_url": "https://files.example/a.pdf", "updated_at": "ts"})

    def test_list_all_paginates(self) -> None:
        session = Mock()
        session.get.side_effect = [
            _response(payload=[{"id": "1", "title": "A"}, {"id": "2", "title": "B"}]),
            _response(payload=[{"id": "3", "title": "C"}]),
        ]

        rows = self._repo(session, page_size=2).list_all()

        self.assertEqual([r.id for r in rows], ["1", "2", "3"])
        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(session.get.call_args_list[1][1]["params"]["offset"], "2")


class StoreFactoryTests(unittest.TestCase):
    def test_unknown_backend(self) -> None:
        with self.assertRaises(StoreConfigError):
            get_books_repo("mongo")

    def test_missing_credentials(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(StoreConfigError):
                get_rest_session()
            with self.assertRaises(StoreConfigError):
                get_books_repo("sql")


class RecordsExportTests(unittest.TestCase):
    def test_reads_plain_and_aggregated_exports(self) -> None:
        rows = [{"id": "1", "title": "Algebra", "author": None, "file_url": None}, {"title": "no id"}]
        with tempfile.TemporaryDirectory() as tmpdir:
            plain = Path(tmpdir) / "plain.json"
            plain.write_text(json.dumps(rows), encoding="utf-8")
            agg = Path(tmpdir) / "agg.json"
            agg.write_text(json.dumps([{"all_books": rows}]), encoding="utf-8")

            for path in (plain, agg):
                records = load_records_export(path)
                self.assertEqual([r.id for r in records], ["1"])
                self.assertTrue(records[0].is_eligible)


if __name__ == "__main__":
    unittest.main()
