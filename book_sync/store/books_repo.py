from __future__ import annotations

from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..logging_setup import get_logger, with_extras
from ..models import SourceRecord
from ..runtime_config import RUNTIME_CONFIG
from .client import checked_table_name, get_engine

log = get_logger(__name__)

_COLUMNS = "id, title, author, file_url, updated_at"
_ELIGIBLE = "(file_url IS NULL OR file_url = '')"


class SqlBooksRepo:
    """
    Books table accessed directly over SQLAlchemy.

    Eligible rows have no file_url. Pages are ordered by title, then id, so the
    same offset selects the same rows on every invocation.
    """

    def __init__(self, engine: Optional[Engine] = None, *, table: str = RUNTIME_CONFIG.store.table):
        self.engine = engine or get_engine(timeout_seconds=RUNTIME_CONFIG.store.timeout_seconds)
        self.table = checked_table_name(table)

    def count_eligible(self) -> int:
        stmt = text(f"SELECT COUNT(*) FROM {self.table} WHERE {_ELIGIBLE}")
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar() or 0)

    def page_eligible(self, offset: int, limit: int) -> List[SourceRecord]:
        stmt = text(
            f"SELECT {_COLUMNS} FROM {self.table} WHERE {_ELIGIBLE} "
            "ORDER BY title, id LIMIT :limit OFFSET :offset"
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt, {"limit": int(limit), "offset": int(offset)}).mappings().all()
        return [SourceRecord.from_row(dict(r)) for r in rows]

    def update_one(self, record_id: str, file_url: str, updated_at: str) -> bool:
        stmt = text(f"UPDATE {self.table} SET file_url = :file_url, updated_at = :updated_at WHERE id = :id")
        with self.engine.begin() as conn:
            result = conn.execute(stmt, {"id": record_id, "file_url": file_url, "updated_at": updated_at})
            ok = (result.rowcount or 0) > 0
        if not ok:
            with_extras(log, id=record_id).warning("update matched no row")
        return ok

    def list_all(self, *, eligible_only: bool = False) -> List[SourceRecord]:
        where = f" WHERE {_ELIGIBLE}" if eligible_only else ""
        stmt = text(f"SELECT {_COLUMNS} FROM {self.table}{where} ORDER BY title, id")
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [SourceRecord.from_row(dict(r)) for r in rows]
