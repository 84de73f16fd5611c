from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from ..logging_setup import get_logger, with_extras
from ..models import SourceRecord
from ..runtime_config import RUNTIME_CONFIG
from .client import checked_table_name, get_rest_session, rest_base_url

log = get_logger(__name__)

_SELECT = "id,title,author,file_url,updated_at"
_ELIGIBLE_FILTER = "(file_url.is.null,file_url.eq.)"
_ORDER = "title.asc,id.asc"


def _parse_content_range_total(value: Optional[str]) -> int:
    # "0-9/123" or "*/123"; "*" total means the server did not count
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else 0


class RestBooksRepo:
    """
    Books table behind the hosted PostgREST gateway (the app's own backend).
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        base_url: Optional[str] = None,
        table: str = RUNTIME_CONFIG.store.table,
        timeout: int = RUNTIME_CONFIG.store.timeout_seconds,
        page_size: int = RUNTIME_CONFIG.store.page_size,
    ):
        self.session = session or get_rest_session()
        self.url = f"{rest_base_url(base_url)}/{checked_table_name(table)}"
        self.timeout = timeout
        self.page_size = page_size

    def _get_rows(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        r = self.session.get(self.url, params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json() or []

    def count_eligible(self) -> int:
        r = self.session.head(
            self.url,
            params={"select": "id", "or": _ELIGIBLE_FILTER},
            headers={"Prefer": "count=exact", "Range-Unit": "items", "Range": "0-0"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return _parse_content_range_total(r.headers.get("Content-Range"))

    def page_eligible(self, offset: int, limit: int) -> List[SourceRecord]:
        rows = self._get_rows({
            "select": _SELECT,
            "or": _ELIGIBLE_FILTER,
            "order": _ORDER,
            "offset": str(int(offset)),
            "limit": str(int(limit)),
        })
        return [SourceRecord.from_row(r) for r in rows]

    def update_one(self, record_id: str, file_url: str, updated_at: str) -> bool:
        r = self.session.patch(
            self.url,
            params={"id": f"eq.{record_id}"},
            json={"file_url": file_url, "updated_at": updated_at},
            headers={"Prefer": "return=representation", "Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if r.status_code >= 400:
            with_extras(log, id=record_id, status=r.status_code, body=r.text[:300]).warning("update rejected")
        r.raise_for_status()
        return bool(r.json())

    def list_all(self, *, eligible_only: bool = False) -> List[SourceRecord]:
        out: List[SourceRecord] = []
        offset = 0
        while True:
            params = {
                "select": _SELECT,
                "order": _ORDER,
                "offset": str(offset),
                "limit": str(self.page_size),
            }
            if eligible_only:
                params["or"] = _ELIGIBLE_FILTER
            rows = self._get_rows(params)
            out.extend(SourceRecord.from_row(r) for r in rows)
            if len(rows) < self.page_size:
                break
            offset += len(rows)
        return out
