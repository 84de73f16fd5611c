from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Union

from ..models import SourceRecord


def _rows(payload: Any) -> List[dict]:
    # plain list of rows, or the json_agg export shape [{"all_books": [...]}]
    if isinstance(payload, dict):
        payload = payload.get("all_books") or payload.get("books") or []
    if isinstance(payload, list) and len(payload) == 1 and isinstance(payload[0], dict) and "all_books" in payload[0]:
        payload = payload[0]["all_books"] or []
    if not isinstance(payload, list):
        return []
    return [r for r in payload if isinstance(r, dict)]


def load_records_export(path: Union[str, Path]) -> List[SourceRecord]:
    """Read a JSON export of the books table ({id, title, author, file_url} rows)."""
    with Path(path).expanduser().open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return [SourceRecord.from_row(r) for r in _rows(payload) if r.get("id") is not None]
