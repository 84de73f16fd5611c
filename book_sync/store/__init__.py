from __future__ import annotations

import os
from typing import List, Optional, Protocol

from ..models import SourceRecord
from ..runtime_config import RUNTIME_CONFIG
from .client import StoreConfigError


class BooksRepo(Protocol):
    def count_eligible(self) -> int: ...

    def page_eligible(self, offset: int, limit: int) -> List[SourceRecord]: ...

    def update_one(self, record_id: str, file_url: str, updated_at: str) -> bool: ...

    def list_all(self, *, eligible_only: bool = False) -> List[SourceRecord]: ...


def get_books_repo(backend: Optional[str] = None) -> BooksRepo:
    """
    Build the configured store client.
    - BOOK_STORE_BACKEND (or store.backend in config/runtime.toml): "rest" | "sql"
    """
    name = (backend or os.getenv("BOOK_STORE_BACKEND") or RUNTIME_CONFIG.store.backend).strip().lower()
    if name == "sql":
        from .books_repo import SqlBooksRepo
        return SqlBooksRepo()
    if name == "rest":
        from .rest_repo import RestBooksRepo
        return RestBooksRepo()
    raise StoreConfigError(f"Unknown store backend: {name!r}")


__all__ = ["BooksRepo", "StoreConfigError", "get_books_repo"]
