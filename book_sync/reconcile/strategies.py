from __future__ import annotations

import datetime as dt
from typing import Callable, List, Optional, Protocol

from ..logging_setup import get_logger, with_extras
from ..models import ApplyOutcome, MatchResult, SourceRecord
from ..store import BooksRepo
from .sql import build_update_sql

logger = get_logger(__name__)


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class OutputStrategy(Protocol):
    """What happens to an accepted match: write it, simulate it, or emit SQL for it."""

    mode: str

    def handle(self, record: SourceRecord, match: MatchResult) -> ApplyOutcome: ...


class DirectApplyStrategy:
    mode = "live"

    def __init__(self, repo: BooksRepo, clock: Optional[Callable[[], str]] = None):
        self.repo = repo
        self.clock = clock or utc_now_iso

    def handle(self, record: SourceRecord, match: MatchResult) -> ApplyOutcome:
        url = match.entry.url
        stamp = self.clock()
        ok = self.repo.update_one(record.id, url, stamp)
        if not ok:
            return ApplyOutcome(record_id=record.id, status="failed", url=url, error="update matched no row")
        record.file_url = url
        record.updated_at = stamp
        with_extras(logger, id=record.id, url=url, score=round(match.score, 4)).info("file_url linked")
        return ApplyOutcome(record_id=record.id, status="updated", url=url)


class DryRunStrategy:
    mode = "dry-run"

    def handle(self, record: SourceRecord, match: MatchResult) -> ApplyOutcome:
        return ApplyOutcome(record_id=record.id, status="simulated", url=match.entry.url)


class PlanEmissionStrategy:
    """Collects guarded UPDATE statements instead of touching the store."""

    mode = "plan"

    def __init__(self, *, table: str = "books"):
        self.table = table
        self.statements: List[str] = []

    def handle(self, record: SourceRecord, match: MatchResult) -> ApplyOutcome:
        self.statements.append(build_update_sql(record, match.entry, match.score, table=self.table))
        return ApplyOutcome(record_id=record.id, status="planned", url=match.entry.url)
