from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# loose missing-value markers produced by spreadsheet exports
_MISSING_MARKERS = {"", "nan", "null", "none", "n/a"}


def clean_optional(value: Any) -> Optional[str]:
    """Return a stripped string, or None for empty values and missing-value markers."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if value.lower() in _MISSING_MARKERS:
        return None
    return value


@dataclass
class SourceRecord:
    id: str
    title: str
    author: Optional[str] = None
    file_url: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_eligible(self) -> bool:
        return not (self.file_url or "").strip()

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SourceRecord":
        updated_at = row.get("updated_at")
        return cls(
            id=str(row.get("id")),
            title=(row.get("title") or "").strip(),
            author=clean_optional(row.get("author")),
            file_url=clean_optional(row.get("file_url")),
            updated_at=str(updated_at) if updated_at is not None else None,
        )


@dataclass(frozen=True)
class CatalogEntry:
    title: str
    url: str
    size: Optional[str] = None
    mod_time: Optional[str] = None
    normalized: str = ""


@dataclass(frozen=True)
class MatchResult:
    entry: Optional[CatalogEntry]
    score: float
    query: Optional[str] = None

    def accepted(self, threshold: float) -> bool:
        return self.entry is not None and self.score >= threshold


@dataclass(frozen=True)
class ApplyOutcome:
    record_id: str
    status: str  # updated | simulated | planned | failed
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass
class ReconciliationPlan:
    generated_at: str
    threshold: float
    updates: List[str] = field(default_factory=list)
    inserts: List[str] = field(default_factory=list)
    matched: List[Dict[str, Any]] = field(default_factory=list)
    not_found: List[Dict[str, Any]] = field(default_factory=list)
    new_entries: List[Dict[str, Any]] = field(default_factory=list)
    skipped_duplicates: int = 0
