from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..logging_setup import get_logger, log_event
from ..matching import extract, find_best_match
from ..models import CatalogEntry, MatchResult, SourceRecord
from ..runtime_config import RUNTIME_CONFIG
from ..store import BooksRepo
from .report import RunReport, build_report, print_summary, write_report
from .strategies import DirectApplyStrategy, DryRunStrategy, OutputStrategy

logger = get_logger(__name__)

_RCFG = RUNTIME_CONFIG.reconcile


def _info(msg: str, **extras: Any) -> None:
    log_event(logger, logging.INFO, msg, **extras)


def _exception(msg: str, **extras: Any) -> None:
    log_event(logger, logging.ERROR, msg, exc_info=True, **extras)


def next_offset(
    start: int,
    limit: int,
    processed: int,
    updated: int,
    total: int,
    dry_run: bool,
) -> Optional[int]:
    """
    Offset for the following batch, or None once the eligible set is exhausted.

    Live updates drop rows out of the eligible set, so the window only advances
    past the rows that stayed eligible (not found, errors). A dry run changes
    nothing and advances by the full window.
    """
    if dry_run:
        nxt = start + limit
        return nxt if nxt < total else None
    nxt = start + processed - updated
    remaining = total - updated
    if processed == 0 or nxt >= remaining:
        return None
    return nxt


def next_command(offset: int, limit: int, *, threshold: float, dry_run: bool) -> str:
    parts = ["python scripts/reconcile_books.py", f"--start {offset}", f"--limit {limit}"]
    if round(threshold * 100) != round(_RCFG.threshold * 100):
        parts.append(f"--threshold {threshold * 100:.0f}")
    if dry_run:
        parts.append("--dry-run")
    return " ".join(parts)


def _echo_record(echo: Callable[[str], None], position: int, total: int, record: SourceRecord) -> None:
    kw = extract(record.title)
    echo("")
    echo(f"[{position}/{total}] \"{record.title}\"")
    if record.author:
        echo(f"  Author: {record.author}")
    if kw.subjects:
        echo(f"  Subjects: {', '.join(kw.ordered_subjects())}")
    if kw.keywords:
        echo(f"  Keywords: {', '.join(sorted(kw.keywords))}")


def _echo_match(echo: Callable[[str], None], match: MatchResult, threshold: float) -> None:
    entry = match.entry
    if match.accepted(threshold):
        echo(f"  MATCH ({match.score * 100:.1f}%): \"{entry.title}\"")
        if entry.size:
            echo(f"  Size: {entry.size}")
        echo(f"  URL: {entry.url}")
        return
    echo(f"  No match found (best score: {match.score * 100:.1f}%)")
    if entry is not None:
        echo(f"  Closest: \"{entry.title}\"")


def reconcile_batch(
    repo: BooksRepo,
    catalog: Sequence[CatalogEntry],
    *,
    start: int = 0,
    limit: int = _RCFG.batch_size,
    threshold: float = _RCFG.threshold,
    dry_run: bool = False,
    reports_dir: Optional[Union[str, Path]] = _RCFG.reports_dir,
    review_floor: float = _RCFG.review_floor,
    strategy: Optional[OutputStrategy] = None,
    echo: Callable[[str], None] = print,
    now: Optional[dt.datetime] = None,
) -> RunReport:
    """
    Match one window of eligible records against the catalog and act on matches.

    Count and page failures propagate. Anything that goes wrong for a single
    record lands in ``errors`` and the batch moves on.
    """
    if strategy is None:
        strategy = DryRunStrategy() if dry_run else DirectApplyStrategy(repo)
    mode = strategy.mode

    total = repo.count_eligible()
    records = repo.page_eligible(start, limit)
    _info("Batch started", mode=mode, start=start, limit=limit, total=total, fetched=len(records))

    echo(f"Eligible books without a file: {total}")
    echo(f"Processing {len(records)} from offset {start} (threshold {threshold * 100:.0f}%)")
    if mode != "live":
        echo("DRY RUN: no changes will be written")

    updated: List[Dict[str, Any]] = []
    not_found: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []

    for i, record in enumerate(records, start=1):
        try:
            if not (record.title or "").strip():
                raise ValueError("record has no title")
            _echo_record(echo, start + i, total, record)
            match = find_best_match(record.title, record.author, catalog)
            _echo_match(echo, match, threshold)

            if not match.accepted(threshold):
                row: Dict[str, Any] = {
                    "id": record.id,
                    "title": record.title,
                    "author": record.author,
                    "best_score": round(match.score, 4),
                    "closest_match": None,
                    "closest_url": None,
                }
                if match.entry is not None and match.score > review_floor:
                    row["closest_match"] = match.entry.title
                    row["closest_url"] = match.entry.url
                not_found.append(row)
                continue

            outcome = strategy.handle(record, match)
            if not outcome.ok:
                raise RuntimeError(outcome.error or "update failed")
            updated.append({
                "id": record.id,
                "title": record.title,
                "author": record.author,
                "matched_title": match.entry.title,
                "url": match.entry.url,
                "score": round(match.score, 4),
                "status": outcome.status,
            })
        except Exception as e:
            _exception("Record failed", id=record.id, title=record.title)
            echo(f"  ERROR: {e}")
            errors.append({"id": record.id, "title": record.title, "error": str(e)})

    processed = len(updated) + len(not_found) + len(errors)
    nxt = next_offset(start, limit, processed, len(updated), total, mode != "live")

    report = build_report(
        mode=mode,
        threshold=threshold,
        catalog_size=len(catalog),
        offset=start,
        total=total,
        updated=updated,
        not_found=not_found,
        errors=errors,
        next_offset=nxt,
        review_floor=review_floor,
        now=now,
    )
    report_path = write_report(report, reports_dir) if reports_dir else None
    cmd = next_command(nxt, limit, threshold=threshold, dry_run=mode != "live") if report.has_more else None
    print_summary(report, report_path, next_command=cmd, echo=echo)
    _info("Batch finished", mode=mode, report=str(report_path) if report_path else None, **report.statistics)
    return report
