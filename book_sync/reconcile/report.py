from __future__ import annotations

import datetime as dt
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..logging_setup import get_logger, with_extras

logger = get_logger(__name__)

REVIEW_SAMPLE_SIZE = 5


def success_rate(updated: int, processed: int) -> str:
    if processed <= 0:
        return "0%"
    return f"{updated / processed * 100:.1f}%"


def review_candidates(not_found: List[Dict[str, Any]], review_floor: float) -> List[Dict[str, Any]]:
    """Not-found rows whose closest candidate is plausible enough for a human to check."""
    out = []
    for row in not_found:
        best = row.get("best_score") or 0.0
        if best > review_floor and row.get("closest_match"):
            out.append({
                "id": row.get("id"),
                "title": row.get("title"),
                "closest_match": row.get("closest_match"),
                "closest_url": row.get("closest_url"),
                "best_score": best,
            })
    return out


@dataclass(frozen=True)
class RunReport:
    timestamp: str
    mode: str  # dry-run | live | plan
    threshold: float
    catalog_size: int
    batch: Dict[str, Optional[int]]
    statistics: Dict[str, Any]
    results: Dict[str, List[Dict[str, Any]]]
    needs_review: List[Dict[str, Any]]
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_more(self) -> bool:
        nxt = self.batch.get("next_offset")
        return nxt is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_report(
    *,
    mode: str,
    threshold: float,
    catalog_size: int,
    offset: int,
    total: int,
    updated: List[Dict[str, Any]],
    not_found: List[Dict[str, Any]],
    errors: List[Dict[str, Any]],
    next_offset: Optional[int] = None,
    review_floor: float = 0.5,
    now: Optional[dt.datetime] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> RunReport:
    processed = len(updated) + len(not_found) + len(errors)
    ts = now or dt.datetime.now(dt.timezone.utc)
    return RunReport(
        timestamp=ts.isoformat(),
        mode=mode,
        threshold=threshold,
        catalog_size=catalog_size,
        batch={
            "offset": offset,
            "count": processed,
            "total": total,
            "next_offset": next_offset,
        },
        statistics={
            "processed": processed,
            "updated": len(updated),
            "not_found": len(not_found),
            "errors": len(errors),
            "success_rate": success_rate(len(updated), processed),
        },
        results={
            "updated": list(updated),
            "not_found": list(not_found),
            "errors": list(errors),
        },
        needs_review=review_candidates(not_found, review_floor),
        extra=dict(extra or {}),
    )


def _file_stamp(timestamp: str) -> str:
    try:
        parsed = dt.datetime.fromisoformat(timestamp)
    except ValueError:
        parsed = dt.datetime.now(dt.timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H-%M-%S")


def write_report(report: RunReport, reports_dir: Union[str, Path], *, prefix: str = "reconcile") -> Path:
    out_dir = Path(reports_dir).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = f"{prefix}_{report.mode}_{_file_stamp(report.timestamp)}"
    path = out_dir / f"{stem}.json"
    n = 1
    while path.exists():
        path = out_dir / f"{stem}_{n}.json"
        n += 1
    with path.open("w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2, default=str)
    with_extras(logger, path=str(path), mode=report.mode, **report.statistics).info("Run report written")
    return path


def print_summary(
    report: RunReport,
    report_path: Optional[Path] = None,
    *,
    next_command: Optional[str] = None,
    echo: Callable[[str], None] = print,
) -> None:
    stats = report.statistics
    verb = "Would update" if report.mode == "dry-run" else ("Planned" if report.mode == "plan" else "Updated")
    echo("")
    echo("Batch summary:")
    echo(f"  {verb}: {stats['updated']}")
    echo(f"  Not found: {stats['not_found']}")
    echo(f"  Errors: {stats['errors']}")
    echo(f"  Success rate: {stats['success_rate']}")
    if report_path is not None:
        echo(f"  Report saved: {report_path}")

    if report.needs_review:
        echo("")
        echo("Books needing manual review:")
        for row in report.needs_review[:REVIEW_SAMPLE_SIZE]:
            echo(f"  - \"{row['title']}\" (best: {row['best_score'] * 100:.0f}%)")
            echo(f"    Closest: \"{row['closest_match']}\"")

    if report.mode == "plan":
        return
    if next_command:
        echo("")
        echo("To continue with the next batch, run:")
        echo(f"  {next_command}")
    else:
        echo("")
        echo("All eligible books processed.")
