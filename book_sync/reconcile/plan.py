from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from ..logging_setup import get_logger, log_event
from ..matching import edit_similarity, find_best_match, normalize, score_normalized
from ..models import CatalogEntry, ReconciliationPlan, SourceRecord
from ..runtime_config import RUNTIME_CONFIG, PlanConfig
from .sql import build_insert_sql, build_update_sql, display_title, render_plan_file, sql_quote
from .strategies import PlanEmissionStrategy

logger = get_logger(__name__)

_PCFG = RUNTIME_CONFIG.plan

_NUMBERS = re.compile(r"\d+")


def _info(msg: str, **extras: Any) -> None:
    log_event(logger, logging.INFO, msg, **extras)


def _warn(msg: str, **extras: Any) -> None:
    log_event(logger, logging.WARNING, msg, **extras)


def _dedupe_key(entry: CatalogEntry) -> str:
    # display title keeps volume and edition text, so "Vol 1" and "Vol 2" stay apart
    return " ".join(display_title(entry).lower().split())


def _is_near_duplicate(entry: CatalogEntry, other: CatalogEntry, similarity: float) -> bool:
    if entry.url == other.url:
        return True
    a, b = _dedupe_key(entry), _dedupe_key(other)
    # differing volume, edition or year numbers mean different files
    if _NUMBERS.findall(a) != _NUMBERS.findall(b):
        return False
    return edit_similarity(a, b) >= similarity


def _has_corresponding_record(entry: CatalogEntry, record_titles: Sequence[str], threshold: float) -> bool:
    for nt in record_titles:
        if score_normalized(nt, entry.normalized) >= threshold:
            return True
    return False


def generate_sync_plan(
    records: Sequence[SourceRecord],
    catalog: Sequence[CatalogEntry],
    *,
    threshold: float = _PCFG.threshold,
    dedupe_similarity: float = _PCFG.dedupe_similarity,
    table: str = RUNTIME_CONFIG.store.table,
    plan_cfg: PlanConfig = _PCFG,
    now: Optional[dt.datetime] = None,
) -> ReconciliationPlan:
    """
    Build UPDATE statements for records that have a confident catalog match and
    INSERT statements for catalog files nothing in the store corresponds to.

    Works on the full record set. Nothing is written to the store.
    """
    ts = now or dt.datetime.now(dt.timezone.utc)
    plan = ReconciliationPlan(generated_at=ts.isoformat(), threshold=threshold)
    emitter = PlanEmissionStrategy(table=table)

    linked_urls: Set[str] = {r.file_url for r in records if r.file_url}
    used_urls: Set[str] = set()

    # phase 1: link eligible records
    for record in records:
        if not record.is_eligible:
            continue
        if not (record.title or "").strip():
            _warn("Record without title skipped", id=record.id)
            continue
        match = find_best_match(record.title, record.author, catalog)
        if not match.accepted(threshold):
            plan.not_found.append({
                "id": record.id,
                "title": record.title,
                "best_score": round(match.score, 4),
                "closest_match": match.entry.title if match.entry else None,
                "closest_url": match.entry.url if match.entry else None,
            })
            continue
        emitter.handle(record, match)
        used_urls.add(match.entry.url)
        plan.matched.append({
            "id": record.id,
            "title": record.title,
            "matched_title": match.entry.title,
            "url": match.entry.url,
            "score": round(match.score, 4),
            "status": "planned",
        })
    plan.updates = list(emitter.statements)

    # phase 2: catalog files with no counterpart become new rows
    record_titles = [normalize(r.title) for r in records if r.title]
    kept: List[CatalogEntry] = []
    for entry in catalog:
        if entry.url in linked_urls or entry.url in used_urls:
            continue
        if _has_corresponding_record(entry, record_titles, threshold):
            continue
        if any(_is_near_duplicate(entry, k, dedupe_similarity) for k in kept):
            plan.skipped_duplicates += 1
            continue
        kept.append(entry)

    for entry in kept:
        plan.inserts.append(
            build_insert_sql(
                entry,
                table=table,
                owner_user_id=plan_cfg.owner_user_id,
                content_type=plan_cfg.content_type,
                language=plan_cfg.language,
                is_public=plan_cfg.is_public,
            )
        )
        plan.new_entries.append({"title": display_title(entry), "url": entry.url, "size": entry.size})

    _info(
        "Sync plan built",
        records=len(records),
        catalog=len(catalog),
        updates=len(plan.updates),
        inserts=len(plan.inserts),
        not_found=len(plan.not_found),
        skipped_duplicates=plan.skipped_duplicates,
    )
    return plan


def _file_stamp(generated_at: str) -> str:
    return dt.datetime.fromisoformat(generated_at).strftime("%Y-%m-%dT%H-%M-%S")


def write_plan(plan: ReconciliationPlan, output_dir: Union[str, Path] = _PCFG.output_dir) -> Tuple[Path, Path]:
    """Write the update and insert scripts; returns (update_path, insert_path)."""
    out_dir = Path(output_dir).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = _file_stamp(plan.generated_at)
    update_path = out_dir / f"book_updates_{stamp}.sql"
    insert_path = out_dir / f"book_inserts_{stamp}.sql"

    update_path.write_text(
        render_plan_file(
            plan.updates,
            heading=f"Link existing books to catalog files (threshold {plan.threshold * 100:.0f}%)",
            generated_at=plan.generated_at,
            noun="books to update",
        ),
        encoding="utf-8",
    )
    insert_path.write_text(
        render_plan_file(
            plan.inserts,
            heading="Add catalog files that have no matching book",
            generated_at=plan.generated_at,
            noun="new books to insert",
        ),
        encoding="utf-8",
    )
    _info("Sync plan written", updates=str(update_path), inserts=str(insert_path))
    return update_path, insert_path


def plan_summary(plan: ReconciliationPlan) -> Dict[str, Any]:
    return {
        "updates": len(plan.updates),
        "inserts": len(plan.inserts),
        "not_found": len(plan.not_found),
        "skipped_duplicates": plan.skipped_duplicates,
        "new_entries": list(plan.new_entries),
    }


__all__ = [
    "build_insert_sql",
    "build_update_sql",
    "generate_sync_plan",
    "plan_summary",
    "render_plan_file",
    "sql_quote",
    "write_plan",
]
