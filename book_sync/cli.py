from __future__ import annotations

import argparse
import logging
from typing import Any, List, Optional

import requests
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from .catalog import CatalogNotFoundError, load_catalog
from .logging_setup import get_logger, log_event
from .reconcile.driver import reconcile_batch
from .reconcile.plan import generate_sync_plan, plan_summary, write_plan
from .reconcile.report import build_report, print_summary, write_report
from .runtime_config import RUNTIME_CONFIG
from .store import StoreConfigError, get_books_repo
from .store.export import load_records_export

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_STORE_ERROR = 1
EXIT_CATALOG_MISSING = 2

_STORE_ERRORS = (StoreConfigError, requests.RequestException, SQLAlchemyError)


def _exception(msg: str, **extras: Any) -> None:
    log_event(logger, logging.ERROR, msg, exc_info=True, **extras)


def _fraction(percent: int) -> float:
    return max(0, min(100, percent)) / 100.0


def _percent(fraction: float) -> int:
    return int(round(fraction * 100))


def build_reconcile_parser() -> argparse.ArgumentParser:
    cfg = RUNTIME_CONFIG.reconcile
    p = argparse.ArgumentParser(description="Link books without a file to scanned catalog files, one batch at a time.")
    p.add_argument("--limit", type=int, default=cfg.batch_size, help="Records per batch.")
    p.add_argument("--start", type=int, default=0, help="Offset into the eligible records (ordered by title).")
    p.add_argument("--threshold", type=int, default=_percent(cfg.threshold), help="Match threshold (0-100).")
    p.add_argument("--dry-run", action="store_true", help="Match and report without writing.")
    p.add_argument("--catalog", default=None, help="Catalog CSV path.")
    p.add_argument("--reports-dir", default=cfg.reports_dir)
    p.add_argument("--backend", default=None, choices=["rest", "sql"])
    return p


def build_plan_parser() -> argparse.ArgumentParser:
    cfg = RUNTIME_CONFIG.plan
    p = argparse.ArgumentParser(description="Write reviewable UPDATE/INSERT scripts syncing books with the catalog.")
    p.add_argument("--threshold", type=int, default=_percent(cfg.threshold), help="Match threshold (0-100).")
    p.add_argument("--catalog", default=None, help="Catalog CSV path.")
    p.add_argument("--records-json", default=None, help="Use a JSON export of the books table instead of the store.")
    p.add_argument("--output-dir", default=cfg.output_dir)
    p.add_argument("--reports-dir", default=RUNTIME_CONFIG.reconcile.reports_dir)
    p.add_argument("--backend", default=None, choices=["rest", "sql"])
    return p


def reconcile_main(argv: Optional[List[str]] = None) -> int:
    args = build_reconcile_parser().parse_args(argv)
    load_dotenv()

    try:
        catalog = load_catalog(args.catalog)
    except CatalogNotFoundError as e:
        _exception("Catalog missing", path=args.catalog)
        print(f"ERROR: {e}")
        return EXIT_CATALOG_MISSING

    try:
        repo = get_books_repo(args.backend)
        reconcile_batch(
            repo,
            catalog,
            start=max(0, args.start),
            limit=max(1, args.limit),
            threshold=_fraction(args.threshold),
            dry_run=args.dry_run,
            reports_dir=args.reports_dir,
        )
    except _STORE_ERRORS as e:
        _exception("Reconcile run aborted", backend=args.backend)
        print(f"ERROR: {e}")
        return EXIT_STORE_ERROR
    return EXIT_OK


def plan_main(argv: Optional[List[str]] = None) -> int:
    args = build_plan_parser().parse_args(argv)
    load_dotenv()

    try:
        catalog = load_catalog(args.catalog)
    except CatalogNotFoundError as e:
        _exception("Catalog missing", path=args.catalog)
        print(f"ERROR: {e}")
        return EXIT_CATALOG_MISSING

    try:
        if args.records_json:
            records = load_records_export(args.records_json)
        else:
            records = get_books_repo(args.backend).list_all()
    except (*_STORE_ERRORS, OSError, ValueError) as e:
        _exception("Could not load books", backend=args.backend, records_json=args.records_json)
        print(f"ERROR: {e}")
        return EXIT_STORE_ERROR

    threshold = _fraction(args.threshold)
    plan = generate_sync_plan(records, catalog, threshold=threshold)
    update_path, insert_path = write_plan(plan, args.output_dir)

    eligible = sum(1 for r in records if r.is_eligible)
    report = build_report(
        mode="plan",
        threshold=threshold,
        catalog_size=len(catalog),
        offset=0,
        total=eligible,
        updated=plan.matched,
        not_found=plan.not_found,
        errors=[],
        review_floor=RUNTIME_CONFIG.reconcile.review_floor,
        extra=plan_summary(plan),
    )
    report_path = write_report(report, args.reports_dir, prefix="sync")
    print_summary(report, report_path)
    print(f"  New books to insert: {len(plan.inserts)} ({plan.skipped_duplicates} near-duplicates collapsed)")
    print(f"  Update script: {update_path}")
    print(f"  Insert script: {insert_path}")
    return EXIT_OK


def main() -> None:
    raise SystemExit(reconcile_main())


def main_plan() -> None:
    raise SystemExit(plan_main())
