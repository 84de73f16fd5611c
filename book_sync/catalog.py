from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .logging_setup import get_logger, log_event
from .matching.normalize import normalize
from .models import CatalogEntry, clean_optional
from .runtime_config import RUNTIME_CONFIG

logger = get_logger(__name__)

CATALOG_CSV_PATH_DEFAULT = RUNTIME_CONFIG.catalog.csv_path


class CatalogNotFoundError(FileNotFoundError):
    """The reference catalog file does not exist; nothing can be matched."""


def _info(msg: str, **extras: Any) -> None:
    log_event(logger, logging.INFO, msg, **extras)


def _warn(msg: str, **extras: Any) -> None:
    log_event(logger, logging.WARNING, msg, **extras)


def _normalize_field_name(name: Optional[str]) -> str:
    return (name or "").replace("\ufeff", "").strip().strip('"').strip().lower()


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"true", "1", "yes", "y"}


def resolve_catalog_path(path: Optional[Union[str, Path]] = None) -> Path:
    return Path(path or CATALOG_CSV_PATH_DEFAULT).expanduser()


def load_catalog(
    path: Optional[Union[str, Path]] = None,
    *,
    skip_duplicates: bool = RUNTIME_CONFIG.catalog.skip_duplicates,
) -> List[CatalogEntry]:
    """
    Load the scanned-file catalog (Name, URL, Size, ModTime[, Normalized_Name][, Is_Duplicate]).

    Entries keep file order. Each one carries its normalized title so matching
    never renormalizes catalog names. A precomputed Normalized_Name column is
    ignored: it may come from a different normalizer, and the exact-match
    short-circuit only holds when both sides use the same one.
    """
    csv_path = resolve_catalog_path(path)
    if not csv_path.is_file():
        raise CatalogNotFoundError(f"Catalog file not found: {csv_path}")

    entries: List[CatalogEntry] = []
    skipped_incomplete = 0
    skipped_duplicate = 0

    with csv_path.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            _warn("Catalog file has no header row", path=str(csv_path))
            return entries
        field_map = {_normalize_field_name(name): name for name in reader.fieldnames}

        def _row_value(row: Dict[str, Any], key: str) -> Optional[str]:
            column = field_map.get(key)
            return clean_optional(row.get(column)) if column else None

        for row in reader:
            name = _row_value(row, "name")
            url = _row_value(row, "url")
            if not name or not url:
                skipped_incomplete += 1
                continue
            if skip_duplicates and _is_true(_row_value(row, "is_duplicate")):
                skipped_duplicate += 1
                continue
            normalized = normalize(name)
            if not normalized:
                # marker-only names such as "Answer Key.pdf" normalize to nothing
                _warn("Catalog entry has no comparable title", name=name, url=url)
                skipped_incomplete += 1
                continue
            entries.append(
                CatalogEntry(
                    title=name,
                    url=url,
                    size=_row_value(row, "size"),
                    mod_time=_row_value(row, "modtime"),
                    normalized=normalized,
                )
            )

    _info(
        "Catalog loaded",
        path=str(csv_path),
        entries=len(entries),
        skipped_incomplete=skipped_incomplete,
        skipped_duplicate=skipped_duplicate,
    )
    return entries
