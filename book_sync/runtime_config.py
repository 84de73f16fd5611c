from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import logging
import tomllib

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "runtime.toml"


@dataclass(frozen=True)
class CatalogConfig:
    csv_path: str
    skip_duplicates: bool


@dataclass(frozen=True)
class ReconcileConfig:
    batch_size: int
    threshold: float
    review_floor: float
    reports_dir: str


@dataclass(frozen=True)
class PlanConfig:
    threshold: float
    output_dir: str
    dedupe_similarity: float
    owner_user_id: str
    content_type: str
    language: str
    is_public: bool


@dataclass(frozen=True)
class StoreConfig:
    backend: str
    table: str
    timeout_seconds: int
    page_size: int


@dataclass(frozen=True)
class RuntimeConfig:
    catalog: CatalogConfig
    reconcile: ReconcileConfig
    plan: PlanConfig
    store: StoreConfig


def _default_config() -> RuntimeConfig:
    return RuntimeConfig(
        catalog=CatalogConfig(csv_path="data/book_list.csv", skip_duplicates=True),
        reconcile=ReconcileConfig(
            batch_size=10,
            threshold=0.80,
            review_floor=0.5,
            reports_dir="data/reports",
        ),
        plan=PlanConfig(
            threshold=0.85,
            output_dir="data/plans",
            dedupe_similarity=0.95,
            owner_user_id="00000000-0000-0000-0000-000000000000",
            content_type="pdf",
            language="en",
            is_public=False,
        ),
        store=StoreConfig(backend="rest", table="books", timeout_seconds=30, page_size=1000),
    )


def _safe_int(value: Any, fallback: int) -> int:
    try:
        parsed = int(value)
        return parsed if parsed > 0 else fallback
    except Exception:
        return fallback


def _safe_fraction(value: Any, fallback: float) -> float:
    """Accept 0-1 fractions or 0-100 percentages; anything else falls back."""
    if isinstance(value, bool):
        return fallback
    try:
        parsed = float(value)
    except Exception:
        return fallback
    if 1.0 < parsed <= 100.0:
        parsed = parsed / 100.0
    if 0.0 <= parsed <= 1.0:
        return parsed
    return fallback


def _safe_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"1", "true", "yes", "on"}:
            return True
        if v in {"0", "false", "no", "off"}:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return fallback


def _str_field(d: dict, key: str, default: str) -> str:
    val = d.get(key, default)
    if not isinstance(val, str) or not val.strip():
        return default
    return val.strip()


def _section(raw: Any, name: str) -> dict:
    section = raw.get(name) if isinstance(raw, dict) else None
    return section if isinstance(section, dict) else {}


def load_runtime_config(config_path: Optional[Path] = None) -> RuntimeConfig:
    cfg = _default_config()
    path = config_path or _DEFAULT_CONFIG_PATH
    try:
        with path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        logger.warning("Runtime config file not found; using defaults", extra={"path": str(path)})
        return cfg
    except tomllib.TOMLDecodeError:
        logger.exception("Runtime config parse failed; using defaults", extra={"path": str(path)})
        return cfg
    except Exception:
        logger.exception("Runtime config load failed; using defaults", extra={"path": str(path)})
        return cfg

    catalog_raw = _section(raw, "catalog")
    reconcile_raw = _section(raw, "reconcile")
    plan_raw = _section(raw, "plan")
    store_raw = _section(raw, "store")

    backend = _str_field(store_raw, "backend", cfg.store.backend).lower()
    if backend not in {"rest", "sql"}:
        logger.warning("Unknown store backend in runtime config; using default", extra={"backend": backend})
        backend = cfg.store.backend

    return RuntimeConfig(
        catalog=CatalogConfig(
            csv_path=_str_field(catalog_raw, "csv_path", cfg.catalog.csv_path),
            skip_duplicates=_safe_bool(
                catalog_raw.get("skip_duplicates", cfg.catalog.skip_duplicates),
                cfg.catalog.skip_duplicates,
            ),
        ),
        reconcile=ReconcileConfig(
            batch_size=_safe_int(reconcile_raw.get("batch_size", cfg.reconcile.batch_size), cfg.reconcile.batch_size),
            threshold=_safe_fraction(reconcile_raw.get("threshold", cfg.reconcile.threshold), cfg.reconcile.threshold),
            review_floor=_safe_fraction(
                reconcile_raw.get("review_floor", cfg.reconcile.review_floor),
                cfg.reconcile.review_floor,
            ),
            reports_dir=_str_field(reconcile_raw, "reports_dir", cfg.reconcile.reports_dir),
        ),
        plan=PlanConfig(
            threshold=_safe_fraction(plan_raw.get("threshold", cfg.plan.threshold), cfg.plan.threshold),
            output_dir=_str_field(plan_raw, "output_dir", cfg.plan.output_dir),
            dedupe_similarity=_safe_fraction(
                plan_raw.get("dedupe_similarity", cfg.plan.dedupe_similarity),
                cfg.plan.dedupe_similarity,
            ),
            owner_user_id=_str_field(plan_raw, "owner_user_id", cfg.plan.owner_user_id),
            content_type=_str_field(plan_raw, "content_type", cfg.plan.content_type),
            language=_str_field(plan_raw, "language", cfg.plan.language),
            is_public=_safe_bool(plan_raw.get("is_public", cfg.plan.is_public), cfg.plan.is_public),
        ),
        store=StoreConfig(
            backend=backend,
            table=_str_field(store_raw, "table", cfg.store.table),
            timeout_seconds=_safe_int(store_raw.get("timeout_seconds", cfg.store.timeout_seconds), cfg.store.timeout_seconds),
            page_size=_safe_int(store_raw.get("page_size", cfg.store.page_size), cfg.store.page_size),
        ),
    )


RUNTIME_CONFIG = load_runtime_config()
