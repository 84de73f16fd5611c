from __future__ import annotations

from typing import List, Optional, Sequence

from ..models import CatalogEntry, MatchResult
from .normalize import normalize
from .similarity import score_normalized


def query_variants(title: str, author: Optional[str] = None) -> List[str]:
    """Title alone, then title+author in both orders (sources disagree on placement)."""
    variants = [title]
    if author:
        variants.append(f"{title} {author}")
        variants.append(f"{author} {title}")
    return variants


def find_best_match(
    title: str,
    author: Optional[str],
    catalog: Sequence[CatalogEntry],
) -> MatchResult:
    """
    Scan the whole catalog for every query variant and keep the global best.

    The first entry reaching the maximum wins ties. ``entry`` stays None only
    when nothing scored above zero, so sub-threshold near misses are still
    returned for review.
    """
    best: Optional[CatalogEntry] = None
    best_score = 0.0
    best_query: Optional[str] = None

    for variant in query_variants(title, author):
        nq = normalize(variant)
        for entry in catalog:
            sc = score_normalized(nq, entry.normalized)
            if sc > best_score:
                best_score = sc
                best = entry
                best_query = variant

    return MatchResult(entry=best, score=best_score, query=best_query)
