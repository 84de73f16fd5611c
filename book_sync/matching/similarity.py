"""
Title similarity.

``score`` blends four independent signals and keeps the strongest after
weighting: shared curated subjects (0.95), shared distinctive keywords (0.90),
whole-word overlap (0.80) and plain containment of one normalized title in the
other (flat 0.90). Exact normalized equality short-circuits to 1.0.

``edit_similarity`` is a plain Levenshtein ratio for comparing titles that are
already normalized and deduplicated; it is not used for catalog search.
"""
from __future__ import annotations

from typing import Optional

from rapidfuzz.distance import Levenshtein

from .keywords import DISTINCTIVE_LEN, TitleKeywords, extract_normalized
from .normalize import normalize

SUBJECT_WEIGHT = 0.95
KEYWORD_WEIGHT = 0.90
WHOLE_WORD_WEIGHT = 0.80
CONTAINMENT_SCORE = 0.9


def subject_score(a: TitleKeywords, b: TitleKeywords) -> float:
    if not a.subjects or not b.subjects:
        return 0.0
    shared = a.subjects & b.subjects
    return len(shared) / max(len(a.subjects), len(b.subjects))


def _keywords_match(ka: str, kb: str) -> bool:
    if ka == kb:
        return True
    if len(ka) >= DISTINCTIVE_LEN and len(kb) >= DISTINCTIVE_LEN:
        return ka in kb or kb in ka
    return False


def keyword_score(a: TitleKeywords, b: TitleKeywords) -> float:
    if not a.keywords or not b.keywords:
        return 0.0
    matches = sum(1 for ka in a.keywords if any(_keywords_match(ka, kb) for kb in b.keywords))
    return matches / max(len(a.keywords), len(b.keywords))


def whole_word_score(a: TitleKeywords, b: TitleKeywords) -> float:
    if not a.all_tokens or not b.all_tokens:
        return 0.0
    shared = a.all_tokens & b.all_tokens
    return len(shared) / max(len(a.all_tokens), len(b.all_tokens))


def containment_score(na: str, nb: str) -> float:
    shorter, longer = (na, nb) if len(na) <= len(nb) else (nb, na)
    return CONTAINMENT_SCORE if shorter and shorter in longer else 0.0


def score_normalized(na: str, nb: str) -> float:
    """Score two titles that are already in normalized form."""
    if na == nb:
        return 1.0
    if not na or not nb:
        return 0.0
    ka = extract_normalized(na)
    kb = extract_normalized(nb)
    return max(
        subject_score(ka, kb) * SUBJECT_WEIGHT,
        keyword_score(ka, kb) * KEYWORD_WEIGHT,
        whole_word_score(ka, kb) * WHOLE_WORD_WEIGHT,
        containment_score(na, nb),
    )


def score(title_a: Optional[str], title_b: Optional[str]) -> float:
    """Confidence in [0, 1] that two raw titles name the same book."""
    if not title_a or not title_b:
        return 0.0
    return score_normalized(normalize(title_a), normalize(title_b))


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a or "", b or "")


def edit_similarity(a: str, b: str) -> float:
    longest = max(len(a or ""), len(b or ""))
    if longest == 0:
        return 1.0
    return (longest - levenshtein(a, b)) / longest
