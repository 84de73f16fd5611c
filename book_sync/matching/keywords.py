from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from .normalize import normalize

# Curated vocabulary: academic subjects, standardized tests, major publishers.
SUBJECT_TERMS = (
    "algebra", "calculus", "geometry", "trigonometry", "statistics", "mathematics", "math",
    "physics", "chemistry", "biology", "science", "anatomy", "physiology", "ecology",
    "english", "spanish", "french", "german", "italian", "chinese", "japanese", "latin",
    "history", "geography", "economics", "psychology", "philosophy", "sociology", "anthropology",
    "art", "music", "literature", "poetry", "novel", "drama", "shakespeare", "writing",
    "computer", "programming", "coding", "javascript", "python", "java", "html", "css",
    "business", "finance", "accounting", "marketing", "management", "leadership",
    "sat", "act", "gre", "gmat", "toefl", "ielts", "ap", "ib", "gcse",
    "cambridge", "oxford", "pearson", "mcgraw", "cengage", "wiley",
)
_SUBJECT_SET = frozenset(SUBJECT_TERMS)

MIN_TOKEN_LEN = 3
DISTINCTIVE_LEN = 5


@dataclass(frozen=True)
class TitleKeywords:
    subjects: FrozenSet[str]
    keywords: FrozenSet[str]
    all_tokens: FrozenSet[str]

    def ordered_subjects(self) -> List[str]:
        """Subjects in vocabulary order, for stable console output."""
        return [t for t in SUBJECT_TERMS if t in self.subjects]


@functools.lru_cache(maxsize=65536)
def extract_normalized(normalized: str) -> TitleKeywords:
    tokens = frozenset(normalized.split())
    subjects = frozenset(term for term in SUBJECT_TERMS if term in normalized)
    keywords = frozenset(
        t for t in tokens
        if len(t) >= MIN_TOKEN_LEN and (len(t) >= DISTINCTIVE_LEN or t in _SUBJECT_SET)
    )
    return TitleKeywords(subjects=subjects, keywords=keywords, all_tokens=tokens)


def extract(title: Optional[str]) -> TitleKeywords:
    """Token, keyword and subject sets of a raw title (normalized first)."""
    return extract_normalized(normalize(title))
