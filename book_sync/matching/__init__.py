from .keywords import SUBJECT_TERMS, TitleKeywords, extract
from .matcher import find_best_match, query_variants
from .normalize import normalize
from .similarity import edit_similarity, levenshtein, score, score_normalized

__all__ = [
    "SUBJECT_TERMS",
    "TitleKeywords",
    "edit_similarity",
    "extract",
    "find_best_match",
    "levenshtein",
    "normalize",
    "query_variants",
    "score",
    "score_normalized",
]
