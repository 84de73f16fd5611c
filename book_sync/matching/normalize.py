"""
Canonical comparable form for noisy book titles and catalog file names.

Step order matters: the file extension goes first so an abbreviated "ed."
marker cannot swallow its dot, and the trailing "by <author>" clause is
removed before general punctuation stripping so the clause boundary is still
intact.
"""
from __future__ import annotations

import functools
import re
from typing import Optional

_PARENS = re.compile(r"\([^)]*\)")
_BRACKETS = re.compile(r"\[[^\]]*\]")

_MARKERS = [
    re.compile(r"\b\d+(?:st|nd|rd|th)\s+(?:edition|ed\b\.?)"),
    re.compile(r"\bvolume\s+\d+"),
    re.compile(r"\bvol\.?\s*\d+"),
    re.compile(r"\bbook\s+\d+"),
    re.compile(r"\bpart\s+\d+"),
    re.compile(r"\bchapter\s+\d+"),
]

_YEAR_RANGE = re.compile(r"\b\d{4}\s*[-–—]\s*\d{4}\b")

_ROLE_SUFFIXES = [
    re.compile(r"\bteacher['’]?s?\s+(?:guide|manual|edition)"),
    re.compile(r"\bstudent['’]?s?\s+(?:guide|manual|edition|book|workbook)"),
    re.compile(r"\banswer\s+key"),
    re.compile(r"\bstudy\s+guide"),
    re.compile(r"\btest\s+prep"),
    re.compile(r"\bpractice\s+tests?"),
    re.compile(r"workbook"),
    re.compile(r"textbook"),
]

_AUTHOR_CLAUSE = re.compile(r"\bby\s+.+$")
_EXTENSION = re.compile(r"(?:\s*[-–—]\s*pdf)?\s*\.(?:pdf|epub|mobi|djvu)\s*$")
_DASHES = re.compile(r"[-‐-―−_]")
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def _normalize_once(text: str) -> str:
    text = text.lower()
    text = _EXTENSION.sub("", text)
    text = _PARENS.sub("", text)
    text = _BRACKETS.sub("", text)
    for pattern in _MARKERS:
        text = pattern.sub("", text)
    text = _YEAR_RANGE.sub("", text)
    for pattern in _ROLE_SUFFIXES:
        text = pattern.sub("", text)
    text = _AUTHOR_CLAUSE.sub("", text)
    text = _DASHES.sub(" ", text)
    text = _PUNCTUATION.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


@functools.lru_cache(maxsize=65536)
def normalize(title: Optional[str]) -> str:
    """
    Return the canonical form of ``title``; empty string for None/empty input.

    >>> normalize("Algebra 2 (2nd Edition) by Jane Doe.pdf")
    'algebra 2'
    """
    if not title:
        return ""
    current = str(title)
    # removing one marker can expose another ("2nd. edition" -> "2nd edition");
    # after the first pass every step only deletes text, so this terminates
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return current
        current = nxt
