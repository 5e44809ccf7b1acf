# ingest/parsers/text_norm.py
"""
Small text helpers shared by the vocab modules, the extractor and the
reconciler.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, List, Optional, Pattern

_WS_RE = re.compile(r"\s+")
_DOT_LEADER_RE = re.compile(r"\s*(?:\.{2,}|…+|_{3,})\s*")


def norm(text: Optional[str]) -> str:
    """Lowercase, collapse whitespace."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text.strip().lower())


def fold_accents(text: str) -> str:
    """'Rosé' -> 'Rose', 'Gewürztraminer' -> 'Gewurztraminer'."""
    return "".join(
        ch for ch in unicodedata.normalize("NFKD", text) if not unicodedata.combining(ch)
    )


def fold_accents_keep_length(text: str) -> str:
    """Per-character fold, so match offsets line up with the original text."""
    return "".join(fold_accents(ch)[:1] or ch for ch in text)


def clean_line(text: Optional[str]) -> str:
    """Strip dot leaders and collapse whitespace, keep case."""
    if not text:
        return ""
    text = _DOT_LEADER_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def term_key(text: str) -> str:
    """Lookup key for a lexicon term: accent-folded, lowercase, hyphens as spaces."""
    return _WS_RE.sub(" ", fold_accents(text).lower().replace("-", " ")).strip()


def build_terms_re(terms: Iterable[str]) -> Pattern[str]:
    """
    One alternation over ``terms``, longest first, word-bounded and
    case-insensitive. Matching is done on accent-folded text.
    """
    alts = "|".join(
        r"[\s-]+".join(re.escape(part) for part in term_key(t).split(" "))
        for t in sorted(set(terms), key=len, reverse=True)
    )
    return re.compile(r"(?<![\w])(" + alts + r")(?![\w])", re.IGNORECASE)


def find_terms(pattern: Pattern[str], text: Optional[str]) -> List[str]:
    """Distinct matches in order of first appearance, lowercased and accent-folded."""
    if not text:
        return []
    seen: List[str] = []
    for m in pattern.finditer(fold_accents(text).lower()):
        hit = term_key(m.group(1))
        if hit not in seen:
            seen.append(hit)
    return seen


def title_header(text: str) -> str:
    """'COCKTAILS' -> 'Cocktails', 'red wines:' -> 'Red Wines'."""
    text = clean_line(text).strip(" :-–=*#")
    if not text:
        return ""
    words = []
    for w in text.split(" "):
        if len(w) <= 3 and w.lower() in {"and", "of", "the", "by", "on", "a", "&"}:
            words.append(w.lower())
        else:
            words.append(w[:1].upper() + w[1:].lower())
    out = " ".join(words)
    return out[:1].upper() + out[1:]
