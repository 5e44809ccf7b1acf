# ingest/enhancers/base.py
"""
Shared result type and helpers for the facet enhancers.

Enhancers start from the facet values a keyed row states outright
(candidate.explicit_facets) and fill the gaps from the item text. The
``explicit_*`` helpers coerce those stated values, which arrive as JSON
values or spreadsheet cells.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from ingest.contracts import BeverageFacets, FoodFacets, ItemCandidate, ServingOption, WineFacets
from ingest.parsers.price_parser import parse_price
from ingest.parsers.text_norm import term_key
from ingest.scoring.confidence import facet_confidence

_LIST_SPLIT_RE = re.compile(r"\s*(?:,|;|\s&\s|\band\b|\bwith\b|\btopped with\b|\bserved with\b)\s*", re.IGNORECASE)
_CELL_LIST_SPLIT_RE = re.compile(r"\s*[,;|/]\s*")
_OPTION_SPLIT_RE = re.compile(r"\s*(?:[;|\n]|,\s)\s*")
_OPTION_RE = re.compile(r"^(?P<size>.+?)\s*[:=]?\s*(?P<price>[£$€]?\s?\d+(?:[.,]\d{1,2})?)$")

_TRUE_WORDS = {"true", "yes", "y", "1", "x"}
_FALSE_WORDS = {"false", "no", "n", "0"}


@dataclass(frozen=True)
class FacetResult:
    facets: Union[FoodFacets, BeverageFacets, WineFacets]
    confidence: int
    cues: Tuple[str, ...] = ()
    # Item name with facet-only parts (vintage, region) taken out, when it changed.
    name: Optional[str] = None

    @classmethod
    def from_cues(cls, facets, cues: List[str], name: Optional[str] = None) -> "FacetResult":
        return cls(facets=facets, confidence=facet_confidence(len(cues)), cues=tuple(cues), name=name)


def item_text(candidate: ItemCandidate, raw_text: Optional[str] = None) -> str:
    """Name, description and source text in one string for lexicon scans."""
    parts = [candidate.name, candidate.description, raw_text or candidate.raw_text]
    return " ".join(p for p in parts if p)


def stated(candidate: ItemCandidate) -> Dict[str, Any]:
    return candidate.explicit_facets or {}


def split_list(text: Optional[str], max_words: int = 5) -> List[str]:
    """
    "lime juice, mint and soda water" -> ["lime juice", "mint", "soda water"]
    Fragments longer than ``max_words`` are prose, not list entries.
    """
    if not text:
        return []
    out: List[str] = []
    for part in _LIST_SPLIT_RE.split(text):
        part = part.strip(" .!()-–")
        if not part or len(part.split()) > max_words:
            continue
        out.append(part)
    return out


# ------------------------
# Stated values
# ------------------------

def explicit_bool(value: Any) -> Optional[bool]:
    """True / "yes" / "TRUE" / 1 -> True; False / "no" / 0 -> False; else None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TRUE_WORDS:
            return True
        if key in _FALSE_WORDS:
            return False
    return None


def explicit_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (bool, list, tuple, dict)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = " ".join(str(value).split())
    return text or None


def explicit_list(value: Any) -> List[str]:
    """["Tempranillo"] / "quinoa, kale" / "Merlot | Cabernet Franc" -> de-duplicated strings."""
    if value is None or isinstance(value, (bool, dict)):
        return []
    parts = value if isinstance(value, (list, tuple)) else _CELL_LIST_SPLIT_RE.split(str(value))
    out: List[str] = []
    seen = set()
    for part in parts:
        text = explicit_text(part)
        if text and term_key(text) not in seen:
            seen.add(term_key(text))
            out.append(text)
    return out


def explicit_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def _option_pairs(text: str) -> List[Tuple[str, Any]]:
    pairs: List[Tuple[str, Any]] = []
    for part in _OPTION_SPLIT_RE.split(text.strip()):
        m = _OPTION_RE.match(part.strip())
        if m:
            pairs.append((m.group("size"), m.group("price")))
    return pairs


def size_key(size: str) -> str:
    """'Glass' -> 'glass', '175 ml' -> '175ml'."""
    key = term_key(size)
    return key.replace(" ", "") if re.match(r"\d", key) else key


def explicit_serving_options(value: Any) -> List[ServingOption]:
    """
    Accepts [{"size": "glass", "price": 9}], {"175ml": 7.5} or
    "Glass: 9.50; Bottle: 34". Entries without a usable price are skipped.
    """
    pairs: List[Tuple[Any, Any]] = []
    if isinstance(value, dict):
        pairs = list(value.items())
    elif isinstance(value, (list, tuple)):
        for opt in value:
            if isinstance(opt, dict):
                pairs.append((opt.get("size"), opt.get("price")))
            elif isinstance(opt, str):
                pairs.extend(_option_pairs(opt))
    elif isinstance(value, str):
        pairs = _option_pairs(value)

    options: List[ServingOption] = []
    seen = set()
    for size, price in pairs:
        key = size_key(str(size or ""))
        amount, err = parse_price(price)
        if not key or amount is None or err or key in seen:
            continue
        seen.add(key)
        options.append(ServingOption(size=key, price=amount))
    return options
