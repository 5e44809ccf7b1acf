# ingest/parsers/price_parser.py
"""
Price Parser
Finds price expressions inside menu lines and normalizes them to
2-decimal floats via Decimal (no binary float drift).

Recognised shapes:
  - currency prefix:  £9.50, $12, € 8,50
  - currency suffix:  12.50€, 12 EUR
  - trailing bare decimal at end of line:  "Burger ...... 12.50"
  - market price:  MP / Market Price (a marker with no value)
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional, Tuple

CURRENCY_SYMBOLS = "£$€"

_NUM = r"(?:\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:[.,]\d{1,2})?)"

PRICE_TOKEN_RE = re.compile(
    rf"(?P<pre>[{CURRENCY_SYMBOLS}]\s?{_NUM})"
    rf"|(?P<suf>(?<![\d.,]){_NUM}\s?(?:[{CURRENCY_SYMBOLS}]|(?:EUR|GBP|USD)\b)(?!\s?\d))",
    re.I,
)
BARE_TRAILING_RE = re.compile(r"(?<![\d.,%£$€])(\d+\.\d{2})\s*$")
MARKET_RE = re.compile(r"\b(?:MP|M\.P\.|market\s+price)\s*$", re.I)

# Size labels that sit directly before a price ("Pint £6.50, Half Pint £3.25").
SERVING_SIZE_RE = re.compile(
    r"(?:half[\s-]+pint|pint|schooner|glass|bottle|carafe|jug|magnum|can|"
    r"single|double|small|medium|large|\d+(?:\.\d+)?\s?(?:ml|cl|l|oz))",
    re.I,
)

_CODE_RE = re.compile(r"\b(?:EUR|GBP|USD)\b", re.I)
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceMatch:
    text: str
    start: int
    end: int
    value: Optional[float]


def _normalise_separators(s: str) -> str:
    if "," in s and "." in s:
        return s.replace(",", "")
    if "," in s:
        if re.fullmatch(r"\d+,\d{1,2}", s):
            return s.replace(",", ".")
        return s.replace(",", "")
    return s


def parse_price(raw: Any) -> Tuple[Optional[float], Optional[str]]:
    """
    Normalize a price value to a 2dp float.

    Returns:
      (price | None, error_message | None)
      - "" / None          -> (None, None)  (no price supplied)
      - "MP" / "market"    -> (None, "market price")
      - "twelve"           -> (None, "unparseable price 'twelve'")
    """
    if raw is None:
        return None, None
    if isinstance(raw, bool):
        return None, f"unparseable price {raw!r}"

    if isinstance(raw, (int, float, Decimal)):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            return None, f"unparseable price {raw!r}"
    else:
        s = str(raw).strip()
        if not s:
            return None, None
        if s.lower() in {"mp", "m.p.", "market", "market price"}:
            return None, "market price"
        s = _CODE_RE.sub("", s).strip(CURRENCY_SYMBOLS + " \t")
        s = _normalise_separators(s)
        try:
            value = Decimal(s)
        except InvalidOperation:
            return None, f"unparseable price {raw!r}"

    if not value.is_finite() or value < 0:
        return None, f"invalid price {raw!r}"
    return float(value.quantize(_CENTS, rounding=ROUND_HALF_UP)), None


def find_prices(text: str) -> List[PriceMatch]:
    """Return every price token in ``text``, left to right."""
    found: List[PriceMatch] = []
    for m in PRICE_TOKEN_RE.finditer(text or ""):
        token = m.group(0).strip()
        value, _err = parse_price(token)
        found.append(PriceMatch(token, m.start(), m.end(), value))

    if not found:
        m = BARE_TRAILING_RE.search(text or "")
        if m:
            value, _err = parse_price(m.group(1))
            found.append(PriceMatch(m.group(1), m.start(1), m.end(1), value))
        else:
            m = MARKET_RE.search(text or "")
            if m:
                found.append(PriceMatch(m.group(0).strip(), m.start(), m.end(), None))
    return found


def has_price_marker(text: str) -> bool:
    return bool(find_prices(text))


def find_sized_prices(text: str) -> List[Tuple[str, float]]:
    """
    Pair each priced token with the size label right before it.
    "Glass £7, Bottle £28" -> [("Glass", 7.0), ("Bottle", 28.0)]
    """
    pairs: List[Tuple[str, float]] = []
    for pm in find_prices(text):
        if pm.value is None:
            continue
        head = text[: pm.start].rstrip(" :-–=\t")
        m = re.search(rf"\b({SERVING_SIZE_RE.pattern})$", head, re.I)
        if m:
            pairs.append((m.group(1).strip(), pm.value))
    return pairs
