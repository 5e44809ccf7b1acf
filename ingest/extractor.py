# ingest/extractor.py
"""
Item Candidate Extractor

Turns reader records into ItemCandidates.

Keyed records (spreadsheet / CSV rows under a header, JSON items) map
straight onto a candidate. Text records are scanned in order with a small
line grammar:

  - a line with a price marker is an item line
  - a short line without a price, followed by a self-contained item line
    (or written in CAPS / ending in ':'), is a category header
  - description-looking lines after an item line extend its description
  - other unpriced lines before an item line start that item
    (name on the first line, the rest is description), unless the item
    line carries its own name, in which case they are reported
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ingest import config
from ingest.contracts import ItemCandidate, RawRecord
from ingest.parsers.food_vocab import DIETARY_MARKER_RE
from ingest.parsers.price_parser import SERVING_SIZE_RE, find_prices, parse_price
from ingest.parsers.text_norm import clean_line, title_header
from ingest.readers.headers import cell_text, facet_fields

log = logging.getLogger(__name__)

_SHEET_MARKER_RE = re.compile(r"^=+\s*(.+?)\s*=+$")
_NAME_SEPARATORS = (" | ", " - ", " – ", " — ", ": ")
_DESC_LEADS = {"with", "served", "topped", "finished", "and", "or", "on", "in", "a", "an"}
_TRAILING_SPECS_RE = re.compile(
    r"(?:\s+(?:\d{1,2}(?:\.\d{1,2})?\s?%\s?(?:abv|vol\.?)?|\d+(?:\.\d+)?\s?(?:ml|cl|l|oz)))+$",
    re.IGNORECASE,
)
_HEADER_MAX_WORDS = 5
_HEADER_MAX_CHARS = 40


# ------------------------
# Line shape helpers
# ------------------------

def _is_description_like(text: str) -> bool:
    words = text.split()
    if not words:
        return False
    return (
        text[:1].islower()
        or "," in text
        or len(words) > 6
        or words[0].lower() in _DESC_LEADS
    )


def _name_region(text: str) -> str:
    """Text before the first price token."""
    prices = find_prices(text)
    if not prices:
        return text
    return text[: prices[0].start].strip(" -–—:|,")


def _is_self_contained(text: str) -> bool:
    """A priced line that carries its own name ("Mojito - rum, lime £9")."""
    region = _name_region(text)
    if not region:
        return False
    if any(sep.strip() and sep in region for sep in _NAME_SEPARATORS):
        return True
    return not _is_description_like(region)


def _is_header_shape(text: str) -> bool:
    words = text.split()
    return (
        0 < len(words) <= _HEADER_MAX_WORDS
        and len(text) <= _HEADER_MAX_CHARS
        and not _is_description_like(text)
        and not find_prices(text)
    )


def split_name_description(text: str) -> Tuple[str, Optional[str]]:
    """
    "Mojito - White rum, lime" -> ("Mojito", "White rum, lime")
    "Margherita, tomato, basil" -> ("Margherita", "tomato, basil")
    """
    text = text.strip(" -–—:|,")
    for sep in _NAME_SEPARATORS:
        if sep in text:
            name, _, desc = text.partition(sep)
            if name.strip() and len(name.split()) <= 8:
                return name.strip(), (desc.strip(" -–—:|,") or None)
    if ", " in text:
        name, _, desc = text.partition(", ")
        if len(name.split()) <= 5:
            return name.strip(), (desc.strip() or None)
    return text, None


def _clean_name(name: str) -> str:
    name = DIETARY_MARKER_RE.sub("", name)
    name = _TRAILING_SPECS_RE.sub("", name)
    return name.strip(" -–—:|,.")


# ------------------------
# Working item
# ------------------------

@dataclass
class _Pending:
    name: str
    category: str
    start: int
    end: int
    raw_lines: List[str] = field(default_factory=list)
    desc_parts: List[str] = field(default_factory=list)
    price_text: Optional[str] = None
    price: Optional[float] = None
    price_error: Optional[str] = None
    type_hint: Optional[str] = None

    def freeze(self) -> ItemCandidate:
        desc = " ".join(p for p in self.desc_parts if p).strip() or None
        return ItemCandidate(
            raw_text="\n".join(self.raw_lines),
            name=_clean_name(self.name),
            description=desc,
            price_text=self.price_text,
            price=self.price,
            category_hint=self.category,
            source_lines=(self.start, self.end),
            type_hint=self.type_hint,
        )


def _price_parts(line: str, with_pending: bool) -> Tuple[str, Optional[str], Optional[str], Optional[float], Optional[str]]:
    """
    Split a priced line into (name, description, price_text, price, error).
    With ``with_pending`` the whole non-price text is description.
    """
    prices = find_prices(line)
    first, last = prices[0], prices[-1]
    head = line[: first.start].strip(" -–—:|,")
    tail = line[last.end:].strip(" -–—:|,.")

    if len(prices) > 1:
        # "Peroni Pint £6.50, Half Pint £3.25": drop the size label from the name.
        m = re.search(rf"\s*\b(?:{SERVING_SIZE_RE.pattern})$", head, re.IGNORECASE)
        if m and m.start() > 0:
            head = head[: m.start()].strip(" -–—:|,")

    if with_pending:
        name, desc = "", head or None
    else:
        name, desc = split_name_description(head)
    if tail and not find_prices(tail):
        desc = f"{desc} {tail}".strip() if desc else tail

    value, err = parse_price(first.text)
    if first.value is None and err is None:
        err = f"unparseable price {first.text!r}"
    return name, desc, first.text, value, err


# ------------------------
# Keyed records
# ------------------------

def _from_fields(rec: RawRecord, current_header: str) -> Tuple[ItemCandidate, Optional[str]]:
    fields = rec.fields or {}
    name = clean_line(cell_text(fields.get("name")))
    desc = clean_line(cell_text(fields.get("description"))) or None
    category = clean_line(cell_text(fields.get("category"))) or current_header

    raw_price = fields.get("price")
    price_text = cell_text(raw_price) or None
    price, err = parse_price(raw_price)
    note = None
    if err:
        note = f"line {rec.line_no}: could not parse price {price_text!r} for {name or '(no name)'!r} ({err})"

    type_hint = cell_text(fields.get("item_type")).lower() or None
    cand = ItemCandidate(
        raw_text=rec.text,
        name=_clean_name(name),
        description=desc,
        price_text=price_text,
        price=price,
        category_hint=category,
        source_lines=(rec.line_no, rec.line_no),
        type_hint=type_hint,
        explicit_facets=facet_fields(fields) or None,
    )
    return cand, note


# ------------------------
# Public API
# ------------------------

def extract_candidates(records: Sequence[RawRecord]) -> Tuple[List[ItemCandidate], List[str]]:
    """
    Returns (candidates, processing_notes). Never raises on odd input:
    unusable lines are reported in the notes.
    """
    candidates: List[ItemCandidate] = []
    notes: List[str] = []

    header = config.UNCATEGORIZED
    open_item: Optional[_Pending] = None
    starts: List[Tuple[int, str]] = []  # unpriced lines waiting for a price

    lines: List[Tuple[RawRecord, str]] = [(r, clean_line(r.text)) for r in records]

    def next_text(i: int) -> Optional[str]:
        """Next non-blank text line; "" when keyed rows follow; None at the end of the text."""
        for rec, txt in lines[i + 1:]:
            if rec.fields is not None:
                return ""
            if _SHEET_MARKER_RE.match(txt):
                return None
            if txt:
                return txt
        return None

    def close_open() -> None:
        nonlocal open_item
        if open_item is not None:
            if open_item.price_error:
                notes.append(
                    f"line {open_item.start}: could not parse price {open_item.price_text!r} "
                    f"for {open_item.name!r} ({open_item.price_error})"
                )
            candidates.append(open_item.freeze())
            open_item = None

    def drop_starts() -> None:
        for line_no, txt in starts:
            notes.append(f"line {line_no}: no price found, line ignored: {txt!r}")
        starts.clear()

    for i, (rec, text) in enumerate(lines):
        if rec.fields is not None:
            close_open()
            drop_starts()
            cand, note = _from_fields(rec, header)
            candidates.append(cand)
            if note:
                notes.append(note)
            continue

        if not text:
            continue

        marker = _SHEET_MARKER_RE.match(text)
        if marker:
            close_open()
            drop_starts()
            header = title_header(marker.group(1)) or header
            continue

        if find_prices(text):
            close_open()
            if starts and _is_self_contained(text):
                # The line names itself; what came before it was not its name.
                drop_starts()
            if starts:
                _name, desc, price_text, price, err = _price_parts(text, with_pending=True)
                first_no, first_txt = starts[0]
                desc_parts = [t for _, t in starts[1:]] + ([desc] if desc else [])
                open_item = _Pending(
                    name=first_txt,
                    category=header,
                    start=first_no,
                    end=rec.line_no,
                    raw_lines=[t for _, t in starts] + [text],
                    desc_parts=desc_parts,
                    price_text=price_text,
                    price=price,
                    price_error=err,
                )
                starts.clear()
            else:
                name, desc, price_text, price, err = _price_parts(text, with_pending=False)
                open_item = _Pending(
                    name=name,
                    category=header,
                    start=rec.line_no,
                    end=rec.line_no,
                    raw_lines=[text],
                    desc_parts=[desc] if desc else [],
                    price_text=price_text,
                    price=price,
                    price_error=err,
                )
            continue

        # Unpriced line: header, description continuation, or item start.
        nxt = next_text(i)
        if _is_header_shape(text):
            explicit = text.isupper() or text.rstrip().endswith(":")
            # Only a header when something follows it.
            implied = not starts and nxt is not None and (
                nxt == ""
                or _is_header_shape(nxt)
                or (bool(find_prices(nxt)) and _is_self_contained(nxt))
            )
            if explicit or implied:
                close_open()
                drop_starts()
                header = title_header(text) or header
                log.debug("line %d: header %r", rec.line_no, header)
                continue

        if open_item is not None and not starts and _is_description_like(text):
            open_item.desc_parts.append(text)
            open_item.raw_lines.append(text)
            open_item.end = rec.line_no
            continue

        close_open()
        starts.append((rec.line_no, text))

    close_open()
    drop_starts()

    log.debug("extracted %d candidates from %d records", len(candidates), len(records))
    return candidates, notes
