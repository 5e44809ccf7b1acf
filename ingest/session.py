# ingest/session.py
"""
Parse Session

    parse_document(data, fmt, menu_name=None, filename=None) -> ParseResult

Reads the document, then runs each candidate through
extract -> classify -> enhance -> assemble, in document order. Nothing is
cached between calls.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ingest import config
from ingest.classifier import classify
from ingest.contracts import (
    FACET_ATTR,
    DocumentFormat,
    ItemCandidate,
    ParsedMenuItem,
    ParseResult,
)
from ingest.enhancers.dispatch import enhance
from ingest.errors import FormatError
from ingest.extractor import extract_candidates
from ingest.readers.registry import read_document
from ingest.readers.structured import menu_name_of
from ingest.reconcile import normalize_name
from ingest.scoring.confidence import item_confidence

log = logging.getLogger(__name__)


def resolve_menu_name(
    menu_name: Optional[str],
    data: bytes,
    fmt: DocumentFormat,
    filename: Optional[str] = None,
) -> str:
    """Caller's name, else the document's own name, else the file stem, else the default."""
    if menu_name and menu_name.strip():
        return menu_name.strip()
    if fmt is DocumentFormat.STRUCTURED:
        own = menu_name_of(data)
        if own:
            return own
    if filename:
        stem = Path(filename).stem.replace("_", " ").strip()
        if stem:
            return stem
    return config.DEFAULT_MENU_NAME


def _truncate(value: Optional[str], limit: int) -> Tuple[Optional[str], bool]:
    if value is None or len(value) <= limit:
        return value, False
    return value[:limit].rstrip(), True


def assemble_item(candidate: ItemCandidate, notes: List[str]) -> ParsedMenuItem:
    """classify -> enhance -> ParsedMenuItem for one named candidate."""
    guess = classify(candidate)
    facet = enhance(guess.item_type, candidate, candidate.raw_text)
    confidence = item_confidence(guess.confidence, facet.confidence)

    name, cut_name = _truncate((facet.name or candidate.name).strip(), config.MAX_ITEM_NAME_LENGTH)
    if cut_name:
        notes.append(f"{name!r}: name truncated to {config.MAX_ITEM_NAME_LENGTH} characters")
    description, cut_desc = _truncate(candidate.description, config.MAX_ITEM_DESCRIPTION_LENGTH)
    if cut_desc:
        notes.append(f"{name!r}: description truncated to {config.MAX_ITEM_DESCRIPTION_LENGTH} characters")

    price = candidate.price
    options = getattr(facet.facets, "serving_options", ())
    if len(options) > 1:
        price = options[0].price

    return ParsedMenuItem(
        name=name or "",
        description=description,
        price=price,
        price_text=candidate.price_text,
        category=guess.category,
        item_type=guess.item_type,
        confidence=confidence,
        original_text=candidate.raw_text,
        **{FACET_ATTR[guess.item_type]: facet.facets},
    )


def parse_document(
    data: bytes,
    fmt: Union[str, DocumentFormat],
    menu_name: Optional[str] = None,
    filename: Optional[str] = None,
) -> ParseResult:
    """
    Parse one uploaded document. Raises FormatError when the bytes cannot be
    read as ``fmt``; everything else is reported in processing_notes.
    """
    try:
        doc_format = DocumentFormat.parse(fmt)
    except ValueError as exc:
        raise FormatError(str(fmt), str(exc)) from exc
    records = read_document(data, doc_format)
    resolved_name = resolve_menu_name(menu_name, data, doc_format, filename)

    candidates, notes = extract_candidates(records)
    items: List[ParsedMenuItem] = []
    seen: Dict[Tuple[str, str, Optional[float]], str] = {}

    for cand in candidates:
        if not cand.name or not cand.name.strip():
            notes.append(f"line {cand.source_lines[0]}: dropped candidate with no name")
            log.warning("dropping nameless candidate at line %d", cand.source_lines[0])
            continue

        item = assemble_item(cand, notes)
        items.append(item)

        if item.confidence < config.LOW_CONFIDENCE_NOTE_THRESHOLD:
            notes.append(f"{item.name!r}: low confidence ({item.confidence})")

        key = (normalize_name(item.name), item.item_type.value, item.price)
        if key in seen:
            notes.append(f"{item.name!r}: appears more than once in the document")
        else:
            seen[key] = item.name

    log.info(
        "parsed %s document %r: %d items, %d notes",
        doc_format.value, resolved_name, len(items), len(notes),
    )
    return ParseResult(
        menu_name=resolved_name,
        items=tuple(items),
        total_items_found=len(items),
        processing_notes=tuple(notes),
    )
