# ingest/reconcile.py
"""
Conflict Reconciler

Compares a ParseResult against the items already on a menu and classifies
each parsed item:

  1. exact:  case-insensitive name equality + same item type
             -> EXACT_DUPLICATE / SKIP, or FIELD_CONFLICT / MANUAL
  2. fuzzy:  normalized-name similarity >= threshold + same item type
             -> LIKELY_DUPLICATE / SKIP, or FIELD_CONFLICT / MANUAL
  3. else:   NEW / CREATE

A field is compared only when both sides hold a value. Pure: no I/O, one
record per parsed item, in index order.
"""

from __future__ import annotations

import logging
import re
from difflib import SequenceMatcher
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ingest import config
from ingest.contracts import (
    ConflictClass,
    ConflictRecord,
    ExistingMenuItem,
    ImportAction,
    ParsedMenuItem,
    ParseResult,
    PlanEntry,
    ResolutionPlan,
    ServingOption,
    facet_field_names,
)
from ingest.parsers.text_norm import fold_accents

log = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_COMMON_PREFIXES_RE = re.compile(
    r"^(?:our\s+|the\s+|homemade\s+|house\s+|fresh\s+|classic\s+)",
    re.IGNORECASE,
)
_PUNCT_RE = re.compile(r"[^\w\s&']")
_FUZZY_MIN_LEN = 4  # shorter normalized names only match when equal

BASE_FIELDS = ("price", "category", "description")


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------

def normalize_name(name: str) -> str:
    """Lowercase, fold accents, strip common prefixes and punctuation,
    collapse whitespace."""
    n = fold_accents(name or "").lower().strip()
    prev = None
    while prev != n:
        prev = n
        n = _COMMON_PREFIXES_RE.sub("", n)
    n = _PUNCT_RE.sub(" ", n)
    n = _WHITESPACE_RE.sub(" ", n).strip()
    return n


def _token_overlap(a: str, b: str) -> float:
    ta, tb = set(a.split()), set(b.split())
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


def name_similarity(a: str, b: str) -> float:
    """Similarity (0.0-1.0) of two raw names: the higher of the character
    ratio and the token overlap of their normalized forms."""
    na, nb = normalize_name(a), normalize_name(b)
    if not na or not nb:
        return 0.0
    if na == nb:
        return 1.0
    if len(na) < _FUZZY_MIN_LEN or len(nb) < _FUZZY_MIN_LEN:
        return 0.0
    return max(SequenceMatcher(None, na, nb).ratio(), _token_overlap(na, nb))


def _id_key(item_id: str) -> Tuple[int, Any]:
    return (0, int(item_id)) if str(item_id).isdigit() else (1, str(item_id))


# ---------------------------------------------------------------------------
# Field comparison
# ---------------------------------------------------------------------------

def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (tuple, list, set)):
        return len(value) > 0
    return True


def _canon(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return round(value, 2)
    if isinstance(value, str):
        return _WHITESPACE_RE.sub(" ", fold_accents(value).strip().lower())
    if isinstance(value, (tuple, list)):
        out = set()
        for v in value:
            if isinstance(v, ServingOption):
                out.add((_canon(v.size), round(v.price, 2)))
            else:
                out.add(_canon(v))
        return frozenset(out)
    return value


def conflicting_fields(item: ParsedMenuItem, existing: ExistingMenuItem) -> List[str]:
    """Differing field names, in fixed order: price, category, description,
    then the facet fields of the shared type in declaration order."""
    diffs: List[str] = []
    for name in BASE_FIELDS:
        a, b = getattr(item, name), getattr(existing, name)
        if _has_value(a) and _has_value(b) and _canon(a) != _canon(b):
            diffs.append(name)

    if item.item_type != existing.item_type:
        return diffs
    ours, theirs = item.facets, existing.facets
    if ours is None or theirs is None:
        return diffs
    for name in facet_field_names(item.item_type):
        a, b = getattr(ours, name), getattr(theirs, name)
        if _has_value(a) and _has_value(b) and _canon(a) != _canon(b):
            diffs.append(name)
    return diffs


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _best_match(
    item: ParsedMenuItem,
    existing: Sequence[ExistingMenuItem],
    threshold: float,
) -> Tuple[Optional[ExistingMenuItem], float, bool]:
    """Returns (match, similarity, exact). Ties: highest similarity, then lowest id."""
    same_type = [e for e in existing if e.item_type == item.item_type]

    wanted = item.name.strip().casefold()
    exact = [e for e in same_type if e.name.strip().casefold() == wanted]
    if exact:
        return min(exact, key=lambda e: _id_key(e.id)), 1.0, True

    best: Optional[ExistingMenuItem] = None
    best_sim = 0.0
    for e in same_type:
        sim = name_similarity(item.name, e.name)
        if sim < threshold:
            continue
        if best is None or sim > best_sim or (sim == best_sim and _id_key(e.id) < _id_key(best.id)):
            best, best_sim = e, sim
    return best, best_sim, False


def reconcile_item(
    index: int,
    item: ParsedMenuItem,
    existing: Sequence[ExistingMenuItem],
    threshold: Optional[float] = None,
) -> ConflictRecord:
    threshold = config.FUZZY_MATCH_THRESHOLD if threshold is None else threshold
    match, sim, exact = _best_match(item, existing, threshold)

    if match is None:
        return ConflictRecord(
            candidate_index=index,
            classification=ConflictClass.NEW,
            suggested_action=ImportAction.CREATE,
            message=f'New item "{item.name}"',
        )

    diffs = conflicting_fields(item, match)
    if diffs:
        return ConflictRecord(
            candidate_index=index,
            classification=ConflictClass.FIELD_CONFLICT,
            suggested_action=ImportAction.MANUAL,
            matched_existing_item_id=match.id,
            conflicting_fields=tuple(diffs),
            similarity=sim,
            message=f'"{match.name}" already exists with different {", ".join(diffs)}',
        )

    if exact:
        return ConflictRecord(
            candidate_index=index,
            classification=ConflictClass.EXACT_DUPLICATE,
            suggested_action=ImportAction.SKIP,
            matched_existing_item_id=match.id,
            similarity=sim,
            message=f'"{match.name}" already exists',
        )
    return ConflictRecord(
        candidate_index=index,
        classification=ConflictClass.LIKELY_DUPLICATE,
        suggested_action=ImportAction.SKIP,
        matched_existing_item_id=match.id,
        similarity=sim,
        message=f'Similar item "{match.name}" found',
    )


def reconcile(
    parse_result: ParseResult,
    existing_items: Iterable[ExistingMenuItem],
    threshold: Optional[float] = None,
) -> List[ConflictRecord]:
    """One ConflictRecord per parsed item, in index order."""
    existing = list(existing_items)
    records = [
        reconcile_item(i, item, existing, threshold)
        for i, item in enumerate(parse_result.items)
    ]
    log.info(
        "reconciled %d items against %d existing: %s",
        len(records), len(existing), summarize(records),
    )
    return records


def summarize(records: Sequence[ConflictRecord]) -> Dict[str, int]:
    counts = {
        "total": len(records),
        "new": 0,
        "exact_duplicates": 0,
        "likely_duplicates": 0,
        "field_conflicts": 0,
        "requiring_action": 0,
    }
    keys = {
        ConflictClass.NEW: "new",
        ConflictClass.EXACT_DUPLICATE: "exact_duplicates",
        ConflictClass.LIKELY_DUPLICATE: "likely_duplicates",
        ConflictClass.FIELD_CONFLICT: "field_conflicts",
    }
    for rec in records:
        counts[keys[rec.classification]] += 1
        if rec.suggested_action is ImportAction.MANUAL:
            counts["requiring_action"] += 1
    return counts


def build_plan(
    parse_result: ParseResult,
    records: Sequence[ConflictRecord],
    decisions: Optional[Dict[int, ImportAction]] = None,
) -> ResolutionPlan:
    """
    Resolution plan from the suggested actions, with ``decisions`` replacing
    the suggestion for chosen indexes. UPDATE targets the matched item.
    MANUAL entries are left in place; the job runner refuses them.
    """
    decisions = decisions or {}
    entries: List[PlanEntry] = []
    for rec in records:
        action = decisions.get(rec.candidate_index, rec.suggested_action)
        existing_id = rec.matched_existing_item_id if action is ImportAction.UPDATE else None
        entries.append(PlanEntry(index=rec.candidate_index, action=action, existing_item_id=existing_id))
    return ResolutionPlan(
        menu_name=parse_result.menu_name,
        items=parse_result.items,
        entries=tuple(entries),
    )
