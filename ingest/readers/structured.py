# ingest/readers/structured.py
"""
Structured JSON reader.

Accepted shapes:
  - {"name" | "menuName": ..., "items": [ {...}, ... ]}
  - {"menu": {"name": ..., "items": [...]}}
  - [ {...}, ... ]
  - {"sections" | "categories": [ {"name": "Cocktails", "items": [...]}, ... ]}

Each item dict becomes one keyed record. Items nested under a section inherit
the section name as ``category`` unless they carry their own.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from ingest.contracts import RawRecord
from ingest.errors import FormatError
from ingest.readers.headers import cell_text

log = logging.getLogger(__name__)

# JSON key -> canonical field
_KEY_ALIASES: Dict[str, str] = {
    "name": "name",
    "itemName": "name",
    "item_name": "name",
    "title": "name",
    "description": "description",
    "desc": "description",
    "category": "category",
    "section": "category",
    "price": "price",
    "itemType": "item_type",
    "item_type": "item_type",
    "type": "item_type",
}


def _load(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8-sig"))
    except UnicodeDecodeError as exc:
        raise FormatError("structured", f"not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise FormatError("structured", f"invalid JSON: {exc}") from exc


def _unwrap(doc: Any) -> Any:
    if isinstance(doc, dict) and isinstance(doc.get("menu"), dict):
        return doc["menu"]
    return doc


def menu_name_of(data: bytes) -> Optional[str]:
    """The document's own menu name, if it declares one."""
    doc = _unwrap(_load(data))
    if isinstance(doc, dict):
        for key in ("name", "menuName", "menu_name"):
            val = doc.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return None


def _item_fields(raw: Dict[str, Any], category: Optional[str]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in raw.items():
        canonical = _KEY_ALIASES.get(key)
        if canonical and value not in (None, "") and canonical not in fields:
            fields[canonical] = value
        elif not canonical:
            fields.setdefault(key, value)
    if category and "category" not in fields:
        fields["category"] = category
    return fields


def _render(fields: Dict[str, Any]) -> str:
    parts = [cell_text(fields.get(k)) for k in ("name", "description", "price")]
    return " | ".join(p for p in parts if p)


def _collect(node: Any, category: Optional[str], out: List[Dict[str, Any]]) -> None:
    if isinstance(node, list):
        for child in node:
            _collect(child, category, out)
        return
    if not isinstance(node, dict):
        return

    children = None
    for key in ("items", "menuItems", "sections", "categories"):
        if isinstance(node.get(key), list):
            children = node[key]
            break

    if children is not None:
        section = node.get("name") or node.get("title") or node.get("category")
        if not isinstance(section, str) or not section.strip():
            section = category
        _collect(children, section.strip() if section else None, out)
        return

    out.append(_item_fields(node, category))


def read_structured(data: bytes) -> List[RawRecord]:
    doc = _unwrap(_load(data))

    items: List[Dict[str, Any]] = []
    if isinstance(doc, list):
        _collect(doc, None, items)
    elif isinstance(doc, dict):
        top = None
        for key in ("items", "menuItems"):
            if isinstance(doc.get(key), list):
                top = doc[key]
                break
        if top is not None:
            # Top-level "name" is the menu name, not a category.
            _collect(top, None, items)
        else:
            sections = doc.get("sections") or doc.get("categories")
            if not isinstance(sections, list):
                raise FormatError("structured", "expected an 'items' array or a list of items")
            _collect(sections, None, items)
    else:
        raise FormatError("structured", f"unexpected top-level JSON {type(doc).__name__}")

    records = [
        RawRecord(text=_render(fields), line_no=i, fields=fields)
        for i, fields in enumerate(items, start=1)
    ]
    log.debug("structured: %d item records", len(records))
    return records
