# ingest/readers/headers.py
"""
Header-row detection shared by the tabular, delimited and word readers.

A row counts as a header when its cells map onto the canonical fields below
and one of them is ``name``. Rows after a header become keyed records; rows
before it (titles, notes) stay as plain text lines.
"""

from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from ingest.contracts import RawRecord

# ------------------------
# Aliases
# ------------------------

HEADER_ALIASES: Dict[str, Set[str]] = {
    "name": {
        "name", "item", "itemname", "itemtitle", "title", "menuitem", "dish",
        "drink", "product", "wine", "cocktail",
    },
    "description": {
        "description", "desc", "details", "detail", "itemdescription",
        "ingredients", "notes", "tastingnotes",
    },
    "category": {
        "category", "cat", "section", "group", "menusection", "menugroup",
        "course", "heading",
    },
    "price": {
        "price", "cost", "amount", "baseprice", "listprice", "pricegbp",
        "priceusd", "priceeur", "sellprice",
    },
    "item_type": {"type", "itemtype", "kind"},
}

# Extra columns / JSON keys that state a facet outright -> facet field name.
# Matched after normalize_header(), so "Grape Variety", "grapeVariety" and
# "grape_variety" all land on grape_varieties.
FACET_ALIASES: Dict[str, Set[str]] = {
    # food
    "ingredients": {"ingredients", "itemingredients", "ingredientlist"},
    "allergens": {"allergens", "allergen", "allergyinfo"},
    "cooking_methods": {"cookingmethods", "cookingmethod", "preparation"},
    "is_vegetarian": {"vegetarian", "isvegetarian", "veg"},
    "is_vegan": {"vegan", "isvegan"},
    "is_gluten_free": {"glutenfree", "isglutenfree", "gf"},
    "is_dairy_free": {"dairyfree", "isdairyfree"},
    "is_spicy": {"spicy", "isspicy", "hot"},
    # beverage
    "spirit_type": {"spirit", "spirittype", "basespirit"},
    "beer_style": {"beerstyle"},
    "cocktail_ingredients": {"cocktailingredients"},
    "alcohol_content": {"abv", "alcoholcontent", "alcohol"},
    "serving_style": {"servingstyle", "served"},
    "serving_size": {"servingsize", "size", "measure"},
    "is_non_alcoholic": {"nonalcoholic", "isnonalcoholic", "alcoholfree"},
    # wine
    "vintage": {"vintage", "winevintage", "year"},
    "grape_varieties": {"grapevariety", "grapevarieties", "grapes", "grape", "winegrapevariety"},
    "region": {"region", "wineregion", "appellation"},
    "producer": {"producer", "wineproducer", "winery", "estate"},
    "wine_color": {"winecolor", "winecolour", "color", "colour"},
    "wine_style": {"winestyle"},
    # beverage + wine
    "serving_options": {"servingoptions", "wineservingoptions", "servings"},
}

_FACET_LOOKUP: Dict[str, str] = {
    alias: facet for facet, aliases in FACET_ALIASES.items() for alias in aliases
}


def normalize_header(h: Any) -> str:
    """'Item Name' -> 'itemname'."""
    return "".join(ch for ch in str(h or "").lower() if ch.isalnum())


def detect_header_mapping(headers: Sequence[Any]) -> Dict[str, int]:
    """
    Map canonical field -> column index. Empty when ``name`` is not among
    the headers (the row is data, not a header).
    """
    mapping: Dict[str, int] = {}
    normalized = [normalize_header(h) for h in headers]
    for canonical, aliases in HEADER_ALIASES.items():
        for idx, norm in enumerate(normalized):
            if norm in aliases and idx not in mapping.values():
                mapping[canonical] = idx
                break
    if "name" not in mapping or len(mapping) < 2:
        return {}
    return mapping


def facet_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Facet values stated by a keyed record's extra columns / keys.
    {"grapeVariety": ["Tempranillo"], "price": 34} -> {"grape_varieties": ["Tempranillo"]}
    """
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in HEADER_ALIASES or value is None or value == "":
            continue
        if key in ("food", "beverage", "wine") and isinstance(value, dict):
            # A facet group as written by ParsedMenuItem.to_dict().
            for name, inner in value.items():
                if name in FACET_ALIASES and inner not in (None, "", [], ()):
                    out.setdefault(name, inner)
            continue
        facet = key if key in FACET_ALIASES else _FACET_LOOKUP.get(normalize_header(key))
        if facet and facet not in out:
            out[facet] = value
    return out


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.2f}"
    if isinstance(value, Decimal):
        return f"{value:.2f}" if value != value.to_integral() else str(int(value))
    if isinstance(value, (_dt.datetime, _dt.date)):
        return value.isoformat()
    return " ".join(str(value).split())


def render_row(cells: Sequence[Any]) -> str:
    """
    Join non-empty cells with " | ". A numeric last cell is written with two
    decimals so it reads as a price ("Mojito | 9" -> "Mojito | 9.00").
    """
    parts = [cell_text(c) for c in cells]
    non_empty = [(i, p) for i, p in enumerate(parts) if p]
    if not non_empty:
        return ""
    last_idx = non_empty[-1][0]
    last_val = cells[last_idx]
    if isinstance(last_val, (int, float, Decimal)) and not isinstance(last_val, bool):
        parts[last_idx] = f"{Decimal(str(last_val)):.2f}"
    return " | ".join(p for p in parts if p)


def rows_to_records(
    rows: Iterable[Sequence[Any]],
    start_line: int = 1,
    header_mapping: Optional[Dict[str, int]] = None,
) -> List[RawRecord]:
    """
    Turn raw rows into records. Scans for a header row until one is found;
    afterwards every non-empty row is a keyed record.
    """
    records: List[RawRecord] = []
    mapping = dict(header_mapping or {})
    headers: List[str] = []
    line_no = start_line - 1

    for row in rows:
        line_no += 1
        cells = list(row or [])
        text = render_row(cells)
        if not text:
            continue

        if not mapping:
            found = detect_header_mapping(cells)
            if found:
                mapping = found
                headers = [cell_text(c) for c in cells]
                continue
            records.append(RawRecord(text=text, line_no=line_no))
            continue

        fields: Dict[str, Any] = {}
        for canonical, idx in mapping.items():
            if idx < len(cells) and cells[idx] not in (None, ""):
                fields[canonical] = cells[idx]
        mapped = set(mapping.values())
        for idx, value in enumerate(cells):
            if idx in mapped or value in (None, "") or idx >= len(headers):
                continue
            if headers[idx]:
                fields.setdefault(headers[idx].lower(), value)
        records.append(RawRecord(text=text, line_no=line_no, fields=fields))

    return records
