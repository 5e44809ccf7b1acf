# ingest/templates.py
"""
Import templates: blank-ish menus, one per upload format, whose columns /
keys are the ones the readers recognise. Each carries a food, a cocktail
and a wine sample row so the facet columns are self-explanatory.

    build_template("xlsx" | "csv" | "json") -> (bytes, content_type, filename)
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Callable, Dict, List, Tuple

from openpyxl import Workbook

TEMPLATE_COLUMNS: List[str] = [
    "Name",
    "Price",
    "Category",
    "Description",
    "Ingredients",
    "Allergens",
    "Vegan",
    "Vegetarian",
    "Gluten Free",
    "Spicy",
    "Item Type",
    "Spirit",
    "ABV",
    "Wine Style",
    "Grape Variety",
    "Vintage",
    "Producer",
    "Region",
    "Serving Options",
]

# Column -> key in the JSON template.
_JSON_KEYS: Dict[str, str] = {
    "Name": "name",
    "Price": "price",
    "Category": "category",
    "Description": "description",
    "Ingredients": "ingredients",
    "Allergens": "allergens",
    "Vegan": "isVegan",
    "Vegetarian": "isVegetarian",
    "Gluten Free": "isGlutenFree",
    "Spicy": "isSpicy",
    "Item Type": "itemType",
    "Spirit": "spiritType",
    "ABV": "alcoholContent",
    "Wine Style": "wineStyle",
    "Grape Variety": "grapeVariety",
    "Vintage": "vintage",
    "Producer": "producer",
    "Region": "region",
    "Serving Options": "servingOptions",
}

# List-valued columns are written "a, b, c" in spreadsheet cells.
_LIST_COLUMNS = {"Ingredients", "Allergens", "Grape Variety"}

SAMPLE_ITEMS: List[Dict[str, Any]] = [
    {
        "Name": "Caesar Salad",
        "Price": 12.99,
        "Category": "Starters",
        "Description": "Romaine lettuce, parmesan, croutons, Caesar dressing",
        "Ingredients": ["romaine lettuce", "parmesan", "croutons", "caesar dressing"],
        "Allergens": ["dairy", "gluten", "eggs"],
        "Vegan": False,
        "Vegetarian": True,
        "Gluten Free": False,
        "Spicy": False,
        "Item Type": "food",
    },
    {
        "Name": "Mojito",
        "Price": 10.50,
        "Category": "Cocktails",
        "Description": "White rum, lime juice, mint, sugar, soda water",
        "Item Type": "beverage",
        "Spirit": "rum",
        "ABV": "12%",
    },
    {
        "Name": "Chardonnay Reserve",
        "Price": 12.00,
        "Category": "White Wines",
        "Description": "Rich and buttery with notes of vanilla",
        "Item Type": "wine",
        "Wine Style": "still_white",
        "Grape Variety": ["Chardonnay"],
        "Vintage": 2021,
        "Producer": "Sonoma Ridge",
        "Region": "Sonoma",
        "Serving Options": [{"size": "glass", "price": 12.00}, {"size": "bottle", "price": 45.00}],
    },
]

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _cell(column: str, value: Any, bool_words: Tuple[Any, Any]) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return bool_words[0] if value else bool_words[1]
    if column in _LIST_COLUMNS:
        return ", ".join(value)
    if column == "Serving Options":
        return "; ".join(f"{opt['size'].title()}: {opt['price']:.2f}" for opt in value)
    return value


def template_rows(bool_words: Tuple[Any, Any] = ("TRUE", "FALSE")) -> List[List[Any]]:
    """Header row plus one row per sample item."""
    rows: List[List[Any]] = [list(TEMPLATE_COLUMNS)]
    for item in SAMPLE_ITEMS:
        rows.append([_cell(col, item.get(col), bool_words) for col in TEMPLATE_COLUMNS])
    return rows


def excel_template() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Menu Items"
    for row in template_rows(bool_words=(True, False)):
        ws.append(row)
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def csv_template() -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    for row in template_rows():
        writer.writerow(row)
    return buf.getvalue().encode("utf-8-sig")


def json_template() -> bytes:
    items = []
    for item in SAMPLE_ITEMS:
        items.append({_JSON_KEYS[col]: item[col] for col in TEMPLATE_COLUMNS if col in item})
    payload = {"menu": {"name": "Sample Menu", "items": items}}
    return json.dumps(payload, indent=2).encode("utf-8")


TEMPLATES: Dict[str, Tuple[Callable[[], bytes], str, str]] = {
    "xlsx": (excel_template, XLSX_CONTENT_TYPE, "menu_import_template.xlsx"),
    "csv": (csv_template, "text/csv; charset=utf-8", "menu_import_template.csv"),
    "json": (json_template, "application/json; charset=utf-8", "menu_import_template.json"),
}


def build_template(fmt: str) -> Tuple[bytes, str, str]:
    """(bytes, content_type, filename); ValueError for formats without a template."""
    key = (fmt or "").strip().lower().lstrip(".")
    if key not in TEMPLATES:
        raise ValueError(f"no import template for {fmt!r}; expected one of {sorted(TEMPLATES)}")
    build, content_type, filename = TEMPLATES[key]
    return build(), content_type, filename
