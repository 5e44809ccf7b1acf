"""
End-to-end parse sessions: bytes in, ParseResult out.

Covers:
  - cocktail line under a CAPS header -> one fully-faceted beverage item
  - same bytes parse to the same result every time
  - each item carries exactly the facet group of its type
  - confidence always within 0..100, low scores noted
  - nameless candidates dropped with a note, never silently
  - repeated items flagged in processing notes
  - FormatError for empty files and unknown format tags
  - menu name: caller > document > filename stem > default
  - spreadsheet and Word documents through the full pipeline
  - facet values stated by JSON keys / extra columns reach the item
  - a trailing unpriced line is noted, not taken as a header
  - wine names lose a trailing vintage and region
"""

from __future__ import annotations

import io
import json

import pytest
from docx import Document
from openpyxl import Workbook

from ingest import config
from ingest.contracts import FACET_ATTR, DocumentFormat, ItemType
from ingest.errors import FormatError
from ingest.session import parse_document, resolve_menu_name

MOJITO_MENU = (
    "COCKTAILS\n"
    "Mojito - White rum, lime juice, mint, sugar, soda water £10.50\n"
).encode("utf-8")

MIXED_MENU = (
    "STARTERS\n"
    "Chicken Wings - buffalo sauce, blue cheese dip £8.50\n"
    "Garden Salad (v) £7\n"
    "COCKTAILS\n"
    "Negroni - Gin, Campari, sweet vermouth £11\n"
    "WINES\n"
    "Cloudy Bay Sauvignon Blanc - Marlborough 2022 Glass £9, Bottle £38\n"
).encode("utf-8")


def _xlsx_bytes() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Cocktails"
    ws.append(["Name", "Description", "Price"])
    ws.append(["Mojito", "White rum, lime, mint", 9.5])
    ws.append(["Negroni", "Gin, Campari, vermouth", 10])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _docx_bytes() -> bytes:
    doc = Document()
    doc.add_paragraph("DESSERTS")
    doc.add_paragraph("Tiramisu - mascarpone, coffee £7.00")
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ===========================================================================
# SECTION 1: Cocktail line
# ===========================================================================

class TestMojito:
    """A single cocktail line under a header."""

    def test_item_fields(self):
        result = parse_document(MOJITO_MENU, "txt")
        assert result.total_items_found == 1
        item = result.items[0]
        assert item.name == "Mojito"
        assert item.item_type is ItemType.BEVERAGE
        assert item.category == "Cocktails"
        assert item.price == 10.5
        assert item.price_text == "£10.50"
        assert item.description == "White rum, lime juice, mint, sugar, soda water"

    def test_beverage_facets(self):
        item = parse_document(MOJITO_MENU, "txt").items[0]
        assert item.beverage.spirit_type == "rum"
        assert item.beverage.cocktail_ingredients == (
            "white rum", "lime juice", "mint", "sugar", "soda water",
        )
        assert item.beverage.is_non_alcoholic is False
        assert item.food is None
        assert item.wine is None

    def test_confidence_is_weakest_stage(self):
        item = parse_document(MOJITO_MENU, "txt").items[0]
        assert item.confidence == 80

    def test_original_text_kept(self):
        item = parse_document(MOJITO_MENU, "txt").items[0]
        assert item.original_text.startswith("Mojito - White rum")


# ===========================================================================
# SECTION 2: Result invariants
# ===========================================================================

class TestInvariants:
    """Properties every ParseResult holds."""

    def test_deterministic(self):
        first = parse_document(MIXED_MENU, "delimited").to_dict()
        second = parse_document(MIXED_MENU, "delimited").to_dict()
        assert first == second

    def test_total_matches_items(self):
        result = parse_document(MIXED_MENU, "delimited")
        assert result.total_items_found == len(result.items) == 4

    def test_types(self):
        items = parse_document(MIXED_MENU, "delimited").items
        assert [i.item_type for i in items] == [
            ItemType.FOOD, ItemType.FOOD, ItemType.BEVERAGE, ItemType.WINE,
        ]

    def test_facet_exclusivity(self):
        for item in parse_document(MIXED_MENU, "delimited").items:
            for item_type, attr in FACET_ATTR.items():
                group = getattr(item, attr)
                if item_type is item.item_type:
                    assert group is not None
                else:
                    assert group is None

    def test_confidence_bounds(self):
        for item in parse_document(MIXED_MENU, "delimited").items:
            assert 0 <= item.confidence <= 100

    def test_wine_takes_first_serving_price(self):
        wine = parse_document(MIXED_MENU, "delimited").items[3]
        assert wine.price == 9.0
        assert [o.size for o in wine.wine.serving_options] == ["glass", "bottle"]

    def test_low_confidence_noted(self):
        result = parse_document(b"Chef's Surprise \xc2\xa310\n", "txt")
        assert result.items[0].confidence < config.LOW_CONFIDENCE_NOTE_THRESHOLD
        assert any("low confidence" in n for n in result.processing_notes)


# ===========================================================================
# SECTION 3: Notes and drops
# ===========================================================================

class TestNotes:
    """Dropped and doubtful candidates are reported."""

    def test_nameless_candidate_dropped(self):
        data = json.dumps({"items": [{"name": "Chips", "price": 3}, {"price": 5}]}).encode()
        result = parse_document(data, "json")
        assert [i.name for i in result.items] == ["Chips"]
        assert any("dropped candidate with no name" in n for n in result.processing_notes)

    def test_repeated_item_noted(self):
        result = parse_document(b"Burger 12.50\nBurger 12.50\n", "txt")
        assert len(result.items) == 2
        assert any("appears more than once" in n for n in result.processing_notes)

    def test_orphan_line_noted(self):
        result = parse_document("Welcome, enjoy!\nBurger £12\n".encode("utf-8"), "txt")
        assert len(result.items) == 1
        assert any(n.startswith("line 1: no price found") for n in result.processing_notes)


# ===========================================================================
# SECTION 4: Format errors
# ===========================================================================

class TestFormatErrors:
    """Whole-document failures raise FormatError."""

    def test_empty_file(self):
        with pytest.raises(FormatError):
            parse_document(b"", "csv")

    def test_unknown_format(self):
        with pytest.raises(FormatError) as exc:
            parse_document(b"abc", "rtf")
        assert exc.value.fmt == "rtf"

    def test_wrong_format_for_bytes(self):
        with pytest.raises(FormatError):
            parse_document(b"name,price\nChips,3\n", DocumentFormat.TABULAR)


# ===========================================================================
# SECTION 5: Menu name
# ===========================================================================

class TestMenuName:
    """resolve_menu_name() precedence."""

    def test_caller_name_wins(self):
        data = json.dumps({"name": "Brunch", "items": []}).encode()
        assert resolve_menu_name("  Dinner ", data, DocumentFormat.STRUCTURED, "x.json") == "Dinner"

    def test_document_name(self):
        data = json.dumps({"name": "Brunch", "items": []}).encode()
        assert resolve_menu_name(None, data, DocumentFormat.STRUCTURED, "x.json") == "Brunch"

    def test_filename_stem(self):
        assert resolve_menu_name(None, b"", DocumentFormat.DELIMITED, "summer_drinks.csv") == "summer drinks"

    def test_default(self):
        assert resolve_menu_name("", b"", DocumentFormat.DELIMITED) == config.DEFAULT_MENU_NAME

    def test_parse_result_uses_resolved_name(self):
        result = parse_document(MOJITO_MENU, "txt", filename="bar_menu.txt")
        assert result.menu_name == "bar menu"


# ===========================================================================
# SECTION 6: Other formats
# ===========================================================================

class TestOtherFormats:
    """Spreadsheet and Word documents end to end."""

    def test_spreadsheet(self):
        result = parse_document(_xlsx_bytes(), "xlsx")
        assert [i.name for i in result.items] == ["Mojito", "Negroni"]
        assert all(i.item_type is ItemType.BEVERAGE for i in result.items)
        assert all(i.category == "Cocktails" for i in result.items)
        assert result.items[1].price == 10.0

    def test_word(self):
        result = parse_document(_docx_bytes(), "docx")
        item = result.items[0]
        assert item.name == "Tiramisu"
        assert item.item_type is ItemType.FOOD
        assert item.category == "Desserts"
        assert item.price == 7.0
        assert "dairy" in item.food.allergens


# ===========================================================================
# SECTION 7: Stated facets and name clean-up
# ===========================================================================

STATED_MENU = json.dumps({
    "items": [
        {
            "name": "Reserva",
            "itemType": "wine",
            "price": 34,
            "vintage": 2018,
            "grapeVariety": ["Tempranillo"],
            "region": "Rioja",
            "producer": "Muga",
        },
        {
            "name": "Garden Bowl",
            "itemType": "food",
            "price": 11,
            "ingredients": ["quinoa", "kale"],
            "isVegan": True,
        },
    ]
}).encode("utf-8")


class TestStatedFacets:
    """Keyed values win over what the text alone would give."""

    def test_wine_keys(self):
        result = parse_document(STATED_MENU, "json")
        wine = result.items[0]
        assert wine.item_type is ItemType.WINE
        assert wine.name == "Reserva"
        assert wine.wine.vintage == 2018
        assert wine.wine.grape_varieties == ("Tempranillo",)
        assert wine.wine.region == "Rioja"
        assert wine.wine.producer == "Muga"

    def test_food_keys(self):
        result = parse_document(STATED_MENU, "json")
        bowl = result.items[1]
        assert bowl.item_type is ItemType.FOOD
        assert bowl.food.ingredients == ("quinoa", "kale")
        assert bowl.food.is_vegan is True
        assert bowl.food.is_vegetarian is True

    def test_spreadsheet_columns(self):
        wb = Workbook()
        ws = wb.active
        ws.title = "Wines"
        ws.append(["Name", "Price", "Item Type", "Vintage", "Grape Variety", "Region"])
        ws.append(["Reserva", 34, "wine", 2018, "Tempranillo", "Rioja"])
        buf = io.BytesIO()
        wb.save(buf)
        item = parse_document(buf.getvalue(), "xlsx").items[0]
        assert item.wine.vintage == 2018
        assert item.wine.grape_varieties == ("Tempranillo",)
        assert item.wine.region == "Rioja"

    def test_trailing_unpriced_line_noted(self):
        result = parse_document(b"MAINS\nBurger \xc2\xa312\nSeasonal Greens\n", "delimited")
        assert [i.name for i in result.items] == ["Burger"]
        assert result.items[0].category == "Mains"
        assert any("Seasonal Greens" in n for n in result.processing_notes)

    def test_wine_name_loses_vintage_and_region(self):
        data = "WINES\nChâteau Margaux 2015 Bordeaux £120\n".encode("utf-8")
        item = parse_document(data, "txt").items[0]
        assert item.item_type is ItemType.WINE
        assert item.name == "Château Margaux"
        assert item.wine.vintage == 2015
        assert item.wine.region == "Bordeaux"
        assert item.wine.producer == "Château Margaux"
