"""
Item candidate extraction from reader records.

Covers:
  - single-line item under a CAPS header ("Mojito - ... £10.50")
  - multi-line item (name line, description line, price line)
  - description continuation after an item line
  - implied header before a self-contained item line
  - sheet marker sets the category for keyed rows
  - keyed rows: price parsing, type hint, unparseable price note
  - unpriced orphan lines reported, never dropped silently
  - a trailing unpriced line is reported, not taken for a header
  - a title line right before keyed rows is their category
  - keyed rows carry their stated facet columns / keys
  - dietary markers and trailing ABV / volume stripped from names
  - multi-price lines keep the first price, size label off the name
  - split_name_description() separators
"""

from __future__ import annotations

from ingest.contracts import RawRecord
from ingest.extractor import extract_candidates, split_name_description


def _lines(*texts):
    return [RawRecord(text=t, line_no=i) for i, t in enumerate(texts, start=1)]


class TestTextLines:
    """Line grammar over plain text records."""

    def test_single_line_item_under_header(self):
        cands, notes = extract_candidates(_lines(
            "COCKTAILS",
            "Mojito - White rum, lime juice, mint, sugar, soda water £10.50",
        ))
        assert notes == []
        assert len(cands) == 1
        c = cands[0]
        assert c.name == "Mojito"
        assert c.description == "White rum, lime juice, mint, sugar, soda water"
        assert c.price == 10.5
        assert c.price_text == "£10.50"
        assert c.category_hint == "Cocktails"
        assert c.source_lines == (2, 2)

    def test_multi_line_item(self):
        cands, _ = extract_candidates(_lines(
            "MAINS",
            "Fish and Chips",
            "Beer-battered haddock, chunky chips, mushy peas",
            "£15.00",
        ))
        assert len(cands) == 1
        c = cands[0]
        assert c.name == "Fish and Chips"
        assert c.description == "Beer-battered haddock, chunky chips, mushy peas"
        assert c.price == 15.0
        assert c.source_lines == (2, 4)

    def test_description_continuation(self):
        cands, _ = extract_candidates(_lines("Burger £12", "served with fries and slaw"))
        assert len(cands) == 1
        assert cands[0].name == "Burger"
        assert cands[0].description == "served with fries and slaw"

    def test_implied_header(self):
        cands, _ = extract_candidates(_lines("Desserts", "Tiramisu £6.50", "Affogato £5"))
        assert [c.name for c in cands] == ["Tiramisu", "Affogato"]
        assert all(c.category_hint == "Desserts" for c in cands)

    def test_colon_header(self):
        cands, _ = extract_candidates(_lines("Red wines:", "Rioja Reserva 2018 £34"))
        assert cands[0].category_hint == "Red Wines"

    def test_no_header_is_uncategorized(self):
        cands, _ = extract_candidates(_lines("Burger £12"))
        assert cands[0].category_hint == "Uncategorized"

    def test_orphan_line_noted(self):
        cands, notes = extract_candidates(_lines("Welcome to our kitchen, enjoy your meal!"))
        assert cands == []
        assert len(notes) == 1
        assert notes[0].startswith("line 1: no price found")

    def test_orphan_before_named_item(self):
        cands, notes = extract_candidates(_lines("Welcome, enjoy!", "Burger £12"))
        assert [c.name for c in cands] == ["Burger"]
        assert notes == ["line 1: no price found, line ignored: 'Welcome, enjoy!'"]

    def test_trailing_unpriced_line_noted(self):
        cands, notes = extract_candidates(_lines("MAINS", "Burger £12", "Seasonal Greens"))
        assert [c.name for c in cands] == ["Burger"]
        assert notes == ["line 3: no price found, line ignored: 'Seasonal Greens'"]

    def test_trailing_line_before_sheet_marker_noted(self):
        cands, notes = extract_candidates(_lines("Burger £12", "Chef Specials", "=== Drinks ===", "Cola £3"))
        assert [c.name for c in cands] == ["Burger", "Cola"]
        assert cands[1].category_hint == "Drinks"
        assert any("Chef Specials" in n for n in notes)

    def test_market_price_item(self):
        cands, notes = extract_candidates(_lines("Whole Lobster MP"))
        assert cands[0].name == "Whole Lobster"
        assert cands[0].price is None
        assert any("market price" in n for n in notes)

    def test_dietary_marker_stripped(self):
        cands, _ = extract_candidates(_lines("Garden Salad (v) £8"))
        assert cands[0].name == "Garden Salad"
        assert "(v)" in cands[0].raw_text

    def test_trailing_specs_stripped(self):
        cands, _ = extract_candidates(_lines("Peroni 5% 330ml £5.50"))
        assert cands[0].name == "Peroni"

    def test_multi_price_line(self):
        cands, _ = extract_candidates(_lines("Camden Hells Pint £6.50, Half Pint £3.25"))
        c = cands[0]
        assert c.name == "Camden Hells"
        assert c.price == 6.5
        assert "Pint £6.50, Half Pint £3.25" in c.raw_text


class TestKeyedRecords:
    """Rows with header-mapped fields."""

    def test_keyed_row(self):
        recs = [
            RawRecord(text="=== Wines ===", line_no=1),
            RawRecord(text="Rioja | 34.00", line_no=2, fields={"name": "Rioja", "price": 34.0, "item_type": "Wine"}),
        ]
        cands, notes = extract_candidates(recs)
        assert notes == []
        assert cands[0].name == "Rioja"
        assert cands[0].price == 34.0
        assert cands[0].category_hint == "Wines"
        assert cands[0].type_hint == "wine"

    def test_row_category_wins_over_marker(self):
        recs = [
            RawRecord(text="=== Drinks ===", line_no=1),
            RawRecord(text="Cola | 3", line_no=2, fields={"name": "Cola", "price": 3, "category": "Soft Drinks"}),
        ]
        cands, _ = extract_candidates(recs)
        assert cands[0].category_hint == "Soft Drinks"

    def test_unparseable_price_noted(self):
        recs = [RawRecord(text="Lobster | ask", line_no=4, fields={"name": "Lobster", "price": "ask server"})]
        cands, notes = extract_candidates(recs)
        assert cands[0].price is None
        assert len(notes) == 1
        assert notes[0].startswith("line 4: could not parse price")

    def test_title_before_keyed_rows(self):
        recs = [
            RawRecord(text="Summer Specials", line_no=1),
            RawRecord(text="Cola | 3", line_no=3, fields={"name": "Cola", "price": 3}),
        ]
        cands, notes = extract_candidates(recs)
        assert notes == []
        assert cands[0].category_hint == "Summer Specials"

    def test_stated_facets_carried(self):
        fields = {
            "name": "Reserva",
            "price": 34,
            "item_type": "wine",
            "vintage": 2018,
            "grapeVariety": ["Tempranillo"],
            "Gluten Free": "no",
            "pairings": "lamb",
        }
        cands, _ = extract_candidates([RawRecord(text="Reserva | 34", line_no=1, fields=fields)])
        assert cands[0].explicit_facets == {
            "vintage": 2018,
            "grape_varieties": ["Tempranillo"],
            "is_gluten_free": "no",
        }

    def test_no_stated_facets(self):
        recs = [RawRecord(text="Chips | 3", line_no=1, fields={"name": "Chips", "price": 3})]
        cands, _ = extract_candidates(recs)
        assert cands[0].explicit_facets is None


class TestSplitNameDescription:
    """split_name_description() separators."""

    def test_dash(self):
        assert split_name_description("Mojito - White rum, lime") == ("Mojito", "White rum, lime")

    def test_pipe(self):
        assert split_name_description("Negroni | gin, Campari") == ("Negroni", "gin, Campari")

    def test_comma_fallback(self):
        assert split_name_description("Margherita, tomato, basil") == ("Margherita", "tomato, basil")

    def test_name_only(self):
        assert split_name_description("Fish and Chips") == ("Fish and Chips", None)
